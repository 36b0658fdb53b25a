"""
errors.py
Wine Gaming Setup - Error Types

Every fatal condition raised by the setup phases derives from WineGamingError;
the command-line interface turns these into a logged error and exit code 1.
"""

from typing import List, Optional, Sequence


class WineGamingError(Exception):
    """Base class for fatal setup errors"""

    def __init__(self, message: str, hints: Optional[List[str]] = None):
        super().__init__(message)
        self.hints = list(hints or [])


class MissingDependencyError(WineGamingError):
    """A mandatory external tool is not installed"""

    def __init__(self, tool: str, hints: Optional[List[str]] = None):
        super().__init__(f"Required dependency not found: {tool}", hints)
        self.tool = tool


class CommandError(WineGamingError):
    """An external command exited with a non-zero status or could not start"""

    def __init__(self, argv: Sequence[str], returncode: int, output: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command failed ({returncode}): {' '.join(self.argv)}")


class RuntimeInitError(WineGamingError):
    """wineboot could not initialize the prefix"""


class InstallError(WineGamingError):
    """Registry import or translation layer installation failed"""
