"""
command_runner.py
Wine Gaming Setup - External Command Runner

All external processes go through CommandRunner so that every call site
decides explicitly whether a failure is fatal (run) or best effort (probe).
"""

import os
import shutil
import logging
import subprocess
from typing import Dict, Optional, Sequence

from wine_gaming.errors import CommandError

logger = logging.getLogger('CommandRunner')


class CommandRunner:
    """Thin wrapper around subprocess and PATH lookups"""

    def which(self, tool: str) -> Optional[str]:
        """Return the absolute path of a tool on PATH, or None"""
        return shutil.which(tool)

    def run(self, argv: Sequence[str], env: Optional[Dict[str, str]] = None,
            cwd: Optional[str] = None, capture: bool = True) -> str:
        """
        Run a command that must succeed

        Args:
            argv: Command and arguments
            env: Extra environment variables merged over os.environ
            cwd: Working directory
            capture: Capture stdout/stderr instead of streaming to the terminal

        Returns:
            str: Captured standard output (empty when not captured)

        Raises:
            CommandError: The command could not be started or exited non-zero
        """
        argv = [str(arg) for arg in argv]
        logger.debug(f"Running: {' '.join(argv)}")

        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        try:
            result = subprocess.run(
                argv,
                env=full_env,
                cwd=cwd,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.STDOUT if capture else None,
                universal_newlines=True,
            )
        except OSError as e:
            raise CommandError(argv, 127, str(e)) from e

        output = result.stdout or ""
        if result.returncode != 0:
            raise CommandError(argv, result.returncode, output)
        return output

    def probe(self, argv: Sequence[str]) -> Optional[str]:
        """
        Run a detection command, returning its output or None on any failure

        Output is returned even for a non-zero exit, since tools like
        vulkaninfo print usable data while exiting with an error.
        """
        argv = [str(arg) for arg in argv]
        try:
            result = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                universal_newlines=True,
            )
        except OSError as e:
            logger.debug(f"Probe {argv[0]} could not start: {e}")
            return None
        return result.stdout

