"""
log.py
Wine Gaming Setup - Logging Configuration

Console output is colored and emoji-tagged per severity. Records may carry a
topic tag (``extra={'tag': 'gpu'}`` or ``'intel'``) that overrides the emoji
and color of INFO / SUCCESS lines. The log file keeps a plain format.
"""

import os
import logging
from typing import Optional

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

RED = '\033[0;31m'
GREEN = '\033[0;32m'
YELLOW = '\033[1;33m'
BLUE = '\033[0;34m'
PURPLE = '\033[0;35m'
CYAN = '\033[0;36m'
NC = '\033[0m'

LEVEL_STYLES = {
    logging.DEBUG: (NC, "🔧"),
    logging.INFO: (BLUE, "ℹ️ "),
    SUCCESS: (GREEN, "✅"),
    logging.WARNING: (YELLOW, "⚠️ "),
    logging.ERROR: (RED, "❌"),
    logging.CRITICAL: (RED, "❌"),
}

TAG_STYLES = {
    "gpu": (PURPLE, "🎮", ""),
    "intel": (CYAN, "🔷", "Intel: "),
}


class ConsoleFormatter(logging.Formatter):
    """Formats records as colored, emoji-prefixed terminal lines"""

    def __init__(self, use_color: bool = True):
        super().__init__('%(message)s')
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color, emoji = LEVEL_STYLES.get(record.levelno, (NC, ""))
        prefix = ""

        tag = getattr(record, 'tag', None)
        if tag in TAG_STYLES and record.levelno in (logging.INFO, SUCCESS):
            color, emoji, prefix = TAG_STYLES[tag]

        line = f"{emoji} {prefix}{message}"
        if self.use_color:
            return f"{color}{line}{NC}"
        return line


def success(logger: logging.Logger, message: str, *args, **kwargs) -> None:
    """Log at the SUCCESS level"""
    logger.log(SUCCESS, message, *args, **kwargs)


def configure_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """
    Configure the root logger with a console handler and an optional file handler

    Args:
        log_file: Path of the log file, or None for console only
        verbose: Log DEBUG records to the console
    """
    console = logging.StreamHandler()
    console.setFormatter(ConsoleFormatter(use_color=os.environ.get('NO_COLOR') is None))
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    handlers = [console]

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
