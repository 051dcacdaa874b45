"""
Logging setup for the command-line front end

The library modules only call logging.getLogger(__name__) and never
configure anything themselves.  Programs that want to see their output
call setup_logging() once at startup.
"""

import logging
import os

# Environment variable read when no level is given explicitly.
LOG_LEVEL_ENV = "GAMEMAP_LOG_LEVEL"


def level_from_env(default=logging.WARNING) -> int:
    """Log level named by $GAMEMAP_LOG_LEVEL (e.g. "DEBUG"), else `default`."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def setup_logging(level=None, color=False):
    """
    Configure the root logger with one console handler.

    Parameters:
    -----------
    level : int, optional
        Log level; taken from $GAMEMAP_LOG_LEVEL when None
    color : bool
        Use ANSI colours for the level names
    """
    if level is None:
        level = level_from_env()

    root_logger = logging.getLogger()
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
        h.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(CompactFormatter(use_color=color))
    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)


class CompactFormatter(logging.Formatter):
    """
    One line per message: "LEVEL:topic: text".

    The topic is the logger name with the leading "gamemap." removed, so
    "gamemap.formats.ddave" shows as "formats.ddave".
    """

    COLORS = {
        logging.DEBUG: "\033[38;5;252m",      # Light grey
        logging.INFO: "\033[38;5;111m",       # Pastel blue
        logging.WARNING: "\033[38;5;229m",    # Pale yellow
        logging.ERROR: "\033[38;5;210m",      # Soft red
        logging.CRITICAL: "\033[38;5;217m",   # Light magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_color=False):
        super().__init__()
        self.use_color = use_color

    def format(self, record):
        level_name = record.levelname[:5]
        if self.use_color:
            level_name = f"{self.COLORS.get(record.levelno, '')}{level_name:<5}{self.RESET}"
        else:
            level_name = f"{level_name:<5}"

        topic = record.name
        if topic.startswith("gamemap."):
            topic = topic[len("gamemap."):]

        prefix = f"{level_name}:{topic}: "
        lines = record.getMessage().split("\n")
        if record.exc_info:
            lines.extend(self.formatException(record.exc_info).split("\n"))
        return "\n".join(prefix + line for line in lines)
