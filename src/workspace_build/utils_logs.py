# src/workspace_build/utils_logs.py
"""Package logger: TRACE/SILENT levels, tagged records, stdout/stderr split.

Level and color are read from `current_runtime` on every `get_logger()` call,
so `set_log_level()` and `--color/--no-color` take effect immediately.
"""

import logging
import sys
from typing import Any, TextIO, cast

from .meta import PROGRAM_PACKAGE
from .runtime import current_runtime
from .utils import safe_log

RESET = "\033[0m"
CYAN = "\033[36m"
GREEN = "\033[92m"
GRAY = "\033[90m"

TRACE_LEVEL = logging.DEBUG - 5
SILENT_LEVEL = logging.CRITICAL + 1

# name → numeric level, least to most severe; "silent" disables all output
LEVEL_MAP: dict[str, int] = {
    "TRACE": TRACE_LEVEL,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
    "SILENT": SILENT_LEVEL,
}
LEVEL_ORDER = [name.lower() for name in LEVEL_MAP]

# levelname → (color, prefix); info records are printed bare
TAG_STYLES = {
    "TRACE": (GRAY, "[TRACE]"),
    "DEBUG": (CYAN, "[DEBUG]"),
    "WARNING": ("", "⚠️ "),
    "ERROR": ("", "❌ "),
    "CRITICAL": ("", "💥 "),
}

logging.addLevelName(TRACE_LEVEL, "TRACE")
logging.addLevelName(SILENT_LEVEL, "SILENT")


def colorize(text: str, color: str, *, use_color: bool | None = None) -> str:
    if use_color is None:
        use_color = current_runtime["use_color"]
    return f"{color}{text}{RESET}" if use_color and color else text


class LoggerWithTrace(logging.Logger):
    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(TRACE_LEVEL, msg, args, **kwargs)

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.getEffectiveLevel()).lower()

    def error_if_not_debug(self, msg: str, *args: Any) -> None:
        """Log an error; include the active traceback only when debugging."""
        self.error(msg, *args, exc_info=self.isEnabledFor(logging.DEBUG))

    def critical_if_not_debug(self, msg: str, *args: Any) -> None:
        self.critical(msg, *args, exc_info=self.isEnabledFor(logging.DEBUG))


class TagFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        style = TAG_STYLES.get(record.levelname)
        if style is None:
            return msg
        color, tag = style
        return f"{colorize(tag, color)} {msg}"


class DualStreamHandler(logging.StreamHandler[TextIO]):
    """Warnings and above go to stderr; everything else to stdout.

    The stream is looked up per record so captured/replaced std streams work.
    """

    def __init__(self) -> None:
        super().__init__(stream=sys.stdout)

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stderr if record.levelno >= logging.WARNING else sys.stdout
        super().emit(record)


logging.setLoggerClass(LoggerWithTrace)
_logger = cast("LoggerWithTrace", logging.getLogger(PROGRAM_PACKAGE))


def _install_handler() -> None:
    if any(isinstance(h, DualStreamHandler) for h in _logger.handlers):
        return
    handler = DualStreamHandler()
    handler.setFormatter(TagFormatter("%(message)s"))
    _logger.addHandler(handler)
    _logger.propagate = False


def _sync_level() -> None:
    level_name = current_runtime.get("log_level")
    if not level_name:
        safe_log("[LOGGER ERROR] ❌ Runtime does not specify log_level")
        level_name = "error"
    _logger.setLevel(LEVEL_MAP.get(str(level_name).upper(), logging.INFO))


def get_logger() -> LoggerWithTrace:
    """Return the workspace_build logger, synced with `current_runtime`."""
    _install_handler()
    _sync_level()
    return _logger


def set_log_level(level: str) -> None:
    if level.lower() not in LEVEL_ORDER:
        xmsg = f"Unknown log level: {level!r} (expected one of {LEVEL_ORDER})"
        raise ValueError(xmsg)
    current_runtime["log_level"] = level.lower()
    _sync_level()


def log_dynamic(level: str, message: str) -> None:
    """Log `message` at a level given by name (e.g. 'info', 'error', 'trace')."""
    logger = get_logger()
    if level.upper() not in LEVEL_MAP or level.lower() == "silent":
        logger.error("Unknown log level: %r", level)
        return
    getattr(logger, level.lower())(message)
