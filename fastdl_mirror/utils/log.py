"""
Logging configuration for the mirror.

Console output highlights ``[CATEGORY]`` tags with ANSI colours (with or
without ``colorlog``) and switches to GitHub Actions annotations when
running under CI.
"""

import logging
import os
from pathlib import Path

try:
    import colorlog
    _COLORLOG_AVAILABLE = True
except ImportError:
    _COLORLOG_AVAILABLE = False

log = logging.getLogger("fastdl-mirror")

_CONSOLE_FMT = "%(asctime)s [%(levelname)s] %(message)s"
_FILE_LOG_FMT = "%(asctime)s [%(levelname)s] %(threadName)s %(message)s"
_FILE_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_CI: bool = os.environ.get("GITHUB_ACTIONS") == "true"

_ANSI_RESET = "\033[0m"
_CATEGORY_STYLES: dict[str, str] = {
    "[WAVE]":    "\033[1;34m",
    "[PROBE]":   "\033[90m",
    "[GET]":     "\033[37m",
    "[SAVE]":    "\033[1;32m",
    "[SKIP]":    "\033[90m",
    "[RETRY]":   "\033[36m",
    "[DECODE]":  "\033[1;35m",
    "[CORRUPT]": "\033[1;31m",
    "[ERR]":     "\033[1;31m",
}


def _apply_category_styles(msg: str) -> str:
    for tag, style in _CATEGORY_STYLES.items():
        if tag in msg:
            msg = msg.replace(tag, f"{style}{tag}{_ANSI_RESET}")
    return msg


class _CategoryFormatter(logging.Formatter):
    """Plain formatter that still colours ``[CATEGORY]`` tags."""

    def format(self, record: logging.LogRecord) -> str:
        return _apply_category_styles(super().format(record))


class _ColorlogCategoryFormatter(colorlog.ColoredFormatter if _COLORLOG_AVAILABLE else logging.Formatter):  # type: ignore[misc]
    def format(self, record: logging.LogRecord) -> str:
        return _apply_category_styles(super().format(record))


class _CIFormatter(logging.Formatter):
    """Emit ``::warning::`` / ``::error::`` workflow commands so problems
    show up as annotations in the Actions UI."""

    _CI_COMMANDS: dict[int, str] = {
        logging.WARNING:  "::warning::",
        logging.ERROR:    "::error::",
        logging.CRITICAL: "::error::",
    }

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        prefix = self._CI_COMMANDS.get(record.levelno, "")
        return f"{prefix}{formatted}" if prefix else formatted


def setup_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Configure the package logger.

    Parameters
    ----------
    debug : bool
        Enable DEBUG-level console output (default is INFO).
    log_file : str | None
        If given, also write every message at DEBUG level to this path.
    """
    log.setLevel(logging.DEBUG if (debug or log_file) else logging.INFO)
    log.handlers.clear()

    if _CI:
        handler = logging.StreamHandler()
        handler.setFormatter(_CIFormatter(_CONSOLE_FMT, datefmt="%H:%M:%S"))
    elif _COLORLOG_AVAILABLE:
        handler = colorlog.StreamHandler()
        handler.setFormatter(_ColorlogCategoryFormatter(
            "%(log_color)s%(asctime)s [%(levelname)s]%(reset)s %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG":    "cyan",
                "INFO":     "green",
                "WARNING":  "yellow",
                "ERROR":    "red",
                "CRITICAL": "bold_red",
            },
        ))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(_CategoryFormatter(_CONSOLE_FMT, datefmt="%H:%M:%S"))
    handler.setLevel(logging.DEBUG if debug else logging.INFO)
    log.addHandler(handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_LOG_FMT, datefmt=_FILE_LOG_DATEFMT))
        log.addHandler(fh)
        log.info("Logging to file: %s", log_path.resolve())
