"""Core logging and progress helpers for mangrove_lulc."""

from __future__ import annotations

import logging
import platform
import sys
import traceback
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

DEFAULT_LOG_TAG = "mangrove_lulc"
_recent_log_lines: deque[str] = deque(maxlen=1200)


class Logger(Protocol):
    """Simple logger protocol used by the pipeline stages."""

    def debug(self, message: Any) -> None: ...

    def info(self, message: Any) -> None: ...

    def warning(self, message: Any) -> None: ...

    def error(self, message: Any) -> None: ...

    def exception(self, message: Any, exc: BaseException | None = None) -> None: ...


class FeedbackProtocol(Protocol):
    """Minimal progress feedback interface."""

    def setProgress(self, value: float | int) -> None: ...

    def setProgressText(self, message: str) -> None: ...


LoggerFactory = Callable[[str], Logger]
ErrorHandler = Callable[[str, Any, Optional[str]], None]


def _format_message(message: Any) -> str:
    if isinstance(message, str):
        return message
    if isinstance(message, BaseException):
        return str(message) or type(message).__name__
    return repr(message)


def _level_name(level: int | None) -> str:
    if level is None:
        return "INFO"
    return logging.getLevelName(level)


def record_log_entry(tag: str, level: int | None, message: Any) -> None:
    """Capture recent log entries so a failed run can be reported."""
    text = _format_message(message)
    if not text:
        return
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    _recent_log_lines.append(f"{timestamp} [{_level_name(level)}] {tag}: {text}")


def get_recent_log_output(max_lines: int = 400) -> str:
    """Return recent log lines captured in the current process."""
    if max_lines <= 0 or not _recent_log_lines:
        return ""
    lines = list(_recent_log_lines)[-max_lines:]
    return "\n".join(lines)


def clear_recent_log_output() -> None:
    _recent_log_lines.clear()


def get_system_info() -> str:
    """Gather interpreter and dependency versions for error reports."""
    info_lines: list[str] = []
    info_lines.append(f"Python: {sys.version}")
    info_lines.append(f"OS: {platform.system()} {platform.release()} ({platform.machine()})")

    dependencies = {}
    for pkg in ["numpy", "sklearn", "shapely", "osgeo"]:
        try:
            module = __import__(pkg)
            dependencies[pkg] = getattr(module, "__version__", "Unknown version")
        except ImportError:
            dependencies[pkg] = "Not installed"

    info_lines.append("\nDependencies:")
    for pkg, version in dependencies.items():
        info_lines.append(f"  - {pkg}: {version}")

    return "\n".join(info_lines)


def _default_error_handler(title: str, message: Any, context: str | None) -> None:
    text = f"{title}: {_format_message(message)}"
    if context:
        text += f"\n{context}"
    print(text, file=sys.stderr)


_error_handler: ErrorHandler = _default_error_handler


def _logger_factory(tag):
    return PythonLogger(tag)


def register_error_handler(handler: ErrorHandler) -> None:
    global _error_handler
    _error_handler = handler


def register_logger_factory(factory: LoggerFactory) -> None:
    global _logger_factory
    _logger_factory = factory


def create_logger(tag: str = DEFAULT_LOG_TAG) -> Logger:
    return _logger_factory(tag)


def show_error(title: str, message: Any, context: str | None = None) -> None:
    _error_handler(title, message, context)


@dataclass
class PythonLogger:
    tag: str = DEFAULT_LOG_TAG
    level: int = logging.INFO

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(self.tag)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"),
            )
            self._logger.addHandler(handler)
        self._logger.setLevel(self.level)

    def _log(self, level: int, message: Any) -> None:
        record_log_entry(self.tag, level, message)
        self._logger.log(level, _format_message(message))

    def debug(self, message: Any) -> None:
        self._log(logging.DEBUG, message)

    def info(self, message: Any) -> None:
        self._log(logging.INFO, message)

    def warning(self, message: Any) -> None:
        self._log(logging.WARNING, message)

    def error(self, message: Any) -> None:
        self._log(logging.ERROR, message)

    def exception(self, message: Any, exc: BaseException | None = None) -> None:
        details = _format_message(message)
        if exc is None:
            details += "\n" + traceback.format_exc()
        else:
            details += "\n" + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self._log(logging.ERROR, details)


@dataclass
class Reporter:
    """Logger plus optional progress feedback, passed through the pipeline."""

    logger: Logger
    feedback: FeedbackProtocol | None = None
    error_handler: ErrorHandler = _default_error_handler

    @classmethod
    def from_feedback(cls, feedback: FeedbackProtocol | None = None, tag: str = DEFAULT_LOG_TAG) -> Reporter:
        logger = _logger_factory(tag)
        return cls(logger=logger, feedback=feedback, error_handler=_error_handler)

    def debug(self, message: Any) -> None:
        self.logger.debug(message)

    def info(self, message: Any) -> None:
        self.logger.info(message)

    def warning(self, message: Any) -> None:
        self.logger.warning(message)

    def error(self, message: Any) -> None:
        self.logger.error(message)
        self.error_handler("mangrove_lulc Error", message, None)

    def exception(self, message: Any, exc: BaseException | None = None) -> None:
        self.logger.exception(message, exc)
        self.error_handler("mangrove_lulc Error", message, None)

    def step(self, text: str) -> None:
        """Log a stage name and forward it as progress text."""
        self.logger.info(text)
        if self.feedback is not None and hasattr(self.feedback, "setProgressText"):
            self.feedback.setProgressText(text)

    def progress(self, value: float | int) -> None:
        if self.feedback is not None and hasattr(self.feedback, "setProgress"):
            self.feedback.setProgress(int(value))


def ensure_reporter(reporter: Reporter | None) -> Reporter:
    """Return ``reporter`` or a default one writing to the package logger."""
    return reporter if reporter is not None else Reporter.from_feedback(None)
