from __future__ import annotations

import logging
import os
import sys
import threading
import weakref

_LEVEL_COLORS = {
    "TRACE": "\033[32m",  # green
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[37m",  # light gray
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[41m",  # red background
}
_RESET = "\033[0m"
_DIM = "\033[2m"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

if not hasattr(logging.Logger, "trace"):

    def _trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)

    logging.Logger.trace = _trace  # type: ignore[attr-defined]
    logging.TRACE = TRACE  # type: ignore[attr-defined]

TRACE_ENABLED = str(os.getenv("TICKETWATCH_TRACE", "0")).lower() in (
    "1",
    "true",
    "yes",
    "on",
)

# Loggers that would otherwise print a line per poll request (4 req/s per view)
_CHATTY_LOGGERS = ("httpx", "httpcore")


class AnsiColorFormatter(logging.Formatter):
    """Formatter that adds ANSI colors and a compact timestamp."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
        self.colored = colored and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.colored:
            return base
        level = record.levelname.upper()
        color = _LEVEL_COLORS.get(level, "")
        ts, sep, rest = base.partition(" ")
        if not sep:
            return base
        if color:
            rest = rest.replace(level, f"{color}{level}{_RESET}", 1)
        return f"{_DIM}{ts}{_RESET} {rest}"


# ---- NiceGUI activity log handler ----

_ui_log_targets: set[weakref.ref] = set()
_ui_lock = threading.Lock()


class NiceGuiLogHandler(logging.Handler):
    """Mirror this app's own log records into the attached ui.log widgets."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        if not _ui_log_targets:
            return
        msg = self.format(record)
        with _ui_lock:
            for ref in list(_ui_log_targets):
                widget = ref()
                if widget is None or getattr(widget, "is_deleted", False):
                    _ui_log_targets.discard(ref)
                    continue
                try:
                    widget.push(msg)
                except RuntimeError:
                    # Client went away between the check and the push
                    _ui_log_targets.discard(ref)


def attach_ui_log(log_widget) -> None:
    """Register a ui.log widget as a sink for log records."""
    try:
        ref = weakref.ref(log_widget)
    except TypeError:
        return
    with _ui_lock:
        _ui_log_targets.add(ref)


def detach_ui_log(log_widget) -> None:
    try:
        ref = weakref.ref(log_widget)
    except TypeError:
        return
    with _ui_lock:
        _ui_log_targets.discard(ref)


def attached_ui_log_count() -> int:
    with _ui_lock:
        return sum(1 for ref in _ui_log_targets if ref() is not None)


def _have_console_handler(logger: logging.Logger) -> bool:
    return any(
        type(h) is logging.StreamHandler and isinstance(h.formatter, AnsiColorFormatter)
        for h in logger.handlers
    )


def _have_ui_handler(logger: logging.Logger) -> bool:
    return any(isinstance(h, NiceGuiLogHandler) for h in logger.handlers)


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Configure the root logger with:
      - ANSI-colored console handler (stderr) with timestamps and levels
      - Optional NiceGUI handler mirroring records into the activity log
    httpx/httpcore are held at WARNING or above unless TRACE is requested;
    a TRACE level also turns on the per-tick trace helpers.
    Idempotent across multiple calls.
    """
    global TRACE_ENABLED
    logger = logging.getLogger()
    logger.setLevel(level)
    if level <= TRACE:
        TRACE_ENABLED = True

    if not _have_console_handler(logger):
        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(level)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        logger.addHandler(console)

    if add_ui_handler and not _have_ui_handler(logger):
        logger.addHandler(NiceGuiLogHandler(level=max(level, logging.INFO)))

    chatty_level = level if level <= TRACE else max(level, logging.WARNING)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)

    return logger
