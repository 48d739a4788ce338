from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

LOGGER_NAME = "kb_chat"

# Supported ANSI color names for the color= parameter
_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}


class CustomFormatter(logging.Formatter):
    """Timezone aware formatter that prefixes warnings and errors with a marker."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            original_msg = record.getMessage()
        except (TypeError, ValueError):
            # mismatched %-args from third party loggers
            original_msg = f"{record.msg} {record.args}"

        if record.levelno >= logging.ERROR:
            record.msg = "⛔ " + original_msg
        elif record.levelno == logging.WARNING:
            record.msg = "⚠️ " + original_msg
        else:
            record.msg = original_msg

        # args are already merged into msg
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter with optional per-message ANSI color support.

    Colors are applied only when the log record carries a ``color`` attribute,
    which is set by passing ``color=<name>`` to :class:`ColorLogger` methods.
    """

    def format(self, record) -> str:
        line = super().format(record)
        color_name = getattr(record, "color", None)
        ansi = _COLOR_MAP.get(color_name, "") if color_name else ""
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger:
    """Thin wrapper around :class:`logging.Logger` adding a ``color=`` keyword
    to all log methods.

    Usage::

        logger.info("Ingested %d passages", count, color="green")

    Colors only reach the console handler; the file handler writes plain text.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _with_color(self, kwargs: dict, color: str | None) -> dict:
        if color is not None:
            extra = dict(kwargs.get("extra") or {})
            extra["color"] = color
            return {**kwargs, "extra": extra}
        return kwargs

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.debug(msg, *args, **self._with_color(kwargs, color))

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.info(msg, *args, **self._with_color(kwargs, color))

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.warning(msg, *args, **self._with_color(kwargs, color))

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.error(msg, *args, **self._with_color(kwargs, color))

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.critical(msg, *args, **self._with_color(kwargs, color))

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        self._logger.exception(msg, *args, **self._with_color(kwargs, color))

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._logger.log(level, msg, *args, **self._with_color(kwargs, color))

    def __getattr__(self, name):
        """Delegate all other Logger attributes (e.g. setLevel, handlers) transparently."""
        return getattr(self._logger, name)


def build_logging_config(tz_name: str, log_dir: str | None = None) -> dict:
    """Build the dictConfig mapping. A file handler is only added when log_dir is given."""
    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": loglevel,
            "stream": "ext://sys.stdout",
        },
    }
    if log_dir:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": loglevel,
            "filename": os.path.join(log_dir, "app.log"),
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "()": CustomFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
            "colored": {
                "()": ColoredFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "tz_name": tz_name,
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers.keys()),
            "level": loglevel,
        },
    }


def setup_logging() -> ColorLogger:
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    log_dir = None
    root_dir = os.getenv("ROOT_DIR")
    if root_dir:
        log_dir = os.path.join(root_dir, "logs")
        os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(build_logging_config(tz_name=tz_name, log_dir=log_dir))

    # Suppress httpx request logs unless in debug mode
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
