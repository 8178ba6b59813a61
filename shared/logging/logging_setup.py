import logging
import logging.config
import os
from datetime import datetime
from logging import Logger

from pytz import timezone

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_TIMEZONE = "Europe/Berlin"

# rotate app.log at 10 MB, keep 5 old files
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

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

# request/SQL chatter, only shown in debug mode
_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")

_LEVEL_PREFIXES = (
    (logging.ERROR, "⛔ "),
    (logging.WARNING, "⚠️ "),
)


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in the configured timezone and marks warnings and errors."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # mismatched %-args, keep the raw template
            message = str(record.msg)

        prefix = next((p for level, p in _LEVEL_PREFIXES if record.levelno >= level), "")
        record.msg = prefix + message
        record.args = ()
        return super().format(record)


class ColoredFormatter(TimezoneFormatter):
    """Console formatter coloring records that carry a ``color`` attribute."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "", "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger:
    """Wraps a :class:`logging.Logger` and accepts an optional ``color=`` keyword.

    Usage::

        logger.info("document_id=%s chunked", 12)
        logger.info("collection ready", color="green")

    Only the console handler renders the color, the log file stays plain.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _emit(self, method: str, msg, args: tuple, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs = {**kwargs, "extra": {**(kwargs.get("extra") or {}), "color": color}}
        getattr(self._logger, method)(msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("debug", msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("info", msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("warning", msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("error", msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        self._emit("exception", msg, args, color, kwargs)

    def __getattr__(self, name):
        # setLevel, handlers, isEnabledFor, ...
        return getattr(self._logger, name)


def resolve_log_level(value: str | None) -> int:
    """Map a LOG_LEVEL value ("debug", "INFO", ...) to a logging level, INFO if unknown."""
    level = logging.getLevelName((value or "info").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def build_logging_config(log_file: str, level: int, tz_name: str) -> dict:
    def _formatter(factory: type) -> dict:
        return {"()": factory, "format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": _formatter(TimezoneFormatter),
            "colored": _formatter(ColoredFormatter),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "level": level,
                "filename": log_file,
                "maxBytes": LOG_FILE_MAX_BYTES,
                "backupCount": LOG_FILE_BACKUPS,
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    }


def setup_logging(name: str = "docsync") -> ColorLogger:
    """Configure console and file logging and return the application logger.

    Reads LOG_LEVEL, TIMEZONE and ROOT_DIR. The log file is
    ``$ROOT_DIR/logs/app.log``, ROOT_DIR defaults to the working directory.
    """
    level = resolve_log_level(os.getenv("LOG_LEVEL"))
    log_dir = os.path.join(os.getenv("ROOT_DIR") or os.getcwd(), "logs")
    os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(
        build_logging_config(
            log_file=os.path.join(log_dir, "app.log"),
            level=level,
            tz_name=os.getenv("TIMEZONE") or DEFAULT_TIMEZONE,
        )
    )

    quiet_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for quiet_logger in _QUIET_LOGGERS:
        logging.getLogger(quiet_logger).setLevel(quiet_level)

    return ColorLogger(logging.getLogger(name))
