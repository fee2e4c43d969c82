import logging
import logging.config
import os
from datetime import datetime
from logging import Logger

from pytz import timezone

APP_LOGGER_NAME = "catalog_ai_bridge"

_ANSI_RESET = "\033[0m"
_ANSI_COLORS: dict[str, str] = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
}

_LEVEL_PREFIXES: dict[int, str] = {
    logging.CRITICAL: "⛔ ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}

# quiet below WARNING unless LOG_LEVEL=debug
_CHATTY_LOGGERS = ("httpx", "httpcore", "pymongo", "uvicorn.access")


def _resolve_level() -> int:
    name = os.getenv("LOG_LEVEL", "info").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


class HeartbeatFilter(logging.Filter):
    """Drops pymongo's per-connection server heartbeat records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not (record.name.startswith("pymongo") and "heartbeat" in str(record.msg).lower())


class TimezoneFormatter(logging.Formatter):
    """Renders timestamps in a fixed timezone and marks warnings and errors with a symbol."""

    def __init__(self, tz_name: str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        moment = datetime.fromtimestamp(record.created, self.tz)
        return moment.strftime(datefmt) if datefmt else moment.isoformat()

    def format(self, record: logging.LogRecord) -> str:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # args that do not fit the format string must not kill the handler
            message = f"{record.msg} {record.args!r}"
        # format a copy, other handlers see the untouched record
        record = logging.makeLogRecord({**record.__dict__, "msg": _LEVEL_PREFIXES.get(record.levelno, "") + message, "args": ()})
        return super().format(record)


class ColoredFormatter(TimezoneFormatter):
    """Console variant that wraps a line in the ANSI color named by the record's "color" attribute."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ansi = _ANSI_COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Logger wrapper whose log methods accept an optional color= keyword.

    Usage::

        logger.info("Full sync finished", color="green")
        logger.warning("Change feed lost, reconnecting", color="yellow")

    Only the console handler renders colors. Any other attribute is looked up
    on the wrapped logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _emit(self, level: int, msg, args: tuple, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        self._logger.log(level, msg, *args, **kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._emit(level, msg, args, color, kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def build_logging_config(level: int, tz_name: str, log_file: str | None) -> dict:
    """dictConfig for a colored console handler plus an optional plain file handler."""
    formatter_base = {"format": "%(asctime)s - %(levelname)s - %(message)s", "datefmt": "%Y-%m-%d %H:%M:%S", "tz_name": tz_name}
    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "filters": ["heartbeat"],
            "level": level,
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "plain",
            "filters": ["heartbeat"],
            "level": level,
            "filename": log_file,
            "encoding": "utf-8",
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"heartbeat": {"()": HeartbeatFilter}},
        "formatters": {
            "plain": {"()": TimezoneFormatter, **formatter_base},
            "colored": {"()": ColoredFormatter, **formatter_base},
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": level},
    }


def setup_logging() -> ColorLogger:
    """Configure logging from LOG_LEVEL, TIMEZONE, LOG_TO_FILE and ROOT_DIR.

    The log file is written to "<ROOT_DIR>/logs/app.log" unless LOG_TO_FILE is false.
    """
    level = _resolve_level()
    log_file = None
    if os.getenv("LOG_TO_FILE", "true").strip().lower() in ("true", "1", "yes"):
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, "app.log")

    logging.config.dictConfig(build_logging_config(level, os.getenv("TIMEZONE", "Europe/Berlin"), log_file))

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger(APP_LOGGER_NAME))
