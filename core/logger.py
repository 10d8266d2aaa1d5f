"""Structured logging for the router, its storages and the Bot API client.

All framework modules share the ``bot_framework`` logger.  Each record is
one JSON line, and the routing fields callers attach through ``extra=``
become top-level keys, so a log pipeline can follow one update from
polling to dispatch to the error handler:

- ``update_id`` and ``chat_id`` identify the update and its scope;
- ``kind``, ``binding`` and ``handler_name`` name the resolved route;
- ``db_path`` and ``command_name`` come from the persistent storage;
- ``api_endpoint`` and ``status_code`` come from the Telegram client.

Lookups and dispatches log at ``DEBUG``, registration and storage writes
at ``INFO``, and failures at the task boundary go through
``logger.exception`` so the traceback lands under ``exc_info``.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional


class _JsonFormatter(logging.Formatter):
    """Render a record as JSON, lifting ``extra`` routing fields to the top level.

    Keys that collide with the fixed fields are dropped rather than
    overwriting them.  Values that are not JSON-native (enum kinds, paths,
    exceptions) are stringified.
    """

    # Keys that belong to the standard LogRecord — everything else is extra.
    _BUILTIN_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    ))) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }

        for key, value in record.__dict__.items():
            if key not in self._BUILTIN_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class BotFrameworkLogger:
    """Process-wide holder of the ``bot_framework`` logger.

    The first :meth:`get_logger` call attaches a console handler and, unless
    ``BOT_LOG_DIR`` is empty, a rotating ``bot_framework.log`` in that
    directory.  ``main.py`` applies ``LOG_LEVEL`` through :meth:`set_level`
    once config is loaded; tests run with ``BOT_LOG_DIR=""``.
    """

    _instance: Optional["BotFrameworkLogger"] = None
    _logger: Optional[logging.Logger] = None

    _LOGGER_NAME: str = "bot_framework"
    _LOG_FILE: str = "bot_framework.log"
    _MAX_BYTES: int = 5 * 1024 * 1024  # 5 MB
    _BACKUP_COUNT: int = 5

    def __new__(cls, level: int = logging.INFO) -> "BotFrameworkLogger":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_logger(level)
        return cls._instance

    # ------------------------------------------------------------------
    # Initialisation helpers
    # ------------------------------------------------------------------

    def _init_logger(self, level: int) -> None:
        self._logger = logging.getLogger(self._LOGGER_NAME)
        self._logger.setLevel(level)

        # Avoid duplicate handlers if the module is reloaded.
        if self._logger.handlers:
            return

        formatter = _JsonFormatter()

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        log_dir = os.environ.get("BOT_LOG_DIR", "logs")
        if not log_dir:
            return
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, self._LOG_FILE),
            maxBytes=self._MAX_BYTES,
            backupCount=self._BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def get_logger(level: int = logging.INFO) -> logging.Logger:
        """Return the shared :class:`logging.Logger` instance.

        Creates the singleton on first call; later calls return the same
        logger regardless of *level* (use :meth:`set_level` to change it).
        """
        instance = BotFrameworkLogger(level)
        assert instance._logger is not None  # guaranteed by __new__
        return instance._logger

    @staticmethod
    def set_level(level: int | str) -> None:
        """Change the level of the shared logger, e.g. from ``LOG_LEVEL``."""
        BotFrameworkLogger.get_logger().setLevel(level)

    def cleanup(self) -> None:
        """Flush and close all handlers attached to the logger."""
        if self._logger is None:
            return
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)
