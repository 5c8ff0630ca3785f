import logging
import json
import os
from pathlib import Path
import threading


ROOT_LOGGER_NAME = "procurement"


class SingletonLogger:
    """
    Singleton logger that configures the "procurement" logger hierarchy once per process.

    Modules ask for named children ("procurement.requests", ...). Children carry no
    handlers of their own and propagate to the configured root.
    """
    _instance = None
    _lock = threading.Lock()
    _logger = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SingletonLogger, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            with self._lock:
                if not self._initialized:
                    self._logger = None
                    self._initialized = True

    def get_logger(self, name: str = ROOT_LOGGER_NAME) -> logging.Logger:
        """
        Get a logger in the procurement hierarchy.

        Args:
            name (str): Dotted logger name. Names outside the hierarchy are nested under it.

        Returns:
            logging.Logger: The configured logger
        """
        if self._logger is None:
            with self._lock:
                if self._logger is None:
                    self._logger = self._create_logger()

        if name == ROOT_LOGGER_NAME:
            return self._logger
        if not name.startswith(ROOT_LOGGER_NAME + "."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        return logging.getLogger(name)

    def _create_logger(self) -> logging.Logger:
        """
        Create the root procurement logger with file and console handlers.

        Returns:
            logging.Logger: Configured logger instance
        """
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        level = getattr(logging, os.environ.get("LOG_LEVEL", "DEBUG").upper(), logging.DEBUG)
        logger.setLevel(level)
        logger.propagate = False
        logger.handlers.clear()

        formatter = JsonFormatter(RECORD_FIELDS)

        if os.environ.get("LOG_TO_FILE", "True").lower() in ("true", "1", "yes", "on"):
            logs_dir = Path(os.environ.get("LOG_DIR", "logs"))
            logs_dir.mkdir(parents=True, exist_ok=True)
            # procurement.log keeps the workflow trail, errors.log only failures
            logger.addHandler(_handler(logging.FileHandler(logs_dir / "procurement.log", mode='w', encoding='utf-8'),
                                       logging.INFO, formatter))
            logger.addHandler(_handler(logging.FileHandler(logs_dir / "errors.log", mode='w', encoding='utf-8'),
                                       logging.ERROR, formatter))

        logger.addHandler(_handler(logging.StreamHandler(), level, formatter))
        return logger


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


# JSON key -> LogRecord attribute
RECORD_FIELDS = {
    "timestamp": "asctime",
    "level": "levelname",
    "logger": "name",
    "module": "module",
    "function": "funcName",
    "line": "lineno",
    "message": "message",
}


class JsonFormatter(logging.Formatter):
    """
    Formats each record as one JSON object per line.

    Workflow context passed with `extra=` (operation, request_number, po_number,
    user_id) is added to the object when the record carries it.
    """

    CONTEXT_KEYS = ("operation", "request_number", "po_number", "user_id")

    def __init__(self, fields: dict = None, datefmt: str = "%Y-%m-%dT%H:%M:%S"):
        super().__init__(datefmt=datefmt)
        self.fields = fields if fields is not None else {"message": "message"}

    def format(self, record) -> str:
        record.message = record.getMessage()
        record.asctime = self.formatTime(record, self.datefmt)

        entry = {key: getattr(record, attr, None) for key, attr in self.fields.items()}
        for key in self.CONTEXT_KEYS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exc_info"] = record.exc_text
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger from the singleton-configured procurement hierarchy.

    Args:
        name (str): Logger name, e.g. "procurement.requests"

    Returns:
        logging.Logger: Logger that propagates to the configured handlers
    """
    return SingletonLogger().get_logger(name)
