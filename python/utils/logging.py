"""
Structured JSON logging for the processors.

Configure once at startup:

        from utils.logging import configure_logging
        configure_logging(logging.INFO)

then log through the standard `logging` module, passing structured fields via `extra`:

        logging.info("[Auctionhouse] Applied event", extra={"listing_id": 42})

Each record is written as one JSON line:
    {
        "timestamp": "2024-03-15 14:29:31,000",
        "level": "INFO",
        "fields": {
            "message": "[Auctionhouse] Applied event",
            "listing_id": 42
        },
        "module": "store",
        "func_name": "apply_event",
        "path_name": "/app/python/processors/auctionhouse/store.py",
        "line_no": 87
    }
"""

import logging
import json

DEFAULT_LOGGER_NAME = "default_python_logger"


class CustomLogger(logging.Logger):
    # Nest everything passed as `extra` under a single attribute so it cannot
    # collide with the built-in LogRecord attributes.
    def makeRecord(
        self, name, level, fn, lno, msg, args, exc_info, func=None, extra=None, sinfo=None
    ):
        fields = {"fields": extra} if extra else None
        return super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func, fields, sinfo
        )


class JsonFormatter(logging.Formatter):
    def format(self, record):
        fields = {"message": record.getMessage()}
        extra_fields = record.__dict__.get("fields", {})
        fields.update(extra_fields)
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "fields": fields,
            "module": record.module,
            "func_name": record.funcName,
            "path_name": record.pathname,
            "line_no": record.lineno,
        }
        # Block numbers and uint256 amounts are plain ints; anything else falls back to str
        return json.dumps(log_data, default=str)


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    logger = CustomLogger(DEFAULT_LOGGER_NAME)
    logger.setLevel(level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter())
    logger.addHandler(stream_handler)

    # Module level logging.info(...) calls go through the root logger
    logging.root = logger
    return logger
