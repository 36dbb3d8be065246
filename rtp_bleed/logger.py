import json
import logging
import time
from typing import Any, Optional

LOGGER_NAME = "rtp_bleed"


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for the optional log file."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": now_iso(),
            "level": record.levelname,
            "event": getattr(record, "event", None),
            **getattr(record, "fields", {}),
        }
        if payload["event"] is None:
            payload["message"] = record.getMessage()
        return json.dumps(payload, ensure_ascii=False)


def create_logger(log_file: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Prevent duplicate handlers if called twice in one process
    if logger.handlers:
        return logger

    sh = logging.StreamHandler()
    sh.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(sh)

    if log_file:
        fh = logging.FileHandler(log_file)
        fh.setFormatter(JsonLineFormatter())
        logger.addHandler(fh)
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    message: str,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    logger.log(level, message, extra={"event": event, "fields": fields})
