"""
JSON log output for account, coordinator and VM events.

Every module logs through ``logging.getLogger(__name__)`` and tags records
with ``extra={"event": "<component>.<action>", ...}``. ``setup_logging``
attaches a JSON formatter to the package logger so those records come
out as one object per line, stamped with the network and chain they
were produced on.

    from minimal_account.core.logging_config import setup_logging

    setup_logging(level="DEBUG", chain_id=31337, log_file="logs/account.json")
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from . import config

PACKAGE_LOGGER = "minimal_account"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class AccountLogFormatter(jsonlogger.JsonFormatter):
    """
    Flattens a record into JSON with chain context.

    Byte values (hashes, selectors, revert data) are rendered as 0x-hex
    so they stay readable and comparable across log lines.
    """

    def __init__(
        self,
        network: Optional[str] = None,
        chain_id: Optional[int] = None,
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
    ):
        super().__init__(fmt=fmt)
        self.network = network or config.NETWORK
        self.chain_id = chain_id

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record.setdefault("event", "log")
        log_record["network"] = self.network
        if self.chain_id is not None:
            log_record["chain_id"] = self.chain_id
        log_record["source"] = f"{record.module}:{record.funcName}:{record.lineno}"

        for key, value in list(log_record.items()):
            if isinstance(value, (bytes, bytearray)):
                log_record[key] = "0x" + bytes(value).hex()


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    chain_id: Optional[int] = None,
    network: Optional[str] = None,
    console: bool = True,
    name: str = PACKAGE_LOGGER,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Route package log records to JSON handlers.

    Calling it again replaces the previous handlers.

    Args:
        level: Level name; defaults to MINIMAL_ACCOUNT_LOG_LEVEL
        log_file: Rotating JSON-lines file (optional)
        chain_id: Chain id stamped on every record
        network: Network label; defaults to MINIMAL_ACCOUNT_NETWORK
        console: Also write to stdout
        name: Logger to configure

    Raises:
        ConfigurationError: If the level name is unknown
    """
    level_name = (level or config.LOG_LEVEL).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        raise config.ConfigurationError(f"Unknown log level: {level_name}")

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers = []

    formatter = AccountLogFormatter(network=network, chain_id=chain_id)
    handlers = []
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                logging.handlers.RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
            )
        except OSError as exc:
            logger.warning(
                "Log file unavailable, continuing without it",
                extra={"event": "logging.file_handler_failed", "path": log_file, "error": str(exc)},
            )

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
