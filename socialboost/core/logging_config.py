"""
Logging for the billing service.

Everything goes to stdout and to a size-capped file under ``logs/``. Webhook
payloads and checkout metadata pass through ``sanitize_log_data`` before they
are logged.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

LOG_FILE = "socialboost.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

REDACTED = "***REDACTED***"

# Substrings of keys whose values never reach a log line
SENSITIVE_KEYS = (
    "password", "token", "secret", "api_key", "authorization",
    "signature", "database_url", "email", "phone",
    "card", "iban",
)

# Chatty libraries held at WARNING regardless of LOG_LEVEL
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "stripe", "sqlalchemy.engine", "alembic")


def setup_logging(log_level: str = "INFO", log_dir: str = "logs"):
    """
    Install console and rotating-file handlers on the root logger.

    Safe to call more than once; previous handlers are replaced.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    log_path = Path(log_dir)
    log_path.mkdir(exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    # The file keeps call sites so webhook failures can be traced to a handler
    file_handler = RotatingFileHandler(
        log_path / LOG_FILE,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    root.addHandler(console_handler)
    root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _is_sensitive(key) -> bool:
    return isinstance(key, str) and any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS)


def sanitize_log_data(data):
    """
    Copy of a Stripe payload or metadata dict that is safe to log.

    Values under sensitive keys are replaced at any depth; ids, amounts and
    statuses are kept so log lines stay useful for reconciliation.

    Args:
        data: Dict (or list of dicts) as received from Stripe or the ledger

    Returns:
        Redacted copy; the input is not modified
    """
    if data is None:
        return {}
    return _redact(data)


def _redact(value):
    if isinstance(value, dict):
        return {key: REDACTED if _is_sensitive(key) else _redact(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact(item) for item in value]
    return value
