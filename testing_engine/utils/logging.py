"""
Logging setup for the engine.

Every run logs with a ``[run_id]`` prefix. The JSON formatter lifts that prefix
into its own field so one run can be filtered out of a mixed stream. Sweep
credentials, session cookies and API test payloads pass through the same
loggers, so each handler redacts them before anything is written.
"""

import re
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from testing_engine.utils.config import SECRET_PATTERNS

REDACTED = "[REDACTED]"

SECRET_KEY = re.compile("|".join(SECRET_PATTERNS), re.IGNORECASE)

# key=value or key: value where the key names a secret
_SECRET_PAIR = re.compile(
    rf"(?P<key>[\w.-]*(?:{'|'.join(SECRET_PATTERNS)})[\w.-]*)\s*[=:]\s*"
    r"(?P<value>\"[^\"]*\"|'[^']*'|[^\s,;}]+)",
    re.IGNORECASE,
)

# secrets recognisable by shape alone
_SECRET_VALUES = [
    re.compile(r"(?:Bearer|Basic)\s+[\w\-.+/=]+", re.IGNORECASE),
    re.compile(r"connect\.sid=[^;\s]+", re.IGNORECASE),
    re.compile(r"eyJ[\w-]+\.eyJ[\w-]+(?:\.[\w-]+)?"),
]

_RUN_PREFIX = re.compile(r"^\[(?P<run_id>[^\]\s]+)\]\s*")

_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def redact_text(text: str) -> str:
    for pattern in _SECRET_VALUES:
        text = pattern.sub(REDACTED, text)
    return _SECRET_PAIR.sub(lambda m: f"{m.group('key')}={REDACTED}", text)


def run_id_of(message: str) -> Optional[str]:
    """Run id from a ``[run_id] ...`` message, ignoring the ``-`` placeholder."""
    match = _RUN_PREFIX.match(message)
    if not match or match.group("run_id") == "-":
        return None
    return match.group("run_id")


class RedactingFilter(logging.Filter):
    """Rewrites the message and string args of each record in place."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_text(str(record.msg))
        if isinstance(record.args, tuple):
            record.args = tuple(redact_text(a) if isinstance(a, str) else a for a in record.args)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with ``run_id`` when the message carries one."""

    def __init__(self):
        super().__init__()
        self._redactor = RedactingFilter()

    def format(self, record: logging.LogRecord) -> str:
        self._redactor.filter(record)
        message = record.getMessage()

        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        run_id = run_id_of(message)
        if run_id:
            entry["run_id"] = run_id
        if record.exc_info:
            entry["exception"] = redact_text(self.formatException(record.exc_info))

        entry.update({k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS})
        return json.dumps(entry, default=str)


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None):
    """Install a single redacting stream handler on the root logger."""
    from testing_engine.utils.config import settings

    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT

    handler = logging.StreamHandler()
    if log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler.addFilter(RedactingFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    # browser and driver chatter
    for name in ("httpx", "httpcore", "playwright", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(name).setLevel(logging.WARNING)


def redact_dict(data: Any) -> Any:
    """Copy of a request body or header map with secret-named keys masked."""
    if isinstance(data, dict):
        return {
            key: REDACTED if SECRET_KEY.search(str(key)) else redact_dict(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_dict(item) for item in data]
    return data
