"""
Logging configuration for the Saakra Learning API.
Console output for humans, one-JSON-object-per-line output for log shipping.
"""
import logging
import json
import sys
from datetime import datetime, timezone

# Extra attributes copied into structured records when a caller passes them via `extra=`.
STRUCTURED_FIELDS = (
    "request_id",
    "user_id",
    "path",
    "method",
    "status_code",
    "duration_ms",
    "identity",
    "retry_after",
    "error_details",
    "audit_event",
)


class ColoredFormatter(logging.Formatter):
    """Formatter with color coding for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        original = record.levelname
        color = self.COLORS.get(original, '')
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


_configured = False


def setup_logging(level: str = "INFO", json_output: bool = False, force: bool = False) -> logging.Logger:
    """
    Configure the root logger once per process.

    Args:
        level: Log level name; unknown names fall back to INFO.
        json_output: Emit StructuredFormatter JSON lines instead of colored text.
        force: Reconfigure even if logging was already set up.
    """
    global _configured

    root = logging.getLogger()
    if _configured and not force:
        return root

    log_level = getattr(logging, str(level).upper(), logging.INFO)
    root.setLevel(log_level)

    # Clear existing handlers
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(ColoredFormatter(
            '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
            datefmt='%H:%M:%S'
        ))
    root.addHandler(handler)

    _configured = True
    return root

