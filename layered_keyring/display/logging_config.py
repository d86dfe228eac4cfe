"""Logging configuration setup."""

import copy
import logging
import logging.config
import re
import sys
import threading
from typing import Optional, Set, Tuple  # noqa: UP035

from layered_keyring.constants import DEFAULT_LOG_LEVEL, LOG_DATE_FORMAT, LOG_FORMAT

# ── Secret redaction filter ──────────────────────────────────────────────

_REDACTED = "***REDACTED***"


class SecretRedactionFilter(logging.Filter):
    """Logging filter that replaces resolved secret values with a placeholder.

    Call :meth:`register` to add values that should be scrubbed.  Registration
    is serialized by a lock; filtering reads the current compiled pattern.
    """

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()
        self._pattern: Optional["re.Pattern[str]"] = None
        self._lock = threading.Lock()

    def register(self, value: str) -> None:
        """Register a secret value for redaction."""
        if not value or len(value) < 4:  # skip trivially short values
            return
        with self._lock:
            if value in self._secrets:
                return
            self._secrets.add(value)
            # Longest first, so overlapping secrets are fully replaced
            snapshot = tuple(self._secrets)
            escaped = sorted((re.escape(s) for s in snapshot), key=len, reverse=True)
            self._pattern = re.compile("|".join(escaped))

    def clear(self) -> None:
        """Forget every registered value."""
        with self._lock:
            self._secrets.clear()
            self._pattern = None

    def redact(self, text: str) -> str:
        pattern = self._pattern
        if pattern is None:
            return text
        return pattern.sub(_REDACTED, text)

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is not None:
            if isinstance(record.msg, str):
                record.msg = self.redact(record.msg)
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {
                        k: self.redact(v) if isinstance(v, str) else v
                        for k, v in record.args.items()
                    }
                elif isinstance(record.args, tuple):
                    record.args = tuple(
                        self.redact(a) if isinstance(a, str) else a for a in record.args
                    )
        return True


# Module-level singleton so the resolver can register values at resolve time.
secret_redaction_filter = SecretRedactionFilter()

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": LOG_FORMAT,
            "datefmt": LOG_DATE_FORMAT,
        },
    },
    "handlers": {
        "console_handler": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "simple",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "layered_keyring": {
            "handlers": ["console_handler"],
            "propagate": False,
            "level": DEFAULT_LOG_LEVEL,
        },
        "keyring": {
            "handlers": ["console_handler"],
            "propagate": False,
            "level": "WARNING",
        },
    },
}


def setup_logging(
    log_lvl_str: str = DEFAULT_LOG_LEVEL,
    *,
    log_file: Optional[str] = None,
    quiet: bool = False,
) -> Tuple[Optional[str], str]:
    """
    Set up logging for an application using layered-keyring.

    Only the ``layered_keyring`` and ``keyring`` loggers are configured; the
    root logger is left to the application.  Logs go to stderr and, when
    *log_file* is given, to that file as well.  The secret redaction filter
    is attached to every handler.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        log_file: Optional path of an additional log file.
        quiet: If *True*, suppress all ``print()`` output.

    Returns:
        A tuple of (log_file_path, validated_log_level).
    """
    log_lvl_valid = log_lvl_str.upper()
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if log_lvl_valid not in valid_levels:
        if not quiet:
            print(f"Warning: invalid log level '{log_lvl_str}'. Using 'INFO'.", file=sys.stderr)
        log_lvl_valid = "INFO"

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    handler_names = ["console_handler"]
    if log_file:
        log_cfg["handlers"]["file_handler"] = {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "simple",
            "filename": log_file,
            "encoding": "utf-8",
        }
        handler_names.append("file_handler")

    for logger_cfg in log_cfg["loggers"].values():
        logger_cfg["handlers"] = list(handler_names)

    log_cfg["loggers"]["layered_keyring"]["level"] = log_lvl_valid
    log_cfg["loggers"]["keyring"]["level"] = "DEBUG" if log_lvl_valid == "DEBUG" else "WARNING"

    try:
        logging.config.dictConfig(log_cfg)
        # Attach secret redaction filter to all handlers
        for name in ("layered_keyring", "keyring"):
            for handler in logging.getLogger(name).handlers:
                handler.addFilter(secret_redaction_filter)
        if not quiet:
            print(
                f"Logging initialized. Log level: {log_lvl_valid}, log file: {log_file or '-'}",
                file=sys.stderr,
            )
    except Exception as e_log_cfg:
        if not quiet:
            print(
                f"Error applying logging configuration: {e_log_cfg}",
                file=sys.stderr,
            )

    return log_file, log_lvl_valid
