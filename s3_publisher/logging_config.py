"""Logging configuration with secret redaction.

Usage:
    # In entry points
    from s3_publisher.logging_config import configure_logging
    configure_logging(level=logging.INFO)

    # In library modules
    import logging
    logger = logging.getLogger(__name__)
"""
import logging
import re
from typing import ClassVar, Mapping, Optional, Pattern, Set

REDACTED = '[REDACTED]'


class SecretFilter(logging.Filter):
    """Logging filter that replaces registered secrets with ``[REDACTED]``."""

    _secrets: ClassVar[Set[str]] = set()
    _pattern: ClassVar[Optional[Pattern[str]]] = None

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact secrets in the record; never suppresses it."""
        pattern = self._pattern
        if pattern is not None:
            record.msg = pattern.sub(REDACTED, str(record.msg))
            if isinstance(record.args, Mapping):
                record.args = {
                    key: pattern.sub(REDACTED, value) if isinstance(value, str) else value
                    for key, value in record.args.items()
                }
            elif record.args:
                record.args = tuple(
                    pattern.sub(REDACTED, arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )
        return True

    @classmethod
    def register_secret(cls, secret: Optional[str]) -> None:
        """Register a value to redact. Empty values are ignored."""
        if not secret:
            return
        cls._secrets.add(secret)
        # Longest first so overlapping secrets are fully replaced
        ordered = sorted(cls._secrets, key=len, reverse=True)
        cls._pattern = re.compile('|'.join(re.escape(s) for s in ordered))

    @classmethod
    def clear_secrets(cls) -> None:
        cls._secrets.clear()
        cls._pattern = None


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging with a redacting stream handler.

    :param level: int, root log level.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s %(name)s: %(message)s'
    ))
    handler.addFilter(SecretFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
