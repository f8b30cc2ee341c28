"""Structured logging for the audit log.

Every component logs through structlog with snake_case event names and
keyword context. Records carry user identifiers, client addresses and free
text details, so events pass through PIIRedactor before rendering unless
redaction is disabled. Digests are never rewritten: an all-zero genesis hash
looks like a phone number to a naive pattern scrub.
"""

import logging
import re
import sys
from collections.abc import Mapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

REDACTED = "[REDACTED]"

# Keys whose values are dropped outright
SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "api_key",
        "apikey",
        "private_key",
        "authorization",
        "credential",
        "credentials",
        "email",
        "phone",
        "ssn",
        "card_number",
        "credit_card",
        "ip_address",
        "user_agent",
    }
)

# Keys whose values pass through untouched
VERBATIM_KEYS: frozenset[str] = frozenset(
    {
        "hash",
        "previous_hash",
        "expected",
        "actual",
        "correlation_id",
    }
)

_TEXT_SCRUBS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "[EMAIL]"),
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "[SSN]"),
    (re.compile(r"\+?[\d\s\-\(\)]{10,}"), "[PHONE]"),
)


class PIIRedactor:
    """structlog processor masking personal data in event dictionaries.

    Values under a sensitive key are replaced wholesale; other strings are
    scrubbed for email, SSN and phone patterns. Nested mappings and lists
    are walked so break lists and record details are covered too.
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._scrub_mapping(event_dict))

    def _scrub_mapping(self, data: Mapping[str, Any]) -> dict[str, Any]:
        scrubbed: dict[str, Any] = {}
        for key, value in data.items():
            lowered = key.lower()
            if lowered in SENSITIVE_KEYS:
                scrubbed[key] = REDACTED
            elif lowered in VERBATIM_KEYS:
                scrubbed[key] = value
            else:
                scrubbed[key] = self._scrub(value)
        return scrubbed

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, str):
            for pattern, replacement in _TEXT_SCRUBS:
                value = pattern.sub(replacement, value)
            return value
        if isinstance(value, Mapping):
            return self._scrub_mapping(value)
        if isinstance(value, (list, tuple)):
            return [self._scrub(item) for item in value]
        return value


def _level_number(level: str) -> int:
    number = logging.getLevelNamesMapping().get(level.upper())
    return number if number is not None else logging.INFO


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level name; unknown names fall back to INFO
        format: "json" for machine-readable lines, "console" for humans
        redact_pii: Install PIIRedactor ahead of the renderer
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    if redact_pii:
        processors.append(PIIRedactor())
    processors.append(
        structlog.processors.JSONRenderer()
        if format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to a module name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
