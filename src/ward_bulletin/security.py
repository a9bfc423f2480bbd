# ABOUTME: Input validation, HTML sanitization, and security event logging.
# ABOUTME: Guards profile slugs, emails, and announcement rich text before they reach storage.

import re

import bleach
import structlog

log = structlog.get_logger()

PROFILE_SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
PROFILE_SLUG_MAX_LENGTH = 50
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_MAX_LENGTH = 254

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

# Rich text allowed in announcement bodies
ALLOWED_TAGS = [
    "p",
    "br",
    "strong",
    "em",
    "b",
    "i",
    "u",
    "a",
    "ul",
    "ol",
    "li",
    "blockquote",
    "h3",
    "h4",
    "span",
]
ALLOWED_ATTRS = {"a": ["href", "title", "target", "rel"]}


def log_security_event(event_type: str, message: str, **context: object) -> None:
    """Record a security-relevant event."""
    log.warning("security_event", event_type=event_type, message=message, **context)


def validate_input(value: str | None, pattern: re.Pattern[str], max_length: int = 1000) -> bool:
    """Check a string against a pattern and a length bound."""
    if not value or not isinstance(value, str):
        return False
    if len(value) > max_length:
        log_security_event(
            "input_validation_failure",
            "Input validation failed",
            reason="input_too_long",
            max_length=max_length,
        )
        return False
    if not pattern.match(value):
        log_security_event(
            "input_validation_failure",
            "Input validation failed",
            reason="pattern_mismatch",
            input=value[:100],
        )
        return False
    return True


def validate_profile_slug(slug: str | None) -> bool:
    """Profile handles are lowercase letters, digits and hyphens, at most 50 chars."""
    return validate_input(slug, PROFILE_SLUG_PATTERN, PROFILE_SLUG_MAX_LENGTH)


def validate_email(email: str | None) -> bool:
    return validate_input(email, EMAIL_PATTERN, EMAIL_MAX_LENGTH)


def sanitize_user_input(value: str) -> str:
    """Strip null bytes and other control characters."""
    return _CONTROL_CHARS.sub("", value)


def sanitize_html(value: str) -> str:
    """Reduce rich text to a safe subset of tags and attributes."""
    return bleach.clean(value, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRS, strip=True)


def strip_tags(value: str) -> str:
    """Plain text with every tag removed and markup characters escaped."""
    return bleach.clean(value, tags=[], strip=True)
