"""
Input validation for ServiceNow connection settings.
"""

import re
from typing import NamedTuple, Optional
from urllib.parse import urlparse

MAX_URL_LENGTH = 500

SYS_ID_PATTERN = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)
UUID_PATTERN = re.compile(
    r"^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$", re.IGNORECASE
)
SERVICENOW_HOST_SUFFIXES = (".service-now.com", ".servicenow.com")
SERVICENOW_SERVICES_HOST = re.compile(r"^[\w-]+\.servicenowservices\.com$")


class ValidationResult(NamedTuple):
    is_valid: bool
    error: Optional[str] = None
    sanitized: Optional[str] = None


def validate_instance_url(url: Optional[str]) -> ValidationResult:
    """Accept https ServiceNow instance URLs; returns the origin as sanitized value."""
    if not url or not isinstance(url, str):
        return ValidationResult(False, "Instance URL is required")

    trimmed = url.strip()
    if not trimmed:
        return ValidationResult(False, "Instance URL cannot be empty")
    if len(trimmed) > MAX_URL_LENGTH:
        return ValidationResult(False, "Instance URL is too long")

    if not re.match(r"^https?://", trimmed):
        trimmed = "https://" + trimmed
    trimmed = trimmed.rstrip("/")

    try:
        parsed = urlparse(trimmed)
    except ValueError:
        return ValidationResult(False, "Invalid URL format")
    hostname = parsed.hostname or ""
    if not hostname:
        return ValidationResult(False, "Invalid URL format")

    if parsed.scheme != "https":
        return ValidationResult(False, "Only HTTPS URLs are allowed")

    if parsed.username or parsed.password:
        return ValidationResult(False, "Credentials must not be embedded in the URL")

    if not hostname.endswith(SERVICENOW_HOST_SUFFIXES) and not SERVICENOW_SERVICES_HOST.match(hostname):
        return ValidationResult(False, "Invalid ServiceNow domain")

    return ValidationResult(True, sanitized=f"{parsed.scheme}://{parsed.netloc}")


def validate_scope_id(scope_id: Optional[str]) -> ValidationResult:
    """ServiceNow sys_id: 32 hex chars, or a dashed UUID normalised to that form."""
    if not scope_id or not isinstance(scope_id, str):
        return ValidationResult(False, "Scope ID is required")

    trimmed = scope_id.strip()
    if not trimmed:
        return ValidationResult(False, "Scope ID cannot be empty")

    if not SYS_ID_PATTERN.match(trimmed) and not UUID_PATTERN.match(trimmed):
        return ValidationResult(False, "Invalid scope ID format (must be 32 hex characters or UUID)")

    return ValidationResult(True, sanitized=trimmed.replace("-", "").lower())


def sanitize_string(value, max_length: int = 500) -> str:
    if not value or not isinstance(value, str):
        return ""
    return value.strip()[:max_length]
