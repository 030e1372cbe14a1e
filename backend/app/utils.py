"""
Shared utility functions.
"""

import logging
import re
import secrets
from datetime import datetime, timezone
from typing import Any, Optional

from app.errors import ValidationError

logger = logging.getLogger(__name__)

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")

PROMPT_PROVENANCE_LIMIT = 500


def new_object_id() -> str:
    """24-hex-character document identifier."""
    return secrets.token_hex(12)


def parse_object_id(value: str, field_name: str = "id") -> str:
    """
    Validate a path/body identifier, raising a 400 ValidationError on malformed
    input instead of letting it fall through as a 404 or a 500.
    """
    if not isinstance(value, str) or not _OBJECT_ID_RE.match(value):
        raise ValidationError(
            message="Invalid ID format",
            errors=[{"field": field_name, "message": "Invalid ID format", "value": value}],
        )
    return value.lower()


def safe_error_detail(exc: Exception, fallback: str = "An internal error occurred. Please try again later.") -> str:
    """
    Return a sanitized error message safe for client consumption.
    Logs the real exception detail server-side.
    """
    logger.error(f"Operation failed: {exc}", exc_info=True)
    return fallback


def utcnow() -> datetime:
    """
    Return the current UTC time as a naive datetime (no tzinfo).
    Naive datetimes are used because our DB columns are TIMESTAMP WITHOUT TIME ZONE.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def truncate_prompt(prompt: str, limit: int = PROMPT_PROVENANCE_LIMIT) -> str:
    """Provenance copy of a generation prompt stored alongside the content."""
    if len(prompt) <= limit:
        return prompt
    return prompt[:limit] + "..."


def api_response(data: Any = None, message: Optional[str] = None) -> dict:
    """Success envelope: {success: true, message?, data?}."""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
