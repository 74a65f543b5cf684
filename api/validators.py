"""
Request validation helpers for the API routes.
"""

from datetime import date
from typing import Optional

from seo_pipeline.exceptions import ValidationError


def parse_site_id(value) -> int:
    """Site ids arrive as JSON numbers or query strings."""
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("siteId is required")
    try:
        site_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"siteId must be an integer, got {value!r}")
    if site_id < 1:
        raise ValidationError("siteId must be positive")
    return site_id


def parse_optional_date(value: Optional[str], name: str) -> Optional[date]:
    """Parse an optional YYYY-MM-DD query parameter."""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{name} must be a YYYY-MM-DD date, got {value!r}")


def parse_limit(value: Optional[str], default: int, maximum: int = 5000) -> int:
    """Parse the limit query parameter."""
    if value is None or value == "":
        return default
    try:
        limit = int(value)
    except ValueError:
        raise ValidationError(f"limit must be an integer, got {value!r}")
    if limit < 1 or limit > maximum:
        raise ValidationError(f"limit must be between 1 and {maximum}")
    return limit
