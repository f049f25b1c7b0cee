"""Shared parsing helpers for JSON request payloads."""

from __future__ import annotations

from cutroom.core.exceptions import ValidationError


def text_field(data: dict, name: str) -> str | None:
    """Stripped string value of a payload field.

    Returns None when the field is absent, null or blank. Any other
    non-string value raises ValidationError instead of reaching .strip().
    """
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", details={name: value})
    return value.strip() or None
