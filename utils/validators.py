"""
utils/validators.py - Form input parsing helpers.

Turns raw form strings into typed values. Empty fields become None so the
record layer can report them as missing; malformed numbers and dates raise
FormError with a message ready to flash.
"""

from datetime import date


class FormError(ValueError):
    """Raised when a submitted field cannot be parsed."""


def text(form, key, default=None):
    """Stripped string, or default when the field is absent or blank."""
    value = form.get(key)
    if value is None:
        return default
    value = value.strip()
    return value or default


def number(form, key, label, cast=float):
    value = text(form, key)
    if value is None:
        return None
    # Decimal comma ("2,5") is accepted
    normalized = value.replace(' ', '').replace(',', '.')
    try:
        parsed = float(normalized)
    except ValueError:
        raise FormError(f"{label} harus berupa angka.")
    return int(parsed) if cast is int else parsed


def iso_date(form, key, label):
    value = text(form, key)
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise FormError(f"{label} harus berformat YYYY-MM-DD.")


def checkbox(form, key) -> bool:
    return form.get(key) in ('on', '1', 'true', 'yes')


def drop_missing(values, keep=()):
    """Remove None values so partial updates don't blank untouched columns."""
    return {k: v for k, v in values.items() if v is not None or k in keep}
