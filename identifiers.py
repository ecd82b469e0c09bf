"""
identifiers.py - Garden identifier handling.

Gardens are addressed two ways: the canonical id (a UUID, used by every
foreign key) and the slug (human-readable, used in URLs, changes when the
garden is renamed). Callers pass either; resolve_garden_id() turns it into
the canonical id before any dependent query runs.
"""

import re
import unicodedata
from typing import Optional, Tuple

from models import Garden

ID_KIND_CANONICAL = 'id'
ID_KIND_SLUG = 'slug'

_UUID_RE = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$',
    re.IGNORECASE
)
_SLUG_RE = re.compile(r'^[a-z0-9_]+(?:-[a-z0-9_]+)*$')


def generate_slug(text: str) -> str:
    """
    Generate a URL-friendly slug from a garden name.

    Examples:
        "Kebun Sawit A" -> "kebun-sawit-a"
        "  Kébun  Séléction  " -> "kebun-selection"
        "Blok #3 (Utara)" -> "blok-3-utara"
    """
    if not text:
        return ""

    result = str(text).lower().strip()
    result = unicodedata.normalize('NFD', result)
    result = ''.join(c for c in result if unicodedata.category(c) != 'Mn')
    result = re.sub(r'\s+', '-', result)
    result = re.sub(r'[^\w-]+', '', result, flags=re.ASCII)
    result = re.sub(r'-{2,}', '-', result)
    return result.strip('-')


def is_canonical_id(value) -> bool:
    """True when value is exactly a canonical id (UUID v1-v5)."""
    if not value or not isinstance(value, str):
        return False
    return bool(_UUID_RE.match(value))


def is_valid_slug(value) -> bool:
    """True when value has the shape generate_slug() produces."""
    if not value or not isinstance(value, str):
        return False
    return bool(_SLUG_RE.match(value))


def classify_identifier(value) -> str:
    """Return ID_KIND_CANONICAL for a canonical id, ID_KIND_SLUG for anything else."""
    if is_canonical_id(value):
        return ID_KIND_CANONICAL
    return ID_KIND_SLUG


def resolve_garden_id(store, identifier) -> Tuple[Optional[str], Optional[str]]:
    """
    Resolve a garden identifier (canonical id or slug) to the canonical id.

    A canonical id is returned unchanged without touching the store.
    Anything else is looked up by slug.

    Returns:
        Tuple of (garden_id, error_message)
    """
    if classify_identifier(identifier) == ID_KIND_CANONICAL:
        return identifier, None

    garden, error = store.find_by(Garden, 'slug', identifier)
    if error:
        return None, error
    if garden is None:
        return None, f"Kebun tidak ditemukan: {identifier}"
    return garden.id, None


def resolve_garden(store, identifier) -> Tuple[Optional[Garden], Optional[str]]:
    """Resolve an identifier and load the garden row. Returns (garden, error)."""
    if classify_identifier(identifier) == ID_KIND_SLUG:
        garden, error = store.find_by(Garden, 'slug', identifier)
        if error:
            return None, error
        if garden is None:
            return None, f"Kebun tidak ditemukan: {identifier}"
        return garden, None

    garden, error = store.get_by_id(Garden, identifier)
    if error:
        return None, error
    return garden, None
