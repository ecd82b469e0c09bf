"""
tests/test_identifiers.py - Tests for garden id/slug classification and resolution.

Tests cover:
- Slug generation
- Canonical id vs slug classification
- Resolution through the store (slug lookup, zero lookups for canonical ids)
"""

import os
import tempfile

import pytest

from database import Store
from identifiers import (
    ID_KIND_CANONICAL, ID_KIND_SLUG, generate_slug, is_canonical_id,
    is_valid_slug, classify_identifier, resolve_garden_id, resolve_garden
)
from models import Garden
from records import create_garden, update_garden


class CountingStore:
    """Store double that records every lookup."""

    def __init__(self, gardens=()):
        self.gardens = list(gardens)
        self.calls = []

    def find_by(self, kind, column, value):
        self.calls.append(('find_by', column, value))
        for g in self.gardens:
            if getattr(g, column) == value:
                return g, None
        return None, None

    def get_by_id(self, kind, record_id):
        self.calls.append(('get_by_id', record_id))
        for g in self.gardens:
            if g.id == record_id:
                return g, None
        return None, "Kebun tidak ditemukan."


@pytest.fixture
def store():
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    store = Store(db_path)
    store.init_schema()
    yield store
    os.close(db_fd)
    for path in (db_path, db_path + '-wal', db_path + '-shm'):
        if os.path.exists(path):
            os.unlink(path)


# ========================================
# Slug generation
# ========================================

class TestGenerateSlug:

    def test_basic(self):
        assert generate_slug("Kebun Sawit A") == "kebun-sawit-a"

    def test_punctuation_removed(self):
        assert generate_slug("Blok #3 (Utara)") == "blok-3-utara"

    def test_accents_and_whitespace(self):
        assert generate_slug("  Kébun   Séléction  ") == "kebun-selection"

    def test_empty(self):
        assert generate_slug("") == ""
        assert generate_slug(None) == ""
        assert generate_slug("###") == ""

    def test_generated_slugs_are_valid(self):
        for name in ("Kebun Sawit A", "Blok #3 (Utara)", "Afdeling 2 - Timur"):
            assert is_valid_slug(generate_slug(name))


# ========================================
# Classification
# ========================================

class TestClassify:

    def test_uuid_is_canonical(self):
        value = "3f2b8c1e-9d4a-4e6b-8f0a-1c2d3e4f5a6b"
        assert is_canonical_id(value)
        assert is_canonical_id(value.upper())
        assert classify_identifier(value) == ID_KIND_CANONICAL

    def test_slug_is_not_canonical(self):
        assert not is_canonical_id("kebun-sawit-a")
        assert classify_identifier("kebun-sawit-a") == ID_KIND_SLUG

    def test_near_uuid_is_slug(self):
        assert classify_identifier("3f2b8c1e-9d4a-4e6b-8f0a") == ID_KIND_SLUG

    def test_non_string(self):
        assert not is_canonical_id(None)
        assert not is_canonical_id(42)


# ========================================
# Resolution
# ========================================

class TestResolve:

    def test_canonical_id_needs_no_lookup(self):
        counting = CountingStore()
        garden_id = "3f2b8c1e-9d4a-4e6b-8f0a-1c2d3e4f5a6b"
        resolved, error = resolve_garden_id(counting, garden_id)
        assert error is None
        assert resolved == garden_id
        assert counting.calls == []

    def test_slug_lookup(self):
        garden = Garden(id="3f2b8c1e-9d4a-4e6b-8f0a-1c2d3e4f5a6b", slug="kebun-a", name="Kebun A")
        counting = CountingStore([garden])
        resolved, error = resolve_garden_id(counting, "kebun-a")
        assert error is None
        assert resolved == garden.id
        assert counting.calls == [('find_by', 'slug', 'kebun-a')]

    def test_unknown_slug(self):
        resolved, error = resolve_garden_id(CountingStore(), "tidak-ada")
        assert resolved is None
        assert "tidak-ada" in error

    def test_id_and_slug_resolve_to_same_garden(self, store):
        garden, error = create_garden(store, {'name': 'Kebun Sawit A', 'location': 'Riau'})
        assert error is None

        by_id, _ = resolve_garden_id(store, garden.id)
        by_slug, _ = resolve_garden_id(store, garden.slug)
        assert by_id == by_slug == garden.id

        loaded, error = resolve_garden(store, garden.slug)
        assert error is None
        assert loaded.name == 'Kebun Sawit A'

    def test_rename_changes_slug_not_id(self, store):
        garden, _ = create_garden(store, {'name': 'Kebun Lama'})
        renamed, error = update_garden(store, garden.id, {'name': 'Kebun Baru'})
        assert error is None
        assert renamed.id == garden.id
        assert renamed.slug == 'kebun-baru'

        _, error = resolve_garden(store, 'kebun-lama')
        assert error is not None
        resolved, _ = resolve_garden_id(store, 'kebun-baru')
        assert resolved == garden.id
