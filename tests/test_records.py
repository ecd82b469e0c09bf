"""
tests/test_records.py - Tests for the store and the record write rules.

Tests cover:
- Store CRUD, error tuples and cascade deletes
- Garden slug generation and uniqueness
- Harvest total value recomputation
- Issue and maintenance status transitions
- Documentation and expense records
"""

import os
import tempfile
from datetime import date

import pytest

from database import Store
from models import Garden, Task, Harvest, Issue, Maintenance, Documentation, Expense
import records


@pytest.fixture
def store():
    """Create a temporary record store for testing."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    store = Store(db_path)
    store.init_schema()

    yield store

    os.close(db_fd)
    for path in (db_path, db_path + '-wal', db_path + '-shm'):
        if os.path.exists(path):
            os.unlink(path)


@pytest.fixture
def garden(store):
    garden, error = records.create_garden(store, {
        'name': 'Kebun Sawit A', 'location': 'Riau', 'area_ha': 12.5,
        'tree_count': 1700, 'planting_year': 2015, 'variety': 'Tenera',
    })
    assert error is None
    return garden


def _maintenance(store, garden, **overrides):
    values = {
        'garden_id': garden.id, 'maintenance_type': 'Pemupukan',
        'title': 'Pemupukan NPK', 'scheduled_date': date(2024, 1, 5),
    }
    values.update(overrides)
    maintenance, error = records.create_maintenance(store, values)
    assert error is None
    return maintenance


def _issue(store, garden, **overrides):
    values = {
        'garden_id': garden.id, 'title': 'Serangan ulat api', 'severity': 'Sedang',
        'report_date': date(2024, 1, 10),
    }
    values.update(overrides)
    issue, error = records.create_issue(store, values)
    assert error is None
    return issue


# ========================================
# Store
# ========================================

class TestStore:

    def test_insert_generates_id_and_timestamps(self, garden):
        assert len(garden.id) == 36
        assert garden.created_at
        assert garden.updated_at
        assert garden.slug == 'kebun-sawit-a'

    def test_get_missing(self, store):
        record, error = store.get_by_id(Garden, 'tidak-ada')
        assert record is None
        assert error == "Kebun tidak ditemukan."

    def test_update_missing(self, store):
        record, error = store.update(Garden, 'tidak-ada', {'name': 'X'})
        assert record is None
        assert "tidak ditemukan" in error

    def test_update_keeps_id_and_created_at(self, store, garden):
        updated, error = store.update(Garden, garden.id, {
            'id': 'other', 'created_at': '1999-01-01', 'variety': 'Dura'
        })
        assert error is None
        assert updated.id == garden.id
        assert updated.created_at == garden.created_at
        assert updated.variety == 'Dura'

    def test_delete(self, store, garden):
        success, error = store.delete(Garden, garden.id)
        assert success and error is None
        success, error = store.delete(Garden, garden.id)
        assert not success
        assert "tidak ditemukan" in error

    def test_unknown_kind_rejected(self, store):
        with pytest.raises(TypeError):
            store.list_all(dict)
        with pytest.raises(TypeError):
            store.list_by_garden(Garden, 'x')

    def test_find_by_unknown_column(self, store):
        with pytest.raises(ValueError):
            store.find_by(Garden, 'name; DROP TABLE gardens', 'x')

    def test_integrity_error_is_reported(self, store, garden):
        record, error = store.insert(Task, {
            'garden_id': garden.id, 'title': 'Tanpa kategori', 'target_date': '2024-01-01',
            'category': 'Tidak Ada',
        })
        assert record is None
        assert error.startswith("Data tidak valid")

    def test_malformed_stored_date_is_reported(self, store, garden):
        conn = store.connect()
        try:
            conn.execute(
                "INSERT INTO harvests (id, garden_id, date, quantity_kg, price_per_kg, "
                "total_value, quality, created_at) "
                "VALUES ('h-bad', ?, 'bukan-tanggal', 10, 2000, 20000, 'Baik', "
                "'2024-01-01T00:00:00')", (garden.id,))
            conn.commit()
        finally:
            conn.close()
        harvests, error = store.list_by_garden(Harvest, garden.id)
        assert harvests is None
        assert error.startswith("Gagal memuat")

    def test_cascade_delete(self, store, garden):
        _maintenance(store, garden)
        _issue(store, garden)
        records.create_expense(store, {
            'garden_id': garden.id, 'date': date(2024, 1, 1), 'category': 'Pupuk',
            'description': 'NPK 50 kg', 'amount': 750000,
        })

        success, _ = records.delete_garden(store, garden.id)
        assert success
        for kind in (Maintenance, Issue, Expense):
            remaining, error = store.list_all(kind)
            assert error is None
            assert remaining == []

    def test_health(self, store, garden):
        healthy, message = store.check_health()
        assert healthy
        assert '1 kebun' in message


# ========================================
# Gardens
# ========================================

class TestGardens:

    def test_name_required(self, store):
        garden, error = records.create_garden(store, {'location': 'Riau'})
        assert garden is None
        assert error == "Nama kebun wajib diisi."

    def test_name_without_letters(self, store):
        _, error = records.create_garden(store, {'name': '###'})
        assert error == "Nama kebun harus mengandung huruf atau angka."

    def test_name_shaped_like_an_id_rejected(self, store):
        garden, error = records.create_garden(store, {'name': '3F2504E0-4F89-41D3-9A0C-0305E82C3301'})
        assert garden is None
        assert error == "Nama kebun tidak boleh berbentuk ID (UUID)."

    def test_duplicate_slug_rejected(self, store, garden):
        duplicate, error = records.create_garden(store, {'name': 'kebun sawit  a'})
        assert duplicate is None
        assert 'Kebun Sawit A' in error

    def test_submitted_slug_ignored(self, store):
        garden, _ = records.create_garden(store, {'name': 'Kebun B', 'slug': 'custom'})
        assert garden.slug == 'kebun-b'

    def test_negative_area_rejected(self, store):
        _, error = records.create_garden(store, {'name': 'Kebun C', 'area_ha': -1})
        assert error == "Luas dan jumlah pohon tidak boleh negatif."

    def test_invalid_status_rejected(self, store):
        _, error = records.create_garden(store, {'name': 'Kebun C', 'status': 'Hilang'})
        assert 'Status kebun tidak valid' in error

    def test_rename_to_existing_slug_rejected(self, store, garden):
        other, _ = records.create_garden(store, {'name': 'Kebun B'})
        _, error = records.update_garden(store, other.id, {'name': 'Kebun Sawit A'})
        assert 'sudah ada' in error

    def test_update_without_rename_keeps_slug(self, store, garden):
        updated, error = records.update_garden(store, garden.id, {'status': 'Perlu Perhatian'})
        assert error is None
        assert updated.slug == garden.slug
        assert updated.status == 'Perlu Perhatian'

    def test_search(self, store, garden):
        records.create_garden(store, {'name': 'Kebun B', 'location': 'Jambi'})
        found, _ = records.search_gardens(store, 'riau')
        assert [g.name for g in found] == ['Kebun Sawit A']
        everything, _ = records.search_gardens(store, '')
        assert len(everything) == 2

    def test_by_status(self, store, garden):
        records.create_garden(store, {'name': 'Kebun B', 'status': 'Bermasalah'})
        found, _ = records.get_gardens_by_status(store, 'Bermasalah')
        assert [g.name for g in found] == ['Kebun B']


# ========================================
# Tasks
# ========================================

class TestTasks:

    def test_create_and_status(self, store, garden):
        task, error = records.create_task(store, {
            'garden_id': garden.id, 'title': 'Panen blok 3', 'category': 'Panen',
            'target_date': date(2024, 2, 1),
        })
        assert error is None
        assert task.status == 'To Do'
        assert task.target_date == date(2024, 2, 1)

        task, error = records.update_task_status(store, task.id, 'Done')
        assert error is None
        assert task.status == 'Done'

    def test_invalid_status(self, store, garden):
        _, error = records.update_task_status(store, 'x', 'Selesai')
        assert 'Status tidak valid' in error

    def test_missing_target_date(self, store, garden):
        _, error = records.create_task(store, {
            'garden_id': garden.id, 'title': 'Panen', 'category': 'Panen',
        })
        assert error == "Tanggal target wajib diisi."


# ========================================
# Harvests
# ========================================

class TestHarvests:

    def test_total_value_computed(self, store, garden):
        harvest, error = records.create_harvest(store, {
            'garden_id': garden.id, 'date': date(2024, 1, 5), 'quantity_kg': 1500,
            'price_per_kg': 2500, 'quality': 'Baik', 'total_value': 1,
        })
        assert error is None
        assert harvest.total_value == 3750000

    def test_update_recomputes_from_current_values(self, store, garden):
        harvest, _ = records.create_harvest(store, {
            'garden_id': garden.id, 'date': '2024-01-05', 'quantity_kg': 1500,
            'price_per_kg': 2500, 'quality': 'Baik',
        })
        updated, error = records.update_harvest(store, harvest.id, {
            'price_per_kg': 3000, 'total_value': 42,
        })
        assert error is None
        assert updated.total_value == 4500000

    def test_stored_total_is_ignored_on_read(self, store, garden):
        harvest, _ = records.create_harvest(store, {
            'garden_id': garden.id, 'date': '2024-01-05', 'quantity_kg': 100,
            'price_per_kg': 2000, 'quality': 'Cukup',
        })
        store.update(Harvest, harvest.id, {'total_value': 1})
        reloaded, _ = store.get_by_id(Harvest, harvest.id)
        assert reloaded.total_value == 200000

    def test_invalid_date(self, store, garden):
        _, error = records.create_harvest(store, {
            'garden_id': garden.id, 'date': '05/01/2024', 'quantity_kg': 100,
            'price_per_kg': 2000, 'quality': 'Baik',
        })
        assert error.startswith("Tanggal tidak valid")

    def test_negative_quantity(self, store, garden):
        _, error = records.create_harvest(store, {
            'garden_id': garden.id, 'date': '2024-01-05', 'quantity_kg': -5,
            'price_per_kg': 2000, 'quality': 'Baik',
        })
        assert error == "Jumlah dan harga tidak boleh negatif."


# ========================================
# Issues
# ========================================

class TestIssues:

    def test_resolve_and_reopen(self, store, garden):
        issue = _issue(store, garden)
        assert issue.status == 'Open'
        assert issue.resolved_date is None

        resolved, error = records.update_issue_status(store, issue.id, 'Resolved',
                                                      today=date(2024, 1, 15))
        assert error is None
        assert resolved.resolved_date == date(2024, 1, 15)

        reopened, error = records.update_issue_status(store, issue.id, 'Open')
        assert error is None
        assert reopened.status == 'Open'
        assert reopened.resolved_date is None

    def test_resolve_defaults_to_today(self, store, garden):
        issue = _issue(store, garden)
        resolved, _ = records.update_issue_status(store, issue.id, 'Resolved')
        assert resolved.resolved_date == date.today()

    def test_edit_without_status_change_keeps_date(self, store, garden):
        issue = _issue(store, garden)
        records.update_issue_status(store, issue.id, 'Resolved', today=date(2024, 1, 15))
        edited, error = records.update_issue(store, issue.id, {
            'status': 'Resolved', 'solution': 'Penyemprotan insektisida',
        }, today=date(2024, 2, 1))
        assert error is None
        assert edited.resolved_date == date(2024, 1, 15)
        assert edited.solution == 'Penyemprotan insektisida'

    def test_invalid_status(self, store, garden):
        issue = _issue(store, garden)
        _, error = records.update_issue_status(store, issue.id, 'Closed')
        assert 'tidak valid' in error


# ========================================
# Maintenances
# ========================================

class TestMaintenances:

    def test_complete_is_one_way(self, store, garden):
        maintenance = _maintenance(store, garden)
        assert maintenance.status == 'Dijadwalkan'

        done, error = records.update_maintenance_status(store, maintenance.id, 'Selesai',
                                                        today=date(2024, 1, 6))
        assert error is None
        assert done.completed_date == date(2024, 1, 6)

        _, error = records.update_maintenance_status(store, maintenance.id, 'Dijadwalkan')
        assert error == "Perawatan yang sudah selesai tidak dapat diubah statusnya."

    def test_overdue_is_system_only(self, store, garden):
        maintenance = _maintenance(store, garden)
        _, error = records.update_maintenance_status(store, maintenance.id, 'Terlambat')
        assert error == "Status Terlambat ditentukan otomatis oleh sistem."
        _, error = records.create_maintenance(store, {
            'garden_id': garden.id, 'maintenance_type': 'Lainnya', 'title': 'X',
            'scheduled_date': date(2024, 1, 5), 'status': 'Terlambat',
        })
        assert error == "Status Terlambat ditentukan otomatis oleh sistem."

    def test_refresh_overdue(self, store, garden):
        past = _maintenance(store, garden, scheduled_date=date(2024, 1, 5))
        future = _maintenance(store, garden, scheduled_date=date(2024, 2, 1))
        done = _maintenance(store, garden, scheduled_date=date(2024, 1, 1), status='Selesai')

        count, error = records.refresh_overdue_maintenances(store, today=date(2024, 1, 15))
        assert error is None
        assert count == 1

        statuses = {m.id: m.status for m in store.list_all(Maintenance)[0]}
        assert statuses == {past.id: 'Terlambat', future.id: 'Dijadwalkan', done.id: 'Selesai'}

        _, error = records.update_maintenance_status(store, past.id, 'Dijadwalkan')
        assert error == "Perubahan status dari Terlambat ke Dijadwalkan tidak diizinkan."

    def test_overdue_can_be_completed(self, store, garden):
        maintenance = _maintenance(store, garden, scheduled_date=date(2024, 1, 5))
        records.refresh_overdue_maintenances(store, today=date(2024, 1, 15))
        overdue, _ = store.get_by_id(Maintenance, maintenance.id)
        assert overdue.status == 'Terlambat'

        done, error = records.update_maintenance_status(store, maintenance.id, 'Selesai',
                                                        today=date(2024, 1, 16))
        assert error is None
        assert done.status == 'Selesai'
        assert done.completed_date == date(2024, 1, 16)

        count, _ = records.refresh_overdue_maintenances(store, today=date(2024, 1, 20))
        assert count == 0

    def test_recurring_needs_interval(self, store, garden):
        _, error = records.create_maintenance(store, {
            'garden_id': garden.id, 'maintenance_type': 'Pemupukan', 'title': 'Bulanan',
            'scheduled_date': date(2024, 1, 5), 'is_recurring': True,
        })
        assert error == "Interval perawatan berulang harus lebih dari 0 hari."

    def test_non_recurring_clears_interval(self, store, garden):
        maintenance = _maintenance(store, garden, is_recurring=False, recurring_interval=30)
        assert maintenance.is_recurring is False
        assert maintenance.recurring_interval is None

    def test_recurring_stored(self, store, garden):
        maintenance = _maintenance(store, garden, is_recurring=True, recurring_interval=30)
        assert maintenance.is_recurring is True
        assert maintenance.recurring_interval == 30


# ========================================
# Documentation and expenses
# ========================================

class TestDocumentation:

    def test_note_drops_file_url(self, store, garden):
        doc, error = records.create_documentation(store, {
            'garden_id': garden.id, 'doc_type': 'catatan', 'title': 'Catatan panen',
            'content': 'TBS bagus', 'file_url': 'http://example.com/x.jpg',
        })
        assert error is None
        assert doc.content == 'TBS bagus'
        assert doc.file_url is None

    def test_photo_drops_content(self, store, garden):
        doc, _ = records.create_documentation(store, {
            'garden_id': garden.id, 'doc_type': 'foto', 'title': 'Blok 3',
            'content': 'ignored', 'file_url': 'http://example.com/x.jpg',
        })
        assert doc.content is None
        found, _ = records.get_documentation_by_type(store, garden.id, 'foto')
        assert [d.id for d in found] == [doc.id]


class TestExpenses:

    def test_create_and_update(self, store, garden):
        expense, error = records.create_expense(store, {
            'garden_id': garden.id, 'date': date(2024, 1, 1), 'category': 'Pupuk',
            'description': 'NPK 50 kg', 'amount': 750000,
        })
        assert error is None
        updated, error = records.update_expense(store, expense.id, {'amount': 800000})
        assert error is None
        assert updated.amount == 800000

    def test_invalid_category(self, store, garden):
        _, error = records.create_expense(store, {
            'garden_id': garden.id, 'date': date(2024, 1, 1), 'category': 'Makan',
            'description': 'Makan siang', 'amount': 50000,
        })
        assert 'Kategori tidak valid' in error
