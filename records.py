"""
records.py - Entity-level write rules on top of the Store.

Provides create/update/delete for every record kind plus the status quick
actions. Everything returns (value, error_message) tuples; validation
failures are reported before the store is touched.

Rules enforced here:
- Garden slugs are derived from the name and unique among gardens
- Harvest total_value is recomputed on every write, never taken from input
- Issue -> Resolved stamps resolved_date, -> Open clears it
- Maintenance -> Selesai stamps completed_date and is terminal;
  Terlambat is only set by refresh_overdue_maintenances()
"""

import logging
from datetime import date
from typing import Optional

from calculations import compute_total_value
from identifiers import generate_slug, is_canonical_id
from models import (
    Garden, Task, Harvest, Issue, Maintenance, Documentation, Expense,
    GARDEN_STATUSES, TASK_CATEGORIES, TASK_PRIORITIES, TASK_STATUSES,
    HARVEST_QUALITIES, ISSUE_SEVERITIES, ISSUE_STATUSES, ISSUE_STATUS_OPEN,
    ISSUE_STATUS_RESOLVED, MAINTENANCE_TYPES, MAINTENANCE_STATUSES,
    MAINTENANCE_STATUS_SCHEDULED, MAINTENANCE_STATUS_DONE, MAINTENANCE_STATUS_OVERDUE,
    DOC_TYPES, DOC_TYPE_NOTE, EXPENSE_CATEGORIES, format_date, parse_date
)

logger = logging.getLogger(__name__)

# Status changes a user may request; Selesai has no way out.
MAINTENANCE_TRANSITIONS = {
    MAINTENANCE_STATUS_SCHEDULED: {MAINTENANCE_STATUS_DONE},
    MAINTENANCE_STATUS_OVERDUE: {MAINTENANCE_STATUS_DONE},
    MAINTENANCE_STATUS_DONE: set(),
}


def _today(today: Optional[date] = None) -> str:
    return format_date(today or date.today())


def _check_choice(value, choices, label):
    if value not in choices:
        return f"{label} tidak valid: {value}"
    return None


def _check_required(values, required):
    for key, label in required:
        value = values.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            return f"{label} wajib diisi."
    return None


def _normalize_dates(kind, values):
    values = dict(values)
    for name in kind.DATE_FIELDS:
        if name in values:
            try:
                values[name] = format_date(parse_date(values[name]))
            except ValueError:
                raise ValueError(f"Tanggal tidak valid: {values[name]}")
    return values


def _validate(kind, values, partial=False):
    """Run the per-kind checks. Returns an error message or None."""
    validators = {
        Garden: _validate_garden,
        Task: _validate_task,
        Harvest: _validate_harvest,
        Issue: _validate_issue,
        Maintenance: _validate_maintenance,
        Documentation: _validate_documentation,
        Expense: _validate_expense,
    }
    return validators[kind](values, partial)


def _validate_garden(values, partial):
    if not partial:
        error = _check_required(values, [('name', 'Nama kebun')])
        if error:
            return error
    for key in ('area_ha', 'tree_count'):
        if key in values and values[key] is not None and float(values[key]) < 0:
            return "Luas dan jumlah pohon tidak boleh negatif."
    if 'status' in values:
        return _check_choice(values['status'], GARDEN_STATUSES, 'Status kebun')
    return None


def _validate_task(values, partial):
    if not partial:
        error = _check_required(values, [
            ('garden_id', 'Kebun'), ('title', 'Judul'), ('target_date', 'Tanggal target')
        ])
        if error:
            return error
    for key, choices, label in (('category', TASK_CATEGORIES, 'Kategori'),
                                ('priority', TASK_PRIORITIES, 'Prioritas'),
                                ('status', TASK_STATUSES, 'Status')):
        if key in values:
            error = _check_choice(values[key], choices, label)
            if error:
                return error
    return None


def _validate_harvest(values, partial):
    if not partial:
        error = _check_required(values, [
            ('garden_id', 'Kebun'), ('date', 'Tanggal'),
            ('quantity_kg', 'Jumlah (kg)'), ('price_per_kg', 'Harga per kg')
        ])
        if error:
            return error
    for key in ('quantity_kg', 'price_per_kg'):
        if key in values and float(values[key]) < 0:
            return "Jumlah dan harga tidak boleh negatif."
    if 'quality' in values:
        return _check_choice(values['quality'], HARVEST_QUALITIES, 'Kualitas')
    return None


def _validate_issue(values, partial):
    if not partial:
        error = _check_required(values, [
            ('garden_id', 'Kebun'), ('title', 'Judul'), ('report_date', 'Tanggal lapor')
        ])
        if error:
            return error
    if 'severity' in values:
        error = _check_choice(values['severity'], ISSUE_SEVERITIES, 'Tingkat keparahan')
        if error:
            return error
    if 'status' in values:
        return _check_choice(values['status'], ISSUE_STATUSES, 'Status')
    return None


def _validate_maintenance(values, partial):
    if not partial:
        error = _check_required(values, [
            ('garden_id', 'Kebun'), ('title', 'Judul'), ('scheduled_date', 'Tanggal dijadwalkan')
        ])
        if error:
            return error
    if 'maintenance_type' in values:
        error = _check_choice(values['maintenance_type'], MAINTENANCE_TYPES, 'Jenis perawatan')
        if error:
            return error
    if 'status' in values:
        error = _check_choice(values['status'], MAINTENANCE_STATUSES, 'Status')
        if error:
            return error
    if values.get('is_recurring'):
        interval = values.get('recurring_interval')
        if not interval or int(interval) <= 0:
            return "Interval perawatan berulang harus lebih dari 0 hari."
    return None


def _validate_documentation(values, partial):
    if not partial:
        error = _check_required(values, [('garden_id', 'Kebun'), ('title', 'Judul')])
        if error:
            return error
    if 'doc_type' in values:
        return _check_choice(values['doc_type'], DOC_TYPES, 'Tipe dokumentasi')
    return None


def _validate_expense(values, partial):
    if not partial:
        error = _check_required(values, [
            ('garden_id', 'Kebun'), ('date', 'Tanggal'),
            ('description', 'Deskripsi'), ('amount', 'Jumlah')
        ])
        if error:
            return error
    if 'amount' in values and float(values['amount']) < 0:
        return "Jumlah pengeluaran tidak boleh negatif."
    if 'category' in values:
        return _check_choice(values['category'], EXPENSE_CATEGORIES, 'Kategori')
    return None


def _create(store, kind, values):
    try:
        values = _normalize_dates(kind, values)
        error = _validate(kind, values)
    except (TypeError, ValueError) as e:
        return None, str(e)
    if error:
        return None, error
    return store.insert(kind, values)


def _update(store, kind, record_id, values):
    try:
        values = _normalize_dates(kind, values)
        error = _validate(kind, values, partial=True)
    except (TypeError, ValueError) as e:
        return None, str(e)
    if error:
        return None, error
    return store.update(kind, record_id, values)


# ========================================
# Gardens
# ========================================

def _check_slug_available(store, slug, exclude_id=None):
    if not slug:
        return "Nama kebun harus mengandung huruf atau angka."
    if is_canonical_id(slug):
        return "Nama kebun tidak boleh berbentuk ID (UUID)."
    existing, error = store.find_by(Garden, 'slug', slug)
    if error:
        return error
    if existing and existing.id != exclude_id:
        return f"Kebun dengan nama serupa sudah ada ({existing.name})."
    return None


def create_garden(store, values):
    """
    Create a garden. The slug is generated from the name.

    Returns:
        Tuple of (garden, error_message)
    """
    values = {k: v for k, v in values.items() if k not in ('id', 'slug')}
    values['slug'] = generate_slug(values.get('name', ''))
    try:
        error = _validate_garden(values, partial=False)
    except (TypeError, ValueError):
        return None, "Luas dan jumlah pohon harus berupa angka."
    if error:
        return None, error
    error = _check_slug_available(store, values['slug'])
    if error:
        return None, error
    return store.insert(Garden, values)


def update_garden(store, garden_id, values):
    """
    Update a garden. The slug follows the name only when the name changed.

    Returns:
        Tuple of (garden, error_message)
    """
    current, error = store.get_by_id(Garden, garden_id)
    if error:
        return None, error

    values = {k: v for k, v in values.items() if k not in ('id', 'slug')}
    try:
        error = _validate_garden(values, partial=True)
    except (TypeError, ValueError):
        return None, "Luas dan jumlah pohon harus berupa angka."
    if error:
        return None, error

    if 'name' in values:
        if not (values['name'] or '').strip():
            return None, "Nama kebun wajib diisi."
        if values['name'] != current.name:
            values['slug'] = generate_slug(values['name'])
            error = _check_slug_available(store, values['slug'], exclude_id=garden_id)
            if error:
                return None, error
    return store.update(Garden, garden_id, values)


def delete_garden(store, garden_id):
    """Delete a garden and, by cascade, every record attached to it."""
    return store.delete(Garden, garden_id)


def search_gardens(store, query):
    """Case-insensitive substring match on name or location."""
    gardens, error = store.list_all(Garden)
    if error:
        return None, error
    query = (query or '').strip().lower()
    if not query:
        return gardens, None
    return [
        g for g in gardens
        if query in (g.name or '').lower() or query in (g.location or '').lower()
    ], None


def get_gardens_by_status(store, status):
    gardens, error = store.list_all(Garden)
    if error:
        return None, error
    return [g for g in gardens if g.status == status], None


# ========================================
# Tasks
# ========================================

def create_task(store, values):
    return _create(store, Task, values)


def update_task(store, task_id, values):
    return _update(store, Task, task_id, values)


def update_task_status(store, task_id, status):
    error = _check_choice(status, TASK_STATUSES, 'Status')
    if error:
        return None, error
    return store.update(Task, task_id, {'status': status})


def delete_task(store, task_id):
    return store.delete(Task, task_id)


# ========================================
# Harvests
# ========================================

def _with_total(values, current=None):
    values = {k: v for k, v in values.items() if k != 'total_value'}
    quantity = values.get('quantity_kg', current.quantity_kg if current else 0)
    price = values.get('price_per_kg', current.price_per_kg if current else 0)
    values['total_value'] = compute_total_value(quantity, price)
    return values


def create_harvest(store, values):
    """Create a harvest; total_value is always quantity_kg × price_per_kg."""
    try:
        values = _with_total(values)
    except (TypeError, ValueError):
        return None, "Jumlah dan harga harus berupa angka."
    return _create(store, Harvest, values)


def update_harvest(store, harvest_id, values):
    current, error = store.get_by_id(Harvest, harvest_id)
    if error:
        return None, error
    try:
        values = _with_total(values, current)
    except (TypeError, ValueError):
        return None, "Jumlah dan harga harus berupa angka."
    return _update(store, Harvest, harvest_id, values)


def delete_harvest(store, harvest_id):
    return store.delete(Harvest, harvest_id)


# ========================================
# Issues
# ========================================

def _issue_status_fields(status, today=None):
    if status == ISSUE_STATUS_RESOLVED:
        return {'status': status, 'resolved_date': _today(today)}
    return {'status': status, 'resolved_date': None}


def create_issue(store, values, today=None):
    values = {k: v for k, v in values.items() if k != 'resolved_date'}
    values.update(_issue_status_fields(values.get('status', ISSUE_STATUS_OPEN), today))
    return _create(store, Issue, values)


def update_issue(store, issue_id, values, today=None):
    """Full edit. A status change applies the same dates as update_issue_status()."""
    current, error = store.get_by_id(Issue, issue_id)
    if error:
        return None, error
    values = {k: v for k, v in values.items() if k != 'resolved_date'}
    if 'status' in values and values['status'] != current.status:
        values.update(_issue_status_fields(values['status'], today))
    return _update(store, Issue, issue_id, values)


def update_issue_status(store, issue_id, status, today=None):
    """
    Move an issue between Open and Resolved.

    Resolved stamps resolved_date with today; reopening clears it.

    Returns:
        Tuple of (issue, error_message)
    """
    error = _check_choice(status, ISSUE_STATUSES, 'Status')
    if error:
        return None, error
    return store.update(Issue, issue_id, _issue_status_fields(status, today))


def delete_issue(store, issue_id):
    return store.delete(Issue, issue_id)


# ========================================
# Maintenances
# ========================================

def _recurrence_fields(values):
    if 'is_recurring' not in values:
        return values
    values = dict(values)
    values['is_recurring'] = 1 if values['is_recurring'] else 0
    if not values['is_recurring']:
        values['recurring_interval'] = None
    return values


def create_maintenance(store, values, today=None):
    """
    Schedule a maintenance. New entries start as Dijadwalkan unless created
    already done. Recurring entries are stored as-is; no follow-up instance
    is generated.
    """
    values = {k: v for k, v in values.items() if k != 'completed_date'}
    status = values.setdefault('status', MAINTENANCE_STATUS_SCHEDULED)
    if status == MAINTENANCE_STATUS_OVERDUE:
        return None, "Status Terlambat ditentukan otomatis oleh sistem."
    if status == MAINTENANCE_STATUS_DONE:
        values['completed_date'] = _today(today)
    return _create(store, Maintenance, _recurrence_fields(values))


def _check_maintenance_transition(current_status, new_status):
    if new_status == current_status:
        return None
    if new_status == MAINTENANCE_STATUS_OVERDUE:
        return "Status Terlambat ditentukan otomatis oleh sistem."
    if new_status not in MAINTENANCE_TRANSITIONS.get(current_status, set()):
        if current_status == MAINTENANCE_STATUS_DONE:
            return "Perawatan yang sudah selesai tidak dapat diubah statusnya."
        return f"Perubahan status dari {current_status} ke {new_status} tidak diizinkan."
    return None


def update_maintenance(store, maintenance_id, values, today=None):
    current, error = store.get_by_id(Maintenance, maintenance_id)
    if error:
        return None, error
    values = {k: v for k, v in values.items() if k != 'completed_date'}
    if 'status' in values:
        error = _check_choice(values['status'], MAINTENANCE_STATUSES, 'Status')
        if error:
            return None, error
        error = _check_maintenance_transition(current.status, values['status'])
        if error:
            return None, error
        if values['status'] == MAINTENANCE_STATUS_DONE and current.status != MAINTENANCE_STATUS_DONE:
            values['completed_date'] = _today(today)
    return _update(store, Maintenance, maintenance_id, _recurrence_fields(values))


def update_maintenance_status(store, maintenance_id, status, today=None):
    """
    Quick action for a maintenance status change.

    Marking Selesai stamps completed_date with today and is one-way.

    Returns:
        Tuple of (maintenance, error_message)
    """
    error = _check_choice(status, MAINTENANCE_STATUSES, 'Status')
    if error:
        return None, error
    current, error = store.get_by_id(Maintenance, maintenance_id)
    if error:
        return None, error
    error = _check_maintenance_transition(current.status, status)
    if error:
        return None, error
    if status == current.status:
        return current, None

    changes = {'status': status}
    if status == MAINTENANCE_STATUS_DONE:
        changes['completed_date'] = _today(today)
    return store.update(Maintenance, maintenance_id, changes)


def refresh_overdue_maintenances(store, today=None):
    """
    Mark every Dijadwalkan maintenance scheduled before today as Terlambat.

    Returns:
        Tuple of (number_updated, error_message)
    """
    today = today or date.today()
    maintenances, error = store.list_all(Maintenance)
    if error:
        return 0, error

    updated = 0
    for m in maintenances:
        if m.status == MAINTENANCE_STATUS_SCHEDULED and m.scheduled_date and m.scheduled_date < today:
            _, error = store.update(Maintenance, m.id, {'status': MAINTENANCE_STATUS_OVERDUE})
            if error:
                return updated, error
            updated += 1
    if updated:
        logger.info("Marked %d maintenances as overdue", updated)
    return updated, None


def delete_maintenance(store, maintenance_id):
    return store.delete(Maintenance, maintenance_id)


# ========================================
# Documentation
# ========================================

def _documentation_fields(values):
    """Notes carry text content, photos and documents carry a file reference."""
    values = dict(values)
    doc_type = values.get('doc_type')
    if doc_type == DOC_TYPE_NOTE:
        values['file_url'] = None
    elif doc_type:
        values['content'] = None
    return values


def create_documentation(store, values):
    return _create(store, Documentation, _documentation_fields(values))


def update_documentation(store, doc_id, values):
    return _update(store, Documentation, doc_id, _documentation_fields(values))


def delete_documentation(store, doc_id):
    return store.delete(Documentation, doc_id)


def get_documentation_by_type(store, garden_id, doc_type):
    docs, error = store.list_by_garden(Documentation, garden_id)
    if error:
        return None, error
    return [d for d in docs if d.doc_type == doc_type], None


# ========================================
# Expenses
# ========================================

def create_expense(store, values):
    return _create(store, Expense, values)


def update_expense(store, expense_id, values):
    return _update(store, Expense, expense_id, values)


def delete_expense(store, expense_id):
    return store.delete(Expense, expense_id)
