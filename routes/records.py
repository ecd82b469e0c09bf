"""
routes/records.py - Create/edit/delete routes for the records attached to a garden.

Provides, for <section> in task, panen, perawatan, masalah, dokumentasi, pengeluaran:
- POST /kebun/<identifier>/<section>/add                - Add a record
- POST /kebun/<identifier>/<section>/<record_id>/edit   - Edit a record
- POST /kebun/<identifier>/<section>/<record_id>/delete - Delete a record

Quick actions:
- POST /kebun/<identifier>/task/<record_id>/status       - Task status (To Do / In Progress / Done)
- POST /kebun/<identifier>/masalah/<record_id>/status    - Issue Open / Resolved
- POST /kebun/<identifier>/perawatan/<record_id>/status  - Maintenance status

Every route redirects back to the matching tab of the garden detail page.
AJAX callers (X-Requested-With: XMLHttpRequest) get JSON instead.
"""

from dataclasses import asdict

from flask import Blueprint, request, redirect, url_for, flash, jsonify, abort

from database import get_store
from identifiers import resolve_garden
from models import Task, Harvest, Issue, Maintenance, Documentation, Expense, format_date
import records
from utils.validators import FormError, text, number, iso_date, checkbox, drop_missing

records_bp = Blueprint('records', __name__, url_prefix='/kebun/<identifier>')


# ========================================
# Form readers
# ========================================

def _task_form(form):
    return {
        'title': text(form, 'title'),
        'description': text(form, 'description'),
        'category': text(form, 'category'),
        'priority': text(form, 'priority'),
        'status': text(form, 'status'),
        'target_date': iso_date(form, 'target_date', 'Tanggal target'),
        'assigned_to': text(form, 'assigned_to'),
    }


def _harvest_form(form):
    # total_value is never read from the form
    return {
        'date': iso_date(form, 'date', 'Tanggal'),
        'quantity_kg': number(form, 'quantity_kg', 'Jumlah (kg)'),
        'price_per_kg': number(form, 'price_per_kg', 'Harga per kg'),
        'quality': text(form, 'quality'),
        'notes': text(form, 'notes'),
    }


def _issue_form(form):
    return {
        'title': text(form, 'title'),
        'description': text(form, 'description', ''),
        'affected_area': text(form, 'affected_area', ''),
        'severity': text(form, 'severity'),
        'status': text(form, 'status'),
        'solution': text(form, 'solution'),
        'report_date': iso_date(form, 'report_date', 'Tanggal lapor'),
    }


def _maintenance_form(form):
    return {
        'maintenance_type': text(form, 'maintenance_type'),
        'title': text(form, 'title'),
        'scheduled_date': iso_date(form, 'scheduled_date', 'Tanggal dijadwalkan'),
        'status': text(form, 'status'),
        'detail': text(form, 'detail'),
        'responsible': text(form, 'responsible'),
        'is_recurring': checkbox(form, 'is_recurring'),
        'recurring_interval': number(form, 'recurring_interval', 'Interval', cast=int),
    }


def _documentation_form(form):
    return {
        'doc_type': text(form, 'doc_type'),
        'title': text(form, 'title'),
        'description': text(form, 'description'),
        'file_url': text(form, 'file_url'),
        'content': text(form, 'content'),
        'category': text(form, 'category'),
    }


def _expense_form(form):
    return {
        'date': iso_date(form, 'date', 'Tanggal'),
        'category': text(form, 'category'),
        'description': text(form, 'description'),
        'amount': number(form, 'amount', 'Jumlah'),
        'notes': text(form, 'notes'),
    }


# section -> (kind, form reader, create, update, delete, label)
SECTIONS = {
    'task': (Task, _task_form, records.create_task, records.update_task,
             records.delete_task, 'Task'),
    'panen': (Harvest, _harvest_form, records.create_harvest, records.update_harvest,
              records.delete_harvest, 'Data panen'),
    'masalah': (Issue, _issue_form, records.create_issue, records.update_issue,
                records.delete_issue, 'Masalah'),
    'perawatan': (Maintenance, _maintenance_form, records.create_maintenance,
                  records.update_maintenance, records.delete_maintenance, 'Perawatan'),
    'dokumentasi': (Documentation, _documentation_form, records.create_documentation,
                    records.update_documentation, records.delete_documentation, 'Dokumentasi'),
    'pengeluaran': (Expense, _expense_form, records.create_expense, records.update_expense,
                    records.delete_expense, 'Pengeluaran'),
}

# Optional text columns that an edit may clear
CLEARABLE = ('description', 'assigned_to', 'notes', 'solution', 'detail',
             'responsible', 'file_url', 'content', 'recurring_interval')


# ========================================
# Helpers
# ========================================

def _wants_json():
    return request.headers.get('X-Requested-With') == 'XMLHttpRequest'


def _record_json(record):
    payload = asdict(record)
    for key in record.DATE_FIELDS:
        payload[key] = format_date(payload[key])
    return payload


def _back(garden, section):
    return redirect(url_for('gardens.garden_detail', identifier=garden.slug, tab=section))


def _respond(garden, section, record=None, error=None, message=None):
    """Flash-and-redirect for forms, JSON for AJAX."""
    if _wants_json():
        if error:
            return jsonify({'success': False, 'error': error}), 400
        body = {'success': True, 'message': message}
        if record is not None:
            body['record'] = _record_json(record)
        return jsonify(body)
    if error:
        flash(error, 'error')
    elif message:
        flash(message, 'success')
    return _back(garden, section)


def _load_garden(identifier):
    garden, error = resolve_garden(get_store(), identifier)
    if error:
        if _wants_json():
            abort(404, description=error)
        flash(error, 'error')
    return garden


def _load_owned(garden, kind, record_id):
    """Load a record and check it belongs to the garden in the URL."""
    record, error = get_store().get_by_id(kind, record_id)
    if error:
        return None, error
    if record.garden_id != garden.id:
        return None, f"{kind.LABEL} tidak ditemukan."
    return record, None


def _section(section):
    if section not in SECTIONS:
        abort(404)
    return SECTIONS[section]


# ========================================
# CRUD routes
# ========================================

@records_bp.route('/<section>/add', methods=['POST'])
def record_add(identifier, section):
    """Add a record to a garden."""
    kind, read_form, create, _, _, label = _section(section)
    garden = _load_garden(identifier)
    if garden is None:
        return redirect(url_for('gardens.garden_list'))

    try:
        values = drop_missing(read_form(request.form))
    except FormError as e:
        return _respond(garden, section, error=str(e))
    values['garden_id'] = garden.id

    record, error = create(get_store(), values)
    return _respond(garden, section, record, error, f"{label} berhasil ditambahkan.")


@records_bp.route('/<section>/<record_id>/edit', methods=['POST'])
def record_edit(identifier, section, record_id):
    """Edit a record. The owning garden cannot be changed."""
    kind, read_form, _, update, _, label = _section(section)
    garden = _load_garden(identifier)
    if garden is None:
        return redirect(url_for('gardens.garden_list'))

    _, error = _load_owned(garden, kind, record_id)
    if error:
        return _respond(garden, section, error=error)

    try:
        values = drop_missing(read_form(request.form), keep=CLEARABLE)
    except FormError as e:
        return _respond(garden, section, error=str(e))
    values.pop('garden_id', None)

    record, error = update(get_store(), record_id, values)
    return _respond(garden, section, record, error, f"{label} berhasil diperbarui.")


@records_bp.route('/<section>/<record_id>/delete', methods=['POST'])
def record_delete(identifier, section, record_id):
    """Delete a record. Deletion is immediate."""
    kind, _, _, _, delete, label = _section(section)
    garden = _load_garden(identifier)
    if garden is None:
        return redirect(url_for('gardens.garden_list'))

    _, error = _load_owned(garden, kind, record_id)
    if error:
        return _respond(garden, section, error=error)

    success, error = delete(get_store(), record_id)
    if not success:
        return _respond(garden, section, error=error or f"Gagal menghapus {label.lower()}.")
    return _respond(garden, section, message=f"{label} berhasil dihapus.")


# ========================================
# Status quick actions
# ========================================

STATUS_ACTIONS = {
    'task': records.update_task_status,
    'masalah': records.update_issue_status,
    'perawatan': records.update_maintenance_status,
}


@records_bp.route('/<section>/<record_id>/status', methods=['POST'])
def record_status(identifier, section, record_id):
    """Change the status of a task, issue or maintenance."""
    if section not in STATUS_ACTIONS:
        abort(404)
    kind = SECTIONS[section][0]
    garden = _load_garden(identifier)
    if garden is None:
        return redirect(url_for('gardens.garden_list'))

    _, error = _load_owned(garden, kind, record_id)
    if error:
        return _respond(garden, section, error=error)

    status = text(request.form, 'status')
    if not status:
        return _respond(garden, section, error="Status tidak ditentukan.")

    record, error = STATUS_ACTIONS[section](get_store(), record_id, status)
    return _respond(garden, section, record, error, f"Status diubah menjadi {status}.")
