"""
routes/gardens.py - Garden list, garden detail and garden CRUD routes.

Provides:
- GET  /kebun                          - Garden list (?q= search, ?status= filter)
- POST /kebun/add                      - Create a garden
- GET  /kebun/<identifier>             - Garden detail with tabs (?tab=)
- POST /kebun/<identifier>/edit        - Edit a garden
- POST /kebun/<identifier>/delete      - Delete a garden and all its records
- GET  /api/kebun/<identifier>         - Garden as JSON

<identifier> is either the garden slug or its canonical id.
"""

from dataclasses import asdict

from flask import Blueprint, render_template, request, redirect, url_for, flash, jsonify

from calculations import (
    garden_overview, garden_quick_stats, harvest_summary, expense_summary
)
from database import get_store
from identifiers import resolve_garden
from models import (
    Task, Harvest, Issue, Maintenance, Documentation, Expense,
    GARDEN_STATUSES, TASK_CATEGORIES, TASK_PRIORITIES, TASK_STATUSES,
    HARVEST_QUALITIES, ISSUE_SEVERITIES, ISSUE_STATUSES, MAINTENANCE_TYPES,
    MAINTENANCE_STATUSES, DOC_TYPES, EXPENSE_CATEGORIES
)
from records import create_garden, update_garden, delete_garden, search_gardens
from utils.backup import backup_db
from utils.validators import FormError, text, number, drop_missing

gardens_bp = Blueprint('gardens', __name__)

TABS = ('informasi', 'task', 'panen', 'perawatan', 'masalah', 'dokumentasi', 'pengeluaran')


def garden_form_values(form):
    """Read the garden form. Raises FormError on malformed numbers."""
    return {
        'name': text(form, 'name'),
        'location': text(form, 'location', ''),
        'full_location': text(form, 'full_location', ''),
        'area_ha': number(form, 'area_ha', 'Luas'),
        'tree_count': number(form, 'tree_count', 'Jumlah pohon', cast=int),
        'planting_year': number(form, 'planting_year', 'Tahun tanam', cast=int),
        'variety': text(form, 'variety', ''),
        'status': text(form, 'status'),
    }


@gardens_bp.route('/kebun')
def garden_list():
    """Garden list with search and status filter."""
    store = get_store()
    query = request.args.get('q', '').strip()
    status = request.args.get('status', '').strip()

    gardens, error = search_gardens(store, query)
    if error:
        flash(error, 'error')
        gardens = []
    if status:
        gardens = [g for g in gardens if g.status == status]

    return render_template(
        'gardens.html',
        gardens=gardens,
        overview=garden_overview(gardens),
        query=query,
        selected_status=status,
        statuses=GARDEN_STATUSES,
    )


@gardens_bp.route('/kebun/add', methods=['POST'])
def garden_add():
    """Create a new garden."""
    try:
        values = drop_missing(garden_form_values(request.form))
    except FormError as e:
        flash(str(e), 'error')
        return redirect(url_for('gardens.garden_list'))

    garden, error = create_garden(get_store(), values)
    if error:
        flash(error, 'error')
        return redirect(url_for('gardens.garden_list'))

    flash(f"Kebun '{garden.name}' berhasil ditambahkan.", 'success')
    return redirect(url_for('gardens.garden_detail', identifier=garden.slug))


@gardens_bp.route('/kebun/<identifier>')
def garden_detail(identifier):
    """Garden detail page with one tab per record kind."""
    store = get_store()
    garden, error = resolve_garden(store, identifier)
    if error:
        flash(error, 'error')
        return redirect(url_for('gardens.garden_list'))

    tab = request.args.get('tab', 'informasi')
    if tab not in TABS:
        tab = 'informasi'

    data = {}
    for key, kind in (('tasks', Task), ('harvests', Harvest), ('issues', Issue),
                      ('maintenances', Maintenance), ('documentation', Documentation),
                      ('expenses', Expense)):
        records, load_error = store.list_by_garden(kind, garden.id)
        if load_error:
            flash(load_error, 'warning')
            records = []
        data[key] = records

    return render_template(
        'garden_detail.html',
        garden=garden,
        tab=tab,
        tabs=TABS,
        quick_stats=garden_quick_stats(garden, data['maintenances'], data['issues']),
        harvest_stats=harvest_summary(data['harvests']),
        expense_stats=expense_summary(data['expenses']),
        statuses=GARDEN_STATUSES,
        choices={
            'task_categories': TASK_CATEGORIES,
            'task_priorities': TASK_PRIORITIES,
            'task_statuses': TASK_STATUSES,
            'harvest_qualities': HARVEST_QUALITIES,
            'issue_severities': ISSUE_SEVERITIES,
            'issue_statuses': ISSUE_STATUSES,
            'maintenance_types': MAINTENANCE_TYPES,
            'maintenance_statuses': MAINTENANCE_STATUSES,
            'doc_types': DOC_TYPES,
            'expense_categories': EXPENSE_CATEGORIES,
        },
        **data,
    )


@gardens_bp.route('/kebun/<identifier>/edit', methods=['POST'])
def garden_edit(identifier):
    """Edit an existing garden. The slug follows the new name."""
    store = get_store()
    garden, error = resolve_garden(store, identifier)
    if error:
        flash(error, 'error')
        return redirect(url_for('gardens.garden_list'))

    try:
        values = drop_missing(garden_form_values(request.form))
    except FormError as e:
        flash(str(e), 'error')
        return redirect(url_for('gardens.garden_detail', identifier=garden.slug))

    updated, error = update_garden(store, garden.id, values)
    if error:
        flash(error, 'error')
        return redirect(url_for('gardens.garden_detail', identifier=garden.slug))

    flash(f"Kebun '{updated.name}' berhasil diperbarui.", 'success')
    return redirect(url_for('gardens.garden_detail', identifier=updated.slug))


@gardens_bp.route('/kebun/<identifier>/delete', methods=['POST'])
def garden_delete(identifier):
    """Delete a garden. A backup is taken first; deletion cascades to all records."""
    store = get_store()
    garden, error = resolve_garden(store, identifier)
    if error:
        flash(error, 'error')
        return redirect(url_for('gardens.garden_list'))

    backup_db('hapus_kebun')

    success, error = delete_garden(store, garden.id)
    if success:
        flash(f"Kebun '{garden.name}' berhasil dihapus.", 'success')
    else:
        flash(error or "Gagal menghapus kebun.", 'error')
    return redirect(url_for('gardens.garden_list'))


@gardens_bp.route('/api/kebun/<identifier>')
def api_garden(identifier):
    """JSON API - one garden, addressed by slug or canonical id."""
    garden, error = resolve_garden(get_store(), identifier)
    if error:
        return jsonify({'error': error}), 404
    return jsonify(asdict(garden))
