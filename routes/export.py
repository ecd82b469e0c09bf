"""
routes/export.py - Excel export routes.

Provides:
- GET /export/kebun/<identifier>  - Download the Excel workbook of one garden

Auto-backup is triggered before every export.
"""

from flask import Blueprint, flash, redirect, url_for, send_file

from database import get_store
from identifiers import resolve_garden
from utils.backup import backup_db
from utils.export import generate_garden_excel

export_bp = Blueprint('export', __name__, url_prefix='/export')


@export_bp.route('/kebun/<identifier>')
def export_garden(identifier):
    """Export every record of one garden as Excel."""
    store = get_store()
    garden, error = resolve_garden(store, identifier)
    if error:
        flash(error, 'error')
        return redirect(url_for('gardens.garden_list'))

    # Auto-backup before export
    backup_db('export')

    buffer, result = generate_garden_excel(store, garden)
    if not buffer:
        flash(result or "Tidak ada data untuk diekspor.", 'warning')
        return redirect(url_for('gardens.garden_detail', identifier=garden.slug))

    return send_file(
        buffer,
        as_attachment=True,
        download_name=result,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
