"""
routes/settings.py - Settings and administration routes.

Provides:
- GET  /settings                      - Settings page (database status, maintenance, backups)
- POST /settings/maintenance/refresh  - Mark past scheduled maintenances as Terlambat
- POST /settings/backup/create        - Create a manual backup
- POST /settings/backup/restore       - Restore from backup
- POST /settings/backup/delete        - Delete a backup file
"""

from flask import Blueprint, render_template, request, redirect, url_for, flash

from database import get_store
from records import refresh_overdue_maintenances
from utils.backup import backup_db, list_backups, restore_db, delete_backup

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')


@settings_bp.route('/')
def index():
    """Main settings page."""
    db_healthy, db_message = get_store().check_health()
    return render_template(
        'settings.html',
        backups=list_backups(),
        db_healthy=db_healthy,
        db_message=db_message,
        tab=request.args.get('tab', 'sistem'),
    )


# ========================================
# Maintenance status
# ========================================

@settings_bp.route('/maintenance/refresh', methods=['POST'])
def maintenance_refresh():
    """Mark every scheduled maintenance whose date has passed as Terlambat."""
    count, error = refresh_overdue_maintenances(get_store())
    if error:
        flash(error, 'error')
    else:
        flash(f"{count} perawatan ditandai Terlambat.", 'success')
    return redirect(url_for('settings.index', tab='sistem'))


# ========================================
# Backup Routes
# ========================================

@settings_bp.route('/backup/create', methods=['POST'])
def backup_create():
    """Create a manual backup."""
    filename = backup_db('manual')
    if filename:
        flash(f"Cadangan dibuat: {filename}", 'success')
    else:
        flash("Gagal membuat cadangan.", 'error')

    return redirect(url_for('settings.index', tab='cadangan'))


@settings_bp.route('/backup/restore', methods=['POST'])
def backup_restore():
    """Restore the database from a backup file."""
    filename = request.form.get('filename', '').strip()
    if not filename:
        flash("File cadangan tidak ditentukan.", 'error')
        return redirect(url_for('settings.index', tab='cadangan'))

    # Safety backup before restoring
    backup_db('pre_restore')

    if restore_db(filename):
        flash(f"Database dipulihkan dari {filename}.", 'success')
    else:
        flash("Gagal memulihkan database. Periksa file cadangan.", 'error')

    return redirect(url_for('settings.index', tab='cadangan'))


@settings_bp.route('/backup/delete', methods=['POST'])
def backup_delete():
    """Delete a backup file."""
    filename = request.form.get('filename', '').strip()
    if not filename:
        flash("File cadangan tidak ditentukan.", 'error')
        return redirect(url_for('settings.index', tab='cadangan'))

    if delete_backup(filename):
        flash(f"Cadangan {filename} dihapus.", 'success')
    else:
        flash("Gagal menghapus cadangan.", 'error')

    return redirect(url_for('settings.index', tab='cadangan'))
