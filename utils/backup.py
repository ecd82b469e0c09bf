"""
utils/backup.py - Database backup and restore operations.

Copies the .db file to the backup directory with timestamped filenames.
Backup triggers: before export, before deleting a garden, manual from Settings.
Format: palmtrack_YYYYMMDD_HHMMSS_{reason}.db

Paths come from the app config (DATABASE, BACKUP_DIR) unless passed in.
"""

import logging
import os
import shutil
import sqlite3
from datetime import datetime

from flask import current_app

logger = logging.getLogger(__name__)

PREFIX = 'palmtrack_'


def _paths(db_path=None, backup_dir=None):
    if db_path is None:
        db_path = current_app.config['DATABASE']
    if backup_dir is None:
        backup_dir = current_app.config['BACKUP_DIR']
    return db_path, backup_dir


def _is_backup_name(filename):
    return (
        filename.startswith(PREFIX) and filename.endswith('.db')
        and os.path.basename(filename) == filename
    )


def backup_db(reason='manual', db_path=None, backup_dir=None):
    """
    Copy the current database to the backup directory.

    Args:
        reason: Short tag for the backup trigger (e.g., 'manual', 'export', 'hapus_kebun').

    Returns:
        The filename of the created backup, or None on failure.
    """
    db_path, backup_dir = _paths(db_path, backup_dir)
    os.makedirs(backup_dir, exist_ok=True)

    if not os.path.exists(db_path):
        return None

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    # Sanitize reason string
    safe_reason = reason.replace(' ', '_').replace('/', '_')[:30]
    filename = f'{PREFIX}{timestamp}_{safe_reason}.db'
    dest = os.path.join(backup_dir, filename)

    try:
        # Flush the WAL into the main file so the copy is complete
        conn = sqlite3.connect(db_path)
        try:
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        finally:
            conn.close()
        shutil.copy2(db_path, dest)
    except (OSError, sqlite3.Error) as e:
        logger.error("Backup of %s failed: %s", db_path, e)
        return None

    logger.info("Backup created: %s", filename)
    return filename


def list_backups(backup_dir=None):
    """
    List all backup files in the backup directory.

    Returns:
        List of dicts with keys: filename, timestamp, size_bytes, size_display, reason.
        Sorted by timestamp descending (newest first).
    """
    _, backup_dir = _paths(db_path='', backup_dir=backup_dir)
    os.makedirs(backup_dir, exist_ok=True)

    backups = []
    for f in os.listdir(backup_dir):
        if not _is_backup_name(f):
            continue
        size_bytes = os.stat(os.path.join(backup_dir, f)).st_size

        # Format: palmtrack_YYYYMMDD_HHMMSS_reason.db
        parts = f[len(PREFIX):-len('.db')].split('_')
        timestamp_str = ''
        reason = ''
        if len(parts) >= 2:
            date_part, time_part = parts[0], parts[1]
            timestamp_str = (
                f'{date_part[:4]}-{date_part[4:6]}-{date_part[6:8]} '
                f'{time_part[:2]}:{time_part[2:4]}:{time_part[4:6]}'
            )
            reason = '_'.join(parts[2:])

        if size_bytes < 1024:
            size_display = f'{size_bytes} B'
        elif size_bytes < 1024 * 1024:
            size_display = f'{size_bytes / 1024:.1f} KB'
        else:
            size_display = f'{size_bytes / (1024 * 1024):.1f} MB'

        backups.append({
            'filename': f,
            'timestamp': timestamp_str,
            'size_bytes': size_bytes,
            'size_display': size_display,
            'reason': reason,
        })

    backups.sort(key=lambda b: b['filename'], reverse=True)
    return backups


def restore_db(filename, db_path=None, backup_dir=None):
    """
    Replace the current database with a backup file.

    DANGEROUS: This overwrites the current database entirely.

    Returns:
        True on success, False on failure.
    """
    db_path, backup_dir = _paths(db_path, backup_dir)
    if not _is_backup_name(filename):
        return False

    backup_path = os.path.join(backup_dir, filename)
    if not os.path.exists(backup_path):
        return False

    try:
        shutil.copy2(backup_path, db_path)
        # Stale WAL/SHM files would be replayed over the restored copy
        for suffix in ('-wal', '-shm'):
            if os.path.exists(db_path + suffix):
                os.remove(db_path + suffix)
    except OSError as e:
        logger.error("Restore of %s failed: %s", filename, e)
        return False

    logger.info("Database restored from %s", filename)
    return True


def delete_backup(filename, backup_dir=None):
    """Delete one backup file. Returns True on success."""
    _, backup_dir = _paths(db_path='', backup_dir=backup_dir)
    if not _is_backup_name(filename):
        return False
    path = os.path.join(backup_dir, filename)
    if not os.path.exists(path):
        return False
    try:
        os.remove(path)
    except OSError as e:
        logger.error("Could not delete backup %s: %s", filename, e)
        return False
    return True
