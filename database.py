"""
database.py - SQLite schema creation and the record store.

The Store is bound to one database file and handed to whatever needs
persistence (routes get it from the Flask app via get_store()). Every
operation opens its own connection, runs a single attempt and returns a
(value, error_message) tuple. Uses WAL mode for concurrent read performance.
"""

import logging
import os
import sqlite3
import uuid
from datetime import datetime

from flask import current_app

from models import ENTITY_KINDS, Garden

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'palmtrack.db')

# Kinds whose table carries an updated_at column
_TIMESTAMPED = {kind for kind in ENTITY_KINDS if 'updated_at' in kind.columns()}


def get_db_path() -> str:
    """Get the database path from environment or default."""
    return os.environ.get('PALMTRACK_DB_PATH', DEFAULT_DB_PATH)


def _now() -> str:
    return datetime.now().isoformat(timespec='seconds')


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS gardens (
        id TEXT PRIMARY KEY,
        slug TEXT UNIQUE NOT NULL,
        name TEXT NOT NULL,
        location TEXT NOT NULL DEFAULT '',
        full_location TEXT NOT NULL DEFAULT '',
        area_ha REAL NOT NULL DEFAULT 0,
        tree_count INTEGER NOT NULL DEFAULT 0,
        planting_year INTEGER NOT NULL DEFAULT 0,
        variety TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'Baik'
            CHECK (status IN ('Baik','Perlu Perhatian','Bermasalah')),
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        garden_id TEXT NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        category TEXT NOT NULL
            CHECK (category IN ('Pemupukan','Panen','Perawatan','Penyemprotan','Lainnya')),
        priority TEXT NOT NULL DEFAULT 'Normal' CHECK (priority IN ('High','Normal','Low')),
        status TEXT NOT NULL DEFAULT 'To Do' CHECK (status IN ('To Do','In Progress','Done')),
        target_date DATE NOT NULL,
        assigned_to TEXT,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS harvests (
        id TEXT PRIMARY KEY,
        garden_id TEXT NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
        date DATE NOT NULL,
        quantity_kg REAL NOT NULL,
        price_per_kg REAL NOT NULL,
        total_value REAL NOT NULL,
        quality TEXT NOT NULL CHECK (quality IN ('Baik Sekali','Baik','Cukup','Kurang')),
        notes TEXT,
        created_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS issues (
        id TEXT PRIMARY KEY,
        garden_id TEXT NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        affected_area TEXT NOT NULL DEFAULT '',
        severity TEXT NOT NULL CHECK (severity IN ('Parah','Sedang','Ringan')),
        status TEXT NOT NULL DEFAULT 'Open' CHECK (status IN ('Open','Resolved')),
        solution TEXT,
        report_date DATE NOT NULL,
        resolved_date DATE,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS maintenances (
        id TEXT PRIMARY KEY,
        garden_id TEXT NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
        maintenance_type TEXT NOT NULL
            CHECK (maintenance_type IN ('Pemupukan','Penyemprotan','Pemangkasan','Pembersihan','Lainnya')),
        title TEXT NOT NULL,
        scheduled_date DATE NOT NULL,
        status TEXT NOT NULL DEFAULT 'Dijadwalkan'
            CHECK (status IN ('Dijadwalkan','Selesai','Terlambat')),
        detail TEXT,
        responsible TEXT,
        is_recurring BOOLEAN NOT NULL DEFAULT 0,
        recurring_interval INTEGER,
        completed_date DATE,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS documentation (
        id TEXT PRIMARY KEY,
        garden_id TEXT NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
        doc_type TEXT NOT NULL CHECK (doc_type IN ('foto','dokumen','catatan')),
        title TEXT NOT NULL,
        description TEXT,
        file_url TEXT,
        content TEXT,
        category TEXT,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS expenses (
        id TEXT PRIMARY KEY,
        garden_id TEXT NOT NULL REFERENCES gardens(id) ON DELETE CASCADE,
        date DATE NOT NULL,
        category TEXT NOT NULL
            CHECK (category IN ('Pupuk','Pestisida','Peralatan','Tenaga Kerja','Transportasi','Lainnya')),
        description TEXT NOT NULL,
        amount REAL NOT NULL,
        notes TEXT,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
]

# Performance indexes: every child table is read per garden
INDEXES = [
    f"CREATE INDEX IF NOT EXISTS idx_{table}_garden ON {table}(garden_id)"
    for table in ('tasks', 'harvests', 'issues', 'maintenances', 'documentation', 'expenses')
]


class Store:
    """Record store over one SQLite database file."""

    def __init__(self, db_path):
        self.db_path = db_path

    def __repr__(self):
        return f"Store({self.db_path!r})"

    def connect(self) -> sqlite3.Connection:
        """Get a connection with WAL mode and foreign keys enabled."""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self):
        """Create all tables and indexes if they don't exist."""
        conn = self.connect()
        try:
            cursor = conn.cursor()
            for statement in SCHEMA + INDEXES:
                cursor.execute(statement)
            conn.commit()
        finally:
            conn.close()

    def check_health(self):
        """Check the database is reachable. Returns (is_healthy, message)."""
        try:
            conn = self.connect()
            try:
                count = conn.execute("SELECT COUNT(*) FROM gardens").fetchone()[0]
            finally:
                conn.close()
            return True, f"Database OK ({count} kebun)"
        except sqlite3.DatabaseError as e:
            return False, f"Database error: {str(e)}"

    # ========================================
    # Generic record operations
    # ========================================

    @staticmethod
    def _check_kind(kind):
        if kind not in ENTITY_KINDS:
            raise TypeError(f"Unsupported record kind: {kind!r}")

    def _fetch(self, kind, where='', params=(), single=False):
        self._check_kind(kind)
        sql = f"SELECT * FROM {kind.TABLE}"
        if where:
            sql += f" WHERE {where}"
        sql += f" ORDER BY {kind.ORDER_BY}"
        try:
            conn = self.connect()
            try:
                cursor = conn.execute(sql, params)
                if single:
                    row = cursor.fetchone()
                    return (kind.from_row(row) if row else None), None
                return [kind.from_row(row) for row in cursor.fetchall()], None
            finally:
                conn.close()
        except (sqlite3.Error, ValueError) as e:
            logger.error("Query on %s failed: %s", kind.TABLE, e)
            return None, f"Gagal memuat {kind.LABEL.lower()}: {str(e)}"

    def list_all(self, kind):
        """Retrieve every record of a kind. Returns (records, error)."""
        return self._fetch(kind)

    def list_by_garden(self, kind, garden_id):
        """Retrieve the records of a kind that belong to one garden."""
        if kind is Garden:
            raise TypeError("Gardens are not owned by a garden")
        return self._fetch(kind, 'garden_id = ?', (garden_id,))

    def get_by_id(self, kind, record_id):
        """Retrieve a single record by canonical id. Returns (record, error)."""
        record, error = self._fetch(kind, 'id = ?', (record_id,), single=True)
        if error:
            return None, error
        if record is None:
            return None, f"{kind.LABEL} tidak ditemukan."
        return record, None

    def find_by(self, kind, column, value):
        """Retrieve the first record whose column equals value (None when absent)."""
        if column not in kind.columns():
            raise ValueError(f"Unknown column {column!r} for {kind.TABLE}")
        return self._fetch(kind, f'{column} = ?', (value,), single=True)

    def insert(self, kind, values):
        """
        Insert a record and return the stored version.

        Args:
            kind: Record class (Garden, Task, ...)
            values: Column values; id and timestamps are generated here.

        Returns:
            Tuple of (record, error_message)
        """
        self._check_kind(kind)
        now = _now()
        record = {k: v for k, v in values.items() if k in kind.columns()}
        record['id'] = str(uuid.uuid4())
        record['created_at'] = now
        if kind in _TIMESTAMPED:
            record['updated_at'] = now

        columns = ', '.join(record)
        placeholders = ', '.join('?' for _ in record)
        try:
            conn = self.connect()
            try:
                conn.execute(
                    f"INSERT INTO {kind.TABLE} ({columns}) VALUES ({placeholders})",
                    tuple(record.values())
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.IntegrityError as e:
            logger.error("Insert into %s rejected: %s", kind.TABLE, e)
            return None, f"Data tidak valid: {str(e)}"
        except sqlite3.Error as e:
            logger.error("Insert into %s failed: %s", kind.TABLE, e)
            return None, f"Gagal menyimpan {kind.LABEL.lower()}: {str(e)}"

        logger.info("Created %s %s", kind.TABLE, record['id'])
        return self.get_by_id(kind, record['id'])

    def update(self, kind, record_id, values):
        """
        Apply a partial update. id and created_at are never overwritten.

        Returns:
            Tuple of (record, error_message)
        """
        self._check_kind(kind)
        changes = {
            k: v for k, v in values.items()
            if k in kind.columns() and k not in ('id', 'created_at', 'updated_at')
        }
        if kind in _TIMESTAMPED:
            changes['updated_at'] = _now()
        if not changes:
            return self.get_by_id(kind, record_id)

        assignments = ', '.join(f"{column} = ?" for column in changes)
        try:
            conn = self.connect()
            try:
                cursor = conn.execute(
                    f"UPDATE {kind.TABLE} SET {assignments} WHERE id = ?",
                    tuple(changes.values()) + (record_id,)
                )
                conn.commit()
                updated = cursor.rowcount
            finally:
                conn.close()
        except sqlite3.IntegrityError as e:
            logger.error("Update of %s %s rejected: %s", kind.TABLE, record_id, e)
            return None, f"Data tidak valid: {str(e)}"
        except sqlite3.Error as e:
            logger.error("Update of %s %s failed: %s", kind.TABLE, record_id, e)
            return None, f"Gagal memperbarui {kind.LABEL.lower()}: {str(e)}"

        if updated == 0:
            return None, f"{kind.LABEL} tidak ditemukan."
        logger.info("Updated %s %s", kind.TABLE, record_id)
        return self.get_by_id(kind, record_id)

    def delete(self, kind, record_id):
        """Delete a record. Returns (success, error_message)."""
        self._check_kind(kind)
        try:
            conn = self.connect()
            try:
                cursor = conn.execute(f"DELETE FROM {kind.TABLE} WHERE id = ?", (record_id,))
                conn.commit()
                deleted = cursor.rowcount
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Delete of %s %s failed: %s", kind.TABLE, record_id, e)
            return False, f"Gagal menghapus {kind.LABEL.lower()}: {str(e)}"

        if deleted == 0:
            return False, f"{kind.LABEL} tidak ditemukan."
        logger.info("Deleted %s %s", kind.TABLE, record_id)
        return True, None


def get_store() -> Store:
    """Return the store bound to the current Flask application."""
    return current_app.extensions['palmtrack_store']


def init_db(store=None):
    """Create all tables and indexes for the given (or current app's) store."""
    (store or get_store()).init_schema()
