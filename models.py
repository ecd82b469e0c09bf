"""
models.py - Python dataclasses for the PalmTrack application.

One dataclass per table. Each record knows its table name, default ordering
and the columns it writes, and converts from a sqlite3.Row with from_row().
Dates are stored as ISO strings (YYYY-MM-DD) and exposed as datetime.date.
"""

from dataclasses import dataclass, fields
import datetime
from datetime import date
from typing import Optional


# ========================================
# Enumerations (stored values)
# ========================================

GARDEN_STATUS_GOOD = 'Baik'
GARDEN_STATUS_NEEDS_ATTENTION = 'Perlu Perhatian'
GARDEN_STATUS_PROBLEMATIC = 'Bermasalah'
GARDEN_STATUSES = (GARDEN_STATUS_GOOD, GARDEN_STATUS_NEEDS_ATTENTION, GARDEN_STATUS_PROBLEMATIC)

TASK_CATEGORIES = ('Pemupukan', 'Panen', 'Perawatan', 'Penyemprotan', 'Lainnya')
TASK_PRIORITIES = ('High', 'Normal', 'Low')
TASK_STATUS_TODO = 'To Do'
TASK_STATUS_IN_PROGRESS = 'In Progress'
TASK_STATUS_DONE = 'Done'
TASK_STATUSES = (TASK_STATUS_TODO, TASK_STATUS_IN_PROGRESS, TASK_STATUS_DONE)

HARVEST_QUALITIES = ('Baik Sekali', 'Baik', 'Cukup', 'Kurang')
GOOD_HARVEST_QUALITIES = ('Baik Sekali', 'Baik')

ISSUE_SEVERITIES = ('Parah', 'Sedang', 'Ringan')
ISSUE_STATUS_OPEN = 'Open'
ISSUE_STATUS_RESOLVED = 'Resolved'
ISSUE_STATUSES = (ISSUE_STATUS_OPEN, ISSUE_STATUS_RESOLVED)

MAINTENANCE_TYPES = ('Pemupukan', 'Penyemprotan', 'Pemangkasan', 'Pembersihan', 'Lainnya')
MAINTENANCE_STATUS_SCHEDULED = 'Dijadwalkan'
MAINTENANCE_STATUS_DONE = 'Selesai'
MAINTENANCE_STATUS_OVERDUE = 'Terlambat'
MAINTENANCE_STATUSES = (MAINTENANCE_STATUS_SCHEDULED, MAINTENANCE_STATUS_DONE, MAINTENANCE_STATUS_OVERDUE)
PENDING_MAINTENANCE_STATUSES = (MAINTENANCE_STATUS_SCHEDULED, MAINTENANCE_STATUS_OVERDUE)

DOC_TYPE_PHOTO = 'foto'
DOC_TYPE_DOCUMENT = 'dokumen'
DOC_TYPE_NOTE = 'catatan'
DOC_TYPES = (DOC_TYPE_PHOTO, DOC_TYPE_DOCUMENT, DOC_TYPE_NOTE)

EXPENSE_CATEGORIES = ('Pupuk', 'Pestisida', 'Peralatan', 'Tenaga Kerja', 'Transportasi', 'Lainnya')

TODO_TYPE_MAINTENANCE = 'maintenance'
TODO_TYPE_ISSUE = 'issue'


def parse_date(value) -> Optional[date]:
    """Convert a stored ISO date (or datetime string) to a date. None stays None."""
    if value is None or value == '':
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def format_date(value) -> Optional[str]:
    """Convert a date to its stored ISO form."""
    if value is None or value == '':
        return None
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


class Record:
    """Shared row conversion for all persisted dataclasses."""

    TABLE = ''
    ORDER_BY = 'created_at DESC'
    DATE_FIELDS = ()
    BOOL_FIELDS = ()
    LABEL = 'Data'

    @classmethod
    def columns(cls):
        return [f.name for f in fields(cls)]

    @classmethod
    def from_row(cls, row):
        """Build a record from a sqlite3.Row (or mapping), ignoring unknown keys."""
        data = dict(row)
        values = {}
        for name in cls.columns():
            if name not in data:
                continue
            value = data[name]
            if name in cls.DATE_FIELDS:
                value = parse_date(value)
            elif name in cls.BOOL_FIELDS:
                value = bool(value)
            values[name] = value
        return cls(**values)

    def to_record(self):
        """Return a dict of column values ready for the store."""
        record = {}
        for name in self.columns():
            value = getattr(self, name)
            if name in self.DATE_FIELDS:
                value = format_date(value)
            elif name in self.BOOL_FIELDS:
                value = 1 if value else 0
            record[name] = value
        return record


@dataclass
class Garden(Record):
    """Plantation plot, the root entity all other records attach to."""
    TABLE = 'gardens'
    LABEL = 'Kebun'

    id: Optional[str] = None
    slug: str = ""
    name: str = ""
    location: str = ""
    full_location: str = ""
    area_ha: float = 0.0
    tree_count: int = 0
    planting_year: int = 0
    variety: str = ""
    status: str = GARDEN_STATUS_GOOD
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Task(Record):
    TABLE = 'tasks'
    ORDER_BY = 'target_date ASC'
    DATE_FIELDS = ('target_date',)
    LABEL = 'Task'

    id: Optional[str] = None
    garden_id: str = ""
    title: str = ""
    description: Optional[str] = None
    category: str = "Lainnya"
    priority: str = "Normal"
    status: str = TASK_STATUS_TODO
    target_date: Optional[date] = None
    assigned_to: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Harvest(Record):
    """Harvest entry. total_value is always quantity_kg × price_per_kg."""
    TABLE = 'harvests'
    ORDER_BY = 'date DESC'
    DATE_FIELDS = ('date',)
    LABEL = 'Data panen'

    id: Optional[str] = None
    garden_id: str = ""
    date: Optional[datetime.date] = None
    quantity_kg: float = 0.0
    price_per_kg: float = 0.0
    total_value: float = 0.0
    quality: str = "Baik"
    notes: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        from calculations import compute_total_value
        harvest = super().from_row(row)
        harvest.total_value = compute_total_value(harvest.quantity_kg, harvest.price_per_kg)
        return harvest


@dataclass
class Issue(Record):
    TABLE = 'issues'
    ORDER_BY = 'report_date DESC'
    DATE_FIELDS = ('report_date', 'resolved_date')
    LABEL = 'Masalah'

    id: Optional[str] = None
    garden_id: str = ""
    title: str = ""
    description: str = ""
    affected_area: str = ""
    severity: str = "Sedang"
    status: str = ISSUE_STATUS_OPEN
    solution: Optional[str] = None
    report_date: Optional[date] = None
    resolved_date: Optional[date] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Maintenance(Record):
    TABLE = 'maintenances'
    ORDER_BY = 'scheduled_date ASC'
    DATE_FIELDS = ('scheduled_date', 'completed_date')
    BOOL_FIELDS = ('is_recurring',)
    LABEL = 'Perawatan'

    id: Optional[str] = None
    garden_id: str = ""
    maintenance_type: str = "Lainnya"
    title: str = ""
    scheduled_date: Optional[date] = None
    status: str = MAINTENANCE_STATUS_SCHEDULED
    detail: Optional[str] = None
    responsible: Optional[str] = None
    is_recurring: bool = False
    recurring_interval: Optional[int] = None
    completed_date: Optional[date] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Documentation(Record):
    TABLE = 'documentation'
    LABEL = 'Dokumentasi'

    id: Optional[str] = None
    garden_id: str = ""
    doc_type: str = DOC_TYPE_NOTE
    title: str = ""
    description: Optional[str] = None
    file_url: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Expense(Record):
    TABLE = 'expenses'
    ORDER_BY = 'date DESC'
    DATE_FIELDS = ('date',)
    LABEL = 'Pengeluaran'

    id: Optional[str] = None
    garden_id: str = ""
    date: Optional[datetime.date] = None
    category: str = "Lainnya"
    description: str = ""
    amount: float = 0.0
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# Every kind the store accepts. Anything else is rejected at the boundary.
ENTITY_KINDS = (Garden, Task, Harvest, Issue, Maintenance, Documentation, Expense)
CHILD_KINDS = (Task, Harvest, Issue, Maintenance, Documentation, Expense)


@dataclass
class TodoItem:
    """Pending maintenance or open issue projected into one shape for the dashboard."""
    id: str = ""
    garden_id: str = ""
    garden_name: str = ""
    garden_slug: str = ""
    type: str = TODO_TYPE_MAINTENANCE
    title: str = ""
    date: Optional[datetime.date] = None
    category: str = ""
    status: str = ""
    responsible: Optional[str] = None
    affected_area: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.id,
            'garden_id': self.garden_id,
            'garden_name': self.garden_name,
            'garden_slug': self.garden_slug,
            'type': self.type,
            'title': self.title,
            'date': format_date(self.date),
            'category': self.category,
            'status': self.status,
            'responsible': self.responsible,
            'affected_area': self.affected_area,
            'description': self.description,
        }
