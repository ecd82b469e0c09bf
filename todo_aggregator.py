"""
todo_aggregator.py - Centralized to-do list across all gardens.

Merges pending maintenances (Dijadwalkan, Terlambat) and open issues from
every garden into one list of TodoItem, sorted by date, and buckets that
list relative to today (overdue, today, tomorrow, this week, later).

Aggregation is best-effort: a garden whose records cannot be loaded
contributes nothing, the failure is logged and the rest of the list is
still returned.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from typing import Dict, List, Optional

from models import (
    Garden, Issue, Maintenance, TodoItem, ISSUE_STATUS_OPEN,
    PENDING_MAINTENANCE_STATUSES, TODO_TYPE_ISSUE, TODO_TYPE_MAINTENANCE
)

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4

BUCKETS = ('overdue', 'today', 'tomorrow', 'this_week', 'later')


def _maintenance_todo(garden, maintenance) -> TodoItem:
    return TodoItem(
        id=maintenance.id,
        garden_id=garden.id,
        garden_name=garden.name,
        garden_slug=garden.slug,
        type=TODO_TYPE_MAINTENANCE,
        title=maintenance.title,
        date=maintenance.scheduled_date,
        category=maintenance.maintenance_type,
        status=maintenance.status,
        responsible=maintenance.responsible,
        description=maintenance.detail,
    )


def _issue_todo(garden, issue) -> TodoItem:
    return TodoItem(
        id=issue.id,
        garden_id=garden.id,
        garden_name=garden.name,
        garden_slug=garden.slug,
        type=TODO_TYPE_ISSUE,
        title=issue.title,
        date=issue.report_date,
        category=issue.severity,
        status=issue.status,
        affected_area=issue.affected_area,
        description=issue.description,
    )


def _collect_garden_todos(store, garden) -> List[TodoItem]:
    """Pending items for one garden. A failed fetch yields an empty slice."""
    todos = []

    try:
        maintenances, error = store.list_by_garden(Maintenance, garden.id)
    except Exception as e:
        maintenances, error = None, str(e)
    if error:
        logger.warning("Skipping maintenances of garden %s: %s", garden.id, error)
    for m in maintenances or []:
        if m.status in PENDING_MAINTENANCE_STATUSES:
            todos.append(_maintenance_todo(garden, m))

    try:
        issues, error = store.list_by_garden(Issue, garden.id)
    except Exception as e:
        issues, error = None, str(e)
    if error:
        logger.warning("Skipping issues of garden %s: %s", garden.id, error)
    for i in issues or []:
        if i.status == ISSUE_STATUS_OPEN:
            todos.append(_issue_todo(garden, i))

    return todos


def get_all_todos(store, max_workers: Optional[int] = None) -> List[TodoItem]:
    """
    Get all pending maintenances and open issues from all gardens.

    Per-garden reads run concurrently; results are merged in garden order
    (the store's default garden ordering), maintenances before issues, and
    then stable-sorted by date so equal dates keep that order.

    Args:
        store: Record store
        max_workers: Thread pool size (defaults to DEFAULT_WORKERS)

    Returns:
        List of TodoItem sorted by date, earliest first. Empty when the
        garden list itself cannot be loaded.
    """
    try:
        gardens, error = store.list_all(Garden)
    except Exception as e:
        gardens, error = None, str(e)
    if error or not gardens:
        if error:
            logger.warning("Todo aggregation skipped, gardens unavailable: %s", error)
        return []

    workers = max(1, min(max_workers or DEFAULT_WORKERS, len(gardens)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        slices = list(executor.map(lambda g: _collect_garden_todos(store, g), gardens))

    todos = [todo for garden_todos in slices for todo in garden_todos]
    todos.sort(key=lambda t: t.date or date.max)
    return todos


def get_pending_todos_count(store, max_workers: Optional[int] = None) -> int:
    return len(get_all_todos(store, max_workers))


def group_todos_by_date(todos, today: Optional[date] = None) -> Dict[str, List[TodoItem]]:
    """
    Split a sorted todo list into date buckets.

    Buckets (date-only comparison against today):
        overdue  : before today
        today    : today
        tomorrow : today + 1
        this_week: up to and including today + 7
        later    : everything after that (and items without a date)
    """
    today = today or date.today()
    tomorrow = today + timedelta(days=1)
    end_of_week = today + timedelta(days=7)

    grouped = {bucket: [] for bucket in BUCKETS}
    for todo in todos:
        todo_date = todo.date
        if todo_date is None:
            grouped['later'].append(todo)
        elif todo_date < today:
            grouped['overdue'].append(todo)
        elif todo_date == today:
            grouped['today'].append(todo)
        elif todo_date == tomorrow:
            grouped['tomorrow'].append(todo)
        elif todo_date <= end_of_week:
            grouped['this_week'].append(todo)
        else:
            grouped['later'].append(todo)
    return grouped


def get_todos_grouped_by_date(store, today: Optional[date] = None,
                              max_workers: Optional[int] = None) -> Dict[str, List[TodoItem]]:
    return group_todos_by_date(get_all_todos(store, max_workers), today)
