"""
calculations.py - Derived values shown on the dashboard and garden tabs.

Pure functions over lists of records. Empty inputs give zeros, never a
ZeroDivisionError. Monthly series always contain every month of the range,
with zero-valued buckets for months that have no records.
"""

import calendar
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from models import (
    GARDEN_STATUS_GOOD, GOOD_HARVEST_QUALITIES, ISSUE_STATUS_OPEN,
    MAINTENANCE_STATUS_SCHEDULED, parse_date
)

MONTH_LABELS = ('Jan', 'Feb', 'Mar', 'Apr', 'Mei', 'Jun',
                'Jul', 'Agu', 'Sep', 'Okt', 'Nov', 'Des')


def compute_total_value(quantity_kg, price_per_kg) -> float:
    """Total harvest value: quantity (kg) × price per kg."""
    return float(quantity_kg or 0) * float(price_per_kg or 0)


def total_quantity(harvests) -> float:
    return sum(float(h.quantity_kg or 0) for h in harvests)


def total_value(harvests) -> float:
    return sum(compute_total_value(h.quantity_kg, h.price_per_kg) for h in harvests)


def average_price_per_kg(harvests) -> float:
    """Weighted average price: sum(total value) / sum(quantity). 0 when nothing was harvested."""
    quantity = total_quantity(harvests)
    if quantity == 0:
        return 0.0
    return total_value(harvests) / quantity


def good_quality_ratio(harvests) -> float:
    """Percentage of harvests graded Baik Sekali or Baik. 0 for an empty set."""
    harvests = list(harvests)
    if not harvests:
        return 0.0
    good = sum(1 for h in harvests if h.quality in GOOD_HARVEST_QUALITIES)
    return good / len(harvests) * 100


# ========================================
# Monthly aggregation
# ========================================

def shift_month(year: int, month: int, offset: int):
    """Return (year, month) moved by offset months."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def month_label(year: int, month: int) -> str:
    """Short label, e.g. 'Jan 24'."""
    return f"{MONTH_LABELS[month - 1]} {year % 100:02d}"


def monthly_totals(records, date_attr: str, value_attr: str,
                   months: int = 6, end: Optional[date] = None) -> List[Dict]:
    """
    Sum value_attr per calendar month for the `months` months ending at `end`.

    Args:
        records: Iterable of records (dataclasses or dicts)
        date_attr: Name of the date field used for bucketing
        value_attr: Name of the numeric field to sum
        months: Number of buckets, oldest first
        end: Any date inside the last month (defaults to today)

    Returns:
        List of dicts with keys: year, month, label, total.
        Every month in the range is present, zero when nothing matched.
    """
    end = end or date.today()
    sums = defaultdict(float)
    for record in records:
        if isinstance(record, dict):
            raw_date, raw_value = record.get(date_attr), record.get(value_attr)
        else:
            raw_date, raw_value = getattr(record, date_attr), getattr(record, value_attr)
        record_date = parse_date(raw_date)
        if record_date is None:
            continue
        sums[(record_date.year, record_date.month)] += float(raw_value or 0)

    buckets = []
    for offset in range(months - 1, -1, -1):
        year, month = shift_month(end.year, end.month, -offset)
        buckets.append({
            'year': year,
            'month': month,
            'label': month_label(year, month),
            'total': sums.get((year, month), 0.0),
        })
    return buckets


def is_same_month(value, reference: date) -> bool:
    value = parse_date(value)
    return value is not None and (value.year, value.month) == (reference.year, reference.month)


# ========================================
# Summaries
# ========================================

def harvest_summary(harvests) -> Dict:
    """Summary cards and chart data for a garden's harvest tab."""
    harvests = list(harvests)
    quantity = total_quantity(harvests)
    by_date = sorted(harvests, key=lambda h: h.date or date.min)
    return {
        'count': len(harvests),
        'total_kg': quantity,
        'total_tons': quantity / 1000,
        'total_value': total_value(harvests),
        'average_price_per_kg': average_price_per_kg(harvests),
        'good_quality_pct': good_quality_ratio(harvests),
        'chart': [
            {'date': h.date.isoformat() if h.date else None, 'kg': h.quantity_kg}
            for h in by_date[-6:]
        ],
    }


def expense_summary(expenses, today: Optional[date] = None) -> Dict:
    """
    Summary cards and six-month chart for a garden's expense tab.

    The monthly average divides the last six months' total by 6, so quiet
    months pull the average down.
    """
    today = today or date.today()
    expenses = list(expenses)

    by_category = defaultdict(float)
    for e in expenses:
        by_category[e.category] += float(e.amount or 0)
    biggest = None
    if by_category:
        name, amount = max(by_category.items(), key=lambda item: item[1])
        biggest = {'category': name, 'amount': amount}

    year, month = shift_month(today.year, today.month, -6)
    six_months_ago = date(year, month, min(today.day, calendar.monthrange(year, month)[1]))
    recent = [e for e in expenses if e.date and e.date >= six_months_ago]

    return {
        'count': len(expenses),
        'total': sum(float(e.amount or 0) for e in expenses),
        'this_month': sum(float(e.amount or 0) for e in expenses if is_same_month(e.date, today)),
        'biggest_category': biggest,
        'average_per_month': sum(float(e.amount or 0) for e in recent) / 6 if recent else 0.0,
        'chart': monthly_totals(expenses, 'date', 'amount', months=6, end=today),
    }


def garden_overview(gardens) -> Dict:
    """Totals for the dashboard and garden list summary cards."""
    gardens = list(gardens)
    return {
        'total_gardens': len(gardens),
        'total_area_ha': sum(float(g.area_ha or 0) for g in gardens),
        'total_trees': sum(int(g.tree_count or 0) for g in gardens),
        'good_gardens': sum(1 for g in gardens if g.status == GARDEN_STATUS_GOOD),
    }


def monthly_production_by_garden(gardens, harvests, year: int, month: int) -> List[Dict]:
    """Tons harvested per garden in one calendar month (every garden listed, zero when idle)."""
    tons = defaultdict(float)
    for h in harvests:
        if h.date and h.date.year == year and h.date.month == month:
            tons[h.garden_id] += float(h.quantity_kg or 0) / 1000
    return [
        {'garden_id': g.id, 'name': g.name, 'slug': g.slug, 'value': tons.get(g.id, 0.0)}
        for g in gardens
    ]


def garden_quick_stats(garden, maintenances, issues) -> Dict:
    """Header cards on the garden detail page."""
    return {
        'area_ha': garden.area_ha,
        'tree_count': garden.tree_count,
        'scheduled_maintenances': sum(
            1 for m in maintenances if m.status == MAINTENANCE_STATUS_SCHEDULED
        ),
        'open_issues': sum(1 for i in issues if i.status == ISSUE_STATUS_OPEN),
    }
