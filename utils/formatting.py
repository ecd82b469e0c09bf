"""
utils/formatting.py - Jinja filters for Indonesian number and date display.
"""

from models import parse_date

MONTH_NAMES = ('Januari', 'Februari', 'Maret', 'April', 'Mei', 'Juni', 'Juli',
               'Agustus', 'September', 'Oktober', 'November', 'Desember')


def format_number(value, decimals=0):
    """1234567.5 -> '1.234.568' (dot thousands, comma decimals)."""
    if value is None:
        return '-'
    formatted = f"{float(value):,.{decimals}f}"
    return formatted.replace(',', '_').replace('.', ',').replace('_', '.')


def format_rupiah(value):
    return f"Rp {format_number(value)}"


def format_millions(value, decimals=1):
    """Compact rupiah used on summary cards: 3750000 -> 'Rp 3,8M'."""
    return f"Rp {format_number((value or 0) / 1_000_000, decimals)}M"


def format_day(value):
    """'2024-01-15' -> '15 Januari 2024'."""
    day = parse_date(value)
    if day is None:
        return '-'
    return f"{day.day} {MONTH_NAMES[day.month - 1]} {day.year}"


def register_filters(app):
    app.jinja_env.filters['number'] = format_number
    app.jinja_env.filters['rupiah'] = format_rupiah
    app.jinja_env.filters['millions'] = format_millions
    app.jinja_env.filters['day'] = format_day
