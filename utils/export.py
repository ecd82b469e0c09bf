"""
utils/export.py - Excel export generation using openpyxl.

Generates one .xlsx workbook per garden with a styled header row on each
sheet: Panen (harvests), Pengeluaran (expenses), Perawatan (maintenances),
Masalah (issues) and Task.
"""

from io import BytesIO
from datetime import date

from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from models import Harvest, Expense, Maintenance, Issue, Task, format_date


HEADER_FONT = Font(name='Calibri', bold=True, color='FFFFFF', size=11)
HEADER_FILL = PatternFill(start_color='2E7D32', end_color='2E7D32', fill_type='solid')
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
HEADER_BORDER = Border(
    bottom=Side(style='thin', color='1B5E20'),
    right=Side(style='thin', color='E2E8F0'),
)
CELL_BORDER = Border(
    bottom=Side(style='thin', color='E2E8F0'),
    right=Side(style='thin', color='E2E8F0'),
)
TITLE_FONT = Font(name='Calibri', bold=True, size=14)

# Status colors for issue/maintenance cells
STATUS_FILLS = {
    'Open': PatternFill(start_color='FFCDD2', end_color='FFCDD2', fill_type='solid'),
    'Terlambat': PatternFill(start_color='FFCDD2', end_color='FFCDD2', fill_type='solid'),
    'Dijadwalkan': PatternFill(start_color='FFF9C4', end_color='FFF9C4', fill_type='solid'),
    'Selesai': PatternFill(start_color='C8E6C9', end_color='C8E6C9', fill_type='solid'),
    'Resolved': PatternFill(start_color='C8E6C9', end_color='C8E6C9', fill_type='solid'),
}

# (sheet title, kind, [(header, attribute, width)])
SHEETS = [
    ('Panen', Harvest, [
        ('Tanggal', 'date', 12),
        ('Jumlah (kg)', 'quantity_kg', 14),
        ('Harga/kg (Rp)', 'price_per_kg', 14),
        ('Total Nilai (Rp)', 'total_value', 18),
        ('Kualitas', 'quality', 12),
        ('Catatan', 'notes', 30),
    ]),
    ('Pengeluaran', Expense, [
        ('Tanggal', 'date', 12),
        ('Kategori', 'category', 14),
        ('Deskripsi', 'description', 30),
        ('Jumlah (Rp)', 'amount', 16),
        ('Catatan', 'notes', 30),
    ]),
    ('Perawatan', Maintenance, [
        ('Tanggal', 'scheduled_date', 12),
        ('Jenis', 'maintenance_type', 14),
        ('Judul', 'title', 28),
        ('Status', 'status', 12),
        ('Penanggung Jawab', 'responsible', 18),
        ('Tanggal Selesai', 'completed_date', 14),
    ]),
    ('Masalah', Issue, [
        ('Tanggal Lapor', 'report_date', 13),
        ('Judul', 'title', 28),
        ('Area Terdampak', 'affected_area', 18),
        ('Keparahan', 'severity', 12),
        ('Status', 'status', 12),
        ('Tanggal Selesai', 'resolved_date', 14),
    ]),
    ('Task', Task, [
        ('Target', 'target_date', 12),
        ('Judul', 'title', 28),
        ('Kategori', 'category', 14),
        ('Prioritas', 'priority', 10),
        ('Status', 'status', 12),
        ('Ditugaskan', 'assigned_to', 18),
    ]),
]


def _cell_value(value):
    if isinstance(value, date):
        return format_date(value)
    return value if value is not None else ''


def _build_sheet(ws, columns, records):
    """Populate a worksheet with one row per record and a styled header."""
    for col_idx, (header, _, width) in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT
        cell.border = HEADER_BORDER
        ws.column_dimensions[cell.column_letter].width = width

    for row_idx, record in enumerate(records, 2):
        for col_idx, (_, attr, _) in enumerate(columns, 1):
            value = getattr(record, attr)
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(value))
            cell.border = CELL_BORDER
            if attr == 'status' and value in STATUS_FILLS:
                cell.fill = STATUS_FILLS[value]

    # Freeze header row
    ws.freeze_panes = 'A2'


def generate_garden_excel(store, garden):
    """
    Generate an Excel workbook with every record sheet for one garden.

    Returns:
        (BytesIO buffer, filename) on success, (None, error_message) on failure.
    """
    import openpyxl

    wb = openpyxl.Workbook()
    summary = wb.active
    summary.title = 'Kebun'
    summary.cell(row=1, column=1, value=garden.name).font = TITLE_FONT
    rows = [
        ('Lokasi', garden.location),
        ('Lokasi Lengkap', garden.full_location),
        ('Luas (Ha)', garden.area_ha),
        ('Jumlah Pohon', garden.tree_count),
        ('Tahun Tanam', garden.planting_year),
        ('Varietas', garden.variety),
        ('Status', garden.status),
        ('Tanggal Ekspor', date.today().strftime('%d/%m/%Y')),
    ]
    for row_idx, (label, value) in enumerate(rows, 3):
        summary.cell(row=row_idx, column=1, value=label).font = Font(bold=True)
        summary.cell(row=row_idx, column=2, value=value)
    summary.column_dimensions['A'].width = 18
    summary.column_dimensions['B'].width = 30

    for title, kind, columns in SHEETS:
        records, error = store.list_by_garden(kind, garden.id)
        if error:
            return None, error
        _build_sheet(wb.create_sheet(title=title), columns, records)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    filename = f"palmtrack_{garden.slug}_{date.today().strftime('%Y%m%d')}.xlsx"
    return buffer, filename
