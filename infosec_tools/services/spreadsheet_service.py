"""
Spreadsheet service — .xlsx generation and parsing (openpyxl).

Every export, import template and import in the application goes
through here:

    content = build_workbook("Servers", ["IP Address", "Hostname"], rows)
    headers, records = read_workbook(uploaded_bytes)
"""

import io
import json
import logging
import zipfile
from datetime import date, datetime, time

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from infosec_tools.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
MAX_COLUMN_WIDTH = 50


def _cell_value(value):
    """Coerce a Python value into something openpyxl can store."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    if value is None or isinstance(value, (str, int, float, bool, datetime, date, time)):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def to_json_value(value):
    """Coerce a parsed cell value into a JSON-safe scalar; strings are kept as written."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _as_text(cell):
    """Store strings starting with '=' as text so they are never evaluated as formulas."""
    if isinstance(cell.value, str) and cell.value.startswith("="):
        cell.data_type = "s"
    return cell


# ═══════════════════════════════════════════════════════════════
# Writing
# ═══════════════════════════════════════════════════════════════

def build_workbook(sheet_title: str, columns: list[str], rows=()) -> bytes:
    """
    Build a single-sheet workbook with a styled header row.

    Args:
        sheet_title: Worksheet name (truncated to Excel's 31-char limit).
        columns: Column titles for row 1.
        rows: Iterable of value sequences, one per data row.

    Returns:
        The .xlsx file content.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = (sheet_title or "Sheet1")[:31]

    widths = [len(str(c)) for c in columns]
    for col, title in enumerate(columns, 1):
        cell = _as_text(ws.cell(row=1, column=col, value=title))
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER

    row_count = 0
    for row_idx, values in enumerate(rows, 2):
        row_count += 1
        for col, value in enumerate(values, 1):
            cell = _as_text(ws.cell(row=row_idx, column=col, value=_cell_value(value)))
            cell.border = THIN_BORDER
            if value is not None and col <= len(widths):
                widths[col - 1] = max(widths[col - 1], len(str(value)))

    for col, width in enumerate(widths, 1):
        ws.column_dimensions[get_column_letter(col)].width = min(width + 2, MAX_COLUMN_WIDTH)
    ws.freeze_panes = "A2"

    buf = io.BytesIO()
    wb.save(buf)
    logger.debug("Built workbook '%s': %d columns, %d rows", ws.title, len(columns), row_count)
    return buf.getvalue()


# ═══════════════════════════════════════════════════════════════
# Reading
# ═══════════════════════════════════════════════════════════════

def read_workbook(content: bytes) -> tuple[list[str], list[tuple[int, dict]]]:
    """
    Parse the first worksheet of an .xlsx file.

    Row 1 holds the column titles.  Each following row becomes a dict keyed
    by column title; empty cells and untitled columns are left out and rows
    with no values at all are skipped.

    Returns:
        (column_titles, [(spreadsheet_row_number, record), ...])

    Raises:
        ValidationError: the content is not a readable .xlsx file.
    """
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        logger.info("Rejected unreadable spreadsheet upload: %s", exc)
        raise ValidationError("Invalid spreadsheet file. Upload an .xlsx workbook.")

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        try:
            header_row = next(rows)
        except StopIteration:
            return [], []

        titles = [str(h).strip() if h is not None and str(h).strip() else None for h in header_row]
        records = []
        for row_num, values in enumerate(rows, 2):
            record = {}
            for title, value in zip(titles, values):
                if title is None or value is None:
                    continue
                if isinstance(value, str) and not value.strip():
                    continue
                record[title] = value
            if record:
                records.append((row_num, record))
        return [t for t in titles if t], records
    finally:
        wb.close()


def read_upload(file_storage) -> bytes:
    """Return the bytes of an uploaded ``file`` form field, validating its presence."""
    if file_storage is None or not file_storage.filename:
        raise ValidationError("No file uploaded", details={"file": "required"})
    content = file_storage.read()
    if not content:
        raise ValidationError("Uploaded file is empty", details={"file": "empty"})
    return content
