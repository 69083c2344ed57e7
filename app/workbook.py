# -*- coding: utf-8 -*-
import base64
import re
from io import BytesIO
from typing import Iterable, List, Optional

from loguru import logger
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from pydantic import BaseModel

from app.models import ExtractedTable, PlanDetails

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLSX_FILENAME = "extracted_tables.xlsx"

MAX_SHEET_NAME = 31
TABLE_COLUMN_WIDTH = 15
_UNSAFE_SHEET_CHARS = re.compile(r"[\\/?*:\[\]]")


class SheetLabels(BaseModel):
    """Naming for one output flavour: the address pipeline or a plain upload."""
    table_prefix: str
    title_chars: int
    summary_sheet: str
    fallback_sheet: str
    no_tables: str


HEBREW_LABELS = SheetLabels(
    table_prefix="טבלה_",
    title_chars=15,
    summary_sheet="סיכום",
    fallback_sheet="תוצאה",
    no_tables="לא נמצאו טבלאות",
)

UPLOAD_LABELS = SheetLabels(
    table_prefix="Table_",
    title_chars=20,
    summary_sheet="Summary",
    fallback_sheet="Result",
    no_tables="No tables found",
)


def sanitize_sheet_name(name: str) -> str:
    name = ILLEGAL_CHARACTERS_RE.sub("", name)
    return _UNSAFE_SHEET_CHARS.sub("_", name)[:MAX_SHEET_NAME]


def sheet_name(index: int, title: Optional[str], prefix: str, title_chars: int,
               existing: Iterable[str] = ()) -> str:
    """
    ``<prefix><index>[_<title head>]`` with unsafe characters replaced and the
    31 character limit applied. Clashes with ``existing`` get a ``(n)`` suffix.
    """
    base = f"{prefix}{index}"
    if title:
        base += f"_{title[:title_chars]}"
    name = sanitize_sheet_name(base) or f"Sheet{index}"

    taken = {n.lower() for n in existing}
    candidate, n = name, 2
    while candidate.lower() in taken:
        suffix = f"({n})"
        candidate = name[:MAX_SHEET_NAME - len(suffix)] + suffix
        n += 1
    return candidate


def table_rows(table: ExtractedTable) -> List[List[str]]:
    rows: List[List[str]] = []
    if table.title:
        rows.append([table.title])
        rows.append([])
    if table.headers:
        rows.append(list(table.headers))
    rows.extend(list(r) for r in table.rows)
    return rows


def summary_rows(details: PlanDetails) -> List[List[str]]:
    return [
        ["פרטי התוכנית"],
        [],
        ["מספר תוכנית", details.plan_number],
        ["גוש", "" if details.block is None else str(details.block)],
        ["חלקה", "" if details.parcel is None else str(details.parcel)],
        ["עיר", details.city],
        ["מהות", details.nature],
        ["סטטוס", details.status],
        ["תאריך סטטוס", details.status_date],
        [],
        ["טבלאות זכויות בנייה:"],
        [],
    ]


def _new_sheet(wb: Workbook, title: str, rows: List[List[str]]) -> Worksheet:
    ws = wb.create_sheet(title=title)
    ws.sheet_view.rightToLeft = True
    for r, row in enumerate(rows, 1):
        for c, value in enumerate(row, 1):
            if isinstance(value, str):
                value = ILLEGAL_CHARACTERS_RE.sub("", value)
            cell = ws.cell(row=r, column=c, value=value)
            # extracted text is stored as text, never as a formula
            if cell.data_type == "f":
                cell.data_type = "s"
    return ws


def build_workbook(tables: List[ExtractedTable], summary: Optional[PlanDetails] = None,
                   labels: SheetLabels = HEBREW_LABELS) -> Workbook:
    wb = Workbook()
    wb.remove(wb.active)

    if summary is not None:
        ws = _new_sheet(wb, labels.summary_sheet, summary_rows(summary))
        ws.column_dimensions["A"].width = 20
        ws.column_dimensions["B"].width = 40

    if not tables:
        _new_sheet(wb, labels.fallback_sheet, [[labels.no_tables]])
        logger.info(f"[XLSX] no tables, wrote '{labels.fallback_sheet}'")
        return wb

    for index, table in enumerate(tables, 1):
        name = sheet_name(index, table.title, labels.table_prefix, labels.title_chars, wb.sheetnames)
        ws = _new_sheet(wb, name, table_rows(table))
        for col in range(1, table.width + 1):
            ws.column_dimensions[get_column_letter(col)].width = TABLE_COLUMN_WIDTH
    logger.info(f"[XLSX] {len(tables)} table sheet(s): {wb.sheetnames}")
    return wb


def workbook_bytes(wb: Workbook) -> bytes:
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def workbook_to_data_uri(data: bytes) -> str:
    return f"data:{XLSX_MIME};base64,{base64.b64encode(data).decode('ascii')}"
