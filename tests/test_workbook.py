import base64
from io import BytesIO

from openpyxl import load_workbook

from app.models import ExtractedTable, PlanDetails
from app.workbook import (
    HEBREW_LABELS,
    UPLOAD_LABELS,
    XLSX_MIME,
    build_workbook,
    sanitize_sheet_name,
    sheet_name,
    workbook_bytes,
    workbook_to_data_uri,
)


def _reload(wb):
    return load_workbook(BytesIO(workbook_bytes(wb)))


def test_unsafe_characters_replaced():
    name = sheet_name(1, "a/b\\c?d*e[f]", "Table_", 20)
    assert name == "Table_1_a_b_c_d_e_f_"


def test_sheet_name_capped_at_31():
    name = sheet_name(12, "x" * 100, "Table_", 100)
    assert len(name) == 31
    assert name.startswith("Table_12_x")


def test_title_head_length_per_labels():
    assert sheet_name(1, "abcdefghijklmnopqrstuvwxyz", "Table_", 20) == "Table_1_abcdefghijklmnopqrst"
    assert sheet_name(2, None, "טבלה_", 15) == "טבלה_2"


def test_duplicate_names_get_suffix():
    first = sheet_name(1, "x" * 40, "Table_", 40)
    second = sheet_name(1, "x" * 40, "Table_", 40, existing=[first])
    assert second != first
    assert second.endswith("(2)")
    assert len(second) <= 31


def test_sanitize_keeps_hebrew():
    assert sanitize_sheet_name("טבלה_1_זכויות/בניה") == "טבלה_1_זכויות_בניה"


def test_table_sheet_layout(rights_table):
    built = build_workbook([rights_table], labels=UPLOAD_LABELS)
    wb = _reload(built)
    assert len(wb.sheetnames) == 1
    ws = wb[wb.sheetnames[0]]
    assert ws["A1"].value == rights_table.title
    assert ws["A2"].value is None
    assert [c.value for c in ws[3]] == ["יעוד", "שטח בניה"]
    assert ws["A4"].value == "מגורים א"
    assert ws.max_row == 6
    widths = built[built.sheetnames[0]].column_dimensions
    assert widths["A"].width == 15
    assert widths["B"].width == 15


def test_ragged_rows_written_verbatim():
    table = ExtractedTable(headers=["a"], rows=[["1", "2", "3"], ["4"]])
    built = build_workbook([table], labels=UPLOAD_LABELS)
    ws = _reload(built)["Table_1"]
    assert ws.max_row == 3
    assert [c.value for c in ws[2]] == ["1", "2", "3"]
    assert ws["B3"].value is None
    assert built["Table_1"].column_dimensions["C"].width == 15


def test_table_without_title_or_headers():
    table = ExtractedTable(rows=[["1", "2"]])
    ws = _reload(build_workbook([table], labels=UPLOAD_LABELS))["Table_1"]
    assert ws.max_row == 1
    assert ws["A1"].value == "1"


def test_one_sheet_per_table(rights_table):
    tables = [rights_table, ExtractedTable(headers=["h"], rows=[["v"]]), rights_table]
    wb = build_workbook(tables, labels=HEBREW_LABELS)
    assert len(wb.sheetnames) == 3
    assert len(set(wb.sheetnames)) == 3


def test_summary_sheet_comes_first(rights_table):
    details = PlanDetails(planNumber="507-0271700", cityText="תל אביב-יפו", mahut="תוספת", status="אישור",
                          statusDate="01/01/22", block=6941, parcel=13)
    built = build_workbook([rights_table], summary=details)
    wb = _reload(built)
    assert wb.sheetnames[0] == "סיכום"
    assert len(wb.sheetnames) == 2
    summary = wb["סיכום"]
    assert summary["A1"].value == "פרטי התוכנית"
    assert summary["B3"].value == "507-0271700"
    assert summary["B4"].value == "6941"
    assert summary["B5"].value == "13"
    assert built["סיכום"].column_dimensions["B"].width == 40


def test_empty_tables_gives_single_fallback_sheet():
    wb = _reload(build_workbook([], labels=UPLOAD_LABELS))
    assert wb.sheetnames == ["Result"]
    assert wb["Result"]["A1"].value == "No tables found"


def test_empty_tables_hebrew_fallback():
    wb = build_workbook([])
    assert wb.sheetnames == ["תוצאה"]
    assert wb["תוצאה"]["A1"].value == "לא נמצאו טבלאות"


def test_sheets_are_right_to_left(rights_table):
    wb = build_workbook([rights_table])
    assert wb[wb.sheetnames[0]].sheet_view.rightToLeft is True


def test_data_uri_round_trip(rights_table):
    data = workbook_bytes(build_workbook([rights_table]))
    uri = workbook_to_data_uri(data)
    prefix = f"data:{XLSX_MIME};base64,"
    assert uri.startswith(prefix)
    assert base64.b64decode(uri[len(prefix):]) == data


def test_control_characters_are_dropped():
    table = ExtractedTable(title="זכויות\x0b", headers=["a\x01"], rows=[["x\x0by", "ok"]])
    built = build_workbook([table], labels=UPLOAD_LABELS)
    ws = _reload(built)[built.sheetnames[0]]
    assert ws["A1"].value == "זכויות"
    assert ws["A3"].value == "a"
    assert [c.value for c in ws[4]] == ["xy", "ok"]


def test_sheet_name_drops_control_characters():
    assert sheet_name(1, "a\x0bb", "Table_", 20) == "Table_1_ab"


def test_cells_starting_with_equals_stay_text():
    table = ExtractedTable(headers=["=SUM(A1:A2)"], rows=[["=1+1", "120"]])
    ws = _reload(build_workbook([table], labels=UPLOAD_LABELS))["Table_1"]
    assert ws["A1"].data_type == "s"
    assert ws["A1"].value == "=SUM(A1:A2)"
    assert ws["A2"].data_type == "s"
    assert ws["A2"].value == "=1+1"
    assert ws["B2"].value == "120"
