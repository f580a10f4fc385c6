# Overview: One day's scan records as an .xlsx workbook with the fixed UIDs column contract.

from __future__ import annotations

import io

from openpyxl import Workbook

from uidops.models import ScanRecord
from uidops.time_utils import to_utc_z


SHEET_TITLE = "UIDs"

# (header, record attribute, column width); order and headers are a compatibility surface.
EXPORT_COLUMNS = (
    ("Date", "date_local", 12),
    ("Mobile Bin (BOX)", "mobile_bin", 16),
    ("SSCC Label (BOX)", "sscc_label", 18),
    ("PO_Number", "po_number", 14),
    ("SKU_Code", "sku_code", 14),
    ("UID", "uid", 22),
    ("Status", "status", 10),
    ("Completed At", "completed_at", 22),
)


def export_filename(date_local: str) -> str:
    return f"uids_{date_local}.xlsx"


def _cell(record: ScanRecord, attr: str):
    value = getattr(record, attr)
    if attr == "completed_at":
        return to_utc_z(value)
    return value


def build_workbook(records: list[ScanRecord]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append([header for header, _, _ in EXPORT_COLUMNS])
    for idx, (_, _, width) in enumerate(EXPORT_COLUMNS, start=1):
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = width
    for record in records:
        ws.append([_cell(record, attr) for _, attr, _ in EXPORT_COLUMNS])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
