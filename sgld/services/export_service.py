"""
Review register export — planning forms as a spreadsheet for reviewers.

Formats:
    xlsx  two sheets: "Register" (one row per form) and "Budget Lines"
    csv   the Register sheet only
"""

import csv
import io
import logging
import math
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from sgld.domain.budget import budget_summary

logger = logging.getLogger(__name__)

STATUS_FILLS = {
    "approved": PatternFill(start_color="27AE60", end_color="27AE60", fill_type="solid"),
    "submitted": PatternFill(start_color="F39C12", end_color="F39C12", fill_type="solid"),
    "rejected": PatternFill(start_color="E74C3C", end_color="E74C3C", fill_type="solid"),
}
WHITE_FONT = Font(color="FFFFFF", bold=True)
HEADER_FILL = PatternFill(start_color="2C3E50", end_color="2C3E50", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
MONEY_FORMAT = '#,##0.00;[Red]-#,##0.00'

REGISTER_HEADERS = [
    "Form ID", "Organization", "Status", "Date of Submission", "Submitted At",
    "Total Expenditure", "Total Income", "Net Balance",
    "Decision", "Decided By", "Decided At", "Reviewer Comments",
]
BUDGET_HEADERS = ["Form ID", "Organization", "Type", "Description", "Amount"]


def _iso(value) -> str:
    return value.isoformat() if value else ""


def _money(value):
    """Numeric cell value; amounts too large for a float stay as decimal text."""
    as_float = float(value)
    return as_float if math.isfinite(as_float) else str(value)


def register_rows(docs) -> list[list]:
    """One register row per form, in the order given."""
    rows = []
    for doc in docs:
        summary = budget_summary(doc)
        decision = doc.decision
        rows.append([
            doc.id,
            doc.organization_name,
            doc.status,
            doc.date_submission,
            _iso(doc.submitted_at),
            _money(summary.total_expenditure),
            _money(summary.total_income),
            _money(summary.net_balance),
            decision.kind if decision else "",
            decision.decided_by if decision else "",
            _iso(decision.decided_at) if decision else "",
            decision.comments if decision else "",
        ])
    return rows


def _apply_header_style(ws, row: int, col_count: int) -> None:
    """Apply dark-header styling to an Excel row (1-indexed)."""
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def export_forms_xlsx(docs, generated_at: datetime | None = None) -> bytes:
    """Build the reviewer register workbook and return its bytes."""
    docs = list(docs)
    generated_at = generated_at or datetime.now(timezone.utc)
    wb = Workbook()

    # ── Sheet 1: Register ─────────────────────────────────────────────
    ws = wb.active
    ws.title = "Register"
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(REGISTER_HEADERS))
    ws["A1"] = "SGLD Project Planning Forms — Review Register"
    ws["A1"].font = Font(size=16, bold=True)
    ws["A2"] = f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M UTC')}  ·  {len(docs)} form(s)"
    ws["A2"].font = Font(size=10, italic=True, color="666666")

    header_row = 4
    for col, header in enumerate(REGISTER_HEADERS, 1):
        ws.cell(row=header_row, column=col, value=header)
    _apply_header_style(ws, header_row, len(REGISTER_HEADERS))

    status_col = REGISTER_HEADERS.index("Status") + 1
    money_cols = {REGISTER_HEADERS.index(h) + 1 for h in ("Total Expenditure", "Total Income", "Net Balance")}
    for r, values in enumerate(register_rows(docs), header_row + 1):
        for c, value in enumerate(values, 1):
            cell = ws.cell(row=r, column=c, value=value)
            cell.border = THIN_BORDER
            if c in money_cols:
                cell.number_format = MONEY_FORMAT
        status_cell = ws.cell(row=r, column=status_col)
        fill = STATUS_FILLS.get(status_cell.value)
        if fill:
            status_cell.fill = fill
            status_cell.font = WHITE_FONT
            status_cell.alignment = Alignment(horizontal="center")
    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)
    _auto_width(ws)

    # ── Sheet 2: Budget Lines ─────────────────────────────────────────
    ws2 = wb.create_sheet("Budget Lines")
    for col, header in enumerate(BUDGET_HEADERS, 1):
        ws2.cell(row=1, column=col, value=header)
    _apply_header_style(ws2, 1, len(BUDGET_HEADERS))

    r = 2
    for doc in docs:
        for kind, lines in (("Expenditure", doc.budget_expenditure), ("Income", doc.budget_income)):
            for line in lines:
                values = [doc.id, doc.organization_name, kind, line.description, _money(line.amount)]
                for c, value in enumerate(values, 1):
                    cell = ws2.cell(row=r, column=c, value=value)
                    cell.border = THIN_BORDER
                ws2.cell(row=r, column=len(BUDGET_HEADERS)).number_format = MONEY_FORMAT
                r += 1
    _auto_width(ws2)

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    logger.info("Review register exported: %d form(s)", len(docs))
    return buf.getvalue()


def export_forms_csv(docs) -> str:
    """The Register sheet as CSV text."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(REGISTER_HEADERS)
    for values in register_rows(docs):
        writer.writerow(["" if v is None else v for v in values])
    return buf.getvalue()
