"""
Excel export of a ledger report
"""
from __future__ import annotations

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from models import LedgerReport
from computations import balance_status

POSITIVE_FILL = PatternFill("solid", fgColor="DCFCE7")
NEGATIVE_FILL = PatternFill("solid", fgColor="FEE2E2")


def _style_header(ws, row=1):
    """Apply header styling to worksheet row"""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="3B82F6")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width=10, max_width=45):
    """Auto-size columns based on content"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        max_len = 0
        for cell in ws[letter]:
            v = cell.value
            if v is None:
                continue
            s = str(v)
            max_len = max(max_len, len(s))
        ws.column_dimensions[letter].width = max(min_width, min(max_width, max_len + 2))


def _number_format(ws, first_col, last_col, first_row=2):
    for r in range(first_row, ws.max_row + 1):
        for c in range(first_col, last_col + 1):
            ws.cell(r, c).number_format = "0.00"


def export_excel(report: LedgerReport, filepath: str) -> None:
    """
    Export a report snapshot to an Excel file with sheets:
    - Summary: household totals and meal rate
    - Members: per-member settlement, balance > 0 receivable (PABE), < 0 payable (DEBE)
    - Shop: running account with the shop
    """
    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)

    stats = report.stats

    ws = wb.create_sheet("Summary")
    ws.append(["Description", "Value"])
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    rows = [
        ("Window", report.window),
        ("Total Meals", stats.total_meals),
        ("Market Expenses (Bazar)", stats.total_expenses),
        ("Extra Expenses", stats.total_extra_expenses),
        ("Maid Payment", stats.total_maid_payments),
        ("Total Deposits", stats.total_deposits),
        ("Cash Balance", stats.cash_balance),
        ("Meal Rate", stats.meal_rate),
        ("Total Receivable (+)", report.total_receivable),
        ("Total Payable (-)", report.total_payable),
    ]
    for label, value in rows:
        ws.append([label, value])
        ws.cell(ws.max_row, 1).font = Font(bold=True)
    _number_format(ws, 2, 2, first_row=3)
    _autosize_columns(ws)

    ws = wb.create_sheet("Members")
    ws.append(["#", "ID", "Member", "Lunch", "Dinner", "Meals", "Cost", "Deposit", "Balance", "Status"])
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    for i, s in enumerate(report.summaries, start=1):
        ws.append([
            i, s.member_id, s.name, s.total_lunch, s.total_dinner, s.total_meals,
            s.total_cost, s.total_deposit, s.balance, balance_status(s.balance),
        ])
        if s.balance > 0:
            ws.cell(ws.max_row, 9).fill = POSITIVE_FILL
        elif s.balance < 0:
            ws.cell(ws.max_row, 9).fill = NEGATIVE_FILL
    if report.summaries:
        ws.append(["TOTALS"] + [""] * 9)
        trow = ws.max_row
        ws.cell(trow, 1).font = Font(bold=True)
        for col in range(4, 10):
            letter = get_column_letter(col)
            ws.cell(trow, col).value = f"=SUM({letter}2:{letter}{trow - 1})"
    _number_format(ws, 4, 9)
    _autosize_columns(ws)

    ws = wb.create_sheet("Shop")
    ws.append(["Total Purchase", "Total Payment", "Balance"])
    _style_header(ws, 1)
    ws.append([report.shop.total_purchase, report.shop.total_payment, report.shop.balance])
    _number_format(ws, 1, 3)
    _autosize_columns(ws)

    wb.save(filepath)
