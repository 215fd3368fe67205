"""
Report layout
Column labels, per-row formulas and summary rows for the bonus workbook.
Everything here is plain data; bonus_report_writer only places it in cells.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List

from openpyxl.utils import get_column_letter

from bonus_calculator import BonusComputation, is_staff_department, round_half_up
from bonus_config import FISCAL_START_YEAR, STATUTORY_RATE, fiscal_month_labels
from reconciliation import RECONCILED_FIELDS, ReconciliationRecord

MONTH_LABELS = fiscal_month_labels()

LEADING_HEADERS = ["Sr.No.", "EMP Code", "Deptt.", "EMP. NAME", "%"]
TRAILING_HEADERS = ["GROSS SAL.", "GROSS 02", "Register", "Already Paid", "Un Paid",
                    "After V", "Actual", "Reim.", "Loan", "Final RTGS"]
BONUS_HEADERS = LEADING_HEADERS + MONTH_LABELS + TRAILING_HEADERS


def _col(header: str) -> str:
    return get_column_letter(BONUS_HEADERS.index(header) + 1)


PERCENT = _col("%")
GROSS = _col("GROSS SAL.")
GROSS2 = _col("GROSS 02")
REGISTER = _col("Register")
ALREADY_PAID = _col("Already Paid")
UNPAID = _col("Un Paid")
AFTER_V = _col("After V")
ACTUAL = _col("Actual")

# Derived-field formulas a rendered report reproduces, {r} is the sheet row
FORMULAS = {
    "GROSS 02": f'=ROUND(IF({PERCENT}{{r}}={STATUTORY_RATE},{GROSS}{{r}},'
                f'IF({PERCENT}{{r}}>{STATUTORY_RATE},{GROSS}{{r}}*0.6,0)),0)',
    "Register": f"=ROUND({GROSS2}{{r}}*{STATUTORY_RATE}/100,0)",
    "After V": f"={REGISTER}{{r}}-({ALREADY_PAID}{{r}}+{UNPAID}{{r}})",
    "Reim.": f"={AFTER_V}{{r}}-{ACTUAL}{{r}}",
    "Final RTGS": f"={REGISTER}{{r}}-({ALREADY_PAID}{{r}}+{UNPAID}{{r}})",
}
TOTAL_HEADERS = TRAILING_HEADERS

TITLE_ROW = 1
HEADER_ROW = 3
FIRST_DATA_ROW = 4

COMPARISON_HEADERS = (
    ["EMP. ID", "Employee Name", "Department"]
    + [f"HR {name}" for name in RECONCILED_FIELDS]
    + [f"System {name}" for name in RECONCILED_FIELDS]
    + [f"Diff {name}" for name in RECONCILED_FIELDS]
    + ["Status", "Source"]
)
MONTHLY_COMPARISON_HEADERS = ["Month", "Our Total", "HR Total", "Difference"]
SUMMARY_HEADERS = ["Department", "Employees", "Total Gross Salary", "Total Bonus", "Average Bonus"]


@dataclass
class SheetLayout:
    sheet_name: str
    title: str
    headers: List[str]
    rows: List[List[object]] = field(default_factory=list)
    totals: List[object] = field(default_factory=list)


def sheet_name_for(department: str) -> str:
    if department == "S":
        name = "Staff"
    elif department == "W":
        name = "Worker"
    else:
        name = department
    # Excel sheet names: max 31 chars, no []:*?/\
    name = re.sub(r"[\[\]:*?/\\]", "_", name).strip() or "Unknown"
    return name[:31]


def bonus_row(calc: BonusComputation, serial: int, row_num: int) -> List[object]:
    months = [round_half_up(s) if s else None for s in calc.monthly_salaries]
    values = {
        "GROSS SAL.": calc.total_gross_salary,
        "Already Paid": calc.already_paid,
        "Un Paid": calc.unpaid,
        "Actual": calc.actual,
        "Loan": calc.loan,
    }
    trailing = []
    for header in TRAILING_HEADERS:
        if header == "Register" and calc.is_cash_salary:
            trailing.append(0)
        elif header in FORMULAS:
            trailing.append(FORMULAS[header].format(r=row_num))
        else:
            trailing.append(values[header])
    return [serial, calc.emp_id, calc.department, calc.name, calc.bonus_percent] + months + trailing


def department_sheet(department: str, calculations: List[BonusComputation]) -> SheetLayout:
    sheet_name = sheet_name_for(department)
    cohort_label = "" if is_staff_department(department) else " (WORKERS)"
    layout = SheetLayout(
        sheet_name=sheet_name,
        title=(f"BONUS LIST FROM NOVEMBER-{FISCAL_START_YEAR} TO OCTOBER-{FISCAL_START_YEAR + 1}"
               f" - {sheet_name.upper()}{cohort_label}"),
        headers=list(BONUS_HEADERS),
    )
    for idx, calc in enumerate(calculations):
        layout.rows.append(bonus_row(calc, idx + 1, FIRST_DATA_ROW + idx))

    last_row = FIRST_DATA_ROW + len(calculations) - 1
    totals: List[object] = ["GRAND TOTAL"] + [None] * (len(BONUS_HEADERS) - 1)
    if calculations:
        for header in TOTAL_HEADERS:
            letter = _col(header)
            totals[BONUS_HEADERS.index(header)] = f"=SUM({letter}{FIRST_DATA_ROW}:{letter}{last_row})"
    layout.totals = totals
    return layout


def summary_rows(groups: Dict[str, List[BonusComputation]]) -> Dict[str, object]:
    """Per-department employees, gross, bonus (final payout) and average bonus, plus grand totals"""
    rows = []
    grand_employees, grand_gross, grand_bonus = 0, 0, 0
    for department, calculations in groups.items():
        employees = len(calculations)
        gross = sum(c.total_gross_salary for c in calculations)
        bonus = sum(c.final_payout for c in calculations)
        rows.append({
            "department": department,
            "employees": employees,
            "total_gross_salary": gross,
            "total_bonus": bonus,
            "average_bonus": round(bonus / employees, 2) if employees else 0,
        })
        grand_employees += employees
        grand_gross += gross
        grand_bonus += bonus

    grand_total = {
        "department": "GRAND TOTAL",
        "employees": grand_employees,
        "total_gross_salary": grand_gross,
        "total_bonus": grand_bonus,
        "average_bonus": round(grand_bonus / grand_employees, 2) if grand_employees else 0,
    }
    return {"rows": rows, "grand_total": grand_total}


def comparison_row(record: ReconciliationRecord) -> List[object]:
    hr = record.hr or {}
    return (
        [record.emp_id, record.name, record.department]
        + [hr.get(name) for name in RECONCILED_FIELDS]
        + [record.system[name] for name in RECONCILED_FIELDS]
        + [record.differences.get(name) for name in RECONCILED_FIELDS]
        + [record.status.value, record.source]
    )


def group_records(records: List[ReconciliationRecord]) -> Dict[str, List[ReconciliationRecord]]:
    grouped: Dict[str, List[ReconciliationRecord]] = {}
    for record in records:
        grouped.setdefault(record.department or "Unknown", []).append(record)
    return grouped
