"""
Cohort row schemas
Binds the fixed column positions of the staff and worker payroll sheets to
named fields, and owns the cell parsing used by every reader.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

import numpy as np
import pandas as pd

from workbook_io import cell_at

STAFF = "staff"
WORKER = "worker"

EXCEL_EPOCH = date(1899, 12, 30)

_DATE_PATTERNS = [
    # DD.MM.YY
    (re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{2})$"), lambda m: (2000 + int(m[3]), int(m[2]), int(m[1]))),
    # D.M.YYYY
    (re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$"), lambda m: (int(m[3]), int(m[2]), int(m[1]))),
    # YYYY-MM-DD
    (re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$"), lambda m: (int(m[1]), int(m[2]), int(m[3]))),
    # M/D/YYYY
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), lambda m: (int(m[3]), int(m[1]), int(m[2]))),
]


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    return value is pd.NaT


def cell_text(value) -> str:
    """Cell as trimmed text; integral floats lose their '.0' (143.0 -> '143')"""
    if is_blank(value):
        return ""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.strftime("%Y-%m-%d")
    return str(value).strip()


def cell_number(value) -> float:
    """Cell as a float, 0.0 when empty or not numeric"""
    if is_blank(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    text = str(value).replace(",", "").strip()
    number = pd.to_numeric(text, errors="coerce")
    if pd.isna(number):
        return 0.0
    return float(number)


def normalize_emp_id(value) -> str:
    """Employee id in integer string form when numeric ('143.0' -> '143')"""
    text = cell_text(value)
    try:
        number = float(text)
    except ValueError:
        return text
    if number.is_integer():
        return str(int(number))
    return text


def parse_joining_date(value) -> Optional[date]:
    """Parse a joining-date cell; None when it is not a valid calendar date"""
    if is_blank(value):
        return None
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        # Excel serial day number
        if value <= 0:
            return None
        try:
            return EXCEL_EPOCH + timedelta(days=int(value))
        except (OverflowError, ValueError):
            return None

    text = str(value).strip()
    for pattern, parts in _DATE_PATTERNS:
        match = pattern.match(text)
        if match:
            try:
                return date(*parts(match))
            except ValueError:
                return None

    parsed = pd.to_datetime(text, errors="coerce", dayfirst=True)
    if pd.isna(parsed):
        return None
    return parsed.date()


@dataclass(frozen=True)
class CohortLayout:
    """Fixed 1-based column positions of one cohort's monthly sheet"""
    cohort: str
    sheet_suffix: str
    header_rows: int
    default_department: str
    emp_id_col: int
    department_col: int
    name_col: int
    salary_col: int
    joining_date_col: int
    payment_mode_col: int

    def matches_sheet(self, sheet_name: str) -> bool:
        name = str(sheet_name).strip()
        return "-" in name and name.endswith(self.sheet_suffix)

    def read_row(self, frame: pd.DataFrame, row_idx: int) -> "PayrollRow":
        return PayrollRow(
            emp_id=cell_text(cell_at(frame, row_idx, self.emp_id_col)),
            department=cell_text(cell_at(frame, row_idx, self.department_col)) or self.default_department,
            name=cell_text(cell_at(frame, row_idx, self.name_col)),
            salary=cell_number(cell_at(frame, row_idx, self.salary_col)),
            joining_date_raw=cell_at(frame, row_idx, self.joining_date_col),
            payment_mode=cell_text(cell_at(frame, row_idx, self.payment_mode_col)).upper(),
        )


@dataclass(frozen=True)
class PayrollRow:
    """One data row of a monthly sheet, read but not yet validated"""
    emp_id: str
    department: str
    name: str
    salary: float
    joining_date_raw: object
    payment_mode: str

    @property
    def joining_date_text(self) -> str:
        return cell_text(self.joining_date_raw).upper()

    @property
    def is_cash(self) -> bool:
        return self.payment_mode == "CASH"


STAFF_LAYOUT = CohortLayout(
    cohort=STAFF,
    sheet_suffix=" O",
    header_rows=3,
    default_department="S",
    emp_id_col=2,          # B: EMP. ID
    department_col=3,      # C: DEPT
    name_col=5,            # E: EMPLOYEE NAME
    salary_col=15,         # O: SALARY1
    joining_date_col=33,   # AG: DOJ
    payment_mode_col=34,   # AH: PAY MODE
)

WORKER_LAYOUT = CohortLayout(
    cohort=WORKER,
    sheet_suffix=" W",
    header_rows=2,
    default_department="W",
    emp_id_col=2,          # B: EMP. ID
    department_col=3,      # C: DEPT
    name_col=4,            # D: EMPLOYEE NAME
    salary_col=9,          # I: Salary1
    joining_date_col=26,   # Z: DOJ
    payment_mode_col=27,   # AA: PAY MODE
)

LAYOUTS = {STAFF: STAFF_LAYOUT, WORKER: WORKER_LAYOUT}


def layout_for(cohort: str) -> CohortLayout:
    try:
        return LAYOUTS[cohort]
    except KeyError:
        raise ValueError(f"Unknown cohort: {cohort!r} (expected 'staff' or 'worker')")
