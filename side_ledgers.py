"""
Side ledgers: due vouchers, loan deductions, percentage overrides and the HR
comparison ledger. Every parser tolerates a missing or malformed workbook and
returns an empty map instead of raising.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Dict, Optional

import pandas as pd

from cohort_layouts import cell_number, cell_text, normalize_emp_id
from payroll_normalizer import month_code, parse_month_key
from workbook_io import WorkbookSource, cell_at, load_workbook_frames

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 15
HR_HEADER_SCAN_ROWS = 10
HEADER_WORDS = {"ID", "CODE", "EMPID", "EMPCODE", "EMPNO"}

# Fixed 1-based columns below the header row
DUE_VOUCHER_COLUMNS = {"emp_id": 1, "name": 2, "dept": 3, "category": 4, "amount": 5}
LOAN_COLUMNS = {"emp_id": 1, "name": 2, "amount": 3}
PERCENTAGE_COLUMNS = {"emp_id": 1, "name": 2, "percent": 3}

ALREADY_PAID = "A"
UNPAID = "U"

# HR ledger columns are bound by header label
HR_ID_HEADERS = {"EMPCODE", "EMPID"}
HR_FIELD_HEADERS = {
    "gross_salary": {"GROSSSAL", "GROSS", "GROSSSALARY"},
    "gross2": {"GROSS02", "GROSS2"},
    "register": {"REGISTER"},
    "actual": {"ACTUAL"},
    "unpaid": {"UNPAID", "DUEVC"},
    "final_payout": {"FINALRTGS"},
    "reim": {"REIM"},
}
# Where older HR sheets keep Final RTGS when the header is missing (S..X)
HR_FINAL_FALLBACK_COLUMNS = range(19, 25)


@dataclass
class DueVoucherEntry:
    already_paid: float = 0.0
    unpaid: float = 0.0
    dept: str = ""


@dataclass
class HRLedgerEntry:
    emp_id: str
    name: str
    department: str
    gross_salary: float = 0.0
    gross2: float = 0.0
    register: float = 0.0
    actual: float = 0.0
    unpaid: float = 0.0
    final_payout: float = 0.0
    reim: float = 0.0
    monthly: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return asdict(self)


def _header_label(value) -> str:
    return re.sub(r"[^A-Z0-9]", "", cell_text(value).upper())


def _find_header_row(frame: pd.DataFrame, max_scan: int = HEADER_SCAN_ROWS) -> int:
    """First row in the scan window carrying a header token; row 0 otherwise"""
    for row_idx in range(min(max_scan, len(frame.index))):
        for value in frame.iloc[row_idx].tolist():
            label = _header_label(value)
            if label.startswith("EMP") or label in HEADER_WORDS:
                return row_idx
    return 0


def _load(source: Optional[WorkbookSource], ledger: str) -> Dict[str, pd.DataFrame]:
    if source is None:
        return {}
    try:
        return load_workbook_frames(source)
    except Exception as exc:
        logger.warning("Could not read %s ledger: %s", ledger, exc)
        return {}


def parse_due_voucher_list(source: Optional[WorkbookSource]) -> Dict[str, DueVoucherEntry]:
    """Already-paid (A) and unpaid (U) voucher amounts accumulated per employee id"""
    vouchers: Dict[str, DueVoucherEntry] = {}
    try:
        for sheet_name, frame in _load(source, "due voucher").items():
            start = _find_header_row(frame) + 1
            for row_idx in range(start, len(frame.index)):
                emp_id = normalize_emp_id(cell_at(frame, row_idx, DUE_VOUCHER_COLUMNS["emp_id"]))
                category = cell_text(cell_at(frame, row_idx, DUE_VOUCHER_COLUMNS["category"])).upper()
                amount = cell_number(cell_at(frame, row_idx, DUE_VOUCHER_COLUMNS["amount"]))
                if not emp_id or amount == 0 or category not in (ALREADY_PAID, UNPAID):
                    continue

                entry = vouchers.setdefault(emp_id, DueVoucherEntry())
                if category == ALREADY_PAID:
                    entry.already_paid += amount
                else:
                    entry.unpaid += amount
                dept = cell_text(cell_at(frame, row_idx, DUE_VOUCHER_COLUMNS["dept"]))
                if dept:
                    entry.dept = dept
    except Exception as exc:
        logger.warning("Malformed due voucher ledger ignored: %s", exc)
        return {}

    logger.info("Parsed %d due voucher records", len(vouchers))
    return vouchers


def parse_loan_deduction(source: Optional[WorkbookSource]) -> Dict[str, float]:
    """Latest positive loan deduction per employee id"""
    loans: Dict[str, float] = {}
    try:
        for sheet_name, frame in _load(source, "loan deduction").items():
            start = _find_header_row(frame) + 1
            for row_idx in range(start, len(frame.index)):
                emp_id = normalize_emp_id(cell_at(frame, row_idx, LOAN_COLUMNS["emp_id"]))
                amount = cell_number(cell_at(frame, row_idx, LOAN_COLUMNS["amount"]))
                if emp_id and amount > 0:
                    loans[emp_id] = amount
    except Exception as exc:
        logger.warning("Malformed loan deduction ledger ignored: %s", exc)
        return {}

    logger.info("Parsed %d loan deductions", len(loans))
    return loans


def parse_actual_percentage(source: Optional[WorkbookSource]) -> Dict[str, float]:
    """Custom bonus percentage per employee id (positive values only)"""
    percentages: Dict[str, float] = {}
    try:
        for sheet_name, frame in _load(source, "percentage").items():
            start = _find_header_row(frame) + 1
            for row_idx in range(start, len(frame.index)):
                emp_id = normalize_emp_id(cell_at(frame, row_idx, PERCENTAGE_COLUMNS["emp_id"]))
                percent = cell_number(cell_at(frame, row_idx, PERCENTAGE_COLUMNS["percent"]))
                if emp_id and percent > 0:
                    percentages[emp_id] = percent
    except Exception as exc:
        logger.warning("Malformed percentage ledger ignored: %s", exc)
        return {}

    logger.info("Parsed %d custom percentages", len(percentages))
    return percentages


def _hr_columns(frame: pd.DataFrame, header_idx: int) -> Dict[str, object]:
    fields: Dict[str, int] = {}
    months: Dict[str, int] = {}
    for col_idx, value in enumerate(frame.iloc[header_idx].tolist(), start=1):
        label = _header_label(value)
        for name, aliases in HR_FIELD_HEADERS.items():
            if label in aliases and name not in fields:
                fields[name] = col_idx
        key = parse_month_key(cell_text(value))
        if key:
            months[month_code(key)] = col_idx
    return {"fields": fields, "months": months}


def parse_hr_ledger(source: Optional[WorkbookSource]) -> Dict[str, HRLedgerEntry]:
    """HR bonus ledger keyed by employee id, one sheet per department"""
    ledger: Dict[str, HRLedgerEntry] = {}
    try:
        for sheet_name, frame in _load(source, "HR comparison").items():
            header_idx = None
            for row_idx in range(min(HR_HEADER_SCAN_ROWS, len(frame.index))):
                if _header_label(cell_at(frame, row_idx, 2)) in HR_ID_HEADERS:
                    header_idx = row_idx
                    break
            if header_idx is None:
                logger.debug("No HR header found in sheet %s", sheet_name)
                continue

            columns = _hr_columns(frame, header_idx)
            for row_idx in range(header_idx + 1, len(frame.index)):
                emp_id = normalize_emp_id(cell_at(frame, row_idx, 2))
                name = cell_text(cell_at(frame, row_idx, 4))
                if not emp_id or not name or emp_id in ledger:
                    continue
                if emp_id.lower() == "total" or name.lower() == "total":
                    continue

                entry = HRLedgerEntry(
                    emp_id=emp_id,
                    name=name,
                    department=cell_text(cell_at(frame, row_idx, 3)) or str(sheet_name)[:1],
                )
                for field_name, col_idx in columns["fields"].items():
                    setattr(entry, field_name, cell_number(cell_at(frame, row_idx, col_idx)))
                if "final_payout" not in columns["fields"]:
                    for col_idx in HR_FINAL_FALLBACK_COLUMNS:
                        value = cell_number(cell_at(frame, row_idx, col_idx))
                        if value > 0:
                            entry.final_payout = value
                            break
                entry.monthly = {
                    code: cell_number(cell_at(frame, row_idx, col_idx))
                    for code, col_idx in columns["months"].items()
                }
                ledger[emp_id] = entry
    except Exception as exc:
        logger.warning("Malformed HR comparison ledger ignored: %s", exc)
        return {}

    logger.info("Parsed %d HR bonus records", len(ledger))
    return ledger
