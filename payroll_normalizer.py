#!/usr/bin/env python3
"""
Payroll Sheet Normalizer
Turns the monthly staff / worker payroll sheets into one salary timeline per employee
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

import pandas as pd

from bonus_config import (
    NOT_APPLICABLE_DATES,
    PLACEHOLDER_JOINING_DATE,
    SENTINEL,
    SENTINEL_KEY_PREFIX,
)
from cohort_layouts import PayrollRow, layout_for, parse_joining_date
from workbook_io import WorkbookSource, load_workbook_frames

logger = logging.getLogger(__name__)

MONTH_CODES = {
    "JAN": "JAN", "JANUARY": "JAN",
    "FEB": "FEB", "FEBRUARY": "FEB",
    "MAR": "MAR", "MARCH": "MAR",
    "APR": "APR", "APRIL": "APR",
    "MAY": "MAY",
    "JUN": "JUN", "JUNE": "JUN",
    "JUL": "JUL", "JULY": "JUL",
    "AUG": "AUG", "AUGUST": "AUG",
    "SEP": "SEP", "SEPT": "SEP", "SEPTEMBER": "SEP",
    "OCT": "OCT", "OCTOBER": "OCT",
    "NOV": "NOV", "NOVEMBER": "NOV",
    "DEC": "DEC", "DECEMBER": "DEC",
}

_MONTH_NAME_RE = re.compile(r"^\s*([A-Za-z]+)")
_YEAR_RE = re.compile(r"(\d{2,4})\s*$")


def parse_month_key(text: str) -> Optional[str]:
    """'JULY-2025' -> 'JUL-25', None when the text is not a month label"""
    month_match = _MONTH_NAME_RE.match(text)
    year_match = _YEAR_RE.search(text)
    if not (month_match and year_match):
        return None
    code = MONTH_CODES.get(month_match.group(1).upper())
    if code is None:
        return None
    return f"{code}-{year_match.group(1)[-2:]}"


def normalize_month_key(sheet_name: str, suffix: str = "") -> str:
    """'NOVEMBER-2024 O' -> 'NOV-24'; unparseable names fall back to their first 6 characters"""
    name = str(sheet_name).strip()
    if suffix and name.endswith(suffix):
        name = name[: -len(suffix)].strip()
    return parse_month_key(name) or str(sheet_name).strip()[:6]


def month_code(month_key: str) -> str:
    """3-letter month code of a canonical key ('JUL-25' -> 'JUL')"""
    return month_key.split("-")[0].upper()[:3]


@dataclass(frozen=True)
class MonthlyRecord:
    month: str
    salary: float
    department: str


@dataclass
class Employee:
    emp_id: str
    name: str
    department: str
    date_of_joining: Optional[date]
    cohort: str
    is_cash_salary: bool = False
    is_sentinel: bool = False
    records: Dict[str, MonthlyRecord] = field(default_factory=dict)

    def add_record(self, record: MonthlyRecord) -> bool:
        """Insert-if-absent per month; a zero record yields to a later non-zero one"""
        existing = self.records.get(record.month)
        if existing is None or (existing.salary <= 0 < record.salary):
            self.records[record.month] = record
            return True
        return False

    @property
    def monthly_records(self) -> List[MonthlyRecord]:
        return list(self.records.values())

    def to_dict(self) -> Dict:
        return {
            "emp_id": self.emp_id,
            "name": self.name,
            "department": self.department,
            "date_of_joining": self.date_of_joining.isoformat() if self.date_of_joining else None,
            "cohort": self.cohort,
            "is_cash_salary": self.is_cash_salary,
            "is_sentinel": self.is_sentinel,
            "monthly_records": [
                {"month": r.month, "salary": r.salary, "department": r.department}
                for r in self.monthly_records
            ],
        }


@dataclass
class NormalizedCohort:
    cohort: str
    employees: List[Employee]
    sheets_processed: List[str] = field(default_factory=list)
    sheets_skipped: List[str] = field(default_factory=list)
    rows_accepted: int = 0
    rows_skipped: int = 0


class PayrollSheetNormalizer:
    """
    Reads every monthly sheet of one cohort workbook and merges the rows into
    per-employee timelines keyed by employee id ("N_<name>" for sentinel rows)
    """

    def parse_cohort_file(self, source: WorkbookSource, cohort: str) -> NormalizedCohort:
        return self.parse_cohort(load_workbook_frames(source), cohort)

    def parse_cohort(self, sheets: Dict[str, pd.DataFrame], cohort: str) -> NormalizedCohort:
        layout = layout_for(cohort)
        employees: Dict[str, Employee] = {}
        result = NormalizedCohort(cohort=cohort, employees=[])

        for sheet_name, frame in sheets.items():
            if not layout.matches_sheet(sheet_name):
                logger.debug("Skipping non-%s sheet: %s", cohort, sheet_name)
                result.sheets_skipped.append(sheet_name)
                continue

            month = normalize_month_key(sheet_name, layout.sheet_suffix)
            accepted = 0
            for row_idx in range(layout.header_rows, len(frame.index)):
                row = layout.read_row(frame, row_idx)
                if self._merge_row(employees, row, month, cohort):
                    accepted += 1
                else:
                    result.rows_skipped += 1

            result.rows_accepted += accepted
            result.sheets_processed.append(sheet_name)
            logger.info("Processed %d %s rows from sheet %s (%s)", accepted, cohort, sheet_name, month)

        result.employees = list(employees.values())
        logger.info("Total parsed %s employees: %d", cohort, len(result.employees))
        return result

    def _merge_row(self, employees: Dict[str, Employee], row: PayrollRow, month: str, cohort: str) -> bool:
        emp_id, name = row.emp_id, row.name
        if not emp_id or not name or emp_id == "0":
            return False
        if emp_id.lower() == "total" or name.lower() == "total":
            return False

        doj_text = row.joining_date_text
        sentinel = emp_id.startswith(SENTINEL) or doj_text == SENTINEL

        if sentinel:
            department = SENTINEL
            joining_date = PLACEHOLDER_JOINING_DATE
            salary = max(row.salary, 0.0)
            key = f"{SENTINEL_KEY_PREFIX}{name}"
        else:
            if doj_text in NOT_APPLICABLE_DATES:
                logger.debug("Skipping %s (%s): joining date not applicable", emp_id, month)
                return False
            joining_date = parse_joining_date(row.joining_date_raw)
            if joining_date is None:
                logger.debug("Skipping %s (%s): unparseable joining date %r", emp_id, month, row.joining_date_raw)
                return False
            if row.salary <= 0:
                return False
            department = row.department
            salary = row.salary
            key = emp_id

        employee = employees.get(key)
        if employee is None:
            employee = Employee(
                emp_id=emp_id,
                name=name,
                department=department,
                date_of_joining=joining_date,
                cohort=cohort,
                is_sentinel=sentinel,
            )
            employees[key] = employee

        employee.add_record(MonthlyRecord(month=month, salary=salary, department=department))
        # Later sheets win for the primary department
        employee.department = department
        if row.is_cash:
            employee.is_cash_salary = True
        return True


def monthly_salary_summary(cohort: NormalizedCohort) -> Dict:
    """Per-month salary totals, head counts and averages for one cohort"""
    rows = [
        {"month": record.month, "salary": record.salary}
        for employee in cohort.employees
        for record in employee.monthly_records
    ]
    if not rows:
        return {
            "type": cohort.cohort.upper(),
            "monthly_summary": {},
            "overall_summary": {"total_salary": 0, "total_employees": 0, "avg_salary": 0},
        }

    frame = pd.DataFrame(rows)
    grouped = frame.groupby("month", sort=True)["salary"].agg(["sum", "count"])
    monthly = {
        month: {
            "total_salary": round(float(values["sum"]), 2),
            "count": int(values["count"]),
            "avg_salary": round(float(values["sum"]) / int(values["count"]), 2),
        }
        for month, values in grouped.iterrows()
    }

    total_salary = float(frame["salary"].sum())
    total_employees = len(cohort.employees)
    return {
        "type": cohort.cohort.upper(),
        "monthly_summary": monthly,
        "overall_summary": {
            "total_salary": round(total_salary, 2),
            "total_employees": total_employees,
            "avg_salary": round(total_salary / total_employees, 2) if total_employees else 0,
        },
    }
