"""
Bonus Register - Test Configuration

Fixtures that build payroll and ledger sheets in the exact column positions
the readers expect, either as raw DataFrames or as .xlsx bytes.
"""

from datetime import date
from io import BytesIO
from typing import Dict, List

import pandas as pd
import pytest
from openpyxl import Workbook

from cohort_layouts import STAFF_LAYOUT, WORKER_LAYOUT, CohortLayout


AS_OF = date(2025, 10, 31)


class SheetFactory:
    """Builds positional sheets; rows are dicts with emp_id, name, salary, doj, dept, mode"""

    def _cohort_matrix(self, layout: CohortLayout, rows: List[Dict]) -> List[List]:
        width = max(layout.emp_id_col, layout.department_col, layout.name_col,
                    layout.salary_col, layout.joining_date_col, layout.payment_mode_col)
        matrix = [[None] * width for _ in range(layout.header_rows)]
        matrix[0][0] = f"{layout.cohort.upper()} SALARY SHEET"
        labels = matrix[-1]
        labels[0] = "Sr.No."
        labels[layout.emp_id_col - 1] = "EMP. ID"
        labels[layout.department_col - 1] = "DEPT"
        labels[layout.name_col - 1] = "EMPLOYEE NAME"
        labels[layout.salary_col - 1] = "SALARY"
        labels[layout.joining_date_col - 1] = "DOJ"
        labels[layout.payment_mode_col - 1] = "PAY MODE"

        for serial, entry in enumerate(rows, 1):
            row = [None] * width
            row[0] = serial
            row[layout.emp_id_col - 1] = entry.get("emp_id")
            row[layout.department_col - 1] = entry.get("dept")
            row[layout.name_col - 1] = entry.get("name")
            row[layout.salary_col - 1] = entry.get("salary")
            row[layout.joining_date_col - 1] = entry.get("doj")
            row[layout.payment_mode_col - 1] = entry.get("mode", "BANK")
            matrix.append(row)
        return matrix

    def staff_frame(self, rows: List[Dict]) -> pd.DataFrame:
        return pd.DataFrame(self._cohort_matrix(STAFF_LAYOUT, rows))

    def worker_frame(self, rows: List[Dict]) -> pd.DataFrame:
        return pd.DataFrame(self._cohort_matrix(WORKER_LAYOUT, rows))

    def ledger_frame(self, headers: List[str], rows: List[List]) -> pd.DataFrame:
        return pd.DataFrame([headers] + rows)

    def hr_frame(self, rows: List[Dict], extra_headers: List[str] = None) -> pd.DataFrame:
        """HR sheet: title row, header row with EMP Code in column B, then data"""
        headers = ["Sr.No.", "EMP Code", "Deptt.", "EMP. NAME", "NOV-24",
                   "GROSS SAL.", "GROSS 02", "Register", "Actual", "Un Paid", "Final RTGS", "Reim."]
        headers += extra_headers or []
        matrix = [["BONUS LIST"] + [None] * (len(headers) - 1), headers]
        for serial, entry in enumerate(rows, 1):
            matrix.append([
                serial, entry["emp_id"], entry.get("dept"), entry["name"], entry.get("nov", 0),
                entry.get("gross_salary", 0), entry.get("gross2", 0), entry.get("register", 0),
                entry.get("actual", 0), entry.get("unpaid", 0), entry.get("final_payout", 0),
                entry.get("reim", 0),
            ] + [None] * len(extra_headers or []))
        return pd.DataFrame(matrix)

    @staticmethod
    def to_xlsx(frames: Dict[str, pd.DataFrame]) -> bytes:
        wb = Workbook()
        wb.remove(wb.active)
        for sheet_name, frame in frames.items():
            ws = wb.create_sheet(sheet_name)
            for row_idx, row in enumerate(frame.itertuples(index=False), 1):
                for col_idx, value in enumerate(row, 1):
                    if value is None or (isinstance(value, float) and pd.isna(value)):
                        continue
                    ws.cell(row=row_idx, column=col_idx, value=value)
        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()


@pytest.fixture
def sheets():
    return SheetFactory()


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def staff_book(sheets):
    """Two staff months: a long-serving bank employee, a cash employee and a sentinel row"""
    return {
        "NOVEMBER-2024 O": sheets.staff_frame([
            {"emp_id": 101, "dept": "S", "name": "Asha Rao", "salary": 30000, "doj": "15.06.22"},
            {"emp_id": 102, "dept": "S", "name": "Ravi Kumar", "salary": 20000, "doj": "01.03.25", "mode": "CASH"},
            {"emp_id": "N5", "dept": "S", "name": "Kiran Das", "salary": 0, "doj": "N"},
        ]),
        "AUGUST-2025 O": sheets.staff_frame([
            {"emp_id": 101, "dept": "S", "name": "Asha Rao", "salary": 30000, "doj": "15.06.22"},
            {"emp_id": 102, "dept": "S", "name": "Ravi Kumar", "salary": 20000, "doj": "01.03.25", "mode": "CASH"},
        ]),
    }


@pytest.fixture
def worker_book(sheets):
    """Two worker months: one employee moves from W to M, one percent-exception id"""
    return {
        "NOVEMBER-2024 W": sheets.worker_frame([
            {"emp_id": 201, "dept": "W", "name": "Mohan Lal", "salary": 15000, "doj": "10.01.20"},
            {"emp_id": 143, "dept": "W", "name": "Sita Devi", "salary": 16000, "doj": "10.01.20"},
        ]),
        "AUGUST-2025 W": sheets.worker_frame([
            {"emp_id": 201, "dept": "M", "name": "Mohan Lal", "salary": 15000, "doj": "10.01.20"},
            {"emp_id": 143, "dept": "W", "name": "Sita Devi", "salary": 16000, "doj": "10.01.20"},
        ]),
    }


@pytest.fixture
def hr_book(sheets):
    """HR ledger agreeing with the system figures for employee 101 only"""
    return {
        "Staff": sheets.hr_frame([
            {"emp_id": 101, "dept": "S", "name": "Asha Rao", "nov": 30000,
             "gross_salary": 90000, "gross2": 90000, "register": 7497,
             "actual": 7497, "unpaid": 0, "final_payout": 7497, "reim": 0},
        ]),
    }
