#!/usr/bin/env python3
"""
Bonus Report Writer
Places the report layouts into openpyxl workbooks and returns .xlsx bytes
"""

import logging
from io import BytesIO
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from bonus_calculator import BonusComputation
from reconciliation import ReconciliationRecord
from report_layout import (
    COMPARISON_HEADERS,
    FIRST_DATA_ROW,
    HEADER_ROW,
    MONTHLY_COMPARISON_HEADERS,
    SUMMARY_HEADERS,
    TITLE_ROW,
    SheetLayout,
    comparison_row,
    department_sheet,
    group_records,
    summary_rows,
)

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data available for bonus calculations"
NO_COMPARISON_MESSAGE = "No records available for comparison"

SALARY_SUMMARY_HEADERS = ["Type", "Month", "Total Salary", "Employees", "Average Salary"]


class BonusReportWriter:
    """Renders department bonus sheets, summaries and HR comparisons"""

    def create_bonus_excel(
        self,
        groups: Dict[str, List[BonusComputation]],
        salary_summaries: Optional[List[Dict]] = None,
        output_path: Optional[str] = None,
    ) -> bytes:
        wb = Workbook()
        ws = wb.active

        groups = {dept: calcs for dept, calcs in groups.items() if calcs}
        if not groups:
            ws.title = "Error"
            ws.cell(row=1, column=1, value=NO_DATA_MESSAGE)
            return self._save(wb, output_path)

        first = True
        used_names = set()
        for department, calculations in groups.items():
            layout = department_sheet(department, calculations)
            layout.sheet_name = self._unique_title(layout.sheet_name, used_names)
            if first:
                ws.title = layout.sheet_name
                first = False
            else:
                ws = wb.create_sheet(layout.sheet_name)
            self._write_layout(ws, layout)
            logger.info("Wrote %d rows to sheet %s", len(layout.rows), layout.sheet_name)

        self._write_summary(wb.create_sheet("Summary"), groups)
        if salary_summaries:
            self._write_salary_summary(wb.create_sheet("Salary Summary"), salary_summaries)

        return self._save(wb, output_path)

    def create_comparison_excel(
        self,
        records: List[ReconciliationRecord],
        monthly_rows: Optional[List[Dict]] = None,
        output_path: Optional[str] = None,
    ) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = "Comparison"

        if not records:
            ws.cell(row=1, column=1, value=NO_COMPARISON_MESSAGE)
            return self._save(wb, output_path)

        self._write_row(ws, 1, COMPARISON_HEADERS)
        current_row = 2
        for department, dept_records in group_records(records).items():
            ws.cell(row=current_row, column=1, value=f"DEPARTMENT: {department}")
            current_row += 1
            for record in dept_records:
                self._write_row(ws, current_row, comparison_row(record))
                current_row += 1
            # Blank spacer between departments
            current_row += 1

        if monthly_rows:
            monthly_ws = wb.create_sheet("Monthly Comparison")
            self._write_row(monthly_ws, 1, MONTHLY_COMPARISON_HEADERS)
            for row_idx, row in enumerate(monthly_rows, 2):
                self._write_row(monthly_ws, row_idx,
                                [row["month"], row["our_total"], row["hr_total"], row["difference"]])

        return self._save(wb, output_path)

    def _write_layout(self, ws: Worksheet, layout: SheetLayout):
        ws.cell(row=TITLE_ROW, column=1, value=layout.title)
        self._write_row(ws, HEADER_ROW, layout.headers)
        current_row = FIRST_DATA_ROW
        for row in layout.rows:
            self._write_row(ws, current_row, row)
            current_row += 1
        self._write_row(ws, current_row, layout.totals)

    def _write_summary(self, ws: Worksheet, groups: Dict[str, List[BonusComputation]]):
        summary = summary_rows(groups)
        self._write_row(ws, 1, SUMMARY_HEADERS)
        row_idx = 2
        for entry in summary["rows"] + [summary["grand_total"]]:
            self._write_row(ws, row_idx, [
                entry["department"],
                entry["employees"],
                entry["total_gross_salary"],
                entry["total_bonus"],
                entry["average_bonus"],
            ])
            row_idx += 1

    def _write_salary_summary(self, ws: Worksheet, salary_summaries: List[Dict]):
        self._write_row(ws, 1, SALARY_SUMMARY_HEADERS)
        row_idx = 2
        for summary in salary_summaries:
            for month, values in summary["monthly_summary"].items():
                self._write_row(ws, row_idx, [
                    summary["type"], month, values["total_salary"], values["count"], values["avg_salary"],
                ])
                row_idx += 1
            overall = summary["overall_summary"]
            self._write_row(ws, row_idx, [
                summary["type"], "TOTAL", overall["total_salary"],
                overall["total_employees"], overall["avg_salary"],
            ])
            row_idx += 2

    @staticmethod
    def _write_row(ws: Worksheet, row_idx: int, values: List[object]):
        for col_idx, value in enumerate(values, 1):
            if value is not None:
                ws.cell(row=row_idx, column=col_idx, value=value)

    @staticmethod
    def _unique_title(name: str, used: set) -> str:
        candidate, suffix = name, 2
        while candidate.lower() in used:
            tail = f" ({suffix})"
            candidate = name[: 31 - len(tail)] + tail
            suffix += 1
        used.add(candidate.lower())
        return candidate

    @staticmethod
    def _save(wb: Workbook, output_path: Optional[str]) -> bytes:
        buffer = BytesIO()
        wb.save(buffer)
        data = buffer.getvalue()
        if output_path:
            with open(output_path, "wb") as fh:
                fh.write(data)
        return data
