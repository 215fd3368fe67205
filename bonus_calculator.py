#!/usr/bin/env python3
"""
Statutory Bonus Calculator
Derives one bonus computation per employee from the normalized salary timeline
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from bonus_config import (
    AUGUST_INDEX,
    CAPPED_BASIS_FACTOR,
    ESTIMATE_WINDOW,
    FISCAL_MONTH_CODES,
    INTERMEDIATE_RATE,
    INTRO_RATE,
    MIN_ELIGIBLE_SERVICE_MONTHS,
    PERCENT_EXCEPTION_IDS,
    SERVICE_GATED_DEPARTMENTS,
    STAFF_DEPARTMENT_PREFIX,
    STAFF_DEPARTMENTS,
    STATUTORY_RATE,
    WORKER_DEPARTMENTS,
)
from payroll_normalizer import Employee, MonthlyRecord, month_code
from side_ledgers import DueVoucherEntry

logger = logging.getLogger(__name__)

_MONTH_INDEX = {code: idx for idx, code in enumerate(FISCAL_MONTH_CODES)}


def round_half_up(value: float) -> int:
    """Whole currency units, halves rounded up (2.5 -> 3, -2.5 -> -2)"""
    return int(math.floor(value + 0.5))


def is_statutory_rate(percent: float) -> bool:
    return abs(percent - STATUTORY_RATE) < 1e-9


def is_staff_department(department: str) -> bool:
    return department in STAFF_DEPARTMENTS or department.startswith(STAFF_DEPARTMENT_PREFIX)


@dataclass(frozen=True)
class BonusComputation:
    emp_id: str
    name: str
    department: str
    cohort: str
    date_of_joining: date
    is_cash_salary: bool
    service_months: int
    monthly_salaries: Tuple[Optional[float], ...]
    total_gross_salary: int
    bonus_percent: float
    gross2: int
    register: int
    already_paid: int
    unpaid: int
    after_v: int
    is_eligible: bool
    actual: int
    reim: int
    loan: int
    final_payout: int
    monthly_records: Tuple[MonthlyRecord, ...] = field(default_factory=tuple)

    @property
    def estimated_salary(self) -> float:
        return self.monthly_salaries[-1] or 0

    def to_dict(self) -> Dict:
        return {
            "emp_id": self.emp_id,
            "name": self.name,
            "department": self.department,
            "cohort": self.cohort,
            "date_of_joining": self.date_of_joining.isoformat(),
            "is_cash_salary": self.is_cash_salary,
            "service_months": self.service_months,
            "monthly_salaries": list(self.monthly_salaries),
            "total_gross_salary": self.total_gross_salary,
            "bonus_percent": self.bonus_percent,
            "gross2": self.gross2,
            "register": self.register,
            "already_paid": self.already_paid,
            "unpaid": self.unpaid,
            "after_v": self.after_v,
            "is_eligible": self.is_eligible,
            "actual": self.actual,
            "reim": self.reim,
            "loan": self.loan,
            "final_payout": self.final_payout,
            "monthly_records": [
                {"month": r.month, "salary": r.salary, "department": r.department}
                for r in self.monthly_records
            ],
        }


class BonusCalculator:
    """
    Pure rule engine: no I/O, lookup maps are passed in and only read.
    One `as_of` date is used for every service-length calculation of a run.
    """

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or date.today()

    def calculate_bonus(
        self,
        employees: List[Employee],
        due_voucher_map: Optional[Dict[str, DueVoucherEntry]] = None,
        loan_map: Optional[Dict[str, float]] = None,
        percentage_map: Optional[Dict[str, float]] = None,
    ) -> List[BonusComputation]:
        due_voucher_map = due_voucher_map or {}
        loan_map = loan_map or {}
        percentage_map = percentage_map or {}

        eligible_input = [e for e in employees if isinstance(e.date_of_joining, date)]
        dropped = len(employees) - len(eligible_input)
        if dropped:
            logger.info("Ignoring %d employees without a joining date", dropped)

        computations = [
            self.calculate_employee(emp, due_voucher_map, loan_map, percentage_map)
            for emp in eligible_input
        ]
        logger.info("Calculated bonus for %d employees", len(computations))
        return computations

    def calculate_employee(
        self,
        emp: Employee,
        due_voucher_map: Dict[str, DueVoucherEntry],
        loan_map: Dict[str, float],
        percentage_map: Dict[str, float],
    ) -> BonusComputation:
        monthly = self.extract_monthly_salaries(emp.monthly_records)
        estimate = self.estimate_final_month(monthly)
        total_gross = round_half_up(sum(s for s in monthly if s is not None) + estimate)

        service_months = self.service_months(emp.date_of_joining)
        percent = self.bonus_percentage(emp.emp_id, emp.department, service_months, percentage_map)
        gross2 = self.capped_basis(total_gross, percent)

        # Statutory rate on the capped basis; the resolved percent only moves the basis
        register = 0 if emp.is_cash_salary else round_half_up(gross2 * STATUTORY_RATE / 100)

        voucher = due_voucher_map.get(emp.emp_id)
        already_paid = 0 if emp.is_cash_salary or voucher is None else round_half_up(voucher.already_paid)
        unpaid = 0 if emp.is_cash_salary or voucher is None else round_half_up(voucher.unpaid)

        eligible = self.is_eligible(emp.department, service_months)
        after_v = register - (already_paid + unpaid)
        actual = after_v if eligible else 0
        reim = after_v - actual
        loan = round_half_up(loan_map.get(emp.emp_id, 0))
        # Loan is reported only, not deducted
        final_payout = register - (already_paid + unpaid)

        return BonusComputation(
            emp_id=emp.emp_id,
            name=emp.name,
            department=emp.department,
            cohort=emp.cohort,
            date_of_joining=emp.date_of_joining,
            is_cash_salary=emp.is_cash_salary,
            service_months=service_months,
            monthly_salaries=tuple(monthly) + (estimate,),
            total_gross_salary=total_gross,
            bonus_percent=percent,
            gross2=gross2,
            register=register,
            already_paid=already_paid,
            unpaid=unpaid,
            after_v=after_v,
            is_eligible=eligible,
            actual=actual,
            reim=reim,
            loan=loan,
            final_payout=final_payout,
            monthly_records=tuple(emp.monthly_records),
        )

    @staticmethod
    def extract_monthly_salaries(records: List[MonthlyRecord]) -> List[Optional[float]]:
        """NOV..SEP salaries, first positive value per month, None when absent"""
        result: List[Optional[float]] = [None] * len(FISCAL_MONTH_CODES)
        for record in records:
            idx = _MONTH_INDEX.get(month_code(record.month))
            if idx is not None and record.salary > 0 and result[idx] is None:
                result[idx] = record.salary
        return result

    @staticmethod
    def estimate_final_month(monthly: List[Optional[float]]) -> int:
        """Rounded mean of the positive DEC..AUG salaries, gated on AUG >= 1"""
        august = monthly[AUGUST_INDEX]
        if august is None or august < 1:
            return 0
        start, stop = ESTIMATE_WINDOW
        window = [s for s in monthly[start:stop] if s is not None and s > 0]
        if not window:
            return 0
        return round_half_up(sum(window) / len(window))

    def service_months(self, joining_date: date) -> int:
        months = (self.as_of.year - joining_date.year) * 12 + (self.as_of.month - joining_date.month)
        return max(0, months)

    @staticmethod
    def bonus_percentage(
        emp_id: str,
        department: str,
        service_months: int,
        percentage_map: Dict[str, float],
    ) -> float:
        if department in WORKER_DEPARTMENTS and emp_id not in PERCENT_EXCEPTION_IDS:
            return STATUTORY_RATE

        if emp_id in percentage_map:
            logger.debug("[%s] Using custom percentage: %s", emp_id, percentage_map[emp_id])
            return percentage_map[emp_id]

        if service_months < 12:
            return INTRO_RATE
        if service_months < 24:
            return INTERMEDIATE_RATE
        return STATUTORY_RATE

    @staticmethod
    def capped_basis(total_gross: int, percent: float) -> int:
        if is_statutory_rate(percent):
            return total_gross
        if percent > STATUTORY_RATE:
            return round_half_up(total_gross * CAPPED_BASIS_FACTOR)
        return 0

    @staticmethod
    def is_eligible(department: str, service_months: int) -> bool:
        if is_staff_department(department):
            return True
        if department in SERVICE_GATED_DEPARTMENTS:
            return service_months >= MIN_ELIGIBLE_SERVICE_MONTHS
        return True
