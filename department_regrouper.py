"""
Department regrouping
An employee's monthly records can carry different department tags, so each
computation is re-sliced once per department it touched.

Only the gross salary is recomputed per slice, and the estimated final month
belongs to the primary (latest) department. Register, actual, reim and the
final payout are carried over from the whole-year computation unchanged.
"""

from collections import OrderedDict
from dataclasses import replace
from typing import Dict, List

from bonus_calculator import BonusComputation, round_half_up
from bonus_config import FISCAL_MONTH_CODES, SENTINEL
from payroll_normalizer import month_code

_MONTH_INDEX = {code: idx for idx, code in enumerate(FISCAL_MONTH_CODES)}


def departments_touched(calc: BonusComputation) -> List[str]:
    if calc.department == SENTINEL:
        return [SENTINEL]
    seen: List[str] = []
    for record in calc.monthly_records:
        if record.department and record.department not in seen:
            seen.append(record.department)
    return seen or [calc.department]


def department_slice(calc: BonusComputation, department: str) -> BonusComputation:
    records = tuple(r for r in calc.monthly_records if r.department == department)
    if not records and department == calc.department:
        # Fallback group: the whole timeline belongs to the primary department
        records = calc.monthly_records

    monthly = [None] * len(FISCAL_MONTH_CODES)
    for record in records:
        idx = _MONTH_INDEX.get(month_code(record.month))
        if idx is not None and record.salary > 0 and monthly[idx] is None:
            monthly[idx] = record.salary

    estimate = calc.estimated_salary if department == calc.department else 0
    return replace(
        calc,
        department=department,
        monthly_records=records,
        monthly_salaries=tuple(monthly) + (estimate,),
        total_gross_salary=round_half_up(sum(r.salary for r in records) + estimate),
    )


def regroup_by_department(computations: List[BonusComputation]) -> Dict[str, List[BonusComputation]]:
    """Ordered {department: [department-scoped computations]}"""
    groups: Dict[str, List[BonusComputation]] = OrderedDict()
    for calc in computations:
        for department in departments_touched(calc):
            groups.setdefault(department, []).append(department_slice(calc, department))
    return groups
