"""
Bonus Register - Department Regrouper Tests
"""

from datetime import date

import pytest

from bonus_calculator import BonusCalculator
from cohort_layouts import STAFF, WORKER
from department_regrouper import department_slice, departments_touched, regroup_by_department
from payroll_normalizer import Employee, MonthlyRecord


@pytest.fixture
def calculator():
    return BonusCalculator(as_of=date(2025, 10, 31))


def moved_worker():
    emp = Employee("201", "Mohan Lal", "M", date(2020, 1, 10), WORKER)
    emp.add_record(MonthlyRecord("NOV-24", 15000, "W"))
    emp.add_record(MonthlyRecord("DEC-24", 15000, "W"))
    emp.add_record(MonthlyRecord("AUG-25", 16000, "M"))
    return emp


class TestDepartmentsTouched:
    """Departments in first-appearance order."""

    def test_order_of_appearance(self, calculator):
        calc = calculator.calculate_employee(moved_worker(), {}, {}, {})
        assert departments_touched(calc) == ["W", "M"]

    def test_sentinel_only_in_sentinel_group(self, calculator):
        emp = Employee("N5", "Kiran Das", "N", date(2020, 1, 1), STAFF, is_sentinel=True)
        emp.add_record(MonthlyRecord("NOV-24", 0, "N"))
        calc = calculator.calculate_employee(emp, {}, {}, {})

        assert departments_touched(calc) == ["N"]

    def test_no_records_falls_back_to_primary(self, calculator):
        emp = Employee("101", "Asha Rao", "S", date(2022, 6, 15), STAFF)
        calc = calculator.calculate_employee(emp, {}, {}, {})

        assert departments_touched(calc) == ["S"]


class TestDepartmentSlice:
    """Only gross is recomputed per department slice."""

    def test_slice_gross_sums_department_records(self, calculator):
        calc = calculator.calculate_employee(moved_worker(), {}, {}, {})
        w_slice = department_slice(calc, "W")
        m_slice = department_slice(calc, "M")

        assert w_slice.total_gross_salary == 30000
        # Primary department also carries the 15500 estimate
        assert m_slice.total_gross_salary == 16000 + 15500
        assert w_slice.total_gross_salary + m_slice.total_gross_salary == calc.total_gross_salary
        assert w_slice.department == "W"
        assert len(w_slice.monthly_records) == 2

    def test_slice_monthly_vector(self, calculator):
        calc = calculator.calculate_employee(moved_worker(), {}, {}, {})
        m_slice = department_slice(calc, "M")

        assert m_slice.monthly_salaries[0] is None
        assert m_slice.monthly_salaries[9] == 16000
        # Estimated month stays with the primary department only
        assert m_slice.monthly_salaries[-1] == calc.monthly_salaries[-1] == 15500
        assert department_slice(calc, "W").monthly_salaries[-1] == 0

    def test_single_department_slice_matches_whole_computation(self, calculator):
        emp = Employee("101", "Asha Rao", "S", date(2022, 6, 15), STAFF)
        emp.add_record(MonthlyRecord("NOV-24", 30000, "S"))
        emp.add_record(MonthlyRecord("AUG-25", 30000, "S"))
        calc = calculator.calculate_employee(emp, {}, {}, {})
        s_slice = department_slice(calc, "S")

        assert calc.total_gross_salary == 90000
        assert s_slice.total_gross_salary == calc.total_gross_salary
        assert s_slice.total_gross_salary == s_slice.gross2
        assert s_slice.monthly_salaries == calc.monthly_salaries

    def test_derived_fields_carried_over(self, calculator):
        calc = calculator.calculate_employee(moved_worker(), {}, {}, {})
        w_slice = department_slice(calc, "W")

        assert w_slice.register == calc.register
        assert w_slice.gross2 == calc.gross2
        assert w_slice.final_payout == calc.final_payout
        assert w_slice.reim == calc.reim


class TestRegroup:
    """Grouping a batch of computations."""

    def test_employee_appears_in_each_department(self, calculator):
        staff = Employee("101", "Asha Rao", "S", date(2022, 6, 15), STAFF)
        staff.add_record(MonthlyRecord("NOV-24", 30000, "S"))
        computations = calculator.calculate_bonus([staff, moved_worker()])
        groups = regroup_by_department(computations)

        assert list(groups) == ["S", "W", "M"]
        assert [c.emp_id for c in groups["W"]] == ["201"]
        assert [c.emp_id for c in groups["M"]] == ["201"]

    def test_empty_input(self):
        assert regroup_by_department([]) == {}
