"""
Bonus Register - Side Ledger Tests

Due vouchers, loan deductions, percentage overrides and the HR ledger.
"""

import pytest

from side_ledgers import (
    DueVoucherEntry,
    parse_actual_percentage,
    parse_due_voucher_list,
    parse_hr_ledger,
    parse_loan_deduction,
)

VOUCHER_HEADERS = ["EMP ID", "NAME", "DEPT", "CATEGORY", "AMOUNT"]


class TestDueVoucherList:
    """Already-paid and unpaid vouchers accumulate per employee."""

    def test_categories_accumulate(self, sheets):
        frame = sheets.ledger_frame(VOUCHER_HEADERS, [
            [101, "Asha Rao", "S", "A", 500],
            [101, "Asha Rao", "S", "A", 250],
            [101, "Asha Rao", "S", "U", 100],
            [201, "Mohan Lal", "W", "u", 40],
        ])
        vouchers = parse_due_voucher_list({"Sheet1": frame})

        assert vouchers["101"] == DueVoucherEntry(already_paid=750, unpaid=100, dept="S")
        assert vouchers["201"].unpaid == 40

    def test_unknown_category_and_zero_amount_ignored(self, sheets):
        frame = sheets.ledger_frame(VOUCHER_HEADERS, [
            [101, "Asha Rao", "S", "X", 500],
            [102, "Ravi Kumar", "S", "A", 0],
        ])
        assert parse_due_voucher_list({"Sheet1": frame}) == {}

    def test_header_found_below_title_rows(self, sheets):
        frame = sheets.ledger_frame(["DUE VOUCHER LIST", None, None, None, None], [
            [None, None, None, None, None],
            VOUCHER_HEADERS,
            [101, "Asha Rao", "S", "A", 500],
        ])
        assert parse_due_voucher_list({"Sheet1": frame})["101"].already_paid == 500

    def test_missing_workbook(self):
        assert parse_due_voucher_list(None) == {}

    def test_malformed_workbook_tolerated(self):
        assert parse_due_voucher_list(b"definitely not a workbook") == {}

    def test_missing_path_tolerated(self, tmp_path):
        assert parse_due_voucher_list(str(tmp_path / "absent.xlsx")) == {}


class TestLoanDeduction:
    """Latest positive loan amount per employee."""

    def test_positive_amounts(self, sheets):
        frame = sheets.ledger_frame(["EMP ID", "NAME", "AMOUNT"], [
            [101, "Asha Rao", 1000],
            [102, "Ravi Kumar", 0],
            [101, "Asha Rao", 1200],
        ])
        assert parse_loan_deduction({"Loans": frame}) == {"101": 1200}

    def test_missing_workbook(self):
        assert parse_loan_deduction(None) == {}


class TestActualPercentage:
    """Custom percentage overrides keyed by employee id."""

    def test_float_ids_normalized(self, sheets):
        frame = sheets.ledger_frame(["EMP ID", "NAME", "PERCENT"], [
            [143.0, "Sita Devi", 15],
            [914, "Gopal", 20],
            [777, "No Override", None],
        ])
        assert parse_actual_percentage({"Sheet1": frame}) == {"143": 15, "914": 20}

    def test_missing_workbook(self):
        assert parse_actual_percentage(None) == {}


class TestHRLedger:
    """HR bonus ledger bound by header labels."""

    def test_fields_bound_by_header(self, hr_book):
        ledger = parse_hr_ledger(hr_book)
        entry = ledger["101"]

        assert entry.name == "Asha Rao"
        assert entry.department == "S"
        assert entry.gross_salary == 90000
        assert entry.register == 7497
        assert entry.final_payout == 7497
        assert entry.monthly == {"NOV": 30000}

    def test_first_sheet_wins_on_duplicate(self, sheets):
        book = {
            "Staff": sheets.hr_frame([{"emp_id": 101, "dept": "S", "name": "Asha Rao", "final_payout": 100}]),
            "Again": sheets.hr_frame([{"emp_id": 101, "dept": "S", "name": "Asha Rao", "final_payout": 999}]),
        }
        assert parse_hr_ledger(book)["101"].final_payout == 100

    def test_total_rows_skipped(self, sheets):
        book = {"Staff": sheets.hr_frame([
            {"emp_id": 101, "dept": "S", "name": "Asha Rao"},
            {"emp_id": "Total", "dept": None, "name": "Total"},
        ])}
        assert list(parse_hr_ledger(book)) == ["101"]

    def test_final_payout_fallback_columns(self, sheets):
        headers = ["Sr.No.", "EMP Code", "Deptt.", "EMP. NAME"] + [f"C{i}" for i in range(5, 25)]
        row = [1, 101, "S", "Asha Rao"] + [None] * 20
        row[19] = 4321  # column T
        frame = sheets.ledger_frame(["BONUS LIST"] + [None] * 23, [headers, row])

        assert parse_hr_ledger({"Staff": frame})["101"].final_payout == 4321

    def test_sheet_without_header_ignored(self, sheets):
        frame = sheets.ledger_frame(["Notes", "Nothing here"], [["a", "b"]])
        assert parse_hr_ledger({"Notes": frame}) == {}

    def test_department_from_sheet_name(self, sheets):
        book = {"Worker": sheets.hr_frame([{"emp_id": 201, "dept": None, "name": "Mohan Lal"}])}
        assert parse_hr_ledger(book)["201"].department == "W"

    @pytest.mark.parametrize("source", [None, b"junk"])
    def test_unreadable_ledger(self, source):
        assert parse_hr_ledger(source) == {}
