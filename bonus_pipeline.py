#!/usr/bin/env python3
"""
Staged Bonus Pipeline
Parse cohorts -> parse side ledgers -> compute -> regroup -> reconcile,
with a status summary recorded for every stage
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from bonus_calculator import BonusCalculator, BonusComputation
from bonus_errors import BonusProcessingError, MissingInputError
from cohort_layouts import STAFF, WORKER
from department_regrouper import regroup_by_department
from payroll_normalizer import NormalizedCohort, PayrollSheetNormalizer, monthly_salary_summary
from reconciliation import ReconciliationEngine, ReconciliationRecord, ReconciliationSummary
from report_layout import BONUS_HEADERS, FORMULAS, MONTH_LABELS, summary_rows
from side_ledgers import (
    parse_actual_percentage,
    parse_due_voucher_list,
    parse_hr_ledger,
    parse_loan_deduction,
)
from workbook_io import WorkbookSource

logger = logging.getLogger(__name__)


@dataclass
class BonusRunResult:
    as_of: date
    cohorts: Dict[str, NormalizedCohort]
    computations: List[BonusComputation]
    groups: Dict[str, List[BonusComputation]]
    reconciliation: List[ReconciliationRecord] = field(default_factory=list)
    reconciliation_summary: Optional[ReconciliationSummary] = None
    monthly_comparison: List[Dict] = field(default_factory=list)
    salary_summaries: List[Dict] = field(default_factory=list)
    stage_results: Dict[str, Dict] = field(default_factory=dict)

    @property
    def summary(self) -> Dict:
        eligible = [c for c in self.computations if c.is_eligible]
        return {
            "total_employees": len(self.computations),
            "staff_employees": len(self.cohorts[STAFF].employees),
            "worker_employees": len(self.cohorts[WORKER].employees),
            "eligible_employees": len(eligible),
            "total_gross_salary": sum(c.total_gross_salary for c in self.computations),
            "total_register": sum(c.register for c in self.computations),
            "total_final_payout": sum(c.final_payout for c in self.computations),
            "departments": summary_rows(self.groups),
        }

    def to_dict(self) -> Dict:
        return {
            "as_of": self.as_of.isoformat(),
            "summary": self.summary,
            "headers": BONUS_HEADERS,
            "month_labels": MONTH_LABELS,
            "formulas": FORMULAS,
            "departments": {
                dept: [c.to_dict() for c in calcs] for dept, calcs in self.groups.items()
            },
            "reconciliation": [r.to_dict() for r in self.reconciliation],
            "reconciliation_summary": (
                self.reconciliation_summary.to_dict() if self.reconciliation_summary else None
            ),
            "monthly_comparison": self.monthly_comparison,
            "salary_summaries": self.salary_summaries,
            "stages": self.stage_results,
        }


class BonusProcessingPipeline:
    """
    Runs every stage in order for one request. Staff and worker workbooks are
    mandatory; the four side ledgers are optional and tolerated when malformed.
    """

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or date.today()
        self.normalizer = PayrollSheetNormalizer()
        self.calculator = BonusCalculator(as_of=self.as_of)
        self.reconciler = ReconciliationEngine()
        self.stage_results: Dict[str, Dict] = {}

    def run(
        self,
        staff: Optional[WorkbookSource],
        worker: Optional[WorkbookSource],
        due_voucher: Optional[WorkbookSource] = None,
        loan: Optional[WorkbookSource] = None,
        percentage: Optional[WorkbookSource] = None,
        hr: Optional[WorkbookSource] = None,
    ) -> BonusRunResult:
        if staff is None or worker is None:
            missing = [name for name, src in ((STAFF, staff), (WORKER, worker)) if src is None]
            raise MissingInputError(f"Missing required payroll workbook(s): {', '.join(missing)}")

        self.stage_results = {}
        try:
            cohorts = self.stage1_parse_cohorts(staff, worker)
            lookups = self.stage2_parse_ledgers(due_voucher, loan, percentage, hr)
            employees = cohorts[STAFF].employees + cohorts[WORKER].employees
            computations = self.stage3_compute(employees, lookups)
            groups = self.stage4_regroup(computations)

            result = BonusRunResult(
                as_of=self.as_of,
                cohorts=cohorts,
                computations=computations,
                groups=groups,
                salary_summaries=[monthly_salary_summary(cohorts[STAFF]),
                                  monthly_salary_summary(cohorts[WORKER])],
            )
            if hr is not None:
                records, summary, monthly = self.stage5_reconcile(computations, lookups["hr"])
                result.reconciliation = records
                result.reconciliation_summary = summary
                result.monthly_comparison = monthly
        except BonusProcessingError:
            raise
        except Exception as e:
            logger.exception("Bonus run failed")
            raise BonusProcessingError(f"Bonus processing failed: {e}") from e

        result.stage_results = dict(self.stage_results)
        return result

    def stage1_parse_cohorts(self, staff: WorkbookSource, worker: WorkbookSource) -> Dict[str, NormalizedCohort]:
        cohorts = {
            STAFF: self.normalizer.parse_cohort_file(staff, STAFF),
            WORKER: self.normalizer.parse_cohort_file(worker, WORKER),
        }
        self._record("stage1", "1_cohort_parse", {
            f"{name}_{key}": value
            for name, cohort in cohorts.items()
            for key, value in (
                ("employees", len(cohort.employees)),
                ("sheets_processed", len(cohort.sheets_processed)),
                ("rows_accepted", cohort.rows_accepted),
                ("rows_skipped", cohort.rows_skipped),
            )
        })
        return cohorts

    def stage2_parse_ledgers(self, due_voucher, loan, percentage, hr) -> Dict[str, Dict]:
        lookups = {
            "due_voucher": parse_due_voucher_list(due_voucher),
            "loan": parse_loan_deduction(loan),
            "percentage": parse_actual_percentage(percentage),
            "hr": parse_hr_ledger(hr),
        }
        self._record("stage2", "2_side_ledgers", {name: len(values) for name, values in lookups.items()})
        return lookups

    def stage3_compute(self, employees, lookups: Dict[str, Dict]) -> List[BonusComputation]:
        computations = self.calculator.calculate_bonus(
            employees,
            due_voucher_map=lookups["due_voucher"],
            loan_map=lookups["loan"],
            percentage_map=lookups["percentage"],
        )
        self._record("stage3", "3_bonus_calculation", {
            "input_employees": len(employees),
            "computations": len(computations),
            "eligible": sum(1 for c in computations if c.is_eligible),
            "cash_salaried": sum(1 for c in computations if c.is_cash_salary),
            "total_final_payout": sum(c.final_payout for c in computations),
        })
        return computations

    def stage4_regroup(self, computations: List[BonusComputation]) -> Dict[str, List[BonusComputation]]:
        groups = regroup_by_department(computations)
        self._record("stage4", "4_department_regroup", {
            "departments": len(groups),
            "rows": sum(len(calcs) for calcs in groups.values()),
        })
        return groups

    def stage5_reconcile(self, computations, hr_ledger):
        records = self.reconciler.reconcile(computations, hr_ledger)
        summary = self.reconciler.summarize(records)
        monthly = self.reconciler.monthly_comparison(computations, hr_ledger)
        self._record("stage5", "5_hr_reconciliation", summary.to_dict())
        return records, summary, monthly

    def _record(self, key: str, stage: str, summary: Dict):
        self.stage_results[key] = {
            "stage": stage,
            "status": "success",
            "timestamp": datetime.now().isoformat(),
            "summary": summary,
        }
        logger.info("Stage %s complete: %s", stage, summary)
