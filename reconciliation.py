#!/usr/bin/env python3
"""
HR Reconciliation
Compares the system bonus figures with the HR ledger, field by field
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from bonus_calculator import BonusComputation
from bonus_config import (
    ESTIMATED_MONTH_CODE,
    FISCAL_MONTH_CODES,
    RECONCILIATION_TOLERANCE,
    fiscal_month_labels,
)
from side_ledgers import HRLedgerEntry

logger = logging.getLogger(__name__)

# Reconciled field -> BonusComputation attribute (HRLedgerEntry uses the field name)
RECONCILED_FIELDS = {
    "gross_salary": "total_gross_salary",
    "gross2": "gross2",
    "register": "register",
    "actual": "actual",
    "unpaid": "unpaid",
    "final_payout": "final_payout",
    "reim": "reim",
}


class ReconciliationStatus(str, Enum):
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    MISSING = "MISSING"


@dataclass(frozen=True)
class ReconciliationRecord:
    emp_id: str
    name: str
    department: str
    system: Dict[str, float]
    hr: Optional[Dict[str, float]]
    differences: Dict[str, float]
    status: ReconciliationStatus
    source: str

    def to_dict(self) -> Dict:
        return {
            "emp_id": self.emp_id,
            "name": self.name,
            "department": self.department,
            "system": dict(self.system),
            "hr": dict(self.hr) if self.hr is not None else None,
            "differences": dict(self.differences),
            "status": self.status.value,
            "source": self.source,
        }


@dataclass
class ReconciliationSummary:
    matches: int = 0
    mismatches: int = 0
    missing: int = 0
    system_final_total: float = 0
    hr_final_total: float = 0
    by_department: Dict[str, Dict[str, int]] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.matches + self.mismatches + self.missing

    def to_dict(self) -> Dict:
        return {
            "matches": self.matches,
            "mismatches": self.mismatches,
            "missing": self.missing,
            "total": self.total,
            "system_final_total": self.system_final_total,
            "hr_final_total": self.hr_final_total,
            "by_department": self.by_department,
        }


class ReconciliationEngine:
    """Classifies each employee as MATCH / MISMATCH / MISSING against the HR ledger"""

    def __init__(self, tolerance: float = RECONCILIATION_TOLERANCE):
        self.tolerance = tolerance

    def reconcile(
        self,
        computations: List[BonusComputation],
        hr_ledger: Dict[str, HRLedgerEntry],
    ) -> List[ReconciliationRecord]:
        records = [self.reconcile_one(calc, hr_ledger.get(calc.emp_id)) for calc in computations]
        summary = self.summarize(records)
        logger.info(
            "Comparison: %d matches, %d mismatches, %d missing",
            summary.matches, summary.mismatches, summary.missing,
        )
        return records

    def reconcile_one(self, calc: BonusComputation, entry: Optional[HRLedgerEntry]) -> ReconciliationRecord:
        system = {name: getattr(calc, attr) for name, attr in RECONCILED_FIELDS.items()}
        if entry is None:
            return ReconciliationRecord(
                emp_id=calc.emp_id,
                name=calc.name,
                department=calc.department,
                system=system,
                hr=None,
                differences={},
                status=ReconciliationStatus.MISSING,
                source="system_only",
            )

        hr = {name: getattr(entry, name) for name in RECONCILED_FIELDS}
        differences = {name: system[name] - hr[name] for name in RECONCILED_FIELDS}
        within = all(self.within_tolerance(diff) for diff in differences.values())
        return ReconciliationRecord(
            emp_id=calc.emp_id,
            name=calc.name,
            department=calc.department,
            system=system,
            hr=hr,
            differences=differences,
            status=ReconciliationStatus.MATCH if within else ReconciliationStatus.MISMATCH,
            source="both",
        )

    def within_tolerance(self, difference: float) -> bool:
        # Small epsilon so 1.00 read back from a spreadsheet still counts as 1
        return abs(difference) <= self.tolerance + 1e-9

    @staticmethod
    def summarize(records: List[ReconciliationRecord]) -> ReconciliationSummary:
        summary = ReconciliationSummary()
        for record in records:
            dept_counts = summary.by_department.setdefault(
                record.department, {status.value: 0 for status in ReconciliationStatus}
            )
            dept_counts[record.status.value] += 1
            summary.system_final_total += record.system["final_payout"]
            if record.status is ReconciliationStatus.MATCH:
                summary.matches += 1
            elif record.status is ReconciliationStatus.MISMATCH:
                summary.mismatches += 1
            else:
                summary.missing += 1
            if record.hr is not None:
                summary.hr_final_total += record.hr["final_payout"]
        return summary

    @staticmethod
    def monthly_comparison(
        computations: List[BonusComputation],
        hr_ledger: Dict[str, HRLedgerEntry],
    ) -> List[Dict]:
        """Our monthly salary totals next to the HR ledger's, one row per fiscal month"""
        codes = FISCAL_MONTH_CODES + [ESTIMATED_MONTH_CODE]
        rows = []
        for idx, (code, label) in enumerate(zip(codes, fiscal_month_labels())):
            ours = sum(calc.monthly_salaries[idx] or 0 for calc in computations)
            theirs = sum(entry.monthly.get(code, 0) for entry in hr_ledger.values())
            rows.append({
                "month": label,
                "our_total": round(ours, 2),
                "hr_total": round(theirs, 2),
                "difference": round(ours - theirs, 2),
            })
        return rows
