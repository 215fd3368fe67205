"""
Bonus register configuration
Statutory constants, department families and fiscal calendar
"""

import os
from datetime import date
from typing import List

# Statutory minimum bonus rate (percent)
STATUTORY_RATE = 8.33

# Tiered rates by service length (percent)
INTRO_RATE = 10.0         # < 12 months
INTERMEDIATE_RATE = 12.0  # 12-23 months

# Share of gross used as the capped basis when the rate exceeds the minimum
CAPPED_BASIS_FACTOR = 0.6

# Worker-type departments always get the statutory rate ...
WORKER_DEPARTMENTS = {"W", "M", "A", "C"}
# ... except these employees, who follow overrides / service tiers like staff
PERCENT_EXCEPTION_IDS = {"143", "914"}

# Staff-type departments are always eligible
STAFF_DEPARTMENTS = {"S", "NRTM"}
STAFF_DEPARTMENT_PREFIX = "Sci Prec"

# Departments that need a minimum service length to be eligible
SERVICE_GATED_DEPARTMENTS = {"W", "M"}
MIN_ELIGIBLE_SERVICE_MONTHS = 6

# Reconciliation tolerance in currency units
RECONCILIATION_TOLERANCE = 1.0

# Sentinel ("N") handling
SENTINEL = "N"
SENTINEL_KEY_PREFIX = "N_"
PLACEHOLDER_JOINING_DATE = date(2020, 1, 1)
NOT_APPLICABLE_DATES = {"", "NA", "N.A", "N.A.", "N/A"}

# Fiscal calendar: NOV..SEP are recorded, OCT is estimated
FISCAL_MONTH_CODES = ["NOV", "DEC", "JAN", "FEB", "MAR", "APR",
                      "MAY", "JUN", "JUL", "AUG", "SEP"]
ESTIMATED_MONTH_CODE = "OCT"
AUGUST_INDEX = FISCAL_MONTH_CODES.index("AUG")
# Estimate averages DEC..AUG inclusive
ESTIMATE_WINDOW = (FISCAL_MONTH_CODES.index("DEC"), AUGUST_INDEX + 1)

FISCAL_START_YEAR = int(os.getenv("BONUS_FISCAL_START_YEAR", "2024"))

# Upload handling for the HTTP adapter
UPLOAD_FOLDER = os.getenv("BONUS_UPLOAD_FOLDER", "/tmp/bonus_uploads")
ALLOWED_EXTENSIONS = {"xlsx", "xls"}
MAX_UPLOAD_MB = int(os.getenv("BONUS_MAX_UPLOAD_MB", "16"))


def fiscal_month_labels(start_year: int = FISCAL_START_YEAR) -> List[str]:
    """Return the 12 report labels, e.g. NOV-24 .. SEP-25 + OCT-25"""
    labels = []
    for code in FISCAL_MONTH_CODES + [ESTIMATED_MONTH_CODE]:
        year = start_year if code in ("NOV", "DEC") else start_year + 1
        labels.append(f"{code}-{year % 100:02d}")
    return labels
