"""
Pension Kernel: Constants (Default Values)

All magic numbers and stable message codes live here.
Runtime overrides (accrual rate, registry timeout) are injected via
pension_runtime.config and never mutate these module-level defaults.
"""

from decimal import Decimal

# --- Accrual ---
DEFAULT_ACCRUAL_RATE: Decimal = Decimal("0.02")

# --- Years of service ---
# years = days / 365.25, kept rational as days * 4 / 1461.
DAYS_PER_YEAR_NUMERATOR: int = 1461
DAYS_PER_YEAR_DENOMINATOR: int = 4

# --- Retirement eligibility ---
RETIREMENT_AGE: int = 65
RETIREMENT_SERVICE_YEARS: int = 40

# --- Stored amounts: significant digits when leaving exact arithmetic ---
AMOUNT_PRECISION: int = 28
# Largest decimal exponent accepted for an input amount.
MAX_AMOUNT_EXPONENT: int = 28

# --- Dossier status / person role ---
STATUS_ACTIVE: str = "ACTIVE"
STATUS_RETIRED: str = "RETIRED"
ROLE_PARTICIPANT: str = "PARTICIPANT"

# --- Message levels ---
LEVEL_CRITICAL: str = "CRITICAL"
LEVEL_WARNING: str = "WARNING"

# --- CRITICAL codes ---
DOSSIER_ALREADY_EXISTS: str = "DOSSIER_ALREADY_EXISTS"
DOSSIER_NOT_FOUND: str = "DOSSIER_NOT_FOUND"
INVALID_BIRTH_DATE: str = "INVALID_BIRTH_DATE"
INVALID_NAME: str = "INVALID_NAME"
INVALID_SALARY: str = "INVALID_SALARY"
INVALID_PART_TIME_FACTOR: str = "INVALID_PART_TIME_FACTOR"
NO_POLICIES: str = "NO_POLICIES"
PARTICIPANT_NOT_FOUND: str = "PARTICIPANT_NOT_FOUND"
NOT_ELIGIBLE: str = "NOT_ELIGIBLE"
INVALID_DATE_RANGE: str = "INVALID_DATE_RANGE"
INVALID_MUTATION_PROPERTIES: str = "INVALID_MUTATION_PROPERTIES"
UNKNOWN_MUTATION: str = "UNKNOWN_MUTATION"
INVARIANT_VIOLATION: str = "INVARIANT_VIOLATION"
UNEXPECTED_ERROR: str = "UNEXPECTED_ERROR"

# --- WARNING codes ---
DUPLICATE_POLICY: str = "DUPLICATE_POLICY"
NO_MATCHING_POLICIES: str = "NO_MATCHING_POLICIES"
NEGATIVE_SALARY_CLAMPED: str = "NEGATIVE_SALARY_CLAMPED"
RETIREMENT_BEFORE_EMPLOYMENT: str = "RETIREMENT_BEFORE_EMPLOYMENT"
PROJECTION_BEFORE_EMPLOYMENT: str = "PROJECTION_BEFORE_EMPLOYMENT"

# --- Calculation outcome ---
OUTCOME_SUCCESS: str = "SUCCESS"
OUTCOME_FAILURE: str = "FAILURE"
