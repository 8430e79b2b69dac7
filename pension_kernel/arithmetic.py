"""
Pension Kernel: Domain Arithmetic v1.0

Pure functions. No I/O, no mutable state.

All accrual math is exact: years of service are rational
(days * 4 / 1461), decimals are lifted into Fraction without loss,
so the per-policy distribution always sums back to the annual pension.
Values only leave exact arithmetic through to_amount().
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Context, Decimal
from fractions import Fraction
from typing import List, Sequence, Tuple

from .constants import (
    AMOUNT_PRECISION,
    DAYS_PER_YEAR_DENOMINATOR,
    DAYS_PER_YEAR_NUMERATOR,
    RETIREMENT_AGE,
    RETIREMENT_SERVICE_YEARS,
)
from .domain_types import Policy

_AMOUNT_CONTEXT = Context(prec=AMOUNT_PRECISION)


# ── Conversions ───────────────────────────────────────────────

def to_amount(value: Fraction) -> Decimal:
    """Leave exact arithmetic: Fraction -> Decimal at AMOUNT_PRECISION digits."""
    return _AMOUNT_CONTEXT.divide(
        Decimal(value.numerator), Decimal(value.denominator),
    )


# ── Service Time ──────────────────────────────────────────────

def years_of_service(start: date, at: date) -> Fraction:
    """max(0, days_between(start, at) / 365.25)."""
    days = (at - start).days
    if days <= 0:
        return Fraction(0)
    return Fraction(days * DAYS_PER_YEAR_DENOMINATOR, DAYS_PER_YEAR_NUMERATOR)


def age_at(birth_date: date, at: date) -> int:
    """Completed calendar years between birth_date and at."""
    age = at.year - birth_date.year
    if (at.month, at.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def effective_salary(policy: Policy) -> Fraction:
    return Fraction(policy.salary) * Fraction(policy.part_time_factor)


# ── Accrual ───────────────────────────────────────────────────

@dataclass(frozen=True)
class AccrualBreakdown:
    """
    Result of one accrual pass over a dossier's policies at a date.

    policy_years and policy_pensions are aligned with the input order.
    """

    policy_years: Tuple[Fraction, ...]
    total_years: Fraction
    weighted_avg_salary: Fraction
    annual_pension: Fraction
    policy_pensions: Tuple[Fraction, ...]


def weighted_avg_salary(policies: Sequence[Policy], at: date) -> Fraction:
    """Σ(effective_salary_i * years_i) / Σ(years_i); 0 when Σyears = 0."""
    years = [years_of_service(p.employment_start_date, at) for p in policies]
    return _weighted_average(policies, years)


def annual_pension(
    policies: Sequence[Policy], at: date, accrual_rate: Decimal,
) -> Fraction:
    """weighted_avg_salary * Σyears * accrual_rate."""
    return compute_accrual(policies, at, accrual_rate).annual_pension


def distribute(total: Fraction, years: Sequence[Fraction]) -> List[Fraction]:
    """
    Split total over policies proportional to their years of service.
    Every share is 0 when Σyears = 0.
    """
    total_years = sum(years, Fraction(0))
    if total_years == 0:
        return [Fraction(0) for _ in years]
    return [total * y / total_years for y in years]


def compute_accrual(
    policies: Sequence[Policy], at: date, accrual_rate: Decimal,
) -> AccrualBreakdown:
    """Full accrual pass: years, weighted average, annual pension, shares."""
    years = [years_of_service(p.employment_start_date, at) for p in policies]
    total_years = sum(years, Fraction(0))
    avg = _weighted_average(policies, years)
    pension = avg * total_years * Fraction(accrual_rate)
    return AccrualBreakdown(
        policy_years=tuple(years),
        total_years=total_years,
        weighted_avg_salary=avg,
        annual_pension=pension,
        policy_pensions=tuple(distribute(pension, years)),
    )


def is_eligible(birth_date: date, retirement_date: date, total_years: Fraction) -> bool:
    """age >= 65 OR total service >= 40 years."""
    return (
        age_at(birth_date, retirement_date) >= RETIREMENT_AGE
        or total_years >= RETIREMENT_SERVICE_YEARS
    )


def _weighted_average(
    policies: Sequence[Policy], years: Sequence[Fraction],
) -> Fraction:
    total_years = sum(years, Fraction(0))
    if total_years == 0:
        return Fraction(0)
    weighted = sum(
        (effective_salary(p) * y for p, y in zip(policies, years)),
        Fraction(0),
    )
    return weighted / total_years


# ── Indexation ────────────────────────────────────────────────

def index_salary(salary: Decimal, percentage: Decimal) -> Tuple[Decimal, bool]:
    """
    new_salary = max(0, salary * (1 + percentage)).
    Returns (new_salary, clamped).
    """
    new_salary = salary * (1 + percentage)
    if new_salary < 0:
        return Decimal(0), True
    return new_salary, False


# ── Calendar Stepping ─────────────────────────────────────────

def add_months(start: date, months: int) -> date:
    """Calendar-month step; day overflow clamps to the month's last day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def projection_dates(start: date, end: date, interval_months: int) -> List[date]:
    """
    Inclusive dates from start to end. Each date is the previous one
    plus interval_months, so a clamped month end carries forward.
    """
    if interval_months < 1:
        raise ValueError(f"interval_months must be >= 1, got {interval_months}")
    dates: List[date] = []
    current = start
    while current <= end:
        dates.append(current)
        if _past_calendar(current, interval_months):
            break
        current = add_months(current, interval_months)
    return dates


def _past_calendar(start: date, months: int) -> bool:
    """True when stepping start by months leaves the representable years."""
    return start.year + (start.month - 1 + months) // 12 > date.max.year
