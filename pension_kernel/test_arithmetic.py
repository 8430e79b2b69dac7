# file: pension_kernel/test_arithmetic.py
"""
Pension Kernel: Domain Arithmetic Tests

Years of service, weighted average, accrual distribution, eligibility,
indexation and calendar-month stepping.

Run:  python -m pytest pension_kernel/test_arithmetic.py
"""

from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from fractions import Fraction

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pension_kernel.arithmetic import (
    add_months,
    age_at,
    compute_accrual,
    distribute,
    index_salary,
    is_eligible,
    projection_dates,
    to_amount,
    weighted_avg_salary,
    years_of_service,
)
from pension_kernel.domain_types import Policy


def _policy(n: int, start: date, salary: str, ptf: str = "1") -> Policy:
    return Policy(
        policy_id=f"D-{n}",
        scheme_id="SCHEME-A",
        employment_start_date=start,
        salary=Decimal(salary),
        part_time_factor=Decimal(ptf),
    )


# ══════════════════════════════════════════════════════════════
# Service time
# ══════════════════════════════════════════════════════════════

def test_01_years_of_service_uses_365_25_day_years() -> None:
    # 2000-01-01 .. 2004-01-01 is 1461 days: exactly four years.
    assert years_of_service(date(2000, 1, 1), date(2004, 1, 1)) == Fraction(4)


def test_02_years_of_service_never_negative() -> None:
    assert years_of_service(date(2030, 1, 1), date(2025, 1, 1)) == 0
    assert years_of_service(date(2025, 1, 1), date(2025, 1, 1)) == 0


def test_03_age_is_completed_calendar_years() -> None:
    birth = date(1960, 6, 15)
    assert age_at(birth, date(2025, 6, 14)) == 64
    assert age_at(birth, date(2025, 6, 15)) == 65
    assert age_at(birth, date(2025, 12, 31)) == 65


# ══════════════════════════════════════════════════════════════
# Accrual
# ══════════════════════════════════════════════════════════════

def test_04_weighted_average_weights_by_years() -> None:
    at = date(2008, 1, 1)
    policies = [
        _policy(1, date(2000, 1, 1), "40000"),        # 8 years
        _policy(2, date(2004, 1, 1), "60000", "0.5"),  # 4 years, effective 30000
    ]
    expected = (Fraction(40000) * 8 + Fraction(30000) * 4) / 12
    assert weighted_avg_salary(policies, at) == expected


def test_05_weighted_average_zero_without_service() -> None:
    policies = [_policy(1, date(2030, 1, 1), "50000")]
    assert weighted_avg_salary(policies, date(2025, 1, 1)) == 0


def test_06_annual_pension_formula() -> None:
    at = date(2004, 1, 1)
    policies = [_policy(1, date(2000, 1, 1), "50000")]
    accrual = compute_accrual(policies, at, Decimal("0.02"))
    assert accrual.total_years == 4
    assert accrual.annual_pension == Fraction(50000) * 4 * Fraction(2, 100)
    assert to_amount(accrual.annual_pension) == Decimal(4000)


def test_07_distribution_conserves_total() -> None:
    at = date(2025, 3, 17)
    policies = [
        _policy(1, date(1991, 7, 3), "41234.56"),
        _policy(2, date(2003, 2, 28), "77777.77", "0.8"),
        _policy(3, date(2017, 11, 30), "12000", "0.33"),
    ]
    accrual = compute_accrual(policies, at, Decimal("0.0185"))
    assert accrual.total_years > 0
    assert sum(accrual.policy_pensions, Fraction(0)) == accrual.annual_pension


def test_08_distribution_all_zero_without_service() -> None:
    assert distribute(Fraction(1000), [Fraction(0), Fraction(0)]) == [0, 0]


def test_09_policy_starting_after_date_contributes_nothing() -> None:
    at = date(2010, 1, 1)
    policies = [
        _policy(1, date(2000, 1, 1), "50000"),
        _policy(2, date(2015, 1, 1), "90000"),
    ]
    accrual = compute_accrual(policies, at, Decimal("0.02"))
    assert accrual.policy_years[1] == 0
    assert accrual.policy_pensions[1] == 0
    assert accrual.policy_pensions[0] == accrual.annual_pension


# ══════════════════════════════════════════════════════════════
# Eligibility
# ══════════════════════════════════════════════════════════════

def test_10_eligible_by_age() -> None:
    assert is_eligible(date(1960, 1, 1), date(2025, 1, 1), Fraction(5))


def test_11_eligible_by_service() -> None:
    assert is_eligible(date(1980, 1, 1), date(2025, 1, 1), Fraction(40))


def test_12_not_eligible() -> None:
    assert not is_eligible(date(1980, 1, 1), date(2025, 1, 1), Fraction(39))


# ══════════════════════════════════════════════════════════════
# Indexation
# ══════════════════════════════════════════════════════════════

def test_13_index_salary_positive() -> None:
    assert index_salary(Decimal("50000"), Decimal("0.03")) == (Decimal("51500"), False)


def test_14_index_salary_clamps_at_zero() -> None:
    salary, clamped = index_salary(Decimal("50000"), Decimal("-1.5"))
    assert salary == 0
    assert clamped


def test_15_index_salary_to_exactly_zero_is_not_clamped() -> None:
    salary, clamped = index_salary(Decimal("50000"), Decimal("-1"))
    assert salary == 0
    assert not clamped


# ══════════════════════════════════════════════════════════════
# Calendar stepping
# ══════════════════════════════════════════════════════════════

def test_16_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)


def test_17_projection_dates_inclusive() -> None:
    dates = projection_dates(date(2025, 1, 1), date(2026, 1, 1), 6)
    assert dates == [date(2025, 1, 1), date(2025, 7, 1), date(2026, 1, 1)]


def test_18_projection_dates_step_from_previous_date() -> None:
    dates = projection_dates(date(2025, 1, 31), date(2025, 4, 30), 1)
    assert dates == [
        date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 28), date(2025, 4, 28),
    ]


def test_19_projection_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        projection_dates(date(2025, 1, 1), date(2026, 1, 1), 0)


def test_20_projection_dates_stop_at_calendar_limit() -> None:
    assert projection_dates(date(2025, 1, 1), date(2030, 1, 1), 100000) == [date(2025, 1, 1)]
    dates = projection_dates(date(9999, 6, 1), date(9999, 12, 31), 6)
    assert dates == [date(9999, 6, 1), date(9999, 12, 1)]


# ══════════════════════════════════════════════════════════════
# Runner
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
