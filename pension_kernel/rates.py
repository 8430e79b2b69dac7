"""
Pension Kernel: Accrual Rate Resolution

The kernel never performs I/O itself. It asks an AccrualRateSource for a
scheme's rate; the runtime plugs in the scheme registry client, tests and
offline runs use FixedAccrualRate.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Protocol

from .constants import DEFAULT_ACCRUAL_RATE


class AccrualRateSource(Protocol):
    def resolve(self, scheme_id: str) -> Decimal:
        ...


class FixedAccrualRate:
    """Same rate for every scheme."""

    def __init__(self, rate: Decimal = DEFAULT_ACCRUAL_RATE) -> None:
        self._rate = rate

    def resolve(self, scheme_id: str) -> Decimal:
        return self._rate


class RequestRateCache:
    """
    Short-lived, per-request map of scheme_id -> rate.

    Each scheme id hits the underlying source at most once per request,
    however many mutations or projection dates ask for it.
    """

    def __init__(
        self,
        source: AccrualRateSource,
        default_rate: Decimal = DEFAULT_ACCRUAL_RATE,
    ) -> None:
        self._source = source
        self._default_rate = default_rate
        self._rates: Dict[str, Decimal] = {}

    def resolve(self, scheme_id: str) -> Decimal:
        if scheme_id not in self._rates:
            self._rates[scheme_id] = self._source.resolve(scheme_id)
        return self._rates[scheme_id]

    def rate_for(self, scheme_ids: Iterable[str]) -> Decimal:
        """
        Resolve every distinct scheme id (in order) and return the first
        scheme's rate. A zero rate or no schemes falls back to the default.
        """
        rates = [self.resolve(sid) for sid in dict.fromkeys(scheme_ids)]
        if not rates or rates[0] == 0:
            return self._default_rate
        return rates[0]

    @property
    def resolved(self) -> Dict[str, Decimal]:
        return dict(self._rates)
