"""
Calculation Session: orchestrates engine + rate lookup for one request.

Stateless per request:
  1. parse the wire mutations      : may raise ValueError (bad envelope)
  2. build a fresh per-request rate cache and context
  3. engine.process(mutations)     : never raises for domain outcomes
  4. log metrics, assemble the response envelope
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from pension_kernel.engine import PensionEngine
from pension_kernel.mutations import Mutation
from pension_kernel.rates import AccrualRateSource, FixedAccrualRate, RequestRateCache
from pension_kernel.transitions import CalculationContext

from .config import Settings
from .observability import collect_metrics, log_metrics
from .response import assemble_response
from .scheme_registry import SchemeRegistryClient

logger = logging.getLogger(__name__)


def build_rate_source(settings: Settings) -> AccrualRateSource:
    """Registry client when a URL is configured, else the fixed default."""
    if settings.registry_enabled:
        return SchemeRegistryClient(
            settings.scheme_registry_url,
            timeout_seconds=settings.scheme_registry_timeout_seconds,
            default_rate=settings.default_accrual_rate,
        )
    return FixedAccrualRate(settings.default_accrual_rate)


class CalculationSession:
    """
    Long-lived wiring (engine, rate source); short-lived everything else.
    Safe to share across concurrent requests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        engine: Optional[PensionEngine] = None,
        rate_source: Optional[AccrualRateSource] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._settings = settings or Settings()
        self._engine = engine or PensionEngine()
        self._owns_rate_source = rate_source is None
        self._rate_source = rate_source or build_rate_source(self._settings)
        self._today = today

    @property
    def settings(self) -> Settings:
        return self._settings

    def close(self) -> None:
        """Release the connections of a rate source this session built."""
        if self._owns_rate_source and isinstance(self._rate_source, SchemeRegistryClient):
            logger.debug("closing scheme registry client")
            self._rate_source.close()

    def run(self, tenant_id: str, mutations: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Process one calculation request and return the response envelope.
        Raises ValueError for an empty or malformed mutation list.
        """
        parsed: List[Mutation] = [Mutation.from_dict(m) for m in mutations]
        if not parsed:
            raise ValueError("Invalid request: mutations are required")

        calculation_id = str(uuid.uuid4())
        started_at = datetime.now(timezone.utc)
        clock = time.perf_counter()
        logger.debug(
            "calculation %s: %d mutation(s) for tenant %s",
            calculation_id, len(parsed), tenant_id,
        )

        context = CalculationContext(
            rates=RequestRateCache(self._rate_source, self._settings.default_accrual_rate),
            today=self._today(),
        )
        result = self._engine.process(parsed, context)

        duration_ms = (time.perf_counter() - clock) * 1000.0
        completed_at = datetime.now(timezone.utc)
        log_metrics(collect_metrics(
            calculation_id, tenant_id, len(parsed), result, duration_ms,
        ))
        return assemble_response(result, calculation_id, tenant_id, started_at, completed_at)
