"""
Observability: logging setup and per-calculation metrics.

No external dependencies. Metrics are derived from a finished
ProcessingResult plus wall-clock timing, and emitted as one log line.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Union

from pension_kernel.engine import ProcessingResult
from pension_kernel.hashing import canonical_hash

logger = logging.getLogger(__name__)


def configure_logging(level: Union[int, str] = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once; force=True reconfigures (tests)."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


@dataclass(frozen=True)
class CalculationMetrics:
    """Snapshot of observable calculation metrics."""

    calculation_id: str
    tenant_id: str
    duration_ms: float
    mutation_count: int
    processed_count: int
    message_count: int
    critical_count: int
    warning_count: int
    outcome: str
    end_situation_hash: str

    def to_dict(self) -> dict:
        return asdict(self)


def collect_metrics(
    calculation_id: str,
    tenant_id: str,
    mutation_count: int,
    result: ProcessingResult,
    duration_ms: float,
) -> CalculationMetrics:
    critical = sum(1 for m in result.messages if m.is_critical)
    return CalculationMetrics(
        calculation_id=calculation_id,
        tenant_id=tenant_id,
        duration_ms=round(duration_ms, 2),
        mutation_count=mutation_count,
        processed_count=len(result.processed),
        message_count=len(result.messages),
        critical_count=critical,
        warning_count=len(result.messages) - critical,
        outcome=result.outcome,
        end_situation_hash=canonical_hash(result.end_situation.situation),
    )


def log_metrics(metrics: CalculationMetrics) -> None:
    logger.info(
        "calculation %s tenant=%s outcome=%s mutations=%d processed=%d "
        "messages=%d (critical=%d) duration_ms=%.2f hash=%s",
        metrics.calculation_id, metrics.tenant_id, metrics.outcome,
        metrics.mutation_count, metrics.processed_count, metrics.message_count,
        metrics.critical_count, metrics.duration_ms, metrics.end_situation_hash,
    )
