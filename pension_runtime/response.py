"""
Response Assembler: folds a ProcessingResult into the service envelope.

Pure function of its inputs; timing and ids are supplied by the caller.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from pension_kernel.engine import ProcessingResult


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def assemble_response(
    result: ProcessingResult,
    calculation_id: str,
    tenant_id: str,
    started_at: datetime,
    completed_at: datetime,
) -> Dict[str, Any]:
    duration_ms = (completed_at - started_at) // timedelta(milliseconds=1)
    return {
        "calculation_metadata": {
            "calculation_id": calculation_id,
            "tenant_id": tenant_id,
            "calculation_started_at": format_timestamp(started_at),
            "calculation_completed_at": format_timestamp(completed_at),
            "calculation_duration_ms": duration_ms,
            "calculation_outcome": result.outcome,
        },
        "calculation_result": {
            "messages": [m.to_dict(i) for i, m in enumerate(result.messages)],
            "mutations": [p.to_dict() for p in result.processed],
            "end_situation": result.end_situation.to_dict(),
            "initial_situation": result.initial_situation,
        },
    }
