"""
Pension Kernel: Canonical Serialization + Hashing v1.0

Deterministic canonical JSON + SHA-256 hashing.
Produces byte-identical output for equal values.

Rules:
  - Object keys sorted
  - No whitespace
  - Decimals and dates rendered the way Situation.to_dict renders them
  - UTF-8, ASCII-escaped
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal
from typing import Any

from .domain_types import Situation, json_number


def canonical_json(value: Any) -> str:
    """Compact, key-sorted JSON text of a plain JSON value."""
    return json.dumps(
        value,
        ensure_ascii=True,
        separators=(",", ":"),
        sort_keys=True,
        default=_default,
    )


def canonical_serialize(situation: Situation) -> bytes:
    return canonical_json(situation.to_dict()).encode("utf-8")


def canonical_hash(situation: Situation) -> str:
    """SHA-256 of canonical serialization. Lowercase hex string."""
    return hashlib.sha256(canonical_serialize(situation)).hexdigest()


def _default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return json_number(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
