"""
Pension Kernel: Mutation Definitions v1.0

Mutations are **pure data**. They carry intent and payload only.
They contain ZERO transition logic.

The wire envelope keeps properties as an untyped map. Each kind has one
typed payload class; the handler for that kind parses the map into it
once, before any business rule runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from .constants import INVALID_BIRTH_DATE, INVALID_MUTATION_PROPERTIES, MAX_AMOUNT_EXPONENT


class PropertyError(ValueError):
    """Raised when a mutation property is absent or malformed."""

    def __init__(self, key: str, detail: str, code: str = INVALID_MUTATION_PROPERTIES) -> None:
        self.key = key
        self.code = code
        self.detail = detail
        super().__init__(f"mutation property {key!r}: {detail}")


# ── Envelope ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Mutation:
    """One domain event instructing a change to the situation."""

    mutation_id: str
    kind: str
    actual_at: date
    properties: Dict[str, Any] = field(default_factory=dict)
    mutation_type: str = ""
    dossier_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Mutation":
        """
        Reconstruct a mutation from its wire dict.
        Raises ValueError for a malformed envelope; properties stay untyped.
        """
        mutation_id = data.get("mutation_id")
        if mutation_id is None or str(mutation_id).strip() == "":
            raise ValueError("mutation_id is required")
        kind = data.get("mutation_definition_name")
        if not isinstance(kind, str) or not kind:
            raise ValueError(
                f"mutation {mutation_id}: mutation_definition_name is required"
            )
        actual_at = _coerce_date(data.get("actual_at"))
        if actual_at is None:
            raise ValueError(
                f"mutation {mutation_id}: actual_at must be a YYYY-MM-DD date"
            )
        properties = data.get("mutation_properties") or {}
        if not isinstance(properties, Mapping):
            raise ValueError(
                f"mutation {mutation_id}: mutation_properties must be an object"
            )
        dossier_id = data.get("dossier_id")
        return cls(
            mutation_id=str(mutation_id),
            kind=kind,
            actual_at=actual_at,
            properties=dict(properties),
            mutation_type=str(data.get("mutation_type") or ""),
            dossier_id=str(dossier_id) if dossier_id is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "mutation_id": self.mutation_id,
            "mutation_definition_name": self.kind,
            "mutation_type": self.mutation_type,
            "actual_at": self.actual_at.isoformat(),
            "mutation_properties": dict(self.properties),
            "dossier_id": self.dossier_id,
        }


# ── Typed Payloads ────────────────────────────────────────────

@dataclass(frozen=True)
class CreateDossierProperties:
    dossier_id: str
    person_id: str
    name: str
    birth_date: date

    @classmethod
    def parse(cls, props: Mapping[str, Any]) -> "CreateDossierProperties":
        return cls(
            dossier_id=read_str(props, "dossier_id"),
            person_id=read_str(props, "person_id"),
            name=read_str(props, "name", allow_blank=True),
            birth_date=read_date(props, "birth_date", code=INVALID_BIRTH_DATE),
        )


@dataclass(frozen=True)
class AddPolicyProperties:
    scheme_id: str
    employment_start_date: date
    salary: Decimal
    part_time_factor: Decimal

    @classmethod
    def parse(cls, props: Mapping[str, Any]) -> "AddPolicyProperties":
        return cls(
            scheme_id=read_str(props, "scheme_id"),
            employment_start_date=read_date(props, "employment_start_date"),
            salary=read_decimal(props, "salary"),
            part_time_factor=read_decimal(props, "part_time_factor"),
        )


@dataclass(frozen=True)
class ApplyIndexationProperties:
    percentage: Decimal
    scheme_id: Optional[str] = None
    effective_before: Optional[date] = None

    @property
    def has_filters(self) -> bool:
        return self.scheme_id is not None or self.effective_before is not None

    @classmethod
    def parse(cls, props: Mapping[str, Any]) -> "ApplyIndexationProperties":
        return cls(
            percentage=read_decimal(props, "percentage"),
            scheme_id=read_optional_str(props, "scheme_id"),
            effective_before=read_optional_date(props, "effective_before"),
        )


@dataclass(frozen=True)
class CalculateRetirementBenefitProperties:
    retirement_date: date

    @classmethod
    def parse(cls, props: Mapping[str, Any]) -> "CalculateRetirementBenefitProperties":
        return cls(retirement_date=read_date(props, "retirement_date"))


@dataclass(frozen=True)
class ProjectFutureBenefitsProperties:
    projection_start_date: date
    projection_end_date: date
    projection_interval_months: int

    @classmethod
    def parse(cls, props: Mapping[str, Any]) -> "ProjectFutureBenefitsProperties":
        interval = read_int(props, "projection_interval_months")
        if interval < 1:
            raise PropertyError(
                "projection_interval_months", f"must be >= 1, got {interval}",
            )
        return cls(
            projection_start_date=read_date(props, "projection_start_date"),
            projection_end_date=read_date(props, "projection_end_date"),
            projection_interval_months=interval,
        )


# ── Property Readers ──────────────────────────────────────────

def read_str(props: Mapping[str, Any], key: str, allow_blank: bool = False) -> str:
    value = _require(props, key)
    if not isinstance(value, str):
        raise PropertyError(key, f"expected string, got {type(value).__name__}")
    if not allow_blank and not value.strip():
        raise PropertyError(key, "must not be blank")
    return value


def read_optional_str(props: Mapping[str, Any], key: str) -> Optional[str]:
    if props.get(key) in (None, ""):
        return None
    return read_str(props, key)


def read_decimal(props: Mapping[str, Any], key: str) -> Decimal:
    value = _require(props, key)
    # bool is an int subclass; true/false are never amounts.
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise PropertyError(key, f"expected number, got {type(value).__name__}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise PropertyError(key, f"not a number: {value!r}") from exc
    if not result.is_finite():
        raise PropertyError(key, f"not a finite number: {value!r}")
    if result and result.adjusted() > MAX_AMOUNT_EXPONENT:
        raise PropertyError(key, f"out of range: {value!r}")
    return result


def read_int(props: Mapping[str, Any], key: str) -> int:
    value = _require(props, key)
    if isinstance(value, bool):
        raise PropertyError(key, "expected integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise PropertyError(key, f"not an integer: {value!r}") from exc
    raise PropertyError(key, f"expected integer, got {value!r}")


def read_date(
    props: Mapping[str, Any], key: str, code: str = INVALID_MUTATION_PROPERTIES,
) -> date:
    value = _require(props, key, code=code)
    parsed = _coerce_date(value)
    if parsed is None:
        raise PropertyError(key, f"not a YYYY-MM-DD date: {value!r}", code=code)
    return parsed


def read_optional_date(props: Mapping[str, Any], key: str) -> Optional[date]:
    if props.get(key) in (None, ""):
        return None
    return read_date(props, key)


def _require(
    props: Mapping[str, Any], key: str, code: str = INVALID_MUTATION_PROPERTIES,
) -> Any:
    if key not in props or props[key] is None:
        raise PropertyError(key, "is required", code=code)
    return props[key]


# A calendar date, optionally followed by a time of day.
_ISO_DATE = re.compile(
    r"(\d{4}-\d{2}-\d{2})"
    r"(?:T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:\d{2})?)?"
)


def _coerce_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    match = _ISO_DATE.fullmatch(value.strip())
    if match is None:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None
