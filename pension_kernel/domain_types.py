"""
Pension Kernel: Core Domain Types v1.0

Pure data. No behaviour, no transition logic.
Every type is a frozen value: handlers build new values with
dataclasses.replace and never mutate the one they were given.

────────────────────────────────────────────────
DOMAIN GLOSSARY
────────────────────────────────────────────────

Situation:
    The complete pension state at one point in processing.

Dossier:
    A participant's pension record container.

Policy:
    One pension scheme's terms for a participant.

Forward / Backward patch:
    Structural diff transforming situation-before <-> situation-after.

────────────────────────────────────────────────
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

from .constants import (
    LEVEL_CRITICAL,
    LEVEL_WARNING,
    ROLE_PARTICIPANT,
    STATUS_ACTIVE,
)

JsonNumber = Union[int, float]


def json_number(value: Decimal) -> JsonNumber:
    """
    Render a Decimal as the JSON number a client would read back.
    Integral values become int, everything else float.
    """
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ── Situation Tree ────────────────────────────────────────────

@dataclass(frozen=True)
class Person:
    """A person attached to a dossier. Only PARTICIPANT exists today."""

    person_id: str
    name: str
    birth_date: date
    role: str = ROLE_PARTICIPANT

    def to_dict(self) -> dict:
        return {
            "person_id": self.person_id,
            "role": self.role,
            "name": self.name,
            "birth_date": self.birth_date.isoformat(),
        }


@dataclass(frozen=True)
class Projection:
    """Projected annual pension for one policy at one future date."""

    date: date
    projected_pension: Decimal

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "projected_pension": json_number(self.projected_pension),
        }


@dataclass(frozen=True)
class Policy:
    """
    One scheme's terms for the participant.

    attainable_pension is only set by the retirement calculation,
    projections only by the projection mutation.
    """

    policy_id: str
    scheme_id: str
    employment_start_date: date
    salary: Decimal
    part_time_factor: Decimal
    attainable_pension: Optional[Decimal] = None
    projections: Optional[Tuple[Projection, ...]] = None

    def to_dict(self) -> dict:
        return {
            "policy_id": self.policy_id,
            "scheme_id": self.scheme_id,
            "employment_start_date": self.employment_start_date.isoformat(),
            "salary": json_number(self.salary),
            "part_time_factor": json_number(self.part_time_factor),
            "attainable_pension": (
                json_number(self.attainable_pension)
                if self.attainable_pension is not None else None
            ),
            "projections": (
                [p.to_dict() for p in self.projections]
                if self.projections is not None else None
            ),
        }


@dataclass(frozen=True)
class Dossier:
    """A participant's pension record: persons plus policies, in order."""

    dossier_id: str
    status: str = STATUS_ACTIVE
    retirement_date: Optional[date] = None
    persons: Tuple[Person, ...] = ()
    policies: Tuple[Policy, ...] = ()

    @property
    def participant(self) -> Optional[Person]:
        for person in self.persons:
            if person.role == ROLE_PARTICIPANT:
                return person
        return None

    def next_policy_id(self) -> str:
        """{dossier_id}-{n}: n is the ordinal of the policy being added."""
        return f"{self.dossier_id}-{len(self.policies) + 1}"

    def to_dict(self) -> dict:
        return {
            "dossier_id": self.dossier_id,
            "status": self.status,
            "retirement_date": _iso(self.retirement_date),
            "persons": [p.to_dict() for p in self.persons],
            "policies": [p.to_dict() for p in self.policies],
        }


@dataclass(frozen=True)
class Situation:
    """
    Root value: either empty (dossier is None) or exactly one Dossier.

    The serialized form always carries the "dossier" member, null when
    empty, so patches never need to create or delete the root key.
    """

    dossier: Optional[Dossier] = None

    @property
    def is_empty(self) -> bool:
        return self.dossier is None

    def to_dict(self) -> dict:
        return {
            "dossier": self.dossier.to_dict() if self.dossier is not None else None,
        }


EMPTY_SITUATION = Situation()


# ── Messages ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Message:
    """
    A CRITICAL or WARNING produced while validating one mutation.
    Never mutated after creation; referenced by index from the result.
    """

    level: str
    code: str
    message: str

    @property
    def is_critical(self) -> bool:
        return self.level == LEVEL_CRITICAL

    @classmethod
    def critical(cls, code: str, message: str) -> "Message":
        return cls(level=LEVEL_CRITICAL, code=code, message=message)

    @classmethod
    def warning(cls, code: str, message: str) -> "Message":
        return cls(level=LEVEL_WARNING, code=code, message=message)

    def to_dict(self, message_id: int) -> dict:
        return {
            "id": message_id,
            "level": self.level,
            "code": self.code,
            "message": self.message,
        }


# ── Patches ───────────────────────────────────────────────────

@dataclass(frozen=True)
class PatchOperation:
    """One add / remove / replace against a slash-delimited pointer."""

    op: str
    path: str
    value: Any = None

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {"op": self.op, "path": self.path}
        if self.op != "remove":
            d["value"] = self.value
        return d


# ── Transition Outcomes ───────────────────────────────────────

@dataclass(frozen=True)
class MutationResult:
    """
    Structured, immutable outcome of one handler invocation.

    A CRITICAL message means situation is the handler's input, untouched.
    A WARNING means situation already reflects the applied change.
    """

    situation: Situation
    messages: Tuple[Message, ...] = ()

    @property
    def has_critical(self) -> bool:
        return any(m.is_critical for m in self.messages)

    @classmethod
    def reject(
        cls,
        situation: Situation,
        code: str,
        message: str,
    ) -> "MutationResult":
        return cls(situation=situation, messages=(Message.critical(code, message),))


@dataclass(frozen=True)
class ProcessedMutation:
    """Audit record for one mutation the processor looked at."""

    mutation: Any
    message_indexes: Tuple[int, ...] = ()
    forward_patch: Tuple[PatchOperation, ...] = ()
    backward_patch: Tuple[PatchOperation, ...] = ()

    def to_dict(self) -> dict:
        return {
            "mutation": self.mutation.to_dict(),
            "calculation_message_indexes": list(self.message_indexes),
            "forward_patch_to_situation_after_this_mutation": [
                op.to_dict() for op in self.forward_patch
            ],
            "backward_patch_to_previous_situation": [
                op.to_dict() for op in self.backward_patch
            ],
        }


@dataclass(frozen=True)
class SituationSnapshot:
    """The situation at a point in processing, tagged with its mutation."""

    mutation_id: str
    mutation_index: int
    actual_at: date
    situation: Situation = field(default_factory=Situation)

    def to_dict(self) -> dict:
        return {
            "mutation_id": self.mutation_id,
            "mutation_index": self.mutation_index,
            "actual_at": self.actual_at.isoformat(),
            "situation": self.situation.to_dict(),
        }
