"""
Pension Kernel: Invariant Checks v1.0

Hard-fail validation. Every check raises InvariantViolationError on failure.
An empty situation trivially satisfies every invariant.
"""

from __future__ import annotations

from .constants import ROLE_PARTICIPANT, STATUS_ACTIVE, STATUS_RETIRED
from .domain_types import Dossier, Situation


class InvariantViolationError(Exception):
    """Raised when a situation invariant is violated."""

    def __init__(self, rule: str, detail: str) -> None:
        self.rule = rule
        self.detail = detail
        super().__init__(f"[INVARIANT:{rule}] {detail}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_invariants(situation: Situation) -> None:
    """
    Run every invariant check. Raises InvariantViolationError on the
    first failure.
    """
    dossier = situation.dossier
    if dossier is None:
        return
    _check_single_participant(dossier)
    _check_person_names(dossier)
    _check_status(dossier)
    _check_policy_terms(dossier)
    _check_policy_ids(dossier)


# ---------------------------------------------------------------------------
# Individual checks (private)
# ---------------------------------------------------------------------------

def _check_single_participant(dossier: Dossier) -> None:
    count = sum(1 for p in dossier.persons if p.role == ROLE_PARTICIPANT)
    if count != 1:
        raise InvariantViolationError(
            "single_participant",
            f"Dossier {dossier.dossier_id!r} has {count} participants, expected 1",
        )


def _check_person_names(dossier: Dossier) -> None:
    for person in dossier.persons:
        if not person.name.strip():
            raise InvariantViolationError(
                "person_name",
                f"Person {person.person_id!r} has a blank name",
            )


def _check_status(dossier: Dossier) -> None:
    """status = RETIRED <=> retirement_date is set."""
    if dossier.status not in (STATUS_ACTIVE, STATUS_RETIRED):
        raise InvariantViolationError(
            "dossier_status", f"Unknown dossier status {dossier.status!r}",
        )
    retired = dossier.status == STATUS_RETIRED
    if retired != (dossier.retirement_date is not None):
        raise InvariantViolationError(
            "retirement_date",
            f"status={dossier.status} but retirement_date={dossier.retirement_date}",
        )


def _check_policy_terms(dossier: Dossier) -> None:
    for policy in dossier.policies:
        if policy.salary < 0:
            raise InvariantViolationError(
                "salary", f"Policy {policy.policy_id!r} has salary {policy.salary} < 0",
            )
        if not 0 <= policy.part_time_factor <= 1:
            raise InvariantViolationError(
                "part_time_factor",
                f"Policy {policy.policy_id!r} has part_time_factor "
                f"{policy.part_time_factor} outside [0, 1]",
            )


def _check_policy_ids(dossier: Dossier) -> None:
    """Policy ids are {dossier_id}-1 .. {dossier_id}-N, in order."""
    for n, policy in enumerate(dossier.policies, 1):
        expected = f"{dossier.dossier_id}-{n}"
        if policy.policy_id != expected:
            raise InvariantViolationError(
                "policy_id",
                f"Policy at position {n} has id {policy.policy_id!r}, "
                f"expected {expected!r}",
            )
