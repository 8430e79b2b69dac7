"""
Pension Kernel: Mutation Handlers v1.0

ALL situation-changing logic lives here, one handler per mutation kind.
Handlers never mutate their input: every accepted mutation yields a new
Situation built with dataclasses.replace; every rejected one returns the
input Situation together with a CRITICAL message.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, ClassVar, List, Optional, Tuple

from . import constants as C
from .arithmetic import (
    compute_accrual,
    index_salary,
    is_eligible,
    projection_dates,
    to_amount,
)
from .domain_types import (
    Dossier,
    Message,
    MutationResult,
    Person,
    Policy,
    Projection,
    Situation,
)
from .mutations import (
    AddPolicyProperties,
    ApplyIndexationProperties,
    CalculateRetirementBenefitProperties,
    CreateDossierProperties,
    Mutation,
    ProjectFutureBenefitsProperties,
    PropertyError,
)
from .rates import FixedAccrualRate, RequestRateCache


@dataclass
class CalculationContext:
    """Request-scoped collaborators shared by every handler call."""

    rates: RequestRateCache = field(
        default_factory=lambda: RequestRateCache(FixedAccrualRate())
    )
    today: date = field(default_factory=date.today)


# ---------------------------------------------------------------------------
# Handler contract
# ---------------------------------------------------------------------------

class MutationHandler(abc.ABC):
    """
    validate_and_apply(mutation, situation) -> MutationResult.

    Order of checks: situation preconditions (dossier / policies), then
    property parsing, then the kind's own business rules in apply().
    """

    kind: ClassVar[str] = ""
    properties_type: ClassVar[Any] = None
    requires_dossier: ClassVar[bool] = True
    requires_policies: ClassVar[bool] = False

    def validate_and_apply(
        self,
        mutation: Mutation,
        situation: Situation,
        context: CalculationContext,
    ) -> MutationResult:
        rejection = self._check_situation(situation)
        if rejection is not None:
            return rejection
        try:
            props = self.properties_type.parse(mutation.properties)
        except PropertyError as exc:
            return MutationResult.reject(situation, exc.code, str(exc))
        return self.apply(props, situation, context)

    @abc.abstractmethod
    def apply(
        self, props: Any, situation: Situation, context: CalculationContext,
    ) -> MutationResult:
        ...

    def _check_situation(self, situation: Situation) -> Optional[MutationResult]:
        if not self.requires_dossier:
            return None
        if situation.dossier is None:
            return MutationResult.reject(
                situation, C.DOSSIER_NOT_FOUND, "No dossier in the situation",
            )
        if self.requires_policies and not situation.dossier.policies:
            return MutationResult.reject(
                situation, C.NO_POLICIES, "Dossier has no policies",
            )
        return None


def _with_dossier(situation: Situation, **changes: Any) -> Situation:
    return replace(situation, dossier=replace(situation.dossier, **changes))


# ---------------------------------------------------------------------------
# create_dossier
# ---------------------------------------------------------------------------

class CreateDossierHandler(MutationHandler):
    kind = "create_dossier"
    properties_type = CreateDossierProperties
    requires_dossier = False

    def _check_situation(self, situation: Situation) -> Optional[MutationResult]:
        if situation.dossier is not None:
            return MutationResult.reject(
                situation,
                C.DOSSIER_ALREADY_EXISTS,
                "A dossier already exists in the situation",
            )
        return None

    def apply(
        self,
        props: CreateDossierProperties,
        situation: Situation,
        context: CalculationContext,
    ) -> MutationResult:
        if props.birth_date > context.today:
            return MutationResult.reject(
                situation,
                C.INVALID_BIRTH_DATE,
                "birth_date is not a valid date or is in the future",
            )
        if not props.name.strip():
            return MutationResult.reject(
                situation, C.INVALID_NAME, "name is empty or blank",
            )

        dossier = Dossier(
            dossier_id=props.dossier_id,
            status=C.STATUS_ACTIVE,
            retirement_date=None,
            persons=(
                Person(
                    person_id=props.person_id,
                    name=props.name,
                    birth_date=props.birth_date,
                    role=C.ROLE_PARTICIPANT,
                ),
            ),
            policies=(),
        )
        return MutationResult(situation=Situation(dossier=dossier))


# ---------------------------------------------------------------------------
# add_policy
# ---------------------------------------------------------------------------

class AddPolicyHandler(MutationHandler):
    kind = "add_policy"
    properties_type = AddPolicyProperties

    def apply(
        self,
        props: AddPolicyProperties,
        situation: Situation,
        context: CalculationContext,
    ) -> MutationResult:
        if props.salary < 0:
            return MutationResult.reject(situation, C.INVALID_SALARY, "salary < 0")
        if props.part_time_factor < 0 or props.part_time_factor > 1:
            return MutationResult.reject(
                situation,
                C.INVALID_PART_TIME_FACTOR,
                "part_time_factor < 0 or > 1",
            )

        dossier = situation.dossier
        warnings: List[Message] = []
        if any(
            p.scheme_id == props.scheme_id
            and p.employment_start_date == props.employment_start_date
            for p in dossier.policies
        ):
            warnings.append(Message.warning(
                C.DUPLICATE_POLICY,
                "A policy with the same scheme_id AND same "
                "employment_start_date already exists",
            ))

        policy = Policy(
            policy_id=dossier.next_policy_id(),
            scheme_id=props.scheme_id,
            employment_start_date=props.employment_start_date,
            salary=props.salary,
            part_time_factor=props.part_time_factor,
        )
        return MutationResult(
            situation=_with_dossier(situation, policies=dossier.policies + (policy,)),
            messages=tuple(warnings),
        )


# ---------------------------------------------------------------------------
# apply_indexation
# ---------------------------------------------------------------------------

class ApplyIndexationHandler(MutationHandler):
    """
    Filters combine with AND: scheme_id equality and/or
    employment_start_date < effective_before. No filters -> every policy.
    """

    kind = "apply_indexation"
    properties_type = ApplyIndexationProperties
    requires_policies = True

    def apply(
        self,
        props: ApplyIndexationProperties,
        situation: Situation,
        context: CalculationContext,
    ) -> MutationResult:
        warnings: List[Message] = []
        matched = 0
        clamped = False
        policies: List[Policy] = []

        for policy in situation.dossier.policies:
            if not self._matches(policy, props):
                policies.append(policy)
                continue
            matched += 1
            new_salary, was_clamped = index_salary(policy.salary, props.percentage)
            clamped = clamped or was_clamped
            policies.append(replace(policy, salary=new_salary))

        if props.has_filters and matched == 0:
            warnings.append(Message.warning(
                C.NO_MATCHING_POLICIES,
                "Filters were provided but no policies match the criteria",
            ))
        if clamped:
            warnings.append(Message.warning(
                C.NEGATIVE_SALARY_CLAMPED,
                "After applying the percentage, one or more salaries would "
                "be negative. Salary is clamped to 0.",
            ))

        return MutationResult(
            situation=_with_dossier(situation, policies=tuple(policies)),
            messages=tuple(warnings),
        )

    @staticmethod
    def _matches(policy: Policy, props: ApplyIndexationProperties) -> bool:
        if props.scheme_id is not None and policy.scheme_id != props.scheme_id:
            return False
        if (
            props.effective_before is not None
            and not policy.employment_start_date < props.effective_before
        ):
            return False
        return True


# ---------------------------------------------------------------------------
# calculate_retirement_benefit
# ---------------------------------------------------------------------------

class CalculateRetirementBenefitHandler(MutationHandler):
    """
    Eligibility: age >= 65 at retirement_date OR total service >= 40 years.
    A policy starting after retirement_date contributes 0 years.
    """

    kind = "calculate_retirement_benefit"
    properties_type = CalculateRetirementBenefitProperties
    requires_policies = True

    def apply(
        self,
        props: CalculateRetirementBenefitProperties,
        situation: Situation,
        context: CalculationContext,
    ) -> MutationResult:
        dossier = situation.dossier
        participant = dossier.participant
        if participant is None:
            return MutationResult.reject(
                situation, C.PARTICIPANT_NOT_FOUND, "No participant found in dossier",
            )

        retirement_date = props.retirement_date
        rate = context.rates.rate_for(p.scheme_id for p in dossier.policies)
        accrual = compute_accrual(dossier.policies, retirement_date, rate)

        if not is_eligible(participant.birth_date, retirement_date, accrual.total_years):
            return MutationResult.reject(
                situation,
                C.NOT_ELIGIBLE,
                "Participant is under 65 years old on retirement_date AND "
                "total years of service < 40",
            )

        warnings: Tuple[Message, ...] = tuple(
            Message.warning(
                C.RETIREMENT_BEFORE_EMPLOYMENT,
                f"retirement_date is before employment_start_date of "
                f"policy {p.policy_id}",
            )
            for p in dossier.policies
            if retirement_date < p.employment_start_date
        )

        policies = tuple(
            replace(policy, attainable_pension=to_amount(share))
            for policy, share in zip(dossier.policies, accrual.policy_pensions)
        )
        return MutationResult(
            situation=_with_dossier(
                situation,
                status=C.STATUS_RETIRED,
                retirement_date=retirement_date,
                policies=policies,
            ),
            messages=warnings,
        )


# ---------------------------------------------------------------------------
# project_future_benefits
# ---------------------------------------------------------------------------

class ProjectFutureBenefitsHandler(MutationHandler):
    """
    Runs the retirement formula at every stepped date, without the
    eligibility gate, and attaches one projections array per policy.
    Dossier status and retirement_date are left alone.
    """

    kind = "project_future_benefits"
    properties_type = ProjectFutureBenefitsProperties
    requires_policies = True

    def apply(
        self,
        props: ProjectFutureBenefitsProperties,
        situation: Situation,
        context: CalculationContext,
    ) -> MutationResult:
        dossier = situation.dossier
        if props.projection_end_date <= props.projection_start_date:
            return MutationResult.reject(
                situation,
                C.INVALID_DATE_RANGE,
                "projection_end_date must be after projection_start_date",
            )
        if dossier.participant is None:
            return MutationResult.reject(
                situation, C.PARTICIPANT_NOT_FOUND, "No participant found in dossier",
            )

        warnings: List[Message] = []
        earliest_start = min(p.employment_start_date for p in dossier.policies)
        if props.projection_start_date < earliest_start:
            warnings.append(Message.warning(
                C.PROJECTION_BEFORE_EMPLOYMENT,
                "projection_start_date is before any policy's "
                "employment_start_date",
            ))

        rate = context.rates.rate_for(p.scheme_id for p in dossier.policies)
        per_policy: List[List[Projection]] = [[] for _ in dossier.policies]
        for at in projection_dates(
            props.projection_start_date,
            props.projection_end_date,
            props.projection_interval_months,
        ):
            accrual = compute_accrual(dossier.policies, at, rate)
            for slot, share in zip(per_policy, accrual.policy_pensions):
                slot.append(Projection(date=at, projected_pension=to_amount(share)))

        policies = tuple(
            replace(policy, projections=tuple(projections))
            for policy, projections in zip(dossier.policies, per_policy)
        )
        return MutationResult(
            situation=_with_dossier(situation, policies=policies),
            messages=tuple(warnings),
        )
