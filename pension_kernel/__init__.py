"""
Pension Kernel v1.0
Deterministic, in-memory mutation processor and bidirectional state-diff
engine for participant pension dossiers.
All amounts: Decimal at rest, exact rationals in between.
"""

from .domain_types import (
    Person, Projection, Policy, Dossier, Situation, EMPTY_SITUATION,
    Message, PatchOperation, MutationResult, ProcessedMutation,
    SituationSnapshot, json_number,
)
from .mutations import (
    Mutation,
    PropertyError,
    CreateDossierProperties,
    AddPolicyProperties,
    ApplyIndexationProperties,
    CalculateRetirementBenefitProperties,
    ProjectFutureBenefitsProperties,
)
from .transitions import (
    CalculationContext,
    MutationHandler,
    CreateDossierHandler,
    AddPolicyHandler,
    ApplyIndexationHandler,
    CalculateRetirementBenefitHandler,
    ProjectFutureBenefitsHandler,
)
from .registry import MutationHandlerRegistry, UnknownMutationError, default_registry
from .engine import AppliedMutation, PensionEngine, ProcessingResult, Running, Halted, Completed, process_mutations
from .rates import AccrualRateSource, FixedAccrualRate, RequestRateCache
from .diff import PatchError, diff, apply_patch
from .hashing import canonical_json, canonical_serialize, canonical_hash
from .invariants import InvariantViolationError, validate_invariants
from .constants import (
    DEFAULT_ACCRUAL_RATE,
    RETIREMENT_AGE,
    RETIREMENT_SERVICE_YEARS,
    OUTCOME_SUCCESS,
    OUTCOME_FAILURE,
)

__all__ = [
    "Person",
    "Projection",
    "Policy",
    "Dossier",
    "Situation",
    "EMPTY_SITUATION",
    "Message",
    "PatchOperation",
    "MutationResult",
    "ProcessedMutation",
    "SituationSnapshot",
    "json_number",
    "Mutation",
    "PropertyError",
    "CreateDossierProperties",
    "AddPolicyProperties",
    "ApplyIndexationProperties",
    "CalculateRetirementBenefitProperties",
    "ProjectFutureBenefitsProperties",
    "CalculationContext",
    "MutationHandler",
    "CreateDossierHandler",
    "AddPolicyHandler",
    "ApplyIndexationHandler",
    "CalculateRetirementBenefitHandler",
    "ProjectFutureBenefitsHandler",
    "MutationHandlerRegistry",
    "UnknownMutationError",
    "default_registry",
    "AppliedMutation",
    "PensionEngine",
    "ProcessingResult",
    "Running",
    "Halted",
    "Completed",
    "process_mutations",
    "AccrualRateSource",
    "FixedAccrualRate",
    "RequestRateCache",
    "PatchError",
    "diff",
    "apply_patch",
    "canonical_json",
    "canonical_serialize",
    "canonical_hash",
    "InvariantViolationError",
    "validate_invariants",
    "DEFAULT_ACCRUAL_RATE",
    "RETIREMENT_AGE",
    "RETIREMENT_SERVICE_YEARS",
    "OUTCOME_SUCCESS",
    "OUTCOME_FAILURE",
]
