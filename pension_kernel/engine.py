"""
Pension Kernel: Engine v1.0

Top-level orchestrator. Resolves each mutation through the registry,
delegates to its handler in transitions.py, validates via invariants.py
and derives forward / backward patches via diff.py.

Processing is a fold over (index, mutation) pairs:

    Running(index, situation, messages)  --CRITICAL-->  Halted
    Running                              --end------->  Completed

A halted fold skips every remaining mutation. The situation carried by
Halted is the one from before the failing mutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from functools import reduce
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from . import constants as C
from .diff import diff
from .domain_types import (
    EMPTY_SITUATION,
    Message,
    MutationResult,
    PatchOperation,
    ProcessedMutation,
    Situation,
    SituationSnapshot,
)
from .invariants import InvariantViolationError, validate_invariants
from .mutations import Mutation
from .registry import MutationHandlerRegistry, UnknownMutationError, default_registry
from .transitions import CalculationContext

logger = logging.getLogger(__name__)


# ── Fold States ───────────────────────────────────────────────

@dataclass(frozen=True)
class Running:
    """
    index: position of the next mutation to run.
    last_applied: position of the last mutation applied, None before any.
    """

    index: int
    situation: Situation
    messages: Tuple[Message, ...] = ()
    processed: Tuple[ProcessedMutation, ...] = ()
    last_applied: Optional[int] = None


@dataclass(frozen=True)
class Halted:
    """Terminal: mutation failed_index produced a CRITICAL."""

    failed_index: int
    situation: Situation
    messages: Tuple[Message, ...]
    processed: Tuple[ProcessedMutation, ...]
    last_applied: Optional[int]


@dataclass(frozen=True)
class Completed:
    """Terminal: every mutation applied."""

    situation: Situation
    messages: Tuple[Message, ...]
    processed: Tuple[ProcessedMutation, ...]
    last_applied: Optional[int]


FoldState = Union[Running, Halted]
Terminal = Union[Completed, Halted]


@dataclass(frozen=True)
class AppliedMutation:
    """One guarded handler run plus the patches it implies."""

    result: MutationResult
    forward_patch: Tuple[PatchOperation, ...] = ()
    backward_patch: Tuple[PatchOperation, ...] = ()


# ── Result ────────────────────────────────────────────────────

@dataclass(frozen=True)
class ProcessingResult:
    """Everything the response assembler needs from one run."""

    terminal: Terminal
    end_situation: SituationSnapshot
    initial_actual_at: date

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self.terminal.messages

    @property
    def processed(self) -> Tuple[ProcessedMutation, ...]:
        return self.terminal.processed

    @property
    def halted(self) -> bool:
        return isinstance(self.terminal, Halted)

    @property
    def outcome(self) -> str:
        if any(m.is_critical for m in self.messages):
            return C.OUTCOME_FAILURE
        return C.OUTCOME_SUCCESS

    @property
    def initial_situation(self) -> dict:
        return {
            "actual_at": self.initial_actual_at.isoformat(),
            "situation": EMPTY_SITUATION.to_dict(),
        }


# ── Engine ────────────────────────────────────────────────────

class PensionEngine:
    """
    Stateless across calls: every process() starts from the empty
    situation. The registry is the only long-lived collaborator.
    """

    def __init__(self, registry: Optional[MutationHandlerRegistry] = None) -> None:
        self._registry = registry if registry is not None else default_registry()

    @property
    def registry(self) -> MutationHandlerRegistry:
        return self._registry

    def process(
        self,
        mutations: Sequence[Mutation],
        context: Optional[CalculationContext] = None,
    ) -> ProcessingResult:
        """
        Apply mutations in order, halting on the first CRITICAL.
        Raises ValueError for an empty mutation list.
        """
        if not mutations:
            raise ValueError("At least one mutation is required")
        ctx = context if context is not None else CalculationContext()

        def step(state: FoldState, item: Tuple[int, Mutation]) -> FoldState:
            if isinstance(state, Halted):
                return state
            return self._step(state, item[1], ctx)

        final = reduce(step, enumerate(mutations), Running(0, EMPTY_SITUATION))
        terminal = _finish(final)
        return ProcessingResult(
            terminal=terminal,
            end_situation=_end_snapshot(terminal, mutations),
            initial_actual_at=mutations[0].actual_at,
        )

    def apply_mutation(
        self,
        mutation: Mutation,
        situation: Situation,
        context: CalculationContext,
    ) -> AppliedMutation:
        """
        Run one mutation against a situation and derive its patches.
        Never raises: dispatcher, invariant and unexpected failures
        (serializing the new situation included) come back as CRITICAL
        results carrying the input situation and empty patches.
        """
        try:
            handler = self._registry.resolve(mutation.kind)
            result = handler.validate_and_apply(mutation, situation, context)
            if result.has_critical:
                return AppliedMutation(result)
            validate_invariants(result.situation)
            return AppliedMutation(
                result,
                forward_patch=tuple(diff(situation, result.situation)),
                backward_patch=tuple(diff(result.situation, situation)),
            )
        except UnknownMutationError as exc:
            return AppliedMutation(
                MutationResult.reject(situation, C.UNKNOWN_MUTATION, str(exc)),
            )
        except InvariantViolationError as exc:
            return AppliedMutation(
                MutationResult.reject(situation, C.INVARIANT_VIOLATION, str(exc)),
            )
        except Exception as exc:
            logger.exception(
                "Unexpected error applying mutation %s (%s)",
                mutation.mutation_id, mutation.kind,
            )
            return AppliedMutation(MutationResult.reject(
                situation,
                C.UNEXPECTED_ERROR,
                f"Unexpected error in {mutation.kind}: {exc}",
            ))

    # -- Private -----------------------------------------------------------

    def _step(
        self, state: Running, mutation: Mutation, context: CalculationContext,
    ) -> FoldState:
        before = state.situation
        applied = self.apply_mutation(mutation, before, context)
        result = applied.result

        first = len(state.messages)
        messages = state.messages + result.messages
        indexes = tuple(range(first, len(messages)))

        if result.has_critical:
            critical = next(m for m in result.messages if m.is_critical)
            logger.warning(
                "Halted at mutation %s (index %d): %s",
                mutation.mutation_id, state.index, critical.code,
            )
            record = ProcessedMutation(mutation=mutation, message_indexes=indexes)
            return Halted(
                failed_index=state.index,
                situation=before,
                messages=messages,
                processed=state.processed + (record,),
                last_applied=state.last_applied,
            )

        record = ProcessedMutation(
            mutation=mutation,
            message_indexes=indexes,
            forward_patch=applied.forward_patch,
            backward_patch=applied.backward_patch,
        )
        logger.debug(
            "Applied mutation %s (%s) at index %d with %d message(s)",
            mutation.mutation_id, mutation.kind, state.index, len(result.messages),
        )
        return Running(
            index=state.index + 1,
            situation=result.situation,
            messages=messages,
            processed=state.processed + (record,),
            last_applied=state.index,
        )


def _finish(state: FoldState) -> Terminal:
    if isinstance(state, Halted):
        return state
    return Completed(
        situation=state.situation,
        messages=state.messages,
        processed=state.processed,
        last_applied=state.last_applied,
    )


def _end_snapshot(terminal: Terminal, mutations: Sequence[Mutation]) -> SituationSnapshot:
    """Tag the final situation with the last applied mutation, or the first."""
    index = terminal.last_applied if terminal.last_applied is not None else 0
    mutation = mutations[index]
    return SituationSnapshot(
        mutation_id=mutation.mutation_id,
        mutation_index=index,
        actual_at=mutation.actual_at,
        situation=terminal.situation,
    )


def process_mutations(
    mutations: Iterable[Mutation],
    context: Optional[CalculationContext] = None,
) -> ProcessingResult:
    """Convenience wrapper: one-off run with the default registry."""
    items: List[Mutation] = list(mutations)
    return PensionEngine().process(items, context)
