# file: pension_kernel/test_engine.py
"""
Pension Kernel: Sequential Processor Tests

Scenarios:
  1-3:   concrete end-to-end runs (indexation, missing dossier, clamping)
  4-6:   halt invariant, end situation tagging
  7-8:   policy id determinism across interleaved kinds
  9-12:  dispatcher, invariant and unexpected failures
  13-16: message indexes and per-mutation patches
  17-18: serialization faults and oversized amounts

Run:  python -m pytest pension_kernel/test_engine.py
"""

from __future__ import annotations

import os
import sys
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pension_kernel import constants as C
from pension_kernel.diff import apply_patch
from pension_kernel.domain_types import MutationResult, Situation
from pension_kernel.engine import Completed, Halted, PensionEngine, process_mutations
from pension_kernel.mutations import AddPolicyProperties, Mutation
from pension_kernel.rates import FixedAccrualRate, RequestRateCache
from pension_kernel.registry import MutationHandlerRegistry, default_registry
from pension_kernel.transitions import (
    AddPolicyHandler,
    CalculationContext,
    MutationHandler,
)


def _context() -> CalculationContext:
    return CalculationContext(
        rates=RequestRateCache(FixedAccrualRate()), today=date(2025, 1, 1),
    )


def _m(n: int, kind: str, props: Dict[str, Any], actual_at: str = "2025-01-01") -> Mutation:
    return Mutation(
        mutation_id=f"m{n}", kind=kind, actual_at=date.fromisoformat(actual_at),
        properties=props,
    )


def _create(n: int = 1, actual_at: str = "2025-01-01") -> Mutation:
    return _m(n, "create_dossier", {
        "dossier_id": "D", "person_id": "P", "name": "Jan Jansen",
        "birth_date": "1960-06-15",
    }, actual_at)


def _add_policy(n: int, scheme_id: str = "A", salary: Any = 50000,
                start: str = "2000-01-01") -> Mutation:
    return _m(n, "add_policy", {
        "scheme_id": scheme_id, "employment_start_date": start,
        "salary": salary, "part_time_factor": 1.0,
    })


def _index(n: int, pct: Any) -> Mutation:
    return _m(n, "apply_indexation", {"percentage": pct})


def _run(mutations: List[Mutation], engine: PensionEngine = None):
    return (engine or PensionEngine()).process(mutations, _context())


# ══════════════════════════════════════════════════════════════
# Concrete scenarios
# ══════════════════════════════════════════════════════════════

def test_01_create_add_index() -> None:
    result = _run([_create(), _add_policy(2), _index(3, 0.03)])
    assert result.outcome == C.OUTCOME_SUCCESS
    assert result.messages == ()
    assert isinstance(result.terminal, Completed)
    policy = result.end_situation.situation.dossier.policies[0]
    assert policy.policy_id == "D-1"
    assert policy.salary == Decimal("51500")
    assert policy.to_dict()["salary"] == 51500


def test_02_add_policy_without_dossier() -> None:
    result = _run([_add_policy(1)])
    assert result.outcome == C.OUTCOME_FAILURE
    assert [m.code for m in result.messages] == [C.DOSSIER_NOT_FOUND]
    assert result.messages[0].level == C.LEVEL_CRITICAL
    assert result.end_situation.situation.dossier is None
    assert result.end_situation.to_dict()["situation"] == {"dossier": None}


def test_03_negative_indexation_clamps() -> None:
    result = _run([_create(), _add_policy(2), _index(3, -1.5)])
    assert result.outcome == C.OUTCOME_SUCCESS
    assert [m.code for m in result.messages] == [C.NEGATIVE_SALARY_CLAMPED]
    assert result.messages[0].level == C.LEVEL_WARNING
    assert result.end_situation.situation.dossier.policies[0].salary == 0


# ══════════════════════════════════════════════════════════════
# Halt invariant
# ══════════════════════════════════════════════════════════════

def test_04_halt_keeps_previous_situation() -> None:
    ok = _run([_create(), _add_policy(2)])
    mutations = [_create(), _add_policy(2), _add_policy(3, salary=-5), _index(4, 0.1)]
    result = _run(mutations)

    assert isinstance(result.terminal, Halted)
    assert result.terminal.failed_index == 2
    assert len(result.processed) == 3
    assert [p.mutation.mutation_id for p in result.processed] == ["m1", "m2", "m3"]
    assert result.end_situation.situation == ok.end_situation.situation
    assert result.end_situation.mutation_id == "m2"
    assert result.end_situation.mutation_index == 1


def test_05_halt_on_first_mutation_reports_first() -> None:
    result = _run([_index(1, 0.1), _create(2)])
    assert len(result.processed) == 1
    assert result.end_situation.mutation_id == "m1"
    assert result.end_situation.mutation_index == 0
    assert result.end_situation.situation.is_empty


def test_06_end_and_initial_actual_at() -> None:
    mutations = [
        _create(1, actual_at="2020-01-01"),
        _m(2, "add_policy", {
            "scheme_id": "A", "employment_start_date": "2000-01-01",
            "salary": 1, "part_time_factor": 1,
        }, actual_at="2021-03-04"),
    ]
    result = _run(mutations)
    assert result.initial_situation == {
        "actual_at": "2020-01-01", "situation": {"dossier": None},
    }
    assert result.end_situation.actual_at == date(2021, 3, 4)
    assert result.end_situation.mutation_index == 1


# ══════════════════════════════════════════════════════════════
# Policy id determinism
# ══════════════════════════════════════════════════════════════

def test_07_policy_ids_ignore_interleaved_kinds() -> None:
    mutations = [
        _create(),
        _add_policy(2, "A"),
        _index(3, 0.02),
        _add_policy(4, "B"),
        _m(5, "project_future_benefits", {
            "projection_start_date": "2025-01-01",
            "projection_end_date": "2025-06-01",
            "projection_interval_months": 1,
        }),
        _index(6, 0.01),
        _add_policy(7, "C"),
    ]
    result = _run(mutations)
    ids = [p.policy_id for p in result.end_situation.situation.dossier.policies]
    assert ids == ["D-1", "D-2", "D-3"]


def test_08_policy_ids_count_accepted_add_policy_only() -> None:
    result = _run([
        _create(), _add_policy(2, "A"), _add_policy(3, "B"),
    ])
    assert [p.policy_id for p in result.end_situation.situation.dossier.policies] == [
        "D-1", "D-2",
    ]
    halted = _run([_create(), _add_policy(2, salary=-1)])
    assert halted.end_situation.situation.dossier.policies == ()


# ══════════════════════════════════════════════════════════════
# Failures caught at the processor
# ══════════════════════════════════════════════════════════════

def test_09_unknown_mutation_kind() -> None:
    result = _run([_create(), _m(2, "merge_dossiers", {})])
    assert [m.code for m in result.messages] == [C.UNKNOWN_MUTATION]
    assert result.outcome == C.OUTCOME_FAILURE
    assert len(result.processed) == 2
    record = result.processed[1]
    assert record.forward_patch == () and record.backward_patch == ()


class _BrokenIdHandler(AddPolicyHandler):
    """Appends a policy with a bad id so the invariant check must catch it."""

    def apply(self, props: AddPolicyProperties, situation, context) -> MutationResult:
        result = super().apply(props, situation, context)
        dossier = result.situation.dossier
        bad = replace(dossier.policies[-1], policy_id="WRONG")
        return MutationResult(
            situation=replace(
                result.situation,
                dossier=replace(dossier, policies=dossier.policies[:-1] + (bad,)),
            ),
        )


class _ExplodingHandler(MutationHandler):
    kind = "explode"
    requires_dossier = False

    class properties_type:
        @staticmethod
        def parse(props):
            return props

    def apply(self, props, situation, context) -> MutationResult:
        raise ZeroDivisionError("boom")


class _UnserializableSituation(Situation):
    def to_dict(self) -> dict:
        raise ValueError("situation cannot be serialized")


class _CorruptingHandler(MutationHandler):
    """Returns a situation that passes the invariants but fails to serialize."""

    kind = "corrupt"

    class properties_type:
        @staticmethod
        def parse(props):
            return props

    def apply(self, props, situation, context) -> MutationResult:
        return MutationResult(situation=_UnserializableSituation(situation.dossier))


def _custom_engine() -> PensionEngine:
    base = default_registry()
    registry = MutationHandlerRegistry()
    for kind in base.kinds:
        if kind != "add_policy":
            registry.register(base.resolve(kind))
    registry.register(_BrokenIdHandler())
    registry.register(_ExplodingHandler())
    registry.register(_CorruptingHandler())
    return PensionEngine(registry)


def test_10_invariant_violation_halts() -> None:
    result = _run([_create(), _add_policy(2)], engine=_custom_engine())
    assert [m.code for m in result.messages] == [C.INVARIANT_VIOLATION]
    assert result.end_situation.situation.dossier.policies == ()
    assert result.end_situation.mutation_id == "m1"


def test_11_unexpected_error_halts() -> None:
    result = _run([_create(), _m(2, "explode", {}), _add_policy(3)], engine=_custom_engine())
    assert [m.code for m in result.messages] == [C.UNEXPECTED_ERROR]
    assert "boom" in result.messages[0].message
    assert len(result.processed) == 2


def test_12_empty_mutation_list_rejected() -> None:
    with pytest.raises(ValueError):
        PensionEngine().process([])


# ══════════════════════════════════════════════════════════════
# Messages and patches
# ══════════════════════════════════════════════════════════════

def test_13_message_indexes_are_request_wide() -> None:
    result = _run([
        _create(),
        _add_policy(2, "A"),
        _add_policy(3, "A"),            # DUPLICATE_POLICY -> 0
        _index(4, -2),                   # NEGATIVE_SALARY_CLAMPED -> 1
        _m(5, "apply_indexation", {"percentage": 0.1, "scheme_id": "Z"}),  # -> 2
    ])
    assert [m.code for m in result.messages] == [
        C.DUPLICATE_POLICY, C.NEGATIVE_SALARY_CLAMPED, C.NO_MATCHING_POLICIES,
    ]
    indexes = [p.message_indexes for p in result.processed]
    assert indexes == [(), (), (0,), (1,), (2,)]


def test_14_forward_patches_rebuild_end_situation() -> None:
    mutations = [
        _create(), _add_policy(2), _add_policy(3, "B", 30000, "2010-01-01"),
        _index(4, 0.05),
        _m(5, "calculate_retirement_benefit", {"retirement_date": "2025-06-15"}),
    ]
    result = _run(mutations)
    document: Any = {"dossier": None}
    for record in result.processed:
        document = apply_patch(document, record.forward_patch)
    assert document == result.end_situation.situation.to_dict()

    for record in reversed(result.processed):
        document = apply_patch(document, record.backward_patch)
    assert document == {"dossier": None}


def test_15_create_dossier_patch_shape() -> None:
    result = _run([_create()])
    forward = [op.to_dict() for op in result.processed[0].forward_patch]
    backward = [op.to_dict() for op in result.processed[0].backward_patch]
    dossier = result.end_situation.situation.dossier.to_dict()
    assert forward == [{"op": "replace", "path": "/dossier", "value": dossier}]
    assert backward == [{"op": "replace", "path": "/dossier", "value": None}]


def test_16_process_mutations_wrapper() -> None:
    result = process_mutations(iter([_create(), _add_policy(2)]), _context())
    assert result.outcome == C.OUTCOME_SUCCESS
    assert len(result.processed) == 2


def test_17_serialization_fault_halts_with_previous_situation() -> None:
    result = _run([
        _create(), _m(2, "corrupt", {}), _add_policy(3),
    ], engine=_custom_engine())
    assert result.halted
    assert [m.code for m in result.messages] == [C.UNEXPECTED_ERROR]
    assert "cannot be serialized" in result.messages[0].message
    assert result.processed[1].forward_patch == ()
    assert result.processed[1].backward_patch == ()
    assert type(result.end_situation.situation) is Situation
    assert result.end_situation.mutation_id == "m1"


def test_18_oversized_amount_rejected_as_property_error() -> None:
    result = _run([_create(), _add_policy(2, salary="1e5000")])
    assert result.halted
    assert [m.code for m in result.messages] == [C.INVALID_MUTATION_PROPERTIES]
    assert result.end_situation.situation.dossier.policies == ()


# ══════════════════════════════════════════════════════════════
# Runner
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
