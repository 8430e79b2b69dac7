"""
Pension Kernel: Mutation Handler Registry

Maps a mutation kind name to its handler instance. Populated once at
startup through register(); resolving never branches on the kind.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .transitions import (
    AddPolicyHandler,
    ApplyIndexationHandler,
    CalculateRetirementBenefitHandler,
    CreateDossierHandler,
    MutationHandler,
    ProjectFutureBenefitsHandler,
)


class UnknownMutationError(LookupError):
    """
    Raised when no handler is registered for a mutation kind.
    Signals a malformed request, not a business-rule violation.
    """

    def __init__(self, kind: str, known: List[str]) -> None:
        self.kind = kind
        self.known = known
        super().__init__(
            f"Unknown mutation: {kind!r}. Known mutations: {known}"
        )


class MutationHandlerRegistry:
    def __init__(self, handlers: Optional[Iterable[MutationHandler]] = None) -> None:
        self._handlers: Dict[str, MutationHandler] = {}
        for handler in handlers or ():
            self.register(handler)

    def register(self, handler: MutationHandler) -> MutationHandler:
        if not handler.kind:
            raise ValueError(f"{type(handler).__name__} declares no kind")
        if handler.kind in self._handlers:
            raise ValueError(f"Handler for {handler.kind!r} already registered")
        self._handlers[handler.kind] = handler
        return handler

    def resolve(self, kind: str) -> MutationHandler:
        handler = self._handlers.get(kind)
        if handler is None:
            raise UnknownMutationError(kind, self.kinds)
        return handler

    def __contains__(self, kind: object) -> bool:
        return kind in self._handlers

    @property
    def kinds(self) -> List[str]:
        return sorted(self._handlers)


def default_registry() -> MutationHandlerRegistry:
    """Registry holding every built-in mutation kind."""
    return MutationHandlerRegistry([
        CreateDossierHandler(),
        AddPolicyHandler(),
        ApplyIndexationHandler(),
        CalculateRetirementBenefitHandler(),
        ProjectFutureBenefitsHandler(),
    ])
