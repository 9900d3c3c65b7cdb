"""
Scheduling algorithm capability.

ReviewScheduler dispatches on a state's AlgorithmVariant tag through a
registry of SchedulingAlgorithm implementations, so algorithms can be
swapped or compared without branching in the orchestrator.
"""

from __future__ import annotations

from datetime import date
from typing import Mapping, Protocol, runtime_checkable

from src.adaptive.errors import UnknownAlgorithmVariant
from src.adaptive.leitner import LeitnerConfig, LeitnerEngine
from src.adaptive.models import (
    AlgorithmVariant,
    ItemResponse,
    ResponseKind,
    SpacedRepetitionState,
)
from src.adaptive.settings import EngineSettings, get_settings
from src.adaptive.sm2 import SM2Config, SM2Engine


@runtime_checkable
class SchedulingAlgorithm(Protocol):
    """Protocol for spaced repetition algorithms."""

    variant: AlgorithmVariant
    response_kind: ResponseKind

    def initial_state(self, user_id: str, item_id: str, today: date) -> SpacedRepetitionState:
        """State for an item seen for the first time."""
        ...

    def apply(
        self,
        state: SpacedRepetitionState,
        event: ItemResponse,
        today: date,
        difficulty_penalty: int = 0,
    ) -> SpacedRepetitionState:
        """Return the state after a response. Must not mutate its inputs."""
        ...


AlgorithmRegistry = Mapping[AlgorithmVariant, SchedulingAlgorithm]


def default_algorithms(settings: EngineSettings | None = None) -> dict[AlgorithmVariant, SchedulingAlgorithm]:
    """SM-2 and Leitner engines configured from settings."""
    settings = settings or get_settings()
    return {
        AlgorithmVariant.SM2: SM2Engine(SM2Config.from_settings(settings)),
        AlgorithmVariant.LEITNER: LeitnerEngine(LeitnerConfig.from_settings(settings)),
    }


def resolve_algorithm(registry: AlgorithmRegistry, variant: object) -> SchedulingAlgorithm:
    """Look up the algorithm for a state's variant tag."""
    algorithm = registry.get(AlgorithmVariant.parse(variant))
    if algorithm is None:
        raise UnknownAlgorithmVariant(variant)
    return algorithm
