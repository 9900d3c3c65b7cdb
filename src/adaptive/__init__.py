"""
Adaptive Learning Engine.

Decides what a learner should see next and how long-term memory state
changes after each response.

Components:
- SM2Engine: SuperMemo-2 interval and ease updates
- LeitnerEngine: Box-based promotion/demotion
- RetentionModel: Forgetting-curve recall estimate
- DifficultyAdjuster: Per-item difficulty from weighted accuracy/latency
- WeakTopicDetector: Per-topic accuracy aggregates and weak-topic report
- ReviewScheduler: Next-item selection and response routing
- InMemoryStateStore: Reference StateStore with per-key locks
"""
from src.adaptive.algorithm import SchedulingAlgorithm, default_algorithms
from src.adaptive.difficulty import DifficultyAdjuster, DifficultyConfig
from src.adaptive.errors import (
    AdaptiveEngineError,
    AlgorithmMismatchError,
    InvalidInputError,
    UnknownAlgorithmVariant,
)
from src.adaptive.leitner import LeitnerConfig, LeitnerEngine
from src.adaptive.models import (
    AlgorithmVariant,
    CorrectnessResponse,
    DifficultySignal,
    ItemResponse,
    QualityResponse,
    QuizItem,
    ResponseKind,
    ReviewOutcome,
    SpacedRepetitionState,
    TopicAccuracyAggregate,
    WeakTopicEntry,
    reset_state,
)
from src.adaptive.retention import RetentionModel
from src.adaptive.review_scheduler import ReviewScheduler
from src.adaptive.settings import EngineSettings, get_settings
from src.adaptive.sm2 import SM2Config, SM2Engine
from src.adaptive.state_store import InMemoryStateStore, StateStore
from src.adaptive.weak_topics import WeakTopicDetector

__all__ = [
    # Orchestration
    "ReviewScheduler",
    "SchedulingAlgorithm",
    "default_algorithms",
    # Engines
    "SM2Engine",
    "SM2Config",
    "LeitnerEngine",
    "LeitnerConfig",
    # Models
    "RetentionModel",
    "DifficultyAdjuster",
    "DifficultyConfig",
    "WeakTopicDetector",
    # Data
    "AlgorithmVariant",
    "QuizItem",
    "SpacedRepetitionState",
    "ResponseKind",
    "QualityResponse",
    "CorrectnessResponse",
    "ItemResponse",
    "TopicAccuracyAggregate",
    "DifficultySignal",
    "WeakTopicEntry",
    "ReviewOutcome",
    "reset_state",
    # Persistence boundary
    "StateStore",
    "InMemoryStateStore",
    # Configuration
    "EngineSettings",
    "get_settings",
    # Errors
    "AdaptiveEngineError",
    "InvalidInputError",
    "AlgorithmMismatchError",
    "UnknownAlgorithmVariant",
]
