"""
State store boundary.

The engine never persists anything itself. StateStore describes what it
expects from the caller's storage:
- load(user, item) -> state, or a first-exposure default
- save(user, item, state), atomic per key
- list_due(user, today) -> (item_id, state) pairs

InMemoryStateStore is a reference implementation used in tests and
single-process tools. It serializes writers per (user, item) key with one
lock per key, so unrelated users and items never wait on each other.
"""

from __future__ import annotations

import threading
from collections import defaultdict, deque
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Protocol, runtime_checkable

from loguru import logger

from src.adaptive.errors import InvalidInputError
from src.adaptive.models import (
    AlgorithmVariant,
    ItemResponse,
    SpacedRepetitionState,
    ensure_date,
    validate_response,
)

StateKey = tuple[str, str]


@runtime_checkable
class StateStore(Protocol):
    """Protocol for durable per-(user, item) scheduling state."""

    def load(
        self,
        user_id: str,
        item_id: str,
        default_variant: AlgorithmVariant,
        today: date,
    ) -> SpacedRepetitionState:
        """Stored state, or a first-exposure state of default_variant."""
        ...

    def save(self, user_id: str, item_id: str, state: SpacedRepetitionState) -> None:
        """Persist a state; atomic per (user, item)."""
        ...

    def list_due(self, user_id: str, today: date) -> list[tuple[str, SpacedRepetitionState]]:
        """(item_id, state) pairs due on or before today."""
        ...


class InMemoryStateStore:
    """
    Dict-backed StateStore.

    Handles:
    - Scheduling state per (user, item)
    - A bounded review log per (user, item) for difficulty estimates
    - Per-key locks for read-modify-write sequences
    """

    def __init__(self, history_limit: int = 50):
        """
        Args:
            history_limit: Review log entries kept per (user, item)
        """
        self.history_limit = history_limit
        self._states: dict[StateKey, SpacedRepetitionState] = {}
        self._history: dict[StateKey, deque[ItemResponse]] = defaultdict(
            lambda: deque(maxlen=self.history_limit)
        )
        self._locks: dict[StateKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()  # guards lock creation only

        logger.info(f"InMemoryStateStore initialized (history_limit={history_limit})")

    # =========================================================================
    # Locking
    # =========================================================================

    def lock_for(self, user_id: str, item_id: str) -> threading.Lock:
        key = (user_id, item_id)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
        return lock

    @contextmanager
    def exclusive(self, user_id: str, item_id: str) -> Iterator[None]:
        """Hold the (user, item) lock for a load -> update -> save sequence."""
        with self.lock_for(user_id, item_id):
            yield

    # =========================================================================
    # State Operations
    # =========================================================================

    def load(
        self,
        user_id: str,
        item_id: str,
        default_variant: AlgorithmVariant = AlgorithmVariant.SM2,
        today: date | None = None,
    ) -> SpacedRepetitionState:
        state = self._states.get((user_id, item_id))
        if state is not None:
            return state
        if today is None:
            raise InvalidInputError("today is required to create a first-exposure state")
        today = ensure_date(today)
        if AlgorithmVariant.parse(default_variant) is AlgorithmVariant.LEITNER:
            return SpacedRepetitionState.new_leitner(user_id, item_id, today)
        return SpacedRepetitionState.new_sm2(user_id, item_id, today)

    def save(self, user_id: str, item_id: str, state: SpacedRepetitionState) -> None:
        if (state.user_id, state.item_id) != (user_id, item_id):
            raise InvalidInputError(
                f"State for ({state.user_id}, {state.item_id}) saved under ({user_id}, {item_id})"
            )
        self._states[(user_id, item_id)] = state

    def list_due(self, user_id: str, today: date) -> list[tuple[str, SpacedRepetitionState]]:
        today = ensure_date(today)
        return [
            (item_id, state)
            for (uid, item_id), state in self._states.items()
            if uid == user_id and state.is_due(today)
        ]

    def count_due(self, user_id: str, today: date) -> int:
        """Count items due for review today."""
        return len(self.list_due(user_id, today))

    # =========================================================================
    # Review Log Operations
    # =========================================================================

    def log_review(self, user_id: str, event: ItemResponse) -> None:
        """Append a response to the (user, item) review log."""
        validate_response(event)
        self._history[(user_id, event.item_id)].append(event)

    def get_review_history(self, user_id: str, item_id: str) -> list[ItemResponse]:
        """Logged responses for an item, oldest first."""
        return list(self._history.get((user_id, item_id), ()))
