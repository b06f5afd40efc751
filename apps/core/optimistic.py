# apps/core/optimistic.py

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, Hashable, Optional

from apps.interactions.constants import SubjectType
from apps.interactions.services import like_subject, save_subject, unlike_subject, unsave_subject
from apps.profiles.services import support, unsupport
from .results import OperationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToggleState:
    """A boolean and the counter paired with it. Always moved and restored together."""
    active: bool = False
    count: int = 0

    def toggled(self) -> "ToggleState":
        if self.active:
            return ToggleState(active=False, count=max(self.count - 1, 0))
        return ToggleState(active=True, count=self.count + 1)


class ControlBusy(Exception):
    """A mutation for this key is still waiting on the authoritative call."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Mutation already in flight for {key!r}")


class InteractionStateCache:
    """
    Local view of toggle states, keyed per control.
    One mutation per key at a time: rapid toggles are rejected, not queued.
    """

    def __init__(self):
        self._states: Dict[Hashable, ToggleState] = {}
        self._in_flight = set()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> ToggleState:
        with self._lock:
            return self._states.get(key, ToggleState())

    def set(self, key: Hashable, state: ToggleState) -> None:
        with self._lock:
            self._states[key] = state

    def is_busy(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._in_flight

    @contextmanager
    def claim(self, key: Hashable):
        with self._lock:
            if key in self._in_flight:
                raise ControlBusy(key)
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)


class OptimisticCommand:
    """
    snapshot → apply locally → authoritative call → keep, or restore the snapshot.

    `apply(previous) -> ToggleState` computes the optimistic state.
    `execute(previous) -> OperationResult` performs the real mutation.
    `reconcile(result) -> Optional[int]` may return the server's count.
    `on_error(error)` surfaces a failure (an ErrorCode or an exception).
    """

    def __init__(
        self,
        cache: InteractionStateCache,
        key: Hashable,
        apply: Callable[[ToggleState], ToggleState],
        execute: Callable[[ToggleState], OperationResult],
        on_error: Optional[Callable] = None,
        reconcile: Optional[Callable[[OperationResult], Optional[int]]] = None,
    ):
        self.cache = cache
        self.key = key
        self.apply = apply
        self.execute = execute
        self.on_error = on_error
        self.reconcile = reconcile

    def _fail(self, snapshot: ToggleState, error) -> None:
        # Both fields come back from the snapshot, never one without the other
        self.cache.set(self.key, snapshot)
        logger.debug("[Optimistic] %r reverted: %s", self.key, error)
        if self.on_error:
            self.on_error(error)

    def run(self) -> OperationResult:
        with self.cache.claim(self.key):
            snapshot = self.cache.get(self.key)
            self.cache.set(self.key, self.apply(snapshot))

            try:
                result = self.execute(snapshot)
            except Exception as e:
                self._fail(snapshot, e)
                raise

            if not result.success:
                self._fail(snapshot, result.error)
                return result

            if self.reconcile:
                server_count = self.reconcile(result)
                if server_count is not None:
                    self.cache.set(self.key, replace(self.cache.get(self.key), count=int(server_count)))
            return result


# -------------------------------------------------------------------------
# Toggle helpers
# -------------------------------------------------------------------------
def _count_from(field: str):
    return lambda result: result.get(field)


def _toggle(active_fn, inactive_fn) -> Callable[[ToggleState], OperationResult]:
    return lambda previous: inactive_fn() if previous.active else active_fn()


def toggle_like(cache, subject_id, actor_id, author_principal, subject_type=None, on_error=None) -> OperationResult:
    subject_type = subject_type or SubjectType.CREATION
    return OptimisticCommand(
        cache,
        ("like", subject_id, actor_id),
        apply=ToggleState.toggled,
        execute=_toggle(
            lambda: like_subject(subject_id, actor_id, author_principal, subject_type),
            lambda: unlike_subject(subject_id, actor_id),
        ),
        on_error=on_error,
        reconcile=_count_from("likes_count"),
    ).run()


def toggle_save(cache, subject_id, actor_id, author_principal, subject_type=None, on_error=None) -> OperationResult:
    subject_type = subject_type or SubjectType.CREATION
    return OptimisticCommand(
        cache,
        ("save", subject_id, actor_id),
        apply=ToggleState.toggled,
        execute=_toggle(
            lambda: save_subject(subject_id, actor_id, author_principal, subject_type),
            lambda: unsave_subject(subject_id, actor_id),
        ),
        on_error=on_error,
        reconcile=_count_from("saves_count"),
    ).run()


def toggle_support(cache, creator_id, supporting_id, on_error=None) -> OperationResult:
    return OptimisticCommand(
        cache,
        ("support", creator_id, supporting_id),
        apply=ToggleState.toggled,
        execute=_toggle(
            lambda: support(creator_id, supporting_id),
            lambda: unsupport(creator_id, supporting_id),
        ),
        on_error=on_error,
        reconcile=_count_from("supporting_count"),
    ).run()
