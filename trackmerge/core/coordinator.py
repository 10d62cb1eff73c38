"""
Recompute coordination for the merge preview.

Every change to the selection, document order, options or strategy asks the
coordinator for a fresh merge. The coordinator guarantees:

- at most one computation in flight;
- requests arriving while a computation runs are coalesced, and only the most
  recent one runs next;
- a result superseded by a newer request is discarded, not published;
- a request identical to the last published inputs is a no-op.

There is no timer. `deferred()` batches a burst of changes into one request,
which is what a debounce would otherwise do.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from trackmerge.core.commit import commit_merge, resolve
from trackmerge.core.errors import SelectionError
from trackmerge.core.preview import compute_preview_statistics
from trackmerge.core.store import DocumentStore
from trackmerge.core.strategies import MIN_DOCUMENTS, run_strategy, select_documents
from trackmerge.model import (
    MergeConfiguration,
    MergeOptions,
    MergeStrategy,
    Point,
    PreviewStatistics,
    SourceDocument,
)


class CoordinatorState(str, Enum):
    IDLE = "idle"
    COMPUTING = "computing"


@dataclass(frozen=True)
class MergeInputs:
    """Everything a merge computation depends on."""

    documents: Tuple[SourceDocument, ...]
    options: MergeOptions

    def __post_init__(self) -> None:
        object.__setattr__(self, "documents", tuple(self.documents))


@dataclass(frozen=True)
class MergeSnapshot:
    """A published merge result. Consumers must treat it as read-only."""

    inputs: MergeInputs
    configuration: MergeConfiguration
    statistics: PreviewStatistics

    @property
    def included_documents(self) -> List[SourceDocument]:
        return select_documents(self.inputs.documents, self.inputs.options)

    def resolve(self) -> List[Point]:
        return resolve(self.configuration, self.inputs.documents)


def compute_merge(inputs: MergeInputs, *, trace: Any = None) -> MergeSnapshot:
    """
    Run the selected strategy and derive preview statistics.

    Pure: the result depends only on `inputs`.
    """
    included = select_documents(inputs.documents, inputs.options)
    configuration = run_strategy(included, inputs.options, trace=trace)
    statistics = compute_preview_statistics(included, configuration, inputs.options)
    return MergeSnapshot(inputs=inputs, configuration=configuration, statistics=statistics)


class RecomputeCoordinator:
    """
    Two-state (idle/computing) single-flight scheduler for merge recomputation.

    Args:
        compute: Function mapping MergeInputs to a MergeSnapshot
        on_publish: Optional callback invoked with every published snapshot
        trace: Optional TraceWriter-like object
    """

    def __init__(
        self,
        compute: Callable[..., MergeSnapshot] = compute_merge,
        on_publish: Optional[Callable[[MergeSnapshot], None]] = None,
        *,
        trace: Any = None,
    ):
        self._compute = compute
        self._subscribers: List[Callable[[MergeSnapshot], None]] = []
        if on_publish is not None:
            self._subscribers.append(on_publish)
        self._trace = trace

        self._lock = threading.Lock()
        self._state = CoordinatorState.IDLE
        self._pending: Optional[MergeInputs] = None
        self._defer_depth = 0
        self._latest: Optional[MergeSnapshot] = None

        self.computations = 0
        self.coalesced = 0
        self.discarded = 0

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def latest(self) -> Optional[MergeSnapshot]:
        return self._latest

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def subscribe(self, callback: Callable[[MergeSnapshot], None]) -> None:
        self._subscribers.append(callback)

    def _emit(self, event: dict) -> None:
        if self._trace is not None:
            self._trace.emit(event)

    def request(self, inputs: MergeInputs) -> bool:
        """
        Ask for a recomputation over `inputs`.

        Returns True if this call ran the computation loop itself, False if the
        request was coalesced into one already running (or deferred).
        """
        with self._lock:
            if self._pending is not None:
                self.coalesced += 1
            self._pending = inputs
            if self._state is CoordinatorState.COMPUTING or self._defer_depth:
                self._emit({"event": "coordinator.coalesce", "state": self._state.value})
                return False
            self._state = CoordinatorState.COMPUTING

        self._drain()
        return True

    def _drain(self) -> None:
        """
        Run pending requests until none remain.

        If the compute function or a subscriber raises, the coordinator returns
        to IDLE before the error propagates. A request that arrived in the
        meantime stays pending and runs on the next `request()`.
        """
        try:
            while True:
                with self._lock:
                    inputs = self._pending
                    self._pending = None
                    if inputs is None:
                        self._state = CoordinatorState.IDLE
                        return
                    if self._latest is not None and self._latest.inputs == inputs:
                        self._emit({"event": "coordinator.skip_unchanged"})
                        continue

                snapshot = self._compute(inputs)

                with self._lock:
                    self.computations += 1
                    if self._pending is not None:
                        # A newer request arrived mid-computation; this result is stale.
                        self.discarded += 1
                        self._emit({"event": "coordinator.discard_stale"})
                        continue
                    self._latest = snapshot

                self._emit(
                    {
                        "event": "coordinator.publish",
                        "strategy": snapshot.inputs.options.strategy.value,
                        "status": snapshot.configuration.status.value,
                        "entry_count": len(snapshot.configuration),
                    }
                )
                for callback in list(self._subscribers):
                    callback(snapshot)
        except BaseException:
            with self._lock:
                self._state = CoordinatorState.IDLE
            raise

    @contextmanager
    def deferred(self) -> Iterator["RecomputeCoordinator"]:
        """
        Hold requests until the outermost block exits, then compute once.
        """
        with self._lock:
            self._defer_depth += 1
        try:
            yield self
        finally:
            with self._lock:
                self._defer_depth -= 1
                start = (
                    self._defer_depth == 0
                    and self._pending is not None
                    and self._state is CoordinatorState.IDLE
                )
                if start:
                    self._state = CoordinatorState.COMPUTING
            if start:
                self._drain()


class MergeSession:
    """
    Selection and option state for one merge screen, wired to a coordinator.

    The session starts with every stored document included, in storage order.
    Each mutator replaces the options value and requests a recomputation.
    """

    def __init__(
        self,
        store: DocumentStore,
        options: Optional[MergeOptions] = None,
        *,
        trace: Any = None,
        on_publish: Optional[Callable[[MergeSnapshot], None]] = None,
    ):
        self.store = store
        self._trace = trace
        self._defaults = options or MergeOptions()
        self.options = self._defaults.replace(
            included_document_ids=frozenset(store.ids()),
            document_order=tuple(store.ids()),
        )
        self.coordinator = RecomputeCoordinator(
            lambda inputs: compute_merge(inputs, trace=trace),
            on_publish,
            trace=trace,
        )
        self.refresh()

    @property
    def snapshot(self) -> Optional[MergeSnapshot]:
        return self.coordinator.latest

    @property
    def configuration(self) -> MergeConfiguration:
        snap = self.snapshot
        return snap.configuration if snap is not None else MergeConfiguration()

    @property
    def statistics(self) -> PreviewStatistics:
        snap = self.snapshot
        return snap.statistics if snap is not None else PreviewStatistics()

    @property
    def selected_ids(self) -> List[str]:
        return [d.id for d in select_documents(self.store, self.options)]

    def refresh(self) -> None:
        self.coordinator.request(MergeInputs(tuple(self.store), self.options))

    def _update(self, **changes: Any) -> None:
        self.options = self.options.replace(**changes)
        self.refresh()

    def set_strategy(self, strategy: MergeStrategy | str) -> None:
        self._update(strategy=MergeStrategy(strategy))

    def set_option(self, **changes: Any) -> None:
        self._update(**changes)

    def toggle_document(self, document_id: str, included: bool) -> None:
        """
        Include or exclude a document.

        Raises:
            SelectionError: If excluding would leave fewer than two documents
            KeyError: If the document is not in the store
        """
        if document_id not in self.store:
            raise KeyError(document_id)
        ids = set(self.options.included_document_ids)
        if included:
            if document_id in ids:
                return
            ids.add(document_id)
            # Newly included documents go to the end of the order.
            order = [i for i in self.options.document_order if i != document_id]
            order.append(document_id)
            self._update(included_document_ids=frozenset(ids), document_order=tuple(order))
            return

        if document_id not in ids:
            return
        if len(ids) - 1 < MIN_DOCUMENTS:
            raise SelectionError("You must keep at least two files selected for merging")
        ids.discard(document_id)
        self._update(included_document_ids=frozenset(ids))

    def set_document_order(self, order: Sequence[str]) -> None:
        self._update(document_order=tuple(order))

    def move_document(self, document_id: str, offset: int) -> None:
        """Move a document up (negative offset) or down within the order."""
        order = list(self.options.document_order)
        if document_id not in order:
            raise KeyError(document_id)
        i = order.index(document_id)
        j = max(0, min(len(order) - 1, i + offset))
        if i == j:
            return
        order.insert(j, order.pop(i))
        self._update(document_order=tuple(order))

    def reset_options(self) -> None:
        """Restore option defaults, keeping strategy, selection and order."""
        d = self._defaults
        self._update(
            skip_duplicate_points=d.skip_duplicate_points,
            simplification_tolerance_meters=d.simplification_tolerance_meters,
            include_elevation=d.include_elevation,
            time_gap_threshold_minutes=d.time_gap_threshold_minutes,
        )

    def commit(self) -> SourceDocument:
        """
        Resolve the current configuration into a new stored document.

        Raises:
            EmptyMergeError: If the current configuration resolves to no points
        """
        doc = commit_merge(self.store, self.configuration, trace=self._trace)
        # The store changed; the new document joins the candidate list unselected.
        self.refresh()
        return doc
