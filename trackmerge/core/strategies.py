"""
Merge strategies.

Each strategy is a pure function:

    strategy(documents, options, *, trace=None) -> MergeConfiguration

`documents` are the included source documents, already filtered and ordered
(see `select_documents`). Strategies never mutate their inputs and hold no state
between runs, so identical inputs always give identical output.

Strategies are looked up through `STRATEGIES`; `run_strategy` does selection and
dispatch in one call.
"""

from __future__ import annotations

import functools
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple

from trackmerge.core.geo import distance
from trackmerge.core.normalization import format_timestamp, parse_timestamp
from trackmerge.core.simplify import simplify_indices
from trackmerge.model import (
    InterpolatedPoint,
    MergeConfiguration,
    MergeEntry,
    MergeOptions,
    MergeStatus,
    MergeStrategy,
    Point,
    PointReference,
    SourceDocument,
)


StrategyFn = Callable[..., MergeConfiguration]

MIN_DOCUMENTS = 2


class _Candidate(NamedTuple):
    ref: PointReference
    point: Point
    time: Optional[datetime] = None


def select_documents(
    documents: Iterable[SourceDocument], options: MergeOptions
) -> List[SourceDocument]:
    """
    Filter documents to `options.included_document_ids` and order them by
    `options.document_order`.

    Included documents missing from `document_order` follow the ordered ones in
    their storage order. An empty inclusion set selects nothing.
    """
    included = [d for d in documents if d.id in options.included_document_ids]
    rank = {doc_id: i for i, doc_id in enumerate(options.document_order)}
    unranked = len(rank)
    # sorted() is stable, so unranked documents keep storage order.
    return sorted(included, key=lambda d: rank.get(d.id, unranked))


def _iter_candidates(documents: Sequence[SourceDocument]) -> Iterator[_Candidate]:
    for doc in documents:
        for track_index, track in enumerate(doc.tracks):
            for point_index, point in enumerate(track.points):
                yield _Candidate(PointReference(doc.id, track_index, point_index), point)


def _dedupe(
    candidates: Iterable[_Candidate], *, enabled: bool, trace: Any = None
) -> List[_Candidate]:
    """
    Drop candidates whose exact (lat, lon) was already emitted, keeping the first.
    """
    if not enabled:
        return list(candidates)

    seen: Set[Tuple[float, float]] = set()
    kept: List[_Candidate] = []
    dropped = 0
    for c in candidates:
        key = (c.point.lat, c.point.lon)
        if key in seen:
            dropped += 1
            continue
        seen.add(key)
        kept.append(c)

    if trace is not None and dropped:
        trace.emit({"event": "merge.dedup", "dropped": dropped, "kept": len(kept)})
    return kept


def _requires_documents(fn: StrategyFn) -> StrategyFn:
    """Return an empty `not_enough_documents` configuration for < 2 documents."""

    @functools.wraps(fn)
    def wrapper(
        documents: Sequence[SourceDocument], options: MergeOptions, *, trace: Any = None
    ) -> MergeConfiguration:
        if len(documents) < MIN_DOCUMENTS:
            if trace is not None:
                trace.emit(
                    {
                        "event": "merge.not_enough_documents",
                        "strategy": fn.__name__,
                        "document_count": len(documents),
                    }
                )
            return MergeConfiguration(
                strategy=options.strategy, status=MergeStatus.not_enough_documents
            )
        return fn(documents, options, trace=trace)

    return wrapper


def _sequential_candidates(
    documents: Sequence[SourceDocument], options: MergeOptions, *, trace: Any = None
) -> List[_Candidate]:
    return _dedupe(
        _iter_candidates(documents), enabled=options.skip_duplicate_points, trace=trace
    )


def _chronological_candidates(
    documents: Sequence[SourceDocument], options: MergeOptions, *, trace: Any = None
) -> List[_Candidate]:
    """
    Timestamped candidates sorted ascending, deduplicated in timestamp order.

    Points without a timestamp, or with one that fails to parse, are skipped.
    Ties keep document/track/point iteration order.
    """
    timed: List[_Candidate] = []
    for c in _iter_candidates(documents):
        if not c.point.timestamp:
            continue
        t = parse_timestamp(c.point.timestamp)
        if t is None:
            if trace is not None:
                trace.emit(
                    {
                        "event": "merge.skip_timestamp",
                        "ref": c.ref,
                        "timestamp": c.point.timestamp,
                    }
                )
            continue
        timed.append(c._replace(time=t))

    timed.sort(key=lambda c: c.time)
    return _dedupe(timed, enabled=options.skip_duplicate_points, trace=trace)


def _segment_breaks(candidates: Sequence[_Candidate], threshold_minutes: float) -> List[int]:
    """Indices where the time gap from the previous candidate exceeds the threshold."""
    if threshold_minutes <= 0:
        return []
    limit = timedelta(minutes=threshold_minutes)
    return [
        i
        for i in range(1, len(candidates))
        if candidates[i].time - candidates[i - 1].time > limit
    ]


@_requires_documents
def sequential_merge(
    documents: Sequence[SourceDocument], options: MergeOptions, *, trace: Any = None
) -> MergeConfiguration:
    """
    Concatenate points in document order, then track order, then point order.

    With `skip_duplicate_points`, a point whose exact (lat, lon) was already
    emitted is dropped. Nothing is reordered.
    """
    candidates = _sequential_candidates(documents, options, trace=trace)
    return MergeConfiguration(
        entries=[c.ref for c in candidates],
        strategy=MergeStrategy.sequential,
        status=MergeStatus.ok if candidates else MergeStatus.empty,
    )


@_requires_documents
def chronological_merge(
    documents: Sequence[SourceDocument], options: MergeOptions, *, trace: Any = None
) -> MergeConfiguration:
    """
    Order all timestamped points by time.

    Algorithm:
    1. Collect every point with a parseable timestamp (others are skipped)
    2. Stable sort ascending by timestamp
    3. Drop duplicate coordinates in timestamp order (if enabled)
    4. Record a segment break wherever consecutive timestamps are further apart
       than `time_gap_threshold_minutes` (0 disables segmentation)

    The segments are concatenated into one flat entry list; their boundaries are
    kept in `segment_breaks`. An empty result carries status `no_timestamps`.
    """
    candidates = _chronological_candidates(documents, options, trace=trace)
    breaks = _segment_breaks(candidates, options.time_gap_threshold_minutes)

    if trace is not None and breaks:
        trace.emit({"event": "merge.segment", "breaks": breaks, "segments": len(breaks) + 1})

    return MergeConfiguration(
        entries=[c.ref for c in candidates],
        strategy=MergeStrategy.chronological,
        status=MergeStatus.ok if candidates else MergeStatus.no_timestamps,
        segment_breaks=breaks,
    )


@_requires_documents
def simplified_merge(
    documents: Sequence[SourceDocument], options: MergeOptions, *, trace: Any = None
) -> MergeConfiguration:
    """
    Build a base ordering, then thin it with Douglas-Peucker.

    The base is chronological when `include_elevation` is set and sequential
    otherwise; both honor `skip_duplicate_points`. The simplifier runs over the
    base positions, so each surviving entry is exactly the reference that sat at
    that position. A tolerance of 0 leaves the base untouched.
    """
    if options.include_elevation:
        base = _chronological_candidates(documents, options, trace=trace)
        empty_status = MergeStatus.no_timestamps
    else:
        base = _sequential_candidates(documents, options, trace=trace)
        empty_status = MergeStatus.empty

    if not base:
        return MergeConfiguration(strategy=MergeStrategy.simplified, status=empty_status)

    tolerance = options.simplification_tolerance_meters
    if tolerance > 0 and len(base) > 2:
        kept = simplify_indices([c.point for c in base], tolerance)
    else:
        kept = list(range(len(base)))

    if trace is not None:
        trace.emit(
            {
                "event": "merge.simplify",
                "tolerance_m": tolerance,
                "base_count": len(base),
                "kept_count": len(kept),
            }
        )

    return MergeConfiguration(
        entries=[base[i].ref for i in kept],
        strategy=MergeStrategy.simplified,
        status=MergeStatus.ok,
    )


def interpolate_points(
    start: Point,
    end: Point,
    *,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    step_meters: float,
    max_points: int,
) -> List[Point]:
    """
    Points strictly between `start` and `end`, evenly spaced.

    The count is ceil(distance / step_meters) - 1, capped at `max_points`.
    Elevation is interpolated only when both ends have one; timestamps only when
    both times are given.
    """
    count = max(0, math.ceil(distance(start, end) / step_meters) - 1)
    count = min(count, max_points)
    out: List[Point] = []
    for k in range(1, count + 1):
        f = k / (count + 1)
        elevation = None
        if start.elevation is not None and end.elevation is not None:
            elevation = start.elevation + (end.elevation - start.elevation) * f
        timestamp = None
        if start_time is not None and end_time is not None:
            timestamp = format_timestamp(start_time + (end_time - start_time) * f)
        out.append(
            Point(
                lat=start.lat + (end.lat - start.lat) * f,
                lon=start.lon + (end.lon - start.lon) * f,
                elevation=elevation,
                timestamp=timestamp,
            )
        )
    return out


@_requires_documents
def interpolated_merge(
    documents: Sequence[SourceDocument], options: MergeOptions, *, trace: Any = None
) -> MergeConfiguration:
    """
    Chronological merge with synthetic points bridging each time gap.

    Without `auto_smooth_transitions` (or without segment breaks) this is the
    chronological result relabelled. Otherwise every break gets linearly
    interpolated points between the last point before it and the first point
    after it. Breaks that received points are considered bridged and dropped;
    breaks between points closer than one step remain.
    """
    candidates = _chronological_candidates(documents, options, trace=trace)
    breaks = _segment_breaks(candidates, options.time_gap_threshold_minutes)

    if not candidates:
        return MergeConfiguration(
            strategy=MergeStrategy.interpolated, status=MergeStatus.no_timestamps
        )

    if not options.auto_smooth_transitions or not breaks:
        return MergeConfiguration(
            entries=[c.ref for c in candidates],
            strategy=MergeStrategy.interpolated,
            status=MergeStatus.ok,
            segment_breaks=breaks,
        )

    break_set = set(breaks)
    entries: List[MergeEntry] = []
    remaining_breaks: List[int] = []
    for i, c in enumerate(candidates):
        if i in break_set:
            prev = candidates[i - 1]
            synthetic = interpolate_points(
                prev.point,
                c.point,
                start_time=prev.time,
                end_time=c.time,
                step_meters=options.interpolation_step_meters,
                max_points=options.max_interpolated_points,
            )
            entries.extend(InterpolatedPoint(p, prev.ref, c.ref) for p in synthetic)
            if not synthetic:
                remaining_breaks.append(len(entries))
            if trace is not None:
                trace.emit(
                    {
                        "event": "merge.interpolate",
                        "after": prev.ref,
                        "before": c.ref,
                        "inserted": len(synthetic),
                    }
                )
        entries.append(c.ref)

    return MergeConfiguration(
        entries=entries,
        strategy=MergeStrategy.interpolated,
        status=MergeStatus.ok,
        segment_breaks=remaining_breaks,
    )


STRATEGIES: Dict[MergeStrategy, StrategyFn] = {
    MergeStrategy.sequential: sequential_merge,
    MergeStrategy.chronological: chronological_merge,
    MergeStrategy.simplified: simplified_merge,
    MergeStrategy.interpolated: interpolated_merge,
}


def run_strategy(
    documents: Iterable[SourceDocument], options: MergeOptions, *, trace: Any = None
) -> MergeConfiguration:
    """
    Select the included documents and run the strategy named by `options`.
    """
    selected = select_documents(documents, options)
    if trace is not None:
        trace.emit(
            {
                "event": "merge.start",
                "strategy": options.strategy.value,
                "documents": [d.id for d in selected],
            }
        )

    config = STRATEGIES[options.strategy](selected, options, trace=trace)

    if trace is not None:
        trace.emit(
            {
                "event": "merge.done",
                "strategy": options.strategy.value,
                "status": config.status.value,
                "entry_count": len(config),
            }
        )
    return config
