"""
Canonical in-memory data model for trackmerge.

Source documents are owned by the storage collaborator and never mutated here.
Everything the merge engine produces (configurations, statistics, merged
documents) is a new value; nothing is patched in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Iterator, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class Point:
    lat: float
    lon: float
    elevation: Optional[float] = None
    timestamp: Optional[str] = None  # ISO-8601, parsed lazily


@dataclass(frozen=True)
class Track:
    points: Tuple[Point, ...] = ()
    name: Optional[str] = None
    # Indices into `points` where a new segment starts (GPX trkseg boundaries).
    segment_breaks: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(self.points))
        object.__setattr__(self, "segment_breaks", tuple(self.segment_breaks))


@dataclass(frozen=True)
class DocumentMetadata:
    name: Optional[str] = None
    description: Optional[str] = None
    time: Optional[str] = None


@dataclass(frozen=True)
class SourceDocument:
    """
    A loaded file as held by the storage collaborator.
    """

    id: str
    file_name: str
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    tracks: Tuple[Track, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tracks", tuple(self.tracks))

    @property
    def point_count(self) -> int:
        return sum(len(t.points) for t in self.tracks)

    @property
    def display_name(self) -> str:
        return self.metadata.name or self.file_name or self.id


@dataclass(frozen=True)
class PointReference:
    """Locator for a point inside a stored document. Not a copy."""

    document_id: str
    track_index: int
    point_index: int


@dataclass(frozen=True)
class InterpolatedPoint:
    """
    Synthetic point inserted between two real points when smoothing transitions.

    `after` and `before` are the references bracketing the gap.
    """

    point: Point
    after: PointReference
    before: PointReference


MergeEntry = Union[PointReference, InterpolatedPoint]


class MergeStrategy(str, Enum):
    sequential = "sequential"
    chronological = "chronological"
    simplified = "simplified"
    interpolated = "interpolated"


class MergeStatus(str, Enum):
    ok = "ok"
    not_enough_documents = "not_enough_documents"
    no_timestamps = "no_timestamps"
    empty = "empty"


@dataclass(frozen=True)
class MergeConfiguration:
    """
    Ordered list of merge entries defining the exact output order.

    `segment_breaks` holds entry indices where a new time segment begins.
    """

    entries: Tuple[MergeEntry, ...] = ()
    strategy: MergeStrategy = MergeStrategy.sequential
    status: MergeStatus = MergeStatus.ok
    segment_breaks: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))
        object.__setattr__(self, "segment_breaks", tuple(self.segment_breaks))

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[MergeEntry]:
        return iter(self.entries)

    @property
    def references(self) -> Tuple[PointReference, ...]:
        return tuple(e for e in self.entries if isinstance(e, PointReference))

    @property
    def interpolated_count(self) -> int:
        return sum(1 for e in self.entries if isinstance(e, InterpolatedPoint))

    @property
    def is_empty(self) -> bool:
        return not self.entries


def _as_frozenset(value: Optional[Sequence[str]]) -> FrozenSet[str]:
    return frozenset(value or ())


@dataclass(frozen=True)
class MergeOptions:
    """
    User-controlled merge settings.

    Defaults match the merge screen's initial state.
    """

    strategy: MergeStrategy = MergeStrategy.sequential
    skip_duplicate_points: bool = True
    include_elevation: bool = True
    auto_smooth_transitions: bool = True
    simplification_tolerance_meters: float = 10.0
    time_gap_threshold_minutes: float = 30.0
    included_document_ids: FrozenSet[str] = frozenset()
    document_order: Tuple[str, ...] = ()
    interpolation_step_meters: float = 25.0
    max_interpolated_points: int = 100

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategy", MergeStrategy(self.strategy))
        object.__setattr__(
            self, "included_document_ids", _as_frozenset(self.included_document_ids)
        )
        object.__setattr__(self, "document_order", tuple(self.document_order or ()))
        if self.simplification_tolerance_meters < 0:
            raise ValueError("simplification_tolerance_meters must be >= 0")
        if self.time_gap_threshold_minutes < 0:
            raise ValueError("time_gap_threshold_minutes must be >= 0")
        if self.interpolation_step_meters <= 0:
            raise ValueError("interpolation_step_meters must be > 0")
        if self.max_interpolated_points < 0:
            raise ValueError("max_interpolated_points must be >= 0")

    def replace(self, **changes) -> "MergeOptions":
        return replace(self, **changes)


@dataclass(frozen=True)
class PreviewStatistics:
    original_point_count: int = 0
    merged_point_count: int = 0
    duplicates_removed: int = 0
    estimated_output_size_bytes: int = 0
    interpolated_point_count: int = 0

    @property
    def estimated_output_size(self) -> str:
        from trackmerge.core.preview import format_file_size

        return format_file_size(self.estimated_output_size_bytes)
