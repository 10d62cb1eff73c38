"""
Resolution of merge configurations into concrete points, and commit.

`resolve` is shared by the preview and by export. A commit turns a configuration
into a brand-new SourceDocument; the sources are only read.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from trackmerge.core.errors import EmptyMergeError
from trackmerge.core.normalization import format_timestamp
from trackmerge.core.store import DocumentStore, new_document_id
from trackmerge.model import (
    DocumentMetadata,
    InterpolatedPoint,
    MergeConfiguration,
    MergeEntry,
    Point,
    SourceDocument,
    Track,
)


MERGED_TRACK_NAME = "Merged Track"

Documents = Union[Iterable[SourceDocument], Mapping[str, SourceDocument]]


def _index(documents: Documents) -> Dict[str, SourceDocument]:
    if isinstance(documents, Mapping):
        return dict(documents)
    return {d.id: d for d in documents}


def resolve_entry(entry: MergeEntry, by_id: Mapping[str, SourceDocument]) -> Optional[Point]:
    """
    Look up one entry. Returns None for a dangling reference (document removed,
    or track/point index out of range).
    """
    if isinstance(entry, InterpolatedPoint):
        return entry.point
    doc = by_id.get(entry.document_id)
    if doc is None:
        return None
    if not 0 <= entry.track_index < len(doc.tracks):
        return None
    points = doc.tracks[entry.track_index].points
    if not 0 <= entry.point_index < len(points):
        return None
    return points[entry.point_index]


def resolve(configuration: MergeConfiguration, documents: Documents) -> List[Point]:
    """
    Resolve a configuration into its ordered points, skipping dangling references.
    """
    by_id = _index(documents)
    out: List[Point] = []
    for entry in configuration:
        p = resolve_entry(entry, by_id)
        if p is not None:
            out.append(p)
    return out


def _resolve_with_breaks(
    configuration: MergeConfiguration, documents: Documents
) -> tuple[List[Point], List[int]]:
    """Resolve points and translate entry-index breaks into point-index breaks."""
    by_id = _index(documents)
    breaks = set(configuration.segment_breaks)
    points: List[Point] = []
    point_breaks: List[int] = []
    pending_break = False
    for i, entry in enumerate(configuration):
        if i in breaks:
            pending_break = True
        p = resolve_entry(entry, by_id)
        if p is None:
            continue
        if pending_break and points:
            point_breaks.append(len(points))
        pending_break = False
        points.append(p)
    return points, point_breaks


def resolve_segments(configuration: MergeConfiguration, documents: Documents) -> List[List[Point]]:
    """
    Resolve a configuration into segments split at its segment breaks.

    Segments emptied by dangling references are dropped.
    """
    points, breaks = _resolve_with_breaks(configuration, documents)
    if not points:
        return []
    bounds = [0, *breaks, len(points)]
    return [points[a:b] for a, b in zip(bounds, bounds[1:])]


def source_document_ids(configuration: MergeConfiguration, documents: Documents) -> List[str]:
    """Ids of documents that contributed at least one resolvable point, first-use order."""
    by_id = _index(documents)
    seen: List[str] = []
    for ref in configuration.references:
        if ref.document_id in seen:
            continue
        if resolve_entry(ref, by_id) is not None:
            seen.append(ref.document_id)
    return seen


def build_merged_document(
    configuration: MergeConfiguration,
    documents: Documents,
    *,
    now: Optional[datetime] = None,
    document_id: Optional[str] = None,
    trace: Any = None,
) -> SourceDocument:
    """
    Build a new document holding one track with the resolved points.

    Raises:
        EmptyMergeError: If no entry resolves to a point
    """
    by_id = _index(documents)
    points, breaks = _resolve_with_breaks(configuration, by_id)
    if not points:
        raise EmptyMergeError("No points selected for merging")

    sources = [by_id[i] for i in source_document_ids(configuration, by_id)]
    merged_name = " + ".join(d.display_name for d in sources)
    when = now or datetime.now(timezone.utc)

    doc = SourceDocument(
        id=document_id or new_document_id(),
        file_name=f"merged_{int(when.timestamp() * 1000)}.gpx",
        metadata=DocumentMetadata(
            name=f"Merged: {merged_name}",
            description=f"Merged from {len(sources)} files",
            time=format_timestamp(when),
        ),
        tracks=[Track(points=points, name=MERGED_TRACK_NAME, segment_breaks=breaks)],
    )

    if trace is not None:
        trace.emit(
            {
                "event": "merge.commit",
                "document_id": doc.id,
                "sources": [d.id for d in sources],
                "point_count": len(points),
                "segment_count": len(breaks) + 1,
                "skipped_entries": len(configuration) - len(points),
            }
        )
    return doc


def commit_merge(
    store: DocumentStore,
    configuration: MergeConfiguration,
    *,
    now: Optional[datetime] = None,
    trace: Any = None,
) -> SourceDocument:
    """
    Resolve `configuration` against `store` and insert the merged document.

    Raises:
        EmptyMergeError: If nothing resolves; the store is left unchanged.
    """
    doc = build_merged_document(configuration, store.as_dict(), now=now, trace=trace)
    return store.add(doc)

