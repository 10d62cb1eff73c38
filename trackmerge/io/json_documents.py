"""
JSON document bundles for the command line.

GPX parsing lives elsewhere; the CLI exchanges already-parsed documents as JSON:

    {
      "documents": [
        {
          "id": "a1",
          "file_name": "morning.gpx",
          "metadata": {"name": "Morning", "description": null, "time": null},
          "tracks": [
            {"name": "Run", "points": [{"lat": 45.0, "lon": -120.0, "ele": 312.5,
                                        "time": "2024-05-01T07:00:00Z"}],
             "segment_breaks": []}
          ]
        }
      ]
    }

A bare list of documents, or a single document object, is accepted too.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from trackmerge.core.errors import DocumentFormatError
from trackmerge.core.store import new_document_id
from trackmerge.model import DocumentMetadata, Point, SourceDocument, Track


def _opt_float(raw: Any, field: str) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise DocumentFormatError(f"Invalid {field}: {raw!r}")


def point_from_dict(d: Dict[str, Any]) -> Point:
    if not isinstance(d, dict):
        raise DocumentFormatError(f"Point must be an object, got {type(d).__name__}")
    try:
        lat = float(d["lat"])
        lon = float(d["lon"])
    except KeyError as e:
        raise DocumentFormatError(f"Point is missing {e.args[0]!r}")
    except (TypeError, ValueError):
        raise DocumentFormatError(f"Invalid coordinates: lat={d.get('lat')!r} lon={d.get('lon')!r}")
    elevation = _opt_float(d.get("ele", d.get("elevation")), "elevation")
    timestamp = d.get("time", d.get("timestamp"))
    return Point(lat=lat, lon=lon, elevation=elevation, timestamp=str(timestamp) if timestamp else None)


def point_to_dict(p: Point) -> Dict[str, Any]:
    d: Dict[str, Any] = {"lat": p.lat, "lon": p.lon}
    if p.elevation is not None:
        d["ele"] = p.elevation
    if p.timestamp:
        d["time"] = p.timestamp
    return d


def _breaks(raw: Any) -> List[int]:
    if not isinstance(raw, list):
        raise DocumentFormatError(f"segment_breaks must be a list, got {type(raw).__name__}")
    try:
        return [int(b) for b in raw]
    except (TypeError, ValueError):
        raise DocumentFormatError(f"Invalid segment_breaks: {raw!r}")


def track_from_dict(t: Dict[str, Any]) -> Track:
    if not isinstance(t, dict):
        raise DocumentFormatError(f"Track must be an object, got {type(t).__name__}")
    points = t.get("points") or []
    if not isinstance(points, list):
        raise DocumentFormatError(f"Track points must be a list, got {type(points).__name__}")
    return Track(
        points=[point_from_dict(p) for p in points],
        name=t.get("name"),
        segment_breaks=_breaks(t.get("segment_breaks") or []),
    )


def document_from_dict(d: Dict[str, Any], *, fallback_name: str = "") -> SourceDocument:
    if not isinstance(d, dict):
        raise DocumentFormatError(f"Document must be an object, got {type(d).__name__}")
    meta = d.get("metadata") or {}
    if not isinstance(meta, dict):
        raise DocumentFormatError(f"Document metadata must be an object, got {type(meta).__name__}")
    tracks = d.get("tracks") or []
    if not isinstance(tracks, list):
        raise DocumentFormatError(f"Document tracks must be a list, got {type(tracks).__name__}")
    return SourceDocument(
        id=str(d.get("id") or new_document_id()),
        file_name=str(d.get("file_name") or fallback_name),
        metadata=DocumentMetadata(
            name=meta.get("name"),
            description=meta.get("description"),
            time=meta.get("time"),
        ),
        tracks=[track_from_dict(t) for t in tracks],
    )


def document_to_dict(doc: SourceDocument) -> Dict[str, Any]:
    return {
        "id": doc.id,
        "file_name": doc.file_name,
        "metadata": {
            "name": doc.metadata.name,
            "description": doc.metadata.description,
            "time": doc.metadata.time,
        },
        "tracks": [
            {
                "name": t.name,
                "points": [point_to_dict(p) for p in t.points],
                "segment_breaks": list(t.segment_breaks),
            }
            for t in doc.tracks
        ],
    }


def read_documents(path: str | Path, *, trace: Any = None) -> List[SourceDocument]:
    """
    Read a JSON bundle.

    Raises:
        DocumentFormatError: If the file is empty, not JSON, or malformed
    """
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise DocumentFormatError(f"Document file is not valid UTF-8: {p} ({e.reason})")
    if not raw.strip():
        raise DocumentFormatError(f"Document file is empty: {p}")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DocumentFormatError(f"Invalid JSON: {e}\nFile: {p}")

    if isinstance(data, dict) and "documents" in data:
        items = data["documents"]
    elif isinstance(data, list):
        items = data
    else:
        items = [data]

    docs = [document_from_dict(item, fallback_name=p.name) for item in items]
    if trace is not None:
        trace.emit(
            {
                "event": "input.documents",
                "path": str(p),
                "ids": [d.id for d in docs],
                "point_counts": [d.point_count for d in docs],
            }
        )
    return docs


def write_documents(path: str | Path, documents: Iterable[SourceDocument]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = {"documents": [document_to_dict(d) for d in documents]}
    p.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    return p
