"""
Diagnostics helpers.

Flat dict summaries of documents and merge results, used for trace events and
CLI display.
"""

from __future__ import annotations

from typing import Any, Dict, List

from trackmerge.core.geo import (
    centroid,
    duration_seconds,
    elevation_change,
    total_distance,
)
from trackmerge.core.normalization import parse_timestamp
from trackmerge.core.preview import statistics_summary
from trackmerge.model import MergeConfiguration, PreviewStatistics, SourceDocument


def document_inventory(doc: SourceDocument) -> Dict[str, Any]:
    points = [p for t in doc.tracks for p in t.points]
    gain, loss = elevation_change(points)
    lat, lon = centroid(points)
    return {
        "id": doc.id,
        "file_name": doc.file_name,
        "name": doc.metadata.name,
        "track_count": len(doc.tracks),
        "point_count": len(points),
        "timestamped_count": sum(1 for p in points if p.timestamp),
        "distance_m": sum(total_distance(t.points) for t in doc.tracks),
        "elevation_gain_m": gain,
        "elevation_loss_m": loss,
        "duration_s": duration_seconds(points),
        "center": {"lat": lat, "lon": lon},
    }


def merge_inventory(configuration: MergeConfiguration, stats: PreviewStatistics) -> Dict[str, Any]:
    return {
        "strategy": configuration.strategy.value,
        "status": configuration.status.value,
        "entry_count": len(configuration),
        "segment_count": len(configuration.segment_breaks) + 1 if configuration.entries else 0,
        "statistics": statistics_summary(stats),
    }


def check_data_quality(doc: SourceDocument) -> Dict[str, List[Any]]:
    """
    Check a document for problems that affect merging.

    Returns a dict with:
    - empty_tracks: list of track indices with no points
    - bad_timestamps: list of (track_index, point_index, raw) that fail to parse
    - suspicious_coords: list of (track_index, point_index, lat, lon, reason)
    """
    warnings: Dict[str, List[Any]] = {
        "empty_tracks": [],
        "bad_timestamps": [],
        "suspicious_coords": [],
    }
    for ti, track in enumerate(doc.tracks):
        if not track.points:
            warnings["empty_tracks"].append(ti)
        for pi, p in enumerate(track.points):
            if p.timestamp and parse_timestamp(p.timestamp) is None:
                warnings["bad_timestamps"].append((ti, pi, p.timestamp))
            if not (-90 <= p.lat <= 90) or not (-180 <= p.lon <= 180):
                warnings["suspicious_coords"].append(
                    (ti, pi, p.lat, p.lon, "Out of valid range (-90..90, -180..180)")
                )
            elif abs(p.lat) < 0.001 and abs(p.lon) < 0.001:
                warnings["suspicious_coords"].append(
                    (ti, pi, p.lat, p.lon, "Near (0,0) - possible default/invalid coordinate")
                )
    return warnings
