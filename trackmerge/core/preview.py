"""
Preview statistics derived from the current merge result.

These figures are for user feedback before a commit. They are recomputed in full
on every change and are never authoritative.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence

from trackmerge.model import MergeConfiguration, MergeOptions, PreviewStatistics, SourceDocument


# Rough size of one serialized GPX <trkpt> with elevation and time.
BYTES_PER_POINT = 120


def compute_preview_statistics(
    documents: Sequence[SourceDocument],
    configuration: MergeConfiguration,
    options: MergeOptions,
) -> PreviewStatistics:
    """
    Derive counts and a size estimate for a merge result.

    Args:
        documents: The included source documents
        configuration: Current merge configuration
        options: Options the configuration was computed with

    Returns:
        PreviewStatistics

    Notes:
        - `duplicates_removed` is original minus merged source points when
          duplicate skipping is on, else 0. It is a display approximation: any
          reduction from simplification or timestamp filtering is counted too.
        - Interpolated points are not source points; they are reported in
          `interpolated_point_count` and kept out of `duplicates_removed`.
    """
    original = sum(d.point_count for d in documents)
    merged = len(configuration)
    interpolated = configuration.interpolated_count

    duplicates = 0
    if options.skip_duplicate_points:
        duplicates = max(0, original - (merged - interpolated))

    return PreviewStatistics(
        original_point_count=original,
        merged_point_count=merged,
        duplicates_removed=duplicates,
        estimated_output_size_bytes=merged * BYTES_PER_POINT,
        interpolated_point_count=interpolated,
    )


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count the way the merge preview shows it.

    Example:
        >>> format_file_size(2048)
        '2 KB'
        >>> format_file_size(3 * 1024 * 1024)
        '3.0 MB'
    """
    if size_bytes < 1024 * 1024:
        return f"{round(size_bytes / 1024)} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def statistics_summary(stats: PreviewStatistics) -> Dict[str, Any]:
    return {
        "original_point_count": stats.original_point_count,
        "merged_point_count": stats.merged_point_count,
        "duplicates_removed": stats.duplicates_removed,
        "interpolated_point_count": stats.interpolated_point_count,
        "estimated_output_size_bytes": stats.estimated_output_size_bytes,
        "estimated_output_size": stats.estimated_output_size,
    }
