"""Exception types raised by the merge engine and its collaborators."""

from __future__ import annotations


class TrackMergeError(Exception):
    """Base class for trackmerge errors."""


class EmptyMergeError(TrackMergeError):
    """Raised when a commit would produce a document with no points."""


class SelectionError(TrackMergeError):
    """Raised when a selection change would leave fewer than two documents."""


class ConfigError(TrackMergeError, ValueError):
    """Invalid configuration file or value."""


class DocumentFormatError(TrackMergeError, ValueError):
    """A document bundle could not be read."""
