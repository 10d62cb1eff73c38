"""trackmerge - combine GPS tracks under several merge policies."""

__version__ = "1.0.0"
__description__ = "Merge and simplify GPS tracks"

from trackmerge.cli import app, main

__all__ = ["app", "main", "__version__"]
