"""Core functionality modules for trackmerge."""

__all__ = [
    "geo",
    "simplify",
    "strategies",
    "coordinator",
    "preview",
    "commit",
    "store",
    "config",
]
