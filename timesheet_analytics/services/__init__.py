"""Service layer namespace."""

__all__ = [
    "analytics",
    "breakdown",
    "capability",
    "collector",
    "financial",
    "weekly",
]
