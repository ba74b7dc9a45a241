"""Category consistency package."""

from fintrack.consistency.engine import (
    CategoryConsistencyEngine,
    CategoryConsistencyError,
    CategoryNotFoundError,
    DuplicateCategoryError,
    LastCategoryError,
)

__all__ = [
    "CategoryConsistencyEngine",
    "CategoryConsistencyError",
    "CategoryNotFoundError",
    "DuplicateCategoryError",
    "LastCategoryError",
]
