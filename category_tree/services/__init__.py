"""Services - nested set maintenance."""

from category_tree.services.nested_set_service import (
    NestedSetService,
    compute_bounds,
    get_nested_set_service,
)

__all__ = [
    "NestedSetService",
    "compute_bounds",
    "get_nested_set_service",
]
