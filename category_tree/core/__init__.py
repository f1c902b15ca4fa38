"""Core module - Tree assembly, errors, and loader selection."""

from category_tree.core.errors import (
    CycleDetected,
    EmptyResult,
    HasChildren,
    InconsistentTree,
    InvalidParent,
    TreeError,
)
from category_tree.core.loader_registry import (
    LoaderRegistry,
    TreeLoader,
    get_loader,
    get_loader_registry,
)
from category_tree.core.tree import (
    LoadStats,
    Tree,
    TreeNode,
    build_from_bounds,
    link_rows,
    verify_boundaries,
)

__all__ = [
    "CycleDetected",
    "EmptyResult",
    "HasChildren",
    "InconsistentTree",
    "InvalidParent",
    "LoadStats",
    "LoaderRegistry",
    "Tree",
    "TreeError",
    "TreeLoader",
    "TreeNode",
    "build_from_bounds",
    "get_loader",
    "get_loader_registry",
    "link_rows",
    "verify_boundaries",
]
