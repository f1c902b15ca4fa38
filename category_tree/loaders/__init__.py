"""Tree loading strategies."""

from category_tree.loaders.adjacency_loader import AdjacencyTreeLoader
from category_tree.loaders.base_loader import BaseTreeLoader
from category_tree.loaders.nested_set_loader import NestedSetTreeLoader
from category_tree.loaders.recursive_loader import RecursiveTreeLoader

__all__ = [
    "AdjacencyTreeLoader",
    "BaseTreeLoader",
    "NestedSetTreeLoader",
    "RecursiveTreeLoader",
]
