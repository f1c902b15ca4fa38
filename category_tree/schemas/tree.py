"""Serializable views of a materialized tree."""

from typing import Any

from pydantic import BaseModel, Field

from category_tree.core.tree import Tree


class CategoryNodeSchema(BaseModel):
    """One category with its nested children."""

    id: int = Field(description="Category id")
    name: str = Field(description="Display name")
    slug: str = Field(description="Unique slug")
    parent_id: int | None = Field(default=None, description="Parent id, None for roots")
    depth: int = Field(default=0, description="0 for roots")
    path: list[int] = Field(default_factory=list, description="Ids from the root to this node")
    left_bound: int | None = Field(default=None, description="Nested set left bound, if loaded")
    right_bound: int | None = Field(default=None, description="Nested set right bound, if loaded")
    children: list["CategoryNodeSchema"] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class TreeSchema(BaseModel):
    """A whole tree plus how it was loaded."""

    strategy: str | None = Field(default=None, description="Loader that produced the tree")
    node_count: int = Field(description="Total number of categories")
    roots: list[CategoryNodeSchema] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @classmethod
    def from_tree(cls, tree: Tree) -> "TreeSchema":
        return cls(
            strategy=tree.stats.strategy if tree.stats else None,
            node_count=len(tree),
            roots=[CategoryNodeSchema.model_validate(root) for root in tree.roots],
        )

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict without null fields (bounds the strategy did not read, root parent ids)."""
        return self.model_dump(mode="json", exclude_none=True)
