"""Tests for tree serialization schemas."""

from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from category_tree.core.tree import LoadStats, build_from_bounds, link_rows
from category_tree.schemas.tree import CategoryNodeSchema, TreeSchema


def row(node_id: int, name: str, parent_id: int | None, left: int | None = None, right: int | None = None):
    return SimpleNamespace(
        id=node_id,
        name=name,
        slug=name.lower().replace(" ", "-"),
        parent_id=parent_id,
        left_bound=left,
        right_bound=right,
    )


@pytest.fixture
def adjacency_tree():
    tree = link_rows([
        row(1, "Auto Parts", None),
        row(2, "Engine Parts", 1),
        row(3, "Engine Bearings", 2),
    ])
    tree.stats = LoadStats(strategy="recursive", round_trips=1, rows=3)
    return tree


class TestCategoryNodeSchema:
    """Tests for CategoryNodeSchema."""

    def test_from_tree_node(self, adjacency_tree):
        schema = CategoryNodeSchema.model_validate(adjacency_tree.find(2))

        assert schema.id == 2
        assert schema.slug == "engine-parts"
        assert schema.depth == 1
        assert schema.path == [1, 2]
        assert [child.id for child in schema.children] == [3]

    def test_requires_name(self):
        with pytest.raises(ValidationError):
            CategoryNodeSchema(id=1, slug="auto-parts")


class TestTreeSchema:
    """Tests for TreeSchema."""

    def test_from_tree(self, adjacency_tree):
        schema = TreeSchema.from_tree(adjacency_tree)

        assert schema.strategy == "recursive"
        assert schema.node_count == 3
        assert len(schema.roots) == 1
        assert schema.roots[0].children[0].children[0].name == "Engine Bearings"

    def test_from_tree_without_stats(self):
        schema = TreeSchema.from_tree(link_rows([row(1, "Tools", None)]))

        assert schema.strategy is None
        assert schema.node_count == 1

    def test_payload_omits_unread_bounds(self, adjacency_tree):
        payload = TreeSchema.from_tree(adjacency_tree).to_payload()

        root = payload["roots"][0]
        assert "left_bound" not in root
        assert "parent_id" not in root
        assert root["children"][0]["parent_id"] == 1

    def test_payload_keeps_bounds(self):
        tree = build_from_bounds([
            row(1, "Auto Parts", None, 1, 4),
            row(2, "Engine Parts", 1, 2, 3),
        ])

        payload = TreeSchema.from_tree(tree).to_payload()

        assert payload["roots"][0]["left_bound"] == 1
        assert payload["roots"][0]["children"][0]["right_bound"] == 3

    def test_empty_tree(self):
        payload = TreeSchema.from_tree(link_rows([])).to_payload()

        assert payload == {"node_count": 0, "roots": []}

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            TreeSchema(node_count=0, unexpected=True)
