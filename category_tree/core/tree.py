"""In-memory tree materialization shared by all loaders.

Two assembly paths produce the same ``Tree``:

- ``link_rows``: id-indexed linking of rows that carry ``parent_id``
  (adjacency and recursive strategies).
- ``build_from_bounds``: stack assembly of rows sorted by ``left_bound``
  (nested-set strategy).

Both are single linear passes over already-fetched rows, so they can be
timed independently of the query that produced the rows.
"""

from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from category_tree.core.errors import CycleDetected, InconsistentTree

Shape = tuple[tuple[int, "Shape"], ...]


@dataclass
class TreeNode:
    """One category in a materialized tree.

    Attributes:
        id: Category id
        name: Display name
        slug: Unique slug
        parent_id: Parent id as stored in the table (None for roots)
        depth: 0 for roots
        path: Ancestor ids from the root down to and including this node
        left_bound: Stored ``_lft`` value, if the strategy read it
        right_bound: Stored ``_rgt`` value, if the strategy read it
        children: Child nodes in sibling order
    """

    id: int
    name: str
    slug: str
    parent_id: int | None = None
    depth: int = 0
    path: tuple[int, ...] = ()
    left_bound: int | None = None
    right_bound: int | None = None
    children: list["TreeNode"] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Any) -> "TreeNode":
        """Build a node from a result row or ORM object (attribute access)."""
        return cls(
            id=row.id,
            name=row.name,
            slug=row.slug,
            parent_id=row.parent_id,
            left_bound=getattr(row, "left_bound", None),
            right_bound=getattr(row, "right_bound", None),
        )

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def walk(self) -> Iterator["TreeNode"]:
        """Pre-order walk of this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def shape(self) -> tuple[int, Shape]:
        return self.id, tuple(child.shape() for child in self.children)


@dataclass
class LoadStats:
    """Cost breakdown of one ``load_tree`` call.

    Fetch time covers the database round trips; assembly time covers the
    in-memory linking pass only.
    """

    strategy: str
    round_trips: int = 0
    rows: int = 0
    fetch_seconds: float = 0.0
    assembly_seconds: float = 0.0


@dataclass
class Tree:
    """Read-only materialized hierarchy rooted at every parentless node."""

    roots: list[TreeNode] = field(default_factory=list)
    stats: LoadStats | None = field(default=None, compare=False)
    _index: dict[int, TreeNode] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._index = {node.id: node for node in self}

    def __iter__(self) -> Iterator[TreeNode]:
        for root in self.roots:
            yield from root.walk()

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    @property
    def is_empty(self) -> bool:
        return not self.roots

    def find(self, node_id: int) -> TreeNode | None:
        return self._index.get(node_id)

    def shape(self) -> Shape:
        """Nested ``(id, children)`` tuples; equal shapes mean isomorphic trees."""
        return tuple(root.shape() for root in self.roots)

    def max_depth(self) -> int:
        """Number of levels in the tree (0 when empty)."""
        return max((node.depth + 1 for node in self), default=0)


def link_rows(rows: Iterable[Any], root_ids: Collection[int] = ()) -> Tree:
    """Link rows under their parents using an id index.

    Siblings keep the order in which their rows were supplied. Depth and
    path are assigned by a walk from the roots.

    Args:
        rows: Rows with id, name, slug and parent_id attributes
        root_ids: Ids treated as roots even though they have a parent
            (used when materializing a subtree)

    Raises:
        CycleDetected: A row appears twice, or rows are unreachable from
            every root because their parent chain loops
        InconsistentTree: A row references a parent that is not present
    """
    nodes: dict[int, TreeNode] = {}
    ordered: list[TreeNode] = []

    for row in rows:
        if row.id in nodes:
            raise CycleDetected(f"Node {row.id} was produced twice", node_id=row.id)
        node = TreeNode.from_row(row)
        nodes[node.id] = node
        ordered.append(node)

    roots: list[TreeNode] = []
    for node in ordered:
        if node.parent_id is None or node.id in root_ids:
            roots.append(node)
            continue
        parent = nodes.get(node.parent_id)
        if parent is None:
            raise InconsistentTree(
                f"Node {node.id} references missing parent {node.parent_id}",
                node_id=node.id,
            )
        parent.children.append(node)

    visited: set[int] = set()
    stack: list[tuple[TreeNode, tuple[int, ...]]] = [(root, ()) for root in reversed(roots)]
    while stack:
        node, prefix = stack.pop()
        visited.add(node.id)
        node.depth = len(prefix)
        node.path = prefix + (node.id,)
        stack.extend((child, node.path) for child in reversed(node.children))

    if len(visited) != len(ordered):
        stranded = min(node.id for node in ordered if node.id not in visited)
        raise CycleDetected(
            f"{len(ordered) - len(visited)} node(s) unreachable from any root; "
            f"node {stranded} is on or below a parent cycle",
            node_id=stranded,
        )

    return Tree(roots=roots)


def build_from_bounds(rows: Iterable[Any]) -> Tree:
    """Assemble a tree from rows sorted by ``left_bound``.

    A stack holds the currently open ancestors. Entries whose range closed
    before the current row are popped; the row is attached under the new
    top (or becomes a root) and is pushed.

    Raises:
        InconsistentTree: Rows are not strictly ordered by ``left_bound``,
            a range is empty, or a range overlaps its enclosing range
    """
    roots: list[TreeNode] = []
    stack: list[TreeNode] = []
    previous_left = 0

    for row in rows:
        node = TreeNode.from_row(row)
        left, right = node.left_bound, node.right_bound
        if left is None or right is None or left >= right:
            raise InconsistentTree(
                f"Node {node.id} has invalid bounds [{left}, {right}]", node_id=node.id
            )
        if left <= previous_left:
            raise InconsistentTree(
                f"Node {node.id} is out of left_bound order ({left} after {previous_left})",
                node_id=node.id,
            )
        previous_left = left

        while stack and stack[-1].right_bound < left:  # type: ignore[operator]
            stack.pop()

        if stack:
            parent = stack[-1]
            if right >= parent.right_bound:  # type: ignore[operator]
                raise InconsistentTree(
                    f"Node {node.id} range [{left}, {right}] overlaps parent {parent.id} "
                    f"range [{parent.left_bound}, {parent.right_bound}]",
                    node_id=node.id,
                )
            parent.children.append(node)
            node.depth = parent.depth + 1
            node.path = parent.path + (node.id,)
        else:
            roots.append(node)
            node.path = (node.id,)

        stack.append(node)

    return Tree(roots=roots)


def verify_boundaries(tree: Tree) -> None:
    """Check the nested-interval invariant over a materialized tree.

    Every node's range must be non-empty and strictly inside its parent's
    range; sibling ranges must be disjoint and follow sibling order.

    Raises:
        InconsistentTree: On the first violation found
    """

    def check_level(nodes: list[TreeNode], low: int, high: int | None) -> None:
        floor = low
        for node in nodes:
            left, right = node.left_bound, node.right_bound
            if left is None or right is None:
                raise InconsistentTree(f"Node {node.id} has no bounds", node_id=node.id)
            if not floor < left < right:
                raise InconsistentTree(
                    f"Node {node.id} range [{left}, {right}] overlaps a preceding range",
                    node_id=node.id,
                )
            if high is not None and right >= high:
                raise InconsistentTree(
                    f"Node {node.id} range [{left}, {right}] escapes its parent",
                    node_id=node.id,
                )
            floor = right

    pending: list[tuple[list[TreeNode], int, int | None]] = [(tree.roots, 0, None)]
    while pending:
        nodes, low, high = pending.pop()
        check_level(nodes, low, high)
        for node in nodes:
            if node.children:
                pending.append((node.children, node.left_bound, node.right_bound))  # type: ignore[arg-type]
