"""Error taxonomy for tree loading and boundary maintenance.

Structural errors (InvalidParent, CycleDetected, InconsistentTree) are fatal
to the operation that raised them. Database errors are never wrapped here;
they propagate from SQLAlchemy unchanged.
"""


class TreeError(Exception):
    """Base class for all category tree errors."""

    def __init__(self, message: str, node_id: int | None = None) -> None:
        super().__init__(message)
        self.node_id = node_id


class InvalidParent(TreeError):
    """Referenced parent (or node) does not exist."""

    pass


class CycleDetected(TreeError):
    """Operation would create, or traversal ran into, a cycle."""

    pass


class InconsistentTree(TreeError):
    """Stored hierarchy violates the boundary invariant or has dangling parents."""

    pass


class HasChildren(TreeError):
    """Non-cascading delete blocked by existing children."""

    pass


class EmptyResult(TreeError):
    """No root nodes were found and the caller asked for strict loading."""

    pass
