"""Category model - one row per node of the category hierarchy."""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from category_tree.models.base import Base, TimestampMixin


class Category(Base, TimestampMixin):
    """Category node.

    ``parent_id`` is the authoritative hierarchy. ``left_bound`` and
    ``right_bound`` are the nested-set columns (``_lft``/``_rgt``) used only
    by the boundary-indexed strategy; they hold 0 until the node is
    numbered by an insert or a reindex.
    """

    __tablename__ = "categories"
    __table_args__ = (
        Index("ix_categories_bounds", "_lft", "_rgt"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    left_bound: Mapped[int] = mapped_column("_lft", Integer, nullable=False, default=0)
    right_bound: Mapped[int] = mapped_column("_rgt", Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug='{self.slug}', parent_id={self.parent_id})>"
