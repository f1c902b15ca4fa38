"""Loader Registry - Strategy selection for tree loading.

Provides a central registry of tree loaders so callers pick a strategy by
name (or by configuration) instead of depending on a concrete class.
"""

from typing import Any, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from category_tree.config import settings
from category_tree.core.tree import Tree
from category_tree.infra.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class TreeLoader(Protocol):
    """Protocol for tree loading strategies."""

    async def load_tree(self, session: AsyncSession) -> Tree:
        """Materialize the category table as a Tree."""
        ...


class LoaderRegistry:
    """Registry for tree loaders.

    Loaders are registered by name and instantiated lazily. Instances are
    cached per (name, init kwargs) since loaders are stateless.
    """

    def __init__(self) -> None:
        self._loaders: dict[str, type[TreeLoader]] = {}
        self._instances: dict[str, TreeLoader] = {}

    def register(self, name: str, loader_class: type[TreeLoader]) -> None:
        """Register a loader class.

        Args:
            name: Strategy name (e.g., "adjacency", "nested_set")
            loader_class: Loader class to register
        """
        self._loaders[name] = loader_class
        logger.debug("Loader registered", name=name, cls=loader_class.__name__)

    def get(self, name: str, **init_kwargs: Any) -> TreeLoader:
        """Get a loader instance by name.

        Args:
            name: Strategy name
            **init_kwargs: Arguments for loader initialization (e.g. strict)

        Returns:
            Loader instance

        Raises:
            KeyError: If loader not registered
        """
        cache_key = f"{name}:{sorted(init_kwargs.items())!r}"

        if cache_key not in self._instances:
            if name not in self._loaders:
                raise KeyError(f"Loader not registered: {name}")

            self._instances[cache_key] = self._loaders[name](**init_kwargs)
            logger.debug("Loader instance created", name=name, cache_key=cache_key)

        return self._instances[cache_key]

    def get_available(self) -> list[str]:
        """Get list of registered strategy names."""
        return list(self._loaders.keys())

    def is_registered(self, name: str) -> bool:
        """Check if a strategy is registered."""
        return name in self._loaders

    def clear_instances(self) -> None:
        """Clear cached loader instances."""
        self._instances.clear()
        logger.info("Loader instance cache cleared")


def create_default_registry() -> LoaderRegistry:
    """Create a registry with the three standard strategies registered."""
    from category_tree.loaders.adjacency_loader import AdjacencyTreeLoader
    from category_tree.loaders.nested_set_loader import NestedSetTreeLoader
    from category_tree.loaders.recursive_loader import RecursiveTreeLoader

    registry = LoaderRegistry()

    registry.register("adjacency", AdjacencyTreeLoader)
    registry.register("recursive", RecursiveTreeLoader)
    registry.register("nested_set", NestedSetTreeLoader)

    logger.info("Default loader registry created", loaders=registry.get_available())

    return registry


# Singleton registry
_registry: LoaderRegistry | None = None


def get_loader_registry() -> LoaderRegistry:
    """Get the singleton loader registry."""
    global _registry
    if _registry is None:
        _registry = create_default_registry()
    return _registry


def get_loader(name: str | None = None, **init_kwargs: Any) -> TreeLoader:
    """Resolve a loader by name, falling back to ``settings.tree_strategy``."""
    return get_loader_registry().get(name or settings.tree_strategy, **init_kwargs)
