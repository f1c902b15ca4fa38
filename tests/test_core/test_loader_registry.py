"""Tests for loader registry."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from category_tree.core.loader_registry import (
    LoaderRegistry,
    TreeLoader,
    get_loader,
    get_loader_registry,
)
from category_tree.core.tree import Tree
from category_tree.loaders import (
    AdjacencyTreeLoader,
    NestedSetTreeLoader,
    RecursiveTreeLoader,
)


class MockLoader:
    """Mock loader for testing."""

    def __init__(self, strict: bool = False):
        self.strict = strict

    async def load_tree(self, session: AsyncSession) -> Tree:
        return Tree()


class AnotherMockLoader(MockLoader):
    """Another mock loader for testing."""

    pass


class TestLoaderRegistry:
    """Tests for LoaderRegistry."""

    @pytest.fixture
    def registry(self) -> LoaderRegistry:
        """Create a fresh registry instance."""
        return LoaderRegistry()

    def test_register_loader(self, registry: LoaderRegistry):
        registry.register("mock", MockLoader)

        assert "mock" in registry.get_available()
        assert registry.is_registered("mock")

    def test_register_duplicate_overwrites(self, registry: LoaderRegistry):
        registry.register("mock", MockLoader)
        registry.register("mock", AnotherMockLoader)

        assert isinstance(registry.get("mock"), AnotherMockLoader)

    def test_get_loader_creates_instance(self, registry: LoaderRegistry):
        registry.register("mock", MockLoader)
        loader = registry.get("mock")

        assert isinstance(loader, MockLoader)
        assert isinstance(loader, TreeLoader)

    def test_get_loader_caches_instance(self, registry: LoaderRegistry):
        registry.register("mock", MockLoader)

        assert registry.get("mock") is registry.get("mock")

    def test_init_kwargs_get_separate_instances(self, registry: LoaderRegistry):
        registry.register("mock", MockLoader)

        lenient = registry.get("mock")
        strict = registry.get("mock", strict=True)

        assert lenient is not strict
        assert strict.strict is True

    def test_get_nonexistent_loader_raises(self, registry: LoaderRegistry):
        with pytest.raises(KeyError, match="not registered"):
            registry.get("nonexistent")

    def test_clear_instances(self, registry: LoaderRegistry):
        registry.register("mock", MockLoader)
        loader = registry.get("mock")

        registry.clear_instances()

        assert registry.get("mock") is not loader


class TestGetLoaderRegistry:
    """Tests for singleton loader registry."""

    def test_returns_same_instance(self):
        assert get_loader_registry() is get_loader_registry()

    def test_has_default_loaders(self):
        available = get_loader_registry().get_available()

        assert available == ["adjacency", "recursive", "nested_set"]

    def test_get_loader_by_name(self):
        assert isinstance(get_loader("adjacency"), AdjacencyTreeLoader)
        assert isinstance(get_loader("recursive"), RecursiveTreeLoader)
        assert isinstance(get_loader("nested_set"), NestedSetTreeLoader)

    def test_get_loader_defaults_to_configured_strategy(self, monkeypatch: pytest.MonkeyPatch):
        from category_tree.config import settings

        monkeypatch.setattr(settings, "tree_strategy", "recursive")

        assert isinstance(get_loader(), RecursiveTreeLoader)

    def test_builtin_loaders_satisfy_protocol(self):
        for name in get_loader_registry().get_available():
            assert isinstance(get_loader(name), TreeLoader)
