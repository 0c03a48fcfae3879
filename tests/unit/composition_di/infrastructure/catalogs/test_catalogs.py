"""Unit tests for the export catalogs."""

import sys
import types
from abc import ABC, abstractmethod

import pytest

from composition_di.application.container import CompositionContainer
from composition_di.domain import (
    CatalogItem,
    CompositionArgumentError,
    CompositionCatalog,
    ConflictingPrivacyError,
    export,
    name_of_type,
)
from composition_di.infrastructure.catalogs import AggregateCatalog, InstanceCatalog, ModuleCatalog, TypeCatalog


class IStore(ABC):
    @abstractmethod
    def load(self) -> str:
        pass


@export(IStore)
@export("stores.sql")
class SqlStore(IStore):
    def load(self) -> str:
        return "sql"


@export(private=True)
class Worker:
    pass


class Plain:
    pass


class TestTypeCatalog:
    """Test cases for TypeCatalog."""

    def test_declared_exports(self):
        """Test that @export names are used."""
        catalog = TypeCatalog(SqlStore)

        assert set(catalog.items) == {name_of_type(IStore), "stores.sql"}

    def test_export_all_types(self):
        """Test that undeclared classes are exported under their own name."""
        catalog = TypeCatalog(Plain)

        assert set(catalog.items) == {name_of_type(Plain)}

    def test_export_all_types_off(self):
        """Test that undeclared classes are skipped without export_all_types."""
        catalog = TypeCatalog(Plain, export_all_types=False)

        assert catalog.items == {}

    def test_private_declaration(self):
        """Test that private declarations produce private items."""
        catalog = TypeCatalog(Worker)

        assert catalog.items[name_of_type(Worker)][0].private is True

    def test_invalid_types_are_skipped(self):
        """Test that abstract classes and None are not exported."""
        catalog = TypeCatalog(IStore, None)

        assert catalog.items == {}

    def test_conflicting_privacy(self):
        """Test that mixed privacy in a hierarchy is rejected."""

        @export(private=True)
        class Base:
            pass

        @export()
        class Derived(Base):
            pass

        with pytest.raises(ConflictingPrivacyError):
            TypeCatalog(Derived)

    def test_add_types_requests_recompose(self):
        """Test that adding types asks attached containers to rebuild."""
        catalog = TypeCatalog()
        requests = []
        catalog.recompose_requested.subscribe(requests.append)

        catalog.add_types([Plain])
        catalog.add_types([Plain])

        assert requests == [catalog]

    def test_catalog_in_container(self):
        """Test that catalog exports resolve through the container."""
        container = CompositionContainer()
        container.add_catalog(TypeCatalog(SqlStore))

        store = container.get_export(IStore)

        assert store.load() == "sql"
        assert container.get_export("stores.sql") is store


class TestInstanceCatalog:
    """Test cases for InstanceCatalog."""

    def test_instances_are_exported(self):
        """Test that instances are exported under their declared names."""
        store = SqlStore()
        catalog = InstanceCatalog(store, None)

        assert catalog.items["stores.sql"][0].value is store

    def test_invalid_instances_are_skipped(self):
        """Test that primitive values are not exported."""
        catalog = InstanceCatalog(42, "text")

        assert catalog.items == {}

    def test_add_instances(self):
        """Test that instances can be added later."""
        catalog = InstanceCatalog()
        requests = []
        catalog.recompose_requested.subscribe(requests.append)
        plain = Plain()

        catalog.add_instances([plain])

        assert catalog.items[name_of_type(Plain)][0].value is plain
        assert requests == [catalog]


class TestModuleCatalog:
    """Test cases for ModuleCatalog."""

    @staticmethod
    def _module(name):
        module = types.ModuleType(name)

        @export("module.service")
        class ModuleService:
            pass

        class Undeclared:
            pass

        for cls in (ModuleService, Undeclared):
            cls.__module__ = name
            setattr(module, cls.__name__, cls)
        # Imported classes belong to another module and are skipped
        module.SqlStore = SqlStore
        return module, ModuleService, Undeclared

    def test_declared_classes_are_exported(self):
        """Test that only declared classes defined by the module are exported."""
        module, service_cls, _ = self._module("catalog_fixture_declared")

        catalog = ModuleCatalog(module)

        assert set(catalog.items) == {"module.service"}
        assert catalog.items["module.service"][0].export_type is service_cls
        assert catalog.modules == [module]

    def test_export_all_types(self):
        """Test that undeclared classes of the module can be exported."""
        module, _, undeclared = self._module("catalog_fixture_all")

        catalog = ModuleCatalog(module, export_all_types=True)

        assert name_of_type(undeclared) in catalog.items
        assert "stores.sql" not in catalog.items

    def test_module_by_name(self, monkeypatch):
        """Test that module names are imported."""
        module, _, _ = self._module("catalog_fixture_named")
        monkeypatch.setitem(sys.modules, "catalog_fixture_named", module)

        catalog = ModuleCatalog("catalog_fixture_named")

        assert catalog.modules == [module]

    def test_module_scanned_once(self):
        """Test that scanning a module twice adds nothing."""
        module, _, _ = self._module("catalog_fixture_once")
        catalog = ModuleCatalog(module)
        requests = []
        catalog.recompose_requested.subscribe(requests.append)

        catalog.add_modules([module])

        assert catalog.modules == [module]
        assert requests == []

    def test_invalid_module(self):
        """Test that empty module names are rejected."""
        with pytest.raises(CompositionArgumentError):
            ModuleCatalog("")


class TestAggregateCatalog:
    """Test cases for AggregateCatalog."""

    def test_items_are_combined(self):
        """Test that the aggregate exposes the items of every catalog."""
        aggregate = AggregateCatalog(TypeCatalog(SqlStore), TypeCatalog(Plain))

        aggregate.update_items()

        assert set(aggregate.items) == {name_of_type(IStore), "stores.sql", name_of_type(Plain)}
        assert len(aggregate) == 2

    def test_duplicates_are_removed(self):
        """Test that the same export offered twice is listed once."""
        aggregate = AggregateCatalog(TypeCatalog(Plain), TypeCatalog(Plain))

        aggregate.update_items()

        assert len(aggregate.items[name_of_type(Plain)]) == 1

    def test_export_filter(self):
        """Test that the filter decides which items are exposed."""
        aggregate = AggregateCatalog(
            TypeCatalog(SqlStore),
            export_filter=lambda name, item: name == "stores.sql",
        )

        aggregate.update_items()

        assert set(aggregate.items) == {"stores.sql"}

    def test_requests_are_forwarded(self):
        """Test that inner recompose requests reach the aggregate's listeners."""
        inner = TypeCatalog()
        aggregate = AggregateCatalog(inner)
        requests = []
        aggregate.recompose_requested.subscribe(requests.append)

        inner.add_types([Plain])

        assert requests == [aggregate]

    def test_add_remove_clear(self):
        """Test the catalog collection operations."""
        first, second = CompositionCatalog(), CompositionCatalog()
        aggregate = AggregateCatalog(first)

        aggregate.add(second)
        aggregate.add(second)
        assert list(aggregate) == [first, second]
        assert second in aggregate

        assert aggregate.remove(first) is True
        assert aggregate.remove(first) is False
        assert len(first.recompose_requested) == 0

        aggregate.clear()
        assert len(aggregate) == 0
        assert len(second.recompose_requested) == 0

    def test_none_catalog(self):
        """Test that None cannot be combined."""
        with pytest.raises(CompositionArgumentError):
            AggregateCatalog().add(None)

    def test_container_follows_changes(self):
        """Test that containers rebuild when catalogs change."""
        container = CompositionContainer()
        aggregate = AggregateCatalog()
        container.add_catalog(aggregate)

        aggregate.add(TypeCatalog(Plain))
        assert container.has_export(Plain)

        aggregate.clear()
        assert not container.has_export(Plain)

    def test_custom_catalog_items(self):
        """Test that hand-filled catalogs are aggregated."""
        catalog = CompositionCatalog()
        catalog.add_item(CatalogItem(name="custom", export_type=Plain))
        aggregate = AggregateCatalog(catalog)

        aggregate.update_items()

        assert aggregate.items["custom"][0].export_type is Plain
