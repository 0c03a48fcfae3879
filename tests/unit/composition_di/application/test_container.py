"""Unit tests for CompositionContainer."""

import logging
from unittest.mock import Mock

import pytest

from composition_di.application.container import CompositionContainer
from composition_di.domain import (
    CatalogItem,
    CompositionArgumentError,
    CompositionCatalog,
    CompositionCreator,
    ContainerDisposedError,
    ContainerSettings,
    IContainer,
    IExporting,
    Import,
    InvalidExportError,
    name_of_type,
)


class Service:
    pass


class Closable:
    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1


class TestContainerInitialization:
    """Test cases for CompositionContainer initialization."""

    def test_container_initialization(self):
        """Test that container initializes correctly."""
        container = CompositionContainer()

        assert len(container._registry) == 0
        assert container.parent_container is None
        assert container.is_disposed is False
        assert container.auto_dispose is True
        assert container.logging_enabled is True

    def test_container_implements_interface(self):
        """Test that CompositionContainer implements IContainer."""
        assert isinstance(CompositionContainer(), IContainer)

    def test_settings_are_applied(self):
        """Test that settings configure the container."""
        container = CompositionContainer(settings=ContainerSettings(auto_dispose=False, logging_enabled=False))

        assert container.auto_dispose is False
        assert container.logging_enabled is False

    def test_settings_can_be_changed(self):
        """Test the settings property setters."""
        container = CompositionContainer()

        container.auto_dispose = False
        container.logging_enabled = False

        assert container.auto_dispose is False
        assert container.logging_enabled is False


class TestRegistration:
    """Test cases for registering exports."""

    def test_add_instance(self):
        """Test exporting a pre-built instance."""
        container = CompositionContainer()
        service = Service()

        container.add_instance(service, Service)

        assert container.get_export(Service) is service
        assert container.has_export(name_of_type(Service))

    def test_add_same_instance_twice(self):
        """Test that adding the same export twice keeps one item."""
        container = CompositionContainer()
        service = Service()

        container.add_instance(service, Service)
        container.add_instance(service, Service)

        assert container.get_exports(Service) == [service]

    def test_remove_instance(self):
        """Test that removed instances are no longer exported."""
        container = CompositionContainer()
        service = Service()
        container.add_instance(service, Service)

        container.remove_instance(service, Service)

        assert container.get_export(Service) is None
        assert not container.has_export(Service)

    def test_remove_type_ignores_privacy(self):
        """Test that removing a type removes it whatever its privacy."""
        container = CompositionContainer()
        container.add_type(Service, Service, private=True)

        container.remove_type(Service, Service)

        assert not container.has_export(Service)

    def test_remove_factory(self):
        """Test that removed factories are no longer exported."""
        container = CompositionContainer()

        def factory():
            return Service()

        container.add_factory(factory, Service)
        container.remove_factory(factory, Service)

        assert not container.has_export(Service)

    def test_removing_unknown_export_is_harmless(self):
        """Test that removing something never added does nothing."""
        container = CompositionContainer()

        container.remove_type(Service, Service)

        assert not container.has_export(Service)

    @pytest.mark.parametrize("name", [None, ""])
    def test_invalid_name(self, name):
        """Test that empty names are rejected."""
        container = CompositionContainer()

        with pytest.raises(CompositionArgumentError):
            container.add_type(Service, name)

    def test_none_instance(self):
        """Test that None cannot be exported."""
        container = CompositionContainer()

        with pytest.raises(CompositionArgumentError):
            container.add_instance(None, Service)

    @pytest.mark.parametrize("value", [42, "text", (1, 2)])
    def test_primitive_instance(self, value):
        """Test that primitive values cannot be exported."""
        container = CompositionContainer()

        with pytest.raises(InvalidExportError):
            container.add_instance(value, "value")

    def test_invalid_factory(self):
        """Test that non-callable factories are rejected."""
        container = CompositionContainer()

        with pytest.raises(InvalidExportError):
            container.add_factory(Service(), Service)

    def test_failed_registration_leaves_state_unchanged(self):
        """Test that argument errors do not modify the container."""
        container = CompositionContainer()
        events = []
        container.composition_changed.subscribe(events.append)

        with pytest.raises(CompositionArgumentError):
            container.add_instance(7, "seven")

        assert events == []
        assert container.direct_items() == []

    def test_add_catalog_and_creator(self):
        """Test that catalogs and creators are attached once."""
        container = CompositionContainer()
        catalog = CompositionCatalog()
        creator = Mock(spec=CompositionCreator)

        container.add_catalog(catalog)
        container.add_catalog(catalog)
        container.add_creator(creator)
        container.add_creator(creator)

        assert container.catalogs == (catalog,)
        assert container.creators == (creator,)
        assert len(catalog.recompose_requested) == 1

        container.remove_catalog(catalog)
        container.remove_creator(creator)

        assert container.catalogs == ()
        assert container.creators == ()
        assert len(catalog.recompose_requested) == 0

    def test_none_catalog(self):
        """Test that None catalogs are rejected."""
        with pytest.raises(CompositionArgumentError):
            CompositionContainer().add_catalog(None)

    def test_exporting_instance_is_notified(self):
        """Test that IExporting instances learn about being exported and removed."""
        container = CompositionContainer()
        instance = Mock(spec=IExporting)

        container.add_instance(instance, "exporting")
        instance.added_to_container.assert_called_once_with("exporting", container)

        container.remove_instance(instance, "exporting")
        instance.removed_from_container.assert_called_once_with("exporting", container)


class TestLookup:
    """Test cases for export lookup."""

    def test_get_export_missing(self):
        """Test that missing exports resolve to None."""
        container = CompositionContainer()

        assert container.get_export("missing") is None
        assert container.get_exports("missing") == []
        assert container.has_export("missing") is False

    def test_get_exports_order(self):
        """Test that instances, types and factories are returned in that order."""
        container = CompositionContainer()
        instance = Service()
        container.add_factory(lambda c: Service(), "services")
        container.add_type(Service, "services")
        container.add_instance(instance, "services")

        exports = container.get_exports("services")

        assert len(exports) == 3
        assert exports[0] is instance
        assert exports[1] is container._registry.get("services").types[0].closed_instance
        assert container.get_exports("services") == exports

    @pytest.mark.parametrize("name", [None, ""])
    def test_lookup_invalid_name(self, name):
        """Test that lookups need a name or type."""
        with pytest.raises(CompositionArgumentError):
            CompositionContainer().get_export(name)

    def test_resolve_imports_none(self):
        """Test that resolve_imports needs an object."""
        with pytest.raises(CompositionArgumentError):
            CompositionContainer().resolve_imports(None)


class TestEvents:
    """Test cases for composition_changed."""

    def test_every_modification_fires(self):
        """Test that each registration fires one event."""
        container = CompositionContainer()
        events = []
        container.composition_changed.subscribe(events.append)

        container.add_type(Service, Service)
        container.remove_type(Service, Service)
        container.clear()

        assert events == [container, container, container]

    def test_event_fires_outside_lock(self):
        """Test that handlers may use the container."""
        container = CompositionContainer()
        seen = []
        container.composition_changed.subscribe(lambda sender: seen.append(sender.has_export(Service)))

        container.add_type(Service, Service)

        assert seen == [True]

    def test_catalog_request_rebuilds(self):
        """Test that catalogs can ask the container to rebuild."""
        container = CompositionContainer()
        catalog = CompositionCatalog()
        container.add_catalog(catalog)
        events = []
        container.composition_changed.subscribe(events.append)

        catalog.add_item(CatalogItem(name="late", export_type=Service))
        catalog.request_recompose()

        assert container.has_export("late")
        assert events == [container]


class TestRecomposition:
    """Test cases for recomposition after changes."""

    def test_existing_instances_are_recomposed(self):
        """Test that instances created by the container follow export changes."""
        container = CompositionContainer()

        class Consumer:
            service: Service = Import()

        container.add_type(Consumer, Consumer)
        consumer = container.get_export(Consumer)
        assert consumer.service is None

        service = Service()
        container.add_instance(service, Service)

        assert consumer.service is service

    def test_recompose_reports_changes(self):
        """Test that an explicit recompose reports nothing when stable."""
        container = CompositionContainer()
        container.add_type(Service, Service)
        container.get_export(Service)

        assert container.recompose() is False


class TestAutoDispose:
    """Test cases for closing removed instances."""

    def test_removed_instance_is_closed(self):
        """Test that removed instances are closed by default."""
        container = CompositionContainer()
        closable = Closable()
        container.add_instance(closable, "closable")

        container.remove_instance(closable, "closable")

        assert closable.closed == 1

    def test_auto_dispose_off(self):
        """Test that nothing is closed with auto_dispose off."""
        container = CompositionContainer(settings=ContainerSettings(auto_dispose=False))
        closable = Closable()
        container.add_instance(closable, "closable")

        container.remove_instance(closable, "closable")

        assert closable.closed == 0

    def test_created_instances_are_closed_on_dispose(self):
        """Test that shared instances built by the container are closed on dispose."""
        container = CompositionContainer()
        container.add_type(Closable, Closable)
        closable = container.get_export(Closable)

        container.dispose()

        assert closable.closed == 1


class TestLifecycle:
    """Test cases for clear and dispose."""

    def test_clear_removes_everything(self):
        """Test that clear empties the container but keeps it usable."""
        container = CompositionContainer()
        container.add_type(Service, Service)
        container.add_catalog(CompositionCatalog())
        container.add_creator(Mock(spec=CompositionCreator))

        container.clear()

        assert not container.has_export(Service)
        assert container.catalogs == ()
        assert container.creators == ()

        container.add_type(Service, Service)
        assert container.has_export(Service)

    def test_dispose(self):
        """Test that a disposed container rejects further use."""
        container = CompositionContainer()
        events = []
        container.composition_changed.subscribe(events.append)

        container.dispose()
        container.dispose()

        assert container.is_disposed
        assert events == [container]
        assert len(container.composition_changed) == 0
        with pytest.raises(ContainerDisposedError):
            container.get_export(Service)
        with pytest.raises(ContainerDisposedError):
            container.add_type(Service, Service)

    def test_context_manager(self):
        """Test that leaving the with block disposes the container."""
        with CompositionContainer() as container:
            container.add_type(Service, Service)

        assert container.is_disposed

    def test_child_of_disposed_parent(self):
        """Test that disposed containers cannot get children."""
        parent = CompositionContainer()
        parent.dispose()

        with pytest.raises(ContainerDisposedError):
            parent.create_child_container()
        with pytest.raises(ContainerDisposedError):
            CompositionContainer(parent=parent)

    def test_child_inherits_settings(self):
        """Test that children copy the parent's settings."""
        parent = CompositionContainer(settings=ContainerSettings(auto_dispose=False, logging_enabled=False))

        child = parent.create_child_container()

        assert child.parent_container is parent
        assert child.auto_dispose is False
        assert child.logging_enabled is False


class TestDiagnostics:
    """Test cases for the composition snapshot and log."""

    def test_snapshot(self):
        """Test that the snapshot lists items by name."""
        container = CompositionContainer()
        container.add_type(Service, "service")

        snapshot = container.get_composition_snapshot()

        assert list(snapshot) == ["service"]
        assert snapshot["service"][0].export_type is Service

    def test_composition_log(self):
        """Test the textual composition log."""
        container = CompositionContainer()
        container.add_type(Service, "b.service", private=True)
        container.add_instance(Service(), "A.instance")

        log = container.get_current_composition_log()
        lines = log.splitlines()

        assert lines[0].startswith("---")
        assert lines[1] == "A.instance"
        assert lines[2].startswith("  Kind=Instance, Private=0, Value= Service (")
        assert lines[4] == "b.service"
        assert lines[5].startswith("  Kind=Type,     Private=1, Value= Service (")
        assert lines[-1].startswith("---")

    def test_empty_composition_log(self):
        """Test that an empty container logs nothing."""
        assert CompositionContainer().get_current_composition_log() == ""

    def test_log_current_composition(self, caplog):
        """Test that the composition is written to the logger."""
        container = CompositionContainer()
        container.add_type(Service, "service")

        with caplog.at_level(logging.INFO, logger="composition_di"):
            container.log_current_composition(logging.INFO)

        assert "service" in caplog.text

    def test_logging_disabled(self, caplog):
        """Test that disabled logging writes nothing."""
        container = CompositionContainer(settings=ContainerSettings(logging_enabled=False))
        container.add_type(Service, "service")

        with caplog.at_level(logging.INFO, logger="composition_di"):
            container.log_current_composition(logging.INFO)

        assert caplog.text == ""
