"""Integration tests for the guarantees every composition keeps."""

from typing import Generic, List, TypeVar

import pytest

from composition_di import (
    CompositionBatch,
    CompositionContainer,
    CompositionFlags,
    CatalogItem,
    CompositionCatalog,
    IImporting,
    Import,
    InvalidExportError,
    export_constructor,
    name_of_type,
)

T = TypeVar("T")


class Repository(Generic[T]):
    def __init__(self, entity_type: type):
        self.entity_type = entity_type


class Logger:
    pass


class Plugin:
    pass


class Report:
    logger: Logger = Import()
    plugins: List[Plugin] = Import()


class Worker:
    pass


class NightWorker(Worker):
    pass


class Consumer:
    worker: Worker = Import()
    workers: List[Worker] = Import()


class Closable:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class ServiceA(Closable):
    pass


class ServiceB(Closable):
    pass


class ServiceC(Closable):
    pass


class SwitchingCatalog(CompositionCatalog):
    """Catalog whose offered types can be replaced as a whole."""

    def offer(self, *types):
        with self.lock:
            self.items = {}
            for export_type in types:
                self.add_item(CatalogItem(name=name_of_type(export_type), export_type=export_type))
        self.request_recompose()


def _shape(container):
    return {
        entry.name: (len(entry.instances), len(entry.types), len(entry.factories))
        for entry in container._registry.entries()
    }


class TestSharing:
    """Shared items hand out one instance per class or factory."""

    def test_type_shared_across_names_and_imports(self):
        container = CompositionContainer()
        container.add_type(Logger, Logger)
        container.add_type(Logger, "logging.default")
        container.add_type(Report, Report)

        report = container.get_export(Report)

        assert report.logger is container.get_export(Logger)
        assert report.logger is container.get_export("logging.default")

    def test_sharing_survives_recomposition(self):
        container = CompositionContainer()
        container.add_type(Logger, Logger)
        logger = container.get_export(Logger)

        container.add_type(Plugin, Plugin)
        container.recompose(CompositionFlags.ALL)

        assert container.get_export(Logger) is logger

    def test_type_exported_under_new_name_keeps_shared_instance(self):
        container = CompositionContainer()
        container.add_type(Logger, "a")
        first = container.get_export("a")

        container.add_type(Logger, "b")

        assert container.get_export("b") is first
        assert container.get_export("a") is first

    def test_factory_exported_under_new_name_keeps_shared_instance(self):
        def make_logger():
            return Logger()

        container = CompositionContainer()
        container.add_factory(make_logger, "a")
        first = container.get_export("a")

        container.add_factory(make_logger, "b")

        assert container.get_export("b") is first

    def test_new_name_after_import_shares_with_importer(self):
        container = CompositionContainer()
        container.add_type(Logger, Logger)
        container.add_type(Report, Report)
        report = container.get_export(Report)

        container.add_type(Logger, "logging.audit")

        assert container.get_export("logging.audit") is report.logger


class TestPrivateIsolation:
    """Private items never keep what they create."""

    def test_private_type_stores_nothing(self):
        container = CompositionContainer()
        container.add_type(Logger, Logger, private=True)

        first = container.get_export(Logger)
        second = container.get_export(Logger)

        member = container._registry.get(name_of_type(Logger)).types[0]
        assert first is not second
        assert member.closed_instance is None

    def test_private_and_shared_exports_of_one_class(self):
        container = CompositionContainer()
        container.add_type(Logger, "private.logger", private=True)
        container.add_type(Logger, "shared.logger")

        shared = container.get_export("shared.logger")

        assert container.get_export("private.logger") is not shared
        assert container.get_export("shared.logger") is shared

    def test_private_factory_stores_nothing(self):
        container = CompositionContainer()
        container.add_factory(lambda c: Logger(), Logger, private=True)

        container.get_export(Logger)

        assert container._registry.get(name_of_type(Logger)).factories[0].instance is None


class TestIdempotentRecomposition:
    """Recomposing an unchanged composition changes nothing."""

    def test_second_recompose_is_a_no_op(self):
        container = CompositionContainer()
        container.add_type(Logger, Logger)
        container.add_instance(Plugin(), Plugin)
        container.add_type(Report, Report)
        report = container.get_export(Report)
        plugins = report.plugins

        container.recompose(CompositionFlags.ALL)

        assert container.recompose(CompositionFlags.ALL) is False
        assert report.plugins is plugins

    def test_private_import_is_stable_across_recompositions(self):
        container = CompositionContainer()
        container.add_type(Worker, Worker, private=True)
        container.add_type(Consumer, Consumer)
        consumer = container.get_export(Consumer)
        worker, workers = consumer.worker, consumer.workers

        assert container.recompose() is False
        assert container.recompose() is False
        assert consumer.worker is worker
        assert consumer.workers is workers
        assert isinstance(worker, Worker)

    def test_replaced_private_provider_updates_import(self):
        container = CompositionContainer()
        container.add_type(Worker, Worker, private=True)
        container.add_type(Consumer, Consumer)
        consumer = container.get_export(Consumer)
        worker = consumer.worker

        container.remove_type(Worker, Worker)
        container.add_type(NightWorker, Worker, private=True)

        assert isinstance(consumer.worker, NightWorker)
        assert consumer.worker is not worker
        assert container.recompose() is False

    def test_private_import_is_not_reused_by_other_objects(self):
        container = CompositionContainer()
        container.add_type(Worker, Worker, private=True)
        first, second = Consumer(), Consumer()

        container.resolve_imports(first)
        container.resolve_imports(second)

        assert first.worker is not second.worker


class TestRegistryConvergence:
    """The registry only depends on the items currently offered."""

    def test_history_does_not_matter(self):
        plugin = Plugin()

        def make_logger():
            return Logger()

        history = CompositionContainer()
        history.add_type(Logger, Logger)
        history.add_instance(plugin, Plugin)
        history.add_factory(make_logger, "loggers")
        history.add_type(Report, "reports")
        history.remove_type(Logger, Logger)
        history.remove_type(Report, "reports")
        history.add_type(Report, "reports", private=True)

        fresh = CompositionContainer()
        fresh.add_instance(plugin, Plugin)
        fresh.add_factory(make_logger, "loggers")
        fresh.add_type(Report, "reports", private=True)

        assert _shape(history) == _shape(fresh)
        assert history._registry.get("reports").types[0].private is True

    def test_catalog_snapshot_change_converges(self):
        catalog = SwitchingCatalog()
        catalog.offer(ServiceA, ServiceB)
        container = CompositionContainer()
        container.add_catalog(catalog)
        service_a = container.get_export(ServiceA)
        service_b = container.get_export(ServiceB)

        catalog.offer(ServiceB, ServiceC)

        assert service_a.closed is True
        assert not container.has_export(ServiceA)
        assert isinstance(container.get_export(ServiceC), ServiceC)
        assert container.get_export(ServiceB) is service_b
        assert service_b.closed is False


class TestConstructorRanking:
    """The best resolvable constructor is chosen."""

    def test_ranking_follows_available_exports(self):
        class Service:
            def __init__(self, logger: Logger, plugin: Plugin):
                self.source = "full"

            @classmethod
            @export_constructor
            def with_logger(cls, logger: Logger) -> "Service":
                service = cls(logger, None)
                service.source = "with_logger"
                return service

        container = CompositionContainer()
        container.add_type(Logger, Logger)
        container.add_type(Service, Service, private=True)

        assert container.get_export(Service).source == "with_logger"

        container.add_type(Plugin, Plugin)

        assert container.get_export(Service).source == "full"


class TestHierarchyMerge:
    """Children see the exports of their ancestors first."""

    def test_parent_exports_come_first(self):
        parent = CompositionContainer()
        child = parent.create_child_container()
        grandchild = child.create_child_container()
        first, second, third = Plugin(), Plugin(), Plugin()
        grandchild.add_instance(third, Plugin)
        child.add_instance(second, Plugin)
        parent.add_instance(first, Plugin)

        assert grandchild.get_exports(Plugin) == [first, second, third]
        assert parent.get_exports(Plugin) == [first]


class TestBatchAtomicity:
    """A batch is applied as one change."""

    def test_importers_see_the_whole_batch(self):
        class Observer(IImporting):
            logger: Logger = Import()
            plugins: List[Plugin] = Import()

            def __init__(self):
                self.states = []

            def imports_resolving(self, flags):
                pass

            def imports_resolved(self, flags, changed):
                if changed:
                    self.states.append((self.logger is not None, len(self.plugins or [])))

        stale, legacy = Plugin(), Logger()
        container = CompositionContainer()
        container.add_instance(stale, Plugin)
        container.add_instance(legacy, "logging.legacy")
        container.add_type(Observer, Observer)
        observer = container.get_export(Observer)
        events = []
        container.composition_changed.subscribe(events.append)

        fresh = Plugin()
        batch = CompositionBatch()
        batch.add_type(Logger, Logger).add_instance(fresh, Plugin).add_instance(Plugin(), "more.plugins")
        batch.remove_instance(stale, Plugin).remove_instance(legacy, "logging.legacy")
        container.compose(batch)

        assert events == [container]
        assert observer.states == [(False, 1), (True, 1)]
        assert observer.plugins == [fresh]
        assert not container.has_export("logging.legacy")

    def test_invalid_batch_changes_nothing(self):
        container = CompositionContainer()
        events = []
        container.composition_changed.subscribe(events.append)

        batch = CompositionBatch().add_type(Logger, Logger).add_instance(7, "seven")

        with pytest.raises(InvalidExportError):
            container.compose(batch)

        assert events == []
        assert not container.has_export(Logger)


class TestOpenGenericBinding:
    """Open generic exports are bound per requested alias."""

    def test_each_alias_gets_its_own_instance(self):
        container = CompositionContainer()
        container.add_type(Repository, Repository)

        users = container.get_export(Repository[Logger])
        plugins = container.get_export(Repository[Plugin])

        assert users.entity_type == Repository[Logger]
        assert plugins.entity_type == Repository[Plugin]
        assert container.get_export(Repository[Logger]) is users

    def test_private_open_generic(self):
        container = CompositionContainer()
        container.add_type(Repository, Repository, private=True)

        assert container.get_export(Repository[Logger]) is not container.get_export(Repository[Logger])
