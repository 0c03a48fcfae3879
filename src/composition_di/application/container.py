import logging
import threading
import typing
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from composition_di.application.batch import CompositionBatch
from composition_di.application.circular_detector import CircularDependencyDetector
from composition_di.application.import_resolver import ImportResolver
from composition_di.application.lazy import LazyInvoker
from composition_di.application.lifetime_manager import LifetimeManager
from composition_di.application.recomposer import Recomposer
from composition_di.application.registry import CompositionRegistry
from composition_di.application.resolver import DependencyResolver
from composition_di.domain import (
    CatalogItem,
    CompositionArgumentError,
    CompositionCatalog,
    CompositionCreator,
    CompositionFlags,
    ContainerDisposedError,
    ContainerSettings,
    EventHook,
    IContainer,
    InvalidExportError,
    NameOrType,
    name_of_type,
    to_export_name,
    validate_export_factory,
    validate_export_instance,
    validate_export_type,
)

logger = logging.getLogger(__name__)


class CompositionContainer(IContainer):
    """Composition container tracking named exports and resolving imports.

    Exports are pre-built instances, types constructed on demand, or factories.
    They are registered directly or contributed by catalogs; every change
    rebuilds the registry and recomposes the instances already created so
    that their import slots follow the new composition.

    All operations are serialized by one re-entrant lock per container. The
    ``composition_changed`` event fires after the lock has been released.

    Example:
        >>> container = CompositionContainer()
        >>> container.add_type(SqlStore, IStore)
        >>> container.add_factory(lambda c: Settings.from_env(), Settings)
        >>> store = container.get_export(IStore)

    Attributes:
        composition_changed: Event fired with the container as sender after
            every change of the composition.
    """

    def __init__(
        self,
        parent: Optional["CompositionContainer"] = None,
        settings: Optional[ContainerSettings] = None,
    ) -> None:
        """Initialize an empty container.

        Args:
            parent: Parent whose exports are merged into every lookup.
            settings: Container configuration; defaults are used when omitted.

        Raises:
            ContainerDisposedError: If the parent has been disposed.
        """
        settings = settings or ContainerSettings()
        self._lock = threading.RLock()
        self._auto_dispose = settings.auto_dispose
        self._logging_enabled = settings.logging_enabled
        self._disposed = False
        self._clearing = False

        self._instances: List[CatalogItem] = []
        self._types: List[CatalogItem] = []
        self._factories: List[CatalogItem] = []
        self._catalogs: List[CompositionCatalog] = []
        self._creators: List[CompositionCreator] = []
        self._lazy_invokers: Dict[Tuple[str, str], LazyInvoker] = {}

        self._registry = CompositionRegistry(self)
        self._lifetime_manager = LifetimeManager()
        self._circular_detector = CircularDependencyDetector()
        self._resolver = DependencyResolver(self, self._registry, self._lifetime_manager, self._circular_detector)
        self._import_resolver = ImportResolver(self._resolver)
        self._recomposer = Recomposer(self, self._registry, self._import_resolver)

        self.composition_changed = EventHook()

        self._parent: Optional[CompositionContainer] = None
        if parent is not None:
            if parent.is_disposed:
                raise ContainerDisposedError()
            self._parent = parent
            parent.composition_changed.subscribe(self._handle_parent_composition_changed)

        with self._lock:
            self._recomposer.update_composition(True)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def parent_container(self) -> Optional["CompositionContainer"]:
        return self._parent

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def auto_dispose(self) -> bool:
        """Whether removed exports providing ``close()`` are closed."""
        return self._auto_dispose

    @auto_dispose.setter
    def auto_dispose(self, value: bool) -> None:
        with self._lock:
            self._auto_dispose = value

    @property
    def logging_enabled(self) -> bool:
        """Whether the container writes its diagnostic log records."""
        return self._logging_enabled

    @logging_enabled.setter
    def logging_enabled(self, value: bool) -> None:
        with self._lock:
            self._logging_enabled = value

    @property
    def catalogs(self) -> Tuple[CompositionCatalog, ...]:
        return tuple(self._catalogs)

    @property
    def creators(self) -> Tuple[CompositionCreator, ...]:
        return tuple(self._creators)

    def direct_items(self) -> List[CatalogItem]:
        """Get the items registered directly on the container."""
        return [*self._instances, *self._types, *self._factories]

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_instance(self, instance: Any, name: NameOrType) -> None:
        """Export a pre-built instance under a name.

        Raises:
            CompositionArgumentError: If the name is empty or the instance is None.
            InvalidExportError: If the instance cannot be exported.

        Example:
            >>> container.add_instance(settings, "app.settings")
        """
        item = self._new_item(name, "instance", value=instance)
        self._modify(lambda: self._add_item(self._instances, item))

    def remove_instance(self, instance: Any, name: NameOrType) -> None:
        item = self._new_item(name, "instance", value=instance)
        self._modify(lambda: self._remove_item(self._instances, item))

    def add_type(self, export_type: Any, name: NameOrType, private: bool = False) -> None:
        """Export a type constructed on first resolution.

        Args:
            export_type: Class, bound generic alias, or open generic class.
            name: Export name, or a type whose name is used.
            private: Whether every resolution creates a new instance.

        Raises:
            CompositionArgumentError: If the name is empty or the type is None.
            InvalidExportError: If the type is primitive or abstract.
        """
        item = self._new_item(name, "export_type", export_type=export_type, private=private)
        self._modify(lambda: self._add_item(self._types, item))

    def remove_type(self, export_type: Any, name: NameOrType) -> None:
        item = self._new_item(name, "export_type", export_type=export_type)
        self._modify(lambda: self._remove_item(self._types, item))

    def add_factory(self, factory: Any, name: NameOrType, private: bool = False) -> None:
        """Export a factory called on first resolution.

        Parameters of the factory are supplied like constructor parameters;
        parameters without annotation receive the container.

        Example:
            >>> container.add_factory(lambda c: Client(c.get_export(Settings)), Client)
        """
        item = self._new_item(name, "factory", factory=factory, private=private)
        self._modify(lambda: self._add_item(self._factories, item))

    def remove_factory(self, factory: Any, name: NameOrType) -> None:
        item = self._new_item(name, "factory", factory=factory)
        self._modify(lambda: self._remove_item(self._factories, item))

    def add_catalog(self, catalog: CompositionCatalog) -> None:
        self._require("catalog", catalog)
        self._modify(lambda: self._attach_catalog(catalog))

    def remove_catalog(self, catalog: CompositionCatalog) -> None:
        self._require("catalog", catalog)
        self._modify(lambda: self._detach_catalog(catalog))

    def add_creator(self, creator: CompositionCreator) -> None:
        self._require("creator", creator)
        self._modify(lambda: self._attach_creator(creator))

    def remove_creator(self, creator: CompositionCreator) -> None:
        self._require("creator", creator)
        self._modify(lambda: self._detach_creator(creator))

    def compose(self, batch: CompositionBatch) -> None:
        """Apply a batch of changes with a single recomposition.

        Creators are applied first, then exports, then catalogs. The
        composition is rebuilt once, existing instances are recomposed with
        the batch flags and the objects of the batch get their imports
        resolved. ``composition_changed`` fires once.
        """
        self._require("batch", batch)
        self._ensure_not_disposed()
        for item in batch.items_to_add:
            self.validate_item(item)
        with self._lock:
            for creator in batch.creators_to_add:
                self._attach_creator(creator)
            for creator in batch.creators_to_remove:
                self._detach_creator(creator)

            for item in batch.items_to_add:
                self._add_item(self._list_for(item), item)
            for item in batch.items_to_remove:
                self._remove_item(self._list_for(item), item)

            for catalog in batch.catalogs_to_add:
                self._attach_catalog(catalog)
            for catalog in batch.catalogs_to_remove:
                self._detach_catalog(catalog)

            self._recomposer.update_composition(False)
            self._recomposer.recompose(batch.flags | CompositionFlags.NORMAL)
            for obj, flags in batch.objects_to_satisfy:
                self._import_resolver.resolve_imports(obj, flags)
        self._raise_composition_changed()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def get_export(self, name_or_type: NameOrType) -> Any:
        """Get the first export of a name or type.

        Returns:
            The instance, or None if nothing is exported.

        Example:
            >>> store = container.get_export(IStore)
            >>> settings = container.get_export("app.settings")
        """
        return self.resolve(self._lookup_type(name_or_type), self._lookup_name(name_or_type))

    def get_exports(self, name_or_type: NameOrType) -> List[Any]:
        """Get every export of a name or type, parent exports first."""
        return self.resolve(typing.List[self._lookup_type(name_or_type)], self._lookup_name(name_or_type))

    def resolve(self, annotation: Any, name: Optional[str] = None) -> Any:
        """Resolve a value the way an import of the given shape is resolved.

        Args:
            annotation: Import shape, e.g. ``Logger``, ``List[Plugin]``,
                ``Callable[[], Logger]``, ``Lazy[Logger]`` or ``ImportGroup``.
            name: Explicit import name; defaults to the name of the element type.

        Raises:
            InvalidImportError: If the shape cannot be imported.
        """
        self._ensure_not_disposed()
        with self._lock:
            value, _ = self._resolver.get_import_value(name, annotation)
            return value

    def get_or_create_instances(
        self, name: str, type_hint: Any = object, reuse: Optional[Sequence[Any]] = None
    ) -> List[Any]:
        """Get every instance of an export name, creating missing ones.

        Private members reuse an instance from ``reuse`` they issued earlier.
        """
        self._ensure_not_disposed()
        with self._lock:
            return self._resolver.get_or_create_instances(name, type_hint, reuse)

    def has_export(self, name_or_type: NameOrType) -> bool:
        name = self._validate_name(name_or_type)
        self._ensure_not_disposed()
        with self._lock:
            if self._parent is not None and not self._parent.is_disposed and self._parent.has_export(name):
                return True
            return name in self._registry

    def resolve_imports(self, obj: Any, flags: CompositionFlags = CompositionFlags.NORMAL) -> bool:
        """Assign the import slots of an object.

        Returns:
            Whether any slot changed.
        """
        self._require("obj", obj)
        self._ensure_not_disposed()
        with self._lock:
            return self._import_resolver.resolve_imports(obj, flags)

    def recompose(self, flags: CompositionFlags = CompositionFlags.NORMAL) -> bool:
        """Resolve the imports of every instance created so far, parent first."""
        self._ensure_not_disposed()
        with self._lock:
            return self._recomposer.recompose(flags)

    def lazy_invoker(self, name: Optional[str], annotation: Any) -> LazyInvoker:
        """Get the memoised lazy resolver of an import name and type."""
        key = (name or "", name_of_type(annotation))
        with self._lock:
            invoker = self._lazy_invokers.get(key)
            if invoker is None:
                invoker = LazyInvoker(self, name, annotation)
                self._lazy_invokers[key] = invoker
            return invoker

    # ------------------------------------------------------------------
    # Hierarchy and lifecycle
    # ------------------------------------------------------------------

    def create_child_container(self) -> "CompositionContainer":
        """Create a container whose lookups merge this container's exports."""
        self._ensure_not_disposed()
        return CompositionContainer(
            parent=self,
            settings=ContainerSettings(auto_dispose=self._auto_dispose, logging_enabled=self._logging_enabled),
        )

    def clear(self) -> None:
        """Remove every export, catalog and creator; the container stays usable."""
        self._ensure_not_disposed()
        with self._lock:
            if not self._clear_internal():
                return
        self._raise_composition_changed()

    def dispose(self) -> None:
        """Clear the container permanently and detach it from its parent.

        Disposing twice is allowed; any other use afterwards raises
        ``ContainerDisposedError``.
        """
        if self._disposed:
            return
        with self._lock:
            if self._clearing:
                return
            if self._parent is not None:
                self._parent.composition_changed.unsubscribe(self._handle_parent_composition_changed)
            self._clear_internal()
            self._lazy_invokers.clear()
            self._import_resolver.clear()
            self._circular_detector.clear()
            self._disposed = True
        self._raise_composition_changed()
        self.composition_changed.clear()

    def __enter__(self) -> "CompositionContainer":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_composition_snapshot(self) -> Dict[str, List[CatalogItem]]:
        """Get the items currently offered to the registry, by export name."""
        self._ensure_not_disposed()
        with self._lock:
            snapshot: Dict[str, List[CatalogItem]] = {}
            for item in self._recomposer.gather_items():
                snapshot.setdefault(item.name, []).append(item)
            return snapshot

    def get_current_composition_log(self) -> str:
        """Render the current composition as text, one block per export name.

        Example:
            >>> print(container.get_current_composition_log())
            ---------------------------------------------
            app.settings
              Kind=Instance, Private=0, Value= Settings (app.Settings)
            ---------------------------------------------
        """
        snapshot = self.get_composition_snapshot()
        output: List[str] = []
        names = sorted(snapshot, key=str.lower)
        for index, name in enumerate(names):
            lines = [name]
            for item in snapshot[name]:
                private = "1" if item.private else "0"
                if item.value is not None:
                    value_type = type(item.value)
                    lines.append(
                        f"  Kind=Instance, Private=0, Value= {value_type.__name__} ({name_of_type(value_type)})"
                    )
                elif item.export_type is not None:
                    short = getattr(item.export_type, "__name__", repr(item.export_type))
                    lines.append(
                        f"  Kind=Type,     Private={private}, Value= {short} ({name_of_type(item.export_type)})"
                    )
                else:
                    lines.append(f"  Kind=Factory,  Private={private}, Value= {_callable_name(item.factory)}")
            separator = "-" * max(len(line) for line in lines)
            output.append(separator)
            output.extend(lines)
            if index == len(names) - 1:
                output.append(separator)
        return "\n".join(output).strip()

    def log_current_composition(self, level: int = logging.DEBUG) -> None:
        """Write the current composition to the container's logger."""
        self._log(level, "Current composition:\n%s", self.get_current_composition_log())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def validate_item(self, item: CatalogItem) -> None:
        """Check that an item describes an exportable instance, type or factory.

        Raises:
            InvalidExportError: If it does not.
        """
        _validate_provider(value=item.value, export_type=item.export_type, factory=item.factory)

    def _new_item(self, name: NameOrType, argument: str, private: bool = False, **provider: Any) -> CatalogItem:
        export_name = self._validate_name(name)
        for value in provider.values():
            self._require(argument, value)
        _validate_provider(**provider)
        return CatalogItem(name=export_name, private=private, **provider)

    @staticmethod
    def _validate_name(name: NameOrType) -> str:
        if name is None:
            raise CompositionArgumentError("name", "Export name cannot be None.")
        export_name = to_export_name(name)
        if not export_name.strip():
            raise CompositionArgumentError("name", "Export name cannot be empty.")
        return export_name

    @staticmethod
    def _require(argument: str, value: Any) -> None:
        if value is None:
            raise CompositionArgumentError(argument, "Value cannot be None.")

    @staticmethod
    def _lookup_name(name_or_type: NameOrType) -> Optional[str]:
        if isinstance(name_or_type, str):
            if not name_or_type.strip():
                raise CompositionArgumentError("name", "Export name cannot be empty.")
            return name_or_type
        if name_or_type is None:
            raise CompositionArgumentError("name_or_type", "Value cannot be None.")
        return None

    @staticmethod
    def _lookup_type(name_or_type: NameOrType) -> Any:
        return object if isinstance(name_or_type, str) else name_or_type

    def _list_for(self, item: CatalogItem) -> List[CatalogItem]:
        if item.value is not None:
            return self._instances
        if item.export_type is not None:
            return self._types
        return self._factories

    @staticmethod
    def _add_item(items: List[CatalogItem], item: CatalogItem) -> None:
        if not any(existing.same_export(item) for existing in items):
            items.append(item)

    @staticmethod
    def _remove_item(items: List[CatalogItem], item: CatalogItem) -> None:
        items[:] = [existing for existing in items if not existing.same_export(item)]

    def _attach_catalog(self, catalog: CompositionCatalog) -> None:
        if not any(existing is catalog for existing in self._catalogs):
            self._catalogs.append(catalog)
            catalog.recompose_requested.subscribe(self._handle_catalog_recompose_requested)

    def _detach_catalog(self, catalog: CompositionCatalog) -> None:
        if any(existing is catalog for existing in self._catalogs):
            self._catalogs[:] = [existing for existing in self._catalogs if existing is not catalog]
            catalog.recompose_requested.unsubscribe(self._handle_catalog_recompose_requested)

    def _attach_creator(self, creator: CompositionCreator) -> None:
        if not any(existing is creator for existing in self._creators):
            self._creators.append(creator)

    def _detach_creator(self, creator: CompositionCreator) -> None:
        self._creators[:] = [existing for existing in self._creators if existing is not creator]

    def _modify(self, change: Callable[[], None]) -> None:
        """Apply a change, rebuild and recompose, then notify listeners."""
        self._ensure_not_disposed()
        with self._lock:
            change()
            self._recomposer.update_composition(True)
        self._raise_composition_changed()

    def _clear_internal(self) -> bool:
        if self._clearing:
            return False
        self._clearing = True
        try:
            for catalog in list(self._catalogs):
                self._detach_catalog(catalog)
            self._instances.clear()
            self._types.clear()
            self._factories.clear()
            self._creators.clear()
            self._recomposer.update_composition(True)
        finally:
            self._clearing = False
        self._log(logging.DEBUG, "Container cleared")
        return True

    def _handle_catalog_recompose_requested(self, sender: Any) -> None:
        if self._disposed:
            return
        with self._lock:
            self._recomposer.update_composition(True)
        self._raise_composition_changed()

    def _handle_parent_composition_changed(self, sender: Any) -> None:
        if self._disposed:
            return
        with self._lock:
            self._recomposer.update_composition(True)
        self._raise_composition_changed()

    def _raise_composition_changed(self) -> None:
        self.composition_changed.fire(self)

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise ContainerDisposedError()

    def _log(self, level: int, message: str, *args: Any) -> None:
        if self._logging_enabled:
            logger.log(level, message, *args)


def _validate_provider(value: Any = None, export_type: Any = None, factory: Any = None) -> None:
    if value is not None:
        if not validate_export_instance(value):
            raise InvalidExportError("instance", f"Cannot export {type(value).__qualname__} instances.")
    elif export_type is not None:
        if not validate_export_type(export_type):
            raise InvalidExportError("export_type", f"Cannot export type {export_type!r}.")
    elif not validate_export_factory(factory):
        raise InvalidExportError("factory", f"Not a factory: {factory!r}.")


def _callable_name(func: Any) -> str:
    module = getattr(func, "__module__", None) or "?"
    qualname = getattr(func, "__qualname__", None) or type(func).__qualname__
    return f"{module}.{qualname}"
