import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from composition_di.domain.enums import CompositionFlags
from composition_di.domain.events import EventHook
from composition_di.domain.models import CatalogItem

T = TypeVar("T")

NameOrType = Union[str, Type[Any], Any]


class IContainer(ABC):
    """Abstract interface for composition container operations."""

    @abstractmethod
    def add_instance(self, instance: Any, name: NameOrType) -> None:
        """Export a pre-built instance under a name or type."""

    @abstractmethod
    def remove_instance(self, instance: Any, name: NameOrType) -> None:
        """Remove an instance export."""

    @abstractmethod
    def add_type(self, export_type: Any, name: NameOrType, private: bool = False) -> None:
        """Export a type to be constructed on demand."""

    @abstractmethod
    def remove_type(self, export_type: Any, name: NameOrType) -> None:
        """Remove a type export."""

    @abstractmethod
    def add_factory(self, factory: Any, name: NameOrType, private: bool = False) -> None:
        """Export a factory callable."""

    @abstractmethod
    def remove_factory(self, factory: Any, name: NameOrType) -> None:
        """Remove a factory export."""

    @abstractmethod
    def get_export(self, name_or_type: NameOrType) -> Any:
        """Resolve a single export, or ``None`` if nothing is exported.

        Args:
            name_or_type: Export name or type to resolve.
        """

    @abstractmethod
    def get_exports(self, name_or_type: NameOrType) -> List[Any]:
        """Resolve all exports of a name or type.

        Args:
            name_or_type: Export name or type to resolve.
        """

    @abstractmethod
    def has_export(self, name_or_type: NameOrType) -> bool:
        """Check whether anything is exported under a name or type."""

    @abstractmethod
    def resolve_imports(self, obj: Any, flags: CompositionFlags = CompositionFlags.NORMAL) -> bool:
        """Resolve the import slots of an arbitrary object.

        Returns:
            Whether any slot was assigned.
        """

    @abstractmethod
    def recompose(self, flags: CompositionFlags = CompositionFlags.NORMAL) -> bool:
        """Resolve the import slots of every existing export again."""

    @abstractmethod
    def create_child_container(self) -> "IContainer":
        """Create a container that inherits this container's exports."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every export, catalog and creator."""

    @abstractmethod
    def dispose(self) -> None:
        """Clear the container permanently and detach it from its parent."""


class CompositionCatalog:
    """Pluggable source of exports.

    Subclasses fill :attr:`items` (usually in ``__init__`` or
    :meth:`update_items`) and call :meth:`request_recompose` when their
    exports change so that attached containers rebuild.

    Attributes:
        recompose_requested: Event fired with the catalog as sender.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.items: Dict[str, List[CatalogItem]] = {}
        self.recompose_requested = EventHook()

    def snapshot(self) -> Dict[str, List[CatalogItem]]:
        """Get a copy of the current name to items mapping."""
        with self.lock:
            return {name: list(items) for name, items in self.items.items()}

    def update_items(self) -> None:
        """Refresh :attr:`items`; called by the container before every snapshot."""

    def request_recompose(self) -> None:
        """Ask every attached container to rebuild its composition."""
        self.recompose_requested.fire(self)

    def add_item(self, item: CatalogItem) -> bool:
        """Add an item unless the same provider is already listed under its name.

        Returns:
            Whether the item was added.
        """
        with self.lock:
            items = self.items.setdefault(item.name, [])
            for existing in items:
                if existing.same_export(item):
                    return False
            items.append(item)
            return True

    def dispose(self) -> None:
        """Release resources held by the catalog."""
        self.recompose_requested.clear()


class CompositionCreator(ABC):
    """Fallback strategy for types the constructor search cannot build.

    Creators are consulted in attachment order; the first one that can create
    a type is used.
    """

    @abstractmethod
    def can_create(self, container: IContainer, name: str, export_type: Any) -> bool:
        """Check whether this creator can construct a type exported under a name."""

    @abstractmethod
    def create(self, container: IContainer, name: str, export_type: Any) -> Optional[Any]:
        """Construct an instance, or return ``None`` to decline."""


class IImporting(ABC):
    """Capability of objects that want to be notified around import resolution."""

    @abstractmethod
    def imports_resolving(self, flags: CompositionFlags) -> None:
        """Called before the import slots are resolved."""

    @abstractmethod
    def imports_resolved(self, flags: CompositionFlags, changed: bool) -> None:
        """Called after the import slots were resolved.

        Args:
            flags: The flags of the resolution pass.
            changed: Whether any slot was assigned.
        """


class IExporting(ABC):
    """Capability of exports that want to know when they enter or leave a container."""

    @abstractmethod
    def added_to_container(self, name: str, container: IContainer) -> None:
        """Called when the object becomes an export of a container."""

    @abstractmethod
    def removed_from_container(self, name: str, container: IContainer) -> None:
        """Called when the object stops being an export of a container."""
