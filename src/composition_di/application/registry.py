"""Application layer - Per-name registry of export providers."""

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Tuple

from composition_di.domain import (
    CatalogItem,
    CompositionEntry,
    FactoryItem,
    IExporting,
    InstanceItem,
    TypeItem,
    name_of_type,
)

if TYPE_CHECKING:
    from composition_di.domain import IContainer

logger = logging.getLogger(__name__)


class CompositionRegistry:
    """Maps export names to the instance, type and factory members backing them.

    The registry is rebuilt with a mark and sweep pass: members still offered
    by some source keep their cached instances, members no longer offered are
    removed (and their instances released), new members start empty.

    Attributes:
        _owner: The container the registry belongs to.
        _entries: Entries by export name.
    """

    def __init__(self, owner: "IContainer") -> None:
        self._owner = owner
        self._entries: Dict[str, CompositionEntry] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str) -> Optional[CompositionEntry]:
        return self._entries.get(name)

    def entries(self) -> List[CompositionEntry]:
        """Get all entries sorted by export name."""
        return [self._entries[name] for name in sorted(self._entries)]

    def type_items(self, export_type: Any) -> Iterator[TypeItem]:
        """Iterate over the type members of every entry backed by a type."""
        for entry in self._entries.values():
            for item in entry.types:
                if item.export_type == export_type:
                    yield item

    def factory_items(self, factory: Any) -> Iterator[FactoryItem]:
        """Iterate over the factory members of every entry backed by a factory."""
        for entry in self._entries.values():
            for item in entry.factories:
                if item.factory is factory:
                    yield item

    def existing_instances(self) -> List[Any]:
        """Get every instance currently held by the registry, without duplicates."""
        instances: List[Any] = []
        for entry in self._entries.values():
            candidates = [item.instance for item in entry.instances]
            for type_item in entry.types:
                candidates.extend(type_item.materialized())
            candidates.extend(item.instance for item in entry.factories if item.instance is not None)
            for candidate in candidates:
                if not any(candidate is known for known in instances):
                    instances.append(candidate)
        return instances

    def rebuild(self, items: Iterable[CatalogItem], release: bool) -> List[Tuple[str, Any]]:
        """Synchronize the registry with the items currently offered.

        Args:
            items: Every item offered by the container and its catalogs.
            release: Whether removed instances are closed.

        Returns:
            The (name, instance) pairs of instance exports that were added.
            Their ``added_to_container`` notification is left to the caller.
        """
        for entry in self._entries.values():
            entry.reset_checked()

        added: List[Tuple[str, Any]] = []
        for item in items:
            entry = self._entries.get(item.name)
            if entry is None:
                entry = CompositionEntry(name=item.name)
                self._entries[item.name] = entry
            if item.value is not None:
                if self._mark_instance(entry, item.value):
                    added.append((item.name, item.value))
            elif item.export_type is not None:
                self._mark_type(entry, item)
            else:
                self._mark_factory(entry, item)

        removed = self._sweep()
        survivors = self.existing_instances()
        for name, instance in removed:
            self._release(name, instance, release, survivors)
            # An instance removed under several names is closed once
            survivors.append(instance)
        return added

    def _mark_instance(self, entry: CompositionEntry, instance: Any) -> bool:
        for item in entry.instances:
            if item.instance is instance:
                item.checked = True
                return False
        entry.instances.append(InstanceItem(instance=instance, checked=True))
        return True

    def _mark_type(self, entry: CompositionEntry, item: CatalogItem) -> None:
        for existing in entry.types:
            if existing.export_type == item.export_type and existing.private == item.private:
                existing.checked = True
                return
        entry.types.append(TypeItem(export_type=item.export_type, private=item.private, checked=True))

    def _mark_factory(self, entry: CompositionEntry, item: CatalogItem) -> None:
        for existing in entry.factories:
            if existing.factory is item.factory and existing.private == item.private:
                existing.checked = True
                return
        entry.factories.append(FactoryItem(factory=item.factory, private=item.private, checked=True))

    def _sweep(self) -> List[Tuple[str, Any]]:
        removed: List[Tuple[str, Any]] = []
        for name in list(self._entries):
            entry = self._entries[name]
            removed.extend((name, item.instance) for item in entry.instances if not item.checked)
            for type_item in entry.types:
                if not type_item.checked:
                    removed.extend((name, instance) for instance in type_item.materialized())
            removed.extend(
                (name, item.instance) for item in entry.factories if not item.checked and item.instance is not None
            )
            entry.instances = [item for item in entry.instances if item.checked]
            entry.types = [item for item in entry.types if item.checked]
            entry.factories = [item for item in entry.factories if item.checked]
            if entry.is_empty():
                del self._entries[name]
                logger.debug("Removed empty composition entry: %s", name)
        return removed

    def _release(self, name: str, instance: Any, release: bool, survivors: List[Any]) -> None:
        if isinstance(instance, IExporting):
            instance.removed_from_container(name, self._owner)
        if not release or instance is self._owner:
            return
        if any(instance is survivor for survivor in survivors):
            return
        close = getattr(instance, "close", None)
        if callable(close):
            logger.debug("Closing removed export %s: %s", name, name_of_type(type(instance)))
            close()
