from typing import Any, List, Tuple

from composition_di.domain import (
    CatalogItem,
    CompositionArgumentError,
    CompositionCatalog,
    CompositionCreator,
    CompositionFlags,
    NameOrType,
    to_export_name,
)


class CompositionBatch:
    """Collects changes that a container applies in one composition cycle.

    Adding something removes it from the pending removals and vice versa, so
    only the last request for an element counts.

    Example:
        >>> batch = CompositionBatch()
        >>> batch.add_type(SqlStore, "store")
        >>> batch.add_catalog(plugin_catalog)
        >>> batch.resolve_imports(view_model)
        >>> container.compose(batch)

    Attributes:
        flags: Flags added to ``NORMAL`` for the recomposition of the cycle.
    """

    def __init__(self, flags: CompositionFlags = CompositionFlags.NORMAL) -> None:
        self.flags = flags
        self.items_to_add: List[CatalogItem] = []
        self.items_to_remove: List[CatalogItem] = []
        self.catalogs_to_add: List[CompositionCatalog] = []
        self.catalogs_to_remove: List[CompositionCatalog] = []
        self.creators_to_add: List[CompositionCreator] = []
        self.creators_to_remove: List[CompositionCreator] = []
        self.objects_to_satisfy: List[Tuple[Any, CompositionFlags]] = []

    @staticmethod
    def _matches(existing: Any, element: Any) -> bool:
        if isinstance(existing, CatalogItem) and isinstance(element, CatalogItem):
            return existing.same_export(element)
        return existing is element

    def _move(self, element: Any, target: List[Any], opposite: List[Any]) -> None:
        opposite[:] = [existing for existing in opposite if not self._matches(existing, element)]
        target[:] = [existing for existing in target if not self._matches(existing, element)]
        target.append(element)

    def add_instance(self, instance: Any, name: NameOrType) -> "CompositionBatch":
        self._move(self._item(name, value=instance), self.items_to_add, self.items_to_remove)
        return self

    def remove_instance(self, instance: Any, name: NameOrType) -> "CompositionBatch":
        self._move(self._item(name, value=instance), self.items_to_remove, self.items_to_add)
        return self

    def add_type(self, export_type: Any, name: NameOrType, private: bool = False) -> "CompositionBatch":
        item = self._item(name, export_type=export_type, private=private)
        self._move(item, self.items_to_add, self.items_to_remove)
        return self

    def remove_type(self, export_type: Any, name: NameOrType) -> "CompositionBatch":
        item = self._item(name, export_type=export_type)
        self._move(item, self.items_to_remove, self.items_to_add)
        return self

    def add_factory(self, factory: Any, name: NameOrType, private: bool = False) -> "CompositionBatch":
        self._move(self._item(name, factory=factory, private=private), self.items_to_add, self.items_to_remove)
        return self

    def remove_factory(self, factory: Any, name: NameOrType) -> "CompositionBatch":
        self._move(self._item(name, factory=factory), self.items_to_remove, self.items_to_add)
        return self

    def add_catalog(self, catalog: CompositionCatalog) -> "CompositionBatch":
        self._move(catalog, self.catalogs_to_add, self.catalogs_to_remove)
        return self

    def remove_catalog(self, catalog: CompositionCatalog) -> "CompositionBatch":
        self._move(catalog, self.catalogs_to_remove, self.catalogs_to_add)
        return self

    def add_creator(self, creator: CompositionCreator) -> "CompositionBatch":
        self._move(creator, self.creators_to_add, self.creators_to_remove)
        return self

    def remove_creator(self, creator: CompositionCreator) -> "CompositionBatch":
        self._move(creator, self.creators_to_remove, self.creators_to_add)
        return self

    def recompose(self, flags: CompositionFlags) -> "CompositionBatch":
        """Add flags to the recomposition performed when the batch is applied."""
        self.flags = self.flags | flags
        return self

    def clear(self) -> None:
        """Forget every pending change."""
        for pending in (
            self.items_to_add,
            self.items_to_remove,
            self.catalogs_to_add,
            self.catalogs_to_remove,
            self.creators_to_add,
            self.creators_to_remove,
            self.objects_to_satisfy,
        ):
            pending.clear()
        self.flags = CompositionFlags.NORMAL

    def resolve_imports(self, obj: Any, flags: CompositionFlags = CompositionFlags.NORMAL) -> "CompositionBatch":
        """Resolve the imports of an object at the end of the cycle."""
        if obj is None:
            raise CompositionArgumentError("obj", "Object to satisfy cannot be None.")
        self.objects_to_satisfy.append((obj, flags))
        return self

    @staticmethod
    def _item(name: NameOrType, **fields: Any) -> CatalogItem:
        if name is None or name == "":
            raise CompositionArgumentError("name", "Export name cannot be empty.")
        for key, value in fields.items():
            if key != "private" and value is None:
                raise CompositionArgumentError(key, "Value cannot be None.")
        return CatalogItem(name=to_export_name(name), **fields)
