import logging
from typing import Any, Callable, Iterator, List, Optional

from composition_di.domain import CatalogItem, CompositionArgumentError, CompositionCatalog

logger = logging.getLogger(__name__)

ExportFilter = Callable[[str, CatalogItem], bool]


class AggregateCatalog(CompositionCatalog):
    """Catalog combining the items of other catalogs.

    Recompose requests of the combined catalogs are forwarded. An optional
    filter decides which items are exposed.

    Args:
        *catalogs: Catalogs to combine.
        export_filter: Predicate receiving the export name and the item;
            items it rejects are left out.

    Example:
        >>> plugins = AggregateCatalog(ModuleCatalog("app.plugins"), TypeCatalog(Fallback))
        >>> container.add_catalog(plugins)
    """

    def __init__(self, *catalogs: CompositionCatalog, export_filter: Optional[ExportFilter] = None) -> None:
        super().__init__()
        self.export_filter = export_filter
        self._catalogs: List[CompositionCatalog] = []
        for catalog in catalogs:
            self.add(catalog)

    def __len__(self) -> int:
        return len(self._catalogs)

    def __iter__(self) -> Iterator[CompositionCatalog]:
        return iter(list(self._catalogs))

    def __contains__(self, catalog: Any) -> bool:
        return any(catalog is existing for existing in self._catalogs)

    def add(self, catalog: CompositionCatalog) -> None:
        if catalog is None:
            raise CompositionArgumentError("catalog", "Value cannot be None.")
        with self.lock:
            if catalog not in self:
                self._catalogs.append(catalog)
                catalog.recompose_requested.subscribe(self._handle_catalog_recompose_requested)
        self.request_recompose()

    def remove(self, catalog: CompositionCatalog) -> bool:
        if catalog is None:
            raise CompositionArgumentError("catalog", "Value cannot be None.")
        with self.lock:
            found = catalog in self
            self._catalogs = [existing for existing in self._catalogs if existing is not catalog]
            catalog.recompose_requested.unsubscribe(self._handle_catalog_recompose_requested)
        self.request_recompose()
        return found

    def clear(self) -> None:
        with self.lock:
            for catalog in self._catalogs:
                catalog.recompose_requested.unsubscribe(self._handle_catalog_recompose_requested)
            self._catalogs = []
        self.request_recompose()

    def update_items(self) -> None:
        with self.lock:
            for catalog in self._catalogs:
                catalog.update_items()
            self.items = {}
            for catalog in self._catalogs:
                for name, items in catalog.snapshot().items():
                    for item in items:
                        if self.export_filter is not None and not self.export_filter(name, item):
                            logger.debug("Export filtered out: %s", name)
                            continue
                        self.add_item(item)

    def _handle_catalog_recompose_requested(self, sender: Any) -> None:
        self.request_recompose()

    def dispose(self) -> None:
        self.clear()
        super().dispose()
