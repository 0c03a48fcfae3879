import logging
from typing import TYPE_CHECKING, List

from composition_di.application.import_resolver import ImportResolver
from composition_di.application.registry import CompositionRegistry
from composition_di.domain import CatalogItem, CompositionFlags, IExporting, InvalidExportError

if TYPE_CHECKING:
    from composition_di.application.container import CompositionContainer

logger = logging.getLogger(__name__)


class Recomposer:
    """Rebuilds the registry of a container and refreshes existing instances.

    Attributes:
        _container: The owning container.
        _registry: The container's registry.
        _import_resolver: Assigns import slots.
    """

    def __init__(
        self,
        container: "CompositionContainer",
        registry: CompositionRegistry,
        import_resolver: ImportResolver,
    ) -> None:
        self._container = container
        self._registry = registry
        self._import_resolver = import_resolver

    def gather_items(self) -> List[CatalogItem]:
        """Collect the items of the container and of every attached catalog.

        Items that no longer describe a valid export are skipped with a warning.
        """
        items: List[CatalogItem] = list(self._container.direct_items())
        for catalog in self._container.catalogs:
            catalog.update_items()
            for catalog_items in catalog.snapshot().values():
                items.extend(catalog_items)

        valid: List[CatalogItem] = []
        for item in items:
            try:
                self._container.validate_item(item)
            except InvalidExportError as e:
                logger.warning("Skipping invalid export %s: %s", item.name, e)
                continue
            valid.append(item)
        return valid

    def update_composition(self, recompose: bool) -> None:
        """Rebuild the registry from the current items.

        Args:
            recompose: Whether existing instances are recomposed afterwards.
        """
        added = self._registry.rebuild(self.gather_items(), self._container.auto_dispose)
        for name, instance in added:
            if isinstance(instance, IExporting):
                instance.added_to_container(name, self._container)
        logger.debug("Composition updated: %d export names", len(self._registry))
        if recompose:
            self.recompose(CompositionFlags.NORMAL)

    def recompose(self, flags: CompositionFlags) -> bool:
        """Resolve the imports of the parent's and of every existing instance.

        Returns:
            Whether any import slot changed.
        """
        changed = False
        parent = self._container.parent_container
        if parent is not None and not parent.is_disposed and parent.recompose(flags):
            changed = True
        for instance in self._registry.existing_instances():
            if self._import_resolver.resolve_imports(instance, flags):
                changed = True
        return changed
