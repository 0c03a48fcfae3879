import logging
from typing import Any, Iterable

from composition_di.domain import (
    CatalogItem,
    CompositionCatalog,
    get_exports_of_type,
    validate_export_instance,
)

logger = logging.getLogger(__name__)


class InstanceCatalog(CompositionCatalog):
    """Catalog exporting pre-built instances under the names declared by their classes.

    Args:
        *instances: The instances to export. None is ignored.
        export_all_types: Also export instances whose class hierarchy declares
            no ``@export``, under the names of the class and its bases.

    Example:
        >>> catalog = InstanceCatalog(settings, clock)
        >>> container.add_catalog(catalog)
    """

    def __init__(self, *instances: Any, export_all_types: bool = True) -> None:
        super().__init__()
        self.export_all_types = export_all_types
        self.add_instances(instances)

    def add_instances(self, instances: Iterable[Any]) -> None:
        """Add instances to the catalog and ask attached containers to recompose."""
        added = False
        for instance in instances:
            if instance is None:
                continue
            if not validate_export_instance(instance):
                logger.warning("%s is not a valid instance for exporting.", type(instance).__qualname__)
                continue
            for name in sorted(get_exports_of_type(type(instance), self.export_all_types)):
                if self.add_item(CatalogItem(name=name, value=instance)):
                    added = True
        if added:
            self.request_recompose()
