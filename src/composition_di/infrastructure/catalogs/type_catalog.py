import logging
from typing import Any, Iterable

from composition_di.domain import (
    CatalogItem,
    CompositionCatalog,
    get_exports_of_type,
    is_export_private,
    runtime_class,
    validate_export_type,
)

logger = logging.getLogger(__name__)


class TypeCatalog(CompositionCatalog):
    """Catalog exporting classes under the names declared with ``@export``.

    Args:
        *types: The classes to export. None is ignored.
        export_all_types: Also export classes whose hierarchy declares no
            ``@export``, under the names of the class and its bases.

    Raises:
        ConflictingPrivacyError: If a class hierarchy mixes private and shared exports.

    Example:
        >>> container.add_catalog(TypeCatalog(SqlStore, ReportService))
    """

    def __init__(self, *types: Any, export_all_types: bool = True) -> None:
        super().__init__()
        self.export_all_types = export_all_types
        self.add_types(types)

    def add_types(self, types: Iterable[Any]) -> None:
        """Add classes to the catalog and ask attached containers to recompose."""
        added = False
        for export_type in types:
            if export_type is None:
                continue
            if not validate_export_type(export_type):
                logger.warning("%r is not a valid type for exporting.", export_type)
                continue
            if self.add_type(export_type):
                added = True
        if added:
            self.request_recompose()

    def add_type(self, export_type: Any) -> bool:
        """Add the items of one class without requesting recomposition.

        Returns:
            Whether any item was added.
        """
        cls = runtime_class(export_type)
        private = bool(is_export_private(cls))
        added = False
        for name in sorted(get_exports_of_type(cls, self.export_all_types)):
            if self.add_item(CatalogItem(name=name, export_type=export_type, private=private)):
                added = True
        return added
