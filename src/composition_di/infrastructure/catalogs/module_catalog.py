import importlib
import inspect
import logging
from types import ModuleType
from typing import Iterable, List, Union

from composition_di.domain import CompositionArgumentError, validate_export_type
from composition_di.infrastructure.catalogs.type_catalog import TypeCatalog

logger = logging.getLogger(__name__)


class ModuleCatalog(TypeCatalog):
    """Catalog exporting the classes defined in Python modules.

    Only classes defined by the scanned modules themselves are considered;
    classes they merely import are skipped. Without ``export_all_types``
    only classes carrying ``@export`` declarations are exported.

    Args:
        *modules: Modules or dotted module names. Names are imported.
        export_all_types: Also export classes without ``@export`` declarations.

    Example:
        >>> catalog = ModuleCatalog("app.plugins.pdf", "app.plugins.html")
        >>> container.add_catalog(catalog)
    """

    def __init__(self, *modules: Union[str, ModuleType], export_all_types: bool = False) -> None:
        super().__init__(export_all_types=export_all_types)
        self.modules: List[ModuleType] = []
        self.add_modules(modules)

    def add_modules(self, modules: Iterable[Union[str, ModuleType]]) -> None:
        """Scan additional modules and ask attached containers to recompose."""
        added = False
        for module in modules:
            if module is None:
                continue
            loaded = self._load(module)
            if any(loaded is known for known in self.modules):
                continue
            self.modules.append(loaded)
            if self.scan_module(loaded):
                added = True
        if added:
            self.request_recompose()

    def scan_module(self, module: ModuleType) -> bool:
        """Add the classes defined by a module without requesting recomposition.

        Returns:
            Whether any item was added.
        """
        logger.debug("Scanning module: %s", module.__name__)
        added = False
        for _, cls in inspect.getmembers(module, inspect.isclass):
            if cls.__module__ != module.__name__ or not validate_export_type(cls):
                continue
            if self.add_type(cls):
                added = True
        return added

    @staticmethod
    def _load(module: Union[str, ModuleType]) -> ModuleType:
        if isinstance(module, ModuleType):
            return module
        if not isinstance(module, str) or not module:
            raise CompositionArgumentError("modules", f"Not a module or module name: {module!r}")
        return importlib.import_module(module)
