import hashlib
import importlib.util
import logging
import os
import sys
from pathlib import Path
from types import ModuleType
from typing import Union

from composition_di.domain import CompositionArgumentError
from composition_di.infrastructure.catalogs.module_catalog import ModuleCatalog

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def load_module_file(path: Path) -> ModuleType:
    """Import a Python source file as a uniquely named module.

    The module is registered in ``sys.modules`` while it executes and removed
    again if executing it fails.

    Raises:
        ImportError: If no loader exists for the file.
        Exception: Whatever executing the module raises.
    """
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
    module_name = f"_composition_plugin_{path.stem}_{digest}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from file: {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


class FileCatalog(ModuleCatalog):
    """Catalog exporting the classes defined in one Python source file.

    The file is loaded the first time the catalog is asked for its items. A
    file that fails to load is logged, flagged as :attr:`failed` and not
    retried.

    Args:
        path: The source file.
        export_all_types: Also export classes without ``@export`` declarations.

    Raises:
        CompositionArgumentError: If the path is not an existing file.

    Example:
        >>> container.add_catalog(FileCatalog("plugins/pdf_export.py"))
    """

    def __init__(self, path: PathLike, export_all_types: bool = False) -> None:
        super().__init__(export_all_types=export_all_types)
        if path is None:
            raise CompositionArgumentError("path", "Value cannot be None.")
        self.path = Path(path).resolve()
        if not self.path.is_file():
            raise CompositionArgumentError("path", f"Not an existing file: {self.path}")
        self._loaded = False
        self._failed = False

    @property
    def failed(self) -> bool:
        with self.lock:
            return self._failed

    def update_items(self) -> None:
        with self.lock:
            if self._loaded:
                return
            self._loaded = True
            logger.debug("Loading module file: %s", self.path)
            try:
                module = load_module_file(self.path)
            except Exception:
                logger.exception("Failed to load module file: %s", self.path)
                self._failed = True
                return
            self.modules.append(module)
            self.scan_module(module)
