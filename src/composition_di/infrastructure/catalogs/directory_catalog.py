import logging
from pathlib import Path
from typing import List, Optional, Set

from composition_di.domain import CompositionArgumentError
from composition_di.infrastructure.catalogs.file_catalog import PathLike, load_module_file
from composition_di.infrastructure.catalogs.module_catalog import ModuleCatalog

logger = logging.getLogger(__name__)

DEFAULT_FILE_PATTERN = "*.py"


class DirectoryCatalog(ModuleCatalog):
    """Catalog exporting the classes defined in the Python files of a directory.

    Every time the catalog is asked for its items, files matching the pattern
    that were neither loaded nor failed before are loaded. Files that were
    already loaded are not reloaded, failed files are not retried. Call
    :meth:`reload` after dropping new files into the directory.

    Args:
        directory: The directory to scan.
        export_all_types: Also export classes without ``@export`` declarations.
        file_pattern: Glob pattern of the files to load.
        recursive: Also scan subdirectories.

    Raises:
        CompositionArgumentError: If the directory does not exist or the
            pattern is empty.

    Example:
        >>> plugins = DirectoryCatalog("plugins", recursive=True)
        >>> container.add_catalog(plugins)
        >>> plugins.get_failed_files()
        []
    """

    def __init__(
        self,
        directory: PathLike,
        export_all_types: bool = False,
        file_pattern: Optional[str] = None,
        recursive: bool = False,
    ) -> None:
        super().__init__(export_all_types=export_all_types)
        if directory is None:
            raise CompositionArgumentError("directory", "Value cannot be None.")
        self.directory = Path(directory).resolve()
        if not self.directory.is_dir():
            raise CompositionArgumentError("directory", f"Not an existing directory: {self.directory}")
        if file_pattern is not None and not file_pattern.strip():
            raise CompositionArgumentError("file_pattern", "The string argument cannot be empty.")
        self.file_pattern = file_pattern or DEFAULT_FILE_PATTERN
        self.recursive = recursive
        self._loaded_files: Set[Path] = set()
        self._failed_files: Set[Path] = set()

    @property
    def failed(self) -> bool:
        with self.lock:
            return bool(self._failed_files)

    def get_loaded_files(self) -> List[Path]:
        with self.lock:
            return sorted(self._loaded_files)

    def get_failed_files(self) -> List[Path]:
        with self.lock:
            return sorted(self._failed_files)

    def reload(self) -> None:
        """Ask attached containers to recompose, which loads new files."""
        self.request_recompose()

    def update_items(self) -> None:
        with self.lock:
            scan = self.directory.rglob if self.recursive else self.directory.glob
            files = scan(self.file_pattern)
            for path in sorted(p.resolve() for p in files if p.is_file()):
                if path in self._loaded_files or path in self._failed_files:
                    continue
                logger.debug("Loading module file: %s", path)
                try:
                    module = load_module_file(path)
                except Exception:
                    logger.exception("Failed to load module file: %s", path)
                    self._failed_files.add(path)
                    continue
                self.modules.append(module)
                self.scan_module(module)
                self._loaded_files.add(path)
