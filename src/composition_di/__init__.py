"""
composition-di: Composition container with named exports, imports and recomposition.

Public API exports for the composition-di package.
"""

# Application exports
from composition_di.application.batch import CompositionBatch
from composition_di.application.container import CompositionContainer
from composition_di.application.extensions import export_to, import_from

# Domain exports
from composition_di.domain.declarations import (
    Import,
    export,
    export_constructor,
    export_creator,
    get_exports_of_type,
    import_slot,
    is_export_private,
)
from composition_di.domain.enums import CompositionFlags, Lifetime
from composition_di.domain.exceptions import (
    CircularDependencyError,
    CompositionArgumentError,
    CompositionError,
    ConflictingPrivacyError,
    ConstructionError,
    ContainerDisposedError,
    DIException,
    DuplicateDeclarationError,
    InvalidExportError,
    InvalidImportError,
    MissingSetterError,
)
from composition_di.domain.imports import ImportGroup, Lazy
from composition_di.domain.interfaces import (
    CompositionCatalog,
    CompositionCreator,
    IContainer,
    IExporting,
    IImporting,
)
from composition_di.domain.models import CatalogItem, ContainerSettings
from composition_di.domain.types import name_of_type

# Infrastructure exports
from composition_di.infrastructure.catalogs import (
    AggregateCatalog,
    DirectoryCatalog,
    FileCatalog,
    InstanceCatalog,
    ModuleCatalog,
    TypeCatalog,
)

__version__ = "0.1.0"

__all__ = [
    # Container
    "CompositionContainer",
    "CompositionBatch",
    "ContainerSettings",
    "export_to",
    "import_from",
    # Declarations
    "export",
    "export_constructor",
    "export_creator",
    "Import",
    "import_slot",
    "get_exports_of_type",
    "is_export_private",
    "name_of_type",
    # Import values
    "ImportGroup",
    "Lazy",
    # Enums
    "CompositionFlags",
    "Lifetime",
    # Extension points
    "IContainer",
    "IImporting",
    "IExporting",
    "CompositionCatalog",
    "CompositionCreator",
    "CatalogItem",
    # Catalogs
    "InstanceCatalog",
    "TypeCatalog",
    "ModuleCatalog",
    "FileCatalog",
    "DirectoryCatalog",
    "AggregateCatalog",
    # Exceptions
    "DIException",
    "CompositionArgumentError",
    "InvalidExportError",
    "ContainerDisposedError",
    "CompositionError",
    "DuplicateDeclarationError",
    "ConflictingPrivacyError",
    "MissingSetterError",
    "InvalidImportError",
    "ConstructionError",
    "CircularDependencyError",
]
