"""
Domain layer - Core composition model.

This layer contains the export and import model of the composition engine:
declarations, registry members, type rules and the extension interfaces.
It has no dependencies on other layers.
"""

from .declarations import (
    Import,
    ImportSlot,
    collect_import_slots,
    export,
    export_constructor,
    export_creator,
    get_constructor_declaration,
    get_exports_of_type,
    import_name_of,
    import_slot,
    is_export_creator,
    is_export_private,
)
from .enums import CompositionFlags, ImportKind, Lifetime
from .events import EventHook
from .exceptions import (
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
from .imports import ImportGroup, Lazy
from .interfaces import (
    CompositionCatalog,
    CompositionCreator,
    IContainer,
    IExporting,
    IImporting,
    NameOrType,
)
from .models import (
    CatalogItem,
    CompositionEntry,
    ConstructorDeclaration,
    ContainerSettings,
    ExportDeclaration,
    FactoryItem,
    ImportDeclaration,
    InstanceItem,
    ProviderItem,
    TypeItem,
)
from .types import (
    generic_definition,
    import_kind_of,
    is_assignable,
    is_bound_generic,
    is_compatible,
    is_open_generic,
    name_of_type,
    runtime_class,
    split_annotated,
    to_export_name,
    unwrap_optional,
    validate_export_factory,
    validate_export_instance,
    validate_export_type,
    validate_import_type,
)

__all__ = [
    # Enums
    "Lifetime",
    "CompositionFlags",
    "ImportKind",
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
    # Interfaces
    "IContainer",
    "IImporting",
    "IExporting",
    "CompositionCatalog",
    "CompositionCreator",
    "NameOrType",
    # Models
    "ContainerSettings",
    "CatalogItem",
    "ExportDeclaration",
    "ImportDeclaration",
    "ConstructorDeclaration",
    "InstanceItem",
    "ProviderItem",
    "TypeItem",
    "FactoryItem",
    "CompositionEntry",
    "ImportSlot",
    # Declarations
    "export",
    "export_constructor",
    "export_creator",
    "get_constructor_declaration",
    "is_export_creator",
    "get_exports_of_type",
    "is_export_private",
    "Import",
    "import_slot",
    "import_name_of",
    "collect_import_slots",
    # Import values
    "ImportGroup",
    "Lazy",
    "EventHook",
    # Type rules
    "name_of_type",
    "to_export_name",
    "runtime_class",
    "is_open_generic",
    "is_bound_generic",
    "generic_definition",
    "validate_export_type",
    "validate_export_instance",
    "validate_export_factory",
    "validate_import_type",
    "is_compatible",
    "is_assignable",
    "unwrap_optional",
    "split_annotated",
    "import_kind_of",
]
