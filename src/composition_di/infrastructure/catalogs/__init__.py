"""
Catalogs module.

Provides the sources of exports that can be attached to a container.
"""

from .aggregate_catalog import AggregateCatalog
from .directory_catalog import DirectoryCatalog
from .file_catalog import FileCatalog
from .instance_catalog import InstanceCatalog
from .module_catalog import ModuleCatalog
from .type_catalog import TypeCatalog

__all__ = [
    "InstanceCatalog",
    "TypeCatalog",
    "ModuleCatalog",
    "FileCatalog",
    "DirectoryCatalog",
    "AggregateCatalog",
]
