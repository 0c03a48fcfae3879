"""
Application layer - Composition engine.

This layer contains the registry, the instantiation engine, import
resolution and recomposition, orchestrated by the container.
It depends only on the Domain layer.
"""

from .batch import CompositionBatch
from .circular_detector import CircularDependencyDetector
from .container import CompositionContainer
from .extensions import export_to, import_from
from .import_resolver import ImportResolver
from .lazy import LazyInvoker
from .lifetime_manager import LifetimeManager
from .recomposer import Recomposer
from .registry import CompositionRegistry
from .resolver import DependencyResolver

__all__ = [
    "CompositionContainer",
    "CompositionBatch",
    "CompositionRegistry",
    "DependencyResolver",
    "ImportResolver",
    "Recomposer",
    "LifetimeManager",
    "CircularDependencyDetector",
    "LazyInvoker",
    "export_to",
    "import_from",
]
