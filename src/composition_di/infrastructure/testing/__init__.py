"""
Testing utilities module.

Provides helpers and utilities for testing applications using composition-di.
"""

from .utilities import MockScope, OverrideCatalog, TestContainer, create_mock_container

__all__ = [
    "TestContainer",
    "OverrideCatalog",
    "create_mock_container",
    "MockScope",
]
