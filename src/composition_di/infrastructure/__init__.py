"""
Infrastructure layer - Export sources and external integrations.

This layer contains catalogs and integrations with external frameworks and tools.
It depends on both Application and Domain layers.
"""

from . import catalogs, fastapi_integration, testing

__all__ = [
    "catalogs",
    "fastapi_integration",
    "testing",
]
