"""
FastAPI integration module.

Provides helpers and utilities for integrating composition-di with FastAPI.
"""

from .integration import (
    REQUEST_STATE_ATTRIBUTE,
    ChildContainerMiddleware,
    create_child_dependency,
    create_fastapi_dependency,
)

__all__ = [
    "create_fastapi_dependency",
    "create_child_dependency",
    "ChildContainerMiddleware",
    "REQUEST_STATE_ATTRIBUTE",
]
