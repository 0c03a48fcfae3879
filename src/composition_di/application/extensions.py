from typing import Any, Optional

from composition_di.application.container import CompositionContainer
from composition_di.domain import CompositionArgumentError, CompositionFlags, NameOrType


def export_to(instance: Any, container: CompositionContainer, name: Optional[NameOrType] = None) -> None:
    """Export an instance to a container.

    Args:
        instance: The instance to export.
        container: The container receiving the export.
        name: Export name or type; defaults to the class of the instance.

    Example:
        >>> export_to(settings, container)
        >>> export_to(settings, container, "app.settings")
    """
    if instance is None:
        raise CompositionArgumentError("instance", "Value cannot be None.")
    if container is None:
        raise CompositionArgumentError("container", "Value cannot be None.")
    container.add_instance(instance, type(instance) if name is None else name)


def import_from(obj: Any, container: CompositionContainer, flags: CompositionFlags = CompositionFlags.NORMAL) -> bool:
    """Resolve the import slots of an object from a container.

    Returns:
        Whether any slot changed.
    """
    if container is None:
        raise CompositionArgumentError("container", "Value cannot be None.")
    return container.resolve_imports(obj, flags)
