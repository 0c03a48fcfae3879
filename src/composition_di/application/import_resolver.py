import logging
from typing import Any, Dict, List, Optional

from composition_di.application.resolver import DependencyResolver
from composition_di.domain import (
    CompositionFlags,
    IImporting,
    ImportKind,
    ImportSlot,
    MissingSetterError,
    collect_import_slots,
)

logger = logging.getLogger(__name__)


def _same_elements(old: Optional[Any], new: Optional[Any]) -> bool:
    """Compare two collection values element by element, by identity."""
    old_items = list(old) if old is not None else []
    new_items = list(new) if new is not None else []
    if len(old_items) != len(new_items):
        return False
    return all(left is right for left, right in zip(old_items, new_items))


class ImportResolver:
    """Assigns the import slots of objects.

    Which slots are (re)assigned depends on the composition flags:

    * ``CONSTRUCTING`` assigns every slot, no matter its value.
    * ``MISSING`` assigns slots currently holding None.
    * ``RECOMPOSABLE`` assigns recomposable slots.
    * ``COMPOSED`` assigns slots currently holding a value.

    A slot is only written when its value actually changes: identity for
    single imports, element-wise identity for collection and special imports.
    Lazy slots are written once. A private export keeps the instance a slot
    already holds from it, so repeated passes do not churn private values.

    Attributes:
        _resolver: Computes import values.
        _slots: Import slots by class.
    """

    def __init__(self, resolver: DependencyResolver) -> None:
        self._resolver = resolver
        self._slots: Dict[type, List[ImportSlot]] = {}

    def slots_of(self, cls: type) -> List[ImportSlot]:
        """Get the import slots of a class, cached per class."""
        slots = self._slots.get(cls)
        if slots is None:
            slots = collect_import_slots(cls)
            self._slots[cls] = slots
        return slots

    def resolve_imports(self, obj: Any, flags: CompositionFlags) -> bool:
        """Resolve the import slots of an object.

        Args:
            obj: The object whose slots are assigned.
            flags: Which slots are considered.

        Returns:
            Whether any slot changed.

        Raises:
            MissingSetterError: If a slot that has to change cannot be assigned.
        """
        if isinstance(obj, IImporting):
            obj.imports_resolving(flags)

        changed = False
        for slot in self.slots_of(type(obj)):
            if self._resolve_slot(obj, slot, flags):
                changed = True

        if isinstance(obj, IImporting):
            obj.imports_resolved(flags, changed)
        return changed

    def _resolve_slot(self, obj: Any, slot: ImportSlot, flags: CompositionFlags) -> bool:
        try:
            old = getattr(obj, slot.attribute)
        except AttributeError:
            # Property slots whose backing attribute was never set
            old = None

        selected = (
            CompositionFlags.CONSTRUCTING in flags
            or (CompositionFlags.MISSING in flags and old is None)
            or (CompositionFlags.RECOMPOSABLE in flags and slot.declaration.recomposable)
            or (CompositionFlags.COMPOSED in flags and old is not None)
        )
        if not selected:
            return False

        current = None if CompositionFlags.CONSTRUCTING in flags else old
        new, kind = self._resolver.get_import_value(slot.declaration.name, slot.annotation, current)
        if kind in (ImportKind.LAZY_CALLABLE, ImportKind.LAZY_VALUE):
            update = old is None
        elif kind in (ImportKind.COLLECTION, ImportKind.SPECIAL):
            update = not _same_elements(old, new)
        else:
            update = old is not new
        if not update:
            return False

        if not slot.writable:
            raise MissingSetterError(type(obj), slot.attribute)
        setattr(obj, slot.attribute, new)
        logger.debug("Import slot %s.%s updated", type(obj).__qualname__, slot.attribute)
        return True

    def clear(self) -> None:
        self._slots.clear()
