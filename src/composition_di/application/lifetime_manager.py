import logging
from typing import Any, Callable, Dict, Optional, Sequence

from composition_di.domain import (
    ConstructionError,
    DIException,
    FactoryItem,
    Lifetime,
    TypeItem,
)

logger = logging.getLogger(__name__)


class LifetimeManager:
    """Applies shared and private lifetimes to type and factory exports.

    Shared instances are stored on every registry member backed by the same
    class (or the same factory), whatever export name the member belongs to,
    so that one class never forks two shared instances inside a container.
    Private members keep only weak references to what they issued.
    """

    def cached_type_instance(
        self,
        item: TypeItem,
        open_key: Optional[str],
        all_items: Sequence[TypeItem] = (),
    ) -> Optional[Any]:
        """Get the shared instance of a type member.

        A shared member without an instance of its own adopts the one held by
        another shared member of the same type, e.g. when the type was
        exported under a further name after it had been resolved.

        Args:
            item: The type member.
            open_key: Binding signature for open generic members, ``None`` otherwise.
            all_items: Every type member in the container backed by the same type.
        """
        if Lifetime.from_private(item.private) is Lifetime.PRIVATE:
            return None
        cached = self._own_type_instance(item, open_key)
        if cached is not None:
            return cached
        for other in all_items:
            if other is item or other.private or other.export_type != item.export_type:
                continue
            cached = self._own_type_instance(other, open_key)
            if cached is not None:
                self.share_type_instance(item, open_key, cached, [item])
                return cached
        return None

    @staticmethod
    def _own_type_instance(item: TypeItem, open_key: Optional[str]) -> Optional[Any]:
        if open_key is None:
            return item.closed_instance
        return item.open_instances.get(open_key)

    def share_type_instance(
        self,
        item: TypeItem,
        open_key: Optional[str],
        instance: Any,
        all_items: Sequence[TypeItem],
    ) -> None:
        """Store a newly constructed instance according to the member's lifetime.

        Private members only remember that they issued the instance.

        Args:
            item: The member the instance was created for.
            open_key: Binding signature for open generic members.
            instance: The new instance.
            all_items: Every type member in the container backed by the same type.
        """
        if Lifetime.from_private(item.private) is Lifetime.PRIVATE:
            item.remember_issued(instance)
            return
        for other in all_items:
            if other.private or other.export_type != item.export_type:
                continue
            if open_key is None:
                if other.closed_instance is None:
                    other.closed_instance = instance
            elif open_key not in other.open_instances:
                other.open_instances[open_key] = instance

    def cached_factory_instance(self, item: FactoryItem, all_items: Sequence[FactoryItem] = ()) -> Optional[Any]:
        """Get the shared result of a factory member, adopting one held by another member."""
        if item.private:
            return None
        if item.instance is not None:
            return item.instance
        for other in all_items:
            if other is not item and other.factory is item.factory and not other.private and other.instance is not None:
                item.instance = other.instance
                return item.instance
        return None

    def share_factory_instance(self, item: FactoryItem, instance: Any, all_items: Sequence[FactoryItem]) -> None:
        """Store a factory result on every shared member of the same factory."""
        if Lifetime.from_private(item.private) is Lifetime.PRIVATE:
            item.remember_issued(instance)
            return
        for other in all_items:
            if other.factory is item.factory and other.instance is None and not other.private:
                other.instance = instance

    def invoke(
        self,
        target: Any,
        func: Callable[..., Any],
        args: Sequence[Any],
        kwargs: Dict[str, Any],
    ) -> Any:
        """Call a constructor, export creator or factory.

        Args:
            target: The type or factory reported in errors.
            func: The callable to invoke.
            args: Positional arguments.
            kwargs: Keyword arguments.

        Raises:
            ConstructionError: If the callable raises anything but a composition error.
        """
        try:
            return func(*args, **kwargs)
        except DIException:
            raise
        except Exception as e:
            raise ConstructionError(target, f"{type(e).__name__}: {e}") from e
