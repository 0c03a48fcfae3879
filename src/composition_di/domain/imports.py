"""Value classes handed to import slots and parameters."""

from typing import Any, Callable, Generic, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar

T = TypeVar("T")


class ImportGroup:
    """Multi-value import of everything exported under one name.

    The instances may have unrelated types; use the typed accessors to pick
    what a consumer needs. An ``ImportGroup`` import must always declare an
    explicit import name.

    Attributes:
        instances: The imported instances, in resolution order.

    Example:
        >>> class Shell:
        ...     plugins: ImportGroup = Import("plugins")
        >>> shell.plugins.values(Exporter)
    """

    __slots__ = ("_instances",)

    def __init__(self, instances: Optional[Sequence[Any]] = None) -> None:
        self._instances: Tuple[Any, ...] = tuple(instances) if instances else ()

    @property
    def instances(self) -> Tuple[Any, ...]:
        return self._instances

    def value(self, cls: Type[T]) -> Optional[T]:
        """Get the first instance of the given type, or ``None``."""
        for instance in self._instances:
            if isinstance(instance, cls):
                return instance
        return None

    def values(self, cls: Type[T]) -> Iterator[T]:
        """Iterate over all instances of the given type."""
        for instance in self._instances:
            if isinstance(instance, cls):
                yield instance

    def to_list(self, cls: Type[T]) -> List[T]:
        return list(self.values(cls))

    def to_tuple(self, cls: Type[T]) -> Tuple[T, ...]:
        return tuple(self.values(cls))

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._instances)

    def __repr__(self) -> str:
        return f"ImportGroup({len(self._instances)} instances)"


class Lazy(Generic[T]):
    """Lazily resolved import value.

    Every access of :attr:`value` resolves through the container again, so
    the handle follows recomposition and never hands out a removed export.

    Example:
        >>> class Report:
        ...     formatter: Lazy[Formatter] = Import()
        >>> report.formatter.value.render(data)
    """

    def __init__(self, resolver: Callable[[], T]) -> None:
        self._resolver = resolver
        self._created = False

    @property
    def is_value_created(self) -> bool:
        """Whether the value has been resolved at least once."""
        return self._created

    @property
    def value(self) -> T:
        value = self._resolver()
        self._created = True
        return value

    def __repr__(self) -> str:
        state = "created" if self._created else "not created"
        return f"Lazy({state})"
