from enum import Enum, IntFlag


class Lifetime(str, Enum):
    """Defines whether a type or factory export hands out one instance or many.

    Attributes:
        SHARED: One instance reused by every consumer of the export.
        PRIVATE: A fresh instance for every resolution.
    """

    SHARED = "shared"
    PRIVATE = "private"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_private(cls, private: bool) -> "Lifetime":
        return cls.PRIVATE if private else cls.SHARED


class CompositionFlags(IntFlag):
    """Selects which import slots an import resolution pass visits.

    Attributes:
        NONE: Visit nothing.
        MISSING: Slots whose current value is ``None``.
        RECOMPOSABLE: Slots declared as recomposable.
        COMPOSED: Slots that already hold a value.
        CONSTRUCTING: Every slot; used once right after an export was constructed.
        NORMAL: ``MISSING | RECOMPOSABLE``, the default for recomposition.
        ALL: ``MISSING | RECOMPOSABLE | COMPOSED``.
    """

    NONE = 0
    MISSING = 1
    RECOMPOSABLE = 2
    COMPOSED = 4
    CONSTRUCTING = 8
    NORMAL = MISSING | RECOMPOSABLE
    ALL = MISSING | RECOMPOSABLE | COMPOSED


class ImportKind(str, Enum):
    """Shape of an import as derived from its type annotation."""

    SINGLE = "single"
    COLLECTION = "collection"
    SPECIAL = "special"
    LAZY_CALLABLE = "lazy_callable"
    LAZY_VALUE = "lazy_value"

    def __str__(self) -> str:
        return self.value
