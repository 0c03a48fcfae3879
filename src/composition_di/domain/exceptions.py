from typing import Any, List, Optional


class DIException(Exception):
    """Base exception for composition-related errors."""


class CompositionArgumentError(DIException, ValueError):
    """Raised for invalid arguments passed to the container or a batch.

    The call that raised this error did not change any container state.

    Attributes:
        argument: Name of the offending argument.
        reason: Optional reason for the failure.
    """

    def __init__(self, argument: str, reason: Optional[str] = None) -> None:
        self.argument = argument
        self.reason = reason
        message = f"Invalid argument: {argument}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class InvalidExportError(CompositionArgumentError):
    """Raised when a value, type or factory cannot be used as an export.

    This occurs when:
    - An instance is a primitive value (int, str, tuple, ...).
    - A type is abstract or not a class.
    - A factory is not callable.
    """


class ContainerDisposedError(DIException):
    """Raised when a disposed container is used again."""

    def __init__(self) -> None:
        super().__init__("The composition container has been disposed.")


class CompositionError(DIException):
    """Raised for conflicting composition metadata.

    After a composition error the state of the container is undefined and
    must not be relied upon.
    """


class DuplicateDeclarationError(CompositionError):
    """Raised when a type declares more than one primary constructor or export creator.

    Attributes:
        type_: The offending type.
        declaration: The kind of declaration that was duplicated.
    """

    def __init__(self, type_: Any, declaration: str) -> None:
        self.type_ = type_
        self.declaration = declaration
        super().__init__(f"Too many {declaration}s defined for type: {_type_name(type_)}")


class ConflictingPrivacyError(CompositionError):
    """Raised when the exports in a type's hierarchy mix private and shared declarations."""

    def __init__(self, type_: Any) -> None:
        self.type_ = type_
        super().__init__(
            f"Conflicting private exports defined for {_type_name(type_)}. "
            "All exports in a type's hierarchy must be either private or shared."
        )


class MissingSetterError(CompositionError):
    """Raised when an import slot needs a new value but has no setter.

    Attributes:
        type_: The type declaring the slot.
        slot: The name of the slot.
    """

    def __init__(self, type_: Any, slot: str) -> None:
        self.type_ = type_
        self.slot = slot
        super().__init__(
            f"Cannot set value for import because the setter is missing: {_type_name(type_)}.{slot}"
        )


class InvalidImportError(CompositionError):
    """Raised when an import declaration cannot be resolved at all.

    This occurs when:
    - An ``ImportGroup`` import does not specify a name.
    - The import type is not a class or generic alias.
    - A slot has no type annotation.
    """


class ConstructionError(CompositionError):
    """Raised when a constructor, export creator or factory raises.

    Attributes:
        type_: The type or factory being invoked.
        reason: Description of the underlying failure.
    """

    def __init__(self, type_: Any, reason: str) -> None:
        self.type_ = type_
        self.reason = reason
        super().__init__(f"Failed to create instance for {_type_name(type_)}. Reason: {reason}")


class CircularDependencyError(CompositionError):
    """Raised when constructing a type requires constructing the same type again.

    Cycles through import slots are legal because slots are assigned after the
    instance exists; only constructor-level cycles are errors.

    Attributes:
        dependency_chain: List of types involved in the circular dependency.
    """

    def __init__(self, dependency_chain: List[Any]) -> None:
        self.dependency_chain = dependency_chain
        message = f"Circular dependency detected: {' -> '.join([_type_name(cls) for cls in dependency_chain])}"
        super().__init__(message)


def _type_name(type_: Any) -> str:
    return getattr(type_, "__qualname__", None) or getattr(type_, "__name__", None) or repr(type_)
