"""Type helpers shared by registration, resolution and import handling.

Export names derived from types, import shapes derived from annotations and
the eligibility rules for exports and imports all live here so that every
layer applies the same rules.
"""

import collections.abc
import inspect
import typing
from typing import Any, Optional, Tuple, Type, Union

from composition_di.domain.enums import ImportKind

_PRIMITIVES: Tuple[Type, ...] = (bool, int, float, complex, str, bytes, bytearray, tuple, frozenset, type(None))

_COLLECTION_ORIGINS = (
    list,
    collections.abc.Sequence,
    collections.abc.Iterable,
    collections.abc.Collection,
)


def name_of_type(type_: Any) -> str:
    """Get the export name used for a type.

    Args:
        type_: A class or a subscripted generic alias.

    Returns:
        ``"<module>.<qualname>"`` for classes; generic aliases append their
        arguments, e.g. ``"app.Repository[builtins.str]"``.

    Example:
        >>> name_of_type(dict)
        'builtins.dict'
    """
    if type_ is None:
        raise ValueError("type_ must not be None")
    origin = typing.get_origin(type_)
    if origin is not None:
        args = typing.get_args(type_)
        return f"{name_of_type(origin)}[{', '.join(name_of_type(arg) for arg in args)}]"
    if isinstance(type_, type):
        return f"{type_.__module__}.{type_.__qualname__}"
    return repr(type_)


def to_export_name(name_or_type: Union[str, Any]) -> str:
    """Normalize a name-or-type argument to an export name."""
    if isinstance(name_or_type, str):
        return name_or_type
    return name_of_type(name_or_type)


def runtime_class(type_: Any) -> Optional[type]:
    """Get the class behind a type or generic alias, or ``None`` if there is none."""
    if isinstance(type_, type):
        return type_
    origin = typing.get_origin(type_)
    if isinstance(origin, type):
        return origin
    return None


def is_open_generic(type_: Any) -> bool:
    """Check whether a type is a generic class with unbound type parameters."""
    return isinstance(type_, type) and bool(getattr(type_, "__parameters__", ()))


def is_bound_generic(type_: Any) -> bool:
    """Check whether a type is a generic alias with concrete arguments."""
    origin = typing.get_origin(type_)
    return isinstance(origin, type) and bool(typing.get_args(type_)) and not getattr(type_, "__parameters__", ())


def generic_definition(type_: Any) -> Optional[type]:
    """Get the open generic class of a bound generic alias."""
    return typing.get_origin(type_) if is_bound_generic(type_) else None


def validate_export_type(type_: Any) -> bool:
    """Check whether a type can be exported as a type export.

    Returns:
        True for concrete, non-primitive classes and for bound generic aliases
        of such classes.
    """
    cls = runtime_class(type_)
    if cls is None:
        return False
    if issubclass(cls, _PRIMITIVES):
        return False
    return not inspect.isabstract(cls)


def validate_export_instance(instance: Any) -> bool:
    """Check whether a value can be exported as an instance export."""
    if instance is None or isinstance(instance, _PRIMITIVES):
        return False
    return validate_export_type(type(instance))


def validate_export_factory(factory: Any) -> bool:
    """Check whether a value can be exported as a factory export."""
    return callable(factory) and not isinstance(factory, type)


def validate_import_type(type_: Any) -> bool:
    """Check whether a type can be the element type of an import."""
    if type_ is Any:
        return True
    cls = runtime_class(type_)
    if cls is None:
        return False
    return not issubclass(cls, _PRIMITIVES)


def is_compatible(instance: Any, type_hint: Any) -> bool:
    """Check whether an instance satisfies a requested type.

    Requests for ``object``, ``Any`` or un-checkable types accept everything.
    """
    cls = runtime_class(type_hint)
    if cls is None or cls is object:
        return True
    try:
        return isinstance(instance, cls)
    except TypeError:
        # Protocols without runtime_checkable cannot be checked
        return True


def is_assignable(provided: Any, requested: Any) -> bool:
    """Check whether a declared return type can satisfy a requested type."""
    if provided is inspect.Signature.empty or provided is Any or provided is None:
        return True
    requested_cls = runtime_class(requested)
    provided_cls = runtime_class(provided)
    if requested_cls is None or requested_cls is object or provided_cls is None:
        return True
    try:
        return issubclass(provided_cls, requested_cls)
    except TypeError:
        return True


def unwrap_optional(type_: Any) -> Any:
    """Turn ``Optional[T]`` into ``T``; other types are returned unchanged."""
    if typing.get_origin(type_) is Union:
        args = [arg for arg in typing.get_args(type_) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return type_


def split_annotated(type_: Any) -> Tuple[Any, Tuple[Any, ...]]:
    """Split ``Annotated[T, ...]`` into ``T`` and its metadata."""
    if typing.get_origin(type_) is typing.Annotated:
        base, *metadata = typing.get_args(type_)
        return base, tuple(metadata)
    return type_, ()


def import_kind_of(type_: Any) -> Tuple[ImportKind, Any]:
    """Derive the import shape and element type from an annotation.

    Args:
        type_: The annotation of an import slot or parameter, without
            ``Annotated`` metadata.

    Returns:
        Tuple of the import kind and the element type that is looked up.

    Example:
        >>> import_kind_of(List[Logger])
        (ImportKind.COLLECTION, Logger)
        >>> import_kind_of(Callable[[], Logger])
        (ImportKind.LAZY_CALLABLE, Logger)
    """
    # Local import keeps the value classes free of typing helpers
    from composition_di.domain.imports import ImportGroup, Lazy

    type_ = unwrap_optional(type_)
    if type_ is ImportGroup:
        return ImportKind.SPECIAL, object

    origin = typing.get_origin(type_)
    args = typing.get_args(type_)

    if origin in _COLLECTION_ORIGINS:
        return ImportKind.COLLECTION, (args[0] if args else object)

    if origin is collections.abc.Callable and len(args) == 2 and args[0] == []:
        return ImportKind.LAZY_CALLABLE, args[1]

    if origin is Lazy:
        return ImportKind.LAZY_VALUE, (args[0] if args else object)

    return ImportKind.SINGLE, type_
