"""Declarative export and import metadata.

Classes declare their exports with ``@export``, their constructor preferences
with ``@export_constructor`` / ``@export_creator`` and their dependencies with
``Import`` slots or ``@import_slot`` properties.
"""

import inspect
import typing
from abc import ABC
from typing import Any, Callable, Dict, List, Optional, Set, TypeVar, Union

from pydantic import BaseModel, ConfigDict

from composition_di.domain.exceptions import ConflictingPrivacyError, InvalidImportError
from composition_di.domain.models import ConstructorDeclaration, ExportDeclaration, ImportDeclaration
from composition_di.domain.types import name_of_type, to_export_name

C = TypeVar("C", bound=type)
F = TypeVar("F", bound=Callable[..., Any])

EXPORTS_ATTRIBUTE = "__composition_exports__"
CONSTRUCTOR_ATTRIBUTE = "__composition_constructor__"
CREATOR_ATTRIBUTE = "__composition_creator__"
IMPORT_ATTRIBUTE = "__composition_import__"

_IGNORED_BASES = (object, ABC, typing.Generic)


def export(
    name_or_type: Optional[Union[str, type]] = None,
    *,
    private: bool = False,
    inherited: bool = True,
) -> Callable[[C], C]:
    """Declare a class as an export.

    The decorator can be applied several times to export a class under
    several names.

    Args:
        name_or_type: Export name, or a type whose name is used. Defaults to
            the name of the decorated class.
        private: Whether every resolution gets a new instance.
        inherited: Whether subclasses are exported under this name too.

    Example:
        >>> @export(IRepository)
        ... @export(private=True)
        ... class SqlRepository(IRepository):
        ...     pass
    """
    name = None if name_or_type is None else to_export_name(name_or_type)
    declaration = ExportDeclaration(name=name, private=private, inherited=inherited)

    def decorator(cls: C) -> C:
        declarations = list(cls.__dict__.get(EXPORTS_ATTRIBUTE, ()))
        declarations.append(declaration)
        setattr(cls, EXPORTS_ATTRIBUTE, tuple(declarations))
        return cls

    return decorator


def _mark(target: Any, attribute: str, value: BaseModel) -> Any:
    setattr(getattr(target, "__func__", target), attribute, value)
    return target


def export_constructor(func: Optional[F] = None, *, primary: bool = False) -> Any:
    """Mark ``__init__`` or a classmethod as a constructor candidate.

    ``__init__`` is always a candidate; marking it is only needed to make it
    primary. A primary candidate wins over every other candidate.

    Example:
        >>> class Client:
        ...     @export_constructor(primary=True)
        ...     def __init__(self, settings: Settings):
        ...         self.settings = settings
        ...
        ...     @classmethod
        ...     @export_constructor
        ...     def with_defaults(cls) -> "Client":
        ...         return cls(Settings())
    """
    declaration = ConstructorDeclaration(primary=primary)
    if func is not None:
        return _mark(func, CONSTRUCTOR_ATTRIBUTE, declaration)
    return lambda target: _mark(target, CONSTRUCTOR_ATTRIBUTE, declaration)


def export_creator(func: F) -> F:
    """Mark a static or class method as the export creator of its class.

    The creator is invoked before any constructor; returning ``None`` falls
    back to constructor selection.
    """
    return _mark(func, CREATOR_ATTRIBUTE, ConstructorDeclaration(primary=True))


def get_constructor_declaration(member: Any) -> Optional[ConstructorDeclaration]:
    return getattr(getattr(member, "__func__", member), CONSTRUCTOR_ATTRIBUTE, None)


def is_export_creator(member: Any) -> bool:
    return getattr(getattr(member, "__func__", member), CREATOR_ATTRIBUTE, None) is not None


def _own_declarations(cls: type) -> tuple:
    return cls.__dict__.get(EXPORTS_ATTRIBUTE, ())


def _bases(cls: type) -> List[type]:
    return [base for base in cls.__mro__[1:] if base not in _IGNORED_BASES and base is not typing.Protocol]


def get_exports_of_type(cls: type, include_without_declaration: bool) -> Set[str]:
    """Get every export name a class is exported under.

    Args:
        cls: The class to inspect.
        include_without_declaration: Also export the class and its bases
            under their own names when they carry no ``@export`` declaration.

    Returns:
        The set of export names.
    """
    exports: Set[str] = set()
    _collect_exports(cls, include_without_declaration, True, exports)
    for base in _bases(cls):
        _collect_exports(base, include_without_declaration, False, exports)
    return exports


def _collect_exports(cls: type, include_without_declaration: bool, is_self: bool, exports: Set[str]) -> None:
    declarations = _own_declarations(cls)
    if declarations:
        for declaration in declarations:
            if declaration.inherited or is_self:
                exports.add(declaration.name or name_of_type(cls))
    elif include_without_declaration:
        exports.add(name_of_type(cls))


def is_export_private(cls: type) -> Optional[bool]:
    """Determine whether the exports of a class are private.

    Returns:
        None if the class hierarchy declares no exports, otherwise whether
        they are private.

    Raises:
        ConflictingPrivacyError: If the hierarchy mixes private and shared exports.
    """
    privates: Set[bool] = set()
    for declaration in _own_declarations(cls):
        privates.add(declaration.private)
    for base in _bases(cls):
        for declaration in _own_declarations(base):
            if declaration.inherited:
                privates.add(declaration.private)
    if not privates:
        return None
    if len(privates) > 1:
        raise ConflictingPrivacyError(cls)
    return privates.pop()


class Import:
    """Declares an import slot on a class, or an import name for a parameter.

    As a class attribute the instance acts as a descriptor storing the
    imported value; the annotation of the attribute selects the import shape.
    Inside ``Annotated`` it only overrides the import name of a constructor,
    creator or factory parameter.

    Args:
        name: Import name, or a type whose name is used. Defaults to the name
            of the annotated element type.
        recomposable: Whether recomposition may replace the value.

    Example:
        >>> class Report:
        ...     formatter: Formatter = Import()
        ...     plugins: List[Plugin] = Import("report.plugins")
        ...
        ...     def __init__(self, store: Annotated[Store, Import("archive")]):
        ...         self.store = store
    """

    def __init__(self, name: Optional[Union[str, type]] = None, *, recomposable: bool = True) -> None:
        self.declaration = ImportDeclaration(
            name=None if name is None else to_export_name(name),
            recomposable=recomposable,
        )
        self.attribute: Optional[str] = None

    @property
    def name(self) -> Optional[str]:
        return self.declaration.name

    @property
    def recomposable(self) -> bool:
        return self.declaration.recomposable

    def __set_name__(self, owner: type, name: str) -> None:
        self.attribute = name

    def __get__(self, obj: Any, owner: Optional[type] = None) -> Any:
        if obj is None:
            return self
        return obj.__dict__.get(self.attribute)

    def __set__(self, obj: Any, value: Any) -> None:
        obj.__dict__[self.attribute] = value

    def __repr__(self) -> str:
        return f"Import(name={self.name!r}, recomposable={self.recomposable})"


def import_slot(name: Optional[Union[str, type]] = None, *, recomposable: bool = True) -> Callable[[F], F]:
    """Declare a property getter as an import slot.

    The property needs a setter; a slot without one fails with
    ``MissingSetterError`` as soon as it has to be assigned.

    Example:
        >>> class Shell:
        ...     @property
        ...     @import_slot("shell.plugins")
        ...     def plugins(self) -> ImportGroup:
        ...         return self._plugins
        ...
        ...     @plugins.setter
        ...     def plugins(self, value: ImportGroup) -> None:
        ...         self._plugins = value
    """
    declaration = ImportDeclaration(name=None if name is None else to_export_name(name), recomposable=recomposable)

    def decorator(func: F) -> F:
        setattr(func, IMPORT_ATTRIBUTE, declaration)
        return func

    return decorator


def import_name_of(metadata: tuple) -> Optional[str]:
    """Get the import name from ``Annotated`` metadata, if any."""
    for item in metadata:
        if isinstance(item, Import) and item.name:
            return item.name
        if isinstance(item, ImportDeclaration) and item.name:
            return item.name
    return None


class ImportSlot(BaseModel):
    """A resolved import slot of a class.

    Attributes:
        attribute: Attribute name on the instance.
        declaration: The import declaration.
        annotation: Type annotation of the slot (``Annotated`` stripped).
        writable: Whether the slot can be assigned.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    attribute: str
    declaration: ImportDeclaration
    annotation: Any
    writable: bool


def _type_hints(target: Any) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(target, include_extras=True)
    except (NameError, TypeError):
        return dict(getattr(target, "__annotations__", {}))


def collect_import_slots(cls: type) -> List[ImportSlot]:
    """Collect every import slot declared on a class and its bases.

    Raises:
        InvalidImportError: If a slot has no type annotation.
    """
    slots: List[ImportSlot] = []
    seen: Set[str] = set()
    class_hints = _type_hints(cls)
    for klass in cls.__mro__:
        for attribute, member in klass.__dict__.items():
            if attribute in seen:
                continue
            if isinstance(member, Import):
                seen.add(attribute)
                if attribute not in class_hints:
                    raise InvalidImportError(f"Import slot has no type annotation: {cls.__qualname__}.{attribute}")
                slots.append(
                    ImportSlot(
                        attribute=attribute,
                        declaration=member.declaration,
                        annotation=class_hints[attribute],
                        writable=True,
                    )
                )
            elif isinstance(member, property) and member.fget is not None:
                declaration = getattr(member.fget, IMPORT_ATTRIBUTE, None)
                if declaration is None:
                    continue
                seen.add(attribute)
                annotation = _type_hints(member.fget).get("return", inspect.Signature.empty)
                if annotation is inspect.Signature.empty:
                    raise InvalidImportError(f"Import slot has no type annotation: {cls.__qualname__}.{attribute}")
                slots.append(
                    ImportSlot(
                        attribute=attribute,
                        declaration=declaration,
                        annotation=annotation,
                        writable=member.fset is not None,
                    )
                )
            else:
                seen.add(attribute)
    return slots
