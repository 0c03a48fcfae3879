import weakref
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from composition_di.domain.enums import Lifetime


class ContainerSettings(BaseModel):
    """Configuration of a composition container.

    Attributes:
        auto_dispose: Close instances (``close()``) when their export is removed.
        logging_enabled: Emit the container's diagnostic log records.
    """

    model_config = ConfigDict(frozen=True)

    auto_dispose: bool = Field(default=True, description="Close removed exports that provide close().")
    logging_enabled: bool = Field(default=True, description="Emit diagnostic log records.")


class CatalogItem(BaseModel):
    """Value object describing one candidate provider for an export name.

    Exactly one of ``value``, ``export_type`` and ``factory`` is set.

    Attributes:
        name: The export name.
        value: A pre-built instance.
        export_type: A class (or generic alias) to construct.
        factory: A callable producing the instance.
        private: Whether every resolution gets a new instance (types and factories only).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="The export name.")
    value: Optional[Any] = Field(default=None, description="Pre-built instance.")
    export_type: Optional[Any] = Field(default=None, description="Type to construct.")
    factory: Optional[Callable[..., Any]] = Field(default=None, description="Factory callable.")
    private: bool = Field(default=False, description="Whether the export is private.")

    @model_validator(mode="after")
    def _check_single_provider(self) -> "CatalogItem":
        provided = [item for item in (self.value, self.export_type, self.factory) if item is not None]
        if len(provided) != 1:
            raise ValueError("Exactly one of value, export_type or factory must be set.")
        if self.value is not None and self.private:
            raise ValueError("Instance exports cannot be private.")
        return self

    @property
    def lifetime(self) -> Lifetime:
        return Lifetime.from_private(self.private)

    def same_export(self, other: "CatalogItem") -> bool:
        """Check whether two items export the same provider under the same name, whatever their privacy."""
        return (
            self.name == other.name
            and self.value is other.value
            and self.export_type == other.export_type
            and self.factory is other.factory
        )


class ExportDeclaration(BaseModel):
    """Export declared on a class with the ``@export`` decorator."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    private: bool = False
    inherited: bool = True


class ImportDeclaration(BaseModel):
    """Import declared on a slot or parameter."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    recomposable: bool = True


class ConstructorDeclaration(BaseModel):
    """Marks a method as a constructor candidate; ``primary`` candidates win outright."""

    model_config = ConfigDict(frozen=True)

    primary: bool = False


class InstanceItem(BaseModel):
    """Registry member wrapping a pre-built instance."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    instance: Any
    checked: bool = False


class ProviderItem(BaseModel):
    """Registry member that creates instances on demand.

    Instances created for private members are remembered weakly, so that a
    recomposition pass can keep a private value its member already issued
    instead of building a new one. Objects that cannot be weakly referenced
    are not remembered.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    private: bool = False
    checked: bool = False

    _issued: List[Any] = PrivateAttr(default_factory=list)

    def remember_issued(self, instance: Any) -> None:
        try:
            reference = weakref.ref(instance)
        except TypeError:
            return
        self._issued = [ref for ref in self._issued if ref() is not None]
        self._issued.append(reference)

    def has_issued(self, instance: Any) -> bool:
        return any(ref() is instance for ref in self._issued)


class TypeItem(ProviderItem):
    """Registry member wrapping a type export and its shared instances.

    Attributes:
        export_type: The exported class or generic alias.
        private: Whether each resolution creates a new instance.
        closed_instance: The shared instance of a non-generic type.
        open_instances: Shared instances of an open generic type, keyed by
            the export name of the bound alias.
    """

    export_type: Any
    closed_instance: Optional[Any] = None
    open_instances: Dict[str, Any] = Field(default_factory=dict)

    def materialized(self) -> List[Any]:
        instances = [] if self.closed_instance is None else [self.closed_instance]
        instances.extend(self.open_instances.values())
        return instances


class FactoryItem(ProviderItem):
    """Registry member wrapping a factory export and its shared instance."""

    factory: Callable[..., Any]
    instance: Optional[Any] = None


class CompositionEntry(BaseModel):
    """All providers currently backing one export name."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    instances: List[InstanceItem] = Field(default_factory=list)
    types: List[TypeItem] = Field(default_factory=list)
    factories: List[FactoryItem] = Field(default_factory=list)

    def reset_checked(self) -> None:
        for item in [*self.instances, *self.types, *self.factories]:
            item.checked = False

    def is_empty(self) -> bool:
        return not (self.instances or self.types or self.factories)
