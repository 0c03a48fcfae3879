import inspect
import logging
import typing
from typing import TYPE_CHECKING, Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from composition_di.application.circular_detector import CircularDependencyDetector
from composition_di.application.lifetime_manager import LifetimeManager
from composition_di.application.registry import CompositionRegistry
from composition_di.domain import (
    CompositionFlags,
    ConstructorDeclaration,
    DuplicateDeclarationError,
    FactoryItem,
    IContainer,
    IExporting,
    ImportGroup,
    ImportKind,
    InvalidImportError,
    Lazy,
    ProviderItem,
    TypeItem,
    generic_definition,
    get_constructor_declaration,
    import_kind_of,
    import_name_of,
    is_assignable,
    is_bound_generic,
    is_compatible,
    is_export_creator,
    is_open_generic,
    name_of_type,
    runtime_class,
    split_annotated,
    unwrap_optional,
    validate_import_type,
)

if TYPE_CHECKING:
    from composition_di.application.container import CompositionContainer

logger = logging.getLogger(__name__)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)

# Marker for parameters that can never be supplied
_INELIGIBLE = object()


class Arguments(NamedTuple):
    """Arguments supplied to a constructor, export creator or factory."""

    args: List[Any]
    kwargs: Dict[str, Any]
    complete: bool


class ConstructorCandidate(NamedTuple):
    """A way of constructing a type: ``__init__`` or a declared class method."""

    call: Callable[..., Any]
    signature_target: Callable[..., Any]
    bound: bool
    declaration: Optional[ConstructorDeclaration]


class PendingType(NamedTuple):
    """A type member to resolve; ``type_to_create`` is None to list its bound instances."""

    item: TypeItem
    type_to_create: Any
    open_key: Optional[str]


def _hints(target: Any) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(target, include_extras=True)
    except Exception:
        # Unresolvable forward references fall back to the raw annotations
        return dict(getattr(target, "__annotations__", {}) or {})


def _parameters(target: Any, bound: bool) -> Optional[List[Tuple[inspect.Parameter, Any]]]:
    """Get the injectable parameters of a callable with their annotations.

    Args:
        target: The callable to inspect.
        bound: Whether the first parameter (``self``) is supplied by the call.

    Returns:
        List of (parameter, annotation) pairs, or None if the callable has no
        inspectable signature.
    """
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        return None
    hints = _hints(target)
    parameters = list(signature.parameters.values())
    if bound and parameters:
        parameters = parameters[1:]
    return [(p, hints.get(p.name, p.annotation)) for p in parameters if p.kind not in _VARIADIC]


def _static_members(cls: type) -> List[Tuple[str, Any]]:
    """Get the static and class methods of a class, nearest definition first."""
    members: List[Tuple[str, Any]] = []
    seen = set()
    for klass in cls.__mro__:
        for attribute, member in vars(klass).items():
            if attribute in seen:
                continue
            seen.add(attribute)
            if isinstance(member, (staticmethod, classmethod)):
                members.append((attribute, member))
    return members


def _current_instances(kind: ImportKind, current: Optional[Any]) -> List[Any]:
    """Get the instances an import slot currently holds."""
    if current is None:
        return []
    if kind is ImportKind.SINGLE:
        return [current]
    if isinstance(current, (list, tuple, ImportGroup)):
        return list(current)
    return []


def _take_issued(item: ProviderItem, reusable: List[Any], type_hint: Any) -> Optional[Any]:
    """Take an instance a private member issued before out of the reusable ones."""
    if not item.private:
        return None
    for index, instance in enumerate(reusable):
        if item.has_issued(instance) and is_compatible(instance, type_hint):
            return reusable.pop(index)
    return None


class DependencyResolver:
    """Creates the instances behind export names and computes import values.

    The resolver works on the registry of its container and is only called
    while the container's lock is held.

    Attributes:
        _container: The owning container.
        _registry: The container's registry.
        _lifetime_manager: Applies shared and private lifetimes.
        _circular_detector: Detects constructor cycles.
    """

    def __init__(
        self,
        container: "CompositionContainer",
        registry: CompositionRegistry,
        lifetime_manager: LifetimeManager,
        circular_detector: CircularDependencyDetector,
    ) -> None:
        self._container = container
        self._registry = registry
        self._lifetime_manager = lifetime_manager
        self._circular_detector = circular_detector

    # ------------------------------------------------------------------
    # Import values
    # ------------------------------------------------------------------

    def get_import_value(
        self, name: Optional[str], annotation: Any, current: Optional[Any] = None
    ) -> Tuple[Any, ImportKind]:
        """Compute the value an import of the given shape receives.

        Args:
            name: Explicit import name, or None to use the name of the element type.
            annotation: Annotation of the slot or parameter.
            current: Value the slot holds now. Private exports keep the
                instances of it they issued instead of creating new ones.

        Returns:
            Tuple of the value and the import kind. Single imports yield the
            first instance or None; collection imports a list; special imports
            an ``ImportGroup`` or None when nothing is exported; lazy imports
            a callable or a ``Lazy`` wrapper.

        Raises:
            InvalidImportError: If the element type cannot be imported, or a
                special import has no name.

        Example:
            >>> resolver.get_import_value(None, List[Plugin])
            ([<Plugin A>, <Plugin B>], ImportKind.COLLECTION)
        """
        base, metadata = split_annotated(annotation)
        name = name or import_name_of(metadata)
        kind, element = import_kind_of(base)
        lookup_type = self.lookup_type(kind, element)

        if kind is ImportKind.SPECIAL and not name:
            raise InvalidImportError("ImportGroup imports require an explicit import name.")
        if not validate_import_type(lookup_type):
            raise InvalidImportError(f"Type cannot be imported: {annotation!r}")

        if kind is ImportKind.LAZY_CALLABLE:
            return self._container.lazy_invoker(name, element), kind
        if kind is ImportKind.LAZY_VALUE:
            return Lazy(self._container.lazy_invoker(name, element)), kind

        import_name = name or name_of_type(element)
        instances = self.get_or_create_instances(import_name, element, _current_instances(kind, current))
        if kind is ImportKind.SINGLE:
            return (instances[0] if instances else None), kind
        if kind is ImportKind.COLLECTION:
            return instances, kind
        return (ImportGroup(instances) if instances else None), kind

    @staticmethod
    def lookup_type(kind: ImportKind, element: Any) -> Any:
        """Get the type that is looked up for an import, unwrapping lazy collections."""
        if kind in (ImportKind.LAZY_CALLABLE, ImportKind.LAZY_VALUE):
            inner_kind, inner = import_kind_of(element)
            if inner_kind is ImportKind.COLLECTION:
                return inner
        return element

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def get_or_create_instances(
        self, name: str, type_hint: Any, reuse: Optional[Sequence[Any]] = None
    ) -> List[Any]:
        """Get every instance exported under a name, creating missing ones.

        Parent instances come first, then local instance exports, type
        exports and factory exports in registration order. Types and factories
        without an instance are constructed now and their imports resolved.
        The order does not depend on whether an instance already existed.

        Args:
            name: The export name.
            type_hint: Requested type; instances that are not compatible are
                filtered out. ``object`` accepts everything.
            reuse: Instances a private member may hand out again when it
                issued them before.

        Returns:
            The instances without duplicates.
        """
        instances: List[Any] = []

        def add(instance: Any) -> None:
            if not any(instance is known for known in instances):
                instances.append(instance)

        parent = self._container.parent_container
        if parent is not None and not parent.is_disposed:
            for instance in parent.get_or_create_instances(name, type_hint, reuse):
                add(instance)

        pending_types: List[PendingType] = []
        factory_items: List[FactoryItem] = []

        entry = self._registry.get(name)
        if entry is not None:
            for instance_item in entry.instances:
                add(instance_item.instance)
            for type_item in entry.types:
                self._collect_type(type_item, type_hint, pending_types)
            factory_items.extend(entry.factories)

        # Bound generic requests also see the exports of their open definition
        definition = generic_definition(type_hint)
        if definition is not None:
            definition_entry = self._registry.get(name_of_type(definition))
            if definition_entry is not None and definition_entry is not entry:
                for type_item in definition_entry.types:
                    self._collect_type(type_item, type_hint, pending_types)

        reusable = list(reuse or ())
        ordered: List[Any] = []
        created: List[Any] = []
        for pending in pending_types:
            if pending.type_to_create is None:
                ordered.extend(pending.item.open_instances.values())
                continue
            same_type = list(self._registry.type_items(pending.item.export_type))
            cached = self._lifetime_manager.cached_type_instance(pending.item, pending.open_key, same_type)
            if cached is None:
                cached = _take_issued(pending.item, reusable, type_hint)
            if cached is not None:
                ordered.append(cached)
                continue
            instance = self._construct(name, pending.type_to_create, type_hint)
            if instance is None:
                logger.debug("Could not construct %s for export %s", name_of_type(pending.type_to_create), name)
                continue
            self._lifetime_manager.share_type_instance(pending.item, pending.open_key, instance, same_type)
            ordered.append(instance)
            created.append(instance)

        for factory_item in factory_items:
            same_factory = list(self._registry.factory_items(factory_item.factory))
            cached = self._lifetime_manager.cached_factory_instance(factory_item, same_factory)
            if cached is None:
                cached = _take_issued(factory_item, reusable, type_hint)
            if cached is not None:
                ordered.append(cached)
                continue
            instance = self._invoke_factory(name, factory_item, type_hint)
            if instance is None:
                continue
            self._lifetime_manager.share_factory_instance(factory_item, instance, same_factory)
            ordered.append(instance)
            created.append(instance)

        for instance in created:
            self._container.resolve_imports(instance, CompositionFlags.CONSTRUCTING)
        for instance in created:
            logger.debug("Created instance for export %s: %s", name, name_of_type(type(instance)))
            if isinstance(instance, IExporting):
                instance.added_to_container(name, self._container)
        for instance in ordered:
            add(instance)

        return [instance for instance in instances if is_compatible(instance, type_hint)]

    def _collect_type(self, item: TypeItem, type_hint: Any, pending: List[PendingType]) -> None:
        if any(known.item is item for known in pending):
            return
        if not is_open_generic(item.export_type):
            pending.append(PendingType(item, item.export_type, None))
            return

        # Open generic exports are bound with the requested alias
        if type_hint is item.export_type:
            pending.append(PendingType(item, None, None))
            return
        if not is_bound_generic(type_hint) or typing.get_origin(type_hint) is not item.export_type:
            logger.debug("Cannot bind open generic %s to %r", name_of_type(item.export_type), type_hint)
            return
        pending.append(PendingType(item, type_hint, name_of_type(type_hint)))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _construct(self, name: str, type_to_create: Any, type_hint: Any) -> Optional[Any]:
        """Construct a type: export creator, then constructors, then creators."""
        creators = self._container.creators
        with self._circular_detector.constructing(type_to_create):
            supported_by_creators = any(
                creator.can_create(self._container, name, type_to_create) for creator in creators
            )

            instance = self._invoke_export_creator(name, type_to_create, type_hint)
            if instance is not None:
                return instance

            instance = self._invoke_constructor(name, type_to_create, supported_by_creators)
            if instance is not None:
                return instance

            for creator in creators:
                if creator.can_create(self._container, name, type_to_create):
                    return creator.create(self._container, name, type_to_create)
        return None

    def _invoke_export_creator(self, name: str, type_to_create: Any, type_hint: Any) -> Optional[Any]:
        cls = runtime_class(type_to_create)
        requested = type_hint if type_hint is not None else object
        matches = []
        for attribute, member in _static_members(cls):
            if not is_export_creator(member):
                continue
            method = getattr(cls, attribute)
            if is_assignable(_hints(method).get("return", inspect.Signature.empty), requested):
                matches.append(method)

        if not matches:
            return None
        if len(matches) > 1:
            raise DuplicateDeclarationError(type_to_create, "export creator")

        method = matches[0]
        arguments = self._supply_arguments(method, False, name, type_to_create, untyped_is_container=True)
        if arguments is None:
            return None
        return self._lifetime_manager.invoke(type_to_create, method, arguments.args, arguments.kwargs)

    def _constructor_candidates(self, type_to_create: Any) -> List[ConstructorCandidate]:
        cls = runtime_class(type_to_create)
        candidates = [
            ConstructorCandidate(
                call=type_to_create,
                signature_target=cls.__init__,
                bound=True,
                declaration=get_constructor_declaration(cls.__init__),
            )
        ]
        for attribute, member in _static_members(cls):
            declaration = get_constructor_declaration(member)
            if declaration is None:
                continue
            method = getattr(cls, attribute)
            candidates.append(ConstructorCandidate(method, method, False, declaration))
        return candidates

    def _invoke_constructor(self, name: str, type_to_create: Any, supported_by_creators: bool) -> Optional[Any]:
        """Rank the constructors of a type and invoke the best one.

        A primary constructor wins outright. Otherwise, unless a creator claims
        the type, constructors whose parameters all resolve come first (most
        parameters first), followed by the partially resolvable ones.
        """
        candidates = self._constructor_candidates(type_to_create)
        primary = [c for c in candidates if c.declaration is not None and c.declaration.primary]
        if len(primary) > 1:
            raise DuplicateDeclarationError(type_to_create, "primary constructor")

        chosen: Optional[Tuple[ConstructorCandidate, Arguments]] = None
        if primary:
            arguments = self._supply_arguments(
                primary[0].signature_target, primary[0].bound, name, type_to_create, untyped_is_container=False
            )
            if arguments is not None:
                chosen = (primary[0], arguments)
        elif not supported_by_creators:
            ranked = sorted(
                candidates,
                key=lambda c: len(_parameters(c.signature_target, c.bound) or []),
                reverse=True,
            )
            partial: Optional[Tuple[ConstructorCandidate, Arguments]] = None
            for candidate in ranked:
                arguments = self._supply_arguments(
                    candidate.signature_target, candidate.bound, name, type_to_create, untyped_is_container=False
                )
                if arguments is None:
                    continue
                if arguments.complete:
                    chosen = (candidate, arguments)
                    break
                if partial is None:
                    partial = (candidate, arguments)
            if chosen is None:
                chosen = partial

        if chosen is None:
            return None
        candidate, arguments = chosen
        return self._lifetime_manager.invoke(type_to_create, candidate.call, arguments.args, arguments.kwargs)

    def _invoke_factory(self, name: str, item: FactoryItem, type_hint: Any) -> Optional[Any]:
        requested = type_hint if type_hint is not None else object
        returns = _hints(item.factory).get("return", inspect.Signature.empty)
        if not is_assignable(returns, requested):
            logger.debug("Factory for export %s does not return %r", name, requested)
            return None
        arguments = self._supply_arguments(item.factory, False, name, requested, untyped_is_container=True)
        if arguments is None:
            return None
        return self._lifetime_manager.invoke(item.factory, item.factory, arguments.args, arguments.kwargs)

    def _supply_arguments(
        self,
        target: Callable[..., Any],
        bound: bool,
        name: str,
        type_to_create: Any,
        untyped_is_container: bool,
    ) -> Optional[Arguments]:
        """Supply the parameters of a constructor, export creator or factory.

        Args:
            target: The callable whose signature is inspected.
            bound: Whether the first parameter is supplied by the call itself.
            name: The export name being resolved; ``str`` parameters receive it.
            type_to_create: The type being built; ``type`` parameters receive it.
            untyped_is_container: Whether parameters without annotation receive
                the container (factories) or make the callable ineligible.

        Returns:
            The arguments, or None if some parameter can never be supplied.
        """
        parameters = _parameters(target, bound)
        if parameters is None:
            return Arguments([], {}, True)

        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        complete = True
        for parameter, annotation in parameters:
            has_default = parameter.default is not inspect.Parameter.empty
            value = self._supply_parameter(annotation, name, type_to_create, untyped_is_container)
            if value is _INELIGIBLE:
                if not has_default:
                    return None
                value = parameter.default
            elif value is None:
                if has_default:
                    value = parameter.default
                else:
                    complete = False

            if parameter.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[parameter.name] = value
        return Arguments(args, kwargs, complete)

    def _supply_parameter(self, annotation: Any, name: str, type_to_create: Any, untyped_is_container: bool) -> Any:
        if annotation is inspect.Parameter.empty:
            return self._container if untyped_is_container else _INELIGIBLE

        base, metadata = split_annotated(annotation)
        bare = unwrap_optional(base)

        # Well-known parameters
        if bare is str:
            return name
        if bare is type or typing.get_origin(bare) is type:
            return type_to_create
        cls = runtime_class(bare)
        if cls is not None and issubclass(cls, IContainer) and isinstance(self._container, cls):
            return self._container

        import_name = import_name_of(metadata)
        kind, element = import_kind_of(base)
        if kind is ImportKind.SPECIAL and not import_name:
            return _INELIGIBLE
        if not validate_import_type(self.lookup_type(kind, element)):
            return _INELIGIBLE
        value, _ = self.get_import_value(import_name, annotation)
        return value
