from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from composition_di.application.container import CompositionContainer


class LazyInvoker:
    """Callable that resolves an import through its container on every call.

    One invoker exists per ``(import name, import type)`` and container; the
    container memoises them so repeated lazy imports share the same callable.

    Attributes:
        name: Explicit import name, or ``None`` to derive it from the type.
        annotation: The annotation resolved on each call, e.g. ``Logger`` or
            ``List[Plugin]``.
    """

    def __init__(self, container: "CompositionContainer", name: Optional[str], annotation: Any) -> None:
        self._container = container
        self.name = name
        self.annotation = annotation

    def __call__(self) -> Any:
        return self._container.resolve(self.annotation, self.name)

    def __repr__(self) -> str:
        return f"LazyInvoker(name={self.name!r}, annotation={self.annotation!r})"
