"""Application layer - Constructor cycle detection."""

import threading
from contextlib import contextmanager
from typing import Any, Iterator, List

from composition_di.domain import CircularDependencyError, name_of_type


class CircularDependencyDetector:
    """Detects types whose construction requires constructing themselves again.

    Uses thread-local storage to track the types currently being constructed.
    Cycles through import slots never reach this detector because slots are
    resolved after the instance has been created and cached.

    Attributes:
        _local: Thread-local storage for construction stacks.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _get_stack(self) -> List[Any]:
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def push(self, export_type: Any) -> None:
        """Record that construction of a type started on this thread.

        Raises:
            CircularDependencyError: If the type is already being constructed.
        """
        stack = self._get_stack()
        key = name_of_type(export_type)
        keys = [name_of_type(entry) for entry in stack]
        if key in keys:
            raise CircularDependencyError(stack[keys.index(key) :] + [export_type])
        stack.append(export_type)

    def pop(self) -> None:
        stack = self._get_stack()
        if stack:
            stack.pop()

    @contextmanager
    def constructing(self, export_type: Any) -> Iterator[None]:
        """Context manager wrapping :meth:`push` and :meth:`pop`.

        Example:
            >>> with detector.constructing(ReportService):
            ...     instance = build()
        """
        self.push(export_type)
        try:
            yield
        finally:
            self.pop()

    def depth(self) -> int:
        return len(self._get_stack())

    def clear(self) -> None:
        if hasattr(self._local, "stack"):
            self._local.stack.clear()
