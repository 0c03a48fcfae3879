from typing import Any, Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from composition_di.application import CompositionContainer
from composition_di.domain import IContainer, NameOrType

REQUEST_STATE_ATTRIBUTE = "composition_container"


def create_fastapi_dependency(container: IContainer, name_or_type: NameOrType) -> Callable[[], Any]:
    """Create a FastAPI Depends() callable that gets an export from a container.

    The export is looked up on every call, so the endpoint always receives
    the instance of the current composition.

    Args:
        container: The container to get the export from.
        name_or_type: Export name, or a type whose name is used.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> container = CompositionContainer()
        >>> container.add_type(SqlUserRepository, UserRepository)
        >>>
        >>> get_user_repo = create_fastapi_dependency(container, UserRepository)
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_user_repo)):
        ...     return await repo.get_all()
    """

    def dependency() -> Any:
        """Get the export from the container."""
        return container.get_export(name_or_type)

    return dependency


def create_child_dependency(name_or_type: NameOrType) -> Callable[[Request], Any]:
    """Create a FastAPI dependency that gets an export from the request's child container.

    Requires the ChildContainerMiddleware to be installed.

    Args:
        name_or_type: Export name, or a type whose name is used.

    Returns:
        A callable that resolves from the request's child container.

    Example:
        >>> app.add_middleware(ChildContainerMiddleware, container=container)
        >>>
        >>> get_request_context = create_child_dependency(RequestContext)
        >>>
        >>> @app.get("/process")
        >>> async def process_request(ctx: RequestContext = Depends(get_request_context)):
        ...     return {"request_id": ctx.request_id}
    """

    def child_dependency(request: Request) -> Any:
        """Get the export from the request's child container."""
        child: IContainer = getattr(request.state, REQUEST_STATE_ATTRIBUTE, None)
        if child is None:
            raise RuntimeError(
                "Request does not have a composition container. Did you forget to add ChildContainerMiddleware?"
            )
        return child.get_export(name_or_type)

    return child_dependency


class ChildContainerMiddleware(BaseHTTPMiddleware):
    """Middleware that creates a child container for each request.

    Exports added to the child during the request are merged with the
    exports of the application container and disappear when the request
    ends: the child container is disposed after the response.

    The child container is accessible via `request.state.composition_container`.

    Attributes:
        container: The application container.
        configure: Optional callback receiving the request and its child
            container, e.g. to export request data.

    Example:
        >>> container = CompositionContainer()
        >>> container.add_type(DatabaseConnection, DatabaseConnection)
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(
        ...     ChildContainerMiddleware,
        ...     container=container,
        ...     configure=lambda request, child: child.add_instance(RequestContext(request), RequestContext),
        ... )
    """

    def __init__(
        self,
        app: FastAPI,
        container: CompositionContainer,
        configure: Optional[Callable[[Request, CompositionContainer], None]] = None,
    ):
        """Initialize the middleware with the application container.

        Args:
            app: The FastAPI/Starlette application.
            container: The container to create child containers from.
            configure: Optional callback run on every new child container.
        """
        super().__init__(app)
        self.container = container
        self.configure = configure

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Create a child container for the request and execute the endpoint.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        child = self.container.create_child_container()
        setattr(request.state, REQUEST_STATE_ATTRIBUTE, child)

        try:
            if self.configure is not None:
                self.configure(request, child)
            response = await call_next(request)
            return response
        finally:
            # Releases the request's exports and detaches from the application container
            child.dispose()
