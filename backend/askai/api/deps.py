"""
Shared dependencies for the API routers.
"""

from fastapi import HTTPException, Request, status

from ..core.container import ChatContainer, Workspace


def get_chat(request: Request) -> ChatContainer:
    """The container built by the application lifespan."""
    return request.app.state.container


def get_workspace(request: Request) -> Workspace:
    """
    Workspace of the signed-in user.

    Raises:
        HTTPException: 401 if nobody is signed in
    """
    workspace = get_chat(request).workspace
    if workspace is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
        )
    return workspace
