"""
Session API endpoints - sidebar listing, session CRUD and message edits.
"""

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..core.container import Workspace
from ..core.exceptions import NotFoundError
from ..models import CamelModel, ChatSession, SessionUpdate
from ..services import exporting
from .deps import get_workspace

router = APIRouter(prefix="/sessions", tags=["sessions"])


class CreateSessionRequest(CamelModel):
    title: Optional[str] = None


class EditMessageRequest(CamelModel):
    content: str


def _not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Session not found: {session_id}",
    )


def _require(workspace: Workspace, session_id: str) -> ChatSession:
    session = workspace.sessions.get_session(session_id)
    if session is None:
        raise _not_found(session_id)
    return session


@router.get("")
async def list_sessions(
    query: str = "",
    archived: bool = False,
    period: Literal["all", "today", "week", "month"] = "all",
    workspace: Workspace = Depends(get_workspace),
):
    """Sessions as the sidebar shows them, newest first."""
    manager = workspace.sessions
    return {
        "sessions": [s.to_wire() for s in manager.search(query, archived, period)],
        "activeSessionId": manager.active_session_id,
        "loadError": workspace.sessions_error,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    body: Optional[CreateSessionRequest] = None,
    workspace: Workspace = Depends(get_workspace),
):
    manager = workspace.sessions
    session = manager.create_session(body.title if body else None)
    manager.set_active(session.id)
    return session.to_wire()


@router.post("/import", status_code=status.HTTP_201_CREATED)
async def import_session(document: Dict[str, Any], workspace: Workspace = Depends(get_workspace)):
    """Create a session from an exported conversation document."""
    try:
        messages = exporting.import_messages(document)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    manager = workspace.sessions
    session = manager.create_session(document.get("title"))
    updated = manager.update_session(session.id, SessionUpdate(messages=messages))
    return updated.to_wire()


@router.get("/{session_id}")
async def get_session(session_id: str, workspace: Workspace = Depends(get_workspace)):
    return _require(workspace, session_id).to_wire()


@router.patch("/{session_id}")
async def update_session(
    session_id: str,
    body: SessionUpdate,
    workspace: Workspace = Depends(get_workspace),
):
    _require(workspace, session_id)
    return workspace.sessions.update_session(session_id, body).to_wire()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, workspace: Workspace = Depends(get_workspace)):
    workspace.sessions.delete_session(session_id)


@router.post("/{session_id}/archive")
async def archive_session(session_id: str, workspace: Workspace = Depends(get_workspace)):
    _require(workspace, session_id)
    return workspace.sessions.archive_session(session_id).to_wire()


@router.post("/{session_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_session(session_id: str, workspace: Workspace = Depends(get_workspace)):
    try:
        return workspace.sessions.duplicate_session(session_id).to_wire()
    except NotFoundError:
        raise _not_found(session_id)


@router.post("/{session_id}/activate")
async def activate_session(session_id: str, workspace: Workspace = Depends(get_workspace)):
    try:
        return workspace.sessions.set_active(session_id).to_wire()
    except NotFoundError:
        raise _not_found(session_id)


@router.get("/{session_id}/export")
async def export_session(session_id: str, workspace: Workspace = Depends(get_workspace)):
    """Conversation document, served as a file download."""
    session = _require(workspace, session_id)
    filename = exporting.export_filename(session.title)
    return JSONResponse(
        content=exporting.export_session(session),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.patch("/{session_id}/messages/{message_id}")
async def edit_message(
    session_id: str,
    message_id: str,
    body: EditMessageRequest,
    workspace: Workspace = Depends(get_workspace),
):
    _require(workspace, session_id)
    message = workspace.sessions.edit_message(session_id, message_id, body.content)
    if message is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Message not found: {message_id}",
        )
    return message.to_wire()
