"""
Chat API endpoints - send a message or regenerate a reply.

Completion failures never surface as HTTP errors: they come back as the
assistant message text.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.container import Workspace
from ..core.exceptions import NotFoundError
from ..models import Attachment, CamelModel
from .deps import get_workspace

router = APIRouter(prefix="/chat", tags=["chat"])


class SendMessageRequest(CamelModel):
    content: str
    attachments: Optional[List[Attachment]] = None
    session_id: Optional[str] = None


def _reject_if_busy(workspace: Workspace, session_id: Optional[str]) -> None:
    if workspace.flow.is_busy(session_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A reply is already being generated for this session",
        )


def _result(workspace: Workspace, message, session_id: Optional[str]) -> dict:
    """The reply with the session it belongs to, not whichever session is active now."""
    manager = workspace.sessions
    session = manager.get_session(session_id) if session_id else None
    if session is None and message is not None:
        # send_message opened a new session
        session = manager.session_for_message(message.id)
    return {
        "message": message.to_wire() if message else None,
        "session": session.to_wire() if session else None,
    }


@router.post("/send")
async def send_message(body: SendMessageRequest, workspace: Workspace = Depends(get_workspace)):
    """
    Send a message to the active session, or to `sessionId` when given.

    Returns the assistant message (null for blank content) and the session.
    """
    if body.session_id:
        try:
            workspace.sessions.set_active(body.session_id)
        except NotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    session_id = workspace.sessions.active_session_id
    _reject_if_busy(workspace, session_id)
    message = await workspace.flow.send_message(body.content, body.attachments)
    return _result(workspace, message, session_id)


@router.post("/regenerate/{message_id}")
async def regenerate(message_id: str, workspace: Workspace = Depends(get_workspace)):
    """Regenerate an assistant message of the active session."""
    session_id = workspace.sessions.active_session_id
    _reject_if_busy(workspace, session_id)
    message = await workspace.flow.regenerate(message_id)
    return _result(workspace, message, session_id)
