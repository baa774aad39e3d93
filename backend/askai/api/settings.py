"""
Settings API endpoints, plus full data export and clearing.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..core.container import ChatContainer, Workspace
from ..services import exporting
from .deps import get_chat, get_workspace

router = APIRouter(prefix="/settings", tags=["settings"])
data_router = APIRouter(tags=["data"])


@router.get("")
async def get_settings(
    workspace: Workspace = Depends(get_workspace),
    chat: ChatContainer = Depends(get_chat),
):
    return {
        "settings": workspace.settings.settings.to_wire(),
        "availableModels": chat.provider.available_models(),
    }


@router.patch("")
async def update_settings(changes: Dict[str, Any], workspace: Workspace = Depends(get_workspace)):
    """Merge changes; keys may be camelCase or snake_case."""
    try:
        updated = await workspace.settings.update(changes)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return updated.to_wire()


@router.delete("")
async def reset_settings(workspace: Workspace = Depends(get_workspace)):
    return (await workspace.settings.reset()).to_wire()


@data_router.get("/export")
async def export_all(workspace: Workspace = Depends(get_workspace)):
    """Every session and the settings, served as a file download."""
    await workspace.sessions.flush()
    document = exporting.export_all(workspace.sessions.sessions, workspace.settings.settings)
    return JSONResponse(
        content=document,
        headers={"Content-Disposition": f'attachment; filename="{exporting.FULL_EXPORT_FILENAME}"'},
    )


@data_router.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
async def clear_all_data(
    chat: ChatContainer = Depends(get_chat),
    workspace: Workspace = Depends(get_workspace),
):
    await chat.clear_all_data()
