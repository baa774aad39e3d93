"""
Authentication API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import EmailStr, Field

from ..core.container import ChatContainer
from ..core.exceptions import InvalidCredentialsError, UserExistsError
from ..models import CamelModel, UserCreate
from .deps import get_chat, get_workspace

router = APIRouter(prefix="/auth", tags=["authentication"])


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(CamelModel):
    email: str
    password: str


class ExternalSignInRequest(CamelModel):
    profile: UserCreate
    token: str


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, chat: ChatContainer = Depends(get_chat)):
    """
    Register a new account and sign in with it.

    Raises:
        HTTPException: 409 if the email is already registered
    """
    try:
        workspace = await chat.register(body.name, body.email, body.password)
    except UserExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    return workspace.user.to_wire()


@router.post("/login")
async def login(body: LoginRequest, chat: ChatContainer = Depends(get_chat)):
    """
    Raises:
        HTTPException: 401 for an unknown email or a wrong password
    """
    try:
        workspace = await chat.login(body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    return workspace.user.to_wire()


@router.post("/external")
async def sign_in_external(body: ExternalSignInRequest, chat: ChatContainer = Depends(get_chat)):
    """Sign in with a profile already verified by an external identity provider."""
    workspace = await chat.sign_in_external(body.profile, body.token)
    return workspace.user.to_wire()


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(chat: ChatContainer = Depends(get_chat)):
    await chat.logout()


@router.get("/me")
async def me(workspace=Depends(get_workspace)):
    return workspace.user.to_wire()
