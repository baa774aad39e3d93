"""
User Model - Defines the user data structure.
"""

from typing import Optional

from pydantic import EmailStr, Field

from .base import CamelModel


class User(CamelModel):
    """Identity record. Wire keys for the name parts stay snake_case."""
    id: str
    email: str
    name: str
    picture: Optional[str] = None
    given_name: Optional[str] = Field(default=None, alias="given_name")
    family_name: Optional[str] = Field(default=None, alias="family_name")


class UserCreate(CamelModel):
    """Registration payload; password is absent for social sign-in."""
    email: EmailStr
    name: str = Field(..., min_length=1)
    password: Optional[str] = Field(default=None, min_length=6)
    picture: Optional[str] = None
    given_name: Optional[str] = Field(default=None, alias="given_name")
    family_name: Optional[str] = Field(default=None, alias="family_name")


class AuthResult(CamelModel):
    """Result of a successful login."""
    user: User
    token: str
