from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from dovi.schemas.common import CamelModel


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class TokenResponse(BaseModel):
    # OAuth2 password flow field names, not camelCased.
    access_token: str
    token_type: str = "bearer"


class UserMeResponse(CamelModel):
    id: str
    name: str
    email: EmailStr
    role: str
    is_active: bool
    is_email_activated: bool
    created_at: datetime
