from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime
from pulse_chat_app.core.base.base import BaseResponse, CamelModel


class ProfileSchema(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None


class UserCreate(CamelModel):
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    profile: Optional[ProfileSchema] = None


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdateRequest(CamelModel):
    profile: ProfileSchema


class UserSummary(BaseResponse):
    """Public view of a user, as embedded in chats and messages."""
    username: str
    profile: ProfileSchema = ProfileSchema()
    is_online: bool = False
    last_seen: Optional[datetime] = None


class UserResponse(UserSummary):
    email: EmailStr
    created_at: datetime
    updated_at: datetime


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserResponse


class ProfileUpdateResponse(CamelModel):
    message: str
    user: UserResponse


class MessageResponse(CamelModel):
    message: str
