from beanie import before_event, Replace, Save
from pydantic import BaseModel, EmailStr, Field
from pymongo import ASCENDING, IndexModel
from typing import Optional
from datetime import datetime, timezone
from pulse_chat_app.core.base.base import BaseCollection


class UserProfile(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None


class UserModel(BaseCollection):
    username: str
    email: EmailStr
    password: str
    profile: UserProfile = Field(default_factory=UserProfile)

    is_online: bool = Field(default=False)
    last_seen: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Auto-update "updated_at" on update
    @before_event([Save, Replace])
    def update_timestamp(self):
        self.updated_at = datetime.now(timezone.utc)

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("username", ASCENDING)], unique=True),
            IndexModel([("email", ASCENDING)], unique=True),
        ]
