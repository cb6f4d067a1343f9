from pydantic import BaseModel, Field, EmailStr, ConfigDict
from typing import Optional, Literal
from datetime import datetime, timezone

UserRole = Literal[
    'admin', 'programmer', 'community_manager', 'content_creator',
    'spiritual_companion', 'strategist', 'designer', 'sales'
]


class UserModel(BaseModel):
    username: str
    name: str
    role: UserRole = 'content_creator'
    email: Optional[EmailStr] = None
    password_hash: str
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore"
    )

    def public(self) -> dict:
        return self.model_dump(exclude={"password_hash"})


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    role: UserRole = 'content_creator'
    email: Optional[EmailStr] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class Session(BaseModel):
    """Authenticated caller, decoded from a verified session token or API key."""
    username: str
    role: str
    name: str
