from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field

from app.models.expense import utc_now_iso


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    email: Optional[EmailStr] = None
    profile_picture: Optional[str] = None


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    password_hash: str
    created_at: str = Field(default_factory=utc_now_iso)
    profile_picture: Optional[str] = None


class UserPublic(BaseModel):
    user_id: str
    email: EmailStr
    created_at: str
    profile_picture: Optional[str] = None

    @classmethod
    def from_record(cls, user: dict) -> "UserPublic":
        return cls(
            user_id=user["user_id"],
            email=user["email"],
            created_at=user.get("created_at", ""),
            profile_picture=user.get("profile_picture"),
        )
