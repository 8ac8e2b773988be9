# schemas.py (Pydantic)
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime

from utils import BCRYPT_MAX_BYTES


# ---------- Auth ----------
class SignupRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=30)
    password: str = Field(..., min_length=1)
    full_name: Optional[str] = Field(None, max_length=100)

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username is required")
        return v

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"password must be at most {BCRYPT_MAX_BYTES} bytes")
        return v

class LoginRequest(BaseModel):
    username: str
    password: str

class AuthUser(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class AuthResponse(BaseModel):
    token: str
    user: AuthUser


# ---------- Users ----------
class UserSummary(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class MeRead(UserSummary):
    bio: Optional[str] = None
    created_at: Optional[datetime] = None

class MeUpdate(BaseModel):
    """Full overwrite of the mutable profile fields; absent keys become null"""
    full_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = None
    avatar_url: Optional[str] = Field(None, max_length=500)


# ---------- Posts ----------
class PostRead(BaseModel):
    id: int
    user_id: int
    type: str
    url: str
    caption: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class PostWithAuthor(PostRead):
    username: str
    avatar_url: Optional[str] = None

class FeedPost(PostWithAuthor):
    likes_count: int
    is_liked: int  # 0/1
    is_saved: int  # 0/1
    comments_count: int

class PostCreated(BaseModel):
    id: int


# ---------- Comments ----------
class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content is required")
        return v

class CommentRead(BaseModel):
    id: int
    user_id: int
    post_id: int
    content: str
    created_at: datetime
    username: str
    avatar_url: Optional[str] = None

class CommentCreated(BaseModel):
    id: int


# ---------- Profiles ----------
class ProfileRead(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    posts: List[PostRead]
    followers_count: int
    following_count: int
    is_following: bool


# ---------- Toggles ----------
class LikeState(BaseModel):
    liked: bool

class SaveState(BaseModel):
    saved: bool

class FollowState(BaseModel):
    following: bool


class SuccessResponse(BaseModel):
    success: bool = True
