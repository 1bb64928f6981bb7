"""
Request bodies.

Fields are mostly optional so that presence and blank checks happen in the
services and surface as the same validation errors regardless of caller.
"""
from typing import Optional

from pydantic import BaseModel, Field


class MediaRef(BaseModel):
    """An already-uploaded object storage asset."""
    url: str
    externalId: str

    def as_dict(self) -> dict:
        return {"url": self.url, "externalId": self.externalId}


def media_dict(ref: Optional[MediaRef]) -> Optional[dict]:
    return ref.as_dict() if ref is not None else None


class UserRegistration(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    fullName: Optional[str] = None
    password: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[MediaRef] = None
    coverImage: Optional[MediaRef] = None


class UserLogin(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    refreshToken: Optional[str] = None


class PasswordChange(BaseModel):
    oldPassword: Optional[str] = None
    newPassword: Optional[str] = None


class AccountUpdate(BaseModel):
    fullName: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[MediaRef] = None
    coverImage: Optional[MediaRef] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None
    newPassword: Optional[str] = None


class VideoPublish(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    videoFile: Optional[MediaRef] = None
    thumbnail: Optional[MediaRef] = None
    duration: Optional[float] = Field(default=None, description="Seconds, as reported by media ingestion")


class VideoUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[MediaRef] = None


class CommentBody(BaseModel):
    content: Optional[str] = None
    parentCommentId: Optional[str] = None


class TweetBody(BaseModel):
    content: Optional[str] = None


class PlaylistBody(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
