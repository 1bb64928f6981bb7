"""
SQLAlchemy 2.0 database models.
"""
import uuid
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, DateTime, Enum as SAEnum, ForeignKey, Text,
    Boolean, Integer, Uuid
)
import sqlalchemy as sa
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LikeTarget(str, enum.Enum):
    video = "video"
    comment = "comment"
    tweet = "tweet"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)
    password_hash = Column(String(255), nullable=False)
    refresh_token_hash = Column(String(128), nullable=True)

    # Object storage references
    avatar_url = Column(String(1000), nullable=False)
    avatar_external_id = Column(String(500), nullable=True)
    cover_image_url = Column(String(1000), nullable=True)
    cover_image_external_id = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Video(Base):
    __tablename__ = "videos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)

    # Object storage references
    video_file_url = Column(String(1000), nullable=False)
    video_file_external_id = Column(String(500), nullable=False)
    thumbnail_url = Column(String(1000), nullable=False)
    thumbnail_external_id = Column(String(500), nullable=False)

    duration = Column(sa.Float, nullable=False, index=True)
    views = Column(Integer, default=0, nullable=False, index=True)
    is_published = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User")

    __table_args__ = (
        sa.CheckConstraint("duration > 0", name="ck_video_duration_positive"),
        sa.CheckConstraint("views >= 0", name="ck_video_views_non_negative"),
    )


# Video, comment and like targets are application-maintained references
# (removed by cascade plans), so they carry no database foreign key.

class Comment(Base):
    __tablename__ = "comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    video_id = Column(Uuid, nullable=False, index=True)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    parent_comment_id = Column(Uuid, nullable=True, index=True)

    content = Column(String(500), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User")


class Like(Base):
    __tablename__ = "likes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    target_kind = Column(SAEnum(LikeTarget, name="liketarget"), nullable=False)
    target_id = Column(Uuid, nullable=False)
    liked_by_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    liked_by = relationship("User")

    # One like per user per target
    __table_args__ = (
        sa.UniqueConstraint('target_kind', 'target_id', 'liked_by_id', name='uq_like_target_user'),
        sa.Index('ix_likes_target', 'target_kind', 'target_id'),
    )


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    subscriber_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    channel_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    subscriber = relationship("User", foreign_keys=[subscriber_id])
    channel = relationship("User", foreign_keys=[channel_id])

    __table_args__ = (
        sa.UniqueConstraint('subscriber_id', 'channel_id', name='uq_subscriber_channel'),
        sa.CheckConstraint('subscriber_id <> channel_id', name='ck_no_self_subscription'),
    )


class Tweet(Base):
    __tablename__ = "tweets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(String(500), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User")


class Playlist(Base):
    __tablename__ = "playlists"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User")


class PlaylistVideo(Base):
    __tablename__ = "playlist_videos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    playlist_id = Column(Uuid, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(Uuid, nullable=False, index=True)

    position = Column(Integer, nullable=False)
    added_at = Column(DateTime, default=utcnow, nullable=False)

    # A playlist holds each video at most once
    __table_args__ = (
        sa.UniqueConstraint('playlist_id', 'video_id', name='uq_playlist_video'),
    )


class WatchHistoryEntry(Base):
    __tablename__ = "watch_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    video_id = Column(Uuid, nullable=False, index=True)

    watched_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        sa.UniqueConstraint('user_id', 'video_id', name='uq_watch_history_user_video'),
    )


class PasswordResetTicket(Base):
    __tablename__ = "password_reset_tickets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    otp = Column(String(6), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
