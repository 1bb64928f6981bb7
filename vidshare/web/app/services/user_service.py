"""
Account management: registration, sessions, profile updates and account deletion.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import ConflictError, UnauthorizedError, ValidationError
from ..models import (
    Comment, Like, LikeTarget, PasswordResetTicket, Playlist, PlaylistVideo,
    Subscription, Tweet, User, Video, WatchHistoryEntry,
)
from ..security import (
    REFRESH_TOKEN, create_access_token, create_refresh_token, decode_token,
    hash_password, hash_token, verify_password,
)
from .base_service import BaseService
from .comment_service import collect_thread_ids
from .logging_service import get_logger
from .media_storage import MediaStorage
from .mutation_guard import CascadePlan, check_length, check_password, normalize_email, require_fields
from .video_service import add_video_cleanup_steps

logger = get_logger("user")


def serialize_user(user: User) -> Dict[str, Any]:
    """Public account fields. Password and token hashes never leave the service."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "fullName": user.full_name,
        "bio": user.bio,
        "avatar": {"url": user.avatar_url},
        "coverImage": {"url": user.cover_image_url},
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
    }


def _valid_media(ref: Optional[Dict[str, str]]) -> bool:
    return bool(ref and ref.get("url") and ref.get("externalId"))


class UserService(BaseService):
    """Service for user accounts."""

    def __init__(self, db: AsyncSession, storage: Optional[MediaStorage] = None):
        super().__init__(db)
        self.storage = storage

    async def register(
        self,
        username: Optional[str],
        email: Optional[str],
        full_name: Optional[str],
        password: Optional[str],
        avatar: Optional[Dict[str, str]],
        cover_image: Optional[Dict[str, str]] = None,
        bio: Optional[str] = None,
    ) -> Dict[str, Any]:
        require_fields(username=username, email=email, fullName=full_name, password=password)
        email = normalize_email(email.strip())
        check_password(password)
        if not _valid_media(avatar):
            raise ValidationError("Avatar is required")

        username = username.strip().lower()
        check_length(username, User.__table__.c.username, "Username")
        check_length(full_name.strip(), User.__table__.c.full_name, "Full name")
        existing = await self.db.scalar(
            select(User.id).where(or_(User.username == username, User.email == email))
        )
        if existing is not None:
            raise ConflictError("User already exists")

        user = User(
            username=username,
            email=email,
            full_name=full_name.strip(),
            bio=bio.strip() if bio else None,
            password_hash=hash_password(password),
            avatar_url=avatar["url"],
            avatar_external_id=avatar["externalId"],
            cover_image_url=cover_image["url"] if _valid_media(cover_image) else None,
            cover_image_external_id=cover_image["externalId"] if _valid_media(cover_image) else None,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already exists")
        await self.db.refresh(user)

        logger.event("user_registered", user_id=user.id, username=username)
        return serialize_user(user)

    async def _issue_tokens(self, user: User) -> Dict[str, str]:
        access_token = create_access_token(user.id)
        refresh_token = create_refresh_token(user.id)
        user.refresh_token_hash = hash_token(refresh_token)
        await self.db.commit()
        return {"accessToken": access_token, "refreshToken": refresh_token}

    async def login(self, identifier: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """Authenticate by username or email."""
        if not identifier or not identifier.strip() or not password:
            raise ValidationError("Username or email and password are required")

        identifier = identifier.strip().lower()
        result = await self.db.execute(
            select(User).where(or_(User.username == identifier, User.email == identifier))
        )
        user = result.scalar_one_or_none()
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt", extra={'identifier': identifier})
            raise UnauthorizedError("Invalid user credentials")

        tokens = await self._issue_tokens(user)
        await self.db.refresh(user)
        logger.event("user_logged_in", user_id=user.id)
        return {"user": serialize_user(user), **tokens}

    async def logout(self, user: User):
        user.refresh_token_hash = None
        await self.db.commit()
        logger.event("user_logged_out", user_id=user.id)

    async def refresh_session(self, refresh_token: Optional[str]) -> Dict[str, str]:
        """Rotate the token pair. The presented refresh token must be the stored one."""
        if not refresh_token:
            raise UnauthorizedError("Refresh token is required")

        user_id = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
        if user_id is None:
            raise UnauthorizedError("Invalid refresh token")

        user = await self.db.get(User, user_id)
        if user is None or user.refresh_token_hash != hash_token(refresh_token):
            raise UnauthorizedError("Refresh token is expired or used")

        return await self._issue_tokens(user)

    async def change_password(self, user: User, old_password: Optional[str], new_password: Optional[str]):
        require_fields(oldPassword=old_password, newPassword=new_password)
        if not verify_password(old_password, user.password_hash):
            raise ValidationError("Invalid old password")
        check_password(new_password)

        user.password_hash = hash_password(new_password)
        await self.db.commit()
        logger.event("password_changed", user_id=user.id)

    async def update_account(
        self,
        user: User,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        bio: Optional[str] = None,
        avatar: Optional[Dict[str, str]] = None,
        cover_image: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Update the given profile fields. Replaced images are removed from storage afterwards."""
        replaced: List[str] = []

        if full_name is not None:
            if not full_name.strip():
                raise ValidationError("Full name cannot be empty")
            check_length(full_name.strip(), User.__table__.c.full_name, "Full name")
            user.full_name = full_name.strip()
        if email is not None:
            normalized = normalize_email(email.strip())
            if normalized != user.email:
                taken = await self.db.scalar(
                    select(User.id).where(and_(User.email == normalized, User.id != user.id))
                )
                if taken is not None:
                    raise ConflictError("Email is already in use")
                user.email = normalized
        if bio is not None:
            user.bio = bio.strip() or None
        if _valid_media(avatar):
            if user.avatar_external_id and user.avatar_external_id != avatar["externalId"]:
                replaced.append(user.avatar_external_id)
            user.avatar_url = avatar["url"]
            user.avatar_external_id = avatar["externalId"]
        if _valid_media(cover_image):
            if user.cover_image_external_id and user.cover_image_external_id != cover_image["externalId"]:
                replaced.append(user.cover_image_external_id)
            user.cover_image_url = cover_image["url"]
            user.cover_image_external_id = cover_image["externalId"]

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email is already in use")
        await self.db.refresh(user)

        if self.storage is not None:
            for external_id in replaced:
                await self.storage.delete(external_id)

        return serialize_user(user)

    async def delete_account(self, user: User) -> List[str]:
        """Remove the user and everything they own or reference.

        Dependent rows go first so the user row is deleted last.
        """
        user_id = user.id
        profile_assets = [user.avatar_external_id, user.cover_image_external_id]

        videos = (await self.db.execute(
            select(Video.id, Video.video_file_external_id, Video.thumbnail_external_id)
            .where(Video.owner_id == user_id)
        )).all()
        video_ids = [row.id for row in videos]
        video_assets = [asset for row in videos for asset in (row.video_file_external_id, row.thumbnail_external_id)]

        own_comment_ids = list((await self.db.scalars(
            select(Comment.id).where(Comment.owner_id == user_id)
        )).all())
        thread_ids = own_comment_ids + await collect_thread_ids(self.db, own_comment_ids)
        tweet_ids = select(Tweet.id).where(Tweet.owner_id == user_id)
        playlist_ids = select(Playlist.id).where(Playlist.owner_id == user_id)

        plan = CascadePlan(self.db, "user", user_id)

        async def drop_videos():
            await self.db.execute(delete(Video).where(Video.owner_id == user_id))

        plan.add("videos", drop_videos)
        add_video_cleanup_steps(plan, self.db, self.storage, video_ids, video_assets)

        async def drop_comment_threads():
            await self.db.execute(
                delete(Like).where(and_(Like.target_kind == LikeTarget.comment, Like.target_id.in_(thread_ids)))
            )
            await self.db.execute(delete(Comment).where(Comment.id.in_(thread_ids)))

        async def drop_likes():
            await self.db.execute(delete(Like).where(Like.liked_by_id == user_id))

        async def drop_tweets():
            await self.db.execute(
                delete(Like).where(and_(Like.target_kind == LikeTarget.tweet, Like.target_id.in_(tweet_ids)))
            )
            await self.db.execute(delete(Tweet).where(Tweet.owner_id == user_id))

        async def drop_playlists():
            await self.db.execute(delete(PlaylistVideo).where(PlaylistVideo.playlist_id.in_(playlist_ids)))
            await self.db.execute(delete(Playlist).where(Playlist.owner_id == user_id))

        async def drop_subscriptions():
            await self.db.execute(
                delete(Subscription).where(
                    or_(Subscription.subscriber_id == user_id, Subscription.channel_id == user_id)
                )
            )

        async def drop_own_history():
            await self.db.execute(delete(WatchHistoryEntry).where(WatchHistoryEntry.user_id == user_id))

        async def drop_reset_tickets():
            await self.db.execute(delete(PasswordResetTicket).where(PasswordResetTicket.user_id == user_id))

        async def drop_account():
            await self.db.execute(delete(User).where(User.id == user_id))

        async def drop_profile_assets():
            for external_id in profile_assets:
                await self.storage.delete(external_id)

        plan.add("user comments", drop_comment_threads)
        plan.add("user likes", drop_likes)
        plan.add("tweets", drop_tweets)
        plan.add("playlists", drop_playlists)
        plan.add("subscriptions", drop_subscriptions)
        plan.add("user watch history", drop_own_history)
        plan.add("password reset tickets", drop_reset_tickets)
        plan.add("account", drop_account)
        if self.storage is not None:
            plan.add("profile assets", drop_profile_assets)

        completed = await plan.run()
        logger.event("account_deleted", user_id=user_id, steps=len(completed))
        return completed
