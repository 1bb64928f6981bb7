"""
Channel "about" view.
"""
from typing import Any, Dict

from sqlalchemy import select

from ..errors import NotFoundError, ValidationError
from ..models import User
from .base_service import BaseService
from .relationship_index import count_subscribers, published_video_stats


class ChannelService(BaseService):
    """Service for the public profile of a channel."""

    async def get_about(self, username: str) -> Dict[str, Any]:
        """Profile fields plus subscriber, video and view totals for ``username``."""
        if not username or not username.strip():
            raise ValidationError("Username is required")

        result = await self.db.execute(select(User).where(User.username == username.strip().lower()))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("Channel does not exist")

        subscribers = await count_subscribers(self.db, user.id)
        videos_count, total_views = await published_video_stats(self.db, user.id)

        return {
            "id": user.id,
            "username": user.username,
            "fullName": user.full_name,
            "bio": user.bio,
            "avatar": {"url": user.avatar_url},
            "coverImage": {"url": user.cover_image_url},
            "createdAt": user.created_at,
            "subscribersCount": subscribers,
            "videosCount": videos_count,
            "totalVideoViews": total_views,
        }
