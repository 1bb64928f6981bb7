"""
Like toggles and the liked-videos view.
"""
import uuid
from typing import Any, Dict

from sqlalchemy import and_, desc, select
from sqlalchemy.exc import IntegrityError

from ..models import Comment, Like, LikeTarget, Tweet, User, Video
from .base_service import BaseService
from .logging_service import get_logger
from .pagination import PageParams, paginate_query
from .relationship_index import find_like, owner_columns
from .video_service import video_card, video_columns

logger = get_logger("like")

_TARGETS = {
    LikeTarget.video: (Video, "Video not found"),
    LikeTarget.comment: (Comment, "Comment not found"),
    LikeTarget.tweet: (Tweet, "Tweet not found"),
}


class LikeService(BaseService):
    """Service for likes on videos, comments and tweets."""

    async def toggle_like(self, kind: LikeTarget, target_id: uuid.UUID, user_id: uuid.UUID) -> Dict[str, bool]:
        """Like the target when not yet liked, otherwise remove the like."""
        model, missing_message = _TARGETS[kind]
        await self._get_or_404(model, target_id, missing_message)

        existing = await find_like(self.db, kind, target_id, user_id)
        if existing is not None:
            await self.db.delete(existing)
            await self.db.commit()
            logger.event("unliked", target_kind=kind.value, target_id=target_id, user_id=user_id)
            return {"isLiked": False}

        self.db.add(Like(target_kind=kind, target_id=target_id, liked_by_id=user_id))
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent toggle already inserted the same like; the end state is "liked"
            await self.db.rollback()
            return {"isLiked": True}

        logger.event("liked", target_kind=kind.value, target_id=target_id, user_id=user_id)
        return {"isLiked": True}

    async def toggle_video_like(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Dict[str, bool]:
        return await self.toggle_like(LikeTarget.video, video_id, user_id)

    async def toggle_comment_like(self, comment_id: uuid.UUID, user_id: uuid.UUID) -> Dict[str, bool]:
        return await self.toggle_like(LikeTarget.comment, comment_id, user_id)

    async def toggle_tweet_like(self, tweet_id: uuid.UUID, user_id: uuid.UUID) -> Dict[str, bool]:
        return await self.toggle_like(LikeTarget.tweet, tweet_id, user_id)

    async def get_liked_videos(self, user_id: uuid.UUID, params: PageParams) -> Dict[str, Any]:
        """Published videos the user has liked, most recent like first."""
        query = (
            select(*video_columns(), *owner_columns(), Like.created_at.label("liked_at"))
            .join(Video, and_(Like.target_kind == LikeTarget.video, Video.id == Like.target_id))
            .join(User, User.id == Video.owner_id)
            .where(and_(Like.liked_by_id == user_id, Video.is_published.is_(True)))
            .order_by(desc(Like.created_at), desc(Like.id))
        )

        def to_item(row) -> Dict[str, Any]:
            card = video_card(row)
            card["likedAt"] = row.liked_at
            return card

        page = await paginate_query(self.db, query, params, to_item)
        return page.to_dict()
