"""
Viewing history service.
"""
import uuid
from typing import Any, Dict

from sqlalchemy import and_, desc, select
from sqlalchemy.exc import IntegrityError

from ..models import User, Video, WatchHistoryEntry
from .base_service import BaseService
from .logging_service import get_logger
from .pagination import PageParams, paginate_query
from .relationship_index import owner_columns, owner_projection

logger = get_logger("history")


class ViewingHistoryService(BaseService):
    """Service for the per-user ordered set of watched videos."""

    async def record(self, user_id: uuid.UUID, video_id: uuid.UUID) -> bool:
        """Add a video to the user's history. Returns False if it was already there."""
        existing = await self.db.scalar(
            select(WatchHistoryEntry.id).where(
                and_(WatchHistoryEntry.user_id == user_id, WatchHistoryEntry.video_id == video_id)
            )
        )
        if existing is not None:
            return False

        self.db.add(WatchHistoryEntry(user_id=user_id, video_id=video_id))
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent request for the same pair inserted first
            await self.db.rollback()
            return False
        return True

    async def get_watch_history(self, user_id: uuid.UUID, params: PageParams) -> Dict[str, Any]:
        """Watched videos that are still published, most recently first watched first."""
        query = (
            select(
                Video.id,
                Video.title,
                Video.description,
                Video.thumbnail_url,
                Video.duration,
                Video.views,
                Video.created_at,
                WatchHistoryEntry.watched_at,
                *owner_columns(),
            )
            .join(Video, Video.id == WatchHistoryEntry.video_id)
            .join(User, User.id == Video.owner_id)
            .where(and_(WatchHistoryEntry.user_id == user_id, Video.is_published.is_(True)))
            .order_by(desc(WatchHistoryEntry.watched_at), desc(WatchHistoryEntry.id))
        )

        def to_item(row) -> Dict[str, Any]:
            return {
                "id": row.id,
                "title": row.title,
                "description": row.description,
                "thumbnail": {"url": row.thumbnail_url},
                "duration": row.duration,
                "views": row.views,
                "createdAt": row.created_at,
                "watchedAt": row.watched_at,
                "owner": owner_projection(row),
            }

        page = await paginate_query(self.db, query, params, to_item)
        return page.to_dict()
