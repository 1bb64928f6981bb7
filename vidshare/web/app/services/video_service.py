"""
Video publishing, catalog listings, search and the video detail view.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, asc, delete, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..errors import NotFoundError, ValidationError
from ..models import (
    Comment, Like, LikeTarget, PlaylistVideo, User, Video, WatchHistoryEntry, utcnow
)
from .base_service import BaseService
from .logging_service import get_logger
from .media_storage import MediaStorage
from .mutation_guard import CascadePlan, check_length, ensure_owner, require_fields
from .pagination import PageParams, paginate_query, paginate_sequence
from .relationship_index import (
    comment_count_expr, is_liked_expr, is_subscribed_expr, like_count_expr,
    owner_columns, owner_projection, subscriber_count_expr,
)
from .viewing_history_service import ViewingHistoryService

settings = get_settings()
logger = get_logger("video")

CATALOG_SORTS = {
    "createdAt": Video.created_at,
    "views": Video.views,
    "duration": Video.duration,
}
SEARCH_SORTS = {**CATALOG_SORTS, "title": Video.title}


def video_columns():
    return (
        Video.id,
        Video.title,
        Video.description,
        Video.video_file_url,
        Video.thumbnail_url,
        Video.duration,
        Video.views,
        Video.is_published,
        Video.created_at,
    )


def video_card(row) -> Dict[str, Any]:
    """Flattened video row with its owner projection."""
    return {
        "id": row.id,
        "title": row.title,
        "description": row.description,
        "videoFile": {"url": row.video_file_url},
        "thumbnail": {"url": row.thumbnail_url},
        "duration": row.duration,
        "views": row.views,
        "isPublished": bool(row.is_published),
        "createdAt": row.created_at,
        "owner": owner_projection(row),
    }


def serialize_video(video: Video) -> Dict[str, Any]:
    return {
        "id": video.id,
        "title": video.title,
        "description": video.description,
        "videoFile": {"url": video.video_file_url, "externalId": video.video_file_external_id},
        "thumbnail": {"url": video.thumbnail_url, "externalId": video.thumbnail_external_id},
        "duration": video.duration,
        "views": video.views,
        "isPublished": video.is_published,
        "owner": video.owner_id,
        "createdAt": video.created_at,
        "updatedAt": video.updated_at,
    }


def _ordering(sorts: Dict[str, Any], sort_by: Optional[str], sort_type: Optional[str]):
    column = sorts.get(sort_by or "", Video.created_at)
    direction = asc if sort_type == "asc" else desc
    # id breaks ties so equal sort keys page deterministically
    return direction(column), direction(Video.id)


def add_video_cleanup_steps(
    plan: CascadePlan,
    db: AsyncSession,
    storage: MediaStorage,
    video_ids: List[uuid.UUID],
    asset_ids: List[Optional[str]],
):
    """Steps that remove everything hanging off already-deleted videos."""
    comment_ids = select(Comment.id).where(Comment.video_id.in_(video_ids))

    async def drop_comment_likes():
        await db.execute(
            delete(Like).where(and_(Like.target_kind == LikeTarget.comment, Like.target_id.in_(comment_ids)))
        )

    async def drop_video_likes():
        await db.execute(
            delete(Like).where(and_(Like.target_kind == LikeTarget.video, Like.target_id.in_(video_ids)))
        )

    async def drop_comments():
        await db.execute(delete(Comment).where(Comment.video_id.in_(video_ids)))

    async def drop_playlist_entries():
        await db.execute(delete(PlaylistVideo).where(PlaylistVideo.video_id.in_(video_ids)))

    async def drop_watch_history():
        await db.execute(delete(WatchHistoryEntry).where(WatchHistoryEntry.video_id.in_(video_ids)))

    async def drop_assets():
        for external_id in asset_ids:
            await storage.delete(external_id)

    plan.add("comment likes", drop_comment_likes)
    plan.add("video likes", drop_video_likes)
    plan.add("comments", drop_comments)
    plan.add("playlist entries", drop_playlist_entries)
    plan.add("watch history", drop_watch_history)
    if storage is not None:
        plan.add("media assets", drop_assets)
    return plan


class VideoService(BaseService):
    """Service for videos and the views built around them."""

    def __init__(self, db: AsyncSession, storage: Optional[MediaStorage] = None):
        super().__init__(db)
        self.storage = storage

    async def publish_video(
        self,
        owner_id: uuid.UUID,
        title: str,
        description: str,
        video_file: Dict[str, str],
        thumbnail: Dict[str, str],
        duration: float,
    ) -> Dict[str, Any]:
        """Create a published video from already-uploaded media references."""
        require_fields(title=title, description=description)
        check_length(title.strip(), Video.__table__.c.title, "Title")
        if not video_file or not video_file.get("url") or not video_file.get("externalId"):
            raise ValidationError("Video file is required")
        if not thumbnail or not thumbnail.get("url") or not thumbnail.get("externalId"):
            raise ValidationError("Thumbnail is required")
        if duration is None or duration <= 0:
            raise ValidationError("Duration must be greater than zero")

        video = Video(
            owner_id=owner_id,
            title=title.strip(),
            description=description.strip(),
            video_file_url=video_file["url"],
            video_file_external_id=video_file["externalId"],
            thumbnail_url=thumbnail["url"],
            thumbnail_external_id=thumbnail["externalId"],
            duration=duration,
            views=0,
            is_published=True,
        )
        self.db.add(video)
        await self.db.commit()
        await self.db.refresh(video)

        logger.event("video_published", video_id=video.id, owner_id=owner_id)
        return serialize_video(video)

    async def list_videos(
        self,
        params: PageParams,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
        username: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Published videos, optionally for one channel, windowed in the database."""
        query = (
            select(*video_columns(), *owner_columns())
            .join(User, User.id == Video.owner_id)
            .where(Video.is_published.is_(True))
        )

        if username:
            owner_id = await self.db.scalar(select(User.id).where(User.username == username.lower()))
            if owner_id is None:
                raise NotFoundError("User not found")
            query = query.where(Video.owner_id == owner_id)

        query = query.order_by(*_ordering(CATALOG_SORTS, sort_by, sort_type))
        page = await paginate_query(self.db, query, params, video_card)
        return page.to_dict()

    async def search_videos(
        self,
        search: Optional[str],
        params: PageParams,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Case-insensitive title search over published videos.

        Matches are materialised (up to ``SEARCH_RESULT_CAP``) in sort order
        and windowed in memory. ``totalDocs`` counts every match, capped or not.
        """
        if search is None or not search.strip():
            raise ValidationError("Search query is required")
        needle = search.strip().lower()
        matches = and_(
            Video.is_published.is_(True),
            func.lower(Video.title).contains(needle, autoescape=True),
        )
        total = await self.db.scalar(select(func.count(Video.id)).where(matches))

        query = (
            select(
                *video_columns(),
                *owner_columns(),
                like_count_expr(LikeTarget.video, Video.id).label("likes_count"),
                comment_count_expr(Video.id).label("comments_count"),
            )
            .join(User, User.id == Video.owner_id)
            .where(matches)
            .order_by(*_ordering(SEARCH_SORTS, sort_by, sort_type))
            .limit(settings.SEARCH_RESULT_CAP)
        )
        rows = (await self.db.execute(query)).all()

        now = utcnow()
        results = []
        for row in rows:
            card = video_card(row)
            card["likesCount"] = row.likes_count
            card["commentsCount"] = row.comments_count
            card["timeSinceUpload"] = (now - row.created_at).days
            results.append(card)

        return paginate_sequence(results, params, total_docs=total).to_dict()

    async def get_video_detail(self, video_id: uuid.UUID, viewer_id: Optional[uuid.UUID]) -> Dict[str, Any]:
        """Video detail view.

        Counts the view and records it in the viewer's watch history before
        composing, so the returned ``views`` includes this request.
        """
        visible = await self.db.scalar(
            select(Video.id).where(and_(Video.id == video_id, Video.is_published.is_(True)))
        )
        if visible is None:
            raise NotFoundError("Video not found")

        await self.db.execute(
            update(Video).where(Video.id == video_id).values(views=Video.views + 1)
        )
        await self.db.commit()

        if viewer_id is not None:
            await ViewingHistoryService(self.db).record(viewer_id, video_id)

        query = (
            select(
                *video_columns(),
                *owner_columns(),
                subscriber_count_expr(User.id).label("owner_subscribers_count"),
                is_subscribed_expr(User.id, viewer_id).label("owner_is_subscribed"),
                like_count_expr(LikeTarget.video, Video.id).label("likes_count"),
                is_liked_expr(LikeTarget.video, Video.id, viewer_id).label("is_liked"),
            )
            .join(User, User.id == Video.owner_id)
            .where(and_(Video.id == video_id, Video.is_published.is_(True)))
        )
        row = (await self.db.execute(query)).one_or_none()
        if row is None:
            raise NotFoundError("Video not found")

        detail = video_card(row)
        detail["owner"]["subscribersCount"] = row.owner_subscribers_count
        detail["owner"]["isSubscribed"] = bool(row.owner_is_subscribed)
        detail["likesCount"] = row.likes_count
        detail["isLiked"] = bool(row.is_liked)
        return detail

    async def update_video(
        self,
        video_id: uuid.UUID,
        requester_id: uuid.UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        if title and title.strip():
            check_length(title.strip(), Video.__table__.c.title, "Title")
        video = await self._get_or_404(Video, video_id, "Video not found")
        ensure_owner(video.owner_id, requester_id, "update this video")

        replaced_thumbnail = None
        changed = False
        if title and title.strip():
            video.title = title.strip()
            changed = True
        if description and description.strip():
            video.description = description.strip()
            changed = True
        if thumbnail and thumbnail.get("url") and thumbnail.get("externalId"):
            replaced_thumbnail = video.thumbnail_external_id
            video.thumbnail_url = thumbnail["url"]
            video.thumbnail_external_id = thumbnail["externalId"]
            changed = True

        if not changed:
            return serialize_video(video)

        await self.db.commit()
        await self.db.refresh(video)

        if replaced_thumbnail and replaced_thumbnail != video.thumbnail_external_id and self.storage:
            await self.storage.delete(replaced_thumbnail)

        return serialize_video(video)

    async def toggle_publish_status(self, video_id: uuid.UUID, requester_id: uuid.UUID) -> Dict[str, Any]:
        video = await self._get_or_404(Video, video_id, "Video not found")
        ensure_owner(video.owner_id, requester_id, "change the publish status of this video")

        video.is_published = not video.is_published
        await self.db.commit()

        logger.event("video_publish_toggled", video_id=video_id, is_published=video.is_published)
        return {"isPublished": video.is_published}

    async def delete_video(self, video_id: uuid.UUID, requester_id: uuid.UUID) -> List[str]:
        """Delete a video, then its likes, comments, playlist and history entries and media."""
        video = await self._get_or_404(Video, video_id, "Video not found")
        ensure_owner(video.owner_id, requester_id, "delete this video")
        asset_ids = [video.video_file_external_id, video.thumbnail_external_id]

        await self.db.execute(delete(Video).where(Video.id == video_id))
        await self.db.commit()
        logger.event("video_deleted", video_id=video_id, owner_id=requester_id)

        plan = CascadePlan(self.db, "video", video_id)
        add_video_cleanup_steps(plan, self.db, self.storage, [video_id], asset_ids)
        return await plan.run()
