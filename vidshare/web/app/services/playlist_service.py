"""
User-curated playlists: an ordered, duplicate-free set of videos.
"""
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import and_, delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from ..errors import NotFoundError, ValidationError
from ..models import Playlist, PlaylistVideo, User, Video
from .base_service import BaseService
from .logging_service import get_logger
from .mutation_guard import check_length, ensure_owner, require_fields
from .pagination import PageParams, paginate_query
from .relationship_index import owner_columns, owner_projection

logger = get_logger("playlist")

DEFAULT_DESCRIPTION = "No description provided"


def serialize_playlist(playlist: Playlist) -> Dict[str, Any]:
    return {
        "id": playlist.id,
        "name": playlist.name,
        "description": playlist.description,
        "owner": playlist.owner_id,
        "createdAt": playlist.created_at,
        "updatedAt": playlist.updated_at,
    }


def _published_entry_count_expr(playlist_col):
    entry = aliased(PlaylistVideo)
    video = aliased(Video)
    return (
        select(func.count(entry.id))
        .join(video, video.id == entry.video_id)
        .where(and_(entry.playlist_id == playlist_col, video.is_published.is_(True)))
        .scalar_subquery()
    )


class PlaylistService(BaseService):
    """Service for playlists and their entries."""

    async def create_playlist(self, owner_id: uuid.UUID, name: Optional[str],
                              description: Optional[str] = None) -> Dict[str, Any]:
        require_fields(name=name)
        check_length(name.strip(), Playlist.__table__.c.name, "Playlist name")
        playlist = Playlist(
            owner_id=owner_id,
            name=name.strip(),
            description=(description or "").strip() or DEFAULT_DESCRIPTION,
        )
        self.db.add(playlist)
        await self.db.commit()
        await self.db.refresh(playlist)

        logger.event("playlist_created", playlist_id=playlist.id, owner_id=owner_id)
        return serialize_playlist(playlist)

    async def update_playlist(self, playlist_id: uuid.UUID, requester_id: uuid.UUID,
                              name: Optional[str] = None,
                              description: Optional[str] = None) -> Dict[str, Any]:
        if name is not None:
            check_length(name.strip(), Playlist.__table__.c.name, "Playlist name")
        playlist = await self._get_or_404(Playlist, playlist_id, "Playlist not found")
        ensure_owner(playlist.owner_id, requester_id, "update this playlist")

        if name is None and description is None:
            return serialize_playlist(playlist)
        if name is not None:
            if not name.strip():
                raise ValidationError("Playlist name cannot be empty")
            playlist.name = name.strip()
        if description is not None:
            playlist.description = description.strip() or DEFAULT_DESCRIPTION

        await self.db.commit()
        await self.db.refresh(playlist)
        return serialize_playlist(playlist)

    async def delete_playlist(self, playlist_id: uuid.UUID, requester_id: uuid.UUID):
        playlist = await self._get_or_404(Playlist, playlist_id, "Playlist not found")
        ensure_owner(playlist.owner_id, requester_id, "delete this playlist")

        # Entries go in the same transaction; they belong to the playlist row
        await self.db.execute(delete(PlaylistVideo).where(PlaylistVideo.playlist_id == playlist_id))
        await self.db.execute(delete(Playlist).where(Playlist.id == playlist_id))
        await self.db.commit()
        logger.event("playlist_deleted", playlist_id=playlist_id, owner_id=requester_id)

    async def add_video(self, playlist_id: uuid.UUID, video_id: uuid.UUID,
                        requester_id: uuid.UUID) -> Dict[str, Any]:
        """Append a video unless the playlist already holds it."""
        playlist = await self._get_or_404(Playlist, playlist_id, "Playlist not found")
        ensure_owner(playlist.owner_id, requester_id, "add videos to this playlist")
        await self._get_or_404(Video, video_id, "Video not found")

        present = await self.db.scalar(
            select(PlaylistVideo.id).where(
                and_(PlaylistVideo.playlist_id == playlist_id, PlaylistVideo.video_id == video_id)
            )
        )
        if present is None:
            last = await self.db.scalar(
                select(func.max(PlaylistVideo.position)).where(PlaylistVideo.playlist_id == playlist_id)
            )
            self.db.add(PlaylistVideo(
                playlist_id=playlist_id,
                video_id=video_id,
                position=(last or 0) + 1,
            ))
            try:
                await self.db.commit()
            except IntegrityError:
                # Added concurrently; the set already holds it
                await self.db.rollback()

        return await self.get_playlist(playlist_id)

    async def remove_video(self, playlist_id: uuid.UUID, video_id: uuid.UUID,
                           requester_id: uuid.UUID) -> Dict[str, Any]:
        playlist = await self._get_or_404(Playlist, playlist_id, "Playlist not found")
        ensure_owner(playlist.owner_id, requester_id, "remove videos from this playlist")

        await self.db.execute(
            delete(PlaylistVideo).where(
                and_(PlaylistVideo.playlist_id == playlist_id, PlaylistVideo.video_id == video_id)
            )
        )
        await self.db.commit()
        return await self.get_playlist(playlist_id)

    async def get_playlist(self, playlist_id: uuid.UUID) -> Dict[str, Any]:
        """Playlist with its published videos in insertion order."""
        result = await self.db.execute(
            select(Playlist, *owner_columns())
            .join(User, User.id == Playlist.owner_id)
            .where(Playlist.id == playlist_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Playlist not found")
        playlist = row.Playlist

        videos = await self.db.execute(
            select(Video)
            .join(PlaylistVideo, PlaylistVideo.video_id == Video.id)
            .where(and_(PlaylistVideo.playlist_id == playlist_id, Video.is_published.is_(True)))
            .order_by(PlaylistVideo.position, PlaylistVideo.id)
        )
        items = [
            {
                "id": video.id,
                "title": video.title,
                "description": video.description,
                "videoFile": {"url": video.video_file_url},
                "thumbnail": {"url": video.thumbnail_url},
                "duration": video.duration,
                "views": video.views,
                "createdAt": video.created_at,
            }
            for video in videos.scalars().all()
        ]

        return {
            "id": playlist.id,
            "name": playlist.name,
            "description": playlist.description,
            "createdAt": playlist.created_at,
            "updatedAt": playlist.updated_at,
            "totalVideos": len(items),
            "videos": items,
            "owner": owner_projection(row),
        }

    async def get_user_playlists(self, owner_id: uuid.UUID, params: PageParams) -> Dict[str, Any]:
        """A user's playlists, newest first."""
        query = (
            select(
                Playlist.id,
                Playlist.name,
                Playlist.description,
                Playlist.created_at,
                Playlist.updated_at,
                _published_entry_count_expr(Playlist.id).label("total_videos"),
            )
            .where(Playlist.owner_id == owner_id)
            .order_by(desc(Playlist.created_at), desc(Playlist.id))
        )

        def to_item(row) -> Dict[str, Any]:
            return {
                "id": row.id,
                "name": row.name,
                "description": row.description,
                "totalVideos": row.total_videos,
                "createdAt": row.created_at,
                "updatedAt": row.updated_at,
            }

        page = await paginate_query(self.db, query, params, to_item)
        return page.to_dict()
