"""
Video API endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..dependencies import get_current_user, get_optional_user, get_page_params, get_storage
from ..models import User
from ..responses import api_response
from ..schemas import VideoPublish, VideoUpdate, media_dict
from ..services.media_storage import MediaStorage
from ..services.mutation_guard import parse_id
from ..services.pagination import PageParams
from ..services.video_service import VideoService

router = APIRouter(prefix="/api/videos", tags=["videos"])


@router.get("")
async def list_videos(
    sortBy: Optional[str] = Query(None, description="createdAt, views or duration"),
    sortType: Optional[str] = Query(None, description="asc or desc"),
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Published videos across all channels."""
    service = VideoService(db)
    result = await service.list_videos(params, sortBy, sortType)
    return api_response(200, result, "Videos fetched successfully")


# Registered ahead of /{video_id} so "search" is not taken for an id
@router.get("/search")
async def search_videos(
    query: Optional[str] = Query(None),
    sortBy: Optional[str] = Query(None),
    sortType: Optional[str] = Query(None),
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db)
):
    """Case-insensitive title search over published videos."""
    service = VideoService(db)
    result = await service.search_videos(query, params, sortBy, sortType)
    return api_response(200, result, "Search results fetched successfully")


@router.get("/user/{username}")
async def list_channel_videos(
    username: str,
    sortBy: Optional[str] = Query(None),
    sortType: Optional[str] = Query(None),
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Published videos of one channel."""
    service = VideoService(db)
    result = await service.list_videos(params, sortBy, sortType, username=username)
    return api_response(200, result, "Videos fetched successfully")


@router.post("")
async def publish_video(
    body: VideoPublish,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = VideoService(db)
    video = await service.publish_video(
        owner_id=current_user.id,
        title=body.title,
        description=body.description,
        video_file=media_dict(body.videoFile),
        thumbnail=media_dict(body.thumbnail),
        duration=body.duration,
    )
    return api_response(201, video, "Video published successfully")


@router.get("/{video_id}")
async def get_video(
    video_id: str,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Video detail. Counts a view and records it in the viewer's watch history."""
    service = VideoService(db)
    viewer_id = current_user.id if current_user else None
    video = await service.get_video_detail(parse_id(video_id, "video ID"), viewer_id)
    return api_response(200, video, "Video fetched successfully")


@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    body: VideoUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: MediaStorage = Depends(get_storage)
):
    service = VideoService(db, storage)
    video = await service.update_video(
        parse_id(video_id, "video ID"),
        current_user.id,
        title=body.title,
        description=body.description,
        thumbnail=media_dict(body.thumbnail),
    )
    return api_response(200, video, "Video updated successfully")


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: MediaStorage = Depends(get_storage)
):
    """Delete a video together with its comments, likes and media."""
    service = VideoService(db, storage)
    await service.delete_video(parse_id(video_id, "video ID"), current_user.id)
    return api_response(200, None, "Video deleted successfully")


@router.patch("/{video_id}/toggle-publish")
async def toggle_publish_status(
    video_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = VideoService(db)
    result = await service.toggle_publish_status(parse_id(video_id, "video ID"), current_user.id)
    return api_response(200, result, "Publish status toggled successfully")
