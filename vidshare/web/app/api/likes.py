"""
Like API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..dependencies import get_current_user, get_page_params
from ..models import LikeTarget, User
from ..responses import api_response
from ..services.like_service import LikeService
from ..services.mutation_guard import parse_id
from ..services.pagination import PageParams

router = APIRouter(prefix="/api/likes", tags=["likes"])


async def _toggle(kind: LikeTarget, raw_id: str, label: str, user: User, db: AsyncSession):
    service = LikeService(db)
    result = await service.toggle_like(kind, parse_id(raw_id, f"{kind.value} ID"), user.id)
    state = "liked" if result["isLiked"] else "unliked"
    return api_response(200, result, f"{label} {state} successfully")


@router.post("/video/{video_id}")
async def toggle_video_like(
    video_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _toggle(LikeTarget.video, video_id, "Video", current_user, db)


@router.post("/comment/{comment_id}")
async def toggle_comment_like(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _toggle(LikeTarget.comment, comment_id, "Comment", current_user, db)


@router.post("/tweet/{tweet_id}")
async def toggle_tweet_like(
    tweet_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _toggle(LikeTarget.tweet, tweet_id, "Tweet", current_user, db)


@router.get("/liked-videos")
async def get_liked_videos(
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Videos the current user has liked, most recent first."""
    service = LikeService(db)
    result = await service.get_liked_videos(current_user.id, params)
    return api_response(200, result, "Liked videos fetched successfully")
