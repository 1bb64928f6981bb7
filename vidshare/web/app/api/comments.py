"""
Comment API endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db
from ..dependencies import get_current_user, get_page_params
from ..models import User
from ..responses import api_response
from ..schemas import CommentBody
from ..services.comment_service import CommentService
from ..services.mutation_guard import parse_id
from ..services.pagination import PageParams

router = APIRouter(prefix="/api/comments", tags=["comments"])


@router.get("/video/{video_id}")
async def get_video_comments(
    video_id: str,
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Top-level comments on a video, newest first."""
    service = CommentService(db)
    result = await service.get_video_comments(parse_id(video_id, "video ID"), current_user.id, params)
    return api_response(200, result, "Comments fetched successfully")


@router.get("/{comment_id}/replies")
async def get_comment_replies(
    comment_id: str,
    params: PageParams = Depends(get_page_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = CommentService(db)
    result = await service.get_replies(parse_id(comment_id, "comment ID"), current_user.id, params)
    return api_response(200, result, "Replies fetched successfully")


@router.post("/{video_id}")
async def add_comment(
    video_id: str,
    body: CommentBody,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    parent_id = parse_id(body.parentCommentId, "parent comment ID") if body.parentCommentId else None
    service = CommentService(db)
    comment = await service.add_comment(
        parse_id(video_id, "video ID"), current_user.id, body.content, parent_id
    )
    return api_response(201, comment, "Comment added successfully")


@router.patch("/{comment_id}")
async def update_comment(
    comment_id: str,
    body: CommentBody,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = CommentService(db)
    comment = await service.update_comment(parse_id(comment_id, "comment ID"), current_user.id, body.content)
    return api_response(200, comment, "Comment updated successfully")


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = CommentService(db)
    await service.delete_comment(parse_id(comment_id, "comment ID"), current_user.id)
    return api_response(200, None, "Comment deleted successfully")
