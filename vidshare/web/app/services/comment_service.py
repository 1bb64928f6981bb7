"""
Comments on videos, threaded one reply level at a time.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..errors import NotFoundError, ValidationError
from ..models import Comment, Like, LikeTarget, User, Video
from .base_service import BaseService
from .logging_service import get_logger
from .mutation_guard import CascadePlan, clean_content, ensure_owner
from .pagination import PageParams, paginate_query
from .relationship_index import is_liked_expr, like_count_expr, owner_columns, owner_projection

logger = get_logger("comment")


def serialize_comment(comment: Comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "content": comment.content,
        "video": comment.video_id,
        "owner": comment.owner_id,
        "parentComment": comment.parent_comment_id,
        "createdAt": comment.created_at,
        "updatedAt": comment.updated_at,
    }


def _reply_count_expr(comment_col):
    reply = aliased(Comment)
    return (
        select(func.count(reply.id))
        .where(reply.parent_comment_id == comment_col)
        .scalar_subquery()
    )


async def collect_thread_ids(db: AsyncSession, root_ids: List[uuid.UUID]) -> List[uuid.UUID]:
    """Ids of every reply below ``root_ids``, at any depth."""
    found: List[uuid.UUID] = []
    frontier = list(root_ids)
    while frontier:
        result = await db.execute(select(Comment.id).where(Comment.parent_comment_id.in_(frontier)))
        frontier = [row[0] for row in result.all()]
        found.extend(frontier)
    return found


class CommentService(BaseService):
    """Service for video comments."""

    async def add_comment(
        self,
        video_id: uuid.UUID,
        owner_id: uuid.UUID,
        content: Optional[str],
        parent_comment_id: Optional[uuid.UUID] = None,
    ) -> Dict[str, Any]:
        """Comment on a video, or reply to a comment on the same video."""
        text = clean_content(content, "Comment content")
        await self._get_or_404(Video, video_id, "Video not found")

        if parent_comment_id is not None:
            parent = await self.db.get(Comment, parent_comment_id)
            if parent is None:
                raise NotFoundError("Parent comment not found")
            if parent.video_id != video_id:
                raise ValidationError("Parent comment belongs to a different video")

        comment = Comment(
            video_id=video_id,
            owner_id=owner_id,
            parent_comment_id=parent_comment_id,
            content=text,
        )
        self.db.add(comment)
        await self.db.commit()
        await self.db.refresh(comment)

        logger.event("comment_added", comment_id=comment.id, video_id=video_id, owner_id=owner_id)
        return serialize_comment(comment)

    async def update_comment(self, comment_id: uuid.UUID, requester_id: uuid.UUID,
                             content: Optional[str]) -> Dict[str, Any]:
        text = clean_content(content, "Comment content")
        comment = await self._get_or_404(Comment, comment_id, "Comment not found")
        ensure_owner(comment.owner_id, requester_id, "update this comment")

        comment.content = text
        await self.db.commit()
        await self.db.refresh(comment)
        return serialize_comment(comment)

    async def delete_comment(self, comment_id: uuid.UUID, requester_id: uuid.UUID) -> List[str]:
        """Delete a comment, then its replies and the likes on all of them."""
        comment = await self._get_or_404(Comment, comment_id, "Comment not found")
        ensure_owner(comment.owner_id, requester_id, "delete this comment")

        reply_ids = await collect_thread_ids(self.db, [comment_id])

        await self.db.execute(delete(Comment).where(Comment.id == comment_id))
        await self.db.commit()
        logger.event("comment_deleted", comment_id=comment_id, replies=len(reply_ids))

        thread_ids = [comment_id, *reply_ids]

        async def drop_likes():
            await self.db.execute(
                delete(Like).where(and_(Like.target_kind == LikeTarget.comment, Like.target_id.in_(thread_ids)))
            )

        async def drop_replies():
            if reply_ids:
                await self.db.execute(delete(Comment).where(Comment.id.in_(reply_ids)))

        plan = CascadePlan(self.db, "comment", comment_id)
        plan.add("comment likes", drop_likes)
        plan.add("replies", drop_replies)
        return await plan.run()

    def _thread_query(self, viewer_id: Optional[uuid.UUID]):
        return (
            select(
                Comment.id,
                Comment.content,
                Comment.parent_comment_id,
                Comment.created_at,
                Comment.updated_at,
                *owner_columns(),
                like_count_expr(LikeTarget.comment, Comment.id).label("likes_count"),
                is_liked_expr(LikeTarget.comment, Comment.id, viewer_id).label("is_liked"),
                _reply_count_expr(Comment.id).label("replies_count"),
            )
            .join(User, User.id == Comment.owner_id)
        )

    @staticmethod
    def _to_item(row) -> Dict[str, Any]:
        return {
            "id": row.id,
            "content": row.content,
            "parentComment": row.parent_comment_id,
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
            "owner": owner_projection(row),
            "likesCount": row.likes_count,
            "isLiked": bool(row.is_liked),
            "repliesCount": row.replies_count,
        }

    async def get_video_comments(self, video_id: uuid.UUID, viewer_id: Optional[uuid.UUID],
                                 params: PageParams) -> Dict[str, Any]:
        """Top-level comments on a video, newest first."""
        await self._get_or_404(Video, video_id, "Video not found")

        query = (
            self._thread_query(viewer_id)
            .where(and_(Comment.video_id == video_id, Comment.parent_comment_id.is_(None)))
            .order_by(desc(Comment.created_at), desc(Comment.id))
        )
        page = await paginate_query(self.db, query, params, self._to_item)
        return page.to_dict()

    async def get_replies(self, comment_id: uuid.UUID, viewer_id: Optional[uuid.UUID],
                          params: PageParams) -> Dict[str, Any]:
        """Direct replies to a comment, newest first."""
        await self._get_or_404(Comment, comment_id, "Comment not found")

        query = (
            self._thread_query(viewer_id)
            .where(Comment.parent_comment_id == comment_id)
            .order_by(desc(Comment.created_at), desc(Comment.id))
        )
        page = await paginate_query(self.db, query, params, self._to_item)
        return page.to_dict()
