"""
Reverse lookups across the entity tables.

The ``*_expr`` builders return correlated scalar expressions to embed in a
view's SELECT, so counts and flags are computed by the database in the same
round trip as the rows they annotate. Each builder aliases its own table so
it never correlates against the same table in the outer query. The
``async`` helpers answer the same questions for a single entity.
"""
import uuid
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import and_, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..models import Comment, Like, LikeTarget, Subscription, User, Video


def subscriber_count_expr(channel_col) -> sa.ColumnElement:
    """Number of subscriptions whose channel is ``channel_col``."""
    sub = aliased(Subscription)
    return (
        select(func.count(sub.id))
        .where(sub.channel_id == channel_col)
        .scalar_subquery()
    )


def is_subscribed_expr(channel_col, subscriber_id: Optional[uuid.UUID]) -> sa.ColumnElement:
    """True when ``subscriber_id`` subscribes to ``channel_col``; False for anonymous viewers."""
    if subscriber_id is None:
        return sa.false()
    sub = aliased(Subscription)
    return exists().where(
        and_(sub.channel_id == channel_col, sub.subscriber_id == subscriber_id)
    )


def like_count_expr(kind: LikeTarget, target_col) -> sa.ColumnElement:
    like = aliased(Like)
    return (
        select(func.count(like.id))
        .where(and_(like.target_kind == kind, like.target_id == target_col))
        .scalar_subquery()
    )


def is_liked_expr(kind: LikeTarget, target_col, viewer_id: Optional[uuid.UUID]) -> sa.ColumnElement:
    if viewer_id is None:
        return sa.false()
    like = aliased(Like)
    return exists().where(
        and_(like.target_kind == kind, like.target_id == target_col, like.liked_by_id == viewer_id)
    )


def comment_count_expr(video_col) -> sa.ColumnElement:
    comment = aliased(Comment)
    return (
        select(func.count(comment.id))
        .where(comment.video_id == video_col)
        .scalar_subquery()
    )


def owner_columns(user=User):
    """Owner projection columns, labelled for ``owner_projection``."""
    return (
        user.id.label("owner_id"),
        user.username.label("owner_username"),
        user.full_name.label("owner_full_name"),
        user.avatar_url.label("owner_avatar_url"),
    )


def owner_projection(row) -> dict:
    return {
        "id": row.owner_id,
        "username": row.owner_username,
        "fullName": row.owner_full_name,
        "avatar": {"url": row.owner_avatar_url},
    }


async def count_subscribers(db: AsyncSession, channel_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count(Subscription.id)).where(Subscription.channel_id == channel_id)
    )
    return result.scalar_one()


async def find_like(
    db: AsyncSession, kind: LikeTarget, target_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[Like]:
    result = await db.execute(
        select(Like).where(
            and_(Like.target_kind == kind, Like.target_id == target_id, Like.liked_by_id == user_id)
        )
    )
    return result.scalar_one_or_none()


async def find_subscription(
    db: AsyncSession, subscriber_id: uuid.UUID, channel_id: uuid.UUID
) -> Optional[Subscription]:
    result = await db.execute(
        select(Subscription).where(
            and_(Subscription.subscriber_id == subscriber_id, Subscription.channel_id == channel_id)
        )
    )
    return result.scalar_one_or_none()


async def published_video_stats(db: AsyncSession, owner_id: uuid.UUID) -> tuple:
    """(count, total views) over an owner's published videos."""
    result = await db.execute(
        select(func.count(Video.id), func.coalesce(func.sum(Video.views), 0))
        .where(and_(Video.owner_id == owner_id, Video.is_published.is_(True)))
    )
    count, total_views = result.one()
    return count, int(total_views)
