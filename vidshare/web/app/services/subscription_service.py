"""
Subscription toggle and the two subscription list views.
"""
import uuid
from typing import Any, Dict

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..models import Subscription, User
from .base_service import BaseService
from .logging_service import get_logger
from .mutation_guard import ensure_not_self
from .pagination import PageParams, paginate_query
from .relationship_index import find_subscription, is_subscribed_expr, subscriber_count_expr

logger = get_logger("subscription")


class SubscriptionService(BaseService):
    """Service for the subscriber -> channel relation."""

    async def toggle_subscription(self, subscriber_id: uuid.UUID, channel_id: uuid.UUID) -> Dict[str, bool]:
        """Subscribe when absent, unsubscribe when present.

        A duplicate insert that loses a race against a concurrent toggle is
        rejected by the unique (subscriber, channel) constraint.
        """
        ensure_not_self(subscriber_id, channel_id)
        await self._get_or_404(User, channel_id, "Channel not found")

        existing = await find_subscription(self.db, subscriber_id, channel_id)
        if existing is not None:
            await self.db.delete(existing)
            await self.db.commit()
            logger.event("unsubscribed", subscriber_id=subscriber_id, channel_id=channel_id)
            return {"Subscribed": False}

        self.db.add(Subscription(subscriber_id=subscriber_id, channel_id=channel_id))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Already subscribed to this channel")

        logger.event("subscribed", subscriber_id=subscriber_id, channel_id=channel_id)
        return {"Subscribed": True}

    async def get_channel_subscribers(self, channel_id: uuid.UUID, params: PageParams) -> Dict[str, Any]:
        """Users subscribed to ``channel_id``, newest subscription first.

        ``subscribedToSubscriber`` tells whether the channel subscribes back.
        """
        await self._get_or_404(User, channel_id, "Channel not found")

        query = (
            select(
                User.id,
                User.username,
                User.full_name,
                User.avatar_url,
                subscriber_count_expr(User.id).label("subscribers_count"),
                is_subscribed_expr(User.id, channel_id).label("subscribed_back"),
            )
            .join(Subscription, Subscription.subscriber_id == User.id)
            .where(Subscription.channel_id == channel_id)
            .order_by(desc(Subscription.created_at), desc(Subscription.id))
        )

        def to_item(row) -> Dict[str, Any]:
            return {
                "id": row.id,
                "username": row.username,
                "fullName": row.full_name,
                "avatar": {"url": row.avatar_url},
                "subscribersCount": row.subscribers_count,
                "subscribedToSubscriber": bool(row.subscribed_back),
            }

        page = await paginate_query(self.db, query, params, to_item)
        return page.to_dict(docs_key="subscribers", totalSubscribers=page.total_docs)

    async def get_subscribed_channels(self, subscriber_id: uuid.UUID, params: PageParams) -> Dict[str, Any]:
        """Channels ``subscriber_id`` subscribes to, newest subscription first."""
        query = (
            select(
                User.id,
                User.username,
                User.full_name,
                User.avatar_url,
                subscriber_count_expr(User.id).label("subscribers_count"),
            )
            .join(Subscription, Subscription.channel_id == User.id)
            .where(Subscription.subscriber_id == subscriber_id)
            .order_by(desc(Subscription.created_at), desc(Subscription.id))
        )

        def to_item(row) -> Dict[str, Any]:
            return {
                "id": row.id,
                "username": row.username,
                "fullName": row.full_name,
                "avatar": {"url": row.avatar_url},
                "subscribersCount": row.subscribers_count,
                # Every row came from one of the subscriber's own subscriptions
                "isSubscribed": True,
            }

        page = await paginate_query(self.db, query, params, to_item)
        return page.to_dict(docs_key="subscribedChannels", totalChannels=page.total_docs)
