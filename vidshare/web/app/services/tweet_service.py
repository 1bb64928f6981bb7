"""
Short text posts on a user's channel.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, desc, select

from ..models import Like, LikeTarget, Tweet, User
from .base_service import BaseService
from .logging_service import get_logger
from .mutation_guard import CascadePlan, clean_content, ensure_owner
from .pagination import PageParams, paginate_query
from .relationship_index import is_liked_expr, like_count_expr, owner_columns, owner_projection

logger = get_logger("tweet")


def serialize_tweet(tweet: Tweet) -> Dict[str, Any]:
    return {
        "id": tweet.id,
        "content": tweet.content,
        "owner": tweet.owner_id,
        "createdAt": tweet.created_at,
        "updatedAt": tweet.updated_at,
    }


class TweetService(BaseService):

    async def create_tweet(self, owner_id: uuid.UUID, content: Optional[str]) -> Dict[str, Any]:
        tweet = Tweet(owner_id=owner_id, content=clean_content(content, "Tweet content"))
        self.db.add(tweet)
        await self.db.commit()
        await self.db.refresh(tweet)

        logger.event("tweet_created", tweet_id=tweet.id, owner_id=owner_id)
        return serialize_tweet(tweet)

    async def update_tweet(self, tweet_id: uuid.UUID, requester_id: uuid.UUID,
                           content: Optional[str]) -> Dict[str, Any]:
        text = clean_content(content, "Tweet content")
        tweet = await self._get_or_404(Tweet, tweet_id, "Tweet not found")
        ensure_owner(tweet.owner_id, requester_id, "update this tweet")

        tweet.content = text
        await self.db.commit()
        await self.db.refresh(tweet)
        return serialize_tweet(tweet)

    async def delete_tweet(self, tweet_id: uuid.UUID, requester_id: uuid.UUID) -> List[str]:
        tweet = await self._get_or_404(Tweet, tweet_id, "Tweet not found")
        ensure_owner(tweet.owner_id, requester_id, "delete this tweet")

        await self.db.execute(delete(Tweet).where(Tweet.id == tweet_id))
        await self.db.commit()
        logger.event("tweet_deleted", tweet_id=tweet_id, owner_id=requester_id)

        async def drop_likes():
            await self.db.execute(
                delete(Like).where(and_(Like.target_kind == LikeTarget.tweet, Like.target_id == tweet_id))
            )

        plan = CascadePlan(self.db, "tweet", tweet_id)
        plan.add("tweet likes", drop_likes)
        return await plan.run()

    async def get_user_tweets(self, user_id: uuid.UUID, viewer_id: Optional[uuid.UUID],
                              params: PageParams) -> Dict[str, Any]:
        """A user's tweets, newest first, with like counts relative to the viewer."""
        await self._get_or_404(User, user_id, "User not found")

        query = (
            select(
                Tweet.id,
                Tweet.content,
                Tweet.created_at,
                Tweet.updated_at,
                *owner_columns(),
                like_count_expr(LikeTarget.tweet, Tweet.id).label("likes_count"),
                is_liked_expr(LikeTarget.tweet, Tweet.id, viewer_id).label("is_liked"),
            )
            .join(User, User.id == Tweet.owner_id)
            .where(Tweet.owner_id == user_id)
            .order_by(desc(Tweet.created_at), desc(Tweet.id))
        )

        def to_item(row) -> Dict[str, Any]:
            return {
                "id": row.id,
                "content": row.content,
                "createdAt": row.created_at,
                "updatedAt": row.updated_at,
                "owner": owner_projection(row),
                "likesCount": row.likes_count,
                "isLiked": bool(row.is_liked),
            }

        page = await paginate_query(self.db, query, params, to_item)
        return page.to_dict()
