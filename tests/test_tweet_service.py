"""
Tests for tweet service.
"""
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from vidshare.web.app.errors import ForbiddenError, NotFoundError, ValidationError
from vidshare.web.app.models import Like, LikeTarget, Tweet, utcnow
from vidshare.web.app.services.pagination import PageParams
from vidshare.web.app.services.tweet_service import TweetService


class TestTweetService:
    """Tweet writes and the per-user tweet list."""

    async def test_create_and_update(self, db_session, alice, bob):
        service = TweetService(db_session)
        tweet = await service.create_tweet(alice.id, " hello world ")

        assert tweet["content"] == "hello world"

        updated = await service.update_tweet(tweet["id"], alice.id, "edited")
        assert updated["content"] == "edited"

        with pytest.raises(ForbiddenError):
            await service.update_tweet(tweet["id"], bob.id, "not mine")

    async def test_empty_content_rejected(self, db_session, alice):
        with pytest.raises(ValidationError):
            await TweetService(db_session).create_tweet(alice.id, "   ")

    async def test_delete_cascades_likes(self, db_session, alice, bob):
        service = TweetService(db_session)
        tweet = await service.create_tweet(alice.id, "bye")
        db_session.add(Like(target_kind=LikeTarget.tweet, target_id=tweet["id"], liked_by_id=bob.id))
        await db_session.commit()

        with pytest.raises(ForbiddenError):
            await service.delete_tweet(tweet["id"], bob.id)

        assert await service.delete_tweet(tweet["id"], alice.id) == ["tweet likes"]
        assert (await db_session.execute(select(func.count(Tweet.id)))).scalar_one() == 0
        assert (await db_session.execute(select(func.count(Like.id)))).scalar_one() == 0

    async def test_user_tweets(self, db_session, alice, bob):
        now = utcnow()
        older = Tweet(owner_id=alice.id, content="older", created_at=now - timedelta(hours=1))
        newer = Tweet(owner_id=alice.id, content="newer", created_at=now)
        db_session.add_all([older, newer, Tweet(owner_id=bob.id, content="bob's")])
        await db_session.commit()
        db_session.add(Like(target_kind=LikeTarget.tweet, target_id=older.id, liked_by_id=bob.id))
        await db_session.commit()

        result = await TweetService(db_session).get_user_tweets(alice.id, bob.id, PageParams())

        assert [doc["content"] for doc in result["docs"]] == ["newer", "older"]
        assert result["docs"][1]["likesCount"] == 1
        assert result["docs"][1]["isLiked"] is True
        assert result["docs"][0]["isLiked"] is False
        assert result["docs"][0]["owner"]["username"] == "alice"

    async def test_unknown_user(self, db_session, bob):
        with pytest.raises(NotFoundError):
            await TweetService(db_session).get_user_tweets(uuid.uuid4(), bob.id, PageParams())
