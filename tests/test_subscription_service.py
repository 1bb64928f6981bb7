"""
Tests for subscription service and the channel about view.
"""
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vidshare.web.app.errors import ConflictError, NotFoundError, ValidationError
from vidshare.web.app.models import Subscription, utcnow
from vidshare.web.app.services import subscription_service
from vidshare.web.app.services.channel_service import ChannelService
from vidshare.web.app.services.pagination import PageParams
from vidshare.web.app.services.subscription_service import SubscriptionService


class TestSubscriptionToggle:
    """Toggle semantics and self-subscription."""

    async def test_toggle_on_and_off(self, db_session, alice, carol):
        service = SubscriptionService(db_session)

        assert await service.toggle_subscription(carol.id, alice.id) == {"Subscribed": True}
        assert await service.toggle_subscription(carol.id, alice.id) == {"Subscribed": False}

        count = (await db_session.execute(select(func.count(Subscription.id)))).scalar_one()
        assert count == 0

    async def test_self_subscription_rejected(self, db_session, alice):
        with pytest.raises(ValidationError):
            await SubscriptionService(db_session).toggle_subscription(alice.id, alice.id)

        count = (await db_session.execute(select(func.count(Subscription.id)))).scalar_one()
        assert count == 0

    async def test_unknown_channel(self, db_session, alice):
        with pytest.raises(NotFoundError):
            await SubscriptionService(db_session).toggle_subscription(alice.id, uuid.uuid4())

    async def test_about_reflects_new_subscriber(self, db_session, alice, carol):
        await SubscriptionService(db_session).toggle_subscription(carol.id, alice.id)

        about = await ChannelService(db_session).get_about("alice")

        assert about["subscribersCount"] == 1


class TestSubscriptionLists:
    """Subscriber and subscription projections of the same relation."""

    async def test_projections_are_symmetric(self, db_session, alice, bob, carol):
        service = SubscriptionService(db_session)
        await service.toggle_subscription(bob.id, alice.id)
        await service.toggle_subscription(carol.id, alice.id)
        await service.toggle_subscription(carol.id, bob.id)

        subscribers = await service.get_channel_subscribers(alice.id, PageParams())
        carol_channels = await service.get_subscribed_channels(carol.id, PageParams())

        assert {doc["id"] for doc in subscribers["subscribers"]} == {bob.id, carol.id}
        assert subscribers["totalSubscribers"] == 2
        assert {doc["id"] for doc in carol_channels["subscribedChannels"]} == {alice.id, bob.id}
        assert carol_channels["totalChannels"] == 2
        assert all(doc["isSubscribed"] is True for doc in carol_channels["subscribedChannels"])

    async def test_subscriber_flags_and_counts(self, db_session, alice, bob, carol):
        """subscribedToSubscriber is true only where the channel subscribes back."""
        service = SubscriptionService(db_session)
        await service.toggle_subscription(bob.id, alice.id)
        await service.toggle_subscription(carol.id, alice.id)
        await service.toggle_subscription(alice.id, bob.id)
        await service.toggle_subscription(carol.id, bob.id)

        result = await service.get_channel_subscribers(alice.id, PageParams())
        by_name = {doc["username"]: doc for doc in result["subscribers"]}

        assert by_name["bob"]["subscribedToSubscriber"] is True
        assert by_name["bob"]["subscribersCount"] == 2
        assert by_name["carol"]["subscribedToSubscriber"] is False
        assert by_name["carol"]["subscribersCount"] == 0

    async def test_subscribers_newest_first(self, db_session, alice, bob, carol):
        now = utcnow()
        db_session.add_all([
            Subscription(subscriber_id=bob.id, channel_id=alice.id, created_at=now - timedelta(minutes=5)),
            Subscription(subscriber_id=carol.id, channel_id=alice.id, created_at=now),
        ])
        await db_session.commit()

        result = await SubscriptionService(db_session).get_channel_subscribers(alice.id, PageParams(limit=1))

        assert [doc["username"] for doc in result["subscribers"]] == ["carol"]
        assert result["hasNextPage"] is True

    async def test_subscribed_channel_counts(self, db_session, alice, bob, carol):
        service = SubscriptionService(db_session)
        await service.toggle_subscription(bob.id, alice.id)
        await service.toggle_subscription(carol.id, alice.id)

        result = await service.get_subscribed_channels(bob.id, PageParams())

        assert result["subscribedChannels"][0]["username"] == "alice"
        assert result["subscribedChannels"][0]["subscribersCount"] == 2


class TestChannelAbout:
    """Channel about view."""

    async def test_totals_over_published_videos(self, db_session, alice, make_video):
        await make_video(alice, views=5)
        await make_video(alice, views=7)
        await make_video(alice, views=100, is_published=False)

        about = await ChannelService(db_session).get_about("ALICE")

        assert about["username"] == "alice"
        assert about["videosCount"] == 2
        assert about["totalVideoViews"] == 12
        assert about["subscribersCount"] == 0
        assert "password_hash" not in about

    async def test_channel_without_videos(self, db_session, bob):
        about = await ChannelService(db_session).get_about("bob")

        assert about["videosCount"] == 0
        assert about["totalVideoViews"] == 0

    async def test_unknown_channel(self, db_session):
        with pytest.raises(NotFoundError):
            await ChannelService(db_session).get_about("ghost")


class TestSubscriptionRace:
    """A toggle whose insert collides with a concurrent one."""

    async def test_duplicate_insert_is_a_conflict(self, db_engine, db_session, alice, carol, monkeypatch):
        session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as other:
            other.add(Subscription(subscriber_id=carol.id, channel_id=alice.id))
            await other.commit()

        async def stale_lookup(*args, **kwargs):
            return None

        monkeypatch.setattr(subscription_service, "find_subscription", stale_lookup)

        with pytest.raises(ConflictError):
            await SubscriptionService(db_session).toggle_subscription(carol.id, alice.id)
        count = (await db_session.execute(select(func.count(Subscription.id)))).scalar_one()
        assert count == 1
