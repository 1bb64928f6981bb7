"""
Tests for viewing history service.
"""
from datetime import timedelta

from vidshare.web.app.models import WatchHistoryEntry, utcnow
from vidshare.web.app.services.pagination import PageParams
from vidshare.web.app.services.viewing_history_service import ViewingHistoryService


class TestViewingHistoryService:
    """Watch history is an ordered set."""

    async def test_record_is_idempotent(self, db_session, alice, bob, make_video):
        video = await make_video(alice)
        service = ViewingHistoryService(db_session)

        assert await service.record(bob.id, video.id) is True
        assert await service.record(bob.id, video.id) is False

        result = await service.get_watch_history(bob.id, PageParams())
        assert result["totalDocs"] == 1

    async def test_history_order_and_visibility(self, db_session, alice, bob, make_video):
        first = await make_video(alice, title="watched first")
        second = await make_video(alice, title="watched second")
        gone = await make_video(alice, title="unpublished later", is_published=False)
        now = utcnow()
        db_session.add_all([
            WatchHistoryEntry(user_id=bob.id, video_id=first.id, watched_at=now - timedelta(hours=2)),
            WatchHistoryEntry(user_id=bob.id, video_id=second.id, watched_at=now - timedelta(hours=1)),
            WatchHistoryEntry(user_id=bob.id, video_id=gone.id, watched_at=now),
        ])
        await db_session.commit()

        result = await ViewingHistoryService(db_session).get_watch_history(bob.id, PageParams())

        assert [doc["title"] for doc in result["docs"]] == ["watched second", "watched first"]
        assert result["docs"][0]["owner"]["username"] == "alice"
