from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from focustube.models import ChannelSubscription, YoutubeChannel, YoutubeVideo
from focustube.services.category_service import CategoryService
from focustube.services.video_service import VideoService, WATCHED_THRESHOLD_SECONDS

SCIENCE = "UC" + "s" * 22
COOKING = "UC" + "k" * 22
MUSIC = "UC" + "m" * 22
NOT_SUBSCRIBED = "UC" + "n" * 22

BASE = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


async def _seed_feed(db, user):
    """Three subscribed channels with three videos each, one unsubscribed channel."""
    for index, channel_id in enumerate((SCIENCE, COOKING, MUSIC, NOT_SUBSCRIBED)):
        db.add(YoutubeChannel(channel_id=channel_id, title=channel_id[2].upper() + " channel"))
        for n in range(3):
            db.add(YoutubeVideo(
                video_id=f"{channel_id[2]}-video-{n}",
                channel_id=channel_id,
                title=f"{channel_id[2]} #{n}",
                published_at=BASE + timedelta(hours=n * 4 + index),
            ))
        if channel_id != NOT_SUBSCRIBED:
            db.add(ChannelSubscription(user_id=user.id, channel_id=channel_id))
    await db.flush()


async def test_feed_is_newest_first_from_subscriptions(db, user):
    await _seed_feed(db, user)

    feed = await VideoService.get_feed(db, user, limit=50)
    ids = [v.video_id for v in feed.videos]

    assert len(ids) == 9
    assert not any(i.startswith("n-") for i in ids)
    assert ids[0] == "m-video-2"
    published = [v.published_at for v in feed.videos]
    assert published == sorted(published, reverse=True)
    assert feed.has_more is False
    assert feed.next_cursor is None
    assert feed.videos[0].channel.title == "M channel"


async def test_feed_cursor_pagination(db, user):
    await _seed_feed(db, user)

    first = await VideoService.get_feed(db, user, limit=4)
    assert len(first.videos) == 4
    assert first.has_more is True
    assert first.next_cursor == first.videos[-1].published_at

    second = await VideoService.get_feed(db, user, cursor=first.next_cursor, limit=4)
    third = await VideoService.get_feed(db, user, cursor=second.next_cursor, limit=4)

    seen = [v.video_id for page in (first, second, third) for v in page.videos]
    assert len(seen) == len(set(seen)) == 9
    assert third.has_more is False


async def test_feed_filters(db, user):
    await _seed_feed(db, user)
    learning = await CategoryService.create_category(db, user, "Learning")
    await CategoryService.create_category(db, user, "Empty")
    await CategoryService.set_channel_categories(db, user, SCIENCE, [learning.id])
    await CategoryService.set_channel_categories(db, user, COOKING, [learning.id])

    by_channel = await VideoService.get_feed(db, user, channel_id=MUSIC)
    assert {v.channel_id for v in by_channel.videos} == {MUSIC}

    by_category = await VideoService.get_feed(db, user, category_id=str(learning.id))
    assert {v.channel_id for v in by_category.videos} == {SCIENCE, COOKING}

    uncategorized = await VideoService.get_feed(db, user, category_id="uncategorized")
    assert {v.channel_id for v in uncategorized.videos} == {MUSIC}

    # Only subscribed channels, whatever is asked for
    assert (await VideoService.get_feed(db, user, channel_id=NOT_SUBSCRIBED)).videos == []

    with pytest.raises(HTTPException) as exc:
        await VideoService.get_feed(db, user, category_id="not-a-uuid")
    assert exc.value.status_code == 400


async def test_feed_without_subscriptions_is_empty(db, user):
    feed = await VideoService.get_feed(db, user)
    assert feed.videos == []
    assert feed.has_more is False


async def test_feed_carries_user_state(db, user):
    await _seed_feed(db, user)
    await VideoService.mark_video_watched(db, user, "s-video-0")
    await VideoService.update_video_progress(db, user, "s-video-1", 90)

    feed = await VideoService.get_feed(db, user, channel_id=SCIENCE)
    state = {v.video_id: (v.watched, v.progress_seconds) for v in feed.videos}
    assert state == {"s-video-0": (True, 0), "s-video-1": (False, 90), "s-video-2": (False, 0)}


async def test_watch_delta_rules(db, user):
    first = await VideoService.log_video_watch_delta(
        db, user, "vid", 10, progress_seconds=100, is_new_session=True
    )
    assert first.total_watched_seconds == 10
    assert first.watched is False

    await VideoService.log_video_watch_delta(db, user, "vid", -50, progress_seconds=40)
    state = await VideoService.get_video_state(db, user, "vid")
    assert state.total_watched_seconds == 10
    assert state.progress_seconds == 100
    first_watched_at = state.first_watched_at

    crossed = await VideoService.log_video_watch_delta(
        db, user, "vid", WATCHED_THRESHOLD_SECONDS - 10, is_new_session=True
    )
    assert crossed.total_watched_seconds == WATCHED_THRESHOLD_SECONDS
    assert crossed.watched is True

    state = await VideoService.get_video_state(db, user, "vid")
    assert state.watch_count == 2
    assert state.watched is True
    assert state.watched_at is not None
    assert state.first_watched_at == first_watched_at


async def test_completion_marks_watched_immediately(db, user):
    result = await VideoService.log_video_watch_delta(db, user, "short", 3, completed=True)
    assert result.watched is True
    state = await VideoService.get_video_state(db, user, "short")
    assert state.completed is True


async def test_mark_unwatched_clears_timestamp(db, user):
    await VideoService.mark_video_watched(db, user, "vid")
    state = await VideoService.mark_video_watched(db, user, "vid", watched=False)
    assert state.watched is False
    assert state.watched_at is None


async def test_history_and_continue_watching(db, user):
    await _seed_feed(db, user)
    await VideoService.log_video_watch_delta(db, user, "s-video-0", 5, progress_seconds=5)
    await VideoService.log_video_watch_delta(db, user, "k-video-0", 60, progress_seconds=60)
    await VideoService.update_video_progress(db, user, "m-video-0", 200, completed=True)

    history = await VideoService.get_watch_history(db, user)
    assert {h.video_id for h in history} == {"s-video-0", "k-video-0", "m-video-0"}
    assert all(h.video is not None for h in history)

    watched_only = await VideoService.get_watch_history(db, user, include_partial=False)
    assert {h.video_id for h in watched_only} == {"k-video-0", "m-video-0"}

    continuing = await VideoService.get_continue_watching(db, user)
    assert {h.video_id for h in continuing} == {"s-video-0", "k-video-0"}
    assert continuing[0].video.channel.title in ("S channel", "K channel")


async def test_watch_later(db, user):
    await _seed_feed(db, user)

    assert await VideoService.add_to_watch_later(db, user, "s-video-0") is True
    assert await VideoService.add_to_watch_later(db, user, "s-video-0") is False
    assert await VideoService.toggle_watch_later(db, user, "k-video-1") is True

    entries = await VideoService.get_watch_later(db, user)
    assert {e.video_id for e in entries} == {"s-video-0", "k-video-1"}

    status = await VideoService.get_watch_later_status(db, user, ["s-video-0", "k-video-1", "m-video-0"])
    assert status == {"s-video-0": True, "k-video-1": True, "m-video-0": False}

    assert await VideoService.toggle_watch_later(db, user, "k-video-1") is False
    await VideoService.remove_from_watch_later(db, user, "s-video-0")
    assert await VideoService.get_watch_later(db, user) == []


async def test_video_endpoints(client, auth_headers, session_factory, user_id):
    async with session_factory() as session:
        session.add(YoutubeChannel(channel_id=SCIENCE, title="S channel"))
        session.add(YoutubeVideo(video_id="s-video-0", channel_id=SCIENCE, title="s #0", published_at=BASE))
        await session.commit()

    # Provision the profile, then subscribe it
    await client.get("/api/v1/users/me", headers=auth_headers)
    async with session_factory() as session:
        session.add(ChannelSubscription(user_id=user_id, channel_id=SCIENCE))
        await session.commit()

    resp = await client.get("/api/v1/videos/feed", headers=auth_headers)
    assert [v["video_id"] for v in resp.json()["videos"]] == ["s-video-0"]

    resp = await client.get("/api/v1/videos/s-video-0/state", headers=auth_headers)
    assert resp.status_code == 404

    resp = await client.post(
        "/api/v1/videos/s-video-0/watch-delta",
        json={"delta_seconds": 45, "progress_seconds": 45, "is_new_session": True},
        headers=auth_headers,
    )
    assert resp.json() == {"total_watched_seconds": 45, "watched": True}

    resp = await client.get("/api/v1/videos/s-video-0/state", headers=auth_headers)
    assert resp.json()["watch_count"] == 1

    resp = await client.put("/api/v1/videos/s-video-0/progress", json={"progress_seconds": 50}, headers=auth_headers)
    assert resp.json()["progress_seconds"] == 50

    resp = await client.get("/api/v1/videos/continue-watching", headers=auth_headers)
    assert [h["video_id"] for h in resp.json()] == ["s-video-0"]

    resp = await client.put("/api/v1/videos/watch-later/s-video-0", headers=auth_headers)
    assert resp.json() == {"in_watch_later": True}
    resp = await client.post("/api/v1/videos/watch-later/status", json={"video_ids": ["s-video-0"]}, headers=auth_headers)
    assert resp.json() == {"s-video-0": True}
    resp = await client.post("/api/v1/videos/watch-later/s-video-0/toggle", headers=auth_headers)
    assert resp.json() == {"in_watch_later": False}

    resp = await client.get("/api/v1/videos/history", headers=auth_headers)
    assert resp.json()[0]["video"]["title"] == "s #0"

    resp = await client.delete("/api/v1/users/me", headers=auth_headers)
    assert resp.status_code == 204
    resp = await client.get("/api/v1/videos/history", headers=auth_headers)
    assert resp.json() == []
