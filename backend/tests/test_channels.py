import uuid

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from focustube.models import ChannelCategoryChannel, Profile, YoutubeVideo
from focustube.services.category_service import CategoryService
from focustube.services.channel_service import ChannelService

VERITASIUM = "UC" + "v" * 22
KURZGESAGT = "UC" + "k" * 22


def _add_fixture_channels(youtube_api, count=0):
    youtube_api.add_channel(VERITASIUM, "Veritasium", "veritasium", videos=[
        ("veri0000001", "2024-03-01T10:00:00Z"),
        ("veri0000002", "2024-03-03T10:00:00Z"),
    ])
    youtube_api.add_channel(KURZGESAGT, "Kurzgesagt", "kurzgesagt")
    extra = []
    for i in range(count):
        channel_id = "UC" + f"{i:02d}" + "x" * 20
        youtube_api.add_channel(channel_id, f"Channel {i}", f"channel{i}")
        extra.append(channel_id)
    return extra


async def test_add_channel_subscribes_and_caches_videos(db, user, youtube_api, youtube):
    _add_fixture_channels(youtube_api)

    channel = await ChannelService.add_channel_for_user(db, user, "@veritasium", youtube)
    assert channel.channel_id == VERITASIUM
    assert channel.title == "Veritasium"

    subscriptions = await ChannelService.get_user_channels(db, user)
    assert [s.channel_id for s in subscriptions] == [VERITASIUM]

    videos = (await db.execute(select(YoutubeVideo.video_id).order_by(YoutubeVideo.video_id))).scalars().all()
    assert videos == ["veri0000001", "veri0000002"]


async def test_duplicate_subscription_conflicts(db, user, youtube_api, youtube):
    _add_fixture_channels(youtube_api)
    await ChannelService.add_channel_for_user(db, user, VERITASIUM, youtube)

    with pytest.raises(HTTPException) as exc:
        await ChannelService.add_channel_for_user(db, user, "https://www.youtube.com/@veritasium", youtube)
    assert exc.value.status_code == 409


async def test_unknown_channel_not_found(db, user, youtube_api, youtube):
    _add_fixture_channels(youtube_api)
    with pytest.raises(HTTPException) as exc:
        await ChannelService.add_channel_for_user(db, user, "@nobody_here", youtube)
    assert exc.value.status_code == 404


async def test_free_tier_channel_limit(db, user, youtube_api, youtube):
    extra = _add_fixture_channels(youtube_api, count=5)
    for channel_id in extra:
        await ChannelService.add_channel_for_user(db, user, channel_id, youtube)

    with pytest.raises(HTTPException) as exc:
        await ChannelService.add_channel_for_user(db, user, VERITASIUM, youtube)
    assert exc.value.status_code == 400
    assert "5 channel limit" in exc.value.detail

    user.subscription_tier = "pro"
    await ChannelService.add_channel_for_user(db, user, VERITASIUM, youtube)
    assert await ChannelService.count_subscriptions(db, user) == 6


async def test_unlimited_tier_has_no_limit(user):
    user.subscription_tier = "unlimited"
    assert user.channel_limit is None
    user.subscription_tier = "something-else"
    assert user.channel_limit == 5


async def test_video_cache_failure_keeps_subscription(db, user, youtube_api, youtube):
    _add_fixture_channels(youtube_api)
    youtube_api.fail_paths.add("playlistItems")

    await ChannelService.add_channel_for_user(db, user, VERITASIUM, youtube)
    assert await ChannelService.get_subscribed_ids(db, user) == [VERITASIUM]


async def test_youtube_outage_is_bad_gateway(db, user, youtube_api, youtube):
    youtube_api.fail_paths.add("channels")
    with pytest.raises(HTTPException) as exc:
        await ChannelService.add_channel_for_user(db, user, VERITASIUM, youtube)
    assert exc.value.status_code == 502


async def test_add_with_categories_skips_foreign_ones(db, user, youtube_api, youtube):
    _add_fixture_channels(youtube_api)
    science = await CategoryService.create_category(db, user, "Science")

    await ChannelService.add_channel_for_user(
        db, user, VERITASIUM, youtube, category_ids=[science.id, uuid.uuid4()]
    )

    assert await CategoryService.get_channel_categories(db, user, VERITASIUM) == [science.id]


async def test_remove_channel_drops_category_links(db, user, youtube_api, youtube):
    _add_fixture_channels(youtube_api)
    science = await CategoryService.create_category(db, user, "Science")
    await ChannelService.add_channel_for_user(db, user, VERITASIUM, youtube, category_ids=[science.id])

    await ChannelService.remove_channel(db, user, VERITASIUM)

    assert await ChannelService.get_subscribed_ids(db, user) == []
    links = (await db.execute(select(ChannelCategoryChannel))).scalars().all()
    assert links == []

    with pytest.raises(HTTPException) as exc:
        await ChannelService.remove_channel(db, user, VERITASIUM)
    assert exc.value.status_code == 404


async def test_refresh_channel_videos(db, user, youtube_api, youtube):
    _add_fixture_channels(youtube_api)
    await ChannelService.add_channel_for_user(db, user, KURZGESAGT, youtube)

    youtube_api.add_channel(KURZGESAGT, "Kurzgesagt", "kurzgesagt", videos=[("kurz0000001", "2024-03-05T08:00:00Z")])
    assert await ChannelService.refresh_channel_videos(db, user, KURZGESAGT, youtube) == 1

    with pytest.raises(HTTPException) as exc:
        await ChannelService.refresh_channel_videos(db, user, "UCunknown", youtube)
    assert exc.value.status_code == 404


async def test_refresh_requires_subscription(db, user, youtube_api, youtube):
    _add_fixture_channels(youtube_api)
    await ChannelService.add_channel_for_user(db, user, KURZGESAGT, youtube)

    stranger = Profile(id=uuid.uuid4())
    db.add(stranger)
    await db.flush()
    requests_before = len(youtube_api.requests)

    # Cached by another user's subscription, but not this one's
    with pytest.raises(HTTPException) as exc:
        await ChannelService.refresh_channel_videos(db, stranger, KURZGESAGT, youtube)
    assert exc.value.status_code == 404
    assert len(youtube_api.requests) == requests_before


# ─── HTTP ────────────────────────────────────────────────────────────────────

async def test_channel_endpoints(client, auth_headers, youtube_api):
    _add_fixture_channels(youtube_api)

    resp = await client.post("/api/v1/channels", json={"input": "@kurzgesagt"}, headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["channel_id"] == KURZGESAGT

    resp = await client.post("/api/v1/channels", json={"input": "@kurzgesagt"}, headers=auth_headers)
    assert resp.status_code == 409

    resp = await client.get("/api/v1/channels", headers=auth_headers)
    body = resp.json()
    assert len(body) == 1
    assert body[0]["channel"]["title"] == "Kurzgesagt"

    resp = await client.get("/api/v1/channels/search", params={"q": "veri"}, headers=auth_headers)
    assert [c["channel_id"] for c in resp.json()] == [VERITASIUM]

    resp = await client.delete(f"/api/v1/channels/{KURZGESAGT}", headers=auth_headers)
    assert resp.status_code == 204
    resp = await client.get("/api/v1/channels", headers=auth_headers)
    assert resp.json() == []


async def test_extension_endpoints(client, auth_headers, youtube_api):
    _add_fixture_channels(youtube_api)

    resp = await client.get("/api/v1/extension/me", headers=auth_headers)
    assert resp.json()["channel_count"] == 0
    assert resp.json()["channel_limit"] == 5

    await client.post("/api/v1/categories/defaults", headers=auth_headers)
    resp = await client.get("/api/v1/extension/categories", headers=auth_headers)
    categories = resp.json()
    assert [c["name"] for c in categories] == ["Hobby", "Learning", "Personal", "Travel", "Work"]

    learning = next(c["id"] for c in categories if c["name"] == "Learning")
    resp = await client.post(
        "/api/v1/extension/add-channel",
        json={"input": f"https://www.youtube.com/channel/{VERITASIUM}", "category_ids": [learning]},
        headers=auth_headers,
    )
    assert resp.status_code == 200

    resp = await client.get(f"/api/v1/channels/{VERITASIUM}/categories", headers=auth_headers)
    assert resp.json() == [learning]

    # Errors the popup shows are always 400
    resp = await client.post(
        "/api/v1/extension/add-channel",
        json={"input": f"https://www.youtube.com/channel/{VERITASIUM}"},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You're already subscribed to this channel"

    resp = await client.get("/api/v1/extension/me", headers=auth_headers)
    assert resp.json()["channel_count"] == 1
