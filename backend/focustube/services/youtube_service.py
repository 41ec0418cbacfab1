import logging
import re
from datetime import datetime
from typing import Optional

import httpx

from focustube.config import settings
from focustube.schemas.channel import ChannelData, VideoData

logger = logging.getLogger(__name__)

_CHANNEL_ID_URL = re.compile(r"youtube\.com/channel/([a-zA-Z0-9_-]+)")
_HANDLE_URL = re.compile(r"youtube\.com/@([a-zA-Z0-9_.-]+)")
_CUSTOM_URL = re.compile(r"youtube\.com/c/([a-zA-Z0-9_-]+)")
_USER_URL = re.compile(r"youtube\.com/user/([a-zA-Z0-9_-]+)")
_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


class YoutubeApiError(Exception):
    """The YouTube Data API is unreachable, misconfigured or returned an error."""


def parse_channel_input(raw: str) -> Optional[tuple[str, str]]:
    """
    Classify what the user pasted into ("id" | "handle" | "search", value).
    Returns None for blank input.
    """
    text = raw.strip()
    if not text:
        return None

    match = _CHANNEL_ID_URL.search(text)
    if match:
        return "id", match.group(1)

    for pattern in (_HANDLE_URL, _CUSTOM_URL, _USER_URL):
        match = pattern.search(text)
        if match:
            return "handle", match.group(1)

    if text.startswith("@"):
        return "handle", text[1:]

    if text.startswith("UC") and len(text) == 24:
        return "id", text

    return "search", text


def format_count(count: Optional[str], suffix: str = "") -> Optional[str]:
    """'1234567' -> '1.2M'. Non-numeric or missing counts pass through."""
    if not count:
        return None
    try:
        num = int(count)
    except ValueError:
        return count
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M{suffix}"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K{suffix}"
    return f"{count}{suffix}"


def format_duration(iso_duration: Optional[str]) -> Optional[str]:
    """'PT1H2M3S' -> '1:02:03', 'PT4M5S' -> '4:05'."""
    if not iso_duration:
        return None
    match = _ISO_DURATION.fullmatch(iso_duration)
    if not match:
        return None
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


class YoutubeService:
    """
    Minimal YouTube Data API v3 client: channel lookup, channel search and
    latest uploads of a channel.
    """

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._api_key = api_key if api_key is not None else settings.YOUTUBE_API_KEY
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=settings.YOUTUBE_API_BASE, timeout=10, transport=self._transport)

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict) -> dict:
        if not self._api_key:
            raise YoutubeApiError("YouTube API key is not configured")
        try:
            resp = await client.get(path, params={**params, "key": self._api_key})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"YouTube API {path} returned {e.response.status_code}")
            raise YoutubeApiError(f"YouTube API error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"YouTube API request error on {path}: {e}")
            raise YoutubeApiError(f"YouTube API error: {e}") from e
        return resp.json()

    @staticmethod
    def _normalize_channel(item: dict) -> ChannelData:
        snippet = item.get("snippet", {})
        thumbnails = snippet.get("thumbnails", {})
        thumb = thumbnails.get("medium") or thumbnails.get("default") or {}
        statistics = item.get("statistics", {})
        uploads = item.get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
        return ChannelData(
            channel_id=item["id"],
            title=snippet.get("title", ""),
            description=snippet.get("description"),
            thumbnail_url=thumb.get("url"),
            subscriber_count=format_count(statistics.get("subscriberCount")),
            video_count=statistics.get("videoCount"),
            uploads_playlist_id=uploads,
            custom_url=snippet.get("customUrl"),
        )

    async def _channels(self, client: httpx.AsyncClient, **selector) -> list[ChannelData]:
        data = await self._get(
            client,
            "/channels",
            {"part": "snippet,statistics,contentDetails", **selector},
        )
        return [self._normalize_channel(item) for item in data.get("items", [])]

    async def get_channel_by_id(self, channel_id: str) -> Optional[ChannelData]:
        async with self._client() as client:
            channels = await self._channels(client, id=channel_id)
        return channels[0] if channels else None

    async def get_channel_by_handle(self, handle: str) -> Optional[ChannelData]:
        async with self._client() as client:
            channels = await self._channels(client, forHandle=handle.lstrip("@"))
        return channels[0] if channels else None

    async def search_channels(self, query: str, max_results: int = 10) -> list[ChannelData]:
        if not query.strip():
            return []
        async with self._client() as client:
            data = await self._get(
                client,
                "/search",
                {"part": "snippet", "type": "channel", "q": query, "maxResults": max_results},
            )
            ids = [item["id"]["channelId"] for item in data.get("items", []) if item.get("id", {}).get("channelId")]
            if not ids:
                return []
            return await self._channels(client, id=",".join(ids))

    async def resolve_channel(self, raw: str) -> Optional[ChannelData]:
        """Look up whatever the user typed; falls back to a 1-result search."""
        parsed = parse_channel_input(raw)
        if parsed is None:
            return None
        kind, value = parsed

        channel = None
        if kind == "id":
            channel = await self.get_channel_by_id(value)
        elif kind == "handle":
            channel = await self.get_channel_by_handle(value)

        if channel is None:
            results = await self.search_channels(value, max_results=1)
            channel = results[0] if results else None
        return channel

    async def get_channel_videos(self, uploads_playlist_id: str, max_results: int = 20) -> list[VideoData]:
        """Latest uploads of a channel with duration and statistics."""
        if not uploads_playlist_id:
            return []
        async with self._client() as client:
            playlist = await self._get(
                client,
                "/playlistItems",
                {"part": "snippet", "playlistId": uploads_playlist_id, "maxResults": max_results},
            )
            items = playlist.get("items", [])
            if not items:
                return []

            video_ids = [item["snippet"]["resourceId"]["videoId"] for item in items]
            details = await self._get(
                client,
                "/videos",
                {"part": "contentDetails,statistics", "id": ",".join(video_ids)},
            )

        details_by_id = {d["id"]: d for d in details.get("items", [])}
        videos = []
        for item in items:
            snippet = item["snippet"]
            video_id = snippet["resourceId"]["videoId"]
            detail = details_by_id.get(video_id, {})
            thumbnails = snippet.get("thumbnails", {})
            medium = thumbnails.get("medium") or thumbnails.get("default") or {}
            high = thumbnails.get("high") or medium
            stats = detail.get("statistics", {})
            videos.append(VideoData(
                video_id=video_id,
                channel_id=snippet.get("videoOwnerChannelId") or snippet.get("channelId"),
                title=snippet.get("title", ""),
                description=snippet.get("description"),
                thumbnail_url=medium.get("url"),
                thumbnail_high_url=high.get("url"),
                published_at=datetime.fromisoformat(snippet["publishedAt"].replace("Z", "+00:00")),
                duration=format_duration(detail.get("contentDetails", {}).get("duration")),
                view_count=stats.get("viewCount"),
                like_count=stats.get("likeCount"),
            ))
        return videos


youtube_service = YoutubeService()


def get_youtube_service() -> YoutubeService:
    return youtube_service
