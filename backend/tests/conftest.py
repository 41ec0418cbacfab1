import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["YOUTUBE_API_KEY"] = ""

import uuid
from urllib.parse import urlsplit

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from focustube.database import Base, get_db
from focustube.models import Profile
from focustube.security import create_access_token
from focustube.services.youtube_service import YoutubeService, get_youtube_service


class FakeYoutubeApi:
    """
    In-memory stand-in for the YouTube Data API, served through
    httpx.MockTransport so YoutubeService runs unchanged.
    """

    def __init__(self):
        self.channels = {}
        self.uploads = {}
        self.fail_paths = set()
        self.requests = []

    def add_channel(self, channel_id, title, handle, videos=()):
        self.channels[channel_id] = {
            "id": channel_id,
            "snippet": {
                "title": title,
                "description": f"{title} description",
                "customUrl": f"@{handle}",
                "thumbnails": {"medium": {"url": f"https://img.example/{channel_id}.jpg"}},
            },
            "statistics": {"subscriberCount": "1234567", "videoCount": str(len(videos))},
            "contentDetails": {"relatedPlaylists": {"uploads": "UU" + channel_id[2:]}},
        }
        self.uploads["UU" + channel_id[2:]] = [
            {"video_id": video_id, "channel_id": channel_id, "title": f"{title} #{i}", "published_at": published_at}
            for i, (video_id, published_at) in enumerate(videos)
        ]

    def _handler(self, request: httpx.Request) -> httpx.Response:
        path = urlsplit(str(request.url)).path.rsplit("/", 1)[-1]
        params = request.url.params
        self.requests.append((path, dict(params)))

        if path in self.fail_paths:
            return httpx.Response(500, json={"error": {"message": "backend error"}})

        if path == "channels":
            if "id" in params:
                ids = params["id"].split(",")
                items = [self.channels[i] for i in ids if i in self.channels]
            else:
                handle = "@" + params["forHandle"].lower()
                items = [c for c in self.channels.values() if c["snippet"]["customUrl"].lower() == handle]
            return httpx.Response(200, json={"items": items})

        if path == "search":
            q = params["q"].lower()
            max_results = int(params.get("maxResults", 10))
            items = [
                {"id": {"kind": "youtube#channel", "channelId": c["id"]}}
                for c in self.channels.values()
                if q in c["snippet"]["title"].lower()
            ][:max_results]
            return httpx.Response(200, json={"items": items})

        if path == "playlistItems":
            items = [
                {
                    "snippet": {
                        "resourceId": {"videoId": v["video_id"]},
                        "channelId": v["channel_id"],
                        "title": v["title"],
                        "description": "",
                        "publishedAt": v["published_at"],
                        "thumbnails": {
                            "medium": {"url": f"https://i.example/{v['video_id']}/m.jpg"},
                            "high": {"url": f"https://i.example/{v['video_id']}/h.jpg"},
                        },
                    }
                }
                for v in self.uploads.get(params["playlistId"], [])
            ]
            return httpx.Response(200, json={"items": items})

        if path == "videos":
            items = [
                {
                    "id": video_id,
                    "contentDetails": {"duration": "PT4M5S"},
                    "statistics": {"viewCount": "1000", "likeCount": "50"},
                }
                for video_id in params["id"].split(",")
            ]
            return httpx.Response(200, json={"items": items})

        return httpx.Response(404)

    def service(self, api_key: str = "test-key") -> YoutubeService:
        return YoutubeService(api_key=api_key, transport=httpx.MockTransport(self._handler))


@pytest.fixture
def youtube_api():
    return FakeYoutubeApi()


@pytest.fixture
def youtube(youtube_api):
    return youtube_api.service()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db):
    profile = Profile(id=uuid.uuid4(), email="viewer@example.com")
    db.add(profile)
    await db.flush()
    await db.refresh(profile)
    return profile


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id):
    token = create_access_token(user_id, email="viewer@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory, youtube):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_youtube_service] = lambda: youtube

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
