from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from focustube.config import settings
from focustube.database import engine, Base
from focustube.logging_config import setup_logging
from focustube.routes import router as api_router
from focustube.models import (  # Import models to register them with Base
    Profile,
    YoutubeChannel,
    ChannelSubscription,
    ChannelCategory,
    ChannelCategoryChannel,
    YoutubeVideo,
    UserVideoState,
    WatchLater,
    DailyWatchSession,
)

setup_logging()
logger = logging.getLogger("focustube.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not settings.YOUTUBE_API_KEY:
        logger.warning("YOUTUBE_API_KEY is not set, adding and refreshing channels will fail")
    logger.info("FocusTube API started")

    yield

    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="FocusTube",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {"status": "ok"}
