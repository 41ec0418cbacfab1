from fastapi import APIRouter
from focustube.routes.users import router as users_router
from focustube.routes.watch_time import router as watch_time_router
from focustube.routes.categories import router as categories_router
from focustube.routes.channels import router as channels_router
from focustube.routes.videos import router as videos_router
from focustube.routes.extension import router as extension_router

router = APIRouter()
router.include_router(users_router)
router.include_router(watch_time_router)
router.include_router(categories_router)
router.include_router(channels_router)
router.include_router(videos_router)
router.include_router(extension_router)
