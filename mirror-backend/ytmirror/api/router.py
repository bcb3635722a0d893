from fastapi import APIRouter
from ytmirror.api.routes.health import router as health
from ytmirror.api.routes.subscriptions import router as subscriptions
from ytmirror.api.routes.channels import router as channels
from ytmirror.api.routes.playlists import router as playlists
from ytmirror.api.routes.videos import router as videos

router = APIRouter()
router.include_router(health)
router.include_router(subscriptions)
router.include_router(channels)
router.include_router(playlists)
router.include_router(videos)
