"""V1 API router: aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from scanback.presentation.api.v1.endpoints.health import router as health_router
from scanback.presentation.api.v1.endpoints.tags import router as tags_router
from scanback.presentation.api.v1.endpoints.contact_updates import (
    router as contact_updates_router,
)

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(tags_router)
router.include_router(contact_updates_router)
