"""FastAPI dependency injection: hands out the components built at startup.

Long-lived components (record store, lookup cache, outbox, services) live on
``app.state``; they are created in the application lifespan, never at import.
"""

from fastapi import Header, HTTPException, Request, status

from scanback.application.interfaces import AuthorizationCheck
from scanback.application.services import (
    ContactUpdateService,
    NotificationOutbox,
    PublicLookupCache,
    TagLifecycleService,
)
from scanback.infrastructure.qr.qr_renderer import QrImageRenderer


def get_lifecycle_service(request: Request) -> TagLifecycleService:
    return request.app.state.lifecycle_service


def get_contact_update_service(request: Request) -> ContactUpdateService:
    return request.app.state.contact_update_service


def get_lookup_cache(request: Request) -> PublicLookupCache:
    return request.app.state.lookup_cache


def get_outbox(request: Request) -> NotificationOutbox:
    return request.app.state.outbox


def get_authorization(request: Request) -> AuthorizationCheck:
    return request.app.state.authorization


def get_qr_renderer(request: Request) -> QrImageRenderer:
    return request.app.state.qr_renderer


async def get_requester_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """Identity of the caller, as established by the upstream auth layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing requester identity"
        )
    return x_user_id.strip()
