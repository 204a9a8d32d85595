"""OTP-gated contact update endpoints."""

from fastapi import APIRouter, Depends, status

from scanback.application.interfaces import AuthorizationCheck
from scanback.application.schemas.contact_update import (
    ContactUpdateChallengeResponse,
    ContactUpdateRequest,
    ContactUpdateVerify,
)
from scanback.application.schemas.tag import TagResponse
from scanback.application.services import (
    ContactUpdateService,
    NotificationOutbox,
    TagLifecycleService,
)
from scanback.domain.entities import LifecycleEvent
from scanback.domain.exceptions import TagLifecycleError
from scanback.infrastructure.dependencies import (
    get_authorization,
    get_contact_update_service,
    get_lifecycle_service,
    get_outbox,
    get_requester_id,
)
from scanback.presentation.api.v1.endpoints.common import owned_tag, tag_response, to_http_error

router = APIRouter(prefix="/tags", tags=["Contact Updates"])


@router.post(
    "/{code}/contact-update",
    response_model=ContactUpdateChallengeResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_contact_update(
    code: str,
    data: ContactUpdateRequest,
    requester: str = Depends(get_requester_id),
    service: TagLifecycleService = Depends(get_lifecycle_service),
    contact_updates: ContactUpdateService = Depends(get_contact_update_service),
    outbox: NotificationOutbox = Depends(get_outbox),
    authorization: AuthorizationCheck = Depends(get_authorization),
) -> ContactUpdateChallengeResponse:
    """Send a verification code for a new email and/or phone number."""
    record = await owned_tag(code, requester, service, authorization)
    try:
        challenge = await contact_updates.request_update(record.code, data)
    except TagLifecycleError as e:
        raise to_http_error(e)

    outbox.emit(
        LifecycleEvent.CONTACT_UPDATE_OTP,
        record,
        {
            "otp": challenge.otp,
            "deliver_to": challenge.deliver_to,
            "expires_at": challenge.expires_at.isoformat(),
        },
    )
    return ContactUpdateChallengeResponse(
        code=challenge.code,
        expires_at=challenge.expires_at,
        deliver_to=challenge.deliver_to,
    )


@router.post("/{code}/contact-update/verify", response_model=TagResponse)
async def verify_contact_update(
    code: str,
    data: ContactUpdateVerify,
    requester: str = Depends(get_requester_id),
    service: TagLifecycleService = Depends(get_lifecycle_service),
    contact_updates: ContactUpdateService = Depends(get_contact_update_service),
    authorization: AuthorizationCheck = Depends(get_authorization),
) -> TagResponse:
    """Apply the update once the emailed code checks out."""
    record = await owned_tag(code, requester, service, authorization)
    try:
        updated = await contact_updates.verify_and_apply(record.code, data.otp, data.update)
    except TagLifecycleError as e:
        raise to_http_error(e)
    return tag_response(updated)
