"""Helpers shared by the tag endpoints: error mapping, responses, ownership."""

from fastapi import HTTPException, status

from scanback.application.interfaces import AuthorizationCheck
from scanback.application.schemas.tag import PublicTagResponse, TagResponse
from scanback.application.services import TagLifecycleService
from scanback.config import get_settings
from scanback.domain.entities import PublicTagView, TagRecord
from scanback.domain.exceptions import (
    AlreadyActivatedError,
    AlreadyFoundError,
    InvalidOrExpiredOTPError,
    InvalidStatusTransitionError,
    NotActivatedError,
    PatchConflictError,
    StoreTimeoutError,
    TagLifecycleError,
    TagNotFoundError,
    UniqueConstraintViolationError,
)

_STATUS_BY_ERROR: dict[type[TagLifecycleError], int] = {
    TagNotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyActivatedError: status.HTTP_409_CONFLICT,
    AlreadyFoundError: status.HTTP_409_CONFLICT,
    NotActivatedError: status.HTTP_409_CONFLICT,
    PatchConflictError: status.HTTP_409_CONFLICT,
    InvalidStatusTransitionError: status.HTTP_409_CONFLICT,
    InvalidOrExpiredOTPError: status.HTTP_400_BAD_REQUEST,
    UniqueConstraintViolationError: status.HTTP_503_SERVICE_UNAVAILABLE,
    StoreTimeoutError: status.HTTP_504_GATEWAY_TIMEOUT,
}


def to_http_error(exc: TagLifecycleError) -> HTTPException:
    code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=str(exc))


def scan_url(code: str) -> str:
    return f"{get_settings().scan_base_url.rstrip('/')}/{code}"


def tag_response(record: TagRecord) -> TagResponse:
    response = TagResponse.model_validate(record, from_attributes=True)
    response.scan_url = scan_url(record.code)
    return response


def public_response(view: PublicTagView) -> PublicTagResponse:
    response = PublicTagResponse.model_validate(view, from_attributes=True)
    response.scan_url = scan_url(view.code)
    return response


async def owned_tag(
    code: str,
    requester: str,
    service: TagLifecycleService,
    authorization: AuthorizationCheck,
) -> TagRecord:
    """Load a tag and make sure ``requester`` owns it."""
    try:
        record = await service.get_tag(code)
    except TagLifecycleError as e:
        raise to_http_error(e)
    if not authorization.is_authorized(requester, record.owner):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return record
