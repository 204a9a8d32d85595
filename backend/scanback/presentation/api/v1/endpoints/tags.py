"""Tag lifecycle endpoints: issuance, activation, public lookup, scans, found reports."""

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status

from scanback.application.interfaces import AuthorizationCheck
from scanback.application.schemas.tag import (
    FoundReport,
    PublicTagResponse,
    ScanMetadata,
    ScanResponse,
    TagActivate,
    TagCreate,
    TagResponse,
    TagUpdate,
)
from scanback.application.services import PublicLookupCache, TagLifecycleService
from scanback.domain.entities import PublicTagView, TagKind
from scanback.domain.exceptions import TagLifecycleError, TagNotFoundError
from scanback.infrastructure.dependencies import (
    get_authorization,
    get_lifecycle_service,
    get_lookup_cache,
    get_qr_renderer,
    get_requester_id,
)
from scanback.infrastructure.qr.qr_renderer import QrImageRenderer
from scanback.presentation.api.v1.endpoints.common import (
    owned_tag,
    public_response,
    scan_url,
    tag_response,
    to_http_error,
)

router = APIRouter(prefix="/tags", tags=["Tags"])


async def _cached_view(
    code: str, service: TagLifecycleService, cache: PublicLookupCache
) -> PublicTagView:
    """Normalize ``code`` and read its public view through the TTL cache."""
    generator = service.code_generator
    normalized = generator.normalize(code)
    if not generator.is_well_formed(normalized):
        raise to_http_error(TagNotFoundError(normalized))
    try:
        return await cache.get(normalized)
    except TagLifecycleError as e:
        raise to_http_error(e)


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    requester: str = Depends(get_requester_id),
    service: TagLifecycleService = Depends(get_lifecycle_service),
) -> TagResponse:
    """Issue a new, not yet activated tag."""
    try:
        record = await service.create_tag(data, owner=requester)
    except TagLifecycleError as e:
        raise to_http_error(e)
    return tag_response(record)


@router.get("", response_model=list[TagResponse])
async def list_my_tags(
    kind: TagKind | None = Query(None, description="Filter by tag kind"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    requester: str = Depends(get_requester_id),
    service: TagLifecycleService = Depends(get_lifecycle_service),
) -> list[TagResponse]:
    """List the requester's tags, newest first."""
    try:
        records = await service.list_tags(requester, kind=kind, skip=skip, limit=limit)
    except TagLifecycleError as e:
        raise to_http_error(e)
    return [tag_response(r) for r in records]


@router.get("/{code}", response_model=PublicTagResponse)
async def lookup_tag(
    code: str,
    service: TagLifecycleService = Depends(get_lifecycle_service),
    cache: PublicLookupCache = Depends(get_lookup_cache),
) -> PublicTagResponse:
    """Public lookup served through the TTL cache."""
    return public_response(await _cached_view(code, service, cache))


@router.get(
    "/{code}/qr",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def tag_qr_image(
    code: str,
    service: TagLifecycleService = Depends(get_lifecycle_service),
    cache: PublicLookupCache = Depends(get_lookup_cache),
    renderer: QrImageRenderer = Depends(get_qr_renderer),
) -> Response:
    """PNG of the QR code to print on the tag; it encodes the public scan URL."""
    view = await _cached_view(code, service, cache)
    return Response(content=renderer.render_png(scan_url(view.code)), media_type="image/png")


@router.post("/{code}/activate", response_model=TagResponse)
async def activate_tag(
    code: str,
    data: TagActivate,
    requester: str = Depends(get_requester_id),
    service: TagLifecycleService = Depends(get_lifecycle_service),
) -> TagResponse:
    """Bind the tag to the requester and store their contact details."""
    try:
        record = await service.activate(code, data, requester)
    except TagLifecycleError as e:
        raise to_http_error(e)
    return tag_response(record)


@router.post("/{code}/scan", response_model=ScanResponse)
async def scan_tag(
    code: str,
    request: Request,
    body: ScanMetadata | None = Body(default=None),
    service: TagLifecycleService = Depends(get_lifecycle_service),
) -> ScanResponse:
    """Record a scan from the public page and return what the finder may see."""
    meta = ScanMetadata(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        location=body.location if body else None,
    )
    try:
        record = await service.record_scan(code, meta)
    except TagLifecycleError as e:
        raise to_http_error(e)

    view = PublicTagView.from_record(record)
    return ScanResponse(
        code=record.code,
        kind=record.kind,
        name=record.name,
        scan_count=record.scan_count,
        last_scanned_at=record.last_scanned_at,
        contact=view.contact.to_dict() if view.contact else None,
        message=view.contact.message if view.contact else None,
    )


@router.post("/{code}/found", response_model=PublicTagResponse)
async def report_found(
    code: str,
    data: FoundReport,
    service: TagLifecycleService = Depends(get_lifecycle_service),
) -> PublicTagResponse:
    """Public: a finder reports the item or pet as found."""
    try:
        record = await service.report_found(code, data)
    except TagLifecycleError as e:
        raise to_http_error(e)
    return public_response(PublicTagView.from_record(record))


@router.put("/{code}", response_model=TagResponse)
async def update_tag(
    code: str,
    data: TagUpdate,
    requester: str = Depends(get_requester_id),
    service: TagLifecycleService = Depends(get_lifecycle_service),
    authorization: AuthorizationCheck = Depends(get_authorization),
) -> TagResponse:
    """Partially update details, contact and settings.

    Email and phone changes go through the verified contact-update flow.
    """
    record = await owned_tag(code, requester, service, authorization)
    if data.contact is not None:
        if (data.contact.email and data.contact.email != record.contact.email) or (
            data.contact.phone and data.contact.phone != record.contact.phone
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Changing email or phone requires verification",
            )
    try:
        updated = await service.update_details(record.code, data)
    except TagLifecycleError as e:
        raise to_http_error(e)
    return tag_response(updated)


@router.post("/{code}/toggle-status", response_model=TagResponse)
async def toggle_tag_status(
    code: str,
    requester: str = Depends(get_requester_id),
    service: TagLifecycleService = Depends(get_lifecycle_service),
    authorization: AuthorizationCheck = Depends(get_authorization),
) -> TagResponse:
    """Switch the tag between active and inactive."""
    record = await owned_tag(code, requester, service, authorization)
    try:
        updated = await service.toggle_status(record.code)
    except TagLifecycleError as e:
        raise to_http_error(e)
    return tag_response(updated)


@router.delete("/{code}", response_model=TagResponse)
async def deactivate_tag(
    code: str,
    requester: str = Depends(get_requester_id),
    service: TagLifecycleService = Depends(get_lifecycle_service),
    authorization: AuthorizationCheck = Depends(get_authorization),
) -> TagResponse:
    """Take the tag out of service so it can be activated again."""
    record = await owned_tag(code, requester, service, authorization)
    try:
        updated = await service.deactivate(record.code)
    except TagLifecycleError as e:
        raise to_http_error(e)
    return tag_response(updated)
