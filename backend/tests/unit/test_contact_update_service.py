"""Unit tests for the OTP-gated ContactUpdateService."""

import pytest

from scanback.application.schemas.contact_update import ContactUpdateRequest
from scanback.application.schemas.tag import ContactPatch, TagUpdate
from scanback.application.services import (
    ContactUpdateService,
    PublicLookupCache,
    TagLifecycleService,
    generate_otp,
)
from scanback.domain.entities import ContactInfo, TagKind, TagRecord
from scanback.domain.exceptions import InvalidOrExpiredOTPError, TagNotFoundError
from scanback.infrastructure.auth.identity_check import IdentityEqualityCheck
from scanback.infrastructure.memory.pending_update_store import InMemoryPendingUpdateStore
from tests.fakes import FakeRecordStore, ManualDateTimeClock

CODE = "A1B2C3D4E5F6"


class SequenceOtp:
    """Deterministic OTP factory: 111111, 222222, ..."""

    def __init__(self):
        self._next = 1

    def __call__(self) -> str:
        otp = str(self._next) * 6
        self._next += 1
        return otp


@pytest.fixture
def store() -> FakeRecordStore:
    store = FakeRecordStore()
    store.seed(
        TagRecord(
            code=CODE,
            kind=TagKind.ITEM,
            details={"name": "Laptop"},
            contact=ContactInfo(name="Jane", phone="0821234567", email="jane@example.com"),
            owner="user-1",
            is_activated=True,
        )
    )
    return store


@pytest.fixture
def clock() -> ManualDateTimeClock:
    return ManualDateTimeClock()


@pytest.fixture
def cache(store) -> PublicLookupCache:
    return PublicLookupCache(store.find_public_view)


@pytest.fixture
def pending() -> InMemoryPendingUpdateStore:
    return InMemoryPendingUpdateStore()


@pytest.fixture
def flow(store, clock, cache, pending) -> ContactUpdateService:
    lifecycle = TagLifecycleService(
        store, authorization=IdentityEqualityCheck(), lookup_cache=cache, clock=clock
    )
    return ContactUpdateService(
        lifecycle,
        pending,
        otp_ttl_seconds=600,
        max_attempts=3,
        clock=clock,
        otp_factory=SequenceOtp(),
    )


def test_generated_otp_is_six_digits():
    for _ in range(200):
        otp = generate_otp()
        assert len(otp) == 6
        assert otp.isdigit()


@pytest.mark.asyncio
async def test_request_issues_challenge_to_new_email(flow, clock):
    challenge = await flow.request_update(
        CODE, ContactUpdateRequest(new_email="new@example.com")
    )

    assert challenge.otp == "111111"
    assert challenge.deliver_to == "new@example.com"
    assert challenge.changes_email is True
    assert (challenge.expires_at - clock.now).total_seconds() == 600


@pytest.mark.asyncio
async def test_phone_only_change_goes_to_current_email(flow):
    challenge = await flow.request_update(CODE, ContactUpdateRequest(new_phone="0839998888"))
    assert challenge.deliver_to == "jane@example.com"
    assert challenge.changes_email is False


@pytest.mark.asyncio
async def test_request_for_unknown_code(flow):
    with pytest.raises(TagNotFoundError):
        await flow.request_update("FFFFFFFFFFFF", ContactUpdateRequest(new_phone="0839998888"))


@pytest.mark.asyncio
async def test_verified_values_are_applied(flow, store):
    challenge = await flow.request_update(
        CODE, ContactUpdateRequest(new_email="new@example.com", new_phone="0839998888")
    )

    updated = await flow.verify_and_apply(
        CODE,
        challenge.otp,
        TagUpdate(
            details={"serial": "SN-42"},
            contact=ContactPatch(email="sneaky@example.com", message="Call me"),
        ),
    )

    assert updated.contact.email == "new@example.com"
    assert updated.contact.phone == "0839998888"
    assert updated.contact.message == "Call me"
    assert updated.details == {"name": "Laptop", "serial": "SN-42"}
    assert await flow.pending_for(CODE) is None


@pytest.mark.asyncio
async def test_otp_cannot_be_replayed(flow):
    challenge = await flow.request_update(CODE, ContactUpdateRequest(new_phone="0839998888"))
    await flow.verify_and_apply(CODE, challenge.otp, TagUpdate())

    with pytest.raises(InvalidOrExpiredOTPError):
        await flow.verify_and_apply(CODE, challenge.otp, TagUpdate())


@pytest.mark.asyncio
async def test_wrong_otp_leaves_record_unchanged(flow, store):
    await flow.request_update(CODE, ContactUpdateRequest(new_phone="0839998888"))

    with pytest.raises(InvalidOrExpiredOTPError):
        await flow.verify_and_apply(CODE, "000000", TagUpdate())

    record = await store.find_by_code(CODE)
    assert record.contact.phone == "0821234567"
    assert (await flow.pending_for(CODE)).attempts == 1


@pytest.mark.asyncio
async def test_pending_update_dropped_after_max_attempts(flow):
    challenge = await flow.request_update(CODE, ContactUpdateRequest(new_phone="0839998888"))

    for _ in range(3):
        with pytest.raises(InvalidOrExpiredOTPError):
            await flow.verify_and_apply(CODE, "000000", TagUpdate())

    assert await flow.pending_for(CODE) is None
    with pytest.raises(InvalidOrExpiredOTPError):
        await flow.verify_and_apply(CODE, challenge.otp, TagUpdate())


@pytest.mark.asyncio
async def test_expired_otp_is_rejected(flow, clock, store):
    challenge = await flow.request_update(CODE, ContactUpdateRequest(new_phone="0839998888"))
    clock.advance(seconds=600)

    with pytest.raises(InvalidOrExpiredOTPError):
        await flow.verify_and_apply(CODE, challenge.otp, TagUpdate())
    assert (await store.find_by_code(CODE)).contact.phone == "0821234567"


@pytest.mark.asyncio
async def test_verify_without_request(flow):
    with pytest.raises(InvalidOrExpiredOTPError):
        await flow.verify_and_apply(CODE, "123456", TagUpdate())


@pytest.mark.asyncio
async def test_new_request_replaces_outstanding_otp(flow):
    first = await flow.request_update(CODE, ContactUpdateRequest(new_phone="0839998888"))
    second = await flow.request_update(CODE, ContactUpdateRequest(new_phone="0837776666"))

    with pytest.raises(InvalidOrExpiredOTPError):
        await flow.verify_and_apply(CODE, first.otp, TagUpdate())

    # the wrong guess above only counted an attempt against the second request
    updated = await flow.verify_and_apply(CODE, second.otp, TagUpdate())
    assert updated.contact.phone == "0837776666"


@pytest.mark.asyncio
async def test_verify_accepts_lowercase_code(flow):
    challenge = await flow.request_update(CODE, ContactUpdateRequest(new_phone="0839998888"))
    updated = await flow.verify_and_apply(CODE.lower(), challenge.otp, TagUpdate())
    assert updated.contact.phone == "0839998888"


@pytest.mark.asyncio
async def test_applied_update_evicts_public_lookup(flow, cache):
    assert (await cache.get(CODE)).contact.phone == "0821234567"
    challenge = await flow.request_update(CODE, ContactUpdateRequest(new_phone="0839998888"))

    await flow.verify_and_apply(CODE, challenge.otp, TagUpdate())

    assert CODE not in cache
    assert (await cache.get(CODE)).contact.phone == "0839998888"
