"""Pydantic DTOs for the OTP-gated contact update flow."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from .tag import _EMAIL_PATTERN, TagUpdate


class ContactUpdateRequest(BaseModel):
    """Step one: propose a new email and/or phone number."""

    new_email: str | None = Field(None, max_length=255, pattern=_EMAIL_PATTERN)
    new_phone: str | None = Field(None, min_length=5, max_length=32)

    @model_validator(mode="after")
    def _at_least_one(self) -> "ContactUpdateRequest":
        if not self.new_email and not self.new_phone:
            raise ValueError("Provide a new email or a new phone number")
        return self


class ContactUpdateVerify(BaseModel):
    """Step two: submit the emailed code together with the full update."""

    otp: str = Field(..., pattern=r"^\d{6}$")
    update: TagUpdate = Field(default_factory=TagUpdate)


class ContactUpdateChallengeResponse(BaseModel):
    """Never carries the OTP itself."""

    code: str
    expires_at: datetime
    deliver_to: str
