"""
Pydantic models for activation licenses.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime, timedelta, timezone
from enum import Enum


class LicenseStatus(str, Enum):
    """Derived license state."""
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"
    NOT_YET_ACTIVE = "not-yet-active"


class License(BaseModel):
    """A row of the licenses table."""
    code: str
    duration_days: int
    created_at: datetime
    used_at: Optional[datetime] = None
    device_id: Optional[str] = None

    @field_validator('created_at', 'used_at')
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(days=self.duration_days)

    def status(self, now: datetime) -> LicenseStatus:
        """
        Derive the status at `now`.

        Time bounds win over device binding: a bound license past its
        window is expired, not used.
        """
        if now < self.created_at:
            return LicenseStatus.NOT_YET_ACTIVE
        if now > self.expires_at:
            return LicenseStatus.EXPIRED
        if self.device_id or self.used_at:
            return LicenseStatus.USED
        return LicenseStatus.ACTIVE


class LicenseView(BaseModel):
    """License as returned by the admin listing."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    duration_days: int
    created_at: datetime
    used_at: Optional[datetime] = None
    device_id: Optional[str] = None
    expires_at: datetime
    status: LicenseStatus

    @classmethod
    def from_license(cls, license: License, now: datetime) -> "LicenseView":
        return cls(
            **license.model_dump(),
            expires_at=license.expires_at,
            status=license.status(now),
        )


class GenerateLicensesRequest(BaseModel):
    """Admin request for a batch of codes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    count: int = Field(..., ge=1)
    duration_days: int = Field(..., ge=1)


class ActivationRequest(BaseModel):
    """Bind a code to a device."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str = Field(..., min_length=1)
    device_id: str = Field(..., min_length=1)


class ActivationResult(BaseModel):
    """Outcome of an activation attempt."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    reason: Optional[str] = None  # not_found, not_yet_active, expired, device_mismatch
    expires_at: Optional[datetime] = None
