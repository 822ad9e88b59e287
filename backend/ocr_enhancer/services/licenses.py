"""
License service: issue, activate and list activation codes in Supabase.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from ocr_enhancer.config import settings
from ocr_enhancer.exceptions import LicenseError
from ocr_enhancer.models.license import ActivationResult, License, LicenseView
from ocr_enhancer.utils.supabase import get_supabase_client

logger = logging.getLogger(__name__)


def generate_code() -> str:
    """Opaque 8-character uppercase hex code."""
    return uuid.uuid4().hex[:8].upper()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LicenseService:
    """Service for license codes stored in the Supabase licenses table."""

    def __init__(self, supabase=None):
        """Initialize with an explicit client, or one built from settings."""
        self.supabase = supabase if supabase is not None else get_supabase_client()
        self.table_name = settings.LICENSE_TABLE

    def generate(self, count: int, duration_days: int) -> List[License]:
        """
        Issue `count` new codes valid for `duration_days` from now.

        Raises:
            ValueError: count or duration out of range
            LicenseError: Insert failed
        """
        if count < 1 or count > settings.MAX_LICENSES_PER_REQUEST:
            raise ValueError(f"count must be between 1 and {settings.MAX_LICENSES_PER_REQUEST}")
        if duration_days < 1:
            raise ValueError("durationDays must be at least 1")

        now = _utcnow()
        rows = [
            {
                'code': generate_code(),
                'duration_days': duration_days,
                'created_at': now.isoformat(),
            }
            for _ in range(count)
        ]

        try:
            response = self.supabase.table(self.table_name).insert(rows).execute()
        except Exception as e:
            logger.error("Failed to insert licenses", extra={
                "count": count,
                "error": str(e)
            })
            raise LicenseError(f"Failed to create licenses: {str(e)}") from e

        created = [License.model_validate(row) for row in (response.data or rows)]
        logger.info("Generated licenses", extra={
            "count": len(created),
            "duration_days": duration_days
        })
        return created

    def get(self, code: str) -> Optional[License]:
        """Fetch one license by code."""
        try:
            response = self.supabase.table(self.table_name).select('*').eq(
                'code', code
            ).limit(1).execute()
        except Exception as e:
            logger.error("Failed to fetch license", extra={"code": code, "error": str(e)})
            raise LicenseError(f"Failed to fetch license: {str(e)}") from e

        if not response.data:
            return None
        return License.model_validate(response.data[0])

    def activate(self, code: str, device_id: str, now: Optional[datetime] = None) -> ActivationResult:
        """
        Bind `code` to `device_id`.

        A code binds once; re-activating from the same device succeeds,
        from another device fails. The bind only writes rows whose device_id
        is still null, so two devices racing for one code cannot both win.
        """
        now = now or _utcnow()
        license = self.get(code)

        if license is None:
            return ActivationResult(success=False, message="Unknown code", reason="not_found")

        if now < license.created_at:
            return ActivationResult(
                success=False,
                message="Code not active yet",
                reason="not_yet_active",
                expires_at=license.expires_at,
            )

        if now > license.expires_at:
            return ActivationResult(
                success=False,
                message="Code expired",
                reason="expired",
                expires_at=license.expires_at,
            )

        if not license.device_id:
            try:
                response = self.supabase.table(self.table_name).update({
                    'device_id': device_id,
                    'used_at': now.isoformat(),
                }).eq('code', code).is_('device_id', 'null').execute()
            except Exception as e:
                logger.error("Failed to bind license", extra={"code": code, "error": str(e)})
                raise LicenseError(f"Failed to activate license: {str(e)}") from e

            if response.data:
                logger.info("License activated", extra={"code": code, "device_id": device_id})
                return ActivationResult(success=True, message="License active", expires_at=license.expires_at)

            # Another activation bound the code between the read and the write
            license = self.get(code)
            if license is None:
                return ActivationResult(success=False, message="Unknown code", reason="not_found")
            logger.warning("License bound concurrently", extra={
                "code": code,
                "device_id": device_id,
                "bound_device_id": license.device_id,
            })

        if license.device_id != device_id:
            return ActivationResult(
                success=False,
                message="Code already used on another device",
                reason="device_mismatch",
            )

        return ActivationResult(success=True, message="License active", expires_at=license.expires_at)

    def list_licenses(self, now: Optional[datetime] = None) -> List[LicenseView]:
        """All licenses, newest first, with expiry and derived status."""
        now = now or _utcnow()
        try:
            response = self.supabase.table(self.table_name).select('*').order(
                'created_at', desc=True
            ).execute()
        except Exception as e:
            logger.error("Failed to list licenses", extra={"error": str(e)})
            raise LicenseError(f"Failed to list licenses: {str(e)}") from e

        return [
            LicenseView.from_license(License.model_validate(row), now)
            for row in response.data or []
        ]
