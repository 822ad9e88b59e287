"""
License API router: code issuance, activation and admin listing.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from typing import List
import logging

from ocr_enhancer.models.license import (
    ActivationRequest,
    ActivationResult,
    GenerateLicensesRequest,
    LicenseView,
)
from ocr_enhancer.services.licenses import LicenseService
from ocr_enhancer.utils.security import require_admin

router = APIRouter(prefix="/api", tags=["licenses"])
logger = logging.getLogger(__name__)


@router.post("/admin/generate", dependencies=[Depends(require_admin)])
async def generate_licenses(request: GenerateLicensesRequest):
    """
    Issue a batch of license codes.

    Args:
        request: count and durationDays

    Returns:
        Created licenses
    """
    try:
        service = LicenseService()
        created = service.generate(request.count, request.duration_days)
        return {
            "success": True,
            "created": [
                {"code": license.code, "durationDays": license.duration_days}
                for license in created
            ]
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Failed to generate licenses", extra={
            "count": request.count,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to generate licenses: {str(e)}"
        )


@router.get(
    "/admin/licenses",
    response_model=List[LicenseView],
    dependencies=[Depends(require_admin)]
)
async def list_licenses():
    """List every license with its expiry and derived status."""
    try:
        service = LicenseService()
        return service.list_licenses()

    except Exception as e:
        logger.error("Failed to list licenses", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to list licenses: {str(e)}"
        )


@router.post("/validate", response_model=ActivationResult)
async def validate_license(request: ActivationRequest):
    """
    Activate a code for a device.

    Returns:
        ActivationResult (404 when the code does not exist)
    """
    try:
        service = LicenseService()
        result = service.activate(request.code, request.device_id)

        if result.reason == "not_found":
            return JSONResponse(
                status_code=404,
                content=result.model_dump(mode="json", by_alias=True)
            )

        return result

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to validate license", extra={
            "code": request.code,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to validate license: {str(e)}"
        )
