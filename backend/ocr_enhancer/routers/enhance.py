"""
Enhancement API router: OCR text in, repaired receipt record out.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import json
import logging

from ocr_enhancer.config import settings
from ocr_enhancer.exceptions import ExternalServiceError
from ocr_enhancer.models.receipt import ReceiptRecord
from ocr_enhancer.services.enhancement import EnhancementService
from ocr_enhancer.services.generation import CohereGenerationClient, get_generation_client
from ocr_enhancer.services.pipeline import repair_text

router = APIRouter(prefix="/api", tags=["enhance"])
logger = logging.getLogger(__name__)


class EnhanceRequest(BaseModel):
    """Request model for the enhance endpoint."""
    text: Optional[str] = None


class CleanupRequest(BaseModel):
    """Request model for the cleanup test endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    raw_json: Optional[str] = Field(None, alias="rawJson")


def _reject_constant(name: str):
    # NaN / Infinity decode fine but cannot be serialized back to JSON
    raise ValueError(f"Non-finite constant {name} is not allowed")


@router.post("/enhance-text", response_model=ReceiptRecord)
def enhance_text(
    request: EnhanceRequest,
    client: CohereGenerationClient = Depends(get_generation_client)
):
    """
    Restate raw OCR text as a structured receipt.

    This endpoint:
    1. Sends the OCR text to the generation service with the fixed schema prompt
    2. Extracts and repairs the JSON in the reply
    3. Normalizes money, quantity, date and time fields
    4. Returns the record, or a diagnostic with raw and cleaned text

    Args:
        request: Request with the OCR text
        client: Generation client

    Returns:
        ReceiptRecord
    """
    if not request.text or not request.text.strip():
        raise HTTPException(
            status_code=400,
            detail='Field "text" is required and must be a non-empty string'
        )

    service = EnhancementService(client, decimal_fallback=settings.REPAIR_DECIMAL_FALLBACK)

    try:
        result = service.enhance(request.text)
    except ExternalServiceError as e:
        logger.error("Generation service failed", extra={
            "error": e.message,
            "status_code": e.status_code
        })
        return JSONResponse(
            status_code=502,
            content={"error": "external_service_error", "message": e.message}
        )
    except Exception as e:
        logger.error("Enhancement failed", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Enhancement failed: {str(e)}"
        )

    if not result.ok:
        return JSONResponse(
            status_code=422,
            content=result.error.model_dump(by_alias=True)
        )

    return result.record


@router.post("/test-cleanup")
def test_cleanup(request: CleanupRequest):
    """
    Run the repair chain and normalizer over a raw JSON string.

    Used to tune the repair stages against captured replies.

    Returns:
        {parsed, cleaned} or a 422 with the cleaned attempt
    """
    if not request.raw_json:
        raise HTTPException(
            status_code=400,
            detail='Field "rawJson" is required and must be a string'
        )

    cleaned = repair_text(request.raw_json)

    try:
        parsed = json.loads(cleaned, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        return JSONResponse(
            status_code=422,
            content={
                "error": "decode_error",
                "message": str(e),
                "cleanedAttempt": cleaned
            }
        )

    return {"parsed": parsed, "cleaned": cleaned}
