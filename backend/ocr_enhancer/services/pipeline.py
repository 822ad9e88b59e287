"""
Parse-and-validate orchestrator.

Received -> Extracted -> Repaired -> Normalized -> Parsed | Failed

One pass, no retries. The optional fallback stages run at most once and only
after the first decode failure.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from ocr_enhancer.exceptions import DecodeError, ExtractionError
from ocr_enhancer.models.receipt import ParseDiagnostic, ReceiptRecord
from ocr_enhancer.services.extractor import extract_candidate
from ocr_enhancer.services.normalizer import normalize_fields
from ocr_enhancer.services.repair import REPAIR_STAGES, RepairStage, run_repair_chain

logger = logging.getLogger(__name__)


@dataclass
class RepairResult:
    """Outcome of one pipeline run. Exactly one of record / error is set."""
    cleaned_text: Optional[str]
    record: Optional[ReceiptRecord] = None
    error: Optional[ParseDiagnostic] = None
    fallback_applied: bool = False

    @property
    def ok(self) -> bool:
        return self.record is not None


def repair_text(text: str, stages: Sequence[RepairStage] = REPAIR_STAGES) -> str:
    """Run the repair chain then the field normalizer over text."""
    return normalize_fields(run_repair_chain(text, stages))


def decode_record(raw_text: str, cleaned_text: str) -> ReceiptRecord:
    """
    Decode cleaned text into a ReceiptRecord.

    Raises:
        DecodeError: On JSON syntax errors, a non-object top level, or a
            shape the record model rejects
    """
    try:
        # Decimal keeps unquoted amounts digit-exact ("12.50" stays "12.50")
        data = json.loads(cleaned_text, parse_float=Decimal)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return ReceiptRecord.model_validate(data)
    except (ValueError, RecursionError) as e:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        raise DecodeError(raw_text, cleaned_text, str(e)) from e


def _failure(error: DecodeError, fallback_applied: bool = False) -> RepairResult:
    logger.warning("Model reply could not be decoded after repair", extra={
        "decode_error": error.message,
        "raw_length": len(error.raw_text),
        "fallback_applied": fallback_applied,
    })
    return RepairResult(
        cleaned_text=error.cleaned_text,
        error=ParseDiagnostic(
            error='decode_error',
            message=error.message,
            raw_text=error.raw_text,
            cleaned_json_string=error.cleaned_text,
        ),
        fallback_applied=fallback_applied,
    )


def parse_model_output(
    raw_text: str,
    fallback_stages: Sequence[RepairStage] = (),
) -> RepairResult:
    """
    Turn a raw model reply into a ReceiptRecord or a diagnostic.

    Total for any string input: extraction and decode failures come back as
    a ParseDiagnostic carrying the raw and cleaned text, never as exceptions.

    Args:
        raw_text: Reply exactly as returned by the generation service
        fallback_stages: Extra stages tried once after a first decode failure

    Returns:
        RepairResult
    """
    raw_text = raw_text or ""

    try:
        candidate = extract_candidate(raw_text)
    except ExtractionError as e:
        logger.warning("No JSON object in model reply", extra={"raw_length": len(raw_text)})
        return RepairResult(
            cleaned_text=None,
            error=ParseDiagnostic(error='extraction_error', message=e.message, raw_text=raw_text),
        )

    cleaned_text = repair_text(candidate)

    try:
        record = decode_record(raw_text, cleaned_text)
    except DecodeError as first_error:
        if not fallback_stages:
            return _failure(first_error)

        retried_text = repair_text(cleaned_text, fallback_stages)
        if retried_text == cleaned_text:
            return _failure(first_error, fallback_applied=True)

        logger.info("Retrying decode with fallback stages", extra={
            "stages": [stage.name for stage in fallback_stages],
        })
        try:
            record = decode_record(raw_text, retried_text)
        except DecodeError as second_error:
            return _failure(second_error, fallback_applied=True)

        return RepairResult(cleaned_text=retried_text, record=record, fallback_applied=True)

    return RepairResult(cleaned_text=cleaned_text, record=record)
