"""
Enhancement service: OCR text -> model reply -> repaired ReceiptRecord.
"""

import logging

from ocr_enhancer.services.generation import CohereGenerationClient, build_prompt
from ocr_enhancer.services.pipeline import RepairResult, parse_model_output
from ocr_enhancer.services.repair import FALLBACK_STAGES

logger = logging.getLogger(__name__)


class EnhancementService:
    """Runs the generation call and the repair pipeline for one request."""

    def __init__(self, client: CohereGenerationClient, decimal_fallback: bool = False):
        """
        Args:
            client: Generation client, passed in explicitly per request
            decimal_fallback: Enable the one-shot decimal truncation retry
        """
        self.client = client
        self.fallback_stages = FALLBACK_STAGES if decimal_fallback else ()

    def enhance(self, ocr_text: str) -> RepairResult:
        """
        Restate OCR text as a receipt record.

        Raises:
            ExternalServiceError: Propagated from the generation client
        """
        raw_text = self.client.generate(build_prompt(ocr_text))
        logger.debug("Raw model reply", extra={"raw_text": raw_text})

        result = parse_model_output(raw_text, fallback_stages=self.fallback_stages)

        if result.ok:
            logger.info("Receipt restated", extra={
                "products": len(result.record.products),
                "fallback_applied": result.fallback_applied,
            })
        else:
            logger.warning("Receipt restatement failed", extra={
                "error": result.error.error,
                "cleaned_text": result.cleaned_text,
            })

        return result
