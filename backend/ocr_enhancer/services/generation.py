"""
Generation adapter: asks Cohere to restate OCR text as receipt JSON.
"""

import logging
from typing import List, Optional

import requests

from ocr_enhancer.config import settings
from ocr_enhancer.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

RECEIPT_PROMPT_TEMPLATE = """
Here is raw OCR text extracted from a receipt.
Return a structured JSON object with the following fields:

- imageQuality: "Good quality image" or "Poor quality image"
- storeName: store name (e.g. Walmart) or null
- storePhone: phone number (digits only) or null
- storeAddress: full address or null
- purchaseDate: purchase date formatted mm/dd/yyyy or null
- purchaseTime: purchase time formatted HH:MM AM/PM or null
- totalPaid: total amount paid or null
- products: list of items, each item contains:
  - description (text)
  - code (text or digits)
  - quantity (number)
  - price (amount)

If a field cannot be found, use null.
Return only the JSON, with no explanation or additional text.

OCR text:
{ocr_text}
"""


def build_prompt(ocr_text: str) -> str:
    """Embed the OCR text into the fixed-schema prompt."""
    return RECEIPT_PROMPT_TEMPLATE.format(ocr_text=ocr_text)


class CohereGenerationClient:
    """Thin client for Cohere's text generation endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "command",
        base_url: str = "https://api.cohere.com",
        timeout: float = 20.0,
        max_tokens: int = 600,
        temperature: float = 0.3,
        stop_sequences: Optional[List[str]] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/v1/generate"
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.stop_sequences = stop_sequences if stop_sequences is not None else ["\n\n"]

    def generate(self, prompt: str) -> str:
        """
        Run one completion.

        Args:
            prompt: Full prompt text

        Returns:
            Completion text, stripped

        Raises:
            ExternalServiceError: Missing key, transport failure, timeout,
                non-2xx status, or an empty completion
        """
        if not self.api_key:
            raise ExternalServiceError("Cohere API key is not configured")

        payload = {
            "model": self.model,
            "prompt": prompt,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stop_sequences": self.stop_sequences,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            response = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            raise ExternalServiceError(f"Cohere request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise ExternalServiceError(f"Cohere request failed: {str(e)}") from e

        if response.status_code >= 400:
            logger.error("Cohere returned an error status", extra={
                "status_code": response.status_code,
                "body": response.text[:500],
            })
            raise ExternalServiceError(
                f"Cohere returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ExternalServiceError("Cohere returned a non-JSON body") from e

        generations = body.get("generations") if isinstance(body, dict) else None
        text = None
        if generations and isinstance(generations[0], dict):
            text = generations[0].get("text")

        if not isinstance(text, str) or not text.strip():
            raise ExternalServiceError("Empty reply from Cohere")

        return text.strip()


def get_generation_client() -> CohereGenerationClient:
    """
    Build the generation client from settings.

    Used as a FastAPI dependency so tests can override it.
    """
    return CohereGenerationClient(
        api_key=settings.COHERE_API_KEY,
        model=settings.COHERE_MODEL,
        base_url=settings.COHERE_API_URL,
        timeout=settings.COHERE_TIMEOUT_SECONDS,
        max_tokens=settings.COHERE_MAX_TOKENS,
        temperature=settings.COHERE_TEMPERATURE,
    )
