"""
Error taxonomy for the enhancement pipeline and its collaborators.
"""

from typing import Optional


class EnhancerError(Exception):
    """Base class for all service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ExtractionError(EnhancerError):
    """
    No brace-delimited region was found in the model reply.

    Carries the raw reply so it can be stored for offline tuning.
    """

    def __init__(self, raw_text: str, message: str = "No JSON object found in model reply"):
        super().__init__(message)
        self.raw_text = raw_text


class DecodeError(EnhancerError):
    """
    Structured decode still failed after full repair and normalization.

    Attributes:
        raw_text: Reply exactly as returned by the generation service
        cleaned_text: Text handed to the decoder after every repair pass
    """

    def __init__(self, raw_text: str, cleaned_text: str, message: str):
        super().__init__(message)
        self.raw_text = raw_text
        self.cleaned_text = cleaned_text


class ExternalServiceError(EnhancerError):
    """Upstream generation call failed, timed out, or returned nothing usable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LicenseError(EnhancerError):
    """License store could not be read or written."""
