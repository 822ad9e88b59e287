"""
Boundary extraction: isolate the JSON object inside a commentary-laden reply.
"""

from ocr_enhancer.exceptions import ExtractionError


def extract_candidate(raw_text: str) -> str:
    """
    Return the slice between the first '{' and the last '}' (inclusive).

    Models often wrap the answer ("Voici le JSON: {...} Merci"); everything
    outside the outermost braces is dropped. The slice may still be invalid
    JSON.

    Raises:
        ExtractionError: If either brace is missing or they are out of order
    """
    if not raw_text:
        raise ExtractionError(raw_text or "")

    first_brace = raw_text.find('{')
    last_brace = raw_text.rfind('}')

    if first_brace == -1 or last_brace == -1 or last_brace < first_brace:
        raise ExtractionError(raw_text)

    return raw_text[first_brace:last_brace + 1]
