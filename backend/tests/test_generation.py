"""
Test suite for the Cohere generation adapter and the enhancement service.

Tests cover:
- Request shape (URL, payload, auth header, timeout)
- Timeouts, transport errors, HTTP errors and empty replies map to
  ExternalServiceError
- Enhancement service wiring of prompt, client and pipeline
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from unittest.mock import Mock, patch

import pytest
import requests

from ocr_enhancer.exceptions import ExternalServiceError
from ocr_enhancer.services.enhancement import EnhancementService
from ocr_enhancer.services.generation import CohereGenerationClient, build_prompt
from ocr_enhancer.services.repair import FALLBACK_STAGES


def _response(status_code=200, body=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = body
    return response


@pytest.fixture
def client():
    return CohereGenerationClient(api_key="test-key", timeout=5.0)


class TestBuildPrompt:
    """Fixed-schema prompt."""

    def test_embeds_ocr_text_and_schema(self):
        prompt = build_prompt("WALMART\nTOTAL 12,50")
        assert "WALMART\nTOTAL 12,50" in prompt
        for field in ("imageQuality", "storeName", "purchaseDate", "purchaseTime", "totalPaid", "products"):
            assert field in prompt

    def test_braces_in_ocr_text_are_safe(self):
        assert "{weird}" in build_prompt("{weird}")


class TestCohereGenerationClient:
    """HTTP behavior of the adapter."""

    @patch('ocr_enhancer.services.generation.requests.post')
    def test_success(self, mock_post, client):
        mock_post.return_value = _response(body={"generations": [{"text": '  {"storeName": "A"}\n'}]})

        assert client.generate("prompt") == '{"storeName": "A"}'

        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.cohere.com/v1/generate"
        assert kwargs["timeout"] == 5.0
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert kwargs["json"]["prompt"] == "prompt"
        assert kwargs["json"]["model"] == "command"
        assert kwargs["json"]["max_tokens"] == 600
        assert kwargs["json"]["stop_sequences"] == ["\n\n"]

    @patch('ocr_enhancer.services.generation.requests.post')
    def test_timeout(self, mock_post, client):
        mock_post.side_effect = requests.Timeout("slow")

        with pytest.raises(ExternalServiceError) as exc_info:
            client.generate("prompt")
        assert "timed out" in exc_info.value.message

    @patch('ocr_enhancer.services.generation.requests.post')
    def test_transport_error(self, mock_post, client):
        mock_post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ExternalServiceError):
            client.generate("prompt")

    @patch('ocr_enhancer.services.generation.requests.post')
    def test_http_error(self, mock_post, client):
        mock_post.return_value = _response(status_code=429, text="rate limited")

        with pytest.raises(ExternalServiceError) as exc_info:
            client.generate("prompt")
        assert exc_info.value.status_code == 429

    @pytest.mark.parametrize("body", [
        {"generations": []},
        {"generations": [{"text": "   "}]},
        {"generations": [{}]},
        {},
        ["unexpected"],
    ])
    @patch('ocr_enhancer.services.generation.requests.post')
    def test_empty_reply(self, mock_post, body, client):
        mock_post.return_value = _response(body=body)

        with pytest.raises(ExternalServiceError):
            client.generate("prompt")

    @patch('ocr_enhancer.services.generation.requests.post')
    def test_non_json_body(self, mock_post, client):
        response = _response()
        response.json.side_effect = ValueError("not json")
        mock_post.return_value = response

        with pytest.raises(ExternalServiceError):
            client.generate("prompt")

    @patch('ocr_enhancer.services.generation.requests.post')
    def test_missing_api_key(self, mock_post):
        with pytest.raises(ExternalServiceError):
            CohereGenerationClient(api_key="").generate("prompt")
        mock_post.assert_not_called()

    def test_base_url_trailing_slash(self):
        client = CohereGenerationClient(api_key="k", base_url="http://localhost:9000/")
        assert client.url == "http://localhost:9000/v1/generate"


class TestEnhancementService:
    """Prompt -> client -> pipeline."""

    def test_enhance(self):
        fake_client = Mock()
        fake_client.generate.return_value = 'JSON: {storeName: Target, totalPaid: "5,00"}'

        result = EnhancementService(fake_client).enhance("TARGET 5,00")

        assert result.ok
        assert result.record.store_name == "Target"
        assert result.record.total_paid == "5.00"
        prompt = fake_client.generate.call_args[0][0]
        assert "TARGET 5,00" in prompt

    def test_diagnostic_returned(self):
        fake_client = Mock()
        fake_client.generate.return_value = "I could not find a receipt."

        result = EnhancementService(fake_client).enhance("???")

        assert not result.ok
        assert result.error.error == 'extraction_error'

    def test_external_error_propagates(self):
        fake_client = Mock()
        fake_client.generate.side_effect = ExternalServiceError("down")

        with pytest.raises(ExternalServiceError):
            EnhancementService(fake_client).enhance("text")

    def test_fallback_flag(self):
        assert EnhancementService(Mock()).fallback_stages == ()
        assert EnhancementService(Mock(), decimal_fallback=True).fallback_stages == FALLBACK_STAGES
