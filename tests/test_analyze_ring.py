"""Tests for ring photo analysis: payload parsing, coercion and error mapping."""

import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from ringbuilder.analysis.analyze_ring import (
    AnalysisUnavailableError,
    InvalidImageError,
    RingAnalyzer,
    build_messages,
    coerce_analysis,
    load_prompt,
    split_image_payload,
)

PIXEL = base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image-bytes").decode()


def _make_httpx_response(status_code: int, body: str = "error") -> httpx.Response:
    """Build a minimal httpx.Response for constructing anthropic errors."""
    return httpx.Response(
        status_code=status_code,
        text=body,
        request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"),
    )


def _message(text: str) -> MagicMock:
    block = MagicMock()
    block.text = text
    response = MagicMock()
    response.content = [block]
    response.usage.input_tokens = 1500
    response.usage.output_tokens = 80
    return response


def _analyzer(create: AsyncMock) -> RingAnalyzer:
    client = MagicMock()
    client.messages.create = create
    return RingAnalyzer(client, "claude-test")


class TestSplitImagePayload:
    def test_raw_base64_defaults_to_jpeg(self):
        assert split_image_payload(PIXEL) == (PIXEL, "image/jpeg")

    def test_explicit_mime_type(self):
        assert split_image_payload(PIXEL, "image/PNG") == (PIXEL, "image/png")

    def test_data_url_mime_wins(self):
        data, mime = split_image_payload(f"data:image/webp;base64,{PIXEL}", "image/jpeg")
        assert data == PIXEL
        assert mime == "image/webp"

    def test_whitespace_in_base64_removed(self):
        wrapped = PIXEL[:8] + "\n" + PIXEL[8:]
        assert split_image_payload(wrapped)[0] == PIXEL

    def test_empty(self):
        with pytest.raises(InvalidImageError) as exc_info:
            split_image_payload("   ")
        assert exc_info.value.code == "missing_image"

    def test_data_url_without_data(self):
        with pytest.raises(InvalidImageError) as exc_info:
            split_image_payload("data:image/png;base64,")
        assert exc_info.value.code == "missing_image"

    def test_unsupported_type(self):
        with pytest.raises(InvalidImageError) as exc_info:
            split_image_payload(f"data:image/tiff;base64,{PIXEL}")
        assert exc_info.value.code == "invalid_image"

    def test_bad_base64(self):
        with pytest.raises(InvalidImageError) as exc_info:
            split_image_payload("not*base64!")
        assert exc_info.value.code == "invalid_image"

    def test_too_large(self):
        with patch("ringbuilder.analysis.analyze_ring.MAX_IMAGE_BYTES", 4):
            with pytest.raises(InvalidImageError) as exc_info:
                split_image_payload(PIXEL)
        assert exc_info.value.code == "image_too_large"


class TestPrompt:
    def test_prompt_asks_for_json_fields(self):
        prompt = load_prompt()
        for field in ("style", "shape", "metal", "features", "confidence"):
            assert field in prompt
        assert "Unknown" in prompt

    def test_messages_put_image_before_text(self):
        messages = build_messages(PIXEL, "image/png")
        content = messages[0]["content"]
        assert content[0]["type"] == "image"
        assert content[0]["source"] == {"type": "base64", "media_type": "image/png", "data": PIXEL}
        assert content[1]["type"] == "text"


class TestCoerceAnalysis:
    def test_full(self):
        result = coerce_analysis(
            {
                "style": "Halo",
                "shape": "Oval",
                "metal": "White Gold",
                "features": ["pave band", " milgrain ", "", 3],
                "confidence": 0.85,
                "description": " An oval halo. ",
            }
        )
        assert result.style == "Halo"
        assert result.shape == "Oval"
        assert result.features == ["pave band", "milgrain"]
        assert result.confidence == 0.85
        assert result.description == "An oval halo."

    def test_legacy_keys(self):
        result = coerce_analysis({"centerShape": "Pear", "metalColor": "Rose Gold"})
        assert result.shape == "Pear"
        assert result.metal == "Rose Gold"

    def test_missing_and_odd_values_become_unknown(self):
        result = coerce_analysis({"style": "", "shape": None, "features": "halo", "confidence": True})
        assert result.style == "Unknown"
        assert result.shape == "Unknown"
        assert result.metal == "Unknown"
        assert result.features == []
        assert result.confidence == "Unknown"

    def test_confidence_clamped(self):
        assert coerce_analysis({"confidence": 7}).confidence == 1.0
        assert coerce_analysis({"confidence": "-0.5"}).confidence == 0.0
        assert coerce_analysis({"confidence": "high"}).confidence == "Unknown"

    def test_none(self):
        assert coerce_analysis(None).style == "Unknown"


class TestRingAnalyzer:
    def test_parses_fenced_reply(self):
        create = AsyncMock(
            return_value=_message(
                '```json\n{"style": "Halo", "shape": "Oval", "metal": "Platinum", '
                '"features": ["halo"], "confidence": 0.9}\n```'
            )
        )
        result = asyncio.run(_analyzer(create).analyze(PIXEL, "image/jpeg"))

        assert result.style == "Halo"
        assert result.metal == "Platinum"
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["messages"][0]["content"][0]["source"]["data"] == PIXEL

    def test_unparsable_reply_is_unknown(self):
        create = AsyncMock(return_value=_message("I can't tell what ring this is."))
        result = asyncio.run(_analyzer(create).analyze(PIXEL, "image/jpeg"))
        assert result.style == "Unknown"
        assert result.features == []

    def test_rate_limit_is_retryable(self):
        create = AsyncMock(
            side_effect=anthropic.RateLimitError(
                message="Rate limited",
                response=_make_httpx_response(429),
                body=None,
            )
        )
        with pytest.raises(AnalysisUnavailableError) as exc_info:
            asyncio.run(_analyzer(create).analyze(PIXEL, "image/jpeg"))
        assert exc_info.value.retryable is True

    def test_bad_request_is_not_retryable(self):
        create = AsyncMock(
            side_effect=anthropic.BadRequestError(
                message="Could not process image",
                response=_make_httpx_response(400, "bad image"),
                body=None,
            )
        )
        with pytest.raises(AnalysisUnavailableError) as exc_info:
            asyncio.run(_analyzer(create).analyze(PIXEL, "image/jpeg"))
        assert exc_info.value.retryable is False

    def test_server_error_is_retryable(self):
        create = AsyncMock(
            side_effect=anthropic.InternalServerError(
                message="Overloaded",
                response=_make_httpx_response(529, "overloaded"),
                body=None,
            )
        )
        with pytest.raises(AnalysisUnavailableError) as exc_info:
            asyncio.run(_analyzer(create).analyze(PIXEL, "image/jpeg"))
        assert exc_info.value.retryable is True

    def test_connection_error_is_retryable(self):
        create = AsyncMock(
            side_effect=anthropic.APIConnectionError(
                request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
            )
        )
        with pytest.raises(AnalysisUnavailableError) as exc_info:
            asyncio.run(_analyzer(create).analyze(PIXEL, "image/jpeg"))
        assert exc_info.value.retryable is True
