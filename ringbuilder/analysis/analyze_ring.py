"""Ring photo analysis with Claude vision.

Sends the customer's photo as a base64 image block and asks for a small
JSON object (style, shape, metal, features, confidence). The reply is free
text, so the first JSON object in it is extracted and coerced field by
field. A reply that cannot be parsed degrades to an all-"Unknown"
AnalysisResult; only transport and API errors are raised.
"""

from __future__ import annotations

import base64
import binascii
import re
from pathlib import Path
from typing import Any

import anthropic
import structlog

from ringbuilder.models.contracts import AnalysisResult
from ringbuilder.utils.json_extract import extract_first_json_object

log = structlog.get_logger("analysis.analyze_ring")

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

MAX_TOKENS = 1024
DEFAULT_MIME_TYPE = "image/jpeg"
SUPPORTED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
MAX_IMAGE_BYTES = 20 * 1024 * 1024  # 20 MB decoded

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?,", re.IGNORECASE)


class InvalidImageError(ValueError):
    """The submitted image payload is unusable (bad base64, wrong type, too big)."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class AnalysisUnavailableError(RuntimeError):
    """The analysis model could not be reached or refused the request."""

    def __init__(self, message: str, *, retryable: bool) -> None:
        super().__init__(message)
        self.retryable = retryable


_prompt_cache: str | None = None


def load_prompt() -> str:
    """Load the ring analysis prompt (cached after first read)."""
    global _prompt_cache  # noqa: PLW0603
    if _prompt_cache is None:
        _prompt_cache = (PROMPTS_DIR / "ring_analysis.txt").read_text()
    return _prompt_cache


def split_image_payload(image: str, mime_type: str | None = None) -> tuple[str, str]:
    """Accept raw base64 or a ``data:`` URL; return (base64 data, mime type).

    A mime type embedded in a data URL wins over the explicit argument.
    """
    image = image.strip()
    if not image:
        raise InvalidImageError("missing_image", "No image provided")

    detected = (mime_type or DEFAULT_MIME_TYPE).lower()
    match = _DATA_URL_RE.match(image)
    if match:
        if match.group("mime"):
            detected = match.group("mime").lower()
        image = image[match.end() :]
    elif "base64," in image:
        image = image.split("base64,", 1)[1]

    if detected not in SUPPORTED_MIME_TYPES:
        raise InvalidImageError("invalid_image", f"Unsupported image type: {detected}")

    data = "".join(image.split())
    if not data:
        raise InvalidImageError("missing_image", "No image provided")
    if len(data) * 3 // 4 > MAX_IMAGE_BYTES:
        raise InvalidImageError("image_too_large", "Image exceeds the 20 MB limit")
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageError("invalid_image", "Image is not valid base64") from exc
    return data, detected


def build_messages(image_data: str, mime_type: str) -> list[dict[str, Any]]:
    return [
        {
            "role": "user",
            "content": [
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": mime_type, "data": image_data},
                },
                {"type": "text", "text": load_prompt()},
            ],
        }
    ]


def _as_label(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return "Unknown"


def _as_confidence(value: Any) -> float | str:
    if isinstance(value, bool):
        return "Unknown"
    if isinstance(value, int | float):
        return max(0.0, min(float(value), 1.0))
    if isinstance(value, str):
        try:
            return max(0.0, min(float(value), 1.0))
        except ValueError:
            return "Unknown"
    return "Unknown"


def coerce_analysis(data: dict[str, Any] | None) -> AnalysisResult:
    """Build an AnalysisResult from model JSON, tolerating missing/odd fields.

    Older prompts used ``metalColor``/``centerShape``; both spellings are read.
    """
    if not data:
        return AnalysisResult()
    features_raw = data.get("features")
    features = (
        [f.strip() for f in features_raw if isinstance(f, str) and f.strip()]
        if isinstance(features_raw, list)
        else []
    )
    description = data.get("description")
    return AnalysisResult(
        style=_as_label(data.get("style")),
        shape=_as_label(data.get("shape") or data.get("centerShape")),
        metal=_as_label(data.get("metal") or data.get("metalColor")),
        features=features,
        confidence=_as_confidence(data.get("confidence")),  # type: ignore[arg-type]
        description=description.strip() if isinstance(description, str) else None,
    )


def response_text(response: anthropic.types.Message) -> str:
    text = ""
    for block in response.content:
        if hasattr(block, "text"):
            text += block.text
    return text


class RingAnalyzer:
    """Thin wrapper around the Anthropic client for ring photos."""

    def __init__(self, client: anthropic.AsyncAnthropic, model: str) -> None:
        self._client = client
        self._model = model

    async def analyze(self, image_data: str, mime_type: str) -> AnalysisResult:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=MAX_TOKENS,
                messages=build_messages(image_data, mime_type),  # type: ignore[arg-type]
            )
        except anthropic.RateLimitError as e:
            log.warning("analyze_ring_rate_limited")
            raise AnalysisUnavailableError(f"Claude rate limited: {e}", retryable=True) from e
        except anthropic.APIStatusError as e:
            log.error("analyze_ring_api_error", status=e.status_code)
            raise AnalysisUnavailableError(
                f"Claude API error ({e.status_code})",
                retryable=e.status_code >= 500,
            ) from e
        except anthropic.APIConnectionError as e:
            log.warning("analyze_ring_connection_error", error_type=type(e).__name__)
            raise AnalysisUnavailableError("Could not reach Claude", retryable=True) from e

        log.info(
            "analyze_ring_tokens",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self._model,
        )

        data = extract_first_json_object(response_text(response))
        if data is None:
            log.warning("analyze_ring_unparsable_response")
        analysis = coerce_analysis(data)
        log.info(
            "analyze_ring_complete",
            style=analysis.style,
            shape=analysis.shape,
            metal=analysis.metal,
            features=len(analysis.features),
        )
        return analysis
