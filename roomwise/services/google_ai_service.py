"""
Image generation client backed by Google AI Studio (Gemini image models).

Requests are an ordered list of parts (text instructions and inline images);
the first inline image in the response is returned.
"""
import base64
import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from PIL import Image, UnidentifiedImageError

from roomwise.core.exceptions import (
    InvalidProviderResponse,
    ProviderConfigurationError,
    ProviderError,
    ProviderUnavailable,
)
from roomwise.services.api_cost import TokenUsage, normalize_gemini_usage
from roomwise.services.retry import RETRYABLE_STATUS_CODES

logger = logging.getLogger(__name__)

PROVIDER = "google"


@dataclass
class InlineImage:
    data: bytes
    mime_type: str = "image/jpeg"


@dataclass
class GeneratedImage:
    data: bytes
    mime_type: str
    usage: TokenUsage


ImagePart = Union[str, InlineImage]


def _as_image_bytes(data: Union[bytes, str]) -> bytes:
    """The SDK may hand back raw image bytes or base64 text; always return raw bytes."""
    if isinstance(data, str):
        return base64.b64decode(data)
    try:
        Image.open(io.BytesIO(data)).verify()
        return data
    except (UnidentifiedImageError, OSError):
        return base64.b64decode(data)


class ImageGenerationClient:
    """Wraps google.genai async generate_content with an IMAGE response modality"""

    provider = PROVIDER

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash-image", client=None):
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = genai.Client(api_key=api_key)

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _build_parts(self, parts: List[ImagePart]) -> List[types.Part]:
        built = []
        for part in parts:
            if isinstance(part, InlineImage):
                built.append(types.Part(inline_data=types.Blob(mime_type=part.mime_type, data=part.data)))
            else:
                built.append(types.Part.from_text(text=part))
        return built

    async def generate_image(self, parts: List[ImagePart], temperature: float = 0.4) -> GeneratedImage:
        if not self.configured:
            raise ProviderConfigurationError(PROVIDER, "GOOGLE_AI_API_KEY is not configured")

        config = types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
            temperature=temperature,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=self._build_parts(parts))],
                config=config,
            )
        except genai_errors.APIError as e:
            status = getattr(e, "code", None)
            error_cls = ProviderUnavailable if status in RETRYABLE_STATUS_CODES else ProviderError
            raise error_cls(PROVIDER, f"Image generation failed ({status}): {e}", status_code=status) from e

        usage = normalize_gemini_usage(getattr(response, "usage_metadata", None))
        image = self._first_inline_image(response)
        if image is None:
            raise InvalidProviderResponse(PROVIDER, "No image in response from image generation model")

        data, mime_type = image
        logger.info(f"Gemini {self.model} returned {len(data)} bytes ({mime_type})")
        return GeneratedImage(data=data, mime_type=mime_type, usage=usage)

    @staticmethod
    def _first_inline_image(response) -> Optional[tuple]:
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and inline.data:
                    return _as_image_bytes(inline.data), inline.mime_type or "image/png"
        return None
