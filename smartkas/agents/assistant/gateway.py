"""
Model Gateway

Thin async wrapper around the Google Gen AI SDK. One call in, raw text out.

Every failure (timeout, API error, rate limit, empty response, missing API
key) is raised as UpstreamUnavailable. No retries: a failed turn returns a
fallback reply and the caller may start a new turn.
"""

import asyncio
import base64
import binascii
import logging
import mimetypes
from typing import List, Optional, Tuple

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from smartkas.agents.assistant.errors import UpstreamUnavailable
from smartkas.agents.assistant.prompts import CompiledRequest
from smartkas.config import settings

logger = logging.getLogger(__name__)

TRANSCRIBE_PROMPT = "Transcribe this audio to text. Output ONLY the transcription, no other text."

# Initialize gateway lazily (first request)
_gateway: Optional["ModelGateway"] = None


def detect_image_mime_type(image_base64: str) -> str:
    """Detect MIME type from the base64 header, defaulting to JPEG."""
    if image_base64.startswith("iVBORw0KGgo"):
        return "image/png"
    if image_base64.startswith("R0lGOD"):
        return "image/gif"
    if image_base64.startswith("UklGR"):
        return "image/webp"
    return "image/jpeg"


def decode_image_ref(image_ref: str) -> Tuple[str, bytes]:
    """
    Decode a base64 image or a data URL into (mime_type, bytes).

    Raises:
        ValueError: if the reference is not valid base64
    """
    mime_type = None
    data = image_ref.strip()
    if data.startswith("data:"):
        header, _, data = data.partition(",")
        mime_type = header[len("data:"):].split(";")[0] or None
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Image is not valid base64: {e}") from e
    return mime_type or detect_image_mime_type(data), raw


def _image_part(image_ref: str) -> types.Part:
    if image_ref.startswith(("http://", "https://")):
        mime_type = mimetypes.guess_type(image_ref)[0] or "image/jpeg"
        return types.Part.from_uri(file_uri=image_ref, mime_type=mime_type)
    mime_type, raw = decode_image_ref(image_ref)
    return types.Part(inline_data=types.Blob(mime_type=mime_type, data=raw))


def _response_text(response) -> str:
    """
    Pull the text out of a generate_content response.

    Parts are tried first; response.text can be None even when parts have text.
    """
    if response.candidates:
        candidate = response.candidates[0]
        if candidate.content and candidate.content.parts:
            texts = [part.text for part in candidate.content.parts if getattr(part, "text", None)]
            if texts:
                return "".join(texts)
    return response.text or ""


class ModelGateway:
    """Opaque call to the generative-model endpoint."""

    def __init__(
        self,
        client: genai.Client,
        model: str = settings.GEMINI_MODEL,
        timeout_seconds: float = settings.MODEL_TIMEOUT_SECONDS,
        embedding_model: str = settings.GEMINI_EMBEDDING_MODEL,
    ):
        self._client = client
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.embedding_model = embedding_model

    def _build_contents(self, request: CompiledRequest) -> List[types.Content]:
        turns = [m for m in request.messages if m["role"] != "system"]
        last_user = max(
            (i for i, m in enumerate(turns) if m["role"] == "user"),
            default=None,
        )
        contents = []
        for index, message in enumerate(turns):
            parts = [types.Part(text=message["content"])]
            if request.image_ref and index == last_user:
                parts.append(_image_part(request.image_ref))
            contents.append(
                types.Content(
                    role="user" if message["role"] == "user" else "model",
                    parts=parts,
                )
            )
        return contents

    async def _generate(self, contents, config: types.GenerateContentConfig, label: str):
        try:
            return await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{label}: model call exceeded {self.timeout_seconds}s")
            raise UpstreamUnavailable("timeout", f"no reply within {self.timeout_seconds}s")
        except genai_errors.APIError as e:
            reason = "rate_limited" if e.code == 429 else "unavailable"
            logger.error(f"{label}: model API error {e.code}: {e.message}")
            raise UpstreamUnavailable(reason, f"API error {e.code}") from e
        except Exception as e:
            logger.error(f"{label}: model call failed: {e}", exc_info=True)
            raise UpstreamUnavailable("unavailable", str(e)) from e

    async def send(self, request: CompiledRequest) -> str:
        """
        Send one compiled request and return the raw reply text.

        Raises:
            UpstreamUnavailable: timeout, API/network error, rate limit or empty reply
        """
        try:
            contents = self._build_contents(request)
        except ValueError as e:
            # An undecodable attachment is a caller problem, but it still means
            # no reply can be produced for this turn
            logger.warning(f"{request.task}: could not attach image: {e}")
            raise UpstreamUnavailable("unavailable", str(e)) from e

        config = types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            temperature=request.temperature,
            max_output_tokens=request.max_output_tokens,
        )

        logger.debug(f"{request.task}: sending {len(contents)} message(s) to {self.model}")
        response = await self._generate(contents, config, request.task)

        text = _response_text(response).strip()
        if not text:
            logger.error(f"{request.task}: empty response from model")
            raise UpstreamUnavailable("unavailable", "empty response")

        logger.debug(f"{request.task}: raw reply preview: {text[:200]}")
        return text

    async def transcribe_audio(self, audio: bytes, mime_type: str = "audio/webm") -> str:
        """Speech-to-text for voice chat input."""
        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part(inline_data=types.Blob(mime_type=mime_type, data=audio)),
                    types.Part(text=TRANSCRIBE_PROMPT),
                ],
            )
        ]
        config = types.GenerateContentConfig(temperature=0.0)
        response = await self._generate(contents, config, "transcribe")
        return _response_text(response).strip()

    async def embed_text(self, text: str) -> List[float]:
        """Embedding vector for the transaction search index."""
        try:
            result = await asyncio.wait_for(
                self._client.aio.models.embed_content(model=self.embedding_model, contents=text),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise UpstreamUnavailable("timeout", "embedding call timed out")
        except genai_errors.APIError as e:
            reason = "rate_limited" if e.code == 429 else "unavailable"
            raise UpstreamUnavailable(reason, f"API error {e.code}") from e

        if not result.embeddings or not result.embeddings[0].values:
            raise UpstreamUnavailable("unavailable", "empty embedding")
        return list(result.embeddings[0].values)


def get_model_gateway() -> Optional[ModelGateway]:
    """
    Lazy initialization of the shared gateway.

    Returns None when GOOGLE_API_KEY is not configured; callers treat that as
    an unavailable upstream.
    """
    global _gateway

    if _gateway is not None:
        return _gateway

    if not settings.GOOGLE_API_KEY:
        logger.warning(
            "GOOGLE_API_KEY not configured. Assistant, OCR and anomaly scans will not work. "
            "Please set GOOGLE_API_KEY in your .env file."
        )
        return None

    try:
        _gateway = ModelGateway(genai.Client(api_key=settings.GOOGLE_API_KEY))
        logger.info(f"Model gateway initialized for {settings.GEMINI_MODEL}")
        return _gateway
    except Exception as e:
        logger.error(f"Failed to initialize Gemini client: {e}")
        return None
