"""
Tests for the Gemini model gateway.

The genai client is mocked; these tests check request assembly and the
mapping of every failure mode to UpstreamUnavailable.
"""

import asyncio
import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import errors as genai_errors

from smartkas.agents.assistant.errors import UpstreamUnavailable
from smartkas.agents.assistant.gateway import (
    ModelGateway,
    decode_image_ref,
    detect_image_mime_type,
)
from smartkas.agents.assistant.prompts import CompiledRequest

PNG_BASE64 = base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16).decode("utf-8")


def _response(text):
    part = MagicMock()
    part.text = text
    response = MagicMock()
    response.candidates = [MagicMock()]
    response.candidates[0].content.parts = [part]
    response.text = text
    return response


@pytest.fixture
def genai_client():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=_response("Halo!"))
    client.aio.models.embed_content = AsyncMock()
    return client


@pytest.fixture
def request_with_history():
    return CompiledRequest(
        task="chat_action",
        messages=[
            {"role": "system", "content": "You are SmartKas."},
            {"role": "user", "content": "halo"},
            {"role": "assistant", "content": "Halo!"},
            {"role": "user", "content": "apa ini?"},
        ],
        image_ref=PNG_BASE64,
        temperature=0.2,
        max_output_tokens=1024,
    )


class TestSend:
    @pytest.mark.asyncio
    async def test_returns_raw_text(self, genai_client, request_with_history):
        gateway = ModelGateway(genai_client, model="gemini-test", timeout_seconds=5)

        reply = await gateway.send(request_with_history)

        assert reply == "Halo!"

    @pytest.mark.asyncio
    async def test_system_message_goes_to_config_and_image_to_last_user_turn(
        self, genai_client, request_with_history
    ):
        gateway = ModelGateway(genai_client, model="gemini-test", timeout_seconds=5)

        await gateway.send(request_with_history)

        kwargs = genai_client.aio.models.generate_content.call_args.kwargs
        contents = kwargs["contents"]
        assert kwargs["model"] == "gemini-test"
        assert kwargs["config"].system_instruction == "You are SmartKas."
        assert kwargs["config"].temperature == 0.2
        assert [c.role for c in contents] == ["user", "model", "user"]
        assert len(contents[0].parts) == 1
        assert len(contents[2].parts) == 2
        assert contents[2].parts[1].inline_data.mime_type == "image/png"

    @pytest.mark.asyncio
    async def test_timeout(self, genai_client, request_with_history):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        genai_client.aio.models.generate_content = slow
        gateway = ModelGateway(genai_client, timeout_seconds=0.01)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await gateway.send(request_with_history)

        assert exc_info.value.reason == "timeout"

    @pytest.mark.asyncio
    async def test_rate_limit(self, genai_client, request_with_history):
        genai_client.aio.models.generate_content.side_effect = genai_errors.APIError(
            429, {"error": {"message": "Resource exhausted", "status": "RESOURCE_EXHAUSTED"}}
        )
        gateway = ModelGateway(genai_client, timeout_seconds=5)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await gateway.send(request_with_history)

        assert exc_info.value.reason == "rate_limited"

    @pytest.mark.asyncio
    async def test_network_error(self, genai_client, request_with_history):
        genai_client.aio.models.generate_content.side_effect = ConnectionError("reset")
        gateway = ModelGateway(genai_client, timeout_seconds=5)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await gateway.send(request_with_history)

        assert exc_info.value.reason == "unavailable"

    @pytest.mark.asyncio
    async def test_empty_reply(self, genai_client, request_with_history):
        genai_client.aio.models.generate_content.return_value = _response("   ")
        gateway = ModelGateway(genai_client, timeout_seconds=5)

        with pytest.raises(UpstreamUnavailable):
            await gateway.send(request_with_history)


class TestTranscribeAndEmbed:
    @pytest.mark.asyncio
    async def test_transcribe_audio(self, genai_client):
        genai_client.aio.models.generate_content.return_value = _response(" jual dua kopi susu \n")
        gateway = ModelGateway(genai_client, timeout_seconds=5)

        text = await gateway.transcribe_audio(b"\x1aE\xdf\xa3", mime_type="audio/webm")

        assert text == "jual dua kopi susu"
        contents = genai_client.aio.models.generate_content.call_args.kwargs["contents"]
        assert contents[0].parts[0].inline_data.mime_type == "audio/webm"

    @pytest.mark.asyncio
    async def test_embed_text(self, genai_client):
        embedding = MagicMock()
        embedding.values = [0.5, 0.25]
        genai_client.aio.models.embed_content.return_value = MagicMock(embeddings=[embedding])
        gateway = ModelGateway(genai_client, timeout_seconds=5, embedding_model="text-embedding-test")

        vector = await gateway.embed_text("Pemasukan | Jual kopi")

        assert vector == [0.5, 0.25]
        kwargs = genai_client.aio.models.embed_content.call_args.kwargs
        assert kwargs["model"] == "text-embedding-test"


class TestImageHelpers:
    def test_detect_mime_type(self):
        assert detect_image_mime_type("iVBORw0KGgoAAA") == "image/png"
        assert detect_image_mime_type("R0lGODlh") == "image/gif"
        assert detect_image_mime_type("/9j/4AAQ") == "image/jpeg"

    def test_decode_data_url_uses_declared_mime(self):
        mime_type, raw = decode_image_ref(f"data:image/webp;base64,{PNG_BASE64}")

        assert mime_type == "image/webp"
        assert raw.startswith(b"\x89PNG")

    def test_decode_invalid_base64(self):
        with pytest.raises(ValueError):
            decode_image_ref("not base64 at all!!")
