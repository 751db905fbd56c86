"""
CRM - Client de génération de texte (format Gemini generateContent)
"""

import json
import httpx
import pytest

from services import text_generation
from services.errors import GenerationError
from services.text_generation import build_request_body, extract_text, generate_text


def gemini_answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(text_generation, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(text_generation, "GEMINI_API_URL", "https://generation.test/v1/generate")


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestWireFormat:

    def test_request_body_shape(self):
        assert build_request_body("hello") == {
            "contents": [{"role": "user", "parts": [{"text": "hello"}]}]
        }

    def test_extract_text(self):
        assert extract_text(gemini_answer("hi")) == "hi"

    @pytest.mark.parametrize("data", [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": "   "}]}}]},
        {"candidates": None},
    ])
    def test_extract_text_missing_content(self, data):
        assert extract_text(data) is None


class TestGenerateText:

    @pytest.mark.asyncio
    async def test_posts_prompt_with_key(self, api_key):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_answer("generated"))

        async with mock_client(handler) as client:
            text = await generate_text("my prompt", client=client)

        assert text == "generated"
        assert seen["url"] == "https://generation.test/v1/generate?key=test-key"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "my prompt"

    @pytest.mark.asyncio
    async def test_non_success_status_raises(self, api_key):
        async with mock_client(lambda request: httpx.Response(503, text="overloaded")) as client:
            with pytest.raises(GenerationError, match="503"):
                await generate_text("prompt", client=client)

    @pytest.mark.asyncio
    async def test_empty_content_raises(self, api_key):
        async with mock_client(lambda request: httpx.Response(200, json={"candidates": []})) as client:
            with pytest.raises(GenerationError, match="did not return content"):
                await generate_text("prompt", client=client)

    @pytest.mark.asyncio
    async def test_unreachable_service_raises(self, api_key):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(GenerationError, match="unreachable"):
                await generate_text("prompt", client=client)

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, monkeypatch):
        monkeypatch.setattr(text_generation, "GEMINI_API_KEY", "")
        with pytest.raises(GenerationError, match="GEMINI_API_KEY"):
            await generate_text("prompt")

    @pytest.mark.asyncio
    async def test_empty_prompt_raises(self, api_key):
        with pytest.raises(GenerationError):
            await generate_text("")
