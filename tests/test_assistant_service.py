"""Unit tests for AssistantService against a mocked Gemini endpoint."""

import json

import httpx
import pytest

from hdtn_connect.modules.assistant.service import AssistantService, UNAVAILABLE_MESSAGE


def gemini_reply(text: str, chunks=None) -> dict:
    candidate = {"content": {"parts": [{"text": text}]}}
    if chunks is not None:
        candidate["groundingMetadata"] = {"groundingChunks": chunks}
    return {"candidates": [candidate]}


def service_with(handler) -> AssistantService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AssistantService("test-key", "gemini-2.5-flash", client=client)


class TestUnavailable:
    async def test_translate_returns_original(self, assistant: AssistantService):
        assert await assistant.translate_text("hello", "French") == "hello"

    async def test_chat_is_labelled_unavailable(self, assistant: AssistantService):
        reply = await assistant.ask_with_search("weather?")
        assert not reply.available
        assert reply.text == UNAVAILABLE_MESSAGE
        assert reply.sources == []

    async def test_structured_is_none(self, assistant: AssistantService):
        assert await assistant.structured_response("list", {"a": 1}) is None


class TestTranslate:
    async def test_sends_prompt_and_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_reply("  bonjour \n"))

        service = service_with(handler)
        assert await service.translate_text("hello", "French") == "bonjour"
        assert seen["url"].endswith("/models/gemini-2.5-flash:generateContent")
        assert seen["key"] == "test-key"
        assert "Translate the following text to French" in seen["body"]["contents"][0]["parts"][0]["text"]
        assert seen["body"]["generationConfig"]["temperature"] == 0.3
        await service.aclose()

    async def test_http_error_is_labelled(self):
        service = service_with(lambda request: httpx.Response(500, json={"error": {"message": "boom"}}))
        assert await service.translate_text("hello", "French") == "Error during translation. Original: hello"
        await service.aclose()

    async def test_empty_answer(self):
        service = service_with(lambda request: httpx.Response(200, json={"candidates": []}))
        assert await service.translate_text("hello", "French") == "Translation not available."
        await service.aclose()


class TestAskWithSearch:
    async def test_returns_web_sources(self):
        chunks = [
            {"web": {"uri": "https://example.com/a", "title": "A"}},
            {"retrievedContext": {"uri": "gs://ignored"}},
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content)["tools"] == [{"google_search": {}}]
            return httpx.Response(200, json=gemini_reply("Sunny.", chunks))

        service = service_with(handler)
        reply = await service.ask_with_search("weather?")
        assert reply.available
        assert reply.text == "Sunny."
        assert [s.uri for s in reply.sources] == ["https://example.com/a"]
        await service.aclose()

    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable")

        service = service_with(handler)
        reply = await service.ask_with_search("weather?")
        assert reply.text == "Error fetching response."
        await service.aclose()


class TestStructuredResponse:
    @pytest.mark.parametrize("raw", ['{"a": 2}', '```json\n{"a": 2}\n```'])
    async def test_parses_plain_and_fenced_json(self, raw):
        service = service_with(lambda request: httpx.Response(200, json=gemini_reply(raw)))
        assert await service.structured_response("give a", {"a": 1}) == {"a": 2}
        await service.aclose()

    async def test_invalid_json_is_none(self):
        service = service_with(lambda request: httpx.Response(200, json=gemini_reply("not json")))
        assert await service.structured_response("give a", {"a": 1}) is None
        await service.aclose()
