"""
Gemini client used by the chat and translate features.

Talks to the generateContent REST endpoint of the Gemini API
(generativelanguage.googleapis.com) with the API key in the
``x-goog-api-key`` header. Without a key every call degrades to a labelled
"unavailable" answer instead of failing.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from hdtn_connect.modules.assistant.schemas import AssistantReply, SearchSource

logger = logging.getLogger(__name__)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

UNAVAILABLE_MESSAGE = (
    "AI assistant is currently unavailable. "
    "Please configure the Gemini API key to enable AI features."
)

_FENCE_RE = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class AssistantService:
    def __init__(self, api_key: Optional[str], model: str, client: Optional[httpx.AsyncClient] = None):
        self.api_key = (api_key or "").strip()
        self.model = model
        self.client = client or httpx.AsyncClient(timeout=60)

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def aclose(self):
        await self.client.aclose()

    async def _generate(self, prompt: str, **extra: Any) -> Dict[str, Any]:
        payload = {"contents": [{"parts": [{"text": prompt}]}], **extra}
        resp = await self.client.post(
            f"{BASE_URL}/models/{self.model}:generateContent",
            json=payload,
            headers={"x-goog-api-key": self.api_key},
        )
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def _text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts).strip()

    @staticmethod
    def _sources(data: Dict[str, Any]) -> List[SearchSource]:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        chunks = (candidates[0].get("groundingMetadata") or {}).get("groundingChunks") or []
        return [
            SearchSource(uri=chunk["web"].get("uri", ""), title=chunk["web"].get("title"))
            for chunk in chunks
            if chunk.get("web")
        ]

    async def translate_text(self, text: str, target_language: str) -> str:
        """Translate ``text``; returns it unchanged when no API key is configured."""
        if not self.is_available():
            logger.warning("Gemini API not available for translation")
            return text
        try:
            data = await self._generate(
                f'Translate the following text to {target_language}: "{text}"',
                generationConfig={"temperature": 0.3},
            )
        except Exception as e:
            logger.error(f"Error translating text with Gemini: {e}")
            return f"Error during translation. Original: {text}"
        translated = self._text(data)
        if not translated:
            logger.error("Gemini API returned no text for translation")
            return "Translation not available."
        return translated

    async def ask_with_search(self, prompt: str) -> AssistantReply:
        """Answer ``prompt`` with Google Search grounding; web citations go in ``sources``."""
        if not self.is_available():
            logger.warning("Gemini API not available for search")
            return AssistantReply(text=UNAVAILABLE_MESSAGE, available=False)
        try:
            data = await self._generate(prompt, tools=[{"google_search": {}}])
        except Exception as e:
            logger.error(f"Error with Gemini and Google Search: {e}")
            return AssistantReply(text="Error fetching response.")
        text = self._text(data)
        if not text:
            logger.error("Gemini API returned no text with Google Search")
            return AssistantReply(text="No response available.")
        return AssistantReply(text=text, sources=self._sources(data))

    async def structured_response(self, prompt: str, example: Any) -> Optional[Any]:
        """Ask for JSON shaped like ``example``; None when unavailable or unparseable."""
        if not self.is_available():
            logger.warning("Gemini API not available for structured response")
            return None
        try:
            data = await self._generate(
                f"{prompt}. Please provide the response in JSON format. "
                f"Here is an example of the structure: {json.dumps(example, indent=2)}",
                generationConfig={"responseMimeType": "application/json"},
            )
            raw = self._text(data)
            match = _FENCE_RE.match(raw)
            if match and match.group(2):
                raw = match.group(2).strip()
            return json.loads(raw)
        except Exception as e:
            logger.error(f"Error getting structured response from Gemini: {e}")
            return None
