# -*- coding: utf-8 -*-
"""
suggestion_client.py

Remote content suggestions: an OpenAI-compatible Chat Completions endpoint
first, Google Gemini second. Any failure surfaces as RemoteSuggestionUnavailable,
which the content generator always absorbs.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from google import genai
from google.genai import types as genai_types

from .config import Config
from .utils import RemoteSuggestionUnavailable, get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You write short website copy. Reply with the text only: no markdown headings, "
    "no quotes around the answer, no explanations."
)

SLOT_INSTRUCTIONS = {
    "headline": "Write one headline of at most 10 words.",
    "description": "Write one paragraph of 2-3 sentences describing the site.",
    "features": "Write exactly three bullet points, each starting with '- '.",
    "cta": "Write a call-to-action button label of at most 4 words.",
    "testimonial": "Write one short customer testimonial in quotes followed by ' - ' and a role.",
}


def build_user_prompt(request: Dict[str, Any]) -> str:
    slot = request.get("slotKind", "description")
    return (
        f"Website type: {request.get('archetype')}\n"
        f"Project description: {request.get('description')}\n"
        f"Task: {SLOT_INSTRUCTIONS.get(slot, SLOT_INSTRUCTIONS['description'])}"
    )


class SuggestionClient:
    """Interface for the remote suggestion call: {description, archetype, slotKind} -> text."""

    def suggest(self, request: Dict[str, Any]) -> str:
        raise NotImplementedError


class LLMSuggestionClient(SuggestionClient):
    def __init__(
        self,
        api_key: Optional[str] = Config.AI_API_KEY,
        api_base: str = Config.AI_API_BASE,
        model: str = Config.AI_MODEL,
        gemini_api_key: Optional[str] = Config.GEMINI_API_KEY,
        gemini_model: str = Config.GEMINI_MODEL,
        timeout: float = Config.SUGGESTION_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_base = api_base
        self.model = model
        self.gemini_api_key = gemini_api_key
        self.gemini_model = gemini_model
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key or self.gemini_api_key)

    def backend_timeout(self) -> float:
        """Per-backend share of the suggestion budget; each configured backend gets an equal slice."""
        backends = int(bool(self.api_key)) + int(bool(self.gemini_api_key))
        return self.timeout / max(backends, 1)

    def _call_chat_completion(self, user_prompt: str) -> Optional[str]:
        url = f"{self.api_base.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": 300,
            "temperature": 0.4,
        }
        resp = self.session.post(url, headers=headers, json=payload, timeout=self.backend_timeout())
        resp.raise_for_status()
        return (resp.json().get("choices") or [{}])[0].get("message", {}).get("content")

    def _call_gemini(self, user_prompt: str) -> Optional[str]:
        client = genai.Client(
            api_key=self.gemini_api_key,
            http_options=genai_types.HttpOptions(timeout=int(self.backend_timeout() * 1000)),
        )
        response = client.models.generate_content(
            model=self.gemini_model,
            contents=f"{SYSTEM_PROMPT}\n\nUser Request:\n{user_prompt}",
            config=genai_types.GenerateContentConfig(max_output_tokens=300, temperature=0.4),
        )
        return response.text

    def suggest(self, request: Dict[str, Any]) -> str:
        if not self.configured:
            raise RemoteSuggestionUnavailable("No AI API key configured", stage="Suggestion")

        user_prompt = build_user_prompt(request)

        if self.api_key:
            try:
                content = self._call_chat_completion(user_prompt)
                if content and content.strip():
                    return content.strip()
            except Exception as e:
                logger.warning(f"Chat completion call failed ({e}); trying Gemini.")

        if self.gemini_api_key:
            try:
                content = self._call_gemini(user_prompt)
                if content and content.strip():
                    return content.strip()
            except Exception as e:
                logger.warning(f"Gemini call failed: {e}")

        raise RemoteSuggestionUnavailable(
            f"No suggestion for slot '{request.get('slotKind')}'", stage="Suggestion"
        )
