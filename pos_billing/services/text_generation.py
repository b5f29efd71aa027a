"""Gemini text-generation client used by insights and marketing."""
import logging
import time
from typing import Any, Dict, Optional, Sequence

import requests

logger = logging.getLogger(__name__)


class TextGenerationClient:
    """Thin client for the Gemini generateContent REST endpoint.

    generate() fails soft: it returns None when no key is configured or
    every model candidate fails, and callers serve their static fallback.
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
    MODEL_CANDIDATES = (
        "gemini-1.5-flash-002",
        "gemini-1.5-flash",
        "gemini-1.5-pro",
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 30,
        max_retries: int = 3,
        models: Sequence[str] = MODEL_CANDIDATES,
        http: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.models = tuple(models)
        self.http = http or requests.Session()

    @classmethod
    def from_config(cls, config) -> 'TextGenerationClient':
        return cls(
            api_key=config.get('GEMINI_API_KEY'),
            timeout=config.get('GEMINI_TIMEOUT', 30),
            max_retries=config.get('GEMINI_MAX_RETRIES', 3),
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _post_with_retry(self, url: str, payload: Dict[str, Any]) -> requests.Response:
        """POST with exponential backoff (1s, 2s, capped at 5s) on network errors."""
        for attempt in range(1, self.max_retries + 1):
            try:
                return self.http.post(
                    url,
                    params={'key': self.api_key},
                    json=payload,
                    headers={'Content-Type': 'application/json'},
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                logger.warning(f"[AI] Attempt {attempt}/{self.max_retries} failed: {e}")
                if attempt == self.max_retries:
                    raise
                time.sleep(min(2 ** (attempt - 1), 5))

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> Optional[str]:
        try:
            return data['candidates'][0]['content']['parts'][0]['text']
        except (KeyError, IndexError, TypeError):
            return None

    def generate(self, prompt: str, temperature: float = 0.25, max_output_tokens: int = 1024) -> Optional[str]:
        """Generate text for a prompt, trying each model in order."""
        if not self.configured:
            logger.warning("[AI] GEMINI_API_KEY not configured, using fallback")
            return None

        payload = {
            'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
            'generationConfig': {
                'temperature': temperature,
                'topP': 0.9,
                'maxOutputTokens': max_output_tokens,
            },
        }

        for model in self.models:
            url = f"{self.BASE_URL}/{model}:generateContent"
            try:
                response = self._post_with_retry(url, payload)
            except requests.RequestException as e:
                logger.error(f"[AI] Model {model} unreachable: {e}")
                continue

            if not response.ok:
                logger.warning(f"[AI] Model {model} failed: {response.status_code} {response.text[:300]}")
                continue

            try:
                text = self._extract_text(response.json())
            except ValueError:
                text = None
            if text:
                return text
            logger.warning(f"[AI] Model {model} returned no text")

        logger.error("[AI] All model attempts failed")
        return None
