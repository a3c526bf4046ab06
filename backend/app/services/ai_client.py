"""Client for the Gemini generateContent REST endpoint."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from app.core.config import Settings, settings
from app.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 503})

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


class GeminiClient:
    """Send a prompt to Gemini and return the completion text, retrying 429/503."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        *,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.3,
        max_output_tokens: int = 8192,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        backoff_max: float = 5.0,
        timeout: Optional[float] = 60.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.max_retries = max(0, max_retries)
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.timeout = timeout
        self.session = session or requests.Session()
        self._sleep = sleep

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_NONE"} for category in SAFETY_CATEGORIES
            ],
        }

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt + 1``."""
        return min(self.backoff_base * (2**attempt), self.backoff_max)

    def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise ExternalServiceError("AI service is not configured: GEMINI_API_KEY is missing")

        payload = self.build_payload(prompt)
        attempt = 0
        while True:
            try:
                response = self.session.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=payload,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                logger.error("AI request failed on attempt %s: %s", attempt + 1, exc)
                raise ExternalServiceError(f"AI service request failed: {exc}") from exc

            logger.info("AI request attempt %s returned %s", attempt + 1, response.status_code)
            if response.status_code in RETRYABLE_STATUSES and attempt < self.max_retries:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "AI service returned %s; retrying in %.1fs (%s/%s)",
                    response.status_code,
                    delay,
                    attempt + 1,
                    self.max_retries,
                )
                self._sleep(delay)
                attempt += 1
                continue

            if not 200 <= response.status_code < 300:
                message = _upstream_message(response)
                raise ExternalServiceError(
                    f"AI service error ({response.status_code}): {message}",
                    upstream_status=response.status_code,
                )

            return _completion_text(response)


def _upstream_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or "Unknown error"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text or "Unknown error"


def _completion_text(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError as exc:
        raise ExternalServiceError("AI service returned a non-JSON response", upstream_status=response.status_code) from exc

    try:
        candidates: List[Dict[str, Any]] = body["candidates"]
        text = candidates[0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        text = None
    if not isinstance(text, str) or not text:
        raise ExternalServiceError("No response text from AI", upstream_status=response.status_code)
    return text


def build_ai_client(config: Settings = settings) -> GeminiClient:
    """Construct the client from application settings."""
    return GeminiClient(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        base_url=config.gemini_api_base,
        temperature=config.ai_temperature,
        max_output_tokens=config.ai_max_output_tokens,
        max_retries=config.ai_max_retries,
        backoff_base=config.ai_backoff_base_seconds,
        backoff_max=config.ai_backoff_max_seconds,
        timeout=config.ai_timeout_seconds,
    )
