"""
Gemini Completion Provider.
Calls the generateContent endpoint with per-attempt timeout, exponential
backoff and classification of the finish condition.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..core.exceptions import (
    CompletionError,
    CompletionTimeoutError,
    EmptyResponseError,
    ForbiddenError,
    InvalidInputError,
    MissingCredentialError,
    NetworkError,
    RateLimitedError,
    RequestFailedError,
)
from ..models import ChatSettings
from .base import CompletionProvider, CompletionResult
from .validation import validate_settings

logger = logging.getLogger(__name__)

SAFETY_MESSAGE = (
    "I apologize, but I can't provide a response to that request due to safety "
    "guidelines. Please try rephrasing your question."
)
RECITATION_MESSAGE = (
    "I can't provide that response as it may contain copyrighted content. "
    "Please try asking in a different way."
)
FALLBACK_MESSAGE = "I apologize, but I couldn't generate a proper response. Please try again."

SAFETY_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]


class GeminiProvider(CompletionProvider):
    """
    Provider for the Google Gemini REST API (API-key authentication).

    One call to generate() is one logical request: up to `max_retries`
    attempts, each bounded by `timeout` seconds, with `2 ** attempt`
    seconds of backoff between attempts.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        timeout: float = 30.0,
        max_retries: int = 3,
        history_limit: int = 20,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        log_calls: bool = True,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.history_limit = history_limit
        self._sleep = sleep
        self.log_calls = log_calls

    def _build_payload(
        self,
        prompt: str,
        settings: ChatSettings,
        history: List[Dict[str, str]],
    ) -> Dict[str, Any]:
        contents: List[Dict[str, Any]] = []

        if settings.system_prompt:
            contents.append({
                "role": "user",
                "parts": [{"text": f"System: {settings.system_prompt}"}],
            })

        for entry in history[-self.history_limit:]:
            contents.append({
                "role": "user" if entry.get("role") == "user" else "model",
                "parts": [{"text": entry.get("content", "")}],
            })

        contents.append({"role": "user", "parts": [{"text": prompt}]})

        return {
            "contents": contents,
            "generationConfig": {
                "temperature": settings.temperature,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": settings.max_tokens,
                "stopSequences": [],
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
                for category in SAFETY_CATEGORIES
            ],
        }

    async def generate(
        self,
        prompt: str,
        settings: ChatSettings,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> CompletionResult:
        """Send the prompt with its history and return the classified reply."""
        if not prompt or not prompt.strip():
            raise InvalidInputError("Please enter a message")
        if not self.api_key:
            raise MissingCredentialError(
                "Gemini API key is not configured. Please set GEMINI_API_KEY "
                "in your environment."
            )

        settings = validate_settings(settings)
        url = f"{self.base_url}/{settings.model}:generateContent"
        payload = self._build_payload(prompt.strip(), settings, history or [])

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Completion request starting: provider=gemini, model={settings.model}, "
                f"temperature={settings.temperature}, turns={len(payload['contents'])}"
            )

        for attempt in range(self.max_retries):
            start_time = time.time()
            try:
                result = await asyncio.wait_for(
                    self._attempt(url, payload, settings.model),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                error: CompletionError = CompletionTimeoutError(
                    "Request timed out. Please try again."
                )
            except CompletionError as e:
                error = e
            else:
                if self.log_calls:
                    logger.info(
                        "Completion call completed",
                        extra={"extra_fields": {
                            "provider": "gemini",
                            "model": settings.model,
                            "attempt": attempt + 1,
                            "total_tokens": result.tokens,
                            "duration_ms": round((time.time() - start_time) * 1000, 2),
                        }}
                    )
                return result

            logger.warning(
                f"Completion attempt {attempt + 1} failed: {error.message}",
                extra={"extra_fields": {
                    "provider": "gemini",
                    "model": settings.model,
                    "attempt": attempt + 1,
                    "error_kind": error.kind.value,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )
            if not error.retryable or attempt == self.max_retries - 1:
                raise error
            await self._sleep(2 ** attempt)

        # max_retries < 1
        raise RequestFailedError("Max retries exceeded")

    async def _attempt(self, url: str, payload: Dict[str, Any], model: str) -> CompletionResult:
        """One network call. Maps transport and HTTP failures to completion errors."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    url,
                    params={"key": self.api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise CompletionTimeoutError("Request timed out. Please try again.") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Network error while contacting Gemini: {type(e).__name__}") from e

        if not 200 <= resp.status_code < 300:
            self._raise_for_status(resp)

        try:
            data = resp.json()
        except ValueError as e:
            raise EmptyResponseError("Invalid response structure from Gemini API") from e

        return self._classify(data, model)

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        status_code = resp.status_code
        if status_code == 429:
            raise RateLimitedError("Rate limit exceeded. Please wait a moment and try again.")
        if status_code == 403:
            raise ForbiddenError("API access denied. Please check your API key.")

        server_message = None
        try:
            body = resp.json()
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                server_message = body["error"].get("message")
        except ValueError:
            pass

        detail = server_message or f"HTTP {status_code}"
        raise RequestFailedError(
            f"API request failed: {detail}",
            status_code=status_code,
            server_message=server_message,
        )

    @staticmethod
    def _classify(data: Dict[str, Any], model: str) -> CompletionResult:
        candidates = data.get("candidates") or []
        if not candidates:
            raise EmptyResponseError("No response generated from Gemini API")

        candidate = candidates[0]
        tokens = (data.get("usageMetadata") or {}).get("totalTokenCount")
        finish_reason = candidate.get("finishReason")

        if finish_reason == "SAFETY":
            return CompletionResult(response=SAFETY_MESSAGE, tokens=tokens, model=model, raw=data)
        if finish_reason == "RECITATION":
            return CompletionResult(response=RECITATION_MESSAGE, tokens=tokens, model=model, raw=data)

        parts = (candidate.get("content") or {}).get("parts") or []
        if not parts:
            raise EmptyResponseError("Invalid response structure from Gemini API")

        text = (parts[0].get("text") or "").strip() or FALLBACK_MESSAGE
        return CompletionResult(response=text, tokens=tokens, model=model, raw=data)
