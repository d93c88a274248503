"""Gemini generateContent client."""

from __future__ import annotations

import time
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from strategy_hub.ai.schemas import parse_json_text
from strategy_hub.config import Settings
from strategy_hub.errors import GenerationServiceError, SchemaValidationError
from strategy_hub.utils.logging import get_logger, log_llm_call


class GeminiTransportError(GenerationServiceError):
    """Raised when the request never produced an HTTP response."""


class GeminiClient:
    """Thin client for the Gemini JSON-mode content endpoint."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport
        self._logger = get_logger("strategy_hub.ai.gemini_client")

    def generate_json(
        self,
        *,
        operation: str,
        prompt: str,
        response_schema: dict[str, Any],
        temperature: float,
    ) -> dict[str, Any]:
        """Run one JSON-mode completion and return the decoded object."""
        started = time.perf_counter()
        try:
            content = self._request_content(prompt, response_schema, temperature)
            payload = parse_json_text(content)
        except (GenerationServiceError, SchemaValidationError) as exc:
            log_llm_call(
                self._logger,
                model=self._settings.gemini_model,
                operation=operation,
                success=False,
                latency_ms=(time.perf_counter() - started) * 1000,
                reason=str(exc),
            )
            raise

        log_llm_call(
            self._logger,
            model=self._settings.gemini_model,
            operation=operation,
            success=True,
            latency_ms=(time.perf_counter() - started) * 1000,
        )
        return payload

    @retry(
        retry=retry_if_exception_type(GeminiTransportError),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _request_content(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        temperature: float,
    ) -> str:
        if not self._settings.gemini_api_key:
            raise GenerationServiceError("missing_gemini_api_key")

        url = (
            f"{self._settings.gemini_base_url.rstrip('/')}"
            f"/models/{self._settings.gemini_model}:generateContent"
        )
        headers = {
            "x-goog-api-key": self._settings.gemini_api_key,
            "Content-Type": "application/json",
        }
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
                "temperature": temperature,
            },
        }

        try:
            with httpx.Client(
                timeout=self._settings.gemini_timeout,
                transport=self._transport,
            ) as client:
                response = client.post(url, headers=headers, json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.TransportError as exc:
            raise GeminiTransportError(str(exc)) from exc
        except httpx.HTTPStatusError as exc:
            raise GenerationServiceError(f"gemini_http_{exc.response.status_code}") from exc
        except ValueError as exc:
            raise GenerationServiceError("gemini_response_not_json") from exc

        return _extract_candidate_text(body)


def _extract_candidate_text(payload: Any) -> str:
    """Read the generated text from a generateContent response payload."""
    if not isinstance(payload, dict):
        return "{}"
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return "{}"
    first = candidates[0]
    if not isinstance(first, dict):
        return "{}"
    content = first.get("content")
    if not isinstance(content, dict):
        return "{}"
    parts = content.get("parts")
    if not isinstance(parts, list):
        return "{}"
    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    return "".join(texts) if texts else "{}"
