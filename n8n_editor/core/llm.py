"""
Gemini Client
Single-shot text generation against the Generative Language REST API.
"""
from typing import Any, Dict, Optional

import httpx

from n8n_editor.core.config import settings
from n8n_editor.core.exceptions import ConfigError, ModelError
from n8n_editor.core.logging import model_logger as logger


def _candidate_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate. Unexpected shapes yield ""."""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(
        part["text"] for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )


class GeminiClient:
    """Calls models/{model}:generateContent once per prompt. No retries, no streaming."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-flash-latest",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not api_key:
            raise ConfigError("GEMINI_API_KEY not configured")
        self.model = model
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            headers={
                "x-goog-api-key": api_key,
                "Content-Type": "application/json"
            },
            timeout=timeout,
            transport=transport
        )

    async def close(self):
        await self._client.aclose()

    async def generate(self, prompt: str) -> str:
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        logger.info(f"Calling {self.model} (prompt: {len(prompt)} chars)")

        try:
            response = await self._client.post(f"models/{self.model}:generateContent", json=payload)
        except httpx.RequestError as e:
            raise ModelError("Gemini request failed", details=str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            raise ModelError(
                f"Gemini API error ({response.status_code})",
                details=data if data is not None else response.text
            )
        if not isinstance(data, dict):
            raise ModelError("Gemini returned a non-JSON response", details=response.text[:500])

        text = _candidate_text(data)
        if not text:
            raise ModelError(
                "Gemini returned no text",
                details=data.get("promptFeedback") or data.get("candidates")
            )

        logger.info(f"Raw response length: {len(text)}")
        return text


_model_client: Optional[GeminiClient] = None


def get_model_client() -> GeminiClient:
    """Factory returning the shared Gemini client built from settings."""
    global _model_client
    if _model_client is None:
        _model_client = GeminiClient(
            settings.require_model(),
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.model_timeout
        )
    return _model_client


async def close_model_client():
    global _model_client
    if _model_client is not None:
        await _model_client.close()
        _model_client = None
