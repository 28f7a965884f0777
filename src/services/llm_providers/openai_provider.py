"""
OpenAI-compatible Provider Implementation

Chat Completions over plain HTTP with retry/backoff, used for OpenAI itself
and for any custom endpoint speaking the same protocol.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from core.llm_provider import (
    CapabilityMismatchError,
    LLMProvider,
    LLMProviderError,
    LLMSettings,
    TerminalRequestError,
    TransientNetworkError,
    compute_backoff_seconds,
    mentions_capability_mismatch,
)
from models.tagging import CompletionRequest, CompletionResult
from services.config_service import ConfigService

logger = logging.getLogger(__name__)

# Default base URL per provider preset; "custom" requires one from config
PROVIDER_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "custom": "",
}


@dataclass(frozen=True)
class OpenAISettings(LLMSettings):
    """OpenAI-compatible endpoint settings.

    Attributes:
        base_url: API base URL (with or without /chat/completions).
        api_key_env: Environment variable name for the API key.
        provider: Preset name ("openai" | "custom").
    """
    base_url: str = "https://api.openai.com/v1"
    api_key_env: str = "OPENAI_API_KEY"
    provider: str = "openai"


def build_completions_url(base_url: str) -> str:
    """Normalize a base URL to the chat completions endpoint."""
    base = base_url.rstrip("/")
    if base.endswith("/chat/completions"):
        return base
    return f"{base}/chat/completions"


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Retry-After header in seconds, or None when absent or not numeric."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return max(0.0, seconds)


class OpenAICompatibleProvider(LLMProvider):
    """OpenAI-compatible Chat Completions Provider.

    Endpoint: {base_url}/chat/completions
    Auth: Authorization: Bearer <api_key>

    Retry policy:
    - 429: wait Retry-After seconds if given, else exponential backoff
    - 5xx, network errors, unreadable bodies: exponential backoff
    - other 4xx: raised immediately
    """

    def __init__(self, settings: OpenAISettings):
        self._settings = settings

    @property
    def name(self) -> str:
        return self._settings.provider

    @property
    def settings(self) -> OpenAISettings:
        return self._settings

    @property
    def url(self) -> str:
        return build_completions_url(self._settings.base_url)

    @staticmethod
    def from_config(config: ConfigService) -> "OpenAICompatibleProvider":
        """Create a provider instance from the configuration service."""
        provider = str(config.get("ai_tagger.provider", "openai")).strip().lower()
        base_url = str(config.get("ai_tagger.base_url", "") or PROVIDER_BASE_URLS.get(provider, ""))
        model = config.get("ai_tagger.model", "gpt-4.1-mini")
        api_key_env = config.get("ai_tagger.api_key_env", "OPENAI_API_KEY")
        api_key = config.get("ai_tagger.api_key", "") or os.environ.get(api_key_env, "")
        timeout_seconds = float(config.get("ai_tagger.timeout_seconds", 60.0))
        max_retries = max(0, min(10, int(config.get("ai_tagger.max_retries", 3))))

        if not base_url:
            raise LLMProviderError(
                "Missing API base URL: please set `ai_tagger.base_url` for the custom provider."
            )
        if not api_key:
            raise LLMProviderError(
                f"Missing API Key: please provide it in configuration `ai_tagger.api_key` or environment variable `{api_key_env}`."
            )

        return OpenAICompatibleProvider(
            OpenAISettings(
                api_key=str(api_key),
                model=str(model),
                timeout_seconds=timeout_seconds,
                max_retries=max_retries,
                base_url=base_url,
                api_key_env=str(api_key_env),
                provider=provider,
            )
        )

    def _build_request(self, payload: Dict[str, Any]) -> Request:
        return Request(
            self.url,
            data=json.dumps(payload, ensure_ascii=False).encode("utf-8", errors="replace"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._settings.api_key}",
            },
            method="POST",
        )

    def _build_payload(
        self, request: CompletionRequest, use_structured_output: bool
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": [m.to_dict() for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        if use_structured_output and request.response_format:
            payload["response_format"] = request.response_format
        return payload

    @staticmethod
    def _read_error(e: HTTPError) -> Tuple[str, str]:
        """Return (full message, provider error message) for an HTTP error."""
        body = ""
        try:
            body = e.read().decode("utf-8", errors="replace")
        except OSError:
            pass

        detail = ""
        if body:
            try:
                data = json.loads(body)
                error = data.get("error") if isinstance(data, dict) else None
                if isinstance(error, dict):
                    detail = str(error.get("message", "") or "")
                elif isinstance(error, str):
                    detail = error
            except ValueError:
                detail = body[:400]

        return f"HTTP {e.code}: {e.reason} - {detail}", detail

    @staticmethod
    def _parse_result(raw: str) -> CompletionResult:
        try:
            data = json.loads(raw)
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TransientNetworkError(f"Unreadable completion response: {raw[:400]}") from e

        if not isinstance(content, str):
            raise TransientNetworkError(f"Completion response has no text content: {raw[:400]}")

        usage = data.get("usage")
        return CompletionResult(
            content=content,
            model=str(data.get("model", "") or ""),
            finish_reason=str(choice.get("finish_reason", "") or ""),
            usage=usage if isinstance(usage, dict) else None,
        )

    def complete(
        self,
        request: CompletionRequest,
        max_retries: Optional[int] = None,
        use_structured_output: bool = True,
    ) -> CompletionResult:
        """Execute chat completion request with retries."""
        retries = self._settings.max_retries if max_retries is None else max(0, max_retries)
        payload = self._build_payload(request, use_structured_output)
        last_error: Optional[LLMProviderError] = None

        for attempt in range(retries + 1):
            wait_seconds = compute_backoff_seconds(attempt)
            req = self._build_request(payload)
            logger.debug("%s request to %s with model %s (attempt %d)",
                         self.name, self.url, self._settings.model, attempt + 1)

            try:
                with urlopen(req, timeout=self._settings.timeout_seconds) as resp:
                    raw = resp.read().decode("utf-8", errors="replace")
                return self._parse_result(raw)
            except HTTPError as e:
                message, detail = self._read_error(e)
                if e.code == 429:
                    retry_after = parse_retry_after(e.headers.get("Retry-After") if e.headers else None)
                    if retry_after is not None:
                        wait_seconds = retry_after
                    last_error = TransientNetworkError(message)
                    logger.warning("%s rate limited (429)", self.name)
                elif e.code >= 500:
                    last_error = TransientNetworkError(message)
                    logger.warning("%s server error (%d)", self.name, e.code)
                else:
                    logger.error("%s API %s", self.name, message)
                    if mentions_capability_mismatch(detail):
                        raise CapabilityMismatchError(message, status_code=e.code) from e
                    raise TerminalRequestError(message, status_code=e.code) from e
            except URLError as e:
                last_error = TransientNetworkError(f"Request failed: {e.reason}")
                logger.warning("%s request failed: %s", self.name, e.reason)
            except (TimeoutError, OSError) as e:
                last_error = TransientNetworkError(f"Request failed: {e}")
                logger.warning("%s request failed: %s", self.name, e)
            except TransientNetworkError as e:
                last_error = e
                logger.warning("%s: %s", self.name, e)

            if attempt < retries:
                logger.warning("%s: waiting %.1fs before retry %d/%d",
                               self.name, wait_seconds, attempt + 1, retries)
                time.sleep(wait_seconds)

        raise last_error or LLMProviderError("Request failed after all retries")

    def test_connection(self) -> str:
        """Send a minimal request and return the model the provider reports."""
        payload = {
            "model": self._settings.model,
            "messages": [{"role": "user", "content": "Hello"}],
            "max_tokens": 5,
        }
        req = self._build_request(payload)

        try:
            with urlopen(req, timeout=self._settings.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            message, _ = self._read_error(e)
            logger.error("%s connection test failed: %s", self.name, message)
            raise TerminalRequestError(message, status_code=e.code) from e
        except URLError as e:
            raise LLMProviderError(f"Request failed: {e.reason}") from e
        except OSError as e:
            raise LLMProviderError(f"Request failed: {e}") from e

        try:
            data = json.loads(raw)
        except ValueError:
            data = {}
        model = data.get("model") if isinstance(data, dict) else None
        return str(model or self._settings.model)
