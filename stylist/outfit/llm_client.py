import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from stylist.config import Settings, get_settings
from stylist.outfit.exceptions import LLMError

logger = logging.getLogger(__name__)


def _is_retryable_exception(exception: BaseException) -> bool:
    if isinstance(exception, httpx.TimeoutException | httpx.ConnectError):
        return True

    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        # only 429 (rate limit) and 5xx are worth another attempt
        return status == 429 or status >= 500

    return False


def _wait_with_retry_after(retry_state: RetryCallState) -> float:
    exception = retry_state.outcome.exception()

    if isinstance(exception, httpx.HTTPStatusError):
        if exception.response.status_code == 429:
            retry_after = exception.response.headers.get("Retry-After")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    pass  # unparseable header, use backoff

    return wait_exponential(multiplier=1, min=2, max=30)(retry_state)


class LLMClient(ABC):
    @abstractmethod
    async def chat_completion(
        self: "LLMClient",
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> dict[str, Any]:
        ...


class OpenRouterClient(LLMClient):
    """OpenAI-compatible chat completions client for the judge model.

    Makes ``JUDGE_MAX_ATTEMPTS`` attempts at most; the default of 1 means a
    failed call is reported immediately and the caller falls back.
    """

    def __init__(self: "OpenRouterClient", settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.api_key = self.settings.openrouter_api_key
        self.model = self.settings.judge_model
        self.base_url = self.settings.judge_base_url.rstrip("/")

    def _get_headers(self: "OpenRouterClient") -> dict[str, str]:
        if not self.api_key:
            raise LLMError("OPENROUTER_API_KEY is not configured")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.settings.app_url,
            "X-Title": self.settings.app_name,
        }

    def _build_payload(
        self: "OpenRouterClient",
        messages: list[dict[str, Any]],
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    async def _post(
        self: "OpenRouterClient", payload: dict[str, Any], headers: dict[str, str]
    ) -> dict[str, Any]:
        url = f"{self.base_url}/chat/completions"

        async with httpx.AsyncClient(timeout=self.settings.judge_timeout) as client:
            response = await client.post(url, headers=headers, json=payload)
            response.raise_for_status()
            return response.json()

    async def _request(
        self: "OpenRouterClient", payload: dict[str, Any]
    ) -> dict[str, Any]:
        headers = self._get_headers()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.judge_max_attempts),
            wait=_wait_with_retry_after,
            retry=retry_if_exception(_is_retryable_exception),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                result = await self._post(payload, headers)
        return result

    async def chat_completion(
        self: "OpenRouterClient",
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> dict[str, Any]:
        payload = self._build_payload(messages, temperature, max_tokens)

        try:
            return await self._request(payload)

        except LLMError:
            raise

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("Judge API Error [%s]: %s", status, e.response.text)

            if status == 401:
                raise LLMError("Invalid OpenRouter API Key") from e
            if status == 400:
                raise LLMError(f"Invalid request: {e.response.text}") from e
            raise LLMError(f"Judge API failed: {e.response.text}") from e

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            logger.error("Judge network error: %s", e)
            raise LLMError(f"Network error: {e}") from e

        except Exception as e:
            logger.exception("Unexpected error during judge call")
            raise LLMError(f"Unexpected error: {e}") from e
