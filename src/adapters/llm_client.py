"""Cliente LLM (endpoint compatible OpenAI vía `AsyncOpenAI`).

Responsabilidad:
- Enviar prompts al proveedor configurado (Anthropic por defecto).
- Reintentar fallos transitorios con backoff exponencial.
- Extraer JSON de la respuesta y pedir una reescritura si no parsea.
- Registrar el consumo en un `TokenTracker`.

Sin API key el cliente queda *deshabilitado* y lanza `LLMUnavailableError`;
los servicios que lo usan caen a contenido determinista.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI, RateLimitError

from adapters.token_tracker import TokenTracker
from core.config import AppSettings
from core.errors import LLMResponseError, LLMUnavailableError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
INITIAL_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 30.0

DEFAULT_SYSTEM_PROMPT = (
    "You are a senior web strategist and copywriter for small and medium businesses. "
    "Be concrete, cite industry conventions, and avoid generic filler phrases."
)

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*([\[{].*?[\]}])\s*```", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class Completion:
    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


def build_client(*, api_key: str, base_url: str, timeout: float) -> AsyncOpenAI:
    # Los reintentos los hacemos nosotros (backoff + retry-after).
    return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)


def extract_json(text: str) -> Any:
    """Primer objeto/array JSON en la respuesta (con o sin fences)."""

    match = _JSON_FENCE_RE.search(text)
    if match:
        return json.loads(match.group(1))

    stripped = text.strip()
    if stripped[:1] in ("{", "[") and stripped[-1:] in ("}", "]"):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            pass

    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start = stripped.find(open_ch)
        end = stripped.rfind(close_ch)
        if 0 <= start < end:
            try:
                return json.loads(stripped[start : end + 1])
            except json.JSONDecodeError:
                continue

    raise ValueError("Could not locate valid JSON in the provider response.")


def _retry_after_seconds(exc: Exception) -> float | None:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def backoff_delay(attempt: int, exc: Exception | None = None) -> float:
    """1s, 2s, 4s... con tope de 30s; `retry-after` manda si viene."""

    retry_after = _retry_after_seconds(exc) if exc is not None else None
    if retry_after is not None:
        return min(retry_after, MAX_DELAY_SECONDS)
    return min(INITIAL_DELAY_SECONDS * (2**attempt), MAX_DELAY_SECONDS)


class LLMClient:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        client: AsyncOpenAI | None = None,
        tracker: TokenTracker | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or AppSettings()
        self.tracker = tracker
        self._sleep = sleep
        if client is None and self.settings.ai_api_key:
            client = build_client(
                api_key=self.settings.ai_api_key,
                base_url=self.settings.ai_base_url,
                timeout=self.settings.ai_timeout_seconds,
            )
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @property
    def model(self) -> str:
        return self.settings.ai_model

    async def _create(self, messages: list[dict[str, str]], max_tokens: int, operation: str) -> Completion:
        if self._client is None:
            raise LLMUnavailableError("No LLM API key configured (set WPF_AI_API_KEY or run `wpf doctor setup-ai`).")

        max_retries = self.settings.ai_max_retries
        last_error: Exception | None = None
        for attempt in range(max_retries + 1):
            try:
                response = await self._client.chat.completions.create(
                    model=self.model,
                    messages=messages,  # type: ignore[arg-type]
                    max_tokens=max_tokens,
                    temperature=0.4,
                )
            except (RateLimitError, APITimeoutError, APIConnectionError) as exc:
                last_error = exc
            except APIStatusError as exc:
                last_error = exc
                if exc.status_code not in RETRYABLE_STATUS:
                    break
            else:
                content = (response.choices[0].message.content or "").strip()
                usage = response.usage
                completion = Completion(
                    content=content,
                    model=response.model or self.model,
                    input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                    output_tokens=getattr(usage, "completion_tokens", 0) or 0,
                )
                if self.tracker is not None:
                    self.tracker.track(
                        operation,
                        completion.model,
                        completion.input_tokens,
                        completion.output_tokens,
                        {"max_tokens": max_tokens},
                    )
                return completion

            if attempt >= max_retries:
                break
            delay = backoff_delay(attempt, last_error)
            logger.warning(
                "LLM call failed (%s), retrying in %.1fs (attempt %d/%d)",
                type(last_error).__name__,
                delay,
                attempt + 1,
                max_retries,
            )
            await self._sleep(delay)

        raise LLMUnavailableError(f"LLM provider failed: {type(last_error).__name__}: {last_error}") from last_error

    async def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 4096,
        operation: str = "completion",
    ) -> Completion:
        messages = [
            {"role": "system", "content": system or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        return await self._create(messages, max_tokens, operation)

    async def complete_json(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 4096,
        operation: str = "completion",
    ) -> Any:
        """Como `complete`, pero devuelve el JSON parseado.

        Si la respuesta no contiene JSON válido, se pide una única reescritura
        "solo JSON" antes de rendirse con `LLMResponseError`.
        """

        messages = [
            {"role": "system", "content": system or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        first = await self._create(messages, max_tokens, operation)
        try:
            return extract_json(first.content)
        except ValueError:
            logger.info("LLM response for %s was not valid JSON; asking for a rewrite", operation)

        messages += [
            {"role": "assistant", "content": first.content},
            {"role": "user", "content": "Your response was not valid JSON. Rewrite ONLY valid JSON (no extra text, no fences)."},
        ]
        second = await self._create(messages, max_tokens, f"{operation}_json_retry")
        try:
            return extract_json(second.content)
        except ValueError as exc:
            raise LLMResponseError(f"Provider did not return valid JSON for {operation}") from exc
