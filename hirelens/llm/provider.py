"""
hirelens/llm/provider.py

Inference provider adapters.

- InferenceProvider: the two calls the core needs (embed, complete)
- LLMProvider: Anthropic or OpenAI chat completions, OpenAI embeddings
- ResilientProvider: per-call timeout, at most one retry on transient errors,
  circuit breaker after N consecutive failures

Every failure leaves this module as ProviderError. SDK exception messages are
not forwarded (they can echo request headers); only the exception type name is.
"""
from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, TypeVar

import anthropic
import openai

from hirelens import config as _config
from hirelens.errors import ProviderError
from hirelens.models import EmbeddingVector

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_HINTS = (
    "rate limit",
    "ratelimit",
    "too many requests",
    "overloaded",
    "temporarily overloaded",
    "timeout",
    "timed out",
    "try again",
    "server error",
    "503",
    "529",
)


class InferenceProvider(Protocol):
    async def embed(self, text: str) -> EmbeddingVector:
        ...

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        ...


class LLMProvider:
    """
    Talks to the vendor SDKs. No retries, no timeouts beyond the SDK's own;
    wrap in ResilientProvider for that.
    """

    _MAX_TOKENS = 600

    def __init__(
            self,
            *,
            provider: str = "openai",
            model: Optional[str] = None,
            embedding_model: Optional[str] = None,
            openai_api_key: Optional[str] = None,
            anthropic_api_key: Optional[str] = None,
            temperature: float = 0.3,
    ) -> None:
        self._provider = (provider or "").strip().lower()
        if self._provider not in ("anthropic", "openai"):
            raise ProviderError(
                f"Unsupported provider '{self._provider}'. Use 'anthropic' or 'openai'."
            )
        self._model = (model or _config.HIRELENS_LLM_MODEL).strip()
        self._embedding_model = (embedding_model or _config.HIRELENS_EMBEDDING_MODEL).strip()
        self._openai_api_key = openai_api_key
        self._anthropic_api_key = anthropic_api_key
        self._temperature = temperature
        self._openai_client = None
        self._anthropic_client = None

    @property
    def provider(self) -> str:
        return self._provider

    # ------------------------------------------------------------------
    # Clients (created on first use so a missing key only fails the call)
    # ------------------------------------------------------------------

    def _openai(self):
        if self._openai_client is None:
            if not self._openai_api_key:
                raise ProviderError("OpenAI API key is not configured.")
            self._openai_client = openai.AsyncOpenAI(api_key=self._openai_api_key, max_retries=0)
        return self._openai_client

    def _anthropic(self):
        if self._anthropic_client is None:
            if not self._anthropic_api_key:
                raise ProviderError("Anthropic API key is not configured.")
            self._anthropic_client = anthropic.AsyncAnthropic(api_key=self._anthropic_api_key, max_retries=0)
        return self._anthropic_client

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> EmbeddingVector:
        if not text or not text.strip():
            raise ProviderError("Cannot embed empty text.")
        client = self._openai()
        try:
            response = await client.embeddings.create(model=self._embedding_model, input=text)
        except openai.APITimeoutError:
            raise ProviderError("OpenAI embeddings request timed out.") from None
        except openai.APIError as exc:
            raise ProviderError(f"OpenAI embeddings error: {type(exc).__name__}") from None

        if not response.data:
            raise ProviderError("OpenAI returned no embedding.")
        return tuple(float(x) for x in response.data[0].embedding)

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        if self._provider == "anthropic":
            return await self._complete_anthropic(prompt, system)
        return await self._complete_openai(prompt, system)

    # ------------------------------------------------------------------
    # Provider implementations
    # ------------------------------------------------------------------

    async def _complete_anthropic(self, prompt: str, system: Optional[str]) -> str:
        client = self._anthropic()
        kwargs = {
            "model": self._model,
            "max_tokens": self._MAX_TOKENS,
            "temperature": self._temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system
        try:
            message = await client.messages.create(**kwargs)
        except anthropic.APITimeoutError:
            raise ProviderError("Anthropic API timed out.") from None
        except anthropic.APIError as exc:
            raise ProviderError(f"Anthropic API error: {type(exc).__name__}") from None

        for block in message.content:
            if block.type == "text":
                return block.text
        raise ProviderError("Anthropic returned no text content.")

    async def _complete_openai(self, prompt: str, system: Optional[str]) -> str:
        client = self._openai()
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        try:
            response = await client.chat.completions.create(
                model=self._model,
                max_tokens=self._MAX_TOKENS,
                temperature=self._temperature,
                messages=messages,
            )
        except openai.APITimeoutError:
            raise ProviderError("OpenAI API timed out.") from None
        except openai.APIError as exc:
            raise ProviderError(f"OpenAI API error: {type(exc).__name__}") from None

        content = response.choices[0].message.content
        if not content:
            raise ProviderError("OpenAI returned empty content.")
        return content


def _is_transient_error(err: Exception) -> bool:
    msg = (str(err) or "").lower()
    return any(h in msg for h in TRANSIENT_HINTS)


async def _sleep_backoff(attempt: int) -> None:
    # attempt=0 -> ~0.8s, with jitter
    base = 0.8 * (2 ** attempt)
    jitter = random.uniform(0.0, 0.25)
    await asyncio.sleep(base + jitter)


@dataclass
class BreakerState:
    consecutive_failures: int = 0
    disabled_at: Optional[float] = None
    disabled_reason: Optional[str] = None
    trial_in_flight: bool = False


class ResilientProvider:
    """
    Wraps an InferenceProvider:
    - hard timeout per call (asyncio.wait_for, so cancellation reaches the SDK)
    - at most one retry, and only for transient errors
    - circuit breaker: after N consecutive failed calls every call fails fast
      until the cooldown has passed. Then exactly one call is let through as a
      trial while the rest keep failing fast; a successful trial closes the
      breaker, a failed one restarts the cooldown.
    """

    def __init__(
            self,
            inner: InferenceProvider,
            *,
            complete_timeout: float = 15.0,
            embed_timeout: float = 10.0,
            max_retries: int = 1,
            breaker_consecutive_fails: int = 5,
            breaker_cooldown_seconds: float = 60.0,
    ) -> None:
        self._inner = inner
        self._complete_timeout = complete_timeout
        self._embed_timeout = embed_timeout
        self._max_retries = min(1, max(0, max_retries))
        self._breaker_fails = max(1, breaker_consecutive_fails)
        self._cooldown = breaker_cooldown_seconds
        self._state = BreakerState()

    def is_disabled(self) -> bool:
        if self._state.disabled_at is None:
            return False
        if self._state.trial_in_flight:
            return True
        return time.monotonic() - self._state.disabled_at < self._cooldown

    async def embed(self, text: str) -> EmbeddingVector:
        # Caller error, not a provider failure: never counted by the breaker.
        if not text or not text.strip():
            raise ProviderError("Cannot embed empty text.")
        return await self._call("embed", lambda: self._inner.embed(text), self._embed_timeout)

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        return await self._call(
            "complete", lambda: self._inner.complete(prompt, system=system), self._complete_timeout
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _call(self, op: str, factory: Callable[[], Awaitable[T]], timeout: float) -> T:
        if self.is_disabled():
            raise ProviderError(f"Provider disabled: {self._state.disabled_reason}")

        # Cooldown has passed: this call is the half-open trial.
        trial = self._state.disabled_at is not None
        if trial:
            self._state.trial_in_flight = True
        try:
            return await self._attempt(op, factory, timeout, trial)
        finally:
            if trial:
                self._state.trial_in_flight = False

    async def _attempt(
            self,
            op: str,
            factory: Callable[[], Awaitable[T]],
            timeout: float,
            trial: bool,
    ) -> T:
        last_err: Optional[ProviderError] = None
        for attempt in range(self._max_retries + 1):
            try:
                out = await asyncio.wait_for(factory(), timeout=timeout)
            except asyncio.TimeoutError:
                last_err = ProviderError(f"{op} timed out after {timeout:g}s")
                transient = True
            except ProviderError as exc:
                last_err = exc
                transient = _is_transient_error(exc)
            except Exception as exc:
                last_err = ProviderError(f"{op} failed: {type(exc).__name__}")
                transient = False
            else:
                if trial:
                    logger.info("inference provider recovered, circuit-breaker closed")
                self._state.consecutive_failures = 0
                self._state.disabled_at = None
                return out

            if transient and attempt < self._max_retries:
                logger.debug("provider %s failed (%s), retrying", op, last_err)
                await _sleep_backoff(attempt)
                continue
            break

        self._state.consecutive_failures += 1
        if trial:
            self._state.disabled_at = time.monotonic()
            logger.warning("inference provider trial failed, breaker stays open")
        elif self._state.consecutive_failures >= self._breaker_fails and self._state.disabled_at is None:
            self._state.disabled_at = time.monotonic()
            self._state.disabled_reason = (
                f"circuit-breaker tripped after {self._state.consecutive_failures} failures"
            )
            logger.warning("inference provider %s", self._state.disabled_reason)
        raise last_err


def build_provider(cfg: Optional[_config.PipelineConfig] = None) -> ResilientProvider:
    cfg = cfg or _config.load_pipeline_config()
    inner = LLMProvider(
        provider=cfg.provider,
        model=cfg.model,
        embedding_model=cfg.embedding_model,
        openai_api_key=_config.resolve_api_key("openai"),
        anthropic_api_key=_config.resolve_api_key("anthropic"),
    )
    return ResilientProvider(
        inner,
        complete_timeout=cfg.llm_timeout_seconds,
        embed_timeout=cfg.embed_timeout_seconds,
        max_retries=cfg.max_retries,
        breaker_consecutive_fails=cfg.breaker_consecutive_fails,
    )
