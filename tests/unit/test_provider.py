import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

import hirelens.llm.provider as prov
from hirelens.config import PipelineConfig
from hirelens.errors import ProviderError

_REQ = httpx.Request("POST", "https://api.example.test/v1")


async def _no_sleep(attempt):
    return None


# ---------------------------------------------------------------------------
# LLMProvider
# ---------------------------------------------------------------------------

def _openai_client(monkeypatch, **methods):
    client = MagicMock()
    for path, mock in methods.items():
        obj = client
        parts = path.split(".")
        for p in parts[:-1]:
            obj = getattr(obj, p)
        setattr(obj, parts[-1], mock)
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(prov.openai, "AsyncOpenAI", factory)
    return client, factory


def test_unsupported_provider_is_rejected():
    with pytest.raises(ProviderError, match="Unsupported provider"):
        prov.LLMProvider(provider="cohere")


def test_missing_openai_key_fails_the_call_not_the_constructor():
    p = prov.LLMProvider(provider="openai", openai_api_key=None)
    with pytest.raises(ProviderError, match="not configured"):
        asyncio.run(p.complete("hi"))


def test_embed_rejects_empty_text():
    p = prov.LLMProvider(openai_api_key="sk-test")
    with pytest.raises(ProviderError, match="empty"):
        asyncio.run(p.embed("   "))


def test_openai_embed(monkeypatch):
    create = AsyncMock(return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.25, 0.5])]))
    _, factory = _openai_client(monkeypatch, **{"embeddings.create": create})

    p = prov.LLMProvider(openai_api_key="sk-test", embedding_model="text-embedding-3-small")
    vec = asyncio.run(p.embed("resume text"))

    assert vec == (0.25, 0.5)
    create.assert_awaited_once_with(model="text-embedding-3-small", input="resume text")
    factory.assert_called_once_with(api_key="sk-test", max_retries=0)


def test_openai_complete_sends_system_message(monkeypatch):
    reply = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="help"))])
    create = AsyncMock(return_value=reply)
    _openai_client(monkeypatch, **{"chat.completions.create": create})

    p = prov.LLMProvider(provider="openai", model="gpt-4o-mini", openai_api_key="sk-test")
    assert asyncio.run(p.complete("classify this", system="be brief")) == "help"

    messages = create.await_args.kwargs["messages"]
    assert messages == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "classify this"},
    ]
    assert create.await_args.kwargs["model"] == "gpt-4o-mini"


def test_openai_timeout_is_sanitised(monkeypatch):
    create = AsyncMock(side_effect=prov.openai.APITimeoutError(request=_REQ))
    _openai_client(monkeypatch, **{"chat.completions.create": create})

    p = prov.LLMProvider(openai_api_key="sk-test")
    with pytest.raises(ProviderError) as e:
        asyncio.run(p.complete("hi"))
    assert str(e.value) == "OpenAI API timed out."
    assert e.value.__cause__ is None


def test_openai_api_error_only_exposes_type_name(monkeypatch):
    create = AsyncMock(side_effect=prov.openai.APIConnectionError(message="Bearer sk-secret", request=_REQ))
    _openai_client(monkeypatch, **{"embeddings.create": create})

    p = prov.LLMProvider(openai_api_key="sk-test")
    with pytest.raises(ProviderError) as e:
        asyncio.run(p.embed("x"))
    assert "APIConnectionError" in str(e.value)
    assert "sk-secret" not in str(e.value)


def test_anthropic_complete_uses_system_kwarg_and_first_text_block(monkeypatch):
    message = SimpleNamespace(
        content=[SimpleNamespace(type="tool_use"), SimpleNamespace(type="text", text="general")]
    )
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=message)
    monkeypatch.setattr(prov.anthropic, "AsyncAnthropic", MagicMock(return_value=client))

    p = prov.LLMProvider(provider="anthropic", model="claude-sonnet-4-6", anthropic_api_key="sk-ant")
    assert asyncio.run(p.complete("hello", system="sys")) == "general"

    kwargs = client.messages.create.await_args.kwargs
    assert kwargs["system"] == "sys"
    assert kwargs["messages"] == [{"role": "user", "content": "hello"}]


def test_anthropic_without_system_omits_kwarg(monkeypatch):
    message = SimpleNamespace(content=[SimpleNamespace(type="text", text="ok")])
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=message)
    monkeypatch.setattr(prov.anthropic, "AsyncAnthropic", MagicMock(return_value=client))

    p = prov.LLMProvider(provider="anthropic", anthropic_api_key="sk-ant")
    asyncio.run(p.complete("hello"))
    assert "system" not in client.messages.create.await_args.kwargs


# ---------------------------------------------------------------------------
# ResilientProvider
# ---------------------------------------------------------------------------

def _flaky(errors, result="ok"):
    """complete() that raises each error in turn, then returns result."""
    remaining = list(errors)

    def complete(prompt):
        if remaining:
            raise remaining.pop(0)
        return result

    return complete


def test_transient_error_is_retried_once(monkeypatch, make_provider):
    monkeypatch.setattr(prov, "_sleep_backoff", _no_sleep)
    inner = make_provider(complete=_flaky([ProviderError("rate limit exceeded")]))

    out = asyncio.run(prov.ResilientProvider(inner).complete("hi"))

    assert out == "ok"
    assert len(inner.complete_calls) == 2


def test_at_most_one_retry(monkeypatch, make_provider):
    monkeypatch.setattr(prov, "_sleep_backoff", _no_sleep)
    inner = make_provider(complete=_flaky([ProviderError("overloaded")] * 3))

    with pytest.raises(ProviderError, match="overloaded"):
        asyncio.run(prov.ResilientProvider(inner, max_retries=5).complete("hi"))
    assert len(inner.complete_calls) == 2


def test_non_transient_error_is_not_retried(monkeypatch, make_provider):
    monkeypatch.setattr(prov, "_sleep_backoff", _no_sleep)
    inner = make_provider(complete=_flaky([ProviderError("OpenAI API error: AuthenticationError")]))

    with pytest.raises(ProviderError, match="AuthenticationError"):
        asyncio.run(prov.ResilientProvider(inner).complete("hi"))
    assert len(inner.complete_calls) == 1


def test_timeout_becomes_provider_error(monkeypatch, make_provider):
    monkeypatch.setattr(prov, "_sleep_backoff", _no_sleep)

    async def slow(prompt):
        await asyncio.sleep(1.0)
        return "late"

    wrapped = prov.ResilientProvider(make_provider(complete=slow), complete_timeout=0.02, max_retries=0)
    with pytest.raises(ProviderError, match="timed out after 0.02s"):
        asyncio.run(wrapped.complete("hi"))


def test_unexpected_exception_is_wrapped_without_message(make_provider):
    def boom(text):
        raise RuntimeError("Authorization: Bearer sk-secret")

    wrapped = prov.ResilientProvider(make_provider(embed=boom), max_retries=0)
    with pytest.raises(ProviderError) as e:
        asyncio.run(wrapped.embed("x"))
    assert str(e.value) == "embed failed: RuntimeError"


def test_circuit_breaker_trips_after_n_consecutive_failures(make_provider):
    inner = make_provider(complete=_flaky([ProviderError("bad request")] * 10))
    wrapped = prov.ResilientProvider(inner, max_retries=0, breaker_consecutive_fails=2)

    for _ in range(2):
        with pytest.raises(ProviderError):
            asyncio.run(wrapped.complete("hi"))
    assert wrapped.is_disabled() is True

    with pytest.raises(ProviderError) as e:
        asyncio.run(wrapped.complete("hi"))
    assert "disabled" in str(e.value).lower()
    assert len(inner.complete_calls) == 2


def test_success_resets_failure_count(make_provider):
    errors = [ProviderError("bad"), None, ProviderError("bad")]

    def complete(prompt):
        err = errors.pop(0) if errors else None
        if err is not None:
            raise err
        return "ok"

    wrapped = prov.ResilientProvider(make_provider(complete=complete), max_retries=0, breaker_consecutive_fails=2)
    with pytest.raises(ProviderError):
        asyncio.run(wrapped.complete("1"))
    assert asyncio.run(wrapped.complete("2")) == "ok"
    with pytest.raises(ProviderError):
        asyncio.run(wrapped.complete("3"))
    assert wrapped.is_disabled() is False


def test_breaker_half_opens_after_cooldown(make_provider):
    inner = make_provider(complete=_flaky([ProviderError("bad")]))
    wrapped = prov.ResilientProvider(
        inner, max_retries=0, breaker_consecutive_fails=1, breaker_cooldown_seconds=0.0
    )
    with pytest.raises(ProviderError):
        asyncio.run(wrapped.complete("hi"))

    assert asyncio.run(wrapped.complete("hi")) == "ok"
    assert len(inner.complete_calls) == 2


def test_transient_hint_detection():
    assert prov._is_transient_error(ProviderError("HTTP 503 from upstream"))
    assert prov._is_transient_error(ProviderError("Too Many Requests"))
    assert not prov._is_transient_error(ProviderError("invalid api key"))


def test_build_provider_wraps_llm_provider(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    cfg = PipelineConfig(
        provider="openai",
        model="gpt-4o-mini",
        embedding_model="text-embedding-3-small",
        llm_timeout_seconds=3.0,
        embed_timeout_seconds=2.0,
        max_retries=0,
        breaker_consecutive_fails=4,
        resume_char_budget=2000,
        memory_max_turns=20,
        embed_cache_max_entries=0,
        request_deadline_seconds=30.0,
    )
    p = prov.build_provider(cfg)
    assert isinstance(p, prov.ResilientProvider)
    assert p._complete_timeout == 3.0
    assert p._breaker_fails == 4


def test_empty_embed_text_never_trips_breaker(make_provider):
    inner = make_provider()
    wrapped = prov.ResilientProvider(inner, max_retries=0, breaker_consecutive_fails=2)

    for _ in range(6):
        with pytest.raises(ProviderError, match="empty"):
            asyncio.run(wrapped.embed("  "))

    assert inner.embed_calls == []
    assert wrapped.is_disabled() is False
    assert asyncio.run(wrapped.embed("real text")) == (1.0, 0.0, 0.0)


def test_half_open_lets_exactly_one_trial_call_through(make_provider):
    failures = [ProviderError("bad")]

    async def complete(prompt):
        if failures:
            raise failures.pop()
        await asyncio.sleep(0.02)
        return "ok"

    inner = make_provider(complete=complete)
    wrapped = prov.ResilientProvider(
        inner, max_retries=0, breaker_consecutive_fails=1, breaker_cooldown_seconds=0.0
    )
    with pytest.raises(ProviderError):
        asyncio.run(wrapped.complete("trip"))

    async def burst():
        return await asyncio.gather(*(wrapped.complete(str(i)) for i in range(3)), return_exceptions=True)

    outcomes = asyncio.run(burst())

    assert outcomes[0] == "ok"
    assert all(isinstance(o, ProviderError) and "disabled" in str(o).lower() for o in outcomes[1:])
    assert inner.complete_calls == ["trip", "0"]
    assert wrapped.is_disabled() is False


def test_failed_trial_call_restarts_cooldown(make_provider):
    inner = make_provider(complete=_flaky([ProviderError("bad")] * 2))
    wrapped = prov.ResilientProvider(
        inner, max_retries=0, breaker_consecutive_fails=1, breaker_cooldown_seconds=60.0
    )
    with pytest.raises(ProviderError):
        asyncio.run(wrapped.complete("trip"))

    # Pretend the cooldown has elapsed.
    wrapped._state.disabled_at -= 61.0
    assert wrapped.is_disabled() is False
    with pytest.raises(ProviderError, match="bad"):
        asyncio.run(wrapped.complete("trial"))

    assert wrapped.is_disabled() is True
    assert len(inner.complete_calls) == 2
