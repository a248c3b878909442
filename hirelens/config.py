# hirelens/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

# --- Provider selection ---

# Chat provider: "anthropic" | "openai"  (default: openai)
# Embeddings always go through OpenAI; Anthropic has no embeddings endpoint.
HIRELENS_LLM_PROVIDER: str = os.environ.get("HIRELENS_LLM_PROVIDER", "openai").strip().lower()

_DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-6",
    "openai": "gpt-4o-mini",
}
HIRELENS_LLM_MODEL: str = (
        os.environ.get("HIRELENS_LLM_MODEL", "").strip()
        or _DEFAULT_MODELS.get(HIRELENS_LLM_PROVIDER, "gpt-4o-mini")
)

HIRELENS_EMBEDDING_MODEL: str = (
        os.environ.get("HIRELENS_EMBEDDING_MODEL", "").strip()
        or "text-embedding-3-small"
)

# --- Guardrails ---

# Resume text sent to the explanation prompt is truncated to bound token cost.
RESUME_CHAR_BUDGET = 2000
# Resume analysis gets a slightly larger window.
RESUME_ANALYSIS_CHAR_BUDGET = 2500
# Embedding cache key uses only the first N chars of the resume.
RESUME_FINGERPRINT_PREFIX = 100

MEMORY_MAX_TURNS = 20


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def resolve_api_key(provider: str) -> Optional[str]:
    """
    Provider-specific key first, then the vendor's conventional variable.
    Keys are never logged and never included in structured output.
    """
    provider = (provider or "").strip().lower()
    if provider == "openai":
        return os.getenv("HIRELENS_OPENAI_KEY") or os.getenv("OPENAI_API_KEY") or None
    if provider == "anthropic":
        return os.getenv("HIRELENS_ANTHROPIC_KEY") or os.getenv("ANTHROPIC_API_KEY") or None
    return None


@dataclass(frozen=True)
class PipelineConfig:
    provider: str
    model: str
    embedding_model: str
    llm_timeout_seconds: float
    embed_timeout_seconds: float
    max_retries: int
    breaker_consecutive_fails: int
    resume_char_budget: int
    memory_max_turns: int
    embed_cache_max_entries: int
    request_deadline_seconds: float


def load_pipeline_config() -> PipelineConfig:
    provider = os.getenv("HIRELENS_LLM_PROVIDER", HIRELENS_LLM_PROVIDER).strip().lower()
    model = (
            os.getenv("HIRELENS_LLM_MODEL", "").strip()
            or _DEFAULT_MODELS.get(provider, "gpt-4o-mini")
    )
    return PipelineConfig(
        provider=provider,
        model=model,
        embedding_model=os.getenv("HIRELENS_EMBEDDING_MODEL", "").strip() or HIRELENS_EMBEDDING_MODEL,
        llm_timeout_seconds=_env_float("HIRELENS_LLM_TIMEOUT_SECONDS", 15.0),
        embed_timeout_seconds=_env_float("HIRELENS_EMBED_TIMEOUT_SECONDS", 10.0),
        # One retry at most; anything higher blows up worst-case batch latency.
        max_retries=min(1, max(0, _env_int("HIRELENS_LLM_MAX_RETRIES", 1))),
        breaker_consecutive_fails=max(1, _env_int("HIRELENS_LLM_CIRCUIT_BREAKER_FAILS", 5)),
        resume_char_budget=max(1, _env_int("HIRELENS_RESUME_CHAR_BUDGET", RESUME_CHAR_BUDGET)),
        memory_max_turns=max(1, _env_int("HIRELENS_MEMORY_MAX_TURNS", MEMORY_MAX_TURNS)),
        embed_cache_max_entries=max(0, _env_int("HIRELENS_EMBED_CACHE_MAX_ENTRIES", 0)),
        request_deadline_seconds=_env_float("HIRELENS_REQUEST_DEADLINE_SECONDS", 30.0),
    )


def llm_configured() -> bool:
    provider = os.getenv("HIRELENS_LLM_PROVIDER", HIRELENS_LLM_PROVIDER).strip().lower()
    if not resolve_api_key("openai"):
        return False
    if provider == "anthropic":
        return bool(resolve_api_key("anthropic"))
    return True
