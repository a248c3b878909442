"""
hirelens/service.py

JobAssistant: the surface the route layer calls.

  match_one(resume, job)      detailed match, model explanation included
  match_all(resume, jobs)     fast batch match, sorted best-first for display
  chat(conversation_id, msg)  one assistant turn, recorded in memory
  history / clear_history     conversation log for history endpoints
  analyze_resume(resume)      career profile with keyword fallback

One instance per process; it owns the embedding cache and the conversation
memory, so both live exactly as long as the process.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from hirelens import config as _config
from hirelens.assistant.memory import ConversationMemory
from hirelens.assistant.router import ConversationRouter
from hirelens.llm.provider import InferenceProvider, build_provider
from hirelens.matching.cache import EmbeddingCache
from hirelens.matching.explanation import ExplanationRefiner
from hirelens.matching.pipeline import JobInput, MatchPipeline, rank_by_score
from hirelens.models import AssistantResult, ConversationTurn, MatchMode, MatchResult
from hirelens.resume_analysis import ResumeAnalysis, ResumeAnalyzer

logger = logging.getLogger(__name__)


class JobAssistant:
    def __init__(
            self,
            provider: InferenceProvider,
            *,
            resume_char_budget: int = _config.RESUME_CHAR_BUDGET,
            memory_max_turns: int = _config.MEMORY_MAX_TURNS,
            embed_cache_max_entries: int = 0,
            deadline_seconds: Optional[float] = None,
    ) -> None:
        self.cache = EmbeddingCache(provider, max_entries=embed_cache_max_entries)
        self.pipeline = MatchPipeline(
            cache=self.cache,
            refiner=ExplanationRefiner(provider, char_budget=resume_char_budget),
            deadline_seconds=deadline_seconds,
        )
        self.memory = ConversationMemory(max_turns=memory_max_turns)
        self.router = ConversationRouter(provider, memory=self.memory)
        self._analyzer = ResumeAnalyzer(provider)

    async def match_one(self, resume_text: str, job: JobInput) -> MatchResult:
        return await self.pipeline.match_one(resume_text, job)

    async def match_all(self, resume_text: str, jobs: Sequence[JobInput]) -> List[MatchResult]:
        results = await self.pipeline.batch_match(resume_text, jobs, mode=MatchMode.FAST)
        degraded = sum(1 for r in results if r.metadata.degraded)
        if degraded:
            logger.info("match_all: %d of %d results degraded", degraded, len(results))
        return rank_by_score(results)

    async def chat(self, conversation_id: str, message: str) -> AssistantResult:
        return await self.router.chat(conversation_id, message)

    def history(self, conversation_id: str) -> List[ConversationTurn]:
        return self.memory.get(conversation_id)

    def clear_history(self, conversation_id: str) -> None:
        self.memory.clear(conversation_id)

    async def analyze_resume(self, resume_text: str) -> ResumeAnalysis:
        return await self._analyzer.analyze(resume_text)


def build_assistant(cfg: Optional[_config.PipelineConfig] = None) -> JobAssistant:
    """Wire a JobAssistant from environment configuration."""
    cfg = cfg or _config.load_pipeline_config()
    if not _config.llm_configured():
        logger.warning("no LLM API key configured; every match will use the keyword fallback")
    return JobAssistant(
        build_provider(cfg),
        resume_char_budget=cfg.resume_char_budget,
        memory_max_turns=cfg.memory_max_turns,
        embed_cache_max_entries=cfg.embed_cache_max_entries,
        deadline_seconds=cfg.request_deadline_seconds,
    )
