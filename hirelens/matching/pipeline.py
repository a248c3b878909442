"""
hirelens/matching/pipeline.py

MatchPipeline: resume + job -> MatchResult, never raising for environmental
failures.

  EmbeddingCache -> cosine -> base score -> (detailed only) ExplanationRefiner

Any exception along that path (provider error, timeout, malformed vectors,
refiner failure) is converted into a FallbackScorer result with
metadata.degraded = True. Only InputError (bad job / resume passed in by the
caller) propagates.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from hirelens.errors import InputError
from hirelens.matching.cache import EmbeddingCache, job_fingerprint, resume_fingerprint
from hirelens.matching.explanation import ExplanationRefiner
from hirelens.matching.scoring import base_score, cosine_similarity, fallback_score, matched_skills
from hirelens.models import (
    EmbeddingVector,
    JobPosting,
    MatchExplanation,
    MatchMetadata,
    MatchMode,
    MatchResult,
)

logger = logging.getLogger(__name__)

JobInput = Union[JobPosting, Mapping[str, Any]]

_MAX_ERROR_LEN = 200


def coerce_job(job: JobInput) -> JobPosting:
    if isinstance(job, JobPosting):
        return job
    if isinstance(job, Mapping):
        return JobPosting.from_dict(job)
    raise InputError(f"job must be a JobPosting or mapping, got {type(job).__name__}")


def _check_resume(resume_text: Any) -> str:
    if not isinstance(resume_text, str):
        raise InputError(f"resume_text must be a string, got {type(resume_text).__name__}")
    return resume_text


def _describe(exc: BaseException, deadline: Optional[float]) -> str:
    if isinstance(exc, asyncio.TimeoutError) and deadline is not None:
        return f"TimeoutError: match exceeded {deadline:g}s deadline"
    msg = str(exc).strip()
    text = f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__
    return text[:_MAX_ERROR_LEN]


def rank_by_score(results: Sequence[MatchResult]) -> List[MatchResult]:
    """Presentation order: highest score first, ties keep input order."""
    return sorted(results, key=lambda r: r.score, reverse=True)


class MatchPipeline:
    def __init__(
            self,
            *,
            cache: EmbeddingCache,
            refiner: ExplanationRefiner,
            deadline_seconds: Optional[float] = None,
    ) -> None:
        self._cache = cache
        self._refiner = refiner
        self._deadline = deadline_seconds

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def match_one(self, resume_text: str, job: JobInput) -> MatchResult:
        """Detailed mode for a single job, including the model explanation."""
        return await self.match(resume_text, job, mode=MatchMode.DETAILED)

    async def match(
            self,
            resume_text: str,
            job: JobInput,
            *,
            mode: MatchMode = MatchMode.DETAILED,
    ) -> MatchResult:
        resume_text = _check_resume(resume_text)
        posting = coerce_job(job)
        return await self._guarded(
            resume_text, posting, MatchMode(mode), resume_vec=None, deadline_at=self._deadline_at()
        )

    async def batch_match(
            self,
            resume_text: str,
            jobs: Sequence[JobInput],
            *,
            mode: MatchMode = MatchMode.FAST,
    ) -> List[MatchResult]:
        """
        All jobs are scored concurrently; the returned list is in the same
        order as `jobs` whatever finishes first. The deadline covers the whole
        batch, resume embedding included.
        """
        resume_text = _check_resume(resume_text)
        if isinstance(jobs, (str, bytes)) or not isinstance(jobs, Sequence):
            raise InputError(f"jobs must be a sequence, got {type(jobs).__name__}")
        postings = [coerce_job(j) for j in jobs]
        if not postings:
            return []
        mode = MatchMode(mode)
        deadline_at = self._deadline_at()

        # Embed the resume once up front instead of once per job.
        try:
            resume_vec = await self._with_deadline(
                self._cache.get_or_compute(resume_text, resume_fingerprint(resume_text)), deadline_at
            )
        except Exception as exc:
            error = _describe(exc, self._deadline)
            logger.warning("resume embedding failed, degrading %d jobs: %s", len(postings), error)
            return [self._degraded(resume_text, p, mode, error) for p in postings]

        return list(
            await asyncio.gather(
                *(
                    self._guarded(resume_text, p, mode, resume_vec=resume_vec, deadline_at=deadline_at)
                    for p in postings
                )
            )
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _deadline_at(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return asyncio.get_running_loop().time() + self._deadline

    @staticmethod
    async def _with_deadline(aw, deadline_at: Optional[float]):
        if deadline_at is None:
            return await aw
        remaining = deadline_at - asyncio.get_running_loop().time()
        return await asyncio.wait_for(aw, timeout=max(0.0, remaining))

    async def _guarded(
            self,
            resume_text: str,
            job: JobPosting,
            mode: MatchMode,
            *,
            resume_vec: Optional[EmbeddingVector],
            deadline_at: Optional[float],
    ) -> MatchResult:
        try:
            return await self._with_deadline(self._semantic(resume_text, job, mode, resume_vec), deadline_at)
        except Exception as exc:
            error = _describe(exc, self._deadline)
            logger.warning("match for job %s degraded to keyword fallback: %s", job.id, error)
            return self._degraded(resume_text, job, mode, error)

    async def _semantic(
            self,
            resume_text: str,
            job: JobPosting,
            mode: MatchMode,
            resume_vec: Optional[EmbeddingVector],
    ) -> MatchResult:
        if resume_vec is None:
            resume_vec = await self._cache.get_or_compute(resume_text, resume_fingerprint(resume_text))
        job_vec = await self._cache.get_or_compute(job.embedding_text(), job_fingerprint(job))

        similarity = cosine_similarity(resume_vec, job_vec)
        base = base_score(similarity)

        if mode is MatchMode.FAST:
            skills = matched_skills(resume_text, job.skills)
            return MatchResult(
                job_id=job.id,
                score=base,
                explanation=MatchExplanation(
                    matching_skills=skills,
                    relevant_experience="Quick match based on semantic similarity",
                    keyword_alignment=f"{len(skills)} of {len(job.skills)} skills matched",
                    reasoning="Fast semantic matching",
                ),
                metadata=MatchMetadata(
                    semantic_similarity=similarity,
                    base_score=base,
                    degraded=False,
                    mode=mode,
                ),
            )

        refined = await self._refiner.refine(resume_text=resume_text, job=job, base_score=base)
        error = None
        if not refined.parsed:
            # Semantic score still stands; only the explanation is a placeholder.
            error = f"ParseError: {refined.parse_error}"[:_MAX_ERROR_LEN]
        return MatchResult(
            job_id=job.id,
            score=refined.score,
            explanation=refined.explanation,
            metadata=MatchMetadata(
                semantic_similarity=similarity,
                base_score=base,
                degraded=False,
                mode=mode,
                error=error,
                adjusted_score=refined.adjusted_score,
            ),
        )

    @staticmethod
    def _degraded(resume_text: str, job: JobPosting, mode: MatchMode, error: str) -> MatchResult:
        score = fallback_score(resume_text, job)
        return MatchResult(
            job_id=job.id,
            score=score,
            explanation=MatchExplanation(
                matching_skills=matched_skills(resume_text, job.skills),
                relevant_experience="AI matching temporarily unavailable",
                keyword_alignment="Basic keyword matching applied",
                reasoning="Fallback matching due to AI service error",
            ),
            metadata=MatchMetadata(
                semantic_similarity=0.0,
                base_score=score,
                degraded=True,
                mode=mode,
                error=error,
            ),
        )
