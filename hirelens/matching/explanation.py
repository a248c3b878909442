"""
hirelens/matching/explanation.py

ExplanationRefiner: one structured-output request per job, asking the model to
explain (and optionally re-score) a semantic match.

Parsing policy:
- strip ``` fences, trim, decode
- undecodable output -> deterministic placeholder explanation, base score kept
- adjustedScore overrides the base score when it is a finite number; the only
  bound applied is the 0-100 clamp
Provider failures are NOT handled here; they propagate to MatchPipeline, which
owns the degrade path.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from hirelens.llm.json_output import ParseFailed, parse_model_json
from hirelens.llm.prompt import _EXPLANATION_SYSTEM_PROMPT, build_explanation_prompt
from hirelens.llm.provider import InferenceProvider
from hirelens.matching.scoring import clamp_score, matched_skills
from hirelens.models import JobPosting, MatchExplanation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefinedMatch:
    score: int
    explanation: MatchExplanation
    adjusted_score: Optional[int] = None
    parsed: bool = True
    parse_error: Optional[str] = None


def _coerce_score(value: Any) -> Optional[float]:
    # bool is an int subclass; "adjustedScore": true is not a score.
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        f = float(value)
    elif isinstance(value, str):
        try:
            f = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    return f if math.isfinite(f) else None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    out: List[str] = []
    seen = set()
    for item in value:
        if not isinstance(item, str):
            continue
        s = item.strip()
        if s and s.lower() not in seen:
            out.append(s)
            seen.add(s.lower())
    return out


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


class ExplanationRefiner:
    def __init__(self, provider: InferenceProvider, *, char_budget: int = 2000) -> None:
        self._provider = provider
        self._char_budget = char_budget

    async def refine(self, *, resume_text: str, job: JobPosting, base_score: int) -> RefinedMatch:
        prompt = build_explanation_prompt(
            resume_text=resume_text,
            job=job,
            base_score=base_score,
            char_budget=self._char_budget,
        )
        raw = await self._provider.complete(prompt, system=_EXPLANATION_SYSTEM_PROMPT)

        result = parse_model_json(raw)
        if isinstance(result, ParseFailed):
            logger.info("explanation for job %s was not valid JSON: %s", job.id, result.reason)
            return self.placeholder(
                resume_text=resume_text, job=job, base_score=base_score, reason=result.reason
            )
        return self._from_analysis(result.value, base_score=base_score)

    def placeholder(
            self,
            *,
            resume_text: str,
            job: JobPosting,
            base_score: int,
            reason: str = "unparseable model output",
    ) -> RefinedMatch:
        return RefinedMatch(
            score=clamp_score(base_score),
            explanation=MatchExplanation(
                matching_skills=matched_skills(resume_text, job.skills),
                relevant_experience="Experience analysis unavailable",
                keyword_alignment="Keyword analysis unavailable",
                reasoning="Automated semantic matching",
            ),
            adjusted_score=None,
            parsed=False,
            parse_error=reason,
        )

    @staticmethod
    def _from_analysis(analysis: Dict[str, Any], *, base_score: int) -> RefinedMatch:
        adjusted = _coerce_score(analysis.get("adjustedScore"))
        final = clamp_score(adjusted if adjusted is not None else base_score)
        return RefinedMatch(
            score=final,
            explanation=MatchExplanation(
                matching_skills=_string_list(analysis.get("matchingSkills")),
                relevant_experience=_text(analysis.get("relevantExperience"), "Not analyzed"),
                keyword_alignment=_text(analysis.get("keywordAlignment"), "Not analyzed"),
                reasoning=_text(analysis.get("reasoning"), "Semantic similarity analysis"),
            ),
            adjusted_score=clamp_score(adjusted) if adjusted is not None else None,
            parsed=True,
        )
