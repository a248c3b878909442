from __future__ import annotations

import math
from typing import List, Sequence

from hirelens.models import JobPosting

FALLBACK_SKILL_WEIGHT = 60
FALLBACK_TITLE_BONUS = 20


def clamp_score(x: float) -> int:
    """Round and clamp to the 0-100 score range."""
    if x is None or not math.isfinite(x):
        return 0
    # Half-up, so 2.5 -> 3 rather than banker's rounding.
    return int(min(100, max(0, math.floor(x + 0.5))))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine of the angle between a and b, in [-1, 1].
    Zero-magnitude input gives 0.0 instead of dividing by zero.
    """
    if len(a) != len(b):
        raise ValueError(f"vector length mismatch: {len(a)} != {len(b)}")

    dot = 0.0
    mag_a = 0.0
    mag_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        mag_a += x * x
        mag_b += y * y
    if mag_a == 0.0 or mag_b == 0.0:
        return 0.0

    sim = dot / (math.sqrt(mag_a) * math.sqrt(mag_b))
    if not math.isfinite(sim):
        return 0.0
    # Float error can push identical vectors a hair past 1.
    return max(-1.0, min(1.0, sim))


def base_score(similarity: float) -> int:
    # Negative similarity clamps to 0 before scaling.
    return clamp_score(max(0.0, similarity) * 100)


def matched_skills(resume_text: str, skills: Sequence[str]) -> List[str]:
    """
    Job skills that appear in the resume (case-insensitive substring).
    Keeps the job's order and drops duplicates.
    """
    hay = (resume_text or "").lower()
    out: List[str] = []
    seen = set()
    for skill in skills or []:
        key = (skill or "").strip().lower()
        if not key or key in seen:
            continue
        if key in hay:
            out.append(skill)
            seen.add(key)
    return out


def fallback_score(resume_text: str, job: JobPosting) -> int:
    """
    Deterministic degrade path, no external calls:
      skill_ratio * 60 + (20 if the job title appears in the resume)
    A job with no skills has ratio 0.
    """
    skills = job.skills or []
    hay = (resume_text or "").lower()
    hits = sum(1 for s in skills if s.strip() and s.strip().lower() in hay)
    ratio = (hits / len(skills)) if skills else 0.0

    title = (job.title or "").strip().lower()
    title_bonus = FALLBACK_TITLE_BONUS if title and title in hay else 0

    return min(100, clamp_score(ratio * FALLBACK_SKILL_WEIGHT + title_bonus))
