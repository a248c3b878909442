from .cache import EmbeddingCache, job_fingerprint, resume_fingerprint
from .explanation import ExplanationRefiner, RefinedMatch
from .pipeline import MatchPipeline, coerce_job, rank_by_score
from .scoring import base_score, cosine_similarity, fallback_score, matched_skills

__all__ = [
    "EmbeddingCache",
    "ExplanationRefiner",
    "MatchPipeline",
    "RefinedMatch",
    "base_score",
    "coerce_job",
    "cosine_similarity",
    "fallback_score",
    "job_fingerprint",
    "matched_skills",
    "rank_by_score",
    "resume_fingerprint",
]
