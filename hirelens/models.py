from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from hirelens.errors import InputError

EmbeddingVector = Tuple[float, ...]

# Partial filter mapping, {"reset": True} or {"error": "..."}.
# Left as a plain dict so new filter keys only need a prompt change.
FilterUpdate = Dict[str, Any]


class MatchMode(str, Enum):
    FAST = "fast"
    DETAILED = "detailed"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Intent(str, Enum):
    FILTER_UPDATE = "filter_update"
    JOB_SEARCH = "job_search"
    HELP = "help"
    GENERAL = "general"

    @classmethod
    def from_untrusted(cls, raw: Optional[str]) -> "Intent":
        """
        The only way model text becomes an Intent.
        Anything that is not exactly one of the labels (after trim + lower) is GENERAL.
        """
        label = (raw or "").strip().lower()
        for member in cls:
            if member.value == label:
                return member
        return cls.GENERAL


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_whitespace(text: str) -> str:
    return " ".join((text or "").split()).strip()


def _parse_posted_date(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, str):
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as exc:
            raise InputError(f"postedDate is not an ISO date: {raw!r}") from exc
    else:
        raise InputError(f"postedDate must be a string or datetime, got {type(raw).__name__}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class JobPosting:
    """
    The job record the matching pipeline and filters operate on.
    The route layer builds these from its own storage via from_dict().
    """
    id: str
    title: str
    company: str
    description: str
    skills: List[str]

    job_type: Optional[str] = None   # "full-time" | "part-time" | "contract" | "internship"
    work_mode: Optional[str] = None  # "remote" | "hybrid" | "onsite"
    location: Optional[str] = None
    posted_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise InputError("job.id must be a non-empty string")
        for name in ("title", "company", "description"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise InputError(f"job.{name} must be a string, got {type(value).__name__}")
        if not isinstance(self.skills, (list, tuple)):
            raise InputError(f"job.skills must be a list of strings, got {type(self.skills).__name__}")
        if any(not isinstance(s, str) for s in self.skills):
            raise InputError("job.skills must contain only strings")

        object.__setattr__(self, "title", normalize_whitespace(self.title))
        object.__setattr__(self, "company", normalize_whitespace(self.company))
        object.__setattr__(self, "description", normalize_whitespace(self.description))
        object.__setattr__(self, "skills", [normalize_whitespace(s) for s in self.skills if normalize_whitespace(s)])
        if self.location is not None:
            object.__setattr__(self, "location", normalize_whitespace(self.location))
        if self.posted_date is not None:
            object.__setattr__(self, "posted_date", _parse_posted_date(self.posted_date))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobPosting":
        if not isinstance(data, Mapping):
            raise InputError(f"job must be a mapping, got {type(data).__name__}")
        if "skills" not in data:
            raise InputError("job is missing the 'skills' list")
        try:
            return cls(
                id=str(data["id"]),
                title=data["title"],
                company=data.get("company", ""),
                description=data.get("description", ""),
                skills=data["skills"],
                job_type=data.get("jobType") or data.get("job_type"),
                work_mode=data.get("workMode") or data.get("work_mode"),
                location=data.get("location"),
                posted_date=data.get("postedDate") or data.get("posted_date"),
            )
        except KeyError as exc:
            raise InputError(f"job is missing required field {exc.args[0]!r}") from None

    def embedding_text(self) -> str:
        """Flattened job text sent to the embedding model."""
        return "\n".join(
            [
                f"Job Title: {self.title}",
                f"Company: {self.company}",
                f"Description: {self.description}",
                f"Required Skills: {', '.join(self.skills)}",
                f"Job Type: {self.job_type or ''}",
                f"Work Mode: {self.work_mode or ''}",
                f"Location: {self.location or ''}",
            ]
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "description": self.description,
            "skills": list(self.skills),
            "jobType": self.job_type,
            "workMode": self.work_mode,
            "location": self.location,
            "postedDate": self.posted_date.isoformat() if self.posted_date else None,
        }


@dataclass(frozen=True)
class MatchExplanation:
    matching_skills: List[str]
    relevant_experience: str
    keyword_alignment: str
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matchingSkills": list(self.matching_skills),
            "relevantExperience": self.relevant_experience,
            "keywordAlignment": self.keyword_alignment,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class MatchMetadata:
    semantic_similarity: float
    base_score: int
    degraded: bool
    mode: MatchMode
    error: Optional[str] = None
    adjusted_score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "semanticSimilarity": self.semantic_similarity,
            "baseScore": self.base_score,
            "degraded": self.degraded,
            "mode": self.mode.value,
        }
        if self.error is not None:
            d["error"] = self.error
        if self.adjusted_score is not None:
            d["adjustedScore"] = self.adjusted_score
        return d


@dataclass(frozen=True)
class MatchResult:
    job_id: str
    score: int
    explanation: MatchExplanation
    metadata: MatchMetadata

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError(f"score out of range: {self.score}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "score": self.score,
            "explanation": self.explanation.to_dict(),
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class AssistantResult:
    response: str
    intent: Intent
    filter_updates: Optional[FilterUpdate] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response": self.response,
            "intent": self.intent.value,
            "filterUpdates": self.filter_updates,
        }
