"""
hirelens/assistant/filters.py

Natural-language filter updates and the filter object they apply to.

FilterUpdateParser turns "show remote jobs" into {"workMode": "remote"}.
Whatever JSON object the model returns is passed through unchanged; a new
filter key only needs a prompt change. Consumers
(apply_update, describe_update) ignore keys they do not know.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from hirelens.llm.json_output import ParseFailed, parse_model_json
from hirelens.llm.prompt import build_filter_prompt
from hirelens.llm.provider import InferenceProvider
from hirelens.models import FilterUpdate, JobPosting, utc_now

logger = logging.getLogger(__name__)

PARSE_ERROR_MESSAGE = "Could not parse filter request"

# Fixed order for summaries.
FILTER_KEYS = ("role", "skills", "datePosted", "jobType", "workMode", "location", "matchScore")

DATE_POSTED_VALUES = ("24h", "week", "month", "any")
JOB_TYPE_VALUES = ("full-time", "part-time", "contract", "internship", "any")
WORK_MODE_VALUES = ("remote", "hybrid", "onsite", "any")
MATCH_SCORE_VALUES = ("high", "medium", "all")

_ENUM_VALUES = {
    "datePosted": DATE_POSTED_VALUES,
    "jobType": JOB_TYPE_VALUES,
    "workMode": WORK_MODE_VALUES,
    "matchScore": MATCH_SCORE_VALUES,
}

_DATE_POSTED_DAYS = {"24h": 1, "week": 7, "month": 30}

HIGH_MATCH_THRESHOLD = 70
MEDIUM_MATCH_THRESHOLD = 40

_LABELS = {
    "role": "role",
    "skills": "skills",
    "datePosted": "date posted",
    "jobType": "job type",
    "workMode": "work mode",
    "location": "location",
    "matchScore": "match score",
}

RESET_RESPONSE = "I've cleared all filters for you. You should now see all available jobs."
ERROR_RESPONSE = (
    "I couldn't understand that filter request. "
    "Try something like 'show remote jobs' or 'high match score only'."
)
EMPTY_RESPONSE = "I didn't detect any specific filter changes. What would you like to filter by?"


def is_reset(update: Optional[Mapping[str, Any]]) -> bool:
    return bool(update) and update.get("reset") is True


def is_error(update: Optional[Mapping[str, Any]]) -> bool:
    return bool(update) and bool(update.get("error"))


class FilterUpdateParser:
    def __init__(self, provider: InferenceProvider) -> None:
        self._provider = provider

    async def parse(self, query: str) -> FilterUpdate:
        """
        One constrained call. Undecodable output yields {"error": ...};
        provider failures propagate to the router.
        """
        raw = await self._provider.complete(build_filter_prompt(query))
        result = parse_model_json(raw)
        if isinstance(result, ParseFailed):
            logger.info("filter update was not valid JSON: %s", result.reason)
            return {"error": PARSE_ERROR_MESSAGE}
        return result.value


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def describe_update(update: Optional[Mapping[str, Any]]) -> str:
    """Human-readable summary of an update, keys in FILTER_KEYS order."""
    if not update:
        return EMPTY_RESPONSE
    if is_reset(update):
        return RESET_RESPONSE
    if is_error(update):
        return ERROR_RESPONSE

    parts = []
    for key in FILTER_KEYS:
        value = update.get(key)
        if value in (None, "", [], ()):
            continue
        parts.append(f"{_LABELS[key]} to {_format_value(value)}")

    if not parts:
        return EMPTY_RESPONSE
    return f"I've updated the filters: {', '.join(parts)}. The job list should update automatically."


# Wire key -> FilterState attribute.
_FIELDS = {
    "role": "role",
    "skills": "skills",
    "datePosted": "date_posted",
    "jobType": "job_type",
    "workMode": "work_mode",
    "location": "location",
    "matchScore": "match_score",
}


@dataclass(frozen=True)
class FilterState:
    role: str = ""
    skills: List[str] = field(default_factory=list)
    date_posted: str = "any"
    job_type: str = "any"
    work_mode: str = "any"
    location: str = ""
    match_score: str = "all"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "skills": list(self.skills),
            "datePosted": self.date_posted,
            "jobType": self.job_type,
            "workMode": self.work_mode,
            "location": self.location,
            "matchScore": self.match_score,
        }


def apply_update(state: FilterState, update: Optional[Mapping[str, Any]]) -> FilterState:
    """
    Merge a FilterUpdate into the current state.
    - reset -> defaults
    - error / None -> unchanged
    - unknown keys and out-of-range enum values are ignored
    """
    if not update or is_error(update):
        return state
    if is_reset(update):
        return FilterState()

    changes: Dict[str, Any] = {}
    for key in FILTER_KEYS:
        if key not in update:
            continue
        value = update[key]
        if key == "skills":
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, (list, tuple)):
                continue
            changes[_FIELDS[key]] = [str(s).strip() for s in value if str(s).strip()]
        elif key in _ENUM_VALUES:
            v = str(value).strip().lower()
            if v not in _ENUM_VALUES[key]:
                logger.debug("ignoring %s=%r (not one of %s)", key, value, _ENUM_VALUES[key])
                continue
            changes[_FIELDS[key]] = v
        else:
            changes[_FIELDS[key]] = "" if value is None else str(value).strip()
    return replace(state, **changes) if changes else state


def _passes(
        job: JobPosting,
        state: FilterState,
        score: Optional[int],
        now: datetime,
) -> bool:
    if state.role and state.role.lower() not in job.title.lower():
        return False

    if state.skills:
        wanted = [s.lower() for s in state.skills]
        if not any(w in js.lower() for w in wanted for js in job.skills):
            return False

    if state.date_posted in _DATE_POSTED_DAYS and job.posted_date is not None:
        cutoff = now - timedelta(days=_DATE_POSTED_DAYS[state.date_posted])
        if job.posted_date < cutoff:
            return False

    if state.job_type != "any" and job.job_type != state.job_type:
        return False
    if state.work_mode != "any" and job.work_mode != state.work_mode:
        return False

    if state.location and state.location.lower() not in (job.location or "").lower():
        return False

    # Score filter only applies once a job has been scored.
    if state.match_score != "all" and score is not None:
        if state.match_score == "high" and score < HIGH_MATCH_THRESHOLD:
            return False
        if state.match_score == "medium" and not (MEDIUM_MATCH_THRESHOLD <= score < HIGH_MATCH_THRESHOLD):
            return False

    return True


def filter_jobs(
        jobs: Sequence[JobPosting],
        state: FilterState,
        *,
        scores: Optional[Mapping[str, int]] = None,
        now: Optional[datetime] = None,
) -> List[JobPosting]:
    scores = scores or {}
    now = now or utc_now()
    return [j for j in jobs if _passes(j, state, scores.get(j.id), now)]
