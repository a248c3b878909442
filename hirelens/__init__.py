from hirelens.models import AssistantResult, Intent, JobPosting, MatchMode, MatchResult
from hirelens.service import JobAssistant, build_assistant

__version__ = "0.1.0"

__all__ = [
    "AssistantResult",
    "Intent",
    "JobAssistant",
    "JobPosting",
    "MatchMode",
    "MatchResult",
    "build_assistant",
]
