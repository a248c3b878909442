from .filters import FilterState, FilterUpdateParser, apply_update, describe_update, filter_jobs
from .intent import IntentClassifier
from .memory import ConversationMemory
from .router import ConversationRouter, route

__all__ = [
    "ConversationMemory",
    "ConversationRouter",
    "FilterState",
    "FilterUpdateParser",
    "IntentClassifier",
    "apply_update",
    "describe_update",
    "filter_jobs",
    "route",
]
