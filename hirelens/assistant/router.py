"""
hirelens/assistant/router.py

ConversationRouter: a one-hop state machine.

    detect_intent -> filter_update | job_search | help | general   (all terminal)

route() is total over Intent, and IntentClassifier only ever returns Intent
members, so there is no "unknown node" case. Provider failures anywhere in a
turn produce a fixed apologetic response instead of an exception.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional

from hirelens.assistant.filters import FilterUpdateParser, describe_update
from hirelens.assistant.intent import IntentClassifier
from hirelens.assistant.memory import ConversationMemory
from hirelens.errors import InputError
from hirelens.llm.prompt import (
    _ASSISTANT_SYSTEM_PROMPT,
    build_general_prompt,
    build_help_prompt,
    build_job_search_prompt,
)
from hirelens.llm.provider import InferenceProvider
from hirelens.models import AssistantResult, Intent

logger = logging.getLogger(__name__)

ENTRY_STATE = "detect_intent"

APOLOGY_RESPONSE = (
    "Sorry, I'm having trouble answering right now. Please try again in a moment."
)

_ROUTES: Dict[Intent, str] = {
    Intent.FILTER_UPDATE: "filter_update",
    Intent.JOB_SEARCH: "job_search",
    Intent.HELP: "help",
    Intent.GENERAL: "general",
}


def route(intent: Intent) -> str:
    """Handler name for an intent."""
    return _ROUTES[Intent(intent)]


class ConversationRouter:
    def __init__(
            self,
            provider: InferenceProvider,
            *,
            classifier: Optional[IntentClassifier] = None,
            filter_parser: Optional[FilterUpdateParser] = None,
            memory: Optional[ConversationMemory] = None,
    ) -> None:
        self._provider = provider
        self._classifier = classifier or IntentClassifier(provider)
        self._filter_parser = filter_parser or FilterUpdateParser(provider)
        self.memory = memory or ConversationMemory()
        self._handlers: Dict[str, Callable[[str], Awaitable[AssistantResult]]] = {
            "filter_update": self._handle_filter_update,
            "job_search": self._handle_job_search,
            "help": self._handle_help,
            "general": self._handle_general,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def chat(self, conversation_id: str, message: str) -> AssistantResult:
        """Run one turn and record it in the conversation's memory."""
        if not isinstance(conversation_id, str) or not conversation_id:
            raise InputError("conversation_id must be a non-empty string")
        if not isinstance(message, str):
            raise InputError(f"message must be a string, got {type(message).__name__}")

        result = await self.handle(message)
        self.memory.append_exchange(conversation_id, message, result.response)
        return result

    async def handle(self, message: str) -> AssistantResult:
        try:
            intent = await self._classifier.classify(message)
        except Exception as exc:
            logger.warning("intent detection failed: %s", type(exc).__name__)
            return AssistantResult(response=APOLOGY_RESPONSE, intent=Intent.GENERAL)

        handler_name = route(intent)
        logger.debug("%s -> %s", ENTRY_STATE, handler_name)
        try:
            return await self._handlers[handler_name](message)
        except Exception as exc:
            logger.warning("%s handler failed: %s", handler_name, type(exc).__name__)
            return AssistantResult(response=APOLOGY_RESPONSE, intent=intent)

    # ------------------------------------------------------------------
    # Terminal handlers
    # ------------------------------------------------------------------

    async def _handle_filter_update(self, message: str) -> AssistantResult:
        update = await self._filter_parser.parse(message)
        return AssistantResult(
            response=describe_update(update),
            intent=Intent.FILTER_UPDATE,
            filter_updates=update,
        )

    async def _guidance(self, prompt: str, intent: Intent) -> AssistantResult:
        text = await self._provider.complete(prompt, system=_ASSISTANT_SYSTEM_PROMPT)
        return AssistantResult(response=text, intent=intent)

    async def _handle_job_search(self, message: str) -> AssistantResult:
        return await self._guidance(build_job_search_prompt(message), Intent.JOB_SEARCH)

    async def _handle_help(self, message: str) -> AssistantResult:
        return await self._guidance(build_help_prompt(message), Intent.HELP)

    async def _handle_general(self, message: str) -> AssistantResult:
        return await self._guidance(build_general_prompt(message), Intent.GENERAL)
