from __future__ import annotations

import logging

from hirelens.errors import ValidationError
from hirelens.llm.prompt import build_intent_prompt
from hirelens.llm.provider import InferenceProvider
from hirelens.models import Intent

logger = logging.getLogger(__name__)


class IntentClassifier:
    """
    One constrained call per message. Whatever comes back, classify() returns
    a member of Intent; off-list labels, prose and empty output become GENERAL.
    """

    def __init__(self, provider: InferenceProvider) -> None:
        self._provider = provider

    async def classify(self, query: str) -> Intent:
        raw = await self._provider.complete(build_intent_prompt(query))
        try:
            return self.validate(raw)
        except ValidationError as exc:
            logger.info("coercing unknown intent to general: %s", exc)
            return Intent.GENERAL

    @staticmethod
    def validate(raw: str) -> Intent:
        """Strict check: raises ValidationError for anything outside the enumeration."""
        label = (raw or "").strip().lower()
        intent = Intent.from_untrusted(label)
        if intent.value != label:
            raise ValidationError(f"unexpected intent label {label[:40]!r}")
        return intent
