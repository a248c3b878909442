from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Optional

from hirelens.config import RESUME_FINGERPRINT_PREFIX
from hirelens.llm.provider import InferenceProvider
from hirelens.models import EmbeddingVector, JobPosting

logger = logging.getLogger(__name__)


def resume_fingerprint(resume_text: str, prefix: int = RESUME_FINGERPRINT_PREFIX) -> str:
    # Prefix, not a hash: near-duplicate resumes with the same opening share a vector.
    return f"resume_{(resume_text or '')[:prefix]}"


def job_fingerprint(job: JobPosting) -> str:
    return f"job_{job.id}"


class EmbeddingCache:
    """
    fingerprint -> embedding vector, one instance per process.

    Unbounded by default. max_entries > 0 turns on least-recently-used
    eviction. Two callers racing on the same uncached fingerprint may both hit
    the provider; the later write wins, which is harmless because vectors are
    immutable and equivalent.
    """

    def __init__(self, provider: InferenceProvider, *, max_entries: int = 0) -> None:
        self._provider = provider
        self._max_entries = max(0, max_entries)
        self._entries: "OrderedDict[str, EmbeddingVector]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, fingerprint: str) -> bool:
        with self._lock:
            return fingerprint in self._entries

    def get(self, fingerprint: str) -> Optional[EmbeddingVector]:
        with self._lock:
            vec = self._entries.get(fingerprint)
            if vec is not None and self._max_entries:
                self._entries.move_to_end(fingerprint)
            return vec

    def put(self, fingerprint: str, vector: EmbeddingVector) -> None:
        with self._lock:
            self._entries[fingerprint] = tuple(vector)
            self._entries.move_to_end(fingerprint)
            if self._max_entries:
                while len(self._entries) > self._max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("embedding cache evicted %s", evicted[:40])

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def get_or_compute(self, text: str, fingerprint: str) -> EmbeddingVector:
        """
        Cached vector if present (no provider call), otherwise embed + store.
        Provider errors propagate unchanged. Blank text raises ValueError without
        reaching the provider.
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text.")
        cached = self.get(fingerprint)
        if cached is not None:
            return cached

        logger.debug("embedding cache miss for %s", fingerprint[:40])
        vector = await self._provider.embed(text)
        vector = tuple(vector)
        self.put(fingerprint, vector)
        return vector
