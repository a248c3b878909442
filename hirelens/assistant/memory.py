from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Dict, List

from hirelens.config import MEMORY_MAX_TURNS
from hirelens.models import ConversationTurn, Role


class ConversationMemory:
    """
    In-process turn log per conversation id, capped at max_turns.
    Oldest turns are dropped first; nothing is persisted.
    Appends for one conversation are serialized by that conversation's lock.
    """

    def __init__(self, *, max_turns: int = MEMORY_MAX_TURNS) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be >= 1")
        self._max_turns = max_turns
        self._logs: Dict[str, Deque[ConversationTurn]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def _lock_for(self, conversation_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(conversation_id)
            if lock is None:
                lock = self._locks[conversation_id] = threading.Lock()
                self._logs[conversation_id] = deque(maxlen=self._max_turns)
            return lock

    def _log(self, conversation_id: str) -> Deque[ConversationTurn]:
        # clear() may have dropped the log while a caller held the old lock.
        return self._logs.setdefault(conversation_id, deque(maxlen=self._max_turns))

    def append(self, conversation_id: str, turn: ConversationTurn) -> None:
        with self._lock_for(conversation_id):
            self._log(conversation_id).append(turn)

    def append_exchange(self, conversation_id: str, user_text: str, assistant_text: str) -> None:
        """User message and reply land next to each other even under concurrent chats."""
        with self._lock_for(conversation_id):
            log = self._log(conversation_id)
            log.append(ConversationTurn(role=Role.USER, content=user_text))
            log.append(ConversationTurn(role=Role.ASSISTANT, content=assistant_text))

    def get(self, conversation_id: str) -> List[ConversationTurn]:
        with self._registry_lock:
            lock = self._locks.get(conversation_id)
        if lock is None:
            return []
        with lock:
            return list(self._logs.get(conversation_id, ()))

    def clear(self, conversation_id: str) -> None:
        with self._registry_lock:
            self._locks.pop(conversation_id, None)
            self._logs.pop(conversation_id, None)
