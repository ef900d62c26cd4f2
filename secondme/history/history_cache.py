"""
History Cache
=============

Reads a contact's recent messages from the recency-ordered store and
selects the part that goes into the prompt.

Storage layout (written by ingestion):
    key    HISTORY:<contact_id>       sorted set
    member StoredMessage JSON
    score  timestamp (ms)
"""

import time
from typing import Any, Callable, List, Optional

import structlog

from secondme.config.settings import HistoryConfig
from secondme.errors import ParseError
from secondme.history.keyword_chunker import message_tokens, process_messages_with_chunking
from secondme.history.models import (
    ConversationMessage,
    HistoryMethod,
    HistoryResult,
    StoredMessage,
)
from secondme.utils.deadline import Deadline

log = structlog.get_logger()


class HistoryCache:
    """
    Conversation history selector for one store.

    Args:
        store: Sorted-set capable store (RedisStore or MemoryStore)
        config: History settings
        clock: Wall clock in seconds, used for the age filter

    Example:
        history = HistoryCache(RedisStore(), HistoryConfig())
        result = await history.get_recent_history("contact-42")
        [(m.role, m.content) for m in result.messages]
    """

    def __init__(
        self,
        store: Any,
        config: Optional[HistoryConfig] = None,
        clock: Callable[[], float] = time.time
    ):
        self.store = store
        self.config = config or HistoryConfig()
        self._clock = clock

    async def get_recent_history(self, contact_id: str) -> HistoryResult:
        """
        Messages for the prompt, oldest first, within the token budget.

        Never raises: store failures yield an empty ``chunked`` result.
        """
        if not self.config.enabled:
            log.debug("Conversation history is disabled")
            return HistoryResult(method=HistoryMethod.DISABLED)

        retrieval = self.config.retrieval
        try:
            deadline = Deadline(self.config.timeout_seconds)
            raw_messages = await deadline.run(
                self.store.zrevrange(self.config.history_key(contact_id), 0, retrieval.max_messages - 1)
            )

            if not raw_messages:
                log.debug("No history found", contact_id=contact_id)
                return HistoryResult()

            stored = self._parse_messages(raw_messages, contact_id)
            selected = process_messages_with_chunking(
                stored,
                retrieval=retrieval,
                chunking=self.config.chunking,
                now_ms=self._clock() * 1000,
            )
        except Exception as e:
            log.error(
                "Error retrieving history",
                contact_id=contact_id,
                error=str(e) or type(e).__name__
            )
            return HistoryResult()

        messages = [ConversationMessage(role=m.role, content=m.content) for m in selected]
        token_estimate = sum(message_tokens(m) for m in selected)

        log.info(
            "History retrieved",
            contact_id=contact_id,
            messages=len(messages),
            token_estimate=token_estimate
        )
        return HistoryResult(messages=messages, token_estimate=token_estimate)

    async def get_raw_history(self, contact_id: str, limit: int = 50) -> List[StoredMessage]:
        """Stored messages without chunking, newest first. Invalid entries are skipped."""
        try:
            raw_messages = await self.store.zrevrange(self.config.history_key(contact_id), 0, limit - 1)
        except Exception as e:
            log.error("Error getting raw history", contact_id=contact_id, error=str(e))
            return []
        return self._parse_messages(raw_messages, contact_id, warn=False)

    async def get_history_count(self, contact_id: str) -> int:
        try:
            return await self.store.zcard(self.config.history_key(contact_id))
        except Exception as e:
            log.error("Error getting history count", contact_id=contact_id, error=str(e))
            return 0

    async def has_history(self, contact_id: str) -> bool:
        return await self.get_history_count(contact_id) > 0

    @staticmethod
    def _parse_messages(raw_messages: List[str], contact_id: str, warn: bool = True) -> List[StoredMessage]:
        messages = []
        for raw in raw_messages:
            try:
                messages.append(StoredMessage.from_json(raw))
            except ParseError as e:
                if warn:
                    log.warning("Skipping invalid stored message", contact_id=contact_id, error=str(e))
        return messages
