"""
Conversation History
====================

- HistoryCache: loads recent messages and selects them under a token budget
- keyword_chunker: keyword-continuity chunking and greedy selection
"""

from secondme.history.history_cache import HistoryCache
from secondme.history.keyword_chunker import (
    STOPWORDS,
    calculate_keyword_overlap,
    chunk_by_keyword_continuity,
    estimate_tokens,
    extract_keywords,
    message_tokens,
    process_messages_with_chunking,
    select_messages_from_chunks,
    truncate_message,
)
from secondme.history.models import (
    ConversationChunk,
    ConversationMessage,
    HistoryMethod,
    HistoryResult,
    StoredMessage,
)

__all__ = [
    "STOPWORDS",
    "ConversationChunk",
    "ConversationMessage",
    "HistoryCache",
    "HistoryMethod",
    "HistoryResult",
    "StoredMessage",
    "calculate_keyword_overlap",
    "chunk_by_keyword_continuity",
    "estimate_tokens",
    "extract_keywords",
    "message_tokens",
    "process_messages_with_chunking",
    "select_messages_from_chunks",
    "truncate_message",
]
