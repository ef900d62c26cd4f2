"""
Keyword Chunker
===============

Groups recent messages into topic-coherent chunks and selects the most
recent ones that fit a token budget.

Chunking rule (chronological walk):
    new chunk  <=>  gap since previous message > gap_minutes
                    AND keyword overlap with the chunk < min_keyword_overlap

    overlap = |kw(msg) ∩ kw(chunk)| / min(|kw(msg)|, |kw(chunk)|)

A pause alone does not split a topic that continues, and shared vocabulary
alone keeps rapid-fire messages together only if the pause is short.

Selection (newest chunk first):
    - whole chunks while they fit max_tokens and max_messages
    - at the first chunk that does not fit, if fewer than min_messages are
      selected, its messages are added one by one (newest first); the
      min_messages floor may exceed max_tokens slightly
    - the result is returned in chronological order
"""

import math
import re
import time
from typing import Iterable, List, Optional, Set

import structlog

from secondme.config.settings import HistoryRetrievalConfig, KeywordChunkingConfig
from secondme.history.models import ConversationChunk, StoredMessage

log = structlog.get_logger()


TRUNCATION_MARKER = "... [truncated]"
MESSAGE_OVERHEAD_TOKENS = 10

STOPWORDS = frozenset([
    # Articles & determiners
    "a", "an", "the", "this", "that", "these", "those",
    # Pronouns
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
    "my", "your", "his", "its", "our", "their", "mine", "yours", "ours", "theirs",
    "myself", "yourself", "himself", "herself", "itself", "ourselves", "themselves",
    # Prepositions
    "in", "on", "at", "to", "for", "of", "with", "by", "from", "up", "about",
    "into", "over", "after", "under", "between", "out", "against", "during",
    # Conjunctions
    "and", "but", "or", "nor", "so", "yet", "both", "either", "neither",
    # Auxiliary verbs
    "is", "are", "was", "were", "be", "been", "being", "am",
    "have", "has", "had", "having", "do", "does", "did", "doing",
    "will", "would", "could", "should", "may", "might", "must", "shall", "can",
    # Common verbs
    "get", "got", "getting", "make", "made", "making", "go", "going", "went", "gone",
    "come", "came", "coming", "take", "took", "taken", "taking",
    "know", "knew", "known", "knowing", "think", "thought", "thinking",
    "see", "saw", "seen", "seeing", "want", "wanted", "wanting",
    "use", "used", "using", "find", "found", "finding",
    "give", "gave", "given", "giving", "tell", "told", "telling",
    "say", "said", "saying", "look", "looked", "looking",
    # Common adverbs
    "just", "also", "now", "then", "here", "there", "when", "where", "why", "how",
    "very", "really", "actually", "probably", "maybe", "always", "never", "often",
    "still", "already", "ever", "even", "only", "again", "back",
    # Common adjectives
    "good", "great", "nice", "bad", "new", "old", "big", "small", "same", "different",
    "other", "more", "most", "some", "any", "all", "many", "much", "few", "little",
    "first", "last", "next", "own", "right", "sure",
    # Question words
    "what", "which", "who", "whom", "whose",
    # Chat filler
    "yeah", "yes", "yep", "yup", "no", "nope", "nah", "okay", "ok", "thanks",
    "thank", "please", "sorry", "well", "like", "thing", "things", "stuff",
    "hey", "hello", "hi", "bye", "lol", "haha", "hehe", "wow", "cool",
    # Time
    "today", "tomorrow", "yesterday", "time", "day", "week", "month", "year",
    # Misc
    "let", "lets", "dont", "didnt", "doesnt", "wont", "cant", "couldnt", "wouldnt",
    "shouldnt", "isnt", "arent", "wasnt", "werent", "hasnt", "havent", "hadnt",
    "something", "anything", "nothing", "everything",
    "someone", "anyone", "everyone", "nobody",
])

# Everything except word characters, whitespace and apostrophes
_NON_WORD = re.compile(r"[^\w\s']")


# =============================================================================
# Tokens
# =============================================================================

def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return math.ceil(len(text) / 4)


def message_tokens(message: StoredMessage) -> int:
    """Token estimate of one message, including role/formatting overhead."""
    return estimate_tokens(message.content) + MESSAGE_OVERHEAD_TOKENS


# =============================================================================
# Keywords
# =============================================================================

def extract_keywords(text: str, min_word_length: int = 4) -> Set[str]:
    """
    Lowercased content words of ``text``.

    Punctuation other than apostrophes splits words; apostrophes are then
    removed ("don't" -> "dont"). Stop-words and words shorter than
    ``min_word_length`` are dropped.
    """
    normalized = _NON_WORD.sub(" ", text.lower())

    keywords = set()
    for word in normalized.split():
        clean = word.replace("'", "")
        if len(clean) >= min_word_length and clean not in STOPWORDS:
            keywords.add(clean)
    return keywords


def calculate_keyword_overlap(first: Set[str], second: Set[str]) -> float:
    """Shared keywords over the smaller set size; 0.0 if either is empty."""
    if not first or not second:
        return 0.0
    return len(first & second) / min(len(first), len(second))


# =============================================================================
# Chunking
# =============================================================================

def _build_chunk(messages: List[StoredMessage], keywords: Set[str]) -> ConversationChunk:
    return ConversationChunk(
        messages=messages,
        keywords=keywords,
        start_time=messages[0].timestamp,
        end_time=messages[-1].timestamp,
        token_count=sum(message_tokens(m) for m in messages),
    )


def chunk_by_keyword_continuity(
    messages: Iterable[StoredMessage],
    config: Optional[KeywordChunkingConfig] = None
) -> List[ConversationChunk]:
    """
    Split chronological messages into contiguous chunks.

    Concatenating the chunks' messages reproduces the input exactly.

    Args:
        messages: Messages sorted oldest first
        config: Gap / overlap / word-length thresholds

    Returns:
        Chunks, oldest first
    """
    config = config or KeywordChunkingConfig()
    gap_ms = config.gap_minutes * 60 * 1000

    chunks: List[ConversationChunk] = []
    current: List[StoredMessage] = []
    current_keywords: Set[str] = set()

    for message in messages:
        keywords = extract_keywords(message.content, config.min_word_length)

        if current:
            time_gap = message.timestamp - current[-1].timestamp
            overlap = calculate_keyword_overlap(current_keywords, keywords)

            # Both conditions are required to break
            if time_gap > gap_ms and overlap < config.min_keyword_overlap:
                chunks.append(_build_chunk(current, current_keywords))
                current = []
                current_keywords = set()

        current.append(message)
        current_keywords |= keywords

    if current:
        chunks.append(_build_chunk(current, current_keywords))

    return chunks


# =============================================================================
# Selection
# =============================================================================

def select_messages_from_chunks(
    chunks: List[ConversationChunk],
    max_tokens: int,
    min_messages: int,
    max_messages: int
) -> List[StoredMessage]:
    """
    Pick the most recent messages that fit the budget.

    Args:
        chunks: Chunks, oldest first
        max_tokens: Token budget
        min_messages: Floor honoured even past the budget
        max_messages: Hard cap on selected messages

    Returns:
        Selected messages, oldest first
    """
    selected: List[StoredMessage] = []  # newest first while selecting
    token_count = 0

    for chunk in reversed(chunks):
        if len(selected) >= max_messages:
            break

        fits = (
            token_count + chunk.token_count <= max_tokens
            and len(selected) + len(chunk.messages) <= max_messages
        )
        if fits:
            selected.extend(reversed(chunk.messages))
            token_count += chunk.token_count
            continue

        if len(selected) >= min_messages:
            break

        # Partial chunk to reach the min_messages floor
        for message in reversed(chunk.messages):
            tokens = message_tokens(message)
            if token_count + tokens > max_tokens and len(selected) >= min_messages:
                break
            selected.append(message)
            token_count += tokens
            if len(selected) >= max_messages:
                break

        if len(selected) >= min_messages:
            break

    selected.reverse()
    return selected


def truncate_message(content: str, max_length: int) -> str:
    """Cut ``content`` to ``max_length`` characters, marker included."""
    if len(content) <= max_length:
        return content
    keep = max(0, max_length - len(TRUNCATION_MARKER))
    return content[:keep] + TRUNCATION_MARKER


def process_messages_with_chunking(
    messages: List[StoredMessage],
    retrieval: Optional[HistoryRetrievalConfig] = None,
    chunking: Optional[KeywordChunkingConfig] = None,
    now_ms: Optional[float] = None
) -> List[StoredMessage]:
    """
    Full pipeline: age filter, chunk, select, truncate.

    Args:
        messages: Stored messages, newest first (sorted-set order)
        retrieval: Budget settings
        chunking: Chunking thresholds
        now_ms: Current time in epoch ms (defaults to wall clock)

    Returns:
        Selected messages, oldest first, with long contents truncated
    """
    retrieval = retrieval or HistoryRetrievalConfig()
    if now_ms is None:
        now_ms = time.time() * 1000
    cutoff = now_ms - retrieval.max_age_hours * 60 * 60 * 1000

    recent = [m for m in messages if m.timestamp > cutoff]
    recent.reverse()
    if not recent:
        return []

    chunks = chunk_by_keyword_continuity(recent, chunking)
    selected = select_messages_from_chunks(
        chunks,
        max_tokens=retrieval.max_tokens,
        min_messages=retrieval.min_messages,
        max_messages=retrieval.max_messages,
    )

    log.debug(
        "History chunked",
        messages=len(recent),
        chunks=len(chunks),
        selected=len(selected)
    )

    return [
        m.model_copy(update={"content": truncate_message(m.content, retrieval.max_message_length)})
        for m in selected
    ]
