"""
Error Taxonomy
==============

Exceptions raised inside the retrieval path. None of them reaches the
callers of ``HybridRetriever.retrieve_context`` or
``HistoryCache.get_recent_history``: each is recovered where it is caught
by falling back to a simpler strategy or an empty result.
"""

from typing import Optional


class RetrievalError(Exception):
    """Base class for retrieval-path failures."""


class ProviderUnavailable(RetrievalError):
    """Embedding provider misconfigured, unreachable or returning garbage."""


class CircuitOpenError(ProviderUnavailable):
    """The circuit breaker is open; the provider was not called."""


class IndexUnavailable(RetrievalError):
    """Vector indexes are missing or the liveness probe failed."""


class QueryError(RetrievalError):
    """A single graph or vector query failed."""

    def __init__(self, message: str, entity_type: Optional[str] = None):
        super().__init__(message)
        self.entity_type = entity_type


class ParseError(RetrievalError):
    """A stored message or query row does not have the expected shape."""
