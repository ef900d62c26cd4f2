"""
Embeddings
==========

- VoyageEmbeddingClient: remote embeddings with cache and circuit breaker
- CircuitBreaker: closed/open breaker with injectable clock
- format_entity_for_embedding: entity -> text
"""

from secondme.embeddings.circuit_breaker import (
    BreakerState,
    CircuitBreaker,
    CircuitBreakerState,
)
from secondme.embeddings.client import (
    BatchEmbeddingResult,
    EmbeddingResult,
    VoyageEmbeddingClient,
)
from secondme.embeddings.formatting import format_entity_for_embedding

__all__ = [
    "BatchEmbeddingResult",
    "BreakerState",
    "CircuitBreaker",
    "CircuitBreakerState",
    "EmbeddingResult",
    "VoyageEmbeddingClient",
    "format_entity_for_embedding",
]
