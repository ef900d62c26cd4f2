"""
Voyage Embedding Client
=======================

Turns text into fixed-dimension vectors through the Voyage AI HTTP API.

Key Features:
- Response cache keyed by a truncated SHA-256 of the text (TTL ~5 minutes)
- Circuit breaker: after ``breaker_threshold`` consecutive failures the
  provider is not called for ``breaker_cooldown_seconds``
- Dimension check on every returned vector
- Batch variant for entity texts (``input_type="document"``)

The client is an explicit object: cache, breaker and HTTP session are
fields, so each test or deployment gets its own state.

Usage:
    client = VoyageEmbeddingClient(EmbeddingConfig(), cache=RedisStore())
    if client.is_configured():
        result = await client.embed("Did you talk to John?")
        result.embedding, result.from_cache, result.tokens_used
"""

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import structlog

from secondme.config.settings import EmbeddingConfig
from secondme.embeddings.circuit_breaker import CircuitBreaker, CircuitBreakerState
from secondme.errors import CircuitOpenError, ProviderUnavailable
from secondme.storage.cache import MemoryStore

log = structlog.get_logger()


@dataclass
class EmbeddingResult:
    """Vector for a single text."""
    embedding: List[float]
    from_cache: bool
    tokens_used: int


@dataclass
class BatchEmbeddingResult:
    """Vectors for several texts, in input order."""
    embeddings: List[List[float]]
    tokens_used: int


class VoyageEmbeddingClient:
    """
    Embedding client with cache and circuit breaker.

    Args:
        config: Provider, cache and breaker settings
        cache: Key-value store with ``get``/``set(key, value, ttl_seconds)``;
               defaults to a process-local MemoryStore
        breaker: Circuit breaker; built from config when omitted
        session: aiohttp session to reuse (created lazily otherwise)
    """

    def __init__(
        self,
        config: Optional[EmbeddingConfig] = None,
        cache: Any = None,
        breaker: Optional[CircuitBreaker] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.config = config or EmbeddingConfig()
        self.cache = cache if cache is not None else MemoryStore()
        self.breaker = breaker or CircuitBreaker(
            threshold=self.config.breaker_threshold,
            cooldown_seconds=self.config.breaker_cooldown_seconds,
            name="voyage",
        )
        self._session = session

        log.info(
            "VoyageEmbeddingClient configured",
            model=self.config.model,
            dimension=self.config.dimension,
            configured=self.is_configured(),
            cache_ttl_seconds=self.config.cache_ttl_seconds
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_configured(self) -> bool:
        """True when the provider credential is present."""
        return bool(self.config.api_key)

    @property
    def dimension(self) -> int:
        return self.config.dimension

    def breaker_status(self) -> CircuitBreakerState:
        return self.breaker.snapshot()

    def reset_breaker(self) -> None:
        self.breaker.reset()

    def cache_key(self, text: str) -> str:
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]
        return f"{self.config.cache_key_prefix}{digest}"

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    async def embed(self, text: str, timeout: Optional[float] = None) -> EmbeddingResult:
        """
        Embed a single message, serving from cache when possible.

        Args:
            text: Message text
            timeout: Seconds allowed for the provider call

        Returns:
            EmbeddingResult (``from_cache=True`` and ``tokens_used=0`` on hit)

        Raises:
            CircuitOpenError: Breaker open, provider not called
            ProviderUnavailable: Missing credential or provider failure
        """
        key = self.cache_key(text)

        cached = await self._read_cache(key)
        if cached is not None:
            log.debug("Embedding cache hit", key=key)
            return EmbeddingResult(embedding=cached, from_cache=True, tokens_used=0)

        embeddings, tokens_used = await self._call_provider([text], "query", timeout)
        embedding = embeddings[0]

        await self._write_cache(key, embedding)

        return EmbeddingResult(embedding=embedding, from_cache=False, tokens_used=tokens_used)

    async def embed_batch(
        self,
        texts: List[str],
        timeout: Optional[float] = None
    ) -> BatchEmbeddingResult:
        """
        Embed several entity texts in one request.

        Results are not read from or written to the cache.
        """
        # TODO: decide whether batch embeddings should share the single-text cache
        if not texts:
            return BatchEmbeddingResult(embeddings=[], tokens_used=0)

        embeddings, tokens_used = await self._call_provider(texts, "document", timeout)
        return BatchEmbeddingResult(embeddings=embeddings, tokens_used=tokens_used)

    async def _call_provider(
        self,
        texts: List[str],
        input_type: str,
        timeout: Optional[float]
    ) -> Tuple[List[List[float]], int]:
        """Breaker-guarded provider call shared by embed and embed_batch."""
        if not self.breaker.allow_request():
            raise CircuitOpenError("Voyage API circuit breaker is open")

        if not self.is_configured():
            raise ProviderUnavailable("VOYAGE_API_KEY not configured")

        start_time = time.monotonic()
        try:
            embeddings, tokens_used = await self._request_embeddings(
                texts,
                input_type,
                timeout if timeout is not None else self.config.timeout_seconds
            )
            self._check_embeddings(embeddings, expected=len(texts))
        except Exception as e:
            self.breaker.record_failure()
            log.error(
                "Embedding request failed",
                error=str(e),
                texts=len(texts),
                failures=self.breaker.snapshot().consecutive_failures
            )
            if isinstance(e, ProviderUnavailable):
                raise
            raise ProviderUnavailable(f"Embedding request failed: {e}") from e

        self.breaker.record_success()

        log.info(
            "Embeddings generated",
            texts=len(texts),
            input_type=input_type,
            tokens=tokens_used,
            latency_ms=round((time.monotonic() - start_time) * 1000, 1)
        )
        return embeddings, tokens_used

    def _check_embeddings(self, embeddings: List[List[float]], expected: int) -> None:
        if len(embeddings) != expected:
            raise ProviderUnavailable(
                f"Expected {expected} embeddings, got {len(embeddings)}"
            )
        for vector in embeddings:
            if len(vector) != self.config.dimension:
                raise ProviderUnavailable(
                    f"Embedding dimension {len(vector)} != {self.config.dimension}"
                )

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            )
        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _request_embeddings(
        self,
        texts: List[str],
        input_type: str,
        timeout: float
    ) -> Tuple[List[List[float]], int]:
        """
        POST to the Voyage embeddings endpoint.

        Returns:
            (vectors in input order, total tokens billed)
        """
        session = await self._get_session()

        payload = {
            "model": self.config.model,
            "input": texts,
            "input_type": input_type,
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        async with session.post(
            self.config.api_url,
            json=payload,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=timeout)
        ) as response:
            if response.status != 200:
                error_text = await response.text()
                raise ProviderUnavailable(f"Voyage API error {response.status}: {error_text}")

            data = await response.json()

        return self._parse_response(data)

    @staticmethod
    def _parse_response(data: Dict[str, Any]) -> Tuple[List[List[float]], int]:
        items = data.get("data") if isinstance(data, dict) else None
        if not items:
            raise ProviderUnavailable("No embedding returned from Voyage API")

        ordered = sorted(items, key=lambda item: item.get("index", 0))
        embeddings = [item.get("embedding") for item in ordered]
        if any(not isinstance(vector, list) for vector in embeddings):
            raise ProviderUnavailable("Malformed embedding in Voyage API response")

        tokens_used = int((data.get("usage") or {}).get("total_tokens", 0))
        return embeddings, tokens_used

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    async def _read_cache(self, key: str) -> Optional[List[float]]:
        """Cache errors are logged and treated as a miss."""
        try:
            raw = await self.cache.get(key)
        except Exception as e:
            log.warning("Embedding cache read error", error=str(e))
            return None

        if raw is None:
            return None

        try:
            vector = json.loads(raw)
        except (TypeError, ValueError) as e:
            log.warning("Discarding unreadable cached embedding", key=key, error=str(e))
            return None

        if not isinstance(vector, list) or len(vector) != self.config.dimension:
            log.warning("Discarding cached embedding with wrong shape", key=key)
            return None
        return vector

    async def _write_cache(self, key: str, embedding: List[float]) -> None:
        try:
            await self.cache.set(key, json.dumps(embedding), self.config.cache_ttl_seconds)
        except Exception as e:
            log.warning("Embedding cache write error", error=str(e))
