"""
Redis Configuration
===================

Connection settings for the key-value store backing the embedding cache and
the per-contact conversation history.

Environment Variables:
    REDIS_HOST: Host (default: localhost)
    REDIS_PORT: Porta (default: 6379)
    REDIS_DB: Database number (default: 0)
    REDIS_PASSWORD: Password (default: vuota)
    REDIS_SOCKET_TIMEOUT: Socket timeout in secondi (default: 5)
"""

from dataclasses import dataclass, field
from typing import Optional

from secondme.utils.env import get_env_float, get_env_int, get_env_str


@dataclass
class RedisConfig:
    """Connection parameters for Redis."""
    host: str = field(default_factory=lambda: get_env_str("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("REDIS_PORT", 6379))
    db: int = field(default_factory=lambda: get_env_int("REDIS_DB", 0))
    password: Optional[str] = field(default_factory=lambda: get_env_str("REDIS_PASSWORD", "") or None)
    socket_timeout: float = field(default_factory=lambda: get_env_float("REDIS_SOCKET_TIMEOUT", 5.0))

    @property
    def url(self) -> str:
        return f"redis://{self.host}:{self.port}/{self.db}"
