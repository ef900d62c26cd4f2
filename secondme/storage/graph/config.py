"""
FalkorDB Configuration
======================

Settings for the FalkorDB client.

Every field can be overridden through environment variables.

Usage:
    from secondme.storage.graph import FalkorDBConfig

    # Defaults (env vars or built-in values)
    config = FalkorDBConfig()

    # Explicit override
    config = FalkorDBConfig(host="localhost", port=6379, graph_name="knowledge_graph")

Environment Variables:
    FALKORDB_HOST: Server host (default: localhost)
    FALKORDB_PORT: Server port (default: 6379)
    FALKORDB_GRAPH_NAME: Graph name (default: knowledge_graph)
    FALKORDB_PASSWORD: Password (default: empty)
    FALKORDB_TIMEOUT_MS: Query timeout in ms (default: 5000)
"""

from dataclasses import dataclass, field
from typing import Optional

from secondme.utils.env import get_env_int, get_env_str


@dataclass
class FalkorDBConfig:
    """
    FalkorDB connection settings.

    All fields can be overridden from environment variables.

    Attributes:
        host: FalkorDB server host
        port: Server port
        graph_name: Graph holding Contact/Person/Topic/Event
        timeout_ms: Server-side timeout per query, in milliseconds
        password: Authentication password (optional)
    """
    host: str = field(default_factory=lambda: get_env_str("FALKORDB_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("FALKORDB_PORT", 6379))
    graph_name: str = field(default_factory=lambda: get_env_str("FALKORDB_GRAPH_NAME", "knowledge_graph"))
    timeout_ms: int = field(default_factory=lambda: get_env_int("FALKORDB_TIMEOUT_MS", 5000))
    password: Optional[str] = field(default_factory=lambda: get_env_str("FALKORDB_PASSWORD", "") or None)

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")
