"""
Graph Storage
=============

Knowledge graph on FalkorDB (Cypher-compatible, with vector indexes).

Components:
- FalkorDBClient: Async FalkorDB client
- FalkorDBConfig: Connection settings

Example:
    from secondme.storage.graph import FalkorDBClient, FalkorDBConfig

    config = FalkorDBConfig(host="localhost", port=6379, graph_name="knowledge_graph")
    client = FalkorDBClient(config)
    await client.connect()
"""

from secondme.storage.graph.client import FalkorDBClient
from secondme.storage.graph.config import FalkorDBConfig

__all__ = [
    "FalkorDBClient",
    "FalkorDBConfig",
]
