"""
Storage Layer
=============

Collaborators of the retrieval engine:

- graph/: FalkorDB knowledge graph (Contact, Person, Topic, Event, Company)
  with vector indexes on the ``embedding`` property
- cache/: key-value store with TTL (embedding cache, conversation history)

    Contact -[KNOWS]-> Person -[WORKS_AT]-> Company
    Contact -[MENTIONED {times, lastMentioned}]-> Topic
    Contact -[ATTENDING|MENTIONED]-> Event
"""

from secondme.storage.cache import MemoryStore, RedisConfig, RedisStore
from secondme.storage.graph import FalkorDBClient, FalkorDBConfig

__all__ = [
    # FalkorDB
    "FalkorDBClient",
    "FalkorDBConfig",
    # Key-value
    "MemoryStore",
    "RedisConfig",
    "RedisStore",
]
