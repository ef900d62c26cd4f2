"""
Legacy Graph Queries
====================

Non-vector context retrieval: a plain 2-hop traversal from the contact
node, most recently mentioned first. Used when semantic retrieval is
unavailable and to fill up a thin semantic result (hybrid).
"""

import asyncio
import time
from typing import List, Optional, Type

import structlog
from pydantic import BaseModel

from secondme.config.settings import ContextLimits
from secondme.retrieval.models import (
    ContactContext,
    EntityType,
    EventRow,
    PersonRow,
    RankedResult,
    TopicRow,
    dedupe_by_name,
    parse_rows,
)
from secondme.storage.graph import FalkorDBClient

log = structlog.get_logger()


PEOPLE_QUERY = """
    MATCH (c:Contact {id: $contactId})-[:KNOWS]->(p:Person)
    OPTIONAL MATCH (p)-[:WORKS_AT]->(comp:Company)
    RETURN p.id AS id, p.name AS name, p.occupation AS occupation,
           comp.name AS company, comp.industry AS industry,
           p.notes AS notes, p.lastMentioned AS lastMentioned
    ORDER BY p.lastMentioned DESC
    LIMIT $limit
"""

TOPICS_QUERY = """
    MATCH (c:Contact {id: $contactId})-[m:MENTIONED]->(t:Topic)
    RETURN t.id AS id, t.name AS name, t.category AS category,
           m.times AS times, m.lastMentioned AS lastMentioned
    ORDER BY m.lastMentioned DESC
    LIMIT $limit
"""

EVENTS_QUERY = """
    MATCH (c:Contact {id: $contactId})-[:ATTENDING|:MENTIONED]->(e:Event)
    RETURN e.id AS id, e.name AS name, e.date AS date,
           e.location AS location, e.description AS description
    ORDER BY e.date DESC
    LIMIT $limit
"""


class LegacyGraphQueries:
    """
    Full-traversal context for a contact, without embeddings.

    Results carry ``score == 0.0``; ordering comes from the graph
    (recency of mention, event date).
    """

    def __init__(self, graph: FalkorDBClient, limits: Optional[ContextLimits] = None):
        self.graph = graph
        self.limits = limits or ContextLimits()

    async def get_contact_context(
        self,
        contact_id: str,
        timeout: Optional[float] = None
    ) -> ContactContext:
        """
        Retrieve people, topics and events linked to a contact.

        The three traversals run concurrently; a failing one yields an
        empty list and does not affect the others.
        """
        start_time = time.monotonic()

        people, topics, events = await asyncio.gather(
            self._fetch(EntityType.PERSON, PEOPLE_QUERY, PersonRow, contact_id, self.limits.people, timeout),
            self._fetch(EntityType.TOPIC, TOPICS_QUERY, TopicRow, contact_id, self.limits.topics, timeout),
            self._fetch(EntityType.EVENT, EVENTS_QUERY, EventRow, contact_id, self.limits.events, timeout),
        )

        context = ContactContext(
            people=dedupe_by_name(RankedResult.from_person(row) for row in people)[:self.limits.people],
            topics=dedupe_by_name(RankedResult.from_topic(row) for row in topics)[:self.limits.topics],
            events=dedupe_by_name(RankedResult.from_event(row) for row in events)[:self.limits.events],
        )

        log.info(
            "Legacy context retrieved",
            contact_id=contact_id,
            people=len(context.people),
            topics=len(context.topics),
            events=len(context.events),
            latency_ms=round((time.monotonic() - start_time) * 1000, 1)
        )
        return context

    async def _fetch(
        self,
        entity_type: EntityType,
        cypher: str,
        row_model: Type[BaseModel],
        contact_id: str,
        limit: int,
        timeout: Optional[float]
    ) -> List[BaseModel]:
        if limit <= 0:
            return []
        try:
            rows = await self.graph.query(
                cypher,
                {"contactId": contact_id, "limit": limit},
                timeout=timeout
            )
        except Exception as e:
            log.error(
                "Legacy query failed",
                entity_type=entity_type.value,
                contact_id=contact_id,
                error=str(e) or type(e).__name__
            )
            return []
        return parse_rows(row_model, rows)
