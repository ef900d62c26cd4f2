"""
Retrieval Models
================

Boundary rows (pydantic) and result dataclasses of the retrieval engine.

Rows returned by FalkorDB are validated against a typed model per query
before they become results; a row that does not match is skipped, it is
never passed through half-filled.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from secondme.errors import ParseError

log = structlog.get_logger()


class EntityType(str, Enum):
    """Entity types in the knowledge graph."""
    TOPIC = "Topic"
    PERSON = "Person"
    EVENT = "Event"
    COMPANY = "Company"


class RetrievalMethod(str, Enum):
    """Strategy that produced a ContactContext."""
    SEMANTIC = "semantic"
    HYBRID = "hybrid"
    LEGACY = "legacy"
    DISABLED = "disabled"


# =============================================================================
# Boundary rows
# =============================================================================

class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class VectorCandidateRow(_Row):
    """Row of the vector phase (``db.idx.vector.queryNodes``)."""
    id: str
    name: str
    score: float


class TopicRow(_Row):
    """Topic linked to a contact via MENTIONED."""
    id: Optional[str] = None
    name: str
    category: Optional[str] = None
    notes: Optional[str] = None
    times: Optional[int] = None
    last_mentioned: Optional[float] = Field(default=None, alias="lastMentioned")


class PersonRow(_Row):
    """Person linked to a contact via KNOWS, with the WORKS_AT company."""
    id: Optional[str] = None
    name: str
    occupation: Optional[str] = None
    notes: Optional[str] = None
    last_mentioned: Optional[float] = Field(default=None, alias="lastMentioned")
    company: Optional[str] = None
    industry: Optional[str] = None


class EventRow(_Row):
    """Event linked to a contact via ATTENDING or MENTIONED."""
    id: Optional[str] = None
    name: str
    date: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None


RowT = TypeVar("RowT", bound=BaseModel)


def parse_row(model: Type[RowT], row: Mapping[str, Any]) -> RowT:
    """
    Validate one query row.

    Raises:
        ParseError: If the row does not match ``model``
    """
    try:
        return model.model_validate(row)
    except ValidationError as e:
        raise ParseError(f"Invalid {model.__name__}: {e.error_count()} error(s)") from e


def parse_rows(model: Type[RowT], rows: Iterable[Mapping[str, Any]]) -> List[RowT]:
    """Validate rows, skipping (and logging) the malformed ones."""
    parsed: List[RowT] = []
    for row in rows:
        try:
            parsed.append(parse_row(model, row))
        except ParseError as e:
            log.warning("Skipping malformed row", model=model.__name__, error=str(e))
    return parsed


# =============================================================================
# Results
# =============================================================================

@dataclass
class CandidateEntity:
    """
    Entity produced by a query layer, scored by vector similarity.

    Type-specific properties are None when not applicable.
    """
    id: Optional[str]
    name: str
    entity_type: EntityType
    score: float = 0.0
    category: Optional[str] = None
    occupation: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class RankedResult(CandidateEntity):
    """
    Candidate enriched with relationship metadata and a final score.

    Attributes:
        times: Mention count on the MENTIONED edge
        last_mentioned: Epoch milliseconds of the last mention
        final_score: Score after reranking (equals ``score`` until reranked)
        score_breakdown: Signal components of ``final_score``
    """
    times: Optional[int] = None
    last_mentioned: Optional[float] = None
    final_score: float = 0.0
    score_breakdown: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_topic(cls, row: TopicRow, score: float = 0.0) -> "RankedResult":
        return cls(
            id=row.id,
            name=row.name,
            entity_type=EntityType.TOPIC,
            score=score,
            category=row.category,
            notes=row.notes,
            times=row.times if row.times else 1,
            last_mentioned=row.last_mentioned,
            final_score=score,
        )

    @classmethod
    def from_person(cls, row: PersonRow, score: float = 0.0) -> "RankedResult":
        return cls(
            id=row.id,
            name=row.name,
            entity_type=EntityType.PERSON,
            score=score,
            occupation=row.occupation,
            company=row.company,
            industry=row.industry,
            notes=row.notes,
            last_mentioned=row.last_mentioned,
            final_score=score,
        )

    @classmethod
    def from_event(cls, row: EventRow, score: float = 0.0) -> "RankedResult":
        return cls(
            id=row.id,
            name=row.name,
            entity_type=EntityType.EVENT,
            score=score,
            date=row.date,
            location=row.location,
            description=row.description,
            notes=row.notes,
            final_score=score,
        )


def dedupe_by_name(results: Iterable[RankedResult]) -> List[RankedResult]:
    """Keep the first result for each entity name, preserving order."""
    seen = set()
    unique = []
    for result in results:
        if result.name in seen:
            continue
        seen.add(result.name)
        unique.append(result)
    return unique


@dataclass
class ContactContext:
    """
    Graph context for one contact.

    Each list is de-duplicated by name and capped by ContextLimits.
    """
    people: List[RankedResult] = field(default_factory=list)
    topics: List[RankedResult] = field(default_factory=list)
    events: List[RankedResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.people) + len(self.topics) + len(self.events)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def names(self) -> Dict[str, List[str]]:
        return {
            "people": [p.name for p in self.people],
            "topics": [t.name for t in self.topics],
            "events": [e.name for e in self.events],
        }


@dataclass
class RetrievalStats:
    """Diagnostics of a semantic attempt."""
    embedding_cached: bool = False
    topic_candidates: int = 0
    people_candidates: int = 0
    event_candidates: int = 0
    tokens_used: int = 0


@dataclass
class RetrievalResult:
    """
    Output of ``HybridRetriever.retrieve_context``.

    Attributes:
        context: People/topics/events for the prompt
        method: Strategy that produced the context
        latency_ms: Wall time of the call
        stats: Semantic diagnostics, when a semantic attempt ran
        reason: Why this method was chosen
    """
    context: ContactContext
    method: RetrievalMethod
    latency_ms: float
    stats: Optional[RetrievalStats] = None
    reason: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"<RetrievalResult(method={self.method.value}, "
            f"people={len(self.context.people)}, topics={len(self.context.topics)}, "
            f"events={len(self.context.events)}, latency={self.latency_ms:.1f}ms)>"
        )
