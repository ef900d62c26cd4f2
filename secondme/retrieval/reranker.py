"""
Reranker
========

Scores, orders and cuts candidate results of one entity type.

Final score:
    final = similarity * w_s + recency * w_r + frequency * w_f + priority * w_p

With the default weights (similarity only) the final score is the vector
similarity itself. Selection then applies, in order:

1. drop candidates with final score < ``min_score``
2. sort by final score, descending (stable: ties keep input order)
3. knee cutoff: stop at the first candidate whose score falls more than
   ``score_drop`` (relative) below the best score seen so far
4. cap at ``max_results``

Because the list is sorted before the cutoff, the selection is always a
prefix: if a candidate is kept, every higher-scored candidate is kept too.
"""

import math
import time
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Union

import structlog

from secondme.config.settings import RerankOptions, RerankWeights
from secondme.retrieval.models import EntityType, RankedResult

log = structlog.get_logger()


ENTITY_PRIORITIES: Dict[EntityType, float] = {
    EntityType.PERSON: 1.0,
    EntityType.TOPIC: 0.9,
    EntityType.EVENT: 0.85,
    EntityType.COMPANY: 0.8,
}

DEFAULT_ENTITY_PRIORITY = 0.5
UNKNOWN_RECENCY_SCORE = 0.5
RECENCY_WINDOW_DAYS = 30.0

_MS_PER_DAY = 1000 * 60 * 60 * 24


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def calculate_recency_score(last_mentioned: Optional[float], now_ms: Optional[float] = None) -> float:
    """
    1.0 for a mention right now, decaying linearly to 0.0 over 30 days.

    Unknown recency scores 0.5.
    """
    if not last_mentioned:
        return UNKNOWN_RECENCY_SCORE

    if now_ms is None:
        now_ms = time.time() * 1000
    days_since = (now_ms - last_mentioned) / _MS_PER_DAY
    return _clamp(1 - days_since / RECENCY_WINDOW_DAYS)


def calculate_frequency_score(times: Optional[int]) -> float:
    """log10(times + 1) / 2, clamped to [0, 1]."""
    if not times or times <= 0:
        return 0.0
    return _clamp(math.log10(times + 1) / 2)


def get_entity_priority(entity_type: Union[EntityType, str]) -> float:
    try:
        return ENTITY_PRIORITIES[EntityType(entity_type)]
    except ValueError:
        return DEFAULT_ENTITY_PRIORITY


def rerank_results(
    results: Iterable[RankedResult],
    entity_type: Union[EntityType, str],
    weights: Optional[RerankWeights] = None,
    now_ms: Optional[float] = None
) -> List[RankedResult]:
    """
    Compute final scores and sort descending.

    Inputs are not mutated; scored copies are returned.
    """
    weights = weights or RerankWeights()
    priority = get_entity_priority(entity_type)
    if now_ms is None:
        now_ms = time.time() * 1000

    ranked = []
    for result in results:
        breakdown = {
            "similarity": result.score * weights.similarity,
            "recency": calculate_recency_score(result.last_mentioned, now_ms) * weights.recency,
            "frequency": calculate_frequency_score(result.times) * weights.frequency,
            "entity_priority": priority * weights.entity_priority,
        }
        ranked.append(replace(
            result,
            final_score=sum(breakdown.values()),
            score_breakdown=breakdown,
        ))

    ranked.sort(key=lambda r: r.final_score, reverse=True)
    return ranked


def select_top_results(
    ranked_results: List[RankedResult],
    options: Optional[RerankOptions] = None
) -> List[RankedResult]:
    """
    Apply min-score filter, knee cutoff and max-results cap.

    ``ranked_results`` must already be sorted by final score, descending.
    """
    options = options or RerankOptions()

    selected: List[RankedResult] = []
    peak: Optional[float] = None

    for result in ranked_results:
        if len(selected) >= options.max_results:
            break

        score = result.final_score
        if score < options.min_score:
            # Sorted input: everything after is lower
            break

        if peak is None:
            peak = score
        else:
            drop = peak - score
            if peak > 0:
                drop = drop / peak
            if drop > options.score_drop:
                log.debug(
                    "Score drop cutoff",
                    name=result.name,
                    score=round(score, 3),
                    peak=round(peak, 3),
                    drop=round(drop, 3)
                )
                break
            peak = max(peak, score)

        selected.append(result)

    return selected


def rerank_and_select(
    results: Iterable[RankedResult],
    entity_type: Union[EntityType, str],
    options: Optional[RerankOptions] = None,
    now_ms: Optional[float] = None
) -> List[RankedResult]:
    """Rerank and select top results in one operation."""
    options = options or RerankOptions()
    ranked = rerank_results(results, entity_type, options.weights, now_ms)
    return select_top_results(ranked, options)


def merge_ranked_results(
    topics: List[RankedResult],
    people: List[RankedResult],
    events: List[RankedResult],
    max_total: int = 10
) -> List[RankedResult]:
    """Best results across types, by final score."""
    merged = [*topics, *people, *events]
    merged.sort(key=lambda r: r.final_score, reverse=True)
    return merged[:max_total]


def log_retrieval_stats(
    query_length: int,
    candidates: Dict[str, int],
    selected: Dict[str, int],
    final_results: List[RankedResult]
) -> None:
    log.info(
        "Semantic retrieval stats",
        query_length=query_length,
        candidates=candidates,
        selected=selected,
        final_result_count=len(final_results),
        top_scores=[
            {"name": r.name, "score": round(r.final_score, 3)}
            for r in final_results[:3]
        ]
    )
