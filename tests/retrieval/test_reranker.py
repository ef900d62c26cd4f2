"""
Test Reranker
=============

Scoring signals, knee cutoff and caps.
"""

import pytest

from secondme.config import BLENDED_WEIGHTS, RerankOptions, RerankWeights
from secondme.retrieval import (
    EntityType,
    RankedResult,
    merge_ranked_results,
    rerank_and_select,
    rerank_results,
    select_top_results,
)
from secondme.retrieval.reranker import (
    calculate_frequency_score,
    calculate_recency_score,
    get_entity_priority,
)

NOW_MS = 1_700_000_000_000
DAY_MS = 24 * 60 * 60 * 1000


def candidate(name, score, entity_type=EntityType.TOPIC, times=None, last_mentioned=None):
    return RankedResult(
        id=name,
        name=name,
        entity_type=entity_type,
        score=score,
        times=times,
        last_mentioned=last_mentioned,
        final_score=score,
    )


def scored(*scores):
    return [candidate(f"n{i}", s) for i, s in enumerate(scores)]


class TestSignals:
    """Test the individual scoring signals."""

    def test_recency_now(self):
        assert calculate_recency_score(NOW_MS, NOW_MS) == 1.0

    def test_recency_linear_decay(self):
        assert calculate_recency_score(NOW_MS - 15 * DAY_MS, NOW_MS) == pytest.approx(0.5)

    def test_recency_clamped(self):
        assert calculate_recency_score(NOW_MS - 60 * DAY_MS, NOW_MS) == 0.0
        assert calculate_recency_score(NOW_MS + DAY_MS, NOW_MS) == 1.0

    def test_recency_unknown(self):
        assert calculate_recency_score(None, NOW_MS) == 0.5

    @pytest.mark.parametrize("times,expected", [
        (None, 0.0),
        (0, 0.0),
        (9, 0.5),
        (99, 1.0),
        (999, 1.0),
    ])
    def test_frequency(self, times, expected):
        assert calculate_frequency_score(times) == pytest.approx(expected)

    def test_entity_priority(self):
        assert get_entity_priority(EntityType.PERSON) == 1.0
        assert get_entity_priority("Topic") == 0.9
        assert get_entity_priority(EntityType.EVENT) == 0.85
        assert get_entity_priority(EntityType.COMPANY) == 0.8
        assert get_entity_priority("Place") == 0.5


class TestRerankResults:
    """Test final score computation."""

    def test_default_weights_keep_similarity(self):
        ranked = rerank_results(scored(0.7, 0.9), EntityType.TOPIC, now_ms=NOW_MS)

        assert [r.final_score for r in ranked] == [0.9, 0.7]
        assert ranked[0].score_breakdown == {
            "similarity": 0.9,
            "recency": 0.0,
            "frequency": 0.0,
            "entity_priority": 0.0,
        }

    def test_inputs_not_mutated(self):
        original = candidate("Climbing", 0.8)

        rerank_results([original], EntityType.TOPIC, BLENDED_WEIGHTS, now_ms=NOW_MS)

        assert original.final_score == 0.8
        assert original.score_breakdown == {}

    def test_blended_weights(self):
        result = candidate("Climbing", 0.8, times=9, last_mentioned=NOW_MS)

        ranked = rerank_results([result], EntityType.TOPIC, BLENDED_WEIGHTS, now_ms=NOW_MS)

        expected = 0.8 * 0.5 + 1.0 * 0.25 + 0.5 * 0.15 + 0.9 * 0.1
        assert ranked[0].final_score == pytest.approx(expected)

    def test_recency_can_reorder(self):
        """A stale high-similarity topic can fall below a fresh one."""
        stale = candidate("Old", 0.80, last_mentioned=NOW_MS - 60 * DAY_MS)
        fresh = candidate("New", 0.75, last_mentioned=NOW_MS)
        weights = RerankWeights(similarity=0.5, recency=0.5)

        ranked = rerank_results([stale, fresh], EntityType.TOPIC, weights, now_ms=NOW_MS)

        assert [r.name for r in ranked] == ["New", "Old"]

    def test_ties_keep_input_order(self):
        ranked = rerank_results(
            [candidate("a", 0.8), candidate("b", 0.8), candidate("c", 0.8)],
            EntityType.TOPIC,
            now_ms=NOW_MS,
        )
        assert [r.name for r in ranked] == ["a", "b", "c"]


class TestSelectTopResults:
    """Test min-score, knee cutoff and cap."""

    def test_min_score_filter(self):
        selected = select_top_results(scored(0.5, 0.45, 0.39), RerankOptions(min_score=0.4))
        assert [r.final_score for r in selected] == [0.5, 0.45]

    def test_knee_cutoff(self):
        """0.6 is more than 30% below the 0.9 peak."""
        selected = select_top_results(scored(0.9, 0.85, 0.6, 0.58), RerankOptions(score_drop=0.3))
        assert [r.final_score for r in selected] == [0.9, 0.85]

    def test_gradual_decline_kept(self):
        selected = select_top_results(scored(0.9, 0.8, 0.7), RerankOptions(score_drop=0.3))
        assert len(selected) == 3

    def test_drop_measured_from_peak(self):
        """Small steps accumulate against the peak, not the previous score."""
        selected = select_top_results(
            scored(1.0, 0.9, 0.8, 0.75, 0.65),
            RerankOptions(score_drop=0.3, min_score=0.0),
        )
        assert [r.final_score for r in selected] == [1.0, 0.9, 0.8, 0.75]

    def test_max_results_cap(self):
        selected = select_top_results(scored(*([0.9] * 15)), RerankOptions(max_results=10))
        assert len(selected) == 10

    def test_ties_all_kept(self):
        selected = select_top_results(scored(0.8, 0.8, 0.8))
        assert len(selected) == 3

    def test_empty(self):
        assert select_top_results([]) == []

    def test_selection_is_prefix(self):
        ranked = rerank_results(scored(0.91, 0.42, 0.88, 0.55, 0.79), EntityType.PERSON, now_ms=NOW_MS)

        selected = select_top_results(ranked)

        assert selected == ranked[:len(selected)]
        assert [r.final_score for r in selected] == [0.91, 0.88, 0.79]


class TestRerankAndSelect:

    def test_end_to_end(self):
        candidates = [candidate("John", 0.82, EntityType.PERSON), candidate("Jane", 0.35, EntityType.PERSON)]

        selected = rerank_and_select(candidates, EntityType.PERSON, now_ms=NOW_MS)

        assert [r.name for r in selected] == ["John"]
        assert selected[0].score_breakdown["similarity"] == 0.82

    def test_merge_ranked_results(self):
        topics = [candidate("Climbing", 0.7)]
        people = [candidate("John", 0.9, EntityType.PERSON), candidate("Jane", 0.6, EntityType.PERSON)]
        events = [candidate("Wedding", 0.8, EntityType.EVENT)]

        merged = merge_ranked_results(topics, people, events, max_total=3)

        assert [r.name for r in merged] == ["John", "Wedding", "Climbing"]
