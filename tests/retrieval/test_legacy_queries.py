"""
Test LegacyGraphQueries
=======================
"""

import pytest
from unittest.mock import AsyncMock

from secondme.config import ContextLimits
from secondme.retrieval import LegacyGraphQueries
from secondme.retrieval.legacy_queries import EVENTS_QUERY, PEOPLE_QUERY, TOPICS_QUERY


def route_by_query(people=None, topics=None, events=None):
    """Side effect returning canned rows per traversal (or raising)."""
    responses = {PEOPLE_QUERY: people or [], TOPICS_QUERY: topics or [], EVENTS_QUERY: events or []}

    async def _query(cypher, params, timeout=None):
        response = responses[cypher]
        if isinstance(response, Exception):
            raise response
        return response

    return _query


class TestLegacyGraphQueries:
    """Test the non-vector traversal."""

    @pytest.mark.asyncio
    async def test_context_from_three_traversals(self, mock_falkordb):
        mock_falkordb.query = AsyncMock(side_effect=route_by_query(
            people=[{"id": "p1", "name": "John", "occupation": "engineer", "company": "Google"}],
            topics=[{"id": "t1", "name": "Climbing", "times": 2}],
            events=[{"id": "e1", "name": "Wedding", "date": "2024-06-01"}],
        ))

        context = await LegacyGraphQueries(mock_falkordb).get_contact_context("c1")

        assert context.names() == {"people": ["John"], "topics": ["Climbing"], "events": ["Wedding"]}
        assert context.people[0].company == "Google"
        assert context.people[0].score == 0.0

    @pytest.mark.asyncio
    async def test_limits_passed_as_params(self, mock_falkordb):
        queries = LegacyGraphQueries(mock_falkordb, ContextLimits(people=3, topics=2, events=1))

        await queries.get_contact_context("c1", timeout=4.0)

        params = {call.args[0]: call.args[1] for call in mock_falkordb.query.await_args_list}
        assert params[PEOPLE_QUERY] == {"contactId": "c1", "limit": 3}
        assert params[TOPICS_QUERY] == {"contactId": "c1", "limit": 2}
        assert params[EVENTS_QUERY] == {"contactId": "c1", "limit": 1}
        assert all(call.kwargs["timeout"] == 4.0 for call in mock_falkordb.query.await_args_list)

    @pytest.mark.asyncio
    async def test_zero_limit_skips_query(self, mock_falkordb):
        queries = LegacyGraphQueries(mock_falkordb, ContextLimits(people=10, topics=8, events=0))

        context = await queries.get_contact_context("c1")

        assert context.events == []
        assert mock_falkordb.query.await_count == 2

    @pytest.mark.asyncio
    async def test_dedupes_and_caps(self, mock_falkordb):
        mock_falkordb.query = AsyncMock(side_effect=route_by_query(
            people=[{"name": "John"}, {"name": "John"}, {"name": "Jane"}, {"name": "Anna"}],
        ))
        queries = LegacyGraphQueries(mock_falkordb, ContextLimits(people=2))

        context = await queries.get_contact_context("c1")

        assert [p.name for p in context.people] == ["John", "Jane"]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, mock_falkordb):
        mock_falkordb.query = AsyncMock(side_effect=route_by_query(
            people=RuntimeError("boom"),
            topics=[{"name": "Climbing"}],
        ))

        context = await LegacyGraphQueries(mock_falkordb).get_contact_context("c1")

        assert context.people == []
        assert [t.name for t in context.topics] == ["Climbing"]

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self, mock_falkordb):
        mock_falkordb.query = AsyncMock(side_effect=route_by_query(
            topics=[{"name": None}, {"name": "Climbing"}],
        ))

        context = await LegacyGraphQueries(mock_falkordb).get_contact_context("c1")

        assert [t.name for t in context.topics] == ["Climbing"]
