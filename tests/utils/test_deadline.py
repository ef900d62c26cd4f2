"""
Test Deadline and environment helpers.
"""

import asyncio
import os

import pytest
from unittest.mock import patch

from secondme.utils import Deadline
from secondme.utils.env import get_env_flag, get_env_float, get_env_int


class TestDeadline:
    """Test the shared request deadline."""

    def test_remaining_tracks_clock(self, clock):
        deadline = Deadline(10.0, clock)

        clock.advance(4)

        assert deadline.remaining() == 6.0
        assert deadline.expired is False

    def test_remaining_never_negative(self, clock):
        deadline = Deadline(1.0, clock)

        clock.advance(5)

        assert deadline.remaining() == 0.0
        assert deadline.expired is True

    def test_unbounded(self, clock):
        deadline = Deadline(None, clock)
        assert deadline.remaining() is None
        assert deadline.expired is False

    @pytest.mark.asyncio
    async def test_run_returns_value(self):
        async def compute():
            return 42

        assert await Deadline(1.0).run(compute()) == 42

    @pytest.mark.asyncio
    async def test_run_times_out(self):
        with pytest.raises(asyncio.TimeoutError):
            await Deadline(0.01).run(asyncio.sleep(1))

    @pytest.mark.asyncio
    async def test_run_after_expiry_does_not_start(self, clock):
        started = []

        async def work():
            started.append(True)

        deadline = Deadline(1.0, clock)
        clock.advance(2)

        with pytest.raises(asyncio.TimeoutError):
            await deadline.run(work())
        assert started == []


class TestEnvHelpers:
    """Test typed environment lookups."""

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("TRUE", True),
        (" false ", False),
        ("1", False),
        ("yes", False),
    ])
    def test_flag_only_literal_values_change_default(self, raw, expected):
        with patch.dict(os.environ, {"SOME_FLAG": raw}):
            assert get_env_flag("SOME_FLAG", False) is expected

    def test_flag_missing_keeps_default(self):
        with patch.dict(os.environ, {}, clear=True):
            assert get_env_flag("SOME_FLAG", False) is False

    def test_numbers(self):
        with patch.dict(os.environ, {"SOME_INT": "7", "SOME_FLOAT": "0.5"}):
            assert get_env_int("SOME_INT", 1) == 7
            assert get_env_float("SOME_FLOAT", 1.0) == 0.5
            assert get_env_int("MISSING_INT", 3) == 3
