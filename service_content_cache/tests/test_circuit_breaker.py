"""
Unit tests for the shared circuit breaker.
"""

import pytest
from unittest.mock import AsyncMock

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestCircuitBreaker:
    """Test cases for CircuitBreaker."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker(failure_threshold=2, recovery_timeout=30.0, name="test", clock=clock)

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        """Test consecutive failures open the circuit."""
        failing = AsyncMock(side_effect=ConnectionError("down"))

        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(failing)

        assert breaker.is_open() is True
        assert breaker.allows_calls() is False
        with pytest.raises(CircuitBreakerOpenException):
            await breaker.call(failing)
        assert failing.await_count == 2

    @pytest.mark.asyncio
    async def test_half_open_after_timeout(self, breaker, clock):
        """Test a successful trial call closes the circuit again."""
        failing = AsyncMock(side_effect=ConnectionError("down"))
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(failing)

        clock.now += 31
        assert breaker.allows_calls() is True

        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"
        assert breaker.get_state()["state"] == "closed"
        assert breaker.get_state()["failure_count"] == 0

    @pytest.mark.asyncio
    async def test_failed_trial_reopens(self, breaker, clock):
        """Test a failing trial call reopens the circuit immediately."""
        failing = AsyncMock(side_effect=ConnectionError("down"))
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await breaker.call(failing)

        clock.now += 31
        with pytest.raises(ConnectionError):
            await breaker.call(failing)

        assert breaker.is_open() is True
        assert breaker.allows_calls() is False

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker):
        """Test failures must be consecutive to open the circuit."""
        with pytest.raises(ConnectionError):
            await breaker.call(AsyncMock(side_effect=ConnectionError("down")))
        await breaker.call(AsyncMock(return_value=None))
        with pytest.raises(ConnectionError):
            await breaker.call(AsyncMock(side_effect=ConnectionError("down")))

        assert breaker.is_open() is False
