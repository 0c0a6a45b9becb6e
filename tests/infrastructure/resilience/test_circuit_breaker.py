"""Tests for CircuitBreaker."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from threadmind.domain.exceptions import UpstreamUnavailableError
from threadmind.infrastructure.resilience import CircuitBreaker, CircuitState


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def breaker(clock: FakeClock) -> CircuitBreaker:
    """Create a breaker with default threshold and cooldown."""
    return CircuitBreaker("llm", failure_threshold=5, cooldown_seconds=60.0, clock=clock)


async def fail() -> None:
    raise ConnectionError("boom")


async def trip(breaker: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        with pytest.raises(ConnectionError):
            await breaker.call(fail)


class TestCircuitBreaker:
    """CircuitBreaker tests."""

    async def test_closed_passes_calls(self, breaker: CircuitBreaker) -> None:
        """Test that a closed breaker passes calls through."""
        operation = AsyncMock(return_value="ok")

        assert await breaker.call(operation) == "ok"
        assert breaker.state is CircuitState.CLOSED
        assert breaker.failure_count == 0

    async def test_opens_at_threshold(self, breaker: CircuitBreaker) -> None:
        """Test that consecutive failures open the circuit."""
        await trip(breaker, 4)
        assert breaker.state is CircuitState.CLOSED

        await trip(breaker, 1)

        assert breaker.state is CircuitState.OPEN
        assert breaker.is_open() is True
        assert breaker.failure_count == 5

    async def test_open_rejects_without_calling(self, breaker: CircuitBreaker) -> None:
        """Test that an open circuit rejects without invoking the operation."""
        await trip(breaker, 5)
        operation = AsyncMock(return_value="ok")

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await breaker.call(operation)

        operation.assert_not_called()
        assert exc_info.value.service == "llm"

    async def test_success_resets_failure_count(self, breaker: CircuitBreaker) -> None:
        """Test that a success clears the consecutive failure count."""
        await trip(breaker, 4)

        await breaker.call(AsyncMock(return_value="ok"))
        await trip(breaker, 4)

        assert breaker.state is CircuitState.CLOSED
        assert breaker.failure_count == 4

    async def test_half_open_after_cooldown(
        self, breaker: CircuitBreaker, clock: FakeClock
    ) -> None:
        """Test that the cooldown moves the circuit to half-open."""
        await trip(breaker, 5)

        clock.advance(59.9)
        assert breaker.state is CircuitState.OPEN

        clock.advance(0.1)
        assert breaker.state is CircuitState.HALF_OPEN
        assert breaker.is_open() is False

    async def test_trial_success_closes(
        self, breaker: CircuitBreaker, clock: FakeClock
    ) -> None:
        """Test that a successful trial closes the circuit."""
        await trip(breaker, 5)
        clock.advance(60)

        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"

        assert breaker.state is CircuitState.CLOSED
        assert breaker.failure_count == 0

    async def test_trial_failure_reopens(
        self, breaker: CircuitBreaker, clock: FakeClock
    ) -> None:
        """Test that a failed trial reopens the circuit for a new cooldown."""
        await trip(breaker, 5)
        clock.advance(60)

        await trip(breaker, 1)

        assert breaker.state is CircuitState.OPEN
        clock.advance(30)
        with pytest.raises(UpstreamUnavailableError):
            await breaker.call(AsyncMock())

    async def test_single_trial_in_half_open(
        self, breaker: CircuitBreaker, clock: FakeClock
    ) -> None:
        """Test that only one trial call is admitted at a time."""
        await trip(breaker, 5)
        clock.advance(60)
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow() -> str:
            started.set()
            await release.wait()
            return "ok"

        trial = asyncio.create_task(breaker.call(slow))
        await started.wait()

        with pytest.raises(UpstreamUnavailableError):
            await breaker.call(AsyncMock())

        release.set()
        assert await trial == "ok"
        assert breaker.state is CircuitState.CLOSED

    async def test_cancelled_trial_releases_slot(
        self, breaker: CircuitBreaker, clock: FakeClock
    ) -> None:
        """Test that a cancelled trial lets the next call try again."""
        await trip(breaker, 5)
        clock.advance(60)
        started = asyncio.Event()

        async def hang() -> None:
            started.set()
            await asyncio.Event().wait()

        trial = asyncio.create_task(breaker.call(hang))
        await started.wait()
        trial.cancel()
        with pytest.raises(asyncio.CancelledError):
            await trial

        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"

    async def test_reset(self, breaker: CircuitBreaker) -> None:
        """Test that reset closes the circuit."""
        await trip(breaker, 5)

        breaker.reset()

        assert breaker.state is CircuitState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.last_failure_at is None

    def test_invalid_threshold(self) -> None:
        """Test that the threshold must be positive."""
        with pytest.raises(ValueError):
            CircuitBreaker("llm", failure_threshold=0)
