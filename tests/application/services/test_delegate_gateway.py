"""Tests for DelegateQueryGateway."""

import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from threadmind.application.services import DelegateQueryGateway
from threadmind.application.services.delegate_gateway import (
    EMPTY_ANSWER,
    FALLBACK_STRATEGY_LABEL,
)
from threadmind.config import DelegateConfig
from threadmind.domain.entities import (
    AssembledContext,
    ChannelRef,
    CompletionResult,
    ContentBlock,
    ContextStrategy,
    DelegateQuery,
    Message,
    SamplingParams,
    ThreadInfo,
    TokenUsage,
)
from threadmind.domain.exceptions import (
    QueryValidationError,
    ThreadNotFoundError,
    UpstreamUnavailableError,
)
from threadmind.infrastructure.llm import LLMTimeoutError, PromptBuilder
from threadmind.infrastructure.resilience import (
    CircuitBreaker,
    CircuitState,
    ConcurrencyLimiter,
    RetryPolicy,
)

THREAD_ID = "C123:1700000000.000100"


@pytest.fixture
def thread() -> ThreadInfo:
    """Create the target thread."""
    ref = ChannelRef(id="C123", thread_ts="1700000000.000100", name="release-planning")
    return ThreadInfo(id=THREAD_ID, name="release-planning", channel=ref, reply_count=3)


@pytest.fixture
def thread_messages(
    make_message: Callable[..., Message], thread: ThreadInfo
) -> list[Message]:
    """Create messages of the thread."""
    return [
        make_message(1, "We ship on Friday", channel=thread.channel),
        make_message(2, "Agreed, code freeze Thursday", channel=thread.channel),
    ]


@pytest.fixture
def transport(thread: ThreadInfo, thread_messages: list[Message]) -> MagicMock:
    """Create mock transport resolving the thread."""
    transport = MagicMock()
    transport.get_thread = AsyncMock(return_value=thread)
    transport.fetch_messages = AsyncMock(return_value=thread_messages)
    return transport


@pytest.fixture
def assembler(thread: ThreadInfo, thread_messages: list[Message]) -> MagicMock:
    """Create mock assembler returning the thread context."""
    assembler = MagicMock()
    assembler.assemble = AsyncMock(
        return_value=AssembledContext(
            channel=thread.channel,
            summary_context="## Previous Conversation Summaries:\n\nKickoff",
            recent_messages=thread_messages,
            context_documents=[ContentBlock.of_text("plan.md")],
            strategy="adaptive",
        )
    )
    return assembler


@pytest.fixture
def backend() -> MagicMock:
    """Create mock backend."""
    backend = MagicMock()
    backend.complete = AsyncMock(
        return_value=CompletionResult(
            text="  They ship on Friday.  ", usage=TokenUsage(input=300, output=20)
        )
    )
    return backend


@pytest.fixture
def breaker() -> CircuitBreaker:
    """Create breaker opening after two failures."""
    return CircuitBreaker("delegate", failure_threshold=2, cooldown_seconds=60.0)


@pytest.fixture
def gateway(
    transport: MagicMock,
    assembler: MagicMock,
    backend: MagicMock,
    breaker: CircuitBreaker,
) -> DelegateQueryGateway:
    """Create gateway instance."""
    return DelegateQueryGateway(
        transport=transport,
        assembler=assembler,
        backend=backend,
        prompt_builder=PromptBuilder(),
        params=SamplingParams(model="gpt-4o-mini", temperature=0.3, max_tokens=1000),
        breaker=breaker,
        limiter=ConcurrencyLimiter(3),
        retry_policy=RetryPolicy(max_attempts=2, sleep=AsyncMock()),
        config=DelegateConfig(max_query_length=50, max_hint_length=20),
    )


class TestValidate:
    """Input validation tests."""

    def test_sanitizes(self, gateway: DelegateQueryGateway) -> None:
        """Test that null bytes and surrounding whitespace are removed."""
        request = gateway.validate(f"  {THREAD_ID} ", " When\x00 do we ship? ", "  ")

        assert request == DelegateQuery(
            thread_id=THREAD_ID, query="When do we ship?", hint=None
        )

    @pytest.mark.parametrize(
        ("thread_id", "query", "hint"),
        [
            (None, "q", None),
            (THREAD_ID, None, None),
            ("   ", "q", None),
            (THREAD_ID, "\x00 ", None),
            (THREAD_ID, "q" * 51, None),
            (THREAD_ID, "q", "h" * 21),
            (123, "q", None),
        ],
    )
    async def test_invalid_input_makes_no_calls(
        self,
        gateway: DelegateQueryGateway,
        transport: MagicMock,
        backend: MagicMock,
        thread_id: object,
        query: object,
        hint: object,
    ) -> None:
        """Test that invalid input fails before any call."""
        with pytest.raises(QueryValidationError):
            await gateway.query(thread_id, query, hint)  # type: ignore[arg-type]

        transport.get_thread.assert_not_called()
        backend.complete.assert_not_called()


class TestQuery:
    """Query execution tests."""

    async def test_success(
        self,
        gateway: DelegateQueryGateway,
        assembler: MagicMock,
        backend: MagicMock,
        thread: ThreadInfo,
    ) -> None:
        """Test a successful delegate answer."""
        answer = await gateway.query(THREAD_ID, "When do we ship?", "deadlines")

        assert answer.answer == "They ship on Friday."
        assert answer.thread_name == "release-planning"
        assert answer.thread_id == THREAD_ID
        assert answer.source_message_count == 2
        assert answer.has_documents is True
        assert answer.token_usage == TokenUsage(input=300, output=20)
        assembler.assemble.assert_awaited_once_with(
            thread.channel, strategy=ContextStrategy.ADAPTIVE
        )

        system, turns, params = backend.complete.call_args.args
        assert "specialized assistant" in system
        assert params.model == "gpt-4o-mini"
        assert turns[0].content[0].text == "Thread documents and attachments:"
        assert turns[1].content.startswith("Thread conversation summaries:")
        assert turns[2].content == (
            "Recent thread messages:\n\n"
            "alice: We ship on Friday\n\nalice: Agreed, code freeze Thursday"
        )
        assert "**Question:** \"When do we ship?\"" in turns[3].content
        assert "**Context:** deadlines" in turns[3].content

    async def test_configured_system_prompt(
        self,
        gateway: DelegateQueryGateway,
        backend: MagicMock,
    ) -> None:
        """Test that a configured delegate system prompt is used."""
        gateway._config = DelegateConfig(system_prompt="Custom delegate")

        await gateway.query(THREAD_ID, "When?")

        assert backend.complete.call_args.args[0] == "Custom delegate"

    async def test_empty_answer(
        self, gateway: DelegateQueryGateway, backend: MagicMock
    ) -> None:
        """Test that a blank answer is replaced."""
        backend.complete.return_value = CompletionResult(text="  ")

        answer = await gateway.query(THREAD_ID, "When?")

        assert answer.answer == EMPTY_ANSWER

    async def test_fallback_context(
        self,
        gateway: DelegateQueryGateway,
        assembler: MagicMock,
        transport: MagicMock,
        thread: ThreadInfo,
    ) -> None:
        """Test that a failing assembly falls back to raw recent messages."""
        assembler.assemble.side_effect = RuntimeError("summary store down")

        answer = await gateway.query(THREAD_ID, "When?")

        assert answer.source_message_count == 2
        assert answer.has_documents is False
        transport.fetch_messages.assert_awaited_once_with(thread.channel, 50)

    async def test_fallback_label(
        self,
        gateway: DelegateQueryGateway,
        assembler: MagicMock,
        thread: ThreadInfo,
    ) -> None:
        """Test the fallback context metadata."""
        assembler.assemble.side_effect = RuntimeError("summary store down")

        context = await gateway._build_context(thread)

        assert context.strategy == FALLBACK_STRATEGY_LABEL
        assert context.degraded is True
        assert context.has_more_history is False

    async def test_retries_transient_errors(
        self, gateway: DelegateQueryGateway, backend: MagicMock
    ) -> None:
        """Test that the generation call is retried."""
        backend.complete.side_effect = [
            LLMTimeoutError("timeout"),
            CompletionResult(text="Friday"),
        ]

        answer = await gateway.query(THREAD_ID, "When?")

        assert answer.answer == "Friday"
        assert backend.complete.await_count == 2

    async def test_failure_wrapped(
        self,
        gateway: DelegateQueryGateway,
        transport: MagicMock,
    ) -> None:
        """Test that failures surface as UpstreamUnavailableError."""
        transport.get_thread.side_effect = ThreadNotFoundError(THREAD_ID)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await gateway.query(THREAD_ID, "When?")

        assert exc_info.value.service == "delegate"
        assert "Delegate query failed" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ThreadNotFoundError)

    async def test_open_circuit_rejects_without_calls(
        self,
        gateway: DelegateQueryGateway,
        transport: MagicMock,
        backend: MagicMock,
        breaker: CircuitBreaker,
    ) -> None:
        """Test that an open circuit fails fast."""
        backend.complete.side_effect = LLMTimeoutError("timeout")
        for _ in range(2):
            with pytest.raises(UpstreamUnavailableError):
                await gateway.query(THREAD_ID, "When?")
        assert breaker.state is CircuitState.OPEN
        transport.get_thread.reset_mock()
        backend.complete.reset_mock()

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await gateway.query(THREAD_ID, "When?")

        assert "circuit is open" in str(exc_info.value)
        transport.get_thread.assert_not_called()
        backend.complete.assert_not_called()


class TestConcurrency:
    """Concurrent query tests."""

    async def test_query_many_bounded(
        self,
        gateway: DelegateQueryGateway,
        backend: MagicMock,
    ) -> None:
        """Test that at most three delegate calls run at once."""
        running = 0
        peak = 0

        async def slow_complete(*args: object) -> CompletionResult:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return CompletionResult(text="ok")

        backend.complete.side_effect = slow_complete
        requests = [DelegateQuery(THREAD_ID, f"question {n}") for n in range(6)]

        results = await gateway.query_many(requests)

        assert peak == 3
        assert all(r.answer == "ok" for r in results)

    async def test_query_many_keeps_errors(self, gateway: DelegateQueryGateway) -> None:
        """Test that per-request errors are returned in order."""
        results = await gateway.query_many(
            [DelegateQuery(THREAD_ID, "fine"), DelegateQuery(THREAD_ID, "   ")]
        )

        assert results[0].answer == "They ship on Friday."
        assert isinstance(results[1], QueryValidationError)
