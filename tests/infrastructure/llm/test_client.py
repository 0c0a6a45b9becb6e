"""Tests for LiteLLMBackend."""

from collections.abc import AsyncIterator
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from litellm.exceptions import AuthenticationError, RateLimitError

from threadmind.domain.entities import (
    CapabilityDeclaration,
    CapabilityInvocation,
    ContentBlock,
    ContentKind,
    InvocationInputDelta,
    InvocationOrigin,
    InvocationResult,
    InvocationStart,
    InvocationStop,
    ReasoningDelta,
    Role,
    SamplingParams,
    StreamEvent,
    TextDelta,
    Turn,
)
from threadmind.infrastructure.llm import (
    LiteLLMBackend,
    LLMAuthenticationError,
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
    declarations_to_tools,
    map_litellm_exception,
    turns_to_messages,
)


def chunk(
    content: str | None = None,
    reasoning: str | None = None,
    tool_calls: list[SimpleNamespace] | None = None,
) -> SimpleNamespace:
    """Create a streamed chunk."""
    delta = SimpleNamespace(
        content=content, reasoning_content=reasoning, tool_calls=tool_calls
    )
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def tool_call(
    index: int,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str = "",
) -> SimpleNamespace:
    """Create a streamed tool call fragment."""
    return SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


async def stream_of(*chunks: SimpleNamespace) -> AsyncIterator[SimpleNamespace]:
    for c in chunks:
        yield c


async def collect(backend: LiteLLMBackend, **kwargs: Any) -> list[StreamEvent]:
    return [
        event
        async for event in backend.generate(
            kwargs.get("system", "system"),
            kwargs.get("turns", [Turn.user("hi")]),
            kwargs.get("tools", []),
            SamplingParams(model="gpt-4o"),
        )
    ]


class TestTurnsToMessages:
    """turns_to_messages function tests."""

    def test_system_and_text_turns(self) -> None:
        """Test plain text turns."""
        messages = turns_to_messages(
            "be helpful", [Turn.user("alice: hi"), Turn.assistant("hello")]
        )

        assert messages == [
            {"role": "system", "content": "be helpful"},
            {"role": "user", "content": "alice: hi"},
            {"role": "assistant", "content": "hello"},
        ]

    def test_invocations_and_results(self) -> None:
        """Test that invocations and results are paired by ID."""
        invocation = CapabilityInvocation(
            index=0, id="call_1", name="list_threads", input={"a": 1}
        )
        backend_invocation = CapabilityInvocation(
            index=1, id="srvtoolu_1", name="web_search", origin=InvocationOrigin.BACKEND
        )
        turns = [
            Turn(
                role=Role.ASSISTANT,
                content="",
                invocations=(invocation, backend_invocation),
            ),
            Turn(
                role=Role.USER,
                results=(InvocationResult("call_1", "list_threads", "no threads"),),
            ),
        ]

        messages = turns_to_messages("", turns)

        assert messages[0]["content"] is None
        assert messages[0]["tool_calls"] == [
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": "list_threads", "arguments": '{"a": 1}'},
            }
        ]
        assert messages[1] == {
            "role": "tool",
            "tool_call_id": "call_1",
            "content": "no threads",
        }
        assert len(messages) == 2

    def test_content_blocks(self) -> None:
        """Test conversion of document and image blocks.

        Image URLs are never forwarded since the provider cannot fetch them.
        """
        blocks = [
            ContentBlock.of_text("header"),
            ContentBlock(kind=ContentKind.IMAGE, url="https://files/a.png", name="a.png"),
            ContentBlock(
                kind=ContentKind.IMAGE, data="aGVsbG8=", media_type="image/jpeg"
            ),
            ContentBlock(
                kind=ContentKind.DOCUMENT, url="https://files/design.pdf", name="design.pdf"
            ),
        ]

        parts = turns_to_messages("", [Turn.user(blocks)])[0]["content"]

        assert parts[0] == {"type": "text", "text": "header"}
        assert parts[1] == {"type": "text", "text": "[Image: a.png]"}
        assert parts[2]["image_url"]["url"] == "data:image/jpeg;base64,aGVsbG8="
        assert parts[3] == {
            "type": "text",
            "text": "[Document: design.pdf] https://files/design.pdf",
        }


class TestDeclarationsToTools:
    """declarations_to_tools function tests."""

    def test_convert(self) -> None:
        """Test conversion to function tools."""
        declaration = CapabilityDeclaration(
            name="list_threads",
            description="List threads",
            parameters={"type": "object", "properties": {}},
        )

        assert declarations_to_tools([declaration]) == [
            {
                "type": "function",
                "function": {
                    "name": "list_threads",
                    "description": "List threads",
                    "parameters": {"type": "object", "properties": {}},
                },
            }
        ]


class TestMapLiteLLMException:
    """map_litellm_exception function tests."""

    def test_authentication_error(self) -> None:
        """Test that authentication errors are converted."""
        error = AuthenticationError(
            message="Invalid API key", llm_provider="openai", model="gpt-4o"
        )

        assert isinstance(map_litellm_exception(error), LLMAuthenticationError)

    def test_rate_limit_error(self) -> None:
        """Test that rate limit errors are converted."""
        error = RateLimitError(
            message="Rate limit exceeded", llm_provider="openai", model="gpt-4o"
        )

        assert isinstance(map_litellm_exception(error), LLMRateLimitError)

    def test_message_patterns(self) -> None:
        """Test fallback on message patterns."""
        assert isinstance(
            map_litellm_exception(Exception("Too Many Requests")), LLMRateLimitError
        )
        assert isinstance(
            map_litellm_exception(Exception("request timed out")), LLMTimeoutError
        )

    def test_generic_error(self) -> None:
        """Test that other errors become LLMError."""
        mapped = map_litellm_exception(Exception("Unknown error"))

        assert type(mapped) is LLMError
        assert str(mapped) == "Unknown error"


class TestLiteLLMBackendGenerate:
    """LiteLLMBackend.generate tests."""

    @pytest.fixture
    def backend(self) -> LiteLLMBackend:
        """Create backend instance."""
        return LiteLLMBackend()

    async def test_text_and_reasoning(self, backend: LiteLLMBackend) -> None:
        """Test that text and reasoning deltas are emitted."""
        stream = stream_of(chunk(reasoning="thinking"), chunk("Hel"), chunk("lo"))
        with patch("litellm.acompletion", AsyncMock(return_value=stream)):
            events = await collect(backend)

        assert events == [ReasoningDelta("thinking"), TextDelta("Hel"), TextDelta("lo")]

    async def test_tool_calls(self, backend: LiteLLMBackend) -> None:
        """Test tool call start, input fragments and stop."""
        stream = stream_of(
            chunk(tool_calls=[tool_call(0, "call_1", "create_thread")]),
            chunk(tool_calls=[tool_call(0, arguments='{"purpose":')]),
            chunk(tool_calls=[tool_call(0, arguments=' "x"}')]),
            chunk(tool_calls=[tool_call(1, "srvtoolu_9", "web_search", "{}")]),
        )
        with patch("litellm.acompletion", AsyncMock(return_value=stream)):
            events = await collect(backend)

        assert events == [
            InvocationStart(0, "call_1", "create_thread"),
            InvocationInputDelta(0, '{"purpose":'),
            InvocationInputDelta(0, ' "x"}'),
            InvocationStart(1, "srvtoolu_9", "web_search", InvocationOrigin.BACKEND),
            InvocationInputDelta(1, "{}"),
            InvocationStop(0),
            InvocationStop(1),
        ]

    async def test_input_before_start(self, backend: LiteLLMBackend) -> None:
        """Test that input fragments may precede the start event."""
        stream = stream_of(
            chunk(tool_calls=[tool_call(0, arguments='{"a":1}')]),
            chunk(tool_calls=[tool_call(0, "call_1", "list_threads")]),
        )
        with patch("litellm.acompletion", AsyncMock(return_value=stream)):
            events = await collect(backend)

        assert events == [
            InvocationInputDelta(0, '{"a":1}'),
            InvocationStart(0, "call_1", "list_threads"),
            InvocationStop(0),
        ]

    async def test_request_parameters(self) -> None:
        """Test tools and web search options in the request."""
        backend = LiteLLMBackend(web_search=True)
        tools = [CapabilityDeclaration(name="list_threads", description="List")]
        mock = AsyncMock(return_value=stream_of(chunk("ok")))
        with patch("litellm.acompletion", mock):
            await collect(backend, tools=tools)

        kwargs = mock.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["tools"][0]["function"]["name"] == "list_threads"
        assert "web_search_options" in kwargs

    async def test_error_is_mapped(self, backend: LiteLLMBackend) -> None:
        """Test that request errors are converted."""
        error = RateLimitError(message="slow down", llm_provider="openai", model="gpt-4o")
        with patch("litellm.acompletion", AsyncMock(side_effect=error)):
            with pytest.raises(LLMRateLimitError):
                await collect(backend)


class TestLiteLLMBackendComplete:
    """LiteLLMBackend.complete and count_tokens tests."""

    async def test_complete(self) -> None:
        """Test non-streaming completion with usage."""
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = "The answer"
        response.usage = SimpleNamespace(prompt_tokens=120, completion_tokens=30)
        mock = AsyncMock(return_value=response)

        with patch("litellm.acompletion", mock):
            result = await LiteLLMBackend().complete(
                "system", [Turn.user("q")], SamplingParams(model="gpt-4o-mini")
            )

        assert result.text == "The answer"
        assert result.usage.input == 120
        assert result.usage.output == 30
        assert "tools" not in mock.call_args.kwargs

    async def test_complete_error(self) -> None:
        """Test that completion errors are converted."""
        error = AuthenticationError(
            message="Invalid API key", llm_provider="openai", model="gpt-4o"
        )
        with patch("litellm.acompletion", AsyncMock(side_effect=error)):
            with pytest.raises(LLMAuthenticationError):
                await LiteLLMBackend().complete(
                    "system", [Turn.user("q")], SamplingParams(model="gpt-4o")
                )

    async def test_count_tokens(self) -> None:
        """Test token counting through LiteLLM."""
        with patch("litellm.token_counter", return_value=42) as mock_counter:
            count = await LiteLLMBackend().count_tokens(
                "system", [Turn.user("q")], "gpt-4o"
            )

        assert count == 42
        assert mock_counter.call_args.kwargs["model"] == "gpt-4o"

    async def test_count_tokens_error(self) -> None:
        """Test that counting failures raise LLMError."""
        with patch("litellm.token_counter", side_effect=ValueError("unknown model")):
            with pytest.raises(LLMError):
                await LiteLLMBackend().count_tokens("system", [], "unknown")
