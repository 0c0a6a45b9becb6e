"""LiteLLM language model backend."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import litellm

from threadmind.domain.entities import (
    CapabilityDeclaration,
    CompletionResult,
    ContentBlock,
    ContentKind,
    InvocationInputDelta,
    InvocationOrigin,
    InvocationStart,
    InvocationStop,
    ReasoningDelta,
    Role,
    SamplingParams,
    StreamEvent,
    TextDelta,
    TokenUsage,
    Turn,
)
from threadmind.infrastructure.llm.exceptions import LLMError, map_litellm_exception

logger = logging.getLogger(__name__)

# Tool calls resolved by the provider itself (hosted web search, etc.)
BACKEND_TOOL_ID_PREFIX = "srvtoolu_"


def content_block_to_part(block: ContentBlock) -> dict[str, Any]:
    """Convert a content block to an OpenAI-format content part."""
    match block.kind:
        case ContentKind.TEXT:
            return {"type": "text", "text": block.text}
        case ContentKind.IMAGE:
            if not block.data:
                return {"type": "text", "text": f"[Image: {block.name or 'image'}]"}
            url = f"data:{block.media_type or 'image/png'};base64,{block.data}"
            return {"type": "image_url", "image_url": {"url": url}}
        case ContentKind.DOCUMENT:
            if block.data:
                media_type = block.media_type or "application/pdf"
                return {
                    "type": "file",
                    "file": {
                        "filename": block.name or "document",
                        "file_data": f"data:{media_type};base64,{block.data}",
                    },
                }
            return {
                "type": "text",
                "text": f"[Document: {block.name or 'document'}] {block.url}".strip(),
            }


def turns_to_messages(system: str, turns: list[Turn]) -> list[dict[str, Any]]:
    """Convert a system prompt and turns to OpenAI-format messages.

    Assistant turns echo their client-side invocations as `tool_calls`;
    invocation results become `tool` messages. Backend-executed invocations
    are already resolved by the provider and are not echoed.

    Args:
        system: System prompt.
        turns: Transcript turns.

    Returns:
        Message list for LiteLLM.
    """
    messages: list[dict[str, Any]] = []
    if system:
        messages.append({"role": "system", "content": system})

    for turn in turns:
        if turn.role is Role.ASSISTANT:
            message: dict[str, Any] = {"role": "assistant", "content": turn.content or None}
            tool_calls = [
                {
                    "id": invocation.id,
                    "type": "function",
                    "function": {
                        "name": invocation.name,
                        "arguments": json.dumps(invocation.input, ensure_ascii=False),
                    },
                }
                for invocation in turn.invocations
                if invocation.is_client_side
            ]
            if tool_calls:
                message["tool_calls"] = tool_calls
            messages.append(message)
            continue

        for result in turn.results:
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": result.invocation_id,
                    "content": result.content,
                }
            )

        if isinstance(turn.content, str):
            if turn.content:
                messages.append({"role": "user", "content": turn.content})
        elif turn.content:
            messages.append(
                {
                    "role": "user",
                    "content": [content_block_to_part(b) for b in turn.content],
                }
            )

    return messages


def declarations_to_tools(
    declarations: list[CapabilityDeclaration],
) -> list[dict[str, Any]]:
    """Convert capability declarations to OpenAI-format tools."""
    return [
        {
            "type": "function",
            "function": {
                "name": declaration.name,
                "description": declaration.description,
                "parameters": declaration.parameters,
            },
        }
        for declaration in declarations
    ]


class LiteLLMBackend:
    """LanguageModelBackend implementation over LiteLLM.

    Translates streamed chunks to domain stream events and LiteLLM
    exceptions to LLMError subclasses.
    """

    def __init__(
        self,
        *,
        web_search: bool = False,
        debug_llm_messages: bool = False,
    ) -> None:
        """Initialize the backend.

        Args:
            web_search: Enable the provider's hosted web search.
            debug_llm_messages: If True, log LLM messages at INFO level.
        """
        self._web_search = web_search
        self._debug_llm_messages = debug_llm_messages

    async def generate(
        self,
        system: str,
        turns: list[Turn],
        tools: list[CapabilityDeclaration],
        params: SamplingParams,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one generation as domain events.

        Every tool call that was opened during the stream receives an
        InvocationStop once the stream ends.

        Raises:
            LLMError: If the request or the stream fails.
        """
        messages = turns_to_messages(system, turns)
        request: dict[str, Any] = {
            "model": params.model,
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "messages": messages,
            "stream": True,
        }
        if tools:
            request["tools"] = declarations_to_tools(tools)
        if self._web_search:
            request["web_search_options"] = {"search_context_size": "medium"}

        if self._should_log():
            self._log_messages(messages)
        logger.debug("LLM stream request: model=%s, tools=%d", params.model, len(tools))

        open_indexes: list[int] = []
        started: set[int] = set()
        try:
            response = await litellm.acompletion(**request)
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is None:
                    continue

                reasoning = getattr(delta, "reasoning_content", None)
                if reasoning:
                    yield ReasoningDelta(reasoning)

                if delta.content:
                    yield TextDelta(delta.content)

                for position, tool_call in enumerate(delta.tool_calls or []):
                    index = tool_call.index if tool_call.index is not None else position
                    if index not in open_indexes:
                        open_indexes.append(index)
                    function = tool_call.function
                    if tool_call.id and index not in started:
                        started.add(index)
                        origin = (
                            InvocationOrigin.BACKEND
                            if tool_call.id.startswith(BACKEND_TOOL_ID_PREFIX)
                            else InvocationOrigin.CLIENT
                        )
                        yield InvocationStart(
                            index=index,
                            id=tool_call.id,
                            name=(function.name if function else None) or "",
                            origin=origin,
                        )
                    if function is not None and function.arguments:
                        yield InvocationInputDelta(index, function.arguments)
        except LLMError:
            raise
        except Exception as e:
            logger.error("LLM stream error: %s", e)
            raise map_litellm_exception(e) from e

        for index in open_indexes:
            yield InvocationStop(index)

    async def count_tokens(self, system: str, turns: list[Turn], model: str) -> int:
        """Count input tokens with LiteLLM's tokenizer for the model.

        Raises:
            LLMError: If counting fails.
        """
        messages = turns_to_messages(system, turns)
        try:
            return await asyncio.to_thread(
                litellm.token_counter, model=model, messages=messages
            )
        except Exception as e:
            logger.debug("Token counting failed: %s", e)
            raise LLMError(f"Token counting failed: {e}") from e

    async def complete(
        self,
        system: str,
        turns: list[Turn],
        params: SamplingParams,
    ) -> CompletionResult:
        """Run a non-streaming completion without tools.

        Raises:
            LLMError: If the request fails.
        """
        messages = turns_to_messages(system, turns)

        if self._should_log():
            self._log_messages(messages)
        logger.debug("LLM request: model=%s", params.model)

        try:
            response = await litellm.acompletion(
                model=params.model,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
                messages=messages,
            )
        except Exception as e:
            logger.error("LLM error: %s", e)
            raise map_litellm_exception(e) from e

        text = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        token_usage = TokenUsage(
            input=getattr(usage, "prompt_tokens", 0) or 0,
            output=getattr(usage, "completion_tokens", 0) or 0,
        )

        if self._should_log():
            self._log_response(text)

        return CompletionResult(text=text, usage=token_usage)

    def _should_log(self) -> bool:
        """Check if logging should occur."""
        return self._debug_llm_messages or logger.isEnabledFor(logging.DEBUG)

    def _log_messages(self, messages: list[dict[str, Any]]) -> None:
        """Log LLM request messages."""
        log_func = logger.info if self._debug_llm_messages else logger.debug
        log_func("=== LLM Request Messages ===")
        for i, msg in enumerate(messages):
            log_func("[%d] role=%s", i, msg.get("role", "unknown"))
            log_func("    content: %s", msg.get("content", ""))
            if "tool_calls" in msg:
                log_func("    tool_calls: %s", msg["tool_calls"])
        log_func("=== End of Messages ===")

    def _log_response(self, response: str) -> None:
        """Log LLM response."""
        log_func = logger.info if self._debug_llm_messages else logger.debug
        log_func("=== LLM Response ===")
        log_func("response: %s", response)
        log_func("=== End of Response ===")
