"""Delegate query gateway."""

import asyncio
import logging

from threadmind.application.services.context_assembler import ContextAssembler
from threadmind.application.services.token_budget import estimate_messages_tokens
from threadmind.config import DelegateConfig
from threadmind.domain.entities import (
    AssembledContext,
    ContentBlock,
    ContextStrategy,
    DelegateAnswer,
    DelegateQuery,
    SamplingParams,
    ThreadInfo,
    TokenBreakdown,
    Turn,
)
from threadmind.domain.exceptions import QueryValidationError, UpstreamUnavailableError
from threadmind.domain.services import (
    ChatTransport,
    LanguageModelBackend,
    format_transcript,
)
from threadmind.infrastructure.llm.prompts import PromptBuilder
from threadmind.infrastructure.resilience import (
    CircuitBreaker,
    ConcurrencyLimiter,
    RetryPolicy,
)

logger = logging.getLogger(__name__)

FALLBACK_STRATEGY_LABEL = "fallback"
EMPTY_ANSWER = "The thread content did not contain an answer to this question."


def _sanitize(value: object, field: str) -> str:
    if not isinstance(value, str):
        raise QueryValidationError(f"{field} must be a string")
    return value.replace("\x00", "").strip()


class DelegateQueryGateway:
    """Answers focused questions about one thread in a separate session.

    The thread's context is assembled independently of the primary
    conversation and sent to a non-tool generation call, so the primary
    context only receives the answer. Calls are gated by a circuit breaker
    and bounded by a FIFO concurrency limiter.
    """

    def __init__(
        self,
        transport: ChatTransport,
        assembler: ContextAssembler,
        backend: LanguageModelBackend,
        prompt_builder: PromptBuilder,
        params: SamplingParams,
        breaker: CircuitBreaker,
        limiter: ConcurrencyLimiter,
        retry_policy: RetryPolicy,
        config: DelegateConfig | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            transport: Resolves threads and serves the fallback fetch.
            assembler: Builds the thread context.
            backend: Model backend used for the delegate call.
            prompt_builder: Renders the delegate prompts.
            params: Sampling parameters of the delegate session.
            breaker: Circuit breaker shared by all delegate calls.
            limiter: Concurrency limiter shared by all delegate calls.
            retry_policy: Retry policy of the generation call.
            config: Validation limits and prompt overrides.
        """
        self._transport = transport
        self._assembler = assembler
        self._backend = backend
        self._prompt_builder = prompt_builder
        self._params = params
        self._breaker = breaker
        self._limiter = limiter
        self._retry_policy = retry_policy
        self._config = config or DelegateConfig()

    def validate(
        self,
        thread_id: object,
        query: object,
        hint: object = None,
    ) -> DelegateQuery:
        """Validate and sanitize query input.

        Null bytes are stripped and surrounding whitespace trimmed.

        Returns:
            Sanitized query.

        Raises:
            QueryValidationError: If the input is missing, empty or too long.
        """
        if thread_id is None:
            raise QueryValidationError("Thread ID is required")
        if query is None:
            raise QueryValidationError("Query is required")

        clean_thread_id = _sanitize(thread_id, "Thread ID")
        clean_query = _sanitize(query, "Query")
        if not clean_thread_id:
            raise QueryValidationError("Thread ID must not be empty")
        if not clean_query:
            raise QueryValidationError("Query must not be empty")
        if len(clean_query) > self._config.max_query_length:
            raise QueryValidationError(
                f"Query is too long (max {self._config.max_query_length} characters)"
            )

        clean_hint: str | None = None
        if hint is not None:
            clean_hint = _sanitize(hint, "Context hint") or None
            if clean_hint and len(clean_hint) > self._config.max_hint_length:
                raise QueryValidationError(
                    "Context hint is too long "
                    f"(max {self._config.max_hint_length} characters)"
                )

        return DelegateQuery(thread_id=clean_thread_id, query=clean_query, hint=clean_hint)

    async def query(
        self,
        thread_id: str,
        query: str,
        hint: str | None = None,
    ) -> DelegateAnswer:
        """Answer a question about a thread.

        Args:
            thread_id: Target thread ID.
            query: Question about the thread content.
            hint: Optional context for the question.

        Returns:
            The delegate's answer.

        Raises:
            QueryValidationError: If the input is invalid. Nothing is sent.
            UpstreamUnavailableError: If the circuit is open or the query failed.
        """
        request = self.validate(thread_id, query, hint)
        logger.info(
            "Processing delegate query for thread %s: %r", request.thread_id, request.query
        )

        try:
            return await self._breaker.call(lambda: self._answer(request))
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            logger.error("Delegate query for %s failed: %s", request.thread_id, e)
            raise UpstreamUnavailableError(
                self._breaker.name, f"Delegate query failed: {e}"
            ) from e

    async def query_many(
        self,
        requests: list[DelegateQuery],
    ) -> list[DelegateAnswer | BaseException]:
        """Run several queries concurrently (bounded by the limiter).

        Returns:
            One answer or exception per request, in request order.
        """
        return await asyncio.gather(
            *(self.query(r.thread_id, r.query, r.hint) for r in requests),
            return_exceptions=True,
        )

    async def _answer(self, request: DelegateQuery) -> DelegateAnswer:
        async with self._limiter.slot():
            thread = await self._transport.get_thread(request.thread_id)
            context = await self._build_context(thread)

            system = self._config.system_prompt or (
                self._prompt_builder.build_delegate_system_prompt()
            )
            instruction = self._prompt_builder.build_delegate_query(
                thread.name, request.query, request.hint
            )
            turns = self.build_turns(context, instruction)

            result = await self._retry_policy.run(
                lambda: self._backend.complete(system, turns, self._params),
                description="Delegate query",
            )

        logger.info(
            "Delegate answered from %d messages (%d in / %d out tokens)",
            len(context.recent_messages),
            result.usage.input,
            result.usage.output,
        )
        return DelegateAnswer(
            answer=result.text.strip() or EMPTY_ANSWER,
            thread_name=thread.name,
            thread_id=request.thread_id,
            source_message_count=len(context.recent_messages),
            has_documents=context.has_documents,
            token_usage=result.usage,
        )

    async def _build_context(self, thread: ThreadInfo) -> AssembledContext:
        """Assemble the thread context, falling back to a raw fetch."""
        try:
            return await self._assembler.assemble(
                thread.channel, strategy=ContextStrategy.ADAPTIVE
            )
        except Exception as e:
            logger.warning(
                "Context assembly for thread %s failed, using raw history: %s",
                thread.id,
                e,
            )

        limit = self._config.fallback_message_limit
        messages = await self._transport.fetch_messages(thread.channel, limit)
        estimate = estimate_messages_tokens(messages)
        return AssembledContext(
            channel=thread.channel,
            recent_messages=messages,
            total_token_estimate=estimate,
            has_more_history=len(messages) >= limit,
            strategy=FALLBACK_STRATEGY_LABEL,
            token_breakdown=TokenBreakdown(message_tokens=estimate),
            degraded=True,
        )

    @staticmethod
    def build_turns(context: AssembledContext, instruction: str) -> list[Turn]:
        """Build the delegate transcript.

        Documents, summaries and the message transcript are separate user
        turns, followed by the instruction prompt.
        """
        turns: list[Turn] = []
        if context.context_documents:
            turns.append(
                Turn.user(
                    [ContentBlock.of_text("Thread documents and attachments:")]
                    + list(context.context_documents)
                )
            )
        if context.summary_context:
            turns.append(
                Turn.user(f"Thread conversation summaries:\n\n{context.summary_context}")
            )
        transcript = format_transcript(context.recent_messages)
        if transcript:
            turns.append(Turn.user(f"Recent thread messages:\n\n{transcript}"))
        turns.append(Turn.user(instruction))
        return turns
