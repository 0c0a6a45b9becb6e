"""Streaming generation with a bounded capability-invocation loop."""

import logging
from typing import assert_never

from threadmind.application.services.capability_registry import CapabilityRegistry
from threadmind.domain.entities import (
    AssembledContext,
    CapabilityDeclaration,
    CapabilityInvocation,
    InvocationInputDelta,
    InvocationResult,
    InvocationScope,
    InvocationStart,
    InvocationStop,
    ReasoningDelta,
    Role,
    SamplingParams,
    StreamEvent,
    StreamSession,
    TextDelta,
    Turn,
)
from threadmind.domain.services import LanguageModelBackend, build_context_turns
from threadmind.infrastructure.llm.prompts import PromptBuilder
from threadmind.infrastructure.resilience import CircuitBreaker, RetryPolicy

logger = logging.getLogger(__name__)

ITERATION_LIMIT_MESSAGE = (
    "I encountered an issue while processing your request. Please try asking again."
)
EMPTY_RESPONSE_MESSAGE = "Sorry, I could not generate a response."
GENERATION_FAILED_MESSAGE = (
    "Sorry, I'm having trouble reaching the language model right now. "
    "Please try again in a moment."
)


class StreamOrchestrator:
    """Drives the multi-round streaming protocol.

    Each round is one streaming generation call. Client-side invocations of
    a round are executed in order through the registry and their results are
    fed into the next round; a round without client-side invocations ends
    the loop. `run` always returns text.
    """

    def __init__(
        self,
        backend: LanguageModelBackend,
        registry: CapabilityRegistry,
        prompt_builder: PromptBuilder,
        params: SamplingParams,
        system_prompt: str,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        max_iterations: int = 5,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            backend: Streaming model backend.
            registry: Capabilities offered to the model.
            prompt_builder: Renders the system preamble.
            params: Sampling parameters of the primary session.
            system_prompt: Default persona system prompt.
            retry_policy: Retry policy wrapping each round.
            breaker: Circuit breaker guarding generation calls.
            max_iterations: Maximum number of generation calls per run.
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._backend = backend
        self._registry = registry
        self._prompt_builder = prompt_builder
        self._params = params
        self._system_prompt = system_prompt
        self._retry_policy = retry_policy or RetryPolicy()
        self._breaker = breaker
        self._max_iterations = max_iterations

    async def run(
        self,
        context: AssembledContext,
        prompt: str,
        scope: InvocationScope,
        system_prompt: str | None = None,
    ) -> str:
        """Generate the answer to a prompt.

        Args:
            context: Assembled conversation context.
            prompt: Current user prompt.
            scope: Conversation the capabilities act on.
            system_prompt: Persona prompt overriding the default.

        Returns:
            Final visible text, or a fixed apology when generation fails or
            the iteration limit is reached.
        """
        system = self._prompt_builder.build_system_prompt(
            context.summary_context, system_prompt or self._system_prompt
        )
        turns = build_context_turns(context, prompt)
        tools = self._registry.declarations()

        try:
            return await self._loop(system, turns, tools, scope)
        except Exception as e:
            logger.error("Generation failed: %s", e, exc_info=True)
            return GENERATION_FAILED_MESSAGE

    async def _loop(
        self,
        system: str,
        turns: list[Turn],
        tools: list[CapabilityDeclaration],
        scope: InvocationScope,
    ) -> str:
        for round_number in range(1, self._max_iterations + 1):
            session = await self._generate_round(round_number, system, turns, tools)

            backend_invocations = session.backend_invocations
            if backend_invocations:
                logger.info(
                    "Round %d: %d invocations resolved by the backend (%s)",
                    round_number,
                    len(backend_invocations),
                    ", ".join(i.name for i in backend_invocations),
                )

            client_invocations = session.client_invocations
            if not client_invocations:
                logger.info("Final answer reached after %d rounds", round_number)
                return session.text.strip() or EMPTY_RESPONSE_MESSAGE

            if round_number == self._max_iterations:
                break

            logger.info(
                "Round %d: executing %d invocations (%s)",
                round_number,
                len(client_invocations),
                ", ".join(i.name for i in client_invocations),
            )
            results = await self._execute(client_invocations, scope)
            answered = {r.invocation_id for r in results}

            turns.append(
                Turn(
                    role=Role.ASSISTANT,
                    content=session.text,
                    invocations=tuple(i for i in client_invocations if i.id in answered),
                )
            )
            if results:
                turns.append(Turn(role=Role.USER, results=tuple(results)))

        logger.warning(
            "Reached max iterations (%d) without a final answer", self._max_iterations
        )
        return ITERATION_LIMIT_MESSAGE

    async def _generate_round(
        self,
        round_number: int,
        system: str,
        turns: list[Turn],
        tools: list[CapabilityDeclaration],
    ) -> StreamSession:
        """Run one streaming call (retried as a whole)."""
        snapshot = list(turns)

        async def attempt() -> StreamSession:
            session = StreamSession(round_number=round_number)
            async for event in self._backend.generate(
                system, snapshot, tools, self._params
            ):
                self._apply(session, event)
            self._close_session(session)
            return session

        breaker = self._breaker
        if breaker is None:
            operation = attempt
        else:

            async def operation() -> StreamSession:
                return await breaker.call(attempt)

        return await self._retry_policy.run(
            operation, description=f"Generation round {round_number}"
        )

    def _apply(self, session: StreamSession, event: StreamEvent) -> None:
        """Apply one stream event to the round state."""
        match event:
            case TextDelta(text=text):
                session.text += text
            case ReasoningDelta(text=text):
                session.reasoning += text
            case InvocationStart(
                index=index, id=invocation_id, name=name, origin=origin, input=initial
            ):
                invocation = session.invocation_at(index)
                if invocation is None:
                    invocation = CapabilityInvocation(index=index)
                    session.invocations.append(invocation)
                elif not invocation.started:
                    logger.debug(
                        "Input for block %d arrived before its start, merging", index
                    )
                invocation.id = invocation_id
                invocation.name = name
                invocation.origin = origin
                invocation.started = True
                if initial:
                    invocation.input = dict(initial)
            case InvocationInputDelta(index=index, fragment=fragment):
                session.placeholder(index).append_input(fragment)
            case InvocationStop(index=index):
                invocation = session.invocation_at(index)
                if invocation is None:
                    logger.warning("Stop for unknown block %d ignored", index)
                    return
                self._finalize(invocation)
            case _:
                assert_never(event)

    def _close_session(self, session: StreamSession) -> None:
        """Finalize open invocations and drop ones that never started."""
        for invocation in list(session.invocations):
            if not invocation.started:
                logger.warning(
                    "Dropping input for block %d that never started", invocation.index
                )
                session.invocations.remove(invocation)
            elif not invocation.completed:
                self._finalize(invocation)

        session.stop_reason = "tool_use" if session.client_invocations else "end_turn"
        if session.reasoning:
            logger.debug("Reasoning (round %d): %s", session.round_number, session.reasoning)

    @staticmethod
    def _finalize(invocation: CapabilityInvocation) -> None:
        if not invocation.finalize():
            logger.warning(
                "Failed to parse input of %s (%s), using {}: %r",
                invocation.name,
                invocation.id,
                invocation.input_buffer,
            )

    async def _execute(
        self,
        invocations: list[CapabilityInvocation],
        scope: InvocationScope,
    ) -> list[InvocationResult]:
        """Execute invocations sequentially, converting errors to results."""
        results: list[InvocationResult] = []
        for invocation in invocations:
            try:
                content = await self._registry.execute(invocation, scope)
            except Exception as e:
                logger.error("Error executing %s: %s", invocation.name, e)
                results.append(
                    InvocationResult(
                        invocation_id=invocation.id,
                        name=invocation.name,
                        content=f"Error using {invocation.name}: {e}",
                        is_error=True,
                    )
                )
                continue

            if content is None:
                logger.debug("No result for %s, nothing to append", invocation.name)
                continue
            results.append(
                InvocationResult(
                    invocation_id=invocation.id,
                    name=invocation.name,
                    content=content,
                )
            )
        return results
