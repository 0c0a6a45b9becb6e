"""Context assembly."""

import logging
from dataclasses import dataclass, replace
from typing import assert_never

from threadmind.application.services.token_budget import (
    TokenBudgetEstimator,
    estimate_blocks_tokens,
    estimate_messages_tokens,
    estimate_text_tokens,
)
from threadmind.config import ContextConfig
from threadmind.domain.entities import (
    AssembledContext,
    ChannelRef,
    ContentBlock,
    ContextStrategy,
    ConversationWindow,
    Message,
    TokenBreakdown,
)
from threadmind.domain.repositories import ConversationWindowRepository
from threadmind.domain.services import (
    AttachmentResolver,
    ChatTransport,
    build_context_turns,
)
from threadmind.infrastructure.llm.prompts import PromptBuilder

logger = logging.getLogger(__name__)

TOKEN_OPTIMIZED_LABEL = "adaptive (token-optimized)"


@dataclass(frozen=True)
class _FetchResult:
    messages: list[Message]
    has_more_history: bool
    strategy_label: str


class ContextAssembler:
    """Builds a token-bounded context for one conversation.

    The context combines summaries of earlier conversation windows, the
    messages posted after the latest window boundary and the reference
    documents of the current message.
    """

    def __init__(
        self,
        window_repository: ConversationWindowRepository,
        transport: ChatTransport,
        budget: TokenBudgetEstimator,
        prompt_builder: PromptBuilder,
        system_prompt: str,
        config: ContextConfig | None = None,
    ) -> None:
        """Initialize the assembler.

        Args:
            window_repository: Summary store.
            transport: Message history source.
            budget: Token budget estimator.
            prompt_builder: Renders the summary prefix and system preamble.
            system_prompt: Persona system prompt sent with every request.
            config: Fetch limits and token budget settings.
        """
        self._window_repository = window_repository
        self._transport = transport
        self._budget = budget
        self._prompt_builder = prompt_builder
        self._system_prompt = system_prompt
        self._config = config or ContextConfig()

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    async def assemble(
        self,
        channel: ChannelRef,
        strategy: ContextStrategy | str | None = None,
        limit: int | None = None,
        current_message: Message | None = None,
        attachment_resolver: AttachmentResolver | None = None,
    ) -> AssembledContext:
        """Assemble the context for a channel or thread.

        Args:
            channel: Conversation to build the context for.
            strategy: Fetch strategy. None uses the configured default;
                unknown labels fall back to fixed.
            limit: Explicit message limit for the strategy.
            current_message: Message being answered. It is excluded from
                recent messages since it is sent as the prompt.
            attachment_resolver: Resolves reference documents of
                `current_message`.

        Returns:
            Assembled context.

        Raises:
            ValueError: If `limit` is below 1.
            Exception: History fetch and summary store errors propagate.
        """
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        windows = await self._window_repository.list_by_channel(channel.key)
        latest = await self._window_repository.latest_by_channel(channel.key)
        summary_context = self._prompt_builder.build_summary_context(windows)
        boundary = latest.last_message_id if latest else None

        resolved = self._resolve_strategy(strategy)
        logger.debug(
            "Assembling context for %s: strategy=%s, limit=%s, boundary=%s",
            channel.key,
            resolved.value,
            limit,
            boundary,
        )

        match resolved:
            case ContextStrategy.FIXED:
                fetched = await self._fetch_fixed(channel, limit, boundary)
            case ContextStrategy.ADAPTIVE:
                fetched = await self._fetch_adaptive(channel, limit, boundary)
            case ContextStrategy.UNLIMITED:
                fetched = await self._fetch_unlimited(channel, limit, boundary)
            case _:
                assert_never(resolved)

        recent_messages = self._drop_covered(fetched.messages, latest)
        if current_message is not None:
            recent_messages = [m for m in recent_messages if m.id != current_message.id]

        documents: list[ContentBlock] = []
        if current_message is not None and attachment_resolver is not None:
            documents = await attachment_resolver.resolve(
                current_message, len(recent_messages) + 1
            )

        draft = AssembledContext(
            channel=channel,
            summary_context=summary_context,
            recent_messages=recent_messages,
            context_documents=documents,
            has_more_history=fetched.has_more_history,
            strategy=fetched.strategy_label,
        )
        context = await self._account_tokens(draft)

        self._log_usage(context, len(windows))
        return context

    def _resolve_strategy(
        self,
        strategy: ContextStrategy | str | None,
    ) -> ContextStrategy:
        requested = strategy if strategy is not None else self._config.strategy
        resolved = ContextStrategy.parse(requested)
        if resolved is None:
            logger.warning("Unknown context strategy %r, using fixed", requested)
            return ContextStrategy.FIXED
        return resolved

    async def _fetch_fixed(
        self,
        channel: ChannelRef,
        limit: int | None,
        boundary: str | None,
    ) -> _FetchResult:
        count = limit if limit is not None else self._config.fixed_message_limit
        messages = await self._transport.fetch_messages(channel, count, after=boundary)
        return _FetchResult(
            messages=messages,
            has_more_history=len(messages) >= count or boundary is not None,
            strategy_label=ContextStrategy.FIXED.value,
        )

    async def _fetch_adaptive(
        self,
        channel: ChannelRef,
        limit: int | None,
        boundary: str | None,
    ) -> _FetchResult:
        count = min(
            limit if limit is not None else self._config.adaptive_initial_limit,
            self._config.adaptive_max_limit,
        )
        messages = await self._transport.fetch_messages(channel, count, after=boundary)

        estimate = estimate_messages_tokens(messages)
        soft_limit = (
            self._config.context_window_size * self._config.soft_limit_percent // 100
        )
        if estimate > soft_limit:
            target = len(messages) * soft_limit // estimate
            logger.info(
                "Estimated %d tokens exceeds soft limit %d, keeping %d of %d messages",
                estimate,
                soft_limit,
                target,
                len(messages),
            )
            return _FetchResult(
                messages=messages[len(messages) - target :],
                has_more_history=True,
                strategy_label=TOKEN_OPTIMIZED_LABEL,
            )

        return _FetchResult(
            messages=messages,
            has_more_history=len(messages) >= count or boundary is not None,
            strategy_label=ContextStrategy.ADAPTIVE.value,
        )

    async def _fetch_unlimited(
        self,
        channel: ChannelRef,
        limit: int | None,
        boundary: str | None,
    ) -> _FetchResult:
        safety_limit = self._config.unlimited_safety_limit
        cap = min(limit, safety_limit) if limit is not None else safety_limit

        collected: list[Message] = []
        before: str | None = None
        has_more = False
        while len(collected) < cap:
            page_limit = min(self._config.page_size, cap - len(collected))
            page = await self._transport.fetch_messages(
                channel, page_limit, after=boundary, before=before
            )
            collected = page + collected
            if len(page) < page_limit or not page:
                break
            if len(collected) >= cap:
                has_more = True
                logger.warning(
                    "Unlimited fetch for %s hit the safety cap of %d messages",
                    channel.key,
                    cap,
                )
                break
            before = page[0].id

        return _FetchResult(
            messages=collected,
            has_more_history=has_more,
            strategy_label=ContextStrategy.UNLIMITED.value,
        )

    def _drop_covered(
        self,
        messages: list[Message],
        latest: ConversationWindow | None,
    ) -> list[Message]:
        """Drop messages at or before the window boundary."""
        if latest is None:
            return messages
        kept = [
            m
            for m in messages
            if m.id != latest.last_message_id
            and m.timestamp > latest.last_message_timestamp
        ]
        if len(kept) != len(messages):
            logger.debug(
                "Dropped %d messages already covered by window %d",
                len(messages) - len(kept),
                latest.window_number,
            )
        return kept

    async def _account_tokens(self, draft: AssembledContext) -> AssembledContext:
        """Fill the token estimate and breakdown of a context."""
        system = self._prompt_builder.build_system_prompt(
            draft.summary_context, self._system_prompt
        )
        turns = build_context_turns(draft)
        exact = await self._budget.count(system, turns)

        summary_tokens = estimate_text_tokens(draft.summary_context)
        document_tokens = estimate_blocks_tokens(draft.context_documents)

        if exact is not None:
            base_system = self._prompt_builder.build_system_prompt("", self._system_prompt)
            system_tokens = estimate_text_tokens(base_system)
            message_tokens = max(0, exact - summary_tokens - system_tokens - document_tokens)
            total = exact
            degraded = False
        else:
            system_tokens = self._budget.reserve_tokens_for_system
            message_tokens = estimate_messages_tokens(draft.recent_messages)
            total = summary_tokens + message_tokens + document_tokens + system_tokens
            degraded = True

        breakdown = TokenBreakdown(
            summary_tokens=summary_tokens,
            message_tokens=message_tokens,
            document_tokens=document_tokens,
            system_tokens=system_tokens,
            available_for_response=self._budget.available_for_response(total),
        )
        return replace(
            draft,
            total_token_estimate=total,
            token_breakdown=breakdown,
            degraded=degraded,
        )

    def _log_usage(self, context: AssembledContext, window_count: int) -> None:
        report = self._budget.usage(context.total_token_estimate)
        logger.info(
            "Context built for %s: %d messages, %d summaries, %d documents, "
            "%d tokens (%.1f%% of window)%s",
            context.channel.key,
            len(context.recent_messages),
            window_count,
            len(context.context_documents),
            context.total_token_estimate,
            report.percentage * 100,
            " [estimated]" if context.degraded else "",
        )
        breakdown = context.token_breakdown
        logger.debug(
            "Token breakdown: summary=%d, messages=%d, documents=%d, system=%d, "
            "available=%d",
            breakdown.summary_tokens,
            breakdown.message_tokens,
            breakdown.document_tokens,
            breakdown.system_tokens,
            breakdown.available_for_response,
        )
        if report.is_emergency:
            logger.error(
                "Context for %s uses %.1f%% of the window, summarization required",
                context.channel.key,
                report.percentage * 100,
            )
        elif report.should_summarize:
            logger.warning(
                "Context for %s uses %.1f%% of the window, summarization recommended",
                context.channel.key,
                report.percentage * 100,
            )
        elif report.should_warn:
            logger.warning(
                "Context for %s uses %.1f%% of the window",
                context.channel.key,
                report.percentage * 100,
            )
