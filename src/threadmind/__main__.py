"""アプリケーションのエントリポイント"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from slack_sdk.web.async_client import AsyncWebClient

from threadmind.application.capabilities import build_default_registry
from threadmind.application.services import (
    ContextAssembler,
    DeduplicatingAttachmentResolver,
    DelegateQueryGateway,
    StreamOrchestrator,
    TokenBudgetEstimator,
)
from threadmind.application.use_cases import RespondWithContextUseCase
from threadmind.config import Config, ConfigError, LLMConfig, LoggingConfig, load_config
from threadmind.domain.entities import ChannelRef, SamplingParams
from threadmind.domain.exceptions import MessageNotFoundError
from threadmind.infrastructure.llm import LiteLLMBackend, PromptBuilder
from threadmind.infrastructure.persistence import (
    DatabaseManager,
    SQLiteConversationWindowRepository,
)
from threadmind.infrastructure.resilience import (
    CircuitBreaker,
    ConcurrencyLimiter,
    RetryPolicy,
)
from threadmind.infrastructure.slack import (
    SlackAttachmentDecoder,
    SlackChatTransport,
    SlackFileDownloader,
)

# Default logging for early startup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DELEGATE_TEMPERATURE = 0.3
DELEGATE_MAX_TOKENS = 2000


def configure_logging(config: LoggingConfig | None) -> None:
    """Configure logging based on config.

    Args:
        config: Logging configuration. If None, uses defaults.
    """
    if config is None:
        return

    root_logger = logging.getLogger()
    level = getattr(logging, config.level.upper(), logging.INFO)
    root_logger.setLevel(level)

    if root_logger.handlers:
        formatter = logging.Formatter(config.format)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)

    if config.loggers:
        for logger_name, logger_level in config.loggers.items():
            individual_logger = logging.getLogger(logger_name)
            individual_level = getattr(logging, logger_level.upper(), logging.INFO)
            individual_logger.setLevel(individual_level)
            logger.debug(
                "Set logger '%s' to level %s", logger_name, logger_level.upper()
            )


def to_sampling_params(llm_config: LLMConfig) -> SamplingParams:
    return SamplingParams(
        model=llm_config.model,
        temperature=llm_config.temperature,
        max_tokens=llm_config.max_tokens,
    )


def delegate_sampling_params(config: Config) -> SamplingParams:
    """Sampling parameters of the delegate session.

    Uses `llm.delegate` when configured, otherwise the default model with
    a lower temperature and a smaller output limit.
    """
    if "delegate" in config.llm:
        return to_sampling_params(config.llm["delegate"])
    default = config.llm["default"]
    return SamplingParams(
        model=default.model,
        temperature=DELEGATE_TEMPERATURE,
        max_tokens=min(default.max_tokens, DELEGATE_MAX_TOKENS),
    )


@dataclass
class Application:
    """Wired application components."""

    use_case: RespondWithContextUseCase
    db_manager: DatabaseManager
    gateway: DelegateQueryGateway
    transport: SlackChatTransport
    file_downloader: SlackFileDownloader

    async def close(self) -> None:
        """Release the database engine and the HTTP session."""
        await self.file_downloader.close()
        await self.db_manager.close()


def build_application(config: Config, client: AsyncWebClient) -> Application:
    """Wire all components from config.

    Args:
        config: Application configuration.
        client: Slack client.

    Returns:
        Wired application.
    """
    debug_llm_messages = bool(config.logging and config.logging.debug_llm_messages)
    resilience = config.resilience
    primary_params = to_sampling_params(config.llm["default"])

    backend = LiteLLMBackend(
        web_search=config.orchestrator.enable_web_search,
        debug_llm_messages=debug_llm_messages,
    )
    prompt_builder = PromptBuilder()
    retry_policy = RetryPolicy(
        max_attempts=resilience.max_attempts,
        base_delay=resilience.base_delay_seconds,
    )

    db_manager = DatabaseManager(config.memory.database_path)
    window_repository = SQLiteConversationWindowRepository(db_manager.get_session)
    transport = SlackChatTransport(client)
    file_downloader = SlackFileDownloader(config.slack.bot_token)
    attachment_resolver = DeduplicatingAttachmentResolver(
        transport, SlackAttachmentDecoder(file_downloader)
    )

    budget = TokenBudgetEstimator(
        backend,
        model=primary_params.model,
        retry_policy=retry_policy,
        context_window_size=config.context.context_window_size,
        reserve_tokens_for_response=config.context.reserve_tokens_for_response,
        reserve_tokens_for_system=config.context.reserve_tokens_for_system,
    )
    assembler = ContextAssembler(
        window_repository,
        transport,
        budget,
        prompt_builder,
        system_prompt=config.persona.system_prompt,
        config=config.context,
    )

    gateway = DelegateQueryGateway(
        transport=transport,
        assembler=assembler,
        backend=backend,
        prompt_builder=prompt_builder,
        params=delegate_sampling_params(config),
        breaker=CircuitBreaker(
            "delegate",
            failure_threshold=resilience.failure_threshold,
            cooldown_seconds=resilience.cooldown_seconds,
        ),
        limiter=ConcurrencyLimiter(resilience.max_concurrent_delegate_queries),
        retry_policy=retry_policy,
        config=config.delegate,
    )

    orchestrator = StreamOrchestrator(
        backend=backend,
        registry=build_default_registry(transport, gateway),
        prompt_builder=prompt_builder,
        params=primary_params,
        system_prompt=config.persona.system_prompt,
        retry_policy=retry_policy,
        breaker=CircuitBreaker(
            "llm",
            failure_threshold=resilience.failure_threshold,
            cooldown_seconds=resilience.cooldown_seconds,
        ),
        max_iterations=config.orchestrator.max_iterations,
    )

    use_case = RespondWithContextUseCase(assembler, orchestrator, attachment_resolver)
    return Application(
        use_case=use_case,
        db_manager=db_manager,
        gateway=gateway,
        transport=transport,
        file_downloader=file_downloader,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="threadmind",
        description="Answer a prompt with the context of a Slack channel or thread.",
    )
    parser.add_argument("prompt", help="Prompt to answer")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file (default: config.yaml)"
    )
    parser.add_argument("--channel", required=True, help="Slack channel ID")
    parser.add_argument("--thread", default=None, help="Thread timestamp (optional)")
    parser.add_argument(
        "--strategy",
        default=None,
        help="Context strategy: fixed, adaptive or unlimited (default: from config)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Message limit")
    parser.add_argument(
        "--message-ts",
        default=None,
        help="Timestamp of the message being answered; its attachments are included",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """アプリケーションを起動する"""
    args = parse_args(argv)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error("%s not found", config_path)
        return 1

    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error("Failed to load config: %s", e)
        return 1

    configure_logging(config.logging)

    app = build_application(config, AsyncWebClient(token=config.slack.bot_token))
    await app.db_manager.create_tables()

    channel = ChannelRef(id=args.channel, thread_ts=args.thread)
    try:
        message = None
        if args.message_ts:
            try:
                message = await app.transport.get_message(channel, args.message_ts)
            except MessageNotFoundError as e:
                logger.error("%s", e)
                return 1
        answer = await app.use_case.execute(
            channel,
            args.prompt,
            message=message,
            strategy=args.strategy,
            limit=args.limit,
        )
    finally:
        await app.close()

    print(answer)
    return 0


def run() -> None:
    """Console entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
