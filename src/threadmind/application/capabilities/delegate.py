"""Delegate query capability."""

from typing import Protocol

from pydantic import BaseModel, Field

from threadmind.domain.entities import DelegateAnswer, InvocationScope
from threadmind.domain.exceptions import GatewayNotConfiguredError


class ThreadQueryGateway(Protocol):
    """Answers questions about a thread (see DelegateQueryGateway)."""

    async def query(
        self,
        thread_id: str,
        query: str,
        hint: str | None = None,
    ) -> DelegateAnswer: ...


class QueryThreadContextInput(BaseModel):
    thread_id: str = Field(
        description=(
            "REQUIRED: The thread ID to query (get it from list_threads first). "
            "Never guess - use the exact ID from list_threads results."
        ),
    )
    query: str = Field(
        description=(
            "REQUIRED: Specific question you want answered about the thread content. "
            "Example: 'What were the final decisions about the API design?'"
        ),
    )
    context_hint: str | None = Field(
        default=None,
        description=(
            "OPTIONAL: Why you are asking, to help focus the search and provide "
            "better answers."
        ),
    )


def format_delegate_answer(
    answer: DelegateAnswer,
    query: str,
    context_hint: str | None = None,
) -> str:
    """Format a delegate answer as a capability result."""
    lines = [
        "🧵 **Thread Query Result**",
        "",
        f"**Thread:** {answer.thread_name}",
        f'**Query:** "{query}"',
    ]
    if context_hint:
        lines.append(f"**Context:** {context_hint}")
    documents = (
        "Included document analysis" if answer.has_documents else "No documents found"
    )
    lines.extend(
        [
            "",
            "**Answer:**",
            answer.answer,
            "",
            "**Source Info:**",
            f"- 📊 Analyzed {answer.source_message_count} messages",
            f"- 📎 {documents}",
            f"- 🔢 Used {answer.token_usage.input} input + "
            f"{answer.token_usage.output} output tokens",
        ]
    )
    return "\n".join(lines)


class QueryThreadContextCapability:
    """Asks a delegate session a question about one thread."""

    name = "query_thread_context"
    description = (
        "Ask a specific question about a thread's content using a delegate "
        "assistant with the FULL thread context (summaries, messages, documents), "
        "without adding that context to this conversation. Use this when you need "
        "detailed information from threads."
    )
    input_model = QueryThreadContextInput

    def __init__(self, gateway: ThreadQueryGateway | None) -> None:
        self._gateway = gateway

    async def run(
        self,
        arguments: QueryThreadContextInput,
        scope: InvocationScope,
    ) -> str:
        if self._gateway is None:
            raise GatewayNotConfiguredError(
                "Thread query gateway is not configured; delegate queries are unavailable"
            )
        answer = await self._gateway.query(
            arguments.thread_id, arguments.query, arguments.context_hint
        )
        return format_delegate_answer(answer, arguments.query, arguments.context_hint)
