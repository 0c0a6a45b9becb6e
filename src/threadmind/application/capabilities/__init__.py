"""Built-in capabilities."""

from threadmind.application.capabilities.delegate import (
    QueryThreadContextCapability,
    QueryThreadContextInput,
    ThreadQueryGateway,
    format_delegate_answer,
)
from threadmind.application.capabilities.threads import (
    CreateThreadCapability,
    CreateThreadInput,
    ListThreadsCapability,
    ListThreadsInput,
    format_thread_list,
)
from threadmind.application.services.capability_registry import CapabilityRegistry
from threadmind.domain.services import ChatTransport


def build_default_registry(
    transport: ChatTransport,
    gateway: ThreadQueryGateway | None = None,
) -> CapabilityRegistry:
    """Create a registry with list_threads, create_thread and query_thread_context.

    Args:
        transport: Chat transport used by the thread capabilities.
        gateway: Delegate gateway. Without it query_thread_context is still
            declared but raises GatewayNotConfiguredError when invoked.

    Returns:
        Populated registry.
    """
    return CapabilityRegistry(
        [
            ListThreadsCapability(transport),
            CreateThreadCapability(transport),
            QueryThreadContextCapability(gateway),
        ]
    )


__all__ = [
    "CreateThreadCapability",
    "CreateThreadInput",
    "ListThreadsCapability",
    "ListThreadsInput",
    "QueryThreadContextCapability",
    "QueryThreadContextInput",
    "ThreadQueryGateway",
    "build_default_registry",
    "format_delegate_answer",
    "format_thread_list",
]
