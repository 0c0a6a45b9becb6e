"""Application services."""

from threadmind.application.services.attachment_resolver import (
    DeduplicatingAttachmentResolver,
)
from threadmind.application.services.capability_registry import (
    Capability,
    CapabilityRegistry,
)
from threadmind.application.services.context_assembler import ContextAssembler
from threadmind.application.services.delegate_gateway import DelegateQueryGateway
from threadmind.application.services.stream_orchestrator import StreamOrchestrator
from threadmind.application.services.token_budget import (
    TokenBudgetEstimator,
    TokenUsageReport,
)

__all__ = [
    "Capability",
    "CapabilityRegistry",
    "ContextAssembler",
    "DeduplicatingAttachmentResolver",
    "DelegateQueryGateway",
    "StreamOrchestrator",
    "TokenBudgetEstimator",
    "TokenUsageReport",
]
