"""Capability registry."""

import logging
from typing import Any, Protocol

from pydantic import BaseModel

from threadmind.domain.entities import (
    CapabilityDeclaration,
    CapabilityInvocation,
    InvocationScope,
)

logger = logging.getLogger(__name__)


class Capability(Protocol):
    """A side-effecting operation the model may invoke.

    Attributes:
        name: Capability name advertised to the model.
        description: What the capability does, for the model.
        input_model: Pydantic model of the input object.
    """

    name: str
    description: str
    input_model: type[BaseModel]

    async def run(self, arguments: Any, scope: InvocationScope) -> str | None:
        """Execute the capability.

        Args:
            arguments: Validated `input_model` instance.
            scope: Conversation the invocation belongs to.

        Returns:
            Result text, or None when there is nothing to report.
        """
        ...


def declare(capability: Capability) -> CapabilityDeclaration:
    """Build the declaration advertised to the model."""
    schema = capability.input_model.model_json_schema()
    schema.pop("title", None)
    return CapabilityDeclaration(
        name=capability.name,
        description=capability.description,
        parameters=schema,
    )


class CapabilityRegistry:
    """Dispatch table from capability name to handler."""

    def __init__(self, capabilities: list[Capability] | None = None) -> None:
        self._capabilities: dict[str, Capability] = {}
        for capability in capabilities or []:
            self.register(capability)

    def register(self, capability: Capability) -> None:
        """Register a capability, replacing any with the same name."""
        if capability.name in self._capabilities:
            logger.warning("Replacing capability %s", capability.name)
        self._capabilities[capability.name] = capability

    def get(self, name: str) -> Capability | None:
        return self._capabilities.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._capabilities)

    def declarations(self) -> list[CapabilityDeclaration]:
        """Declarations of all registered capabilities."""
        return [declare(c) for c in self._capabilities.values()]

    async def execute(
        self,
        invocation: CapabilityInvocation,
        scope: InvocationScope,
    ) -> str | None:
        """Execute an invocation.

        Args:
            invocation: Finalized invocation.
            scope: Conversation the invocation belongs to.

        Returns:
            Result text, or None for unknown capabilities.

        Raises:
            pydantic.ValidationError: If the input does not match the model.
            Exception: Errors raised by the capability propagate.
        """
        capability = self._capabilities.get(invocation.name)
        if capability is None:
            logger.warning("Unknown capability requested: %s", invocation.name)
            return None

        arguments = capability.input_model.model_validate(invocation.input)
        logger.info("Executing capability %s (%s)", invocation.name, invocation.id)
        return await capability.run(arguments, scope)
