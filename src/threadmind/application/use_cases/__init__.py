"""Use cases."""

from threadmind.application.use_cases.respond_with_context import (
    RespondWithContextUseCase,
)

__all__ = [
    "RespondWithContextUseCase",
]
