"""Prompt builder backed by Jinja2 templates."""

from jinja2 import Environment

from threadmind.domain.entities import ConversationWindow
from threadmind.infrastructure.llm.templates import create_jinja_env


class PromptBuilder:
    """Renders the system preamble and delegate prompts.

    Attributes:
        answer_token_target: Soft answer length asked of the delegate model.
    """

    def __init__(
        self,
        env: Environment | None = None,
        answer_token_target: int = 500,
    ) -> None:
        self._env = env or create_jinja_env()
        self.answer_token_target = answer_token_target

    def build_summary_context(self, windows: list[ConversationWindow]) -> str:
        """Render summaries of earlier conversation windows.

        Args:
            windows: Windows in ascending window number.

        Returns:
            Rendered summary prefix, or "" when there are no windows.
        """
        if not windows:
            return ""
        template = self._env.get_template("summary_context.j2")
        return template.render(windows=windows).strip()

    def build_system_prompt(self, summary_context: str, system_prompt: str) -> str:
        """Build the system preamble.

        The summary prefix (when present) comes first, followed by the persona
        prompt and a note about files only visible in earlier windows.
        """
        template = self._env.get_template("system_prompt.j2")
        return template.render(
            summary_context=summary_context,
            system_prompt=system_prompt,
        ).strip()

    def build_delegate_system_prompt(self) -> str:
        """Build the system prompt of the delegate session."""
        template = self._env.get_template("delegate_system.j2")
        return template.render(answer_token_target=self.answer_token_target).strip()

    def build_delegate_query(
        self,
        thread_name: str,
        query: str,
        hint: str | None = None,
    ) -> str:
        """Build the instruction prompt of a delegate query."""
        template = self._env.get_template("delegate_query.j2")
        return template.render(thread_name=thread_name, query=query, hint=hint).strip()
