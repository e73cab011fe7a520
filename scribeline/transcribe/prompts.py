"""
scribeline.transcribe.prompts - Prompt template loading and rendering.

Uses Jinja2 to load the initial and continuation transcription prompts
from the packaged prompts/ directory, or from a user-supplied directory
that overrides it.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound

DEFAULT_PROMPTS_DIR = Path(__file__).parent.parent / "prompts"


class PromptVariant(str, Enum):
    """Which prompt a segment is transcribed with."""

    INITIAL = "initial"
    CONTINUATION = "continuation"

    @property
    def template_name(self) -> str:
        return f"{self.value}.txt"


class PromptTemplateManager:
    """Manages loading and rendering of transcription prompt templates."""

    def __init__(self, prompts_dir: Path | None = None) -> None:
        self.prompts_dir = prompts_dir or DEFAULT_PROMPTS_DIR
        search_path = [str(self.prompts_dir)]
        if self.prompts_dir != DEFAULT_PROMPTS_DIR:
            search_path.append(str(DEFAULT_PROMPTS_DIR))
        self.env = Environment(
            loader=FileSystemLoader(search_path),
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._cache: dict[str, Template] = {}

    def get_template(self, name: str) -> Template:
        """Load a template by name.

        Args:
            name: Template filename (e.g., "initial.txt")

        Returns:
            Jinja2 Template object

        Raises:
            FileNotFoundError: If template doesn't exist
        """
        if name not in self._cache:
            try:
                self._cache[name] = self.env.get_template(name)
            except TemplateNotFound as e:
                raise FileNotFoundError(f"Template not found: {self.prompts_dir / name}") from e
        return self._cache[name]

    def render(self, variant: PromptVariant, variables: dict[str, Any] | None = None) -> str:
        """Render the prompt for a variant.

        Args:
            variant: Initial or continuation prompt
            variables: Template variables (e.g. ``language``)

        Returns:
            Rendered prompt string, stripped of surrounding whitespace
        """
        template = self.get_template(variant.template_name)
        return template.render(**(variables or {})).strip()
