"""Prompt template management using Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
)

from prdforge.llm.exceptions import TemplateError

# Default template directory is the ``templates/`` directory shipped with
# this module.
_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


def _bullets(items: Any) -> str:
    """Render an iterable as ``- item`` lines."""
    return "\n".join(f"- {item}" for item in items or ())


def _excerpt(text: str | None, limit: int = 2000) -> str:
    """Clip long context, marking the cut with ``...``."""
    if not text:
        return ""
    return text if len(text) <= limit else text[:limit] + "..."


class PromptTemplate:
    """Render prompt templates stored as Jinja2 files.

    Templates are loaded from a configurable directory, defaulting to the
    built-in ``templates/`` directory shipped with ``prdforge.llm``.

    Example::

        pt = PromptTemplate()
        prompt = pt.render("features_from_prd", prd_content=text, max_features=20)
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        """Initialise the Jinja2 environment.

        Args:
            template_dir: Directory containing ``*.jinja2`` template files.
                Defaults to the built-in ``templates/`` directory.
        """
        self._template_dir = template_dir or _DEFAULT_TEMPLATE_DIR
        if not self._template_dir.is_dir():
            raise TemplateError(
                f"Template directory does not exist: {self._template_dir}"
            )
        self._env = Environment(
            loader=FileSystemLoader(str(self._template_dir)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["bullets"] = _bullets
        self._env.filters["excerpt"] = _excerpt

    def render(self, template_name: str, /, **variables: Any) -> str:
        """Render a template with the given variables.

        Args:
            template_name: Name of the template **without** the ``.jinja2``
                extension (e.g. ``"features_from_prd"``).
            **variables: Template variables passed to Jinja2.

        Returns:
            The rendered prompt string.

        Raises:
            TemplateError: If the template cannot be found, has invalid
                syntax, or a required variable is missing.
        """
        full_name = f"{template_name}.jinja2"
        try:
            template = self._env.get_template(full_name)
        except TemplateNotFound:
            raise TemplateError(
                f"Template '{full_name}' not found in {self._template_dir}",
                template_name,
            ) from None
        except TemplateSyntaxError as exc:
            raise TemplateError(
                f"Invalid syntax in template '{full_name}': {exc}",
                template_name,
            ) from exc

        try:
            return template.render(**variables)
        except UndefinedError as exc:
            raise TemplateError(
                f"Error rendering template '{full_name}': {exc}",
                template_name,
            ) from exc

    def list_templates(self) -> list[str]:
        """Return the names (without ``.jinja2``) of all available templates."""
        return [
            t.removesuffix(".jinja2")
            for t in self._env.list_templates()
            if t.endswith(".jinja2")
        ]
