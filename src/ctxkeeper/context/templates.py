"""Template lookup: project-local override, else a built-in default.

A built-in default is copied into the project on first use, so the project
copy is what later calls read (and what users edit).
"""

from __future__ import annotations

import logging
from pathlib import Path

from ctxkeeper.context.errors import TemplateNotFoundError
from ctxkeeper.context.models import TypeConfig

logger = logging.getLogger(__name__)


class TemplateResolver:
    def __init__(self, builtin_dir: Path) -> None:
        self.builtin_dir = builtin_dir

    @staticmethod
    def template_name(type_config: TypeConfig) -> str:
        return type_config.template or type_config.name

    def resolve(self, project_path: Path, type_config: TypeConfig) -> str:
        """Return template text for a type, bootstrapping the project copy."""
        name = self.template_name(type_config)
        project_template = project_path / "templates" / f"{name}.md"
        try:
            return project_template.read_text(encoding="utf-8")
        except FileNotFoundError:
            pass

        builtin = self.builtin_dir / f"{name}.md"
        try:
            content = builtin.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateNotFoundError(f"no template named '{name}' ({e.strerror or e})") from e

        project_template.parent.mkdir(parents=True, exist_ok=True)
        project_template.write_text(content, encoding="utf-8")
        logger.info("Copied built-in template %s into %s", name, project_path.name)
        return content
