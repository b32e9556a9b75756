"""Tools for agent access to project contexts.

These functions are designed to be exposed as tools by a protocol server.
Every tool returns text; context type errors are reported, never raised.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Callable

from ctxkeeper.config import load_config, setup_logging
from ctxkeeper.context.errors import ContextTypeError
from ctxkeeper.context.factory import create_context_type
from ctxkeeper.context.store import ContextStore

if TYPE_CHECKING:
    from ctxkeeper.context.models import ValidationResponse
    from ctxkeeper.context.validator import Validator


def _errors(errors: list[str] | None) -> str:
    return "Error: " + "\n".join(errors or ["Unknown error"])


def format_validation_failure(validation: ValidationResponse) -> str:
    lines = ["Validation failed:"]
    lines += [f"- {issue.message}" for issue in validation.validation_errors]
    lines += ["", "Correction guidance:", *validation.correction_guidance]
    if validation.template_used:
        lines += ["", "Template used for validation:", "```markdown", validation.template_used, "```"]
    return "\n".join(lines)


def get_context_tools(
    store: ContextStore, validator: Validator | None = None
) -> dict[str, Callable[..., Awaitable[str]]]:
    """Return a dict of tool_name -> async callable for context operations."""

    async def create_project(project_name: str) -> str:
        """Create a new project with the default context configuration."""
        result = await store.init_project(project_name)
        if not result.success:
            return _errors(result.errors)
        config = await store.get_project_config(project_name)
        if not config.success:
            return _errors(config.errors)
        return f"Project '{project_name}' initialized successfully"

    async def list_projects() -> str:
        """List all projects."""
        result = await store.list_projects()
        if not result.success:
            return _errors(result.errors)
        return json.dumps(result.data or [])

    async def list_context_types(project_name: str) -> str:
        """List the context types configured for a project."""
        result = await store.get_project_config(project_name)
        if not result.success or result.config is None:
            return _errors(result.errors)
        return json.dumps(
            [
                {"name": tc.name, "baseType": tc.base_type.value, "description": tc.description}
                for tc in result.config.context_types
            ],
            indent=2,
        )

    async def list_contexts(project_name: str) -> str:
        """List every context of a project as type/name."""
        result = await store.list_all_context_for_project(project_name)
        if not result.success:
            return _errors(result.errors)
        return json.dumps(result.data or [])

    async def get_context(project_name: str, context_type: str, context_name: str | None = None) -> str:
        """Read a context. Log types return all entries, most recent first."""
        try:
            ctx = await create_context_type(store, project_name, context_type, context_name)
        except ContextTypeError as e:
            return _errors(e.errors)
        result = await ctx.read()
        if not result.success:
            return _errors(result.errors)
        return result.content or ""

    async def update_context(
        project_name: str, context_type: str, content: str, context_name: str | None = None
    ) -> str:
        """Validate content, then write it. Log types append a new entry."""
        try:
            ctx = await create_context_type(
                store, project_name, context_type, context_name, content, validator
            )
        except ContextTypeError as e:
            return _errors(e.errors)
        validation = await ctx.validate()
        if not validation.is_valid:
            return format_validation_failure(validation)
        result = await ctx.update()
        if not result.success:
            return _errors(result.errors)
        return f"Context '{context_type}' updated successfully"

    async def reset_context(project_name: str, context_type: str, context_name: str | None = None) -> str:
        """Archive a context so the next read starts empty."""
        try:
            ctx = await create_context_type(store, project_name, context_type, context_name)
        except ContextTypeError as e:
            return _errors(e.errors)
        result = await ctx.reset()
        if not result.success:
            return _errors(result.errors)
        return f"Context '{context_type}' reset successfully"

    async def get_template(project_name: str, context_type: str) -> str:
        """Read the template a context type is validated against."""
        result = await store.get_template(project_name, context_type)
        if not result.success or not result.data:
            return _errors(result.errors)
        return result.data[0]

    return {
        "create_project": create_project,
        "list_projects": list_projects,
        "list_context_types": list_context_types,
        "list_contexts": list_contexts,
        "get_context": get_context,
        "update_context": update_context,
        "reset_context": reset_context,
        "get_template": get_template,
    }


def load_context_tools(
    config_path: Path | None = None,
) -> dict[str, Callable[..., Awaitable[str]]]:
    """Configure logging and a store from settings, then return its tools."""
    config = load_config(config_path)
    setup_logging(config.log_level)
    return get_context_tools(ContextStore.from_config(config))
