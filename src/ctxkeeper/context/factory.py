"""Bind a configured context type name to its behavior."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ctxkeeper.context.behaviors import CollectionType, ContextType, LogType, SingleDocumentType
from ctxkeeper.context.errors import ConfigUnavailableError, UnknownContextTypeError
from ctxkeeper.context.models import StorageKind

if TYPE_CHECKING:
    from ctxkeeper.context.store import ContextStore
    from ctxkeeper.context.validator import Validator

# Total over StorageKind: every base type accepted at config load has a behavior
BEHAVIORS: dict[StorageKind, type[ContextType]] = {
    StorageKind.SINGLE_DOCUMENT: SingleDocumentType,
    StorageKind.COLLECTION: CollectionType,
    StorageKind.LOG: LogType,
}


async def create_context_type(
    store: ContextStore,
    project: str,
    context_type: str,
    context_name: str | None = None,
    content: str | None = None,
    validator: Validator | None = None,
) -> ContextType:
    """Load the project config and build the behavior for `context_type`.

    Raises ConfigUnavailableError or UnknownContextTypeError; callers at the
    transport boundary turn these into error results.
    """
    response = await store.get_project_config(project)
    if not response.success or response.config is None:
        raise ConfigUnavailableError(response.errors or ["Failed to load project configuration."])

    type_config = response.config.find(context_type)
    if type_config is None:
        raise UnknownContextTypeError([f"Unknown context type: {context_type}"])

    behavior = BEHAVIORS[type_config.base_type.kind]
    return behavior(
        store,
        project,
        type_config,
        context_name=context_name,
        content=content,
        validator=validator,
    )
