"""Per-storage-kind behavior behind the update/read/reset/validate contract.

Instances are bound to one request: project, type, optional context name and
optional content. They hold no other state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ctxkeeper.context.models import (
    ContextTypeResponse,
    PersistenceResponse,
    TypeConfig,
    ValidationIssue,
    ValidationResponse,
)
from ctxkeeper.context.validator import MarkdownTemplateValidator, Validator

if TYPE_CHECKING:
    from ctxkeeper.context.store import ContextStore

logger = logging.getLogger(__name__)

LOG_ENTRY_SEPARATOR = "\n\n---\n\n"
NO_TEMPLATE_MESSAGE = "Validation enabled but no template specified in configuration"


def _to_response(result: PersistenceResponse) -> ContextTypeResponse:
    if result.success:
        return ContextTypeResponse(success=True)
    return ContextTypeResponse(success=False, errors=result.errors)


class ContextType(ABC):
    """Shared construction and validation for all context types."""

    def __init__(
        self,
        store: ContextStore,
        project: str,
        config: TypeConfig,
        context_name: str | None = None,
        content: str | None = None,
        validator: Validator | None = None,
    ) -> None:
        self.store = store
        self.project = project
        self.config = config
        self.context_name = context_name
        self.content = content
        self.validator = validator or MarkdownTemplateValidator()

    @property
    def name(self) -> str:
        return self.config.name

    @abstractmethod
    async def update(self) -> ContextTypeResponse: ...

    @abstractmethod
    async def read(self) -> ContextTypeResponse: ...

    @abstractmethod
    async def reset(self) -> ContextTypeResponse: ...

    def _content_missing(self) -> ContextTypeResponse | None:
        if not self.content:
            return ContextTypeResponse(
                success=False, errors=[f"Content is required to update {self.name}"]
            )
        return None

    async def validate(self) -> ValidationResponse:
        """Check content against the type's template when validation is enabled."""
        if not self.config.validation:
            return ValidationResponse(is_valid=True)

        if not self.config.template:
            return ValidationResponse(
                is_valid=False,
                validation_errors=[ValidationIssue(type="content_error", message=NO_TEMPLATE_MESSAGE)],
                correction_guidance=[
                    "Set validation: false to disable validation",
                    'Or specify template: "template-name" to enable validation',
                ],
            )

        content = (self.content or "").strip()
        if not content:
            return ValidationResponse(
                is_valid=False,
                validation_errors=[
                    ValidationIssue(type="content_error", message=f"{self.name} cannot be empty")
                ],
                correction_guidance=[
                    f"1. Add content for {self.name}",
                    "2. Ensure content is not just whitespace",
                ],
            )

        template = await self.store.get_template(self.project, self.name)
        if not template.success or not template.data:
            cause = (template.errors or ["Unknown error"])[0]
            return ValidationResponse(
                is_valid=False,
                validation_errors=[
                    ValidationIssue(type="content_error", message=f"Validation failed: {cause}")
                ],
                correction_guidance=["Unable to validate content due to internal error"],
            )
        return self.validator.validate(content, template.data[0])


class SingleDocumentType(ContextType):
    """One replaceable document stored under the type's own name."""

    async def update(self) -> ContextTypeResponse:
        missing = self._content_missing()
        if missing:
            return missing

        if self.config.base_type.templated:
            # Replace in place: the previous version goes to the archive first
            reset = await self.reset()
            if not reset.success:
                return reset

        result = await self.store.write_context(self.project, self.name, self.name, self.content)
        return _to_response(result)

    async def read(self) -> ContextTypeResponse:
        result = await self.store.get_context(self.project, self.name, [self.name])
        if not result.success:
            return ContextTypeResponse(success=False, errors=result.errors)
        return ContextTypeResponse(success=True, content="\n".join(result.data or []))

    async def reset(self) -> ContextTypeResponse:
        return _to_response(await self.store.clear_context(self.project, self.name, [self.name]))


class CollectionType(ContextType):
    """Named documents; the context name is the storage key."""

    def _name_missing(self, action: str) -> ContextTypeResponse | None:
        if not self.context_name:
            return ContextTypeResponse(
                success=False,
                errors=[f"Context name is required to {action} {self.name} type"],
            )
        return None

    async def update(self) -> ContextTypeResponse:
        failure = self._content_missing() or self._name_missing("update")
        if failure:
            return failure
        result = await self.store.write_context(
            self.project, self.name, self.context_name, self.content
        )
        return _to_response(result)

    async def read(self) -> ContextTypeResponse:
        failure = self._name_missing("read")
        if failure:
            return failure
        result = await self.store.get_context(self.project, self.name, [self.context_name])
        if not result.success:
            return ContextTypeResponse(success=False, errors=result.errors)
        return ContextTypeResponse(success=True, content="\n".join(result.data or []))

    async def reset(self) -> ContextTypeResponse:
        failure = self._name_missing("reset")
        if failure:
            return failure
        return _to_response(
            await self.store.clear_context(self.project, self.name, [self.context_name])
        )


class LogType(ContextType):
    """Append-only entries, one timestamped file per update.

    A context name on read or reset selects the existing entry stored under
    that name. Without one, or with the type name itself (the name listings
    report for a log), every entry of the type is selected.
    """

    def _names(self) -> list[str] | None:
        if not self.context_name or self.context_name == self.name:
            return None
        return [self.context_name]

    async def update(self) -> ContextTypeResponse:
        missing = self._content_missing()
        if missing:
            return missing
        result = await self.store.write_context(self.project, self.name, None, self.content)
        if result.success and result.data:
            logger.debug("Appended %s entry %s", self.name, result.data[0])
        return _to_response(result)

    async def read(self) -> ContextTypeResponse:
        result = await self.store.get_context(self.project, self.name, self._names())
        if not result.success:
            return ContextTypeResponse(success=False, errors=result.errors)
        return ContextTypeResponse(
            success=True, content=LOG_ENTRY_SEPARATOR.join(result.data or [])
        )

    async def reset(self) -> ContextTypeResponse:
        return _to_response(
            await self.store.clear_context(self.project, self.name, self._names())
        )
