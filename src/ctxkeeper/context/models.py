"""Shared types for the context layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StorageKind(Enum):
    """How a context type maps documents onto files."""

    SINGLE_DOCUMENT = "single-document"
    COLLECTION = "collection"
    LOG = "log"


class BaseType(Enum):
    """Closed set of base types accepted in project-config.json."""

    TEMPLATED_SINGLE_DOCUMENT = "templated-single-document"
    FREEFORM_SINGLE_DOCUMENT = "freeform-single-document"
    TEMPLATED_DOCUMENT_COLLECTION = "templated-document-collection"
    FREEFORM_DOCUMENT_COLLECTION = "freeform-document-collection"
    TEMPLATED_LOG = "templated-log"
    FREEFORM_LOG = "freeform-log"

    @property
    def templated(self) -> bool:
        return self.value.startswith("templated-")

    @property
    def kind(self) -> StorageKind:
        if self.value.endswith("-log"):
            return StorageKind.LOG
        if self.value.endswith("-collection"):
            return StorageKind.COLLECTION
        return StorageKind.SINGLE_DOCUMENT


@dataclass
class TypeConfig:
    """One entry of a project's `contextTypes` list."""

    base_type: BaseType
    name: str
    description: str = ""
    template: str | None = None
    validation: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> TypeConfig:
        if not isinstance(data, dict):
            raise ValueError(f"context type entry must be an object, got {type(data).__name__}")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError("context type entry is missing 'name'")
        raw_base = data.get("baseType")
        try:
            base_type = BaseType(raw_base)
        except ValueError:
            raise ValueError(f"unknown base type '{raw_base}' for context type '{name}'") from None
        return cls(
            base_type=base_type,
            name=name,
            description=data.get("description", ""),
            template=data.get("template"),
            validation=data.get("validation"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "baseType": self.base_type.value,
            "name": self.name,
            "description": self.description,
        }
        if self.template is not None:
            data["template"] = self.template
        if self.validation is not None:
            data["validation"] = self.validation
        return data


@dataclass
class ProjectConfig:
    """Context types configured for one project."""

    context_types: list[TypeConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ProjectConfig:
        if not isinstance(data, dict) or not isinstance(data.get("contextTypes"), list):
            raise ValueError("'contextTypes' must be a list")
        types = [TypeConfig.from_dict(entry) for entry in data["contextTypes"]]
        seen: set[str] = set()
        for tc in types:
            if tc.name in seen:
                raise ValueError(f"duplicate context type '{tc.name}'")
            seen.add(tc.name)
        return cls(context_types=types)

    @classmethod
    def default(cls) -> ProjectConfig:
        return cls(
            context_types=[
                TypeConfig(
                    base_type=BaseType.FREEFORM_DOCUMENT_COLLECTION,
                    name="general",
                    description=(
                        "Arbitrary named contexts with no template requirements. "
                        "Each document stored separately and requires a filename."
                    ),
                    validation=False,
                )
            ]
        )

    def to_dict(self) -> dict[str, Any]:
        return {"contextTypes": [tc.to_dict() for tc in self.context_types]}

    def find(self, name: str) -> TypeConfig | None:
        for tc in self.context_types:
            if tc.name == name:
                return tc
        return None


@dataclass
class PersistenceResponse:
    """Uniform result of every store operation."""

    success: bool
    data: list[str] | None = None
    errors: list[str] | None = None
    config: ProjectConfig | None = None

    @classmethod
    def ok(cls, data: list[str] | None = None) -> PersistenceResponse:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, *errors: str) -> PersistenceResponse:
        return cls(success=False, errors=list(errors))


@dataclass
class ValidationIssue:
    """A single problem found while checking content against a template."""

    type: str
    message: str
    section: str | None = None


@dataclass
class ValidationResponse:
    is_valid: bool
    validation_errors: list[ValidationIssue] = field(default_factory=list)
    correction_guidance: list[str] = field(default_factory=list)
    template_used: str | None = None


@dataclass
class ContextTypeResponse:
    """Result of a behavior operation (update/read/reset)."""

    success: bool
    content: str | None = None
    errors: list[str] | None = None
    validation: ValidationResponse | None = None
