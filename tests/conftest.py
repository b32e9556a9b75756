"""Shared fixtures: a store rooted in tmp_path with one project."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ctxkeeper.context.store import ContextStore

PROJECT = "test-project"

TYPES = [
    {
        "baseType": "freeform-document-collection",
        "name": "general",
        "description": "Named documents",
        "validation": False,
    },
    {
        "baseType": "templated-document-collection",
        "name": "specs",
        "description": "Templated named documents",
        "template": "spec",
        "validation": True,
    },
    {
        "baseType": "freeform-single-document",
        "name": "notes",
        "description": "One freeform document",
        "validation": False,
    },
    {
        "baseType": "templated-single-document",
        "name": "mental_model",
        "description": "One templated document",
        "template": "mental_model",
        "validation": True,
    },
    {
        "baseType": "freeform-log",
        "name": "session-log",
        "description": "Freeform log",
        "validation": False,
    },
    {
        "baseType": "templated-log",
        "name": "session_summary",
        "description": "Templated log",
        "template": "session_summary",
        "validation": True,
    },
]


def write_config(root: Path, project: str, types: list[dict]) -> Path:
    project_dir = root / "projects" / project
    project_dir.mkdir(parents=True, exist_ok=True)
    path = project_dir / "project-config.json"
    path.write_text(json.dumps({"contextTypes": types}, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def builtin_templates(tmp_path: Path) -> Path:
    d = tmp_path / "builtin"
    d.mkdir()
    (d / "mental_model.md").write_text("# Mental Model\n\n## Architecture\n\n## Components\n")
    (d / "session_summary.md").write_text("# Session: {{ title }}\n\n## Done\n\n## Next\n")
    (d / "spec.md").write_text("# Spec\n\n## Scope\n")
    return d


@pytest.fixture
def store(tmp_path: Path, builtin_templates: Path) -> ContextStore:
    root = tmp_path / "root"
    write_config(root, PROJECT, TYPES)
    return ContextStore(root, templates_dir=builtin_templates)


@pytest.fixture
def project_dir(store: ContextStore) -> Path:
    return store.project_path(PROJECT)
