"""Tests for project configuration loading and caching."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from ctxkeeper.context.models import BaseType, ProjectConfig
from ctxkeeper.context.project_config import ConfigCache, ProjectConfigStore

DEFAULT = {
    "contextTypes": [
        {
            "baseType": "freeform-document-collection",
            "name": "general",
            "description": (
                "Arbitrary named contexts with no template requirements. "
                "Each document stored separately and requires a filename."
            ),
            "validation": False,
        }
    ]
}


@pytest.fixture
def projects_dir(tmp_path: Path) -> Path:
    d = tmp_path / "projects"
    (d / "p").mkdir(parents=True)
    return d


@pytest.fixture
def configs(projects_dir: Path) -> ProjectConfigStore:
    return ProjectConfigStore(projects_dir)


def _write(projects_dir: Path, data) -> Path:
    path = projects_dir / "p" / "project-config.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return path


class TestDefaultConfig:
    @pytest.mark.asyncio
    async def test_creates_and_persists_default(self, configs, projects_dir):
        result = await configs.get("p")
        assert result.success
        assert result.config.to_dict() == DEFAULT

        on_disk = (projects_dir / "p" / "project-config.json").read_text(encoding="utf-8")
        assert json.loads(on_disk) == DEFAULT
        assert on_disk.startswith("{\n  ")  # pretty-printed

    @pytest.mark.asyncio
    async def test_unknown_project_is_a_failure(self, configs, projects_dir):
        result = await configs.get("missing")
        assert not result.success
        assert "does not exist" in result.errors[0]
        assert not (projects_dir / "missing").exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("project", ["..", "../..", "", "p/..", "a\x00b"])
    async def test_path_like_project_gets_no_default(self, configs, projects_dir, project):
        result = await configs.get(project)
        assert result.errors == [f"Invalid project name '{project}'."]
        assert project not in configs.cache
        assert not (projects_dir.parent / "project-config.json").exists()
        assert not (projects_dir / "project-config.json").exists()

    @pytest.mark.asyncio
    async def test_concurrent_first_calls(self, configs, projects_dir):
        r1, r2 = await asyncio.gather(configs.get("p"), configs.get("p"))
        assert r1.success and r2.success
        assert r1.config == r2.config
        assert (projects_dir / "p" / "project-config.json").is_file()


class TestLoading:
    @pytest.mark.asyncio
    async def test_loads_valid_file(self, configs, projects_dir):
        data = {
            "contextTypes": [
                {
                    "baseType": "templated-single-document",
                    "name": "custom",
                    "description": "Custom context type",
                    "template": "custom",
                    "validation": True,
                }
            ]
        }
        _write(projects_dir, data)
        result = await configs.get("p")
        assert result.success
        assert result.errors is None
        assert result.config.to_dict() == data
        assert result.config.context_types[0].base_type is BaseType.TEMPLATED_SINGLE_DOCUMENT

    @pytest.mark.asyncio
    async def test_validation_without_template_still_loads(self, configs, projects_dir):
        _write(projects_dir, {"contextTypes": [
            {"baseType": "templated-log", "name": "x", "description": "", "validation": True}
        ]})
        result = await configs.get("p")
        assert result.success
        assert result.config.context_types[0].template is None

    @pytest.mark.asyncio
    async def test_large_config(self, configs, projects_dir):
        _write(projects_dir, {"contextTypes": [
            {"baseType": "freeform-document-collection", "name": f"type-{i}", "description": "d"}
            for i in range(100)
        ]})
        result = await configs.get("p")
        assert result.success
        assert len(result.config.context_types) == 100


class TestParseErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text",
        [
            '{"contextTypes": [',
            "not json at all",
            '{"contextTypes": "nope"}',
            '{"contextTypes": [{"baseType": "weird", "name": "x"}]}',
            '{"contextTypes": [{"baseType": "freeform-log"}]}',
            '{"contextTypes": [{"baseType": "freeform-log", "name": "a"},'
            ' {"baseType": "freeform-log", "name": "a"}]}',
        ],
    )
    async def test_reports_parse_error(self, configs, projects_dir, text):
        _write(projects_dir, text)
        result = await configs.get("p")
        assert not result.success
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Error parsing config file")

    @pytest.mark.asyncio
    async def test_parse_failure_is_not_cached(self, configs, projects_dir):
        _write(projects_dir, "{ broken")
        first = await configs.get("p")
        assert not first.success
        assert "p" not in configs.cache

        _write(projects_dir, {"contextTypes": [
            {"baseType": "freeform-log", "name": "recovered", "description": ""}
        ]})
        second = await configs.get("p")
        assert second.success
        assert second.config.context_types[0].name == "recovered"

    @pytest.mark.asyncio
    async def test_config_path_is_directory(self, configs, projects_dir):
        (projects_dir / "p" / "project-config.json").mkdir()
        result = await configs.get("p")
        assert not result.success
        assert result.errors[0].startswith("Error reading config file")


class TestCache:
    @pytest.mark.asyncio
    async def test_external_edits_not_observed(self, configs, projects_dir):
        path = _write(projects_dir, DEFAULT)
        await configs.get("p")
        path.write_text("{ corrupted", encoding="utf-8")

        result = await configs.get("p")
        assert result.success
        assert result.config.find("general") is not None

    @pytest.mark.asyncio
    async def test_invalidate_forces_reread(self, configs, projects_dir):
        path = _write(projects_dir, DEFAULT)
        await configs.get("p")
        path.write_text(json.dumps({"contextTypes": []}), encoding="utf-8")
        configs.cache.invalidate("p")

        result = await configs.get("p")
        assert result.config.context_types == []

    @pytest.mark.asyncio
    async def test_instances_have_isolated_caches(self, tmp_path: Path):
        a, b = tmp_path / "a", tmp_path / "b"
        for root, name in ((a, "one"), (b, "two")):
            (root / "p").mkdir(parents=True)
            (root / "p" / "project-config.json").write_text(json.dumps({"contextTypes": [
                {"baseType": "freeform-log", "name": name, "description": ""}
            ]}))
        ra = await ProjectConfigStore(a).get("p")
        rb = await ProjectConfigStore(b).get("p")
        assert ra.config.context_types[0].name == "one"
        assert rb.config.context_types[0].name == "two"

    def test_shared_cache_object(self):
        cache = ConfigCache()
        cache.put("p", ProjectConfig.default())
        assert "p" in cache
        cache.clear()
        assert cache.get("p") is None
