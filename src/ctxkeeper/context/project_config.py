"""Per-project context type configuration with an explicit cache."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from pathlib import Path

from ctxkeeper.context.identity import valid_name
from ctxkeeper.context.models import PersistenceResponse, ProjectConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "project-config.json"


class ConfigCache:
    """Loaded configs keyed by project name. Lives as long as its owner."""

    def __init__(self) -> None:
        self._entries: dict[str, ProjectConfig] = {}

    def get(self, project: str) -> ProjectConfig | None:
        return self._entries.get(project)

    def put(self, project: str, config: ProjectConfig) -> None:
        self._entries[project] = config

    def invalidate(self, project: str) -> None:
        self._entries.pop(project, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, project: str) -> bool:
        return project in self._entries


class ProjectConfigStore:
    """Load, default and cache `project-config.json` for each project.

    A missing config file is replaced by the default config, written to disk
    immediately. Parse failures are returned, never cached, so a fixed file is
    picked up on the next call. External edits to a cached config are not seen.
    """

    def __init__(self, projects_dir: Path, cache: ConfigCache | None = None) -> None:
        self.projects_dir = projects_dir
        self.cache = cache if cache is not None else ConfigCache()

    def config_path(self, project: str) -> Path:
        return self.projects_dir / project / CONFIG_FILENAME

    async def get(self, project: str) -> PersistenceResponse:
        if not valid_name(project):
            return PersistenceResponse.fail(f"Invalid project name '{project}'.")
        cached = self.cache.get(project)
        if cached is not None:
            logger.debug("Config cache hit: %s", project)
            return PersistenceResponse(success=True, config=cached)

        result = await asyncio.to_thread(self._load, project)
        if result.success and result.config is not None:
            self.cache.put(project, result.config)
        return result

    def _load(self, project: str) -> PersistenceResponse:
        path = self.config_path(project)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self._create_default(project, path)
        except OSError as e:
            logger.warning("Cannot read config %s: %s", path, e)
            return PersistenceResponse.fail(f"Error reading config file: {e}")

        try:
            config = ProjectConfig.from_dict(json.loads(text))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Cannot parse config %s: %s", path, e)
            return PersistenceResponse.fail(f"Error parsing config file: {e}")
        return PersistenceResponse(success=True, config=config)

    def _create_default(self, project: str, path: Path) -> PersistenceResponse:
        if not path.parent.is_dir():
            return PersistenceResponse.fail(
                f"Project '{project}' does not exist. Create it first using create_project."
            )
        config = ProjectConfig.default()
        # Write then rename: a concurrent reader sees no file or a whole file
        tmp = path.with_name(f".{path.name}.{secrets.token_hex(4)}.tmp")
        try:
            tmp.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            logger.warning("Cannot write default config %s: %s", path, e)
            return PersistenceResponse.fail(f"Error writing default config file: {e}")
        logger.info("Created default config for project %s", project)
        return PersistenceResponse(success=True, config=config)
