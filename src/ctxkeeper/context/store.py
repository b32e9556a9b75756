"""Context store: directory and file operations for typed project contexts.

Markdown files are the source of truth. Every public operation returns a
`PersistenceResponse`; filesystem problems become failure messages instead of
exceptions. File I/O runs in worker threads so batch reads and archive moves
can proceed concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ctxkeeper.config import KeeperConfig
from ctxkeeper.context import identity
from ctxkeeper.context.errors import IdentityError, TemplateNotFoundError
from ctxkeeper.context.models import PersistenceResponse, StorageKind, TypeConfig
from ctxkeeper.context.project_config import ConfigCache, ProjectConfigStore
from ctxkeeper.context.templates import TemplateResolver

logger = logging.getLogger(__name__)

CONTEXT_NOT_FOUND = "Context not found. Have you created it using create_context yet?"

# Attempts at finding a free timestamped name for a log entry
_LOG_NAME_ATTEMPTS = 5


class ContextStore:
    """Read/write access to project contexts under a root directory."""

    def __init__(
        self,
        root: Path,
        templates_dir: Path | None = None,
        config_cache: ConfigCache | None = None,
    ) -> None:
        self.root = root
        self.projects_dir = root / "projects"
        self.configs = ProjectConfigStore(self.projects_dir, config_cache)
        self.templates = TemplateResolver(templates_dir or KeeperConfig().templates_dir)
        self._last_log_time: datetime | None = None

    @classmethod
    def from_config(cls, config: KeeperConfig) -> ContextStore:
        return cls(config.root_dir, templates_dir=config.templates_dir)

    # ── Paths ─────────────────────────────────────────────────

    def project_path(self, project: str) -> Path:
        return self.projects_dir / project

    def _type_dir(self, project: str, type_name: str) -> Path:
        return self.project_path(project) / type_name

    # ── Projects ──────────────────────────────────────────────

    async def init_project(self, project: str) -> PersistenceResponse:
        """Create a project directory. An existing project is a failure, not a crash."""
        if not identity.valid_name(project):
            return PersistenceResponse.fail(f"Invalid project name '{project}'.")
        try:
            await asyncio.to_thread(self._create_project_dir, project)
        except FileExistsError:
            return PersistenceResponse.fail(f"Project '{project}' already exists.")
        except OSError as e:
            return PersistenceResponse.fail(f"Failed to create project '{project}': {e}")
        logger.info("Created project %s", project)
        return PersistenceResponse.ok()

    def _create_project_dir(self, project: str) -> None:
        self.projects_dir.mkdir(parents=True, exist_ok=True)
        # No exist_ok: the atomic mkdir decides between concurrent creators
        self.project_path(project).mkdir()

    async def list_projects(self) -> PersistenceResponse:
        try:
            names = await asyncio.to_thread(self._project_names)
        except OSError as e:
            return PersistenceResponse.fail(f"Failed to list projects: {e}")
        return PersistenceResponse.ok(names)

    def _project_names(self) -> list[str]:
        self.root.mkdir(parents=True, exist_ok=True)
        if not self.projects_dir.is_dir():
            return []
        return sorted(p.name for p in self.projects_dir.iterdir() if p.is_dir())

    async def get_project_config(self, project: str) -> PersistenceResponse:
        return await self.configs.get(project)

    async def _type_config(
        self, op: str, project: str, context_type: str
    ) -> tuple[TypeConfig | None, PersistenceResponse | None]:
        """Look up a configured type, or the failure response explaining why not."""
        if not identity.valid_name(project):
            return None, PersistenceResponse.fail(f"Invalid project name '{project}'.")
        response = await self.configs.get(project)
        if not response.success or response.config is None:
            return None, PersistenceResponse.fail(
                f"{op}: Failed to load project configuration.", *(response.errors or [])
            )
        type_config = response.config.find(context_type)
        if type_config is None:
            return None, PersistenceResponse.fail(
                f"Context type '{context_type}' not found in project configuration"
            )
        return type_config, None

    # ── Write ─────────────────────────────────────────────────

    async def write_context(
        self, project: str, context_type: str, context_name: str | None, content: str
    ) -> PersistenceResponse:
        """Write one document. Single and collection types overwrite; logs append."""
        type_config, failure = await self._type_config("write_context", project, context_type)
        if failure:
            return failure

        type_dir = self._type_dir(project, type_config.name)
        try:
            if type_config.base_type.kind is StorageKind.LOG:
                identifier = await self._write_log_entry(type_dir, type_config, content)
            else:
                identifier = identity.for_write(
                    type_config.base_type, type_config.name, context_name
                )
                if not identity.valid_name(identifier):
                    return PersistenceResponse.fail(f"Invalid context name '{identifier}'.")
                await asyncio.to_thread(_write_file, type_dir / f"{identifier}.md", content)
        except IdentityError as e:
            return PersistenceResponse.fail(str(e))
        except OSError as e:
            return PersistenceResponse.fail(f"Failed to write context: {e}")

        logger.info("Wrote %s/%s/%s.md (%d chars)", project, type_config.name, identifier, len(content))
        return PersistenceResponse.ok([identifier])

    async def _write_log_entry(self, type_dir: Path, type_config: TypeConfig, content: str) -> str:
        """Create a new timestamped entry, never replacing an existing one."""
        for _ in range(_LOG_NAME_ATTEMPTS):
            identifier = identity.for_write(
                type_config.base_type, type_config.name, None, now=self._next_log_time()
            )
            try:
                await asyncio.to_thread(
                    _write_file, type_dir / f"{identifier}.md", content, exclusive=True
                )
                return identifier
            except FileExistsError:
                # Name taken by another writer; wait for the clock to move
                await asyncio.sleep(0.001)
        raise FileExistsError(f"no free log entry name for '{type_config.name}'")

    def _next_log_time(self) -> datetime:
        """Millisecond UTC time, strictly increasing across this store's log writes."""
        now = datetime.now(timezone.utc)
        now = now.replace(microsecond=now.microsecond // 1000 * 1000)
        if self._last_log_time is not None and now <= self._last_log_time:
            now = self._last_log_time + timedelta(milliseconds=1)
        self._last_log_time = now
        return now

    # ── Read ──────────────────────────────────────────────────

    async def get_context(
        self, project: str, context_type: str, names: list[str] | None = None
    ) -> PersistenceResponse:
        """Read named documents (all must exist) or, without names, every document of the type."""
        type_config, failure = await self._type_config("get_context", project, context_type)
        if failure:
            return failure

        type_dir = self._type_dir(project, type_config.name)
        try:
            identifiers = await self._resolve_identifiers(type_dir, type_config, names)
        except IdentityError as e:
            return PersistenceResponse.fail(str(e))
        except OSError as e:
            return PersistenceResponse.fail(f"Failed to read context: {e}")

        results = await asyncio.gather(
            *(asyncio.to_thread(_read_one, type_dir, i) for i in identifiers)
        )
        errors = [error for _, error in results if error]
        if errors:
            return PersistenceResponse.fail(*errors)
        return PersistenceResponse.ok([content for content, _ in results])

    async def _resolve_identifiers(
        self, type_dir: Path, type_config: TypeConfig, names: list[str] | None
    ) -> list[str]:
        if names is not None:
            return [
                identity.for_lookup(type_config.base_type, type_config.name, name)
                for name in names
            ]
        stems = await asyncio.to_thread(_stored_identifiers, type_dir)
        return identity.select_all(type_config.base_type, type_config.name, stems)

    # ── Clear (archive) ───────────────────────────────────────

    async def clear_context(
        self, project: str, context_type: str, names: list[str] | None = None
    ) -> PersistenceResponse:
        """Move documents into a fresh archive bucket. Missing documents are skipped."""
        type_config, failure = await self._type_config("clear_context", project, context_type)
        if failure:
            return failure

        type_dir = self._type_dir(project, type_config.name)
        archive_root = self.project_path(project) / "archive" / type_config.name
        try:
            identifiers = await self._resolve_identifiers(type_dir, type_config, names)
            archive_dir = await asyncio.to_thread(_make_bucket, archive_root)
        except IdentityError as e:
            return PersistenceResponse.fail(str(e))
        except OSError as e:
            return PersistenceResponse.fail(f"Failed to archive context: {e}")

        results = await asyncio.gather(
            *(asyncio.to_thread(_archive_one, type_dir, archive_dir, i) for i in identifiers)
        )
        errors = [error for _, error in results if error]
        if errors:
            return PersistenceResponse.fail(*errors)

        moved = [i for i, (was_moved, _) in zip(identifiers, results) if was_moved]
        if moved:
            logger.info(
                "Archived %d %s context(s) to %s", len(moved), type_config.name, archive_dir.name
            )
        return PersistenceResponse.ok(moved)

    # ── Listing ───────────────────────────────────────────────

    async def list_all_context_for_type(self, project: str, context_type: str) -> PersistenceResponse:
        """Collection types list stored names; other types are a single entry."""
        type_config, failure = await self._type_config(
            "list_all_context_for_type", project, context_type
        )
        if failure:
            return failure
        if type_config.base_type.kind is not StorageKind.COLLECTION:
            return PersistenceResponse.ok([type_config.name])

        try:
            stems = await asyncio.to_thread(
                _stored_identifiers, self._type_dir(project, type_config.name)
            )
        except OSError as e:
            return PersistenceResponse.fail(f"Failed to list contexts: {e}")
        return PersistenceResponse.ok(sorted(stems))

    async def list_all_context_for_project(self, project: str) -> PersistenceResponse:
        """Every context of the project as `type/name` entries."""
        if not identity.valid_name(project):
            return PersistenceResponse.fail(f"Invalid project name '{project}'.")
        response = await self.configs.get(project)
        if not response.success or response.config is None:
            return PersistenceResponse.fail(
                "list_all_context_for_project: Failed to load project configuration.",
                *(response.errors or []),
            )

        listings = await asyncio.gather(
            *(
                self.list_all_context_for_type(project, tc.name)
                for tc in response.config.context_types
            )
        )
        entries: list[str] = []
        errors: list[str] = []
        for tc, listing in zip(response.config.context_types, listings):
            if not listing.success:
                errors.extend(listing.errors or [])
                continue
            entries.extend(f"{tc.name}/{name}" for name in listing.data or [])
        if errors:
            return PersistenceResponse.fail(*errors)
        return PersistenceResponse.ok(entries)

    # ── Templates ─────────────────────────────────────────────

    async def get_template(self, project: str, context_type: str) -> PersistenceResponse:
        type_config, failure = await self._type_config("get_template", project, context_type)
        if failure:
            return failure
        try:
            content = await asyncio.to_thread(
                self.templates.resolve, self.project_path(project), type_config
            )
        except (TemplateNotFoundError, OSError) as e:
            return PersistenceResponse.fail(
                f"Failed to load or initialize template for {context_type}: {e}"
            )
        return PersistenceResponse.ok([content])


# ── File helpers (run in worker threads) ──────────────────────


def _write_file(path: Path, content: str, exclusive: bool = False) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("x" if exclusive else "w", encoding="utf-8") as f:
        f.write(content)


def _stored_identifiers(type_dir: Path) -> list[str]:
    type_dir.mkdir(parents=True, exist_ok=True)
    return [p.stem for p in type_dir.glob("*.md") if p.is_file()]


def _read_one(type_dir: Path, identifier: str) -> tuple[str | None, str | None]:
    """Read one document; returns (content, error line)."""
    path = type_dir / f"{identifier}.md"
    if not identity.valid_name(identifier):
        return None, f"{path.name}: Invalid context name"
    try:
        return path.read_text(encoding="utf-8"), None
    except FileNotFoundError:
        return None, f"{path.name}: {CONTEXT_NOT_FOUND}"
    except (OSError, UnicodeDecodeError) as e:
        return None, f"{path.name}: {e}"


def _make_bucket(archive_root: Path) -> Path:
    """Create this call's archive directory, never reusing an existing one."""
    archive_root.mkdir(parents=True, exist_ok=True)
    while True:
        taken = [p.name for p in archive_root.iterdir()]
        bucket = archive_root / identity.batch_id(taken)
        try:
            bucket.mkdir()
            return bucket
        except FileExistsError:
            continue


def _archive_one(type_dir: Path, archive_dir: Path, identifier: str) -> tuple[bool, str | None]:
    """Move one document into the bucket; returns (moved, error line)."""
    source = type_dir / f"{identifier}.md"
    if not identity.valid_name(identifier):
        return False, f"{source.name}: Invalid context name"
    try:
        source.replace(archive_dir / source.name)
        return True, None
    except FileNotFoundError:
        return False, None
    except OSError as e:
        return False, f"{source.name}: {e}"
