# src/workspace_build/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple, TypedDict

from typing_extensions import NotRequired


# --- config ------------------------------------------------------------------


class RootConfigInput(TypedDict, total=False):
    # package filters (a single glob or a list of globs)
    scope: str | list[str]
    ignore: str | list[str]

    # runtime behavior
    log_level: str
    strict_config: bool
    watch_interval: float
    jobs: int

    # executable overrides
    esbuild: str
    tsc: str


class ToolPaths(TypedDict):
    esbuild: NotRequired[str]
    tsc: NotRequired[str]


class RootConfig(TypedDict):
    root: Path
    scope: list[str]
    ignore: list[str]
    log_level: str
    watch_interval: float
    jobs: int | None
    tools: ToolPaths

    # runtime flags (CLI only, not persisted in configs)
    watch: bool
    dry_run: bool


class Runtime(TypedDict):
    log_level: str
    use_color: bool


class Metadata(NamedTuple):
    version: str
    commit: str


# --- options -----------------------------------------------------------------


@dataclass(frozen=True)
class Options:
    """Parsed command-line options. Immutable once created."""

    scope: tuple[str, ...] = ()
    ignore: tuple[str, ...] = ()
    watch: bool = False
    root: Path | None = None
    config: str | None = None
    dry_run: bool = False
    jobs: int | None = None
    log_level: str | None = None
    use_color: bool | None = None
    version: bool = False
    extra: tuple[str, ...] = ()


# --- workspace ---------------------------------------------------------------


@dataclass(frozen=True)
class Package:
    """A single package discovered in the workspace.

    Attributes:
        name: The package name from its package.json.
        version: The version string (empty if undeclared).
        location: Absolute path to the package directory.
        manifest: The parsed package.json.
        private: Whether the manifest sets ``"private": true``.
        dependencies: Names from every dependency map in the manifest,
            workspace-internal or not.
    """

    name: str
    location: Path
    manifest: dict[str, Any] = field(default_factory=dict, compare=False)
    version: str = ""
    private: bool = False
    dependencies: tuple[str, ...] = ()

    @property
    def build_script(self) -> str | None:
        scripts = self.manifest.get("scripts")
        if not isinstance(scripts, dict):
            return None
        build = scripts.get("build")
        if isinstance(build, str) and build.strip():
            return build
        return None


class PackageState(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    PLANNED = "planned"
    BUILDING = "building"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildPlan:
    """Everything needed to build one package, computed without side effects."""

    package: Package
    base_path: Path  # relative to the workspace root
    out_dir: Path  # absolute
    entry_points: tuple[str, ...] = ()
    skip: bool = False
    missing_shared_files: tuple[str, ...] = ()


# --- tools -------------------------------------------------------------------


@dataclass(frozen=True)
class ToolResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class Diagnostic:
    message: str
    file: str | None = None
    line: int | None = None
    column: int | None = None
    category: str = "error"
    code: str | None = None

    def __str__(self) -> str:
        if self.file is None:
            return self.message
        if self.line is None:
            return f"{self.file}: {self.message}"
        return f"{self.file} ({self.line},{self.column}): {self.message}"


@dataclass
class PackageResult:
    name: str
    state: PackageState = PackageState.PENDING
    errors: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.state is PackageState.FAILED
