# src/workspace_build/__init__.py

"""Workspace Build: bundle every package of a JS/TS monorepo in dependency order.

Full developer API
==================
This package re-exports all non-private symbols from its submodules,
making it suitable for programmatic use or custom integrations.
Anything prefixed with "_" is considered internal and may change.

Highlights:
    - main()                 → CLI entrypoint
    - get_sorted_packages()  → Discover, filter and order workspace packages
    - run_all_builds()       → Bundle + emit declarations for each package
    - watch_for_changes()    → Rebuild packages when their sources change
"""

from .actions import get_metadata, watch_for_changes
from .build import rebuild_package, run_all_builds
from .cli import main, parse_options
from .config import (
    determine_log_level,
    find_config,
    load_and_validate_config,
    load_config,
    resolve_config,
)
from .config_validate import ValidationSummary, validate_config
from .constants import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_WATCH_INTERVAL,
    OUT_DIR,
    SHARED_FILES,
)
from .errors import (
    BundleError,
    ConfigError,
    CycleError,
    DeclarationEmitError,
    DiscoveryError,
    FilterError,
    MissingSharedFileError,
    ToolNotFoundError,
    WorkspaceBuildError,
)
from .meta import PROGRAM_DISPLAY, PROGRAM_ENV, PROGRAM_PACKAGE, PROGRAM_SCRIPT
from .planner import copy_shared_files, find_entry_points, plan_package
from .runtime import current_runtime
from .tools import (
    bundle_command,
    declaration_command,
    emit_declarations,
    parse_diagnostics,
    resolve_tool,
    run_bundle,
    run_tool,
)
from .types import (
    BuildPlan,
    Diagnostic,
    Metadata,
    Options,
    Package,
    PackageResult,
    PackageState,
    RootConfig,
    RootConfigInput,
    Runtime,
    ToolResult,
)
from .utils_logs import LEVEL_ORDER, get_logger, set_log_level
from .workspace import (
    batch_packages,
    filter_packages,
    get_sorted_packages,
    list_packages,
    load_package,
)


__all__ = [  # noqa: RUF022
    # --- CLI / Actions ---
    "get_metadata",
    "main",
    "parse_options",
    "watch_for_changes",
    #
    # --- Workspace ---
    "batch_packages",
    "filter_packages",
    "get_sorted_packages",
    "list_packages",
    "load_package",
    #
    # --- Build Engine ---
    "bundle_command",
    "copy_shared_files",
    "declaration_command",
    "emit_declarations",
    "find_entry_points",
    "parse_diagnostics",
    "plan_package",
    "rebuild_package",
    "resolve_tool",
    "run_all_builds",
    "run_bundle",
    "run_tool",
    #
    # --- Config Handling ---
    "determine_log_level",
    "find_config",
    "load_and_validate_config",
    "load_config",
    "resolve_config",
    "validate_config",
    "ValidationSummary",
    #
    # --- Errors ---
    "BundleError",
    "ConfigError",
    "CycleError",
    "DeclarationEmitError",
    "DiscoveryError",
    "FilterError",
    "MissingSharedFileError",
    "ToolNotFoundError",
    "WorkspaceBuildError",
    #
    # --- Constants / Metadata / Runtime ---
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_WATCH_INTERVAL",
    "OUT_DIR",
    "SHARED_FILES",
    "PROGRAM_DISPLAY",
    "PROGRAM_ENV",
    "PROGRAM_PACKAGE",
    "PROGRAM_SCRIPT",
    "current_runtime",
    "LEVEL_ORDER",
    "get_logger",
    "set_log_level",
    #
    # --- Types ---
    "BuildPlan",
    "Diagnostic",
    "Metadata",
    "Options",
    "Package",
    "PackageResult",
    "PackageState",
    "RootConfig",
    "RootConfigInput",
    "Runtime",
    "ToolResult",
]
