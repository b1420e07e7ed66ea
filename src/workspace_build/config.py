# src/workspace_build/config.py


import os
from pathlib import Path
from typing import Any, cast

from .config_validate import ValidationSummary, validate_config
from .constants import (
    DEFAULT_ENV_LOG_LEVEL,
    DEFAULT_ENV_WATCH_INTERVAL,
    DEFAULT_LOG_LEVEL,
    DEFAULT_WATCH_INTERVAL,
)
from .errors import ConfigError
from .filters import as_pattern_list
from .meta import PROGRAM_ENV, PROGRAM_SCRIPT
from .types import Options, RootConfig, RootConfigInput, ToolPaths
from .utils import load_jsonc, plural, remove_path_in_error_message
from .utils_logs import get_logger, log_dynamic


def _env(name: str) -> str | None:
    return os.getenv(f"{PROGRAM_ENV}_{name}") or os.getenv(name)


def determine_log_level(
    cli_log_level: str | None = None,
    config_log_level: str | None = None,
) -> str:
    """Resolve log level from CLI → env → config → default."""
    if cli_log_level:
        return cli_log_level

    env_log_level = _env(DEFAULT_ENV_LOG_LEVEL)
    if env_log_level:
        return env_log_level.lower()

    if config_log_level:
        return config_log_level.lower()

    return DEFAULT_LOG_LEVEL


def determine_watch_interval(config_interval: float | None = None) -> float:
    """Resolve watch interval from env → config → default."""
    env_interval = _env(DEFAULT_ENV_WATCH_INTERVAL)
    if env_interval:
        try:
            value = float(env_interval)
        except ValueError as e:
            xmsg = f"Invalid {DEFAULT_ENV_WATCH_INTERVAL} value: {env_interval!r}"
            raise ConfigError(xmsg) from e
        if value <= 0:
            xmsg = f"{DEFAULT_ENV_WATCH_INTERVAL} must be greater than 0"
            raise ConfigError(xmsg)
        return value

    if config_interval is not None:
        return float(config_interval)

    return DEFAULT_WATCH_INTERVAL


def find_config(
    root: Path,
    explicit: str | None = None,
) -> Path | None:
    """Locate a configuration file.

    Search order:
      1. Explicit path from CLI (--config)
      2. Default candidates in the workspace root:
         .{PROGRAM_SCRIPT}.jsonc, .{PROGRAM_SCRIPT}.json

    Returns the first matching path, or None if no config was found.
    """
    logger = get_logger()

    # --- 1. Explicit config path ---
    if explicit:
        config = Path(explicit).expanduser().resolve()
        if not config.exists():
            xmsg = f"Specified config file not found: {config}"
            raise FileNotFoundError(xmsg)
        if config.is_dir():
            xmsg = f"Specified config path is a directory, not a file: {config}"
            raise ValueError(xmsg)
        return config

    # --- 2. Default candidate files ---
    candidates = [
        root / f".{PROGRAM_SCRIPT}.jsonc",
        root / f".{PROGRAM_SCRIPT}.json",
    ]
    found = [p for p in candidates if p.exists()]

    if not found:
        # Expected absence, soft failure (continue)
        logger.debug("No config file found in %s", root)
        return None

    if len(found) > 1:
        names = ", ".join(p.name for p in found)
        logger.warning("Multiple config files detected (%s); using %s.", names, found[0].name)
    return found[0]


def load_config(config_path: Path) -> RootConfigInput | None:
    """Load configuration data from a JSON/JSONC file.

    Returns None for intentionally empty configs (empty file or ``{}``).
    """
    try:
        data = load_jsonc(config_path)
    except ValueError as e:
        clean_msg = remove_path_in_error_message(str(e), config_path)
        xmsg = (
            f"Error while loading configuration file '{config_path.name}': {clean_msg}"
        )
        raise ConfigError(xmsg) from e

    if not data:
        return None
    if not isinstance(data, dict):
        xmsg = (
            f"Configuration file '{config_path.name}' must contain an object,"
            f" not a {type(data).__name__}"
        )
        raise ConfigError(xmsg)
    return cast("RootConfigInput", data)


def _report_validation(summary: ValidationSummary, config_path: Path) -> None:
    """Pretty-print a validation summary through the logger."""
    mode = "strict mode" if summary.strict else "lenient mode"

    counts: list[str] = []
    if summary.errors:
        counts.append(f"{len(summary.errors)} error{plural(summary.errors)}")
    if summary.strict_warnings:
        counts.append(
            f"{len(summary.strict_warnings)} strict warning"
            f"{plural(summary.strict_warnings)}"
        )
    if summary.warnings:
        counts.append(f"{len(summary.warnings)} warning{plural(summary.warnings)}")

    if not counts:
        return

    level = "error" if not summary.valid else "warning"
    log_dynamic(level, f"{config_path.name} ({mode}): {', '.join(counts)}")
    for msg in summary.errors + summary.strict_warnings:
        log_dynamic("error", f"  • {msg}")
    for msg in summary.warnings:
        log_dynamic("warning", f"  • {msg}")


def load_and_validate_config(
    root: Path,
    explicit: str | None = None,
) -> tuple[Path, RootConfigInput] | None:
    """Find, load and validate the config. Returns None if there is none."""
    config_path = find_config(root, explicit)
    if config_path is None:
        return None

    raw = load_config(config_path)
    if raw is None:
        return None

    summary = validate_config(cast("dict[str, Any]", raw))
    _report_validation(summary, config_path)
    if not summary.valid:
        xmsg = f"Invalid configuration in {config_path.name}"
        raise ConfigError(xmsg)
    return config_path, raw


def resolve_config(
    options: Options,
    raw_cfg: RootConfigInput | None,
    root: Path,
) -> RootConfig:
    """Merge CLI options, environment and the config file into a RootConfig.

    CLI --scope/--ignore replace the config's patterns rather than extend them.
    """
    cfg: RootConfigInput = raw_cfg or {}

    tools: ToolPaths = {}
    if cfg.get("esbuild"):
        tools["esbuild"] = cfg["esbuild"]
    if cfg.get("tsc"):
        tools["tsc"] = cfg["tsc"]

    return {
        "root": root,
        "scope": list(options.scope) or as_pattern_list(cfg.get("scope")),
        "ignore": list(options.ignore) or as_pattern_list(cfg.get("ignore")),
        "log_level": determine_log_level(options.log_level, cfg.get("log_level")),
        "watch_interval": determine_watch_interval(cfg.get("watch_interval")),
        "jobs": options.jobs if options.jobs is not None else cfg.get("jobs"),
        "tools": tools,
        "watch": options.watch,
        "dry_run": options.dry_run,
    }
