# src/workspace_build/config_validate.py

import types
from dataclasses import dataclass, field
from difflib import get_close_matches
from typing import Any, Union, get_args, get_origin, get_type_hints

from .constants import DEFAULT_HINT_CUTOFF, DEFAULT_STRICT_CONFIG
from .types import RootConfigInput
from .utils_logs import LEVEL_ORDER

# --- constants ------------------------------------------------------

DRYRUN_KEYS = {"dry-run", "dry_run", "dryrun", "no-op", "no_op", "noop"}
DRYRUN_MSG = (
    "Ignored config key(s) {keys}: this tool has no config option for it. "
    "Use the CLI flag '--dry-run' instead."
)
WATCH_KEYS = {"watch"}
WATCH_MSG = (
    "Ignored config key(s) {keys}: watch mode is only enabled from the CLI "
    "('--watch'); use 'watch_interval' to tune it."
)


# --- dataclasses ------------------------------------------------------


@dataclass
class ValidationSummary:
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    strict_warnings: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    strict: bool = DEFAULT_STRICT_CONFIG


# --- helpers --------------------------------------------------------


def collect_msg(
    strict: bool,
    msg: str,
    summary: ValidationSummary,  # modified in function, not returned
    *,
    is_error: bool = False,
) -> None:
    """
    Route a message to the appropriate bucket.
    Errors are always fatal.
    Warnings may escalate to strict_warnings in strict mode.
    """
    if is_error:
        summary.errors.append(msg)
    elif strict:
        summary.strict_warnings.append(msg)
    else:
        summary.warnings.append(msg)


def _type_label(expected: Any) -> str:
    origin = get_origin(expected)
    if origin in (Union, types.UnionType):
        return " | ".join(_type_label(a) for a in get_args(expected))
    if origin is list:
        (item,) = get_args(expected) or (Any,)
        return f"list[{_type_label(item)}]"
    return getattr(expected, "__name__", str(expected))


def _matches_type(value: Any, expected: Any) -> bool:
    origin = get_origin(expected)
    if origin in (Union, types.UnionType):
        return any(_matches_type(value, a) for a in get_args(expected))
    if origin is list:
        if not isinstance(value, list):
            return False
        (item,) = get_args(expected) or (Any,)
        return all(_matches_type(v, item) for v in value)
    # bool is an int subclass; never accept it for numbers
    if expected in (int, float) and isinstance(value, bool):
        return False
    if expected is float:
        return isinstance(value, (int, float))
    if expected is Any:
        return True
    return isinstance(value, expected)


def _check_values(parsed_cfg: dict[str, Any], summary: ValidationSummary) -> None:
    level = parsed_cfg.get("log_level")
    if isinstance(level, str) and level.lower() not in LEVEL_ORDER:
        collect_msg(
            True,
            f"`log_level` must be one of {', '.join(LEVEL_ORDER)} (got {level!r}).",
            summary,
            is_error=True,
        )

    jobs = parsed_cfg.get("jobs")
    if isinstance(jobs, int) and not isinstance(jobs, bool) and jobs < 1:
        collect_msg(True, "`jobs` must be at least 1.", summary, is_error=True)

    interval = parsed_cfg.get("watch_interval")
    if (
        isinstance(interval, (int, float))
        and not isinstance(interval, bool)
        and interval <= 0
    ):
        collect_msg(
            True, "`watch_interval` must be greater than 0.", summary, is_error=True
        )

    for key in ("scope", "ignore"):
        patterns = parsed_cfg.get(key)
        if patterns == "" or (
            isinstance(patterns, list) and any(not str(p).strip() for p in patterns)
        ):
            collect_msg(
                True, f"`{key}` must not contain empty patterns.", summary, is_error=True
            )


# ---------------------------------------------------------------------------
# main validator
# ---------------------------------------------------------------------------


def validate_config(
    parsed_cfg: dict[str, Any], *, strict: bool | None = None
) -> ValidationSummary:
    """Validate a loaded config object.

    strict=True  →  warnings become fatal, but still listed separately
    strict=False →  warnings remain non-fatal
    strict=None  →  use the config's own `strict_config` key (default strict)
    """
    summary = ValidationSummary()

    strict_from_cfg = parsed_cfg.get("strict_config")
    if strict is not None:
        summary.strict = strict
    elif isinstance(strict_from_cfg, bool):
        summary.strict = strict_from_cfg

    schema = get_type_hints(RootConfigInput)

    # --- keys with a known better home ---
    for keys, tmpl in ((DRYRUN_KEYS, DRYRUN_MSG), (WATCH_KEYS, WATCH_MSG)):
        found = sorted(k for k in parsed_cfg if k in keys)
        if found:
            collect_msg(summary.strict, tmpl.format(keys=", ".join(found)), summary)

    # --- unknown keys ---
    for key in parsed_cfg:
        if key in schema or key in DRYRUN_KEYS or key in WATCH_KEYS:
            continue
        msg = f"Unknown config key {key!r}."
        close = get_close_matches(key, list(schema), n=1, cutoff=DEFAULT_HINT_CUTOFF)
        if close:
            msg += f" Hint: did you mean {close[0]!r}?"
        collect_msg(summary.strict, msg, summary)

    # --- value types ---
    for key, expected in schema.items():
        if key not in parsed_cfg:
            continue
        value = parsed_cfg[key]
        if not _matches_type(value, expected):
            collect_msg(
                True,
                f"`{key}` must be {_type_label(expected)},"
                f" not {type(value).__name__}.",
                summary,
                is_error=True,
            )

    _check_values(parsed_cfg, summary)

    summary.valid = not summary.errors and not summary.strict_warnings
    return summary
