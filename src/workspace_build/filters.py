# src/workspace_build/filters.py
"""Glob helpers for matching package names against --scope/--ignore patterns."""

import re
from collections.abc import Iterable
from fnmatch import fnmatchcase

from .errors import FilterError

_GLOB_CHARS = re.compile(r"[*?\[\]{}]")


def has_glob_chars(value: str) -> bool:
    return bool(_GLOB_CHARS.search(value))


def as_pattern_list(value: str | Iterable[str] | None) -> list[str]:
    """Accept a single pattern or any iterable of patterns."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def validate_pattern(pattern: str) -> None:
    """Raise FilterError for patterns we refuse to interpret."""
    if not pattern.strip():
        xmsg = "Empty package filter pattern"
        raise FilterError(xmsg)

    depth = 0
    in_class = False
    for ch in pattern:
        if in_class:
            if ch == "]":
                in_class = False
            continue
        if ch == "[":
            in_class = True
        elif ch == "]":
            xmsg = f"Unbalanced ']' in package filter {pattern!r}"
            raise FilterError(xmsg)
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                xmsg = f"Unbalanced '}}' in package filter {pattern!r}"
                raise FilterError(xmsg)

    if in_class:
        xmsg = f"Unterminated '[' in package filter {pattern!r}"
        raise FilterError(xmsg)
    if depth:
        xmsg = f"Unterminated '{{' in package filter {pattern!r}"
        raise FilterError(xmsg)


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, e.g. ``@app/{core,cli}`` → two patterns.

    The pattern must already be balanced (see `validate_pattern`).
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]

    depth = 0
    options: list[str] = []
    last = start + 1
    for i in range(start, len(pattern)):
        ch = pattern[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                options.append(pattern[last:i])
                end = i
                break
        elif ch == "," and depth == 1:
            options.append(pattern[last:i])
            last = i + 1
    else:  # pragma: no cover - guarded by validate_pattern
        return [pattern]

    prefix, suffix = pattern[:start], pattern[end + 1 :]
    expanded: list[str] = []
    for option in options:
        expanded.extend(expand_braces(f"{prefix}{option}{suffix}"))
    return expanded


def compile_patterns(patterns: Iterable[str]) -> list[str]:
    """Validate and brace-expand a list of user patterns."""
    compiled: list[str] = []
    for pattern in patterns:
        validate_pattern(pattern)
        compiled.extend(expand_braces(pattern))
    return compiled


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    return any(fnmatchcase(name, p) for p in patterns)
