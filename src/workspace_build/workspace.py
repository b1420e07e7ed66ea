# src/workspace_build/workspace.py
"""Workspace package discovery, filtering and dependency ordering."""

import graphlib
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .constants import DEFAULT_PACKAGE_GLOBS, DEPENDENCY_FIELDS
from .errors import CycleError, DiscoveryError, FilterError
from .filters import as_pattern_list, compile_patterns, has_glob_chars, matches_any
from .types import Package
from .utils import load_json_object, plural
from .utils_logs import get_logger


# --------------------------------------------------------------------------- #
# discovery
# --------------------------------------------------------------------------- #


def _read_manifest(path: Path) -> dict[str, Any]:
    try:
        return load_json_object(path)
    except (OSError, ValueError) as e:
        xmsg = f"Could not read workspace manifest {path}: {e}"
        raise DiscoveryError(xmsg) from e


def get_package_globs(root: Path) -> list[str]:
    """Return the package directory globs declared by the workspace.

    Search order:
      1. ``lerna.json`` → ``packages``
      2. ``package.json`` → ``workspaces`` (list, or object with ``packages``)
      3. the default ``packages/*``
    """
    lerna_json = root / "lerna.json"
    root_json = root / "package.json"

    if not lerna_json.exists() and not root_json.exists():
        xmsg = f"No lerna.json or package.json found in workspace root {root}"
        raise DiscoveryError(xmsg)

    if lerna_json.exists():
        lerna = _read_manifest(lerna_json)
        packages = lerna.get("packages")
        if isinstance(packages, list) and packages:
            return [str(p) for p in packages]

    if root_json.exists():
        manifest = _read_manifest(root_json)
        workspaces = manifest.get("workspaces")
        if isinstance(workspaces, dict):
            workspaces = workspaces.get("packages")
        if isinstance(workspaces, list) and workspaces:
            return [str(p) for p in workspaces]

    return list(DEFAULT_PACKAGE_GLOBS)


def _expand_package_glob(root: Path, pattern: str) -> list[Path]:
    pattern = pattern.strip().rstrip("/")
    try:
        matches = list(root.glob(f"{pattern}/package.json"))
    except (ValueError, NotImplementedError) as e:
        xmsg = f"Invalid workspace package glob {pattern!r}: {e}"
        raise DiscoveryError(xmsg) from e
    return [
        m.parent.resolve()
        for m in matches
        if m.is_file() and "node_modules" not in m.relative_to(root).parts
    ]


def _collect_dependencies(manifest: dict[str, Any]) -> tuple[str, ...]:
    names: dict[str, None] = {}
    for key in DEPENDENCY_FIELDS:
        deps = manifest.get(key)
        if isinstance(deps, dict):
            names.update(dict.fromkeys(str(d) for d in deps))
    return tuple(names)


def load_package(location: Path) -> Package:
    """Read one package directory into a Package."""
    manifest = _read_manifest(location / "package.json")
    name = manifest.get("name")
    if not isinstance(name, str) or not name:
        xmsg = f"Package at {location} has no `name` in package.json"
        raise DiscoveryError(xmsg)

    version = manifest.get("version")
    return Package(
        name=name,
        location=location,
        manifest=manifest,
        version=version if isinstance(version, str) else "",
        private=manifest.get("private") is True,
        dependencies=_collect_dependencies(manifest),
    )


def list_packages(root: Path | str) -> list[Package]:
    """Enumerate every package declared by the workspace at `root`.

    Globs prefixed with ``!`` exclude directories matched by earlier globs.
    Results are ordered by location.
    """
    logger = get_logger()
    root = Path(root).resolve()
    if not root.is_dir():
        xmsg = f"Workspace root is not a directory: {root}"
        raise DiscoveryError(xmsg)

    globs = get_package_globs(root)
    logger.trace("[DISCOVER] package globs: %s", globs)

    locations: dict[Path, None] = {}
    for pattern in globs:
        if pattern.startswith("!"):
            for loc in _expand_package_glob(root, pattern[1:]):
                locations.pop(loc, None)
            continue
        locations.update(dict.fromkeys(_expand_package_glob(root, pattern)))

    packages: list[Package] = []
    seen: dict[str, Path] = {}
    for location in sorted(locations):
        pkg = load_package(location)
        if pkg.name in seen:
            xmsg = (
                f"Duplicate package name {pkg.name!r}:"
                f" {seen[pkg.name]} and {pkg.location}"
            )
            raise DiscoveryError(xmsg)
        seen[pkg.name] = pkg.location
        packages.append(pkg)
        logger.trace("[DISCOVER] %s → %s", pkg.name, pkg.location)

    logger.debug("Discovered %d package%s in %s", len(packages), plural(packages), root)
    return packages


# --------------------------------------------------------------------------- #
# filtering
# --------------------------------------------------------------------------- #


def filter_packages(
    packages: list[Package],
    scope: str | Iterable[str] | None = None,
    ignore: str | Iterable[str] | None = None,
    *,
    include_private: bool = False,
) -> list[Package]:
    """Keep packages matching any `scope` pattern and no `ignore` pattern.

    Private packages are dropped unless `include_private` is set. When
    patterns were given but nothing survives, FilterError is raised.
    """
    logger = get_logger()
    include = compile_patterns(as_pattern_list(scope))
    exclude = compile_patterns(as_pattern_list(ignore))

    filtered = [p for p in packages if include_private or not p.private]

    if not (include or exclude):
        return filtered

    logger.debug("Filtering packages: scope=%s ignore=%s", include, exclude)
    known = {p.name for p in packages}
    for pattern in include:
        if not has_glob_chars(pattern) and pattern not in known:
            logger.warning("Scope %r does not name any package", pattern)

    chosen = [
        p
        for p in filtered
        if (not include or matches_any(p.name, include))
        and not matches_any(p.name, exclude)
    ]
    if not chosen:
        xmsg = (
            "No packages remain after filtering"
            f" (scope={include or '*'}, ignore={exclude or 'none'})"
        )
        raise FilterError(xmsg)
    return chosen


# --------------------------------------------------------------------------- #
# ordering
# --------------------------------------------------------------------------- #


def batch_packages(packages: list[Package]) -> list[list[Package]]:
    """Group packages into batches; each batch depends only on earlier ones.

    Only dependencies on packages in `packages` are considered. Within a
    batch the input order is kept.
    """
    by_name = {p.name: p for p in packages}
    position = {p.name: i for i, p in enumerate(packages)}

    sorter: graphlib.TopologicalSorter[str] = graphlib.TopologicalSorter()
    for pkg in packages:
        local = [d for d in pkg.dependencies if d in by_name and d != pkg.name]
        sorter.add(pkg.name, *local)

    try:
        sorter.prepare()
    except graphlib.CycleError as e:
        raise CycleError(e.args[1]) from e

    batches: list[list[Package]] = []
    while sorter.is_active():
        ready = sorted(sorter.get_ready(), key=position.__getitem__)
        batches.append([by_name[name] for name in ready])
        sorter.done(*ready)
    return batches


def get_sorted_packages(
    root: Path | str,
    scope: str | Iterable[str] | None = None,
    ignore: str | Iterable[str] | None = None,
) -> list[Package]:
    """Return the non-private, filtered packages in dependency order."""
    logger = get_logger()
    packages = list_packages(root)
    filtered = filter_packages(packages, scope, ignore, include_private=False)
    batches = batch_packages(filtered)

    for i, batch in enumerate(batches, 1):
        logger.trace("[ORDER] batch %d: %s", i, [p.name for p in batch])

    return [pkg for batch in batches for pkg in batch]
