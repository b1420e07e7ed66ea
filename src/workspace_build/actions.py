# src/workspace_build/actions.py
import re
import subprocess
import time
from collections.abc import Callable
from contextlib import suppress
from importlib import metadata
from pathlib import Path

from .constants import DEFAULT_WATCH_INTERVAL
from .meta import PROGRAM_SCRIPT
from .planner import find_entry_points
from .types import Metadata, Package
from .utils_logs import get_logger


def _collect_watched_files(packages: list[Package]) -> dict[Path, str]:
    """Map every watched source file to the name of the package owning it."""
    logger = get_logger()
    files: dict[Path, str] = {}
    for pkg in packages:
        for entry in find_entry_points(pkg.location):
            files[Path(entry).resolve()] = pkg.name
        manifest = pkg.location / "package.json"
        if manifest.exists():
            files[manifest.resolve()] = pkg.name
    logger.trace("[WATCH] tracking %d file(s)", len(files))
    return files


def _snapshot(files: dict[Path, str]) -> dict[Path, float]:
    mtimes: dict[Path, float] = {}
    for f in files:
        with suppress(FileNotFoundError):
            mtimes[f] = f.stat().st_mtime
    return mtimes


def watch_for_changes(
    rebuild_func: Callable[[list[Package]], None],
    packages: list[Package],
    interval: float = DEFAULT_WATCH_INTERVAL,
) -> None:
    """Poll source modification times and rebuild the packages that changed.

    Features:
    - Watches ``src/**/*.ts`` and ``package.json`` of each package.
    - Re-expands the source globs every loop to detect new or removed files.
    - Calls `rebuild_func` once per tick with the changed packages,
      in the same relative order as `packages`.
    Stops on KeyboardInterrupt.
    """
    logger = get_logger()
    logger.info(
        "👀 Watching %d package(s) (interval=%.2fs)... Press Ctrl+C to stop.",
        len(packages),
        interval,
    )

    watched = _collect_watched_files(packages)
    mtimes = _snapshot(watched)

    try:
        while True:
            time.sleep(interval)
            logger.trace("[WATCH] tick")

            current = _collect_watched_files(packages)
            changed: set[str] = set()
            # next baseline; taken before rebuild_func runs
            seen: dict[Path, float] = {}

            # removed files
            for f in set(mtimes) - set(current):
                if f in watched:
                    changed.add(watched[f])

            for f, owner in current.items():
                try:
                    new_m = f.stat().st_mtime
                except FileNotFoundError:
                    continue
                seen[f] = new_m
                old_m = mtimes.get(f)
                if old_m is None or new_m > old_m:
                    logger.trace("[WATCH] changed: %s", f)
                    changed.add(owner)

            watched = current
            mtimes = seen
            if changed:
                to_rebuild = [p for p in packages if p.name in changed]
                logger.info(
                    "\n🔁 Detected changes in %s. Rebuilding...",
                    ", ".join(p.name for p in to_rebuild),
                )
                rebuild_func(to_rebuild)
    except KeyboardInterrupt:
        logger.info("\n🛑 Watch stopped.")


def get_metadata() -> Metadata:
    """Return (version, commit) for this tool.

    - Installed distribution → importlib.metadata
    - Source checkout → pyproject.toml + git
    """
    logger = get_logger()
    version = "unknown"
    commit = "unknown"

    with suppress(metadata.PackageNotFoundError):
        version = metadata.version(PROGRAM_SCRIPT)

    root = Path(__file__).resolve().parents[2]
    pyproject = root / "pyproject.toml"
    if version == "unknown" and pyproject.exists():
        logger.trace("trying to read metadata from %s", pyproject)
        text = pyproject.read_text(encoding="utf-8")
        match = re.search(r'(?m)^\s*version\s*=\s*["\']([^"\']+)["\']', text)
        if match:
            version = match.group(1)

    # Try git for commit
    with suppress(OSError, subprocess.CalledProcessError):
        logger.trace("trying to get commit from git")
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],  # noqa: S607
            cwd=root,
            capture_output=True,
            text=True,
            check=True,
        )
        commit = result.stdout.strip() or commit

    logger.trace("got version %s with commit %s", version, commit)
    return Metadata(version, commit)
