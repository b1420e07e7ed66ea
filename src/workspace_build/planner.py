# src/workspace_build/planner.py
"""Per-package build planning.

`plan_package` only reads the filesystem; `copy_shared_files` is the single
place the planner writes anything. Logging is left to the caller.
"""

import os
import shutil
from pathlib import Path

from .constants import ENTRY_GLOB, OUT_DIR, SHARED_FILES, SOURCE_DIR
from .errors import MissingSharedFileError
from .types import BuildPlan, Package
from .utils import as_posix


def find_entry_points(package_dir: Path) -> tuple[str, ...]:
    """Return every ``src/**/*.ts`` file under `package_dir` as posix paths."""
    src = package_dir / SOURCE_DIR
    if not src.is_dir():
        return ()
    return tuple(sorted(as_posix(p) for p in src.glob(ENTRY_GLOB) if p.is_file()))


def plan_package(pkg: Package, root: Path) -> BuildPlan:
    """Compute the build plan for one package without touching the disk."""
    root = Path(root).resolve()
    base_path = Path(os.path.relpath(pkg.location, root))
    out_dir = pkg.location / OUT_DIR

    if pkg.build_script:
        return BuildPlan(package=pkg, base_path=base_path, out_dir=out_dir, skip=True)

    missing = tuple(name for name in SHARED_FILES if not (pkg.location / name).exists())
    return BuildPlan(
        package=pkg,
        base_path=base_path,
        out_dir=out_dir,
        entry_points=find_entry_points(pkg.location),
        missing_shared_files=missing,
    )


def copy_shared_files(
    plan: BuildPlan,
    root: Path,
    *,
    dry_run: bool = False,
) -> list[Path]:
    """Copy each missing shared file (README.md, LICENSE) from the workspace root.

    Every source is checked before anything is copied. Existing package files
    are never overwritten. Returns the destination paths written.
    """
    if not plan.missing_shared_files:
        return []

    sources = [Path(root) / name for name in plan.missing_shared_files]
    missing_sources = [s for s in sources if not s.is_file()]
    if missing_sources:
        names = ", ".join(s.name for s in missing_sources)
        xmsg = (
            f"Cannot copy {names} into {plan.package.name}:"
            f" not found in workspace root {root}"
        )
        raise MissingSharedFileError(xmsg)

    written: list[Path] = []
    for src in sources:
        dest = plan.package.location / src.name
        if dest.exists():
            continue
        if not dry_run:
            shutil.copyfile(src, dest)
        written.append(dest)
    return written
