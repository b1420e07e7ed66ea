# src/workspace_build/build.py
"""Build orchestration: plan every package in order, run its tool actions on
a worker pool, and join them all before reporting."""

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any

from .constants import ESBUILD, TSC
from .errors import ToolNotFoundError, WorkspaceBuildError
from .planner import copy_shared_files, plan_package
from .tools import (
    bundle_command,
    declaration_command,
    emit_declarations,
    resolve_toolchain,
    run_bundle,
)
from .types import BuildPlan, Diagnostic, Package, PackageResult, PackageState, ToolPaths
from .utils import plural
from .utils_logs import GREEN, colorize, get_logger

# (package name, action); action is "cjs", "esm" or "dts"
_Action = tuple[str, str]


# --------------------------------------------------------------------------- #
# internal helpers
# --------------------------------------------------------------------------- #


def _log_diagnostics(name: str, diagnostics: list[Diagnostic]) -> None:
    logger = get_logger()
    if not diagnostics:
        logger.debug("No declaration diagnostics for %s", name)
        return
    logger.info("%d diagnostic%s for %s:", len(diagnostics), plural(diagnostics), name)
    for diagnostic in diagnostics:
        logger.info("%s", diagnostic)


def _resolve_toolchain_for_run(
    root: Path, tools: ToolPaths, *, dry_run: bool
) -> dict[str, str]:
    logger = get_logger()
    try:
        return resolve_toolchain(root, tools)
    except ToolNotFoundError as e:
        if not dry_run:
            raise
        logger.debug("[DRY-RUN] %s; showing bare command names", e)
        return {
            ESBUILD: tools.get("esbuild") or ESBUILD,
            TSC: tools.get("tsc") or TSC,
        }


def _prepare_package(
    plan: BuildPlan,
    result: PackageResult,
    root: Path,
    *,
    dry_run: bool,
) -> bool:
    """Run the synchronous part of a plan. Return True if actions should follow."""
    logger = get_logger()
    pkg = plan.package

    if plan.skip:
        logger.info("%s has custom build! skipping default build.", pkg.name)
        result.state = PackageState.SKIPPED
        return False

    # MissingSharedFileError is fatal for the whole run
    for dest in copy_shared_files(plan, root, dry_run=dry_run):
        if dry_run:
            logger.info("🧪 (dry-run) Would copy %s → %s", dest.name, plan.base_path)
        else:
            logger.debug("📄 %s → %s", dest.name, plan.base_path)

    result.state = PackageState.PLANNED
    if not plan.entry_points:
        logger.debug("No entry points under %s/src; nothing to build.", plan.base_path)
        result.state = PackageState.DONE
        return False
    return True


def _record_outcome(
    future: "Future[Any]",
    action: _Action,
    results: dict[str, PackageResult],
) -> None:
    logger = get_logger()
    name, kind = action
    result = results[name]
    try:
        value = future.result()
    except Exception as e:  # noqa: BLE001
        # any worker failure fails only its own package
        result.state = PackageState.FAILED
        result.errors.append(str(e))
        logger.error("%s (%s): %s", name, kind, e)
        return

    if kind == "dts":
        result.diagnostics.extend(value)
        _log_diagnostics(name, value)
    else:
        logger.debug("✅ %s bundle for %s", kind.upper(), name)


# --------------------------------------------------------------------------- #
# public API
# --------------------------------------------------------------------------- #


def run_all_builds(
    packages: list[Package],
    root: Path | str,
    *,
    tools: ToolPaths | None = None,
    jobs: int | None = None,
    dry_run: bool = False,
) -> list[PackageResult]:
    """Build every package in `packages` (already dependency-ordered).

    Planning is sequential. The CJS bundle, ESM bundle and declaration emit of
    each package are submitted to a shared pool and run concurrently with
    each other and with other packages. Every action is joined before
    returning; a failed action marks its package FAILED without stopping
    siblings.
    """
    logger = get_logger()
    root = Path(root).resolve()
    tools = tools or {}
    results: dict[str, PackageResult] = {p.name: PackageResult(p.name) for p in packages}
    toolchain: dict[str, str] | None = None
    futures: dict[Future[Any], _Action] = {}

    logger.trace("[run_all_builds] %s", [p.name for p in packages])

    with ThreadPoolExecutor(max_workers=jobs) as pool:
        for i, pkg in enumerate(packages, 1):
            result = results[pkg.name]
            plan = plan_package(pkg, root)
            logger.debug("Package %d/%d: %s", i, len(packages), pkg.name)

            if not _prepare_package(plan, result, root, dry_run=dry_run):
                continue

            if toolchain is None:
                toolchain = _resolve_toolchain_for_run(root, tools, dry_run=dry_run)
            esbuild, tsc = toolchain[ESBUILD], toolchain[TSC]

            if dry_run:
                for cmd in (
                    bundle_command(esbuild, plan, "cjs"),
                    bundle_command(esbuild, plan, "esm"),
                    declaration_command(tsc, plan),
                ):
                    logger.info("🧪 (dry-run) Would run: %s", " ".join(cmd))
                result.state = PackageState.DONE
                continue

            result.state = PackageState.BUILDING
            logger.info(
                "▶️  %s (%d entry point%s) → %s",
                pkg.name,
                len(plan.entry_points),
                plural(plan.entry_points),
                plan.base_path / plan.out_dir.name,
            )
            futures[pool.submit(run_bundle, esbuild, plan, "cjs", cwd=root)] = (
                pkg.name,
                "cjs",
            )
            futures[pool.submit(run_bundle, esbuild, plan, "esm", cwd=root)] = (
                pkg.name,
                "esm",
            )
            logger.info("Generating .d.ts files for... %s", pkg.name)
            futures[pool.submit(emit_declarations, tsc, plan, cwd=root)] = (
                pkg.name,
                "dts",
            )

        for future in as_completed(futures):
            _record_outcome(future, futures[future], results)

    for result in results.values():
        if result.state is PackageState.BUILDING:
            result.state = PackageState.DONE

    ordered = [results[p.name] for p in packages]
    failed = [r.name for r in ordered if r.failed]
    if failed:
        logger.error(
            "%d package%s failed: %s", len(failed), plural(failed), ", ".join(failed)
        )
    else:
        logger.info(colorize("🎉 All builds complete.", GREEN))
    return ordered


def rebuild_package(
    pkg: Package,
    root: Path | str,
    toolchain: dict[str, str],
) -> PackageResult:
    """Rebuild one package after a source change.

    Both bundles are rebuilt; declarations are re-emitted only when both
    bundles succeed.
    """
    logger = get_logger()
    root = Path(root).resolve()
    result = PackageResult(pkg.name)
    plan = plan_package(pkg, root)

    if plan.skip or not plan.entry_points:
        result.state = PackageState.SKIPPED
        return result

    result.state = PackageState.BUILDING
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = {
            pool.submit(run_bundle, toolchain[ESBUILD], plan, fmt, cwd=root): fmt
            for fmt in ("cjs", "esm")
        }
        for future in as_completed(futures):
            try:
                future.result()
            except Exception as e:  # noqa: BLE001
                result.state = PackageState.FAILED
                result.errors.append(str(e))
                logger.error("Rebuild of %s failed: %s", pkg.name, e)

    if result.failed:
        return result

    logger.info("Generating .d.ts files for... %s", pkg.name)
    try:
        result.diagnostics = emit_declarations(toolchain[TSC], plan, cwd=root)
    except WorkspaceBuildError as e:
        result.state = PackageState.FAILED
        result.errors.append(str(e))
        logger.error("%s (dts): %s", pkg.name, e)
        return result

    _log_diagnostics(pkg.name, result.diagnostics)
    result.state = PackageState.DONE
    logger.info("✅ Rebuilt %s", pkg.name)
    return result
