# src/workspace_build/tools.py
"""Command lines and runners for the external bundler (esbuild) and
declaration emitter (tsc)."""

import re
import shutil
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Literal

from .constants import ESBUILD, ESM_OUT_EXTENSION, SOURCE_DIR, TSC
from .errors import BundleError, DeclarationEmitError, ToolNotFoundError
from .types import BuildPlan, Diagnostic, ToolPaths, ToolResult
from .utils import as_posix
from .utils_logs import get_logger

BundleFormat = Literal["cjs", "esm"]

# Fixed compiler options for declaration-only emission.
DECLARATION_FLAGS: tuple[str, ...] = (
    "--declaration",
    "--emitDeclarationOnly",
    "--skipLibCheck",
    "--module",
    "commonjs",
    "--target",
    "es2015",
    "--downlevelIteration",
    "--esModuleInterop",
    "--experimentalDecorators",
    "--pretty",
    "false",
)

_DIAG_WITH_POS = re.compile(
    r"^(?P<file>.+?)\((?P<line>\d+),(?P<col>\d+)\):\s+"
    r"(?P<cat>error|warning|message)\s+(?P<code>TS\d+):\s*(?P<msg>.*)$"
)
_DIAG_GLOBAL = re.compile(
    r"^(?P<cat>error|warning|message)\s+(?P<code>TS\d+):\s*(?P<msg>.*)$"
)


# --------------------------------------------------------------------------- #
# locating executables
# --------------------------------------------------------------------------- #


def _bin_candidates(root: Path, name: str) -> list[Path]:
    bin_dir = root / "node_modules" / ".bin"
    if sys.platform == "win32":
        return [bin_dir / f"{name}.cmd", bin_dir / f"{name}.exe", bin_dir / name]
    return [bin_dir / name]


def resolve_tool(name: str, root: Path, override: str | None = None) -> str:
    """Locate an executable: explicit override → node_modules/.bin → PATH."""
    logger = get_logger()

    if override:
        candidate = Path(override).expanduser()
        if not candidate.is_absolute():
            candidate = root / candidate
        if candidate.is_file():
            logger.trace("[TOOLS] %s → %s (override)", name, candidate)
            return str(candidate)
        found = shutil.which(override)
        if found:
            logger.trace("[TOOLS] %s → %s (override on PATH)", name, found)
            return found
        xmsg = f"Configured {name} executable not found: {override}"
        raise ToolNotFoundError(xmsg)

    for candidate in _bin_candidates(root, name):
        if candidate.is_file():
            logger.trace("[TOOLS] %s → %s (workspace)", name, candidate)
            return str(candidate)

    found = shutil.which(name)
    if found:
        logger.trace("[TOOLS] %s → %s (PATH)", name, found)
        return found

    xmsg = (
        f"Could not find `{name}`. Install it in the workspace"
        f" (npm install --save-dev {name if name != TSC else 'typescript'})"
        f" or set `{name}` in the config file."
    )
    raise ToolNotFoundError(xmsg)


def resolve_toolchain(root: Path, overrides: ToolPaths) -> dict[str, str]:
    return {
        ESBUILD: resolve_tool(ESBUILD, root, overrides.get("esbuild")),
        TSC: resolve_tool(TSC, root, overrides.get("tsc")),
    }


# --------------------------------------------------------------------------- #
# running
# --------------------------------------------------------------------------- #


def run_tool(args: Sequence[str], *, cwd: Path) -> ToolResult:
    """Run one external command to completion and capture its output."""
    logger = get_logger()
    logger.trace("[RUN] (cwd=%s) %s", cwd, " ".join(args))
    try:
        proc = subprocess.run(  # noqa: S603
            list(args),
            cwd=cwd,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as e:
        xmsg = f"Could not run {args[0]}: {e}"
        raise ToolNotFoundError(xmsg) from e
    return ToolResult(tuple(args), proc.returncode, proc.stdout, proc.stderr)


def bundle_command(esbuild: str, plan: BuildPlan, fmt: BundleFormat) -> list[str]:
    args = [
        esbuild,
        *plan.entry_points,
        f"--outdir={as_posix(plan.out_dir)}",
        f"--outbase={as_posix(plan.package.location / SOURCE_DIR)}",
        f"--format={fmt}",
        "--sourcemap=external",
        "--platform=node",
        "--log-level=warning",
    ]
    if fmt == "esm":
        args.append(f"--out-extension:.js={ESM_OUT_EXTENSION}")
    return args


def declaration_command(tsc: str, plan: BuildPlan) -> list[str]:
    return [
        tsc,
        *DECLARATION_FLAGS,
        "--outDir",
        as_posix(plan.out_dir),
        "--rootDir",
        as_posix(plan.package.location / SOURCE_DIR),
        *plan.entry_points,
    ]


def run_bundle(
    esbuild: str, plan: BuildPlan, fmt: BundleFormat, *, cwd: Path
) -> ToolResult:
    """Build one bundle format; raise BundleError if esbuild fails."""
    try:
        result = run_tool(bundle_command(esbuild, plan, fmt), cwd=cwd)
    except ToolNotFoundError as e:
        raise BundleError(str(e)) from e

    if not result.ok:
        detail = (result.stderr or result.stdout).strip()
        xmsg = f"{fmt.upper()} bundle failed for {plan.package.name}"
        if detail:
            xmsg += f":\n{detail}"
        raise BundleError(xmsg)
    return result


def parse_diagnostics(output: str) -> list[Diagnostic]:
    """Parse ``tsc --pretty false`` output into Diagnostics.

    Indented lines continue the previous diagnostic's message chain.
    """
    diagnostics: list[Diagnostic] = []
    for raw in output.splitlines():
        if not raw.strip():
            continue

        if raw[:1].isspace() and diagnostics:
            prev = diagnostics[-1]
            diagnostics[-1] = Diagnostic(
                message=f"{prev.message}\n{raw.strip()}",
                file=prev.file,
                line=prev.line,
                column=prev.column,
                category=prev.category,
                code=prev.code,
            )
            continue

        m = _DIAG_WITH_POS.match(raw)
        if m:
            diagnostics.append(
                Diagnostic(
                    message=m["msg"],
                    file=m["file"],
                    line=int(m["line"]),
                    column=int(m["col"]),
                    category=m["cat"],
                    code=m["code"],
                )
            )
            continue

        m = _DIAG_GLOBAL.match(raw)
        if m:
            diagnostics.append(
                Diagnostic(message=m["msg"], category=m["cat"], code=m["code"])
            )
            continue

        diagnostics.append(Diagnostic(message=raw.strip(), category="message"))
    return diagnostics


def emit_declarations(tsc: str, plan: BuildPlan, *, cwd: Path) -> list[Diagnostic]:
    """Emit ``.d.ts`` files for a plan's entry points and return diagnostics.

    Diagnostics never make this fail; only a tsc that cannot start, or that
    exits non-zero without reporting anything, raises DeclarationEmitError.
    """
    try:
        result = run_tool(declaration_command(tsc, plan), cwd=cwd)
    except ToolNotFoundError as e:
        raise DeclarationEmitError(str(e)) from e

    diagnostics = parse_diagnostics(result.stdout) + parse_diagnostics(result.stderr)
    if not result.ok and not diagnostics:
        xmsg = (
            f"Declaration emit for {plan.package.name} exited with"
            f" status {result.returncode} and no diagnostics"
        )
        raise DeclarationEmitError(xmsg)
    return diagnostics
