# src/workspace_build/cli.py

import argparse
import platform
import sys
from difflib import get_close_matches
from pathlib import Path

from .actions import get_metadata, watch_for_changes
from .build import rebuild_package, run_all_builds
from .config import determine_log_level, load_and_validate_config, resolve_config
from .constants import DEFAULT_HINT_CUTOFF, DEFAULT_WATCH_INTERVAL
from .errors import WorkspaceBuildError
from .meta import DESCRIPTION, PROGRAM_DISPLAY, PROGRAM_SCRIPT
from .runtime import current_runtime
from .tools import resolve_toolchain
from .types import Options, Package, RootConfig
from .utils import plural, safe_log
from .utils_logs import LEVEL_ORDER, get_logger, set_log_level
from .workspace import get_sorted_packages, load_package


# --------------------------------------------------------------------------- #
# CLI setup and helpers
# --------------------------------------------------------------------------- #


class HintingArgumentParser(argparse.ArgumentParser):
    def known_option_strings(self) -> list[str]:
        known_opts: list[str] = []
        for action in self._actions:
            known_opts.extend([s for s in action.option_strings if s])
        return known_opts

    def hint_for(self, arg: str) -> str | None:
        flag = arg.split("=", 1)[0]
        close = get_close_matches(
            flag, self.known_option_strings(), n=1, cutoff=DEFAULT_HINT_CUTOFF
        )
        return close[0] if close else None

    def error(self, message: str) -> None:  # type: ignore[override]
        hint_lines: list[str] = []
        # Argparse message for bad flags is typically
        # "unrecognized arguments: --scpe ..."
        if "unrecognized arguments:" in message:
            bad = message.split("unrecognized arguments:", 1)[1].strip()
            for arg in (tok for tok in bad.split() if tok.startswith("-")):
                close = self.hint_for(arg)
                if close:
                    hint_lines.append(f"Hint: did you mean {close}?")

        self.print_usage(sys.stderr)
        full = f"{self.prog}: error: {message}"
        if hint_lines:
            full += "\n" + "\n".join(hint_lines)
        self.exit(2, full + "\n")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        xmsg = f"expected a positive integer, got {value!r}"
        raise argparse.ArgumentTypeError(xmsg) from e
    if number < 1:
        xmsg = f"expected a positive integer, got {value!r}"
        raise argparse.ArgumentTypeError(xmsg)
    return number


def _setup_parser() -> HintingArgumentParser:
    """Define and return the CLI argument parser."""
    # no prefix matching: an unknown flag must never alias a real one
    parser = HintingArgumentParser(
        prog=PROGRAM_SCRIPT, description=DESCRIPTION, allow_abbrev=False
    )

    # --- Package selection ---
    parser.add_argument(
        "--scope",
        action="append",
        metavar="GLOB",
        help="Only build packages whose name matches GLOB (repeatable).",
    )
    parser.add_argument(
        "--ignore",
        action="append",
        metavar="GLOB",
        help="Skip packages whose name matches GLOB (repeatable).",
    )

    # --- Build behavior ---
    parser.add_argument(
        "--watch",
        action="store_true",
        help=(
            "Keep running and rebuild packages when their sources change"
            f" (poll interval from config or {DEFAULT_WATCH_INTERVAL}s)."
        ),
    )
    parser.add_argument(
        "--root",
        metavar="DIR",
        help="Workspace root (default: current directory).",
    )
    parser.add_argument("-c", "--config", help="Path to build config file.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be copied and run without doing it.",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        metavar="N",
        help="Maximum number of tool processes running at once.",
    )

    # --- Color ---
    color = parser.add_mutually_exclusive_group()
    color.add_argument(
        "--no-color",
        dest="use_color",
        action="store_const",
        const=False,
        help="Disable ANSI color output.",
    )
    color.add_argument(
        "--color",
        dest="use_color",
        action="store_const",
        const=True,
        help="Force-enable ANSI color output (overrides auto-detect).",
    )
    color.set_defaults(use_color=None)

    # --- Version and verbosity ---
    parser.add_argument("--version", action="store_true", help="Show version info.")

    log_level = parser.add_mutually_exclusive_group()
    log_level.add_argument(
        "-q",
        "--quiet",
        action="store_const",
        const="warning",
        dest="log_level",
        help="Suppress non-critical output (same as --log-level warning).",
    )
    log_level.add_argument(
        "-v",
        "--verbose",
        action="store_const",
        const="debug",
        dest="log_level",
        help="Verbose output (same as --log-level debug).",
    )
    log_level.add_argument(
        "--log-level",
        choices=LEVEL_ORDER,
        default=None,
        dest="log_level",
        help="Set log verbosity level.",
    )
    return parser


def parse_options(argv: list[str] | None = None) -> Options:
    """Parse command-line tokens into Options.

    Unrecognized tokens are kept in `Options.extra` and otherwise ignored.
    """
    parser = _setup_parser()
    args, extra = parser.parse_known_args(argv)
    return Options(
        scope=tuple(args.scope or ()),
        ignore=tuple(args.ignore or ()),
        watch=bool(args.watch),
        root=Path(args.root) if args.root else None,
        config=args.config,
        dry_run=bool(args.dry_run),
        jobs=args.jobs,
        log_level=args.log_level,
        use_color=args.use_color,
        version=bool(args.version),
        extra=tuple(extra),
    )


def _warn_unknown_args(extra: tuple[str, ...]) -> None:
    logger = get_logger()
    parser = _setup_parser()
    for arg in extra:
        if not arg.startswith("-"):
            logger.warning("Ignoring unexpected argument: %s", arg)
            continue
        close = parser.hint_for(arg)
        if close:
            logger.warning("Ignoring unknown option %s (did you mean %s?)", arg, close)
        else:
            logger.warning("Ignoring unknown option %s", arg)


def _log_options(resolved: RootConfig) -> None:
    logger = get_logger()
    logger.info(
        "⚙️  Options: scope=%s ignore=%s watch=%s",
        resolved["scope"] or None,
        resolved["ignore"] or None,
        resolved["watch"],
    )


def _watch(packages: list[Package], resolved: RootConfig) -> None:
    """Hand over to the polling watcher after the initial build."""
    logger = get_logger()
    root = resolved["root"]
    toolchain = resolve_toolchain(root, resolved["tools"])
    watched = [p for p in packages if not p.build_script]

    def rebuild(changed: list[Package]) -> None:
        for pkg in changed:
            try:
                # package.json may have been edited
                rebuild_package(load_package(pkg.location), root, toolchain)
            except WorkspaceBuildError as e:
                logger.error("Rebuild of %s failed: %s", pkg.name, e)

    watch_for_changes(rebuild, watched, interval=resolved["watch_interval"])


# --------------------------------------------------------------------------- #
# Main entry
# --------------------------------------------------------------------------- #


def main(argv: list[str] | None = None) -> int:  # noqa: PLR0911
    logger = get_logger()  # init (use env + defaults)

    try:
        options = parse_options(argv)

        # --- Early runtime init (use CLI + env + defaults) ---
        if options.use_color is not None:
            current_runtime["use_color"] = options.use_color
        set_log_level(determine_log_level(options.log_level))

        logger.debug(
            "Runtime: Python %s (%s)\n    %s",
            platform.python_version(),
            platform.python_implementation(),
            sys.version.replace("\n", " "),
        )

        # --- Version flag ---
        if options.version:
            meta = get_metadata()
            logger.info("%s %s (%s)", PROGRAM_DISPLAY, meta.version, meta.commit)
            return 0

        _warn_unknown_args(options.extra)

        # --- Load configuration ---
        root = (options.root or Path.cwd()).expanduser().resolve()
        config_result = load_and_validate_config(root, options.config)
        config_path, raw_cfg = config_result if config_result else (None, None)

        resolved = resolve_config(options, raw_cfg, root)
        set_log_level(resolved["log_level"])
        logger.trace("[CONFIG] log-level re-resolved from config: %s", logger.level_name)

        _log_options(resolved)
        if config_path:
            logger.info("🔧 Using config: %s", config_path.name)
        logger.info("📁 Workspace root: %s", root)
        if resolved["dry_run"]:
            logger.info("🧪 Dry-run mode: no files will be written or tools run.\n")

        # --- Discover and order ---
        packages = get_sorted_packages(root, resolved["scope"], resolved["ignore"])
        if not packages:
            logger.warning("No packages to build in %s", root)
            return 0
        logger.info(
            "📦 %d package%s in build order: %s\n",
            len(packages),
            plural(packages),
            ", ".join(p.name for p in packages),
        )

        # --- Build ---
        results = run_all_builds(
            packages,
            root,
            tools=resolved["tools"],
            jobs=resolved["jobs"],
            dry_run=resolved["dry_run"],
        )
        failed = any(r.failed for r in results)

        # --- Watch ---
        if resolved["watch"]:
            if resolved["dry_run"]:
                logger.info("🧪 Dry-run mode: not entering watch mode.")
            else:
                _watch(packages, resolved)
                return 0

    except (WorkspaceBuildError, FileNotFoundError, ValueError, TypeError) as e:
        # controlled termination
        silent = getattr(e, "silent", False)
        if not silent:
            try:
                logger.error_if_not_debug(str(e))
            except Exception:  # noqa: BLE001
                safe_log(f"[FATAL] Logging failed while reporting: {e}")
        return getattr(e, "code", 1)

    except Exception as e:  # noqa: BLE001
        # unexpected internal error
        try:
            logger.critical_if_not_debug("Unexpected internal error: %s", e)
        except Exception:  # noqa: BLE001
            safe_log(f"[FATAL] Logging failed while reporting: {e}")

        return getattr(e, "code", 1)

    else:
        return 1 if failed else 0
