# tests/utils/fake_tools.py
"""A stand-in for esbuild/tsc that writes the files the real tools would."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from pathlib import Path

from workspace_build.types import ToolResult


def _flag_value(args: Sequence[str], prefix: str) -> str:
    for arg in args:
        if arg.startswith(prefix):
            return arg[len(prefix) :]
    raise AssertionError(f"missing {prefix} in {list(args)}")


class FakeToolRunner:
    """Callable with the signature of `tools.run_tool`.

    Records every call; `fail` decides which invocations exit non-zero and
    `tsc_output` is printed on every tsc run.
    """

    def __init__(
        self,
        *,
        fail: Callable[[list[str]], bool] | None = None,
        tsc_output: str = "",
    ) -> None:
        self.calls: list[list[str]] = []
        self.fail = fail or (lambda _args: False)
        self.tsc_output = tsc_output
        self._lock = threading.Lock()

    def __call__(self, args: Sequence[str], *, cwd: Path) -> ToolResult:
        argv = list(args)
        with self._lock:
            self.calls.append(argv)

        if self.fail(argv):
            return ToolResult(tuple(argv), 1, "", "✘ [ERROR] simulated failure")

        tool = Path(argv[0]).name
        if tool == "esbuild":
            self._esbuild(argv)
            return ToolResult(tuple(argv), 0)
        if tool == "tsc":
            self._tsc(argv)
            code = 2 if "error" in self.tsc_output else 0
            return ToolResult(tuple(argv), code, self.tsc_output, "")
        raise AssertionError(f"unexpected tool {argv[0]}")

    # --- fake outputs ---

    def _esbuild(self, argv: list[str]) -> None:
        out_dir = Path(_flag_value(argv, "--outdir="))
        out_base = Path(_flag_value(argv, "--outbase="))
        ext = ".mjs" if "--out-extension:.js=.mjs" in argv else ".js"
        for entry in (a for a in argv[1:] if not a.startswith("--")):
            rel = Path(entry).relative_to(out_base).with_suffix(ext)
            target = out_dir / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(f"// built from {entry}\n", encoding="utf-8")
            target.with_name(target.name + ".map").write_text("{}", encoding="utf-8")

    def _tsc(self, argv: list[str]) -> None:
        out_dir = Path(argv[argv.index("--outDir") + 1])
        root_dir_at = argv.index("--rootDir") + 1
        root_dir = Path(argv[root_dir_at])
        for entry in argv[root_dir_at + 1 :]:
            rel = Path(entry).relative_to(root_dir)
            target = out_dir / rel.with_name(rel.name.removesuffix(".ts") + ".d.ts")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("export declare const name: string;\n", encoding="utf-8")

    # --- query helpers ---

    def calls_for(self, tool: str) -> list[list[str]]:
        return [c for c in self.calls if Path(c[0]).name == tool]
