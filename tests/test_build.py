# tests/test_build.py
"""Tests for the build orchestrator (run_all_builds / rebuild_package)."""

import stat
import sys
from pathlib import Path

import pytest

import workspace_build.build as mod_build
import workspace_build.tools as mod_tools
from tests.utils import FakeToolRunner, add_package, make_workspace
from workspace_build.errors import MissingSharedFileError, ToolNotFoundError
from workspace_build.types import PackageState, ToolResult
from workspace_build.utils_logs import set_log_level
from workspace_build.workspace import get_sorted_packages, load_package


def _in_package(dirname: str):
    """Match any tool invocation whose arguments point into packages/<dirname>."""
    marker = f"/packages/{dirname}/"
    return lambda argv: any(marker in a for a in argv[1:])


def _tree(path: Path) -> dict[str, str]:
    return {
        p.relative_to(path).as_posix(): p.read_text(encoding="utf-8")
        for p in sorted(path.rglob("*"))
        if p.is_file()
    }


def test_builds_cjs_esm_and_declarations(
    tmp_path: Path, fake_tools: FakeToolRunner
) -> None:
    # --- setup ---
    make_workspace(tmp_path)
    a = add_package(tmp_path, "a", deps=["b"], sources=["a.ts"])
    b = add_package(tmp_path, "b", sources=["b.ts", "nested/deep.ts"])
    packages = get_sorted_packages(tmp_path)

    # --- execute ---
    results = mod_build.run_all_builds(packages, tmp_path)

    # --- verify ---
    assert [(r.name, r.state) for r in results] == [
        ("b", PackageState.DONE),
        ("a", PackageState.DONE),
    ]
    for name in ("a.js", "a.js.map", "a.mjs", "a.mjs.map", "a.d.ts"):
        assert (a / "build" / name).is_file(), name
    for name in ("b.js", "b.mjs", "b.d.ts", "nested/deep.js", "nested/deep.d.ts"):
        assert (b / "build" / name).is_file(), name

    assert len(fake_tools.calls_for("esbuild")) == 4
    assert len(fake_tools.calls_for("tsc")) == 2


def test_copies_shared_files_into_packages(
    tmp_path: Path, fake_tools: FakeToolRunner
) -> None:
    make_workspace(tmp_path)
    a = add_package(tmp_path, "a")
    (a / "LICENSE").write_text("Apache-2.0\n", encoding="utf-8")

    mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    assert (a / "README.md").is_file()
    assert (a / "LICENSE").read_text(encoding="utf-8") == "Apache-2.0\n"


def test_custom_build_script_is_skipped(
    tmp_path: Path,
    fake_tools: FakeToolRunner,
    capsys: pytest.CaptureFixture[str],
) -> None:
    # --- setup ---
    set_log_level("info")
    make_workspace(tmp_path)
    custom = add_package(tmp_path, "custom", build_script="rollup -c")
    add_package(tmp_path, "plain")

    # --- execute ---
    results = mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    # --- verify ---
    states = {r.name: r.state for r in results}
    assert states == {"custom": PackageState.SKIPPED, "plain": PackageState.DONE}
    assert not (custom / "build").exists()
    assert not (custom / "README.md").exists()
    assert all("/packages/custom/" not in " ".join(c) for c in fake_tools.calls)
    assert "custom has custom build! skipping default build." in capsys.readouterr().out


def test_failure_marks_package_and_siblings_finish(
    tmp_path: Path,
    fake_tools: FakeToolRunner,
    capsys: pytest.CaptureFixture[str],
) -> None:
    # --- setup ---
    make_workspace(tmp_path)
    a = add_package(tmp_path, "a")
    add_package(tmp_path, "b")
    c = add_package(tmp_path, "c")
    fake_tools.fail = lambda argv: (
        "--format=esm" in argv and _in_package("b")(argv)
    )

    # --- execute ---
    results = mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    # --- verify ---
    states = {r.name: r.state for r in results}
    assert states == {
        "a": PackageState.DONE,
        "b": PackageState.FAILED,
        "c": PackageState.DONE,
    }
    (b_result,) = [r for r in results if r.name == "b"]
    assert "ESM bundle failed for b" in b_result.errors[0]
    assert (a / "build" / "index.mjs").is_file()
    assert (c / "build" / "index.d.ts").is_file()
    # every action was still started
    assert len(fake_tools.calls) == 9
    assert "1 package failed: b" in capsys.readouterr().err


def test_declaration_diagnostics_do_not_fail_the_package(
    tmp_path: Path, fake_tools: FakeToolRunner
) -> None:
    make_workspace(tmp_path)
    add_package(tmp_path, "a")
    fake_tools.tsc_output = (
        "packages/a/src/index.ts(1,14): error TS7005:"
        " Variable 'name' implicitly has an 'any' type.\n"
    )

    (result,) = mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    assert result.state is PackageState.DONE
    assert [d.code for d in result.diagnostics] == ["TS7005"]


def test_package_without_sources_is_done_without_tools(
    tmp_path: Path, fake_tools: FakeToolRunner
) -> None:
    make_workspace(tmp_path)
    empty = add_package(tmp_path, "empty", sources=())

    (result,) = mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    assert result.state is PackageState.DONE
    assert fake_tools.calls == []
    assert not (empty / "build").exists()
    # shared files are still copied
    assert (empty / "README.md").is_file()


def test_dry_run_writes_nothing_and_runs_nothing(
    tmp_path: Path,
    fake_tools: FakeToolRunner,
    capsys: pytest.CaptureFixture[str],
) -> None:
    # --- setup ---
    set_log_level("info")
    make_workspace(tmp_path)
    a = add_package(tmp_path, "a")

    # --- execute ---
    (result,) = mod_build.run_all_builds(
        get_sorted_packages(tmp_path), tmp_path, dry_run=True
    )

    # --- verify ---
    assert result.state is PackageState.DONE
    assert fake_tools.calls == []
    assert not (a / "build").exists()
    assert not (a / "README.md").exists()
    out = capsys.readouterr().out
    assert "Would copy README.md" in out
    assert out.count("(dry-run) Would run:") == 3


def test_dry_run_without_installed_tools(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    set_log_level("info")
    monkeypatch.setattr(mod_tools.shutil, "which", lambda _name: None)
    make_workspace(tmp_path)
    add_package(tmp_path, "a")

    (result,) = mod_build.run_all_builds(
        get_sorted_packages(tmp_path), tmp_path, dry_run=True
    )

    assert result.state is PackageState.DONE
    assert "Would run: tsc --declaration" in capsys.readouterr().out


def test_missing_toolchain_is_fatal(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(mod_tools.shutil, "which", lambda _name: None)
    make_workspace(tmp_path)
    a = add_package(tmp_path, "a")

    with pytest.raises(ToolNotFoundError):
        mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    assert not (a / "build").exists()


def test_missing_shared_file_is_fatal(
    tmp_path: Path, fake_tools: FakeToolRunner
) -> None:
    make_workspace(tmp_path, shared_files=False)
    add_package(tmp_path, "a")

    with pytest.raises(MissingSharedFileError):
        mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    assert fake_tools.calls == []


def test_rebuilding_is_idempotent(tmp_path: Path, fake_tools: FakeToolRunner) -> None:
    make_workspace(tmp_path)
    a = add_package(tmp_path, "a", sources=["index.ts", "x/y.ts"])
    packages = get_sorted_packages(tmp_path)

    mod_build.run_all_builds(packages, tmp_path)
    first = _tree(a)
    mod_build.run_all_builds(packages, tmp_path, jobs=1)

    assert _tree(a) == first


# --------------------------------------------------------------------------- #
# rebuild_package
# --------------------------------------------------------------------------- #


def test_rebuild_package_emits_declarations_after_bundles(
    tmp_path: Path, fake_tools: FakeToolRunner
) -> None:
    make_workspace(tmp_path)
    a = add_package(tmp_path, "a")
    pkg = load_package(a.resolve())

    result = mod_build.rebuild_package(
        pkg, tmp_path, {"esbuild": "esbuild", "tsc": "tsc"}
    )

    assert result.state is PackageState.DONE
    assert [Path(c[0]).name for c in fake_tools.calls][-1] == "tsc"
    assert (a / "build" / "index.d.ts").is_file()


def test_rebuild_package_skips_declarations_on_bundle_failure(
    tmp_path: Path, fake_tools: FakeToolRunner
) -> None:
    make_workspace(tmp_path)
    a = add_package(tmp_path, "a")
    fake_tools.fail = lambda argv: "--format=cjs" in argv

    result = mod_build.rebuild_package(
        load_package(a.resolve()), tmp_path, {"esbuild": "esbuild", "tsc": "tsc"}
    )

    assert result.state is PackageState.FAILED
    assert fake_tools.calls_for("tsc") == []
    assert len(fake_tools.calls_for("esbuild")) == 2


def _write_script(path: Path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell scripts")
def test_undecodable_tool_output_fails_only_its_package(tmp_path: Path) -> None:
    # --- setup ---
    make_workspace(tmp_path)
    add_package(tmp_path, "a")
    add_package(tmp_path, "b")
    bin_dir = tmp_path / "node_modules" / ".bin"
    _write_script(
        bin_dir / "esbuild",
        "case \"$*\" in\n"
        "  */packages/a/*) printf 'caf\\351\\n' >&2; exit 1;;\n"
        "esac\n"
        "exit 0",
    )
    _write_script(bin_dir / "tsc", "exit 0")

    # --- execute ---
    results = mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    # --- verify ---
    states = {r.name: r.state for r in results}
    assert states == {"a": PackageState.FAILED, "b": PackageState.DONE}
    (a_result,) = [r for r in results if r.name == "a"]
    assert any("caf\ufffd" in e for e in a_result.errors)


def test_unexpected_worker_error_fails_only_its_package(
    tmp_path: Path, fake_tools: FakeToolRunner, monkeypatch: pytest.MonkeyPatch
) -> None:
    make_workspace(tmp_path)
    add_package(tmp_path, "a")
    b = add_package(tmp_path, "b")

    def flaky_run(args: list[str], *, cwd: Path) -> ToolResult:
        if _in_package("a")(args):
            raise RuntimeError("worker exploded")
        return fake_tools(args, cwd=cwd)

    monkeypatch.setattr(mod_tools, "run_tool", flaky_run)

    results = mod_build.run_all_builds(get_sorted_packages(tmp_path), tmp_path)

    states = {r.name: r.state for r in results}
    assert states == {"a": PackageState.FAILED, "b": PackageState.DONE}
    assert "worker exploded" in results[0].errors[0]
    assert (b / "build" / "index.d.ts").is_file()
