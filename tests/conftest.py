# tests/conftest.py
"""
Shared test setup for project.

External tools are never run by the suite: the `fake_tools` fixture swaps
`workspace_build.tools.run_tool` for a recorder that writes the files
esbuild and tsc would have produced.
"""

from collections.abc import Iterator

import pytest
from pytest import Config, Item as PytestItem

import workspace_build.runtime as mod_runtime
import workspace_build.tools as mod_tools
from tests.utils import FakeToolRunner, make_trace

TRACE = make_trace("⚡️")


@pytest.fixture(autouse=True)
def _restore_runtime() -> Iterator[None]:
    """main() changes the shared log level and color flag; undo it per test."""
    saved = dict(mod_runtime.current_runtime)
    yield
    mod_runtime.current_runtime.update(saved)  # type: ignore[typeddict-item]


@pytest.fixture
def fake_tools(monkeypatch: pytest.MonkeyPatch) -> FakeToolRunner:
    runner = FakeToolRunner()

    def fake_resolve(name: str, _root: object, override: str | None = None) -> str:
        return override or name

    monkeypatch.setattr(mod_tools, "run_tool", runner)
    monkeypatch.setattr(mod_tools, "resolve_tool", fake_resolve)
    TRACE("fake tools installed")
    return runner


def pytest_collection_modifyitems(
    config: Config,
    items: list[PytestItem],
) -> None:
    """Automatically skip debug tests unless asked for."""
    keywords = config.getoption("-k") or ""
    if "debug" in keywords.lower():
        return  # user explicitly requested them, don't skip

    for item in items:
        if "debug" in item.keywords:
            item.add_marker(
                pytest.mark.skip(reason="Skipped debug test (use -k debug to run)")
            )
