# src/workspace_build/errors.py
"""Exception types raised while discovering and building workspace packages.

Fatal errors (discovery, filtering, cycles, config, shared files) abort the
whole run and are reported by ``cli.main``. Tool failures are caught per
package by the build orchestrator and recorded on the package result.
"""

from __future__ import annotations

from collections.abc import Sequence


class WorkspaceBuildError(RuntimeError):
    """Base class for controlled failures; `code` becomes the exit status."""

    code: int = 1
    silent: bool = False


class DiscoveryError(WorkspaceBuildError):
    """The workspace manifests could not be found or read."""


class FilterError(WorkspaceBuildError):
    """A scope/ignore pattern is malformed or filtered out every package."""


class CycleError(WorkspaceBuildError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        super().__init__(
            "Dependency cycle detected between packages: " + " → ".join(self.cycle)
        )


class ConfigError(WorkspaceBuildError):
    """The configuration file is invalid."""


class MissingSharedFileError(WorkspaceBuildError):
    """A workspace-root file that must be copied into a package is missing."""


class ToolNotFoundError(WorkspaceBuildError):
    """An external executable (esbuild, tsc) could not be located."""


class BundleError(WorkspaceBuildError):
    """The bundler exited unsuccessfully."""


class DeclarationEmitError(WorkspaceBuildError):
    """The declaration emitter could not be run at all."""
