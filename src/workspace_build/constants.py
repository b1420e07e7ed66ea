# src/workspace_build/constants.py
"""
Central constants used across the project.
"""

# --- env keys ---
DEFAULT_ENV_LOG_LEVEL: str = "LOG_LEVEL"
DEFAULT_ENV_WATCH_INTERVAL: str = "WATCH_INTERVAL"

# --- config defaults ---
DEFAULT_STRICT_CONFIG: bool = True
DEFAULT_LOG_LEVEL: str = "info"
DEFAULT_WATCH_INTERVAL: float = 1.0  # seconds
DEFAULT_HINT_CUTOFF: float = 0.6

# --- workspace layout ---
DEFAULT_PACKAGE_GLOBS: tuple[str, ...] = ("packages/*",)
SHARED_FILES: tuple[str, ...] = ("README.md", "LICENSE")
SOURCE_DIR: str = "src"
OUT_DIR: str = "build"
ENTRY_GLOB: str = "**/*.ts"
DEPENDENCY_FIELDS: tuple[str, ...] = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)

# --- external tools ---
ESBUILD: str = "esbuild"
TSC: str = "tsc"
ESM_OUT_EXTENSION: str = ".mjs"
