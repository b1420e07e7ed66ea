# src/workspace_build/meta.py

"""Centralized program identity constants for Workspace Build."""

_BASE = "workspace-build"

# CLI script name (the console entrypoint)
PROGRAM_SCRIPT = _BASE

# Human-readable name for banners, help text, etc.
PROGRAM_DISPLAY = _BASE.replace("-", " ").title()

# Python package / import name
PROGRAM_PACKAGE = _BASE.replace("-", "_")

# Environment variable prefix (used for WORKSPACE_BUILD_LOG_LEVEL, etc.)
PROGRAM_ENV = _BASE.replace("-", "_").upper()

# Short tagline or description for help screens and metadata
DESCRIPTION = "Bundle and emit type declarations for every package in a JS workspace."
