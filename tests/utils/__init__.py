# tests/utils/__init__.py

from .fake_tools import FakeToolRunner
from .force_mtime_advance import force_mtime_advance
from .patch_everywhere import patch_everywhere
from .trace import TRACE, make_trace
from .workspace import (
    ROOT_LICENSE,
    ROOT_README,
    add_package,
    make_workspace,
    write_json,
)

__all__ = [
    "ROOT_LICENSE",
    "ROOT_README",
    "TRACE",
    "FakeToolRunner",
    "add_package",
    "force_mtime_advance",
    "make_trace",
    "make_workspace",
    "patch_everywhere",
    "write_json",
]
