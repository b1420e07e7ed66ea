# tests/test_utils_logs.py

import re

import pytest

import workspace_build.runtime as mod_runtime
import workspace_build.utils_logs as mod_logs

ANSI_PATTERN = re.compile(r"\033\[[0-9;]*m")


def strip_ansi(s: str) -> str:
    """Remove ANSI escape sequences for color safety."""
    return ANSI_PATTERN.sub("", s)


@pytest.fixture(autouse=True)
def reset_runtime() -> None:
    mod_runtime.current_runtime["log_level"] = "info"
    mod_runtime.current_runtime["use_color"] = False


@pytest.mark.parametrize(
    ("level", "stream", "tag"),
    [
        ("trace", "out", "[TRACE]"),
        ("debug", "out", "[DEBUG]"),
        ("info", "out", ""),
        ("warning", "err", "⚠️ "),
        ("error", "err", "❌ "),
        ("critical", "err", "💥 "),
    ],
)
def test_levels_route_to_streams_with_tags(
    capsys: pytest.CaptureFixture[str], level: str, stream: str, tag: str
) -> None:
    # --- setup ---
    mod_logs.set_log_level("trace")
    logger = mod_logs.get_logger()

    # --- execute ---
    getattr(logger, level)("msg:%s", level)

    # --- verify ---
    captured = capsys.readouterr()
    out, other = (
        (captured.out, captured.err) if stream == "out" else (captured.err, captured.out)
    )
    assert strip_ansi(out).strip() == f"{tag} msg:{level}".strip()
    assert other == ""


def test_level_threshold(capsys: pytest.CaptureFixture[str]) -> None:
    mod_logs.set_log_level("warning")
    logger = mod_logs.get_logger()

    logger.info("hidden")
    logger.debug("hidden")
    logger.warning("shown")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "shown" in captured.err


def test_silent_hides_everything(capsys: pytest.CaptureFixture[str]) -> None:
    mod_logs.set_log_level("silent")
    logger = mod_logs.get_logger()

    logger.critical("boom")

    captured = capsys.readouterr()
    assert captured.out == captured.err == ""


def test_set_log_level_rejects_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        mod_logs.set_log_level("loud")


def test_level_name_reflects_runtime() -> None:
    mod_logs.set_log_level("DEBUG")

    assert mod_runtime.current_runtime["log_level"] == "debug"
    assert mod_logs.get_logger().level_name == "debug"


def test_tags_colored_when_enabled(capsys: pytest.CaptureFixture[str]) -> None:
    mod_runtime.current_runtime["use_color"] = True
    mod_logs.set_log_level("debug")

    mod_logs.get_logger().debug("colored")

    out = capsys.readouterr().out
    assert mod_logs.CYAN in out
    assert strip_ansi(out).strip() == "[DEBUG] colored"


def test_error_if_not_debug_traceback_only_when_debugging(
    capsys: pytest.CaptureFixture[str],
) -> None:
    logger = mod_logs.get_logger()

    def fail() -> None:
        try:
            raise RuntimeError("kaboom")
        except RuntimeError as e:
            logger.error_if_not_debug(str(e))

    fail()
    assert "Traceback" not in capsys.readouterr().err

    mod_logs.set_log_level("debug")
    fail()
    assert "Traceback" in capsys.readouterr().err


def test_log_dynamic(capsys: pytest.CaptureFixture[str]) -> None:
    mod_logs.log_dynamic("warning", "dyn")
    mod_logs.log_dynamic("nonsense", "dyn")

    err = capsys.readouterr().err
    assert "dyn" in err
    assert "Unknown log level: 'nonsense'" in err


def test_colorize() -> None:
    assert mod_logs.colorize("x", mod_logs.GREEN, use_color=False) == "x"
    assert mod_logs.colorize("x", mod_logs.GREEN, use_color=True) == (
        f"{mod_logs.GREEN}x{mod_logs.RESET}"
    )
