"""
Tests for the clipboard capture strategies.

Real child processes are used: POSIX sh scripts stand in for the helper
scripts, and the current Python interpreter stands in for PowerShell.
"""

import shutil
import sys
import time
from pathlib import Path
from unittest import mock

import pytest

from src.capture.clipboard import (
    HELPERS_DIR,
    CapturedImage,
    LinuxClipboardCapture,
    MacClipboardCapture,
    WindowsClipboardCapture,
    select_capture_strategy,
)
from src.core.config import CaptureConfig
from src.core.errors import (
    ClipboardEmptyError,
    FailureKind,
    ScriptMissingError,
    SubprocessExitError,
    SubprocessTimeoutError,
    ToolMissingError,
)

requires_sh = pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")


def _helper(directory: Path, name: str, body: str) -> Path:
    path = directory / name
    path.write_text(body)
    return path


class _PythonHelperCapture(WindowsClipboardCapture):
    """Windows strategy driving a Python snippet instead of PowerShell."""

    def __init__(self, helpers_dir: Path, code: str, **kwargs):
        super().__init__(helpers_dir=helpers_dir, interpreter=sys.executable, **kwargs)
        self.code = code

    def build_command(self, executable: str, script: Path, target: Path) -> list[str]:
        return [executable, "-c", self.code, str(target)]


@pytest.fixture
def helpers_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "helpers"
    directory.mkdir()
    return directory


@pytest.fixture
def target(tmp_path: Path) -> Path:
    return tmp_path / "scratch" / "image-1700000000000.png"


@pytest.fixture(autouse=True)
def _scratch_dir(target: Path):
    target.parent.mkdir(parents=True)


@requires_sh
class TestLinuxClipboardCapture:
    """Tests for the sh/xclip strategy."""

    @pytest.mark.asyncio
    async def test_success_returns_owned_capture(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "linux.sh", 'printf "PNGDATA" > "$1"\n')

        captured = await LinuxClipboardCapture(helpers_dir=helpers_dir).capture(target)

        assert isinstance(captured, CapturedImage)
        assert captured.path == target
        assert captured.owned is True
        assert target.read_bytes() == b"PNGDATA"

    @pytest.mark.asyncio
    async def test_no_file_written_means_clipboard_empty(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "linux.sh", "exit 0\n")

        with pytest.raises(ClipboardEmptyError) as exc_info:
            await LinuxClipboardCapture(helpers_dir=helpers_dir).capture(target)

        assert exc_info.value.kind == FailureKind.CLIPBOARD_EMPTY

    @pytest.mark.asyncio
    async def test_no_xclip_sentinel_is_tool_missing(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "linux.sh", 'echo "no xclip"\nexit 1\n')

        with pytest.raises(ToolMissingError) as exc_info:
            await LinuxClipboardCapture(helpers_dir=helpers_dir).capture(target)

        assert exc_info.value.tool == "xclip"
        assert not isinstance(exc_info.value, SubprocessExitError)

    @pytest.mark.asyncio
    async def test_sentinel_wins_over_zero_exit(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "linux.sh", 'echo "no xclip"\n')

        with pytest.raises(ToolMissingError):
            await LinuxClipboardCapture(helpers_dir=helpers_dir).capture(target)

    @pytest.mark.asyncio
    async def test_only_exact_sentinel_is_recognized(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "linux.sh", 'echo "no xclipboard tool"\nexit 1\n')

        with pytest.raises(SubprocessExitError) as exc_info:
            await LinuxClipboardCapture(helpers_dir=helpers_dir).capture(target)

        assert exc_info.value.exit_code == 1

    @pytest.mark.asyncio
    async def test_nonzero_exit_carries_stderr(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "linux.sh", 'echo "cannot open display" >&2\nexit 3\n')

        with pytest.raises(SubprocessExitError) as exc_info:
            await LinuxClipboardCapture(helpers_dir=helpers_dir).capture(target)

        assert exc_info.value.exit_code == 3
        assert "cannot open display" in exc_info.value.stderr
        assert "cannot open display" in exc_info.value.message

    def test_has_no_timeout(self):
        assert LinuxClipboardCapture.has_timeout is False


class TestLaunchFailures:
    """Missing or unusable helpers and interpreters."""

    @pytest.mark.asyncio
    async def test_missing_script(self, helpers_dir: Path, target: Path):
        strategy = LinuxClipboardCapture(helpers_dir=helpers_dir)

        with mock.patch("asyncio.create_subprocess_exec") as spawn:
            with pytest.raises(ScriptMissingError) as exc_info:
                await strategy.capture(target)

        spawn.assert_not_called()
        assert exc_info.value.script_path == str(helpers_dir / "linux.sh")

    @pytest.mark.asyncio
    async def test_missing_interpreter(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "mac.applescript", "")
        strategy = MacClipboardCapture(
            helpers_dir=helpers_dir, interpreter="okyimages-no-such-interpreter"
        )

        with mock.patch("asyncio.create_subprocess_exec") as spawn:
            with pytest.raises(ToolMissingError) as exc_info:
                await strategy.capture(target)

        spawn.assert_not_called()
        assert exc_info.value.tool == "okyimages-no-such-interpreter"

    @pytest.mark.asyncio
    async def test_missing_absolute_interpreter(self, helpers_dir: Path, target: Path, tmp_path):
        _helper(helpers_dir, "pc.ps1", "")
        strategy = WindowsClipboardCapture(
            helpers_dir=helpers_dir, interpreter=str(tmp_path / "powershell.exe")
        )

        with pytest.raises(ToolMissingError):
            await strategy.capture(target)

    @pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX permissions")
    @pytest.mark.asyncio
    async def test_non_executable_interpreter(self, helpers_dir: Path, target: Path, tmp_path):
        _helper(helpers_dir, "linux.sh", "exit 0\n")
        interpreter = tmp_path / "notexec"
        interpreter.write_text("#!/bin/sh\n")
        interpreter.chmod(0o644)
        strategy = LinuxClipboardCapture(helpers_dir=helpers_dir, interpreter=str(interpreter))

        with pytest.raises(ToolMissingError) as exc_info:
            await strategy.capture(target)

        assert exc_info.value.tool == str(interpreter)
        assert not target.exists()

    @pytest.mark.asyncio
    async def test_other_launch_error_is_classified(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "linux.sh", "exit 0\n")
        strategy = LinuxClipboardCapture(helpers_dir=helpers_dir, interpreter=sys.executable)

        with mock.patch(
            "asyncio.create_subprocess_exec", side_effect=OSError(8, "Exec format error")
        ):
            with pytest.raises(SubprocessExitError) as exc_info:
                await strategy.capture(target)

        assert exc_info.value.kind == FailureKind.SUBPROCESS_EXIT
        assert exc_info.value.exit_code is None
        assert "Exec format error" in exc_info.value.message


@requires_sh
class TestMacClipboardCapture:
    """Tests for the osascript strategy, with sh standing in for osascript."""

    @pytest.mark.asyncio
    async def test_success_decided_by_exit_code(self, helpers_dir: Path, target: Path):
        # stdout content is irrelevant on this platform
        _helper(helpers_dir, "mac.applescript", 'echo "no xclip"\nprintf "IMG" > "$1"\n')

        strategy = MacClipboardCapture(helpers_dir=helpers_dir, interpreter="sh")
        captured = await strategy.capture(target)

        assert captured.path.read_bytes() == b"IMG"

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, helpers_dir: Path, target: Path):
        _helper(helpers_dir, "mac.applescript", "exit 1\n")

        strategy = MacClipboardCapture(helpers_dir=helpers_dir, interpreter="sh")
        with pytest.raises(SubprocessExitError):
            await strategy.capture(target)

    @pytest.mark.asyncio
    async def test_command_passes_script_and_target(self, helpers_dir: Path, target: Path):
        strategy = MacClipboardCapture(helpers_dir=helpers_dir)
        script = helpers_dir / "mac.applescript"
        assert strategy.build_command("/usr/bin/osascript", script, target) == [
            "/usr/bin/osascript",
            str(script),
            str(target),
        ]


class TestWindowsClipboardCapture:
    """Tests for the PowerShell strategy and its inactivity deadline."""

    @pytest.fixture(autouse=True)
    def _script(self, helpers_dir: Path):
        _helper(helpers_dir, "pc.ps1", "# placeholder")

    def test_command_flags(self, helpers_dir: Path, target: Path):
        strategy = WindowsClipboardCapture(helpers_dir=helpers_dir, interpreter="powershell")
        script = helpers_dir / "pc.ps1"

        argv = strategy.build_command("powershell", script, target)

        assert argv[0] == "powershell"
        assert "-noprofile" in argv
        assert "-noninteractive" in argv
        assert argv[argv.index("-windowstyle") + 1] == "hidden"
        assert argv[argv.index("-executionpolicy") + 1] == "Bypass"
        assert argv[-1] == f'& "{script}" -imagePath "{target}"'

    def test_is_the_only_strategy_with_timeout(self):
        assert WindowsClipboardCapture.has_timeout is True
        assert MacClipboardCapture.has_timeout is False
        assert LinuxClipboardCapture.has_timeout is False

    @pytest.mark.asyncio
    async def test_success(self, helpers_dir: Path, target: Path):
        code = "import sys; open(sys.argv[1], 'wb').write(b'IMG'); print(sys.argv[1])"
        strategy = _PythonHelperCapture(helpers_dir, code, initial_timeout=10.0)

        captured = await strategy.capture(target)

        assert captured.path.read_bytes() == b"IMG"

    @pytest.mark.asyncio
    async def test_silent_helper_is_killed(self, helpers_dir: Path, target: Path):
        code = "import time; time.sleep(30)"
        strategy = _PythonHelperCapture(helpers_dir, code, initial_timeout=0.5)

        started = time.monotonic()
        with pytest.raises(SubprocessTimeoutError) as exc_info:
            await strategy.capture(target)

        assert time.monotonic() - started < 10
        assert exc_info.value.timeout_seconds == 0.5
        assert exc_info.value.kind == FailureKind.SUBPROCESS_TIMEOUT

    @pytest.mark.asyncio
    async def test_output_keeps_helper_alive(self, helpers_dir: Path, target: Path):
        # Runs well past the initial window but never goes quiet for long
        code = (
            "import sys, time\n"
            "for _ in range(15):\n"
            "    print('working', flush=True)\n"
            "    time.sleep(0.1)\n"
            "open(sys.argv[1], 'wb').write(b'IMG')\n"
        )
        strategy = _PythonHelperCapture(
            helpers_dir, code, initial_timeout=1.0, settle_timeout=0.6
        )

        captured = await strategy.capture(target)

        assert captured.path.exists()

    @pytest.mark.asyncio
    async def test_settle_window_applies_after_output(self, helpers_dir: Path, target: Path):
        code = "import time; print('started', flush=True); time.sleep(30)"
        strategy = _PythonHelperCapture(
            helpers_dir, code, initial_timeout=10.0, settle_timeout=0.3
        )

        with pytest.raises(SubprocessTimeoutError) as exc_info:
            await strategy.capture(target)

        assert exc_info.value.timeout_seconds == 0.3

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, helpers_dir: Path, target: Path):
        code = "import sys; sys.stderr.write('clipboard locked'); sys.exit(5)"
        strategy = _PythonHelperCapture(helpers_dir, code)

        with pytest.raises(SubprocessExitError) as exc_info:
            await strategy.capture(target)

        assert exc_info.value.exit_code == 5
        assert exc_info.value.stderr == "clipboard locked"

    @pytest.mark.asyncio
    async def test_zero_exit_without_file(self, helpers_dir: Path, target: Path):
        strategy = _PythonHelperCapture(helpers_dir, "print('no image')")

        with pytest.raises(ClipboardEmptyError):
            await strategy.capture(target)


class TestSelectCaptureStrategy:
    """Tests for platform selection."""

    @pytest.mark.parametrize(
        "platform, expected",
        [
            ("win32", WindowsClipboardCapture),
            ("cygwin", WindowsClipboardCapture),
            ("darwin", MacClipboardCapture),
            ("linux", LinuxClipboardCapture),
            ("freebsd14", LinuxClipboardCapture),
        ],
    )
    def test_platform_mapping(self, platform: str, expected: type):
        assert isinstance(select_capture_strategy(platform), expected)

    def test_defaults_to_running_platform(self):
        strategy = select_capture_strategy()
        assert strategy.has_timeout is (sys.platform in ("win32", "cygwin"))

    def test_bundled_helpers_are_used_by_default(self):
        for platform in ("win32", "darwin", "linux"):
            strategy = select_capture_strategy(platform)
            assert strategy.helpers_dir == HELPERS_DIR
            assert strategy.helper_path.is_file()

    def test_config_is_applied(self, tmp_path: Path):
        config = CaptureConfig(
            initial_timeout_seconds=8.0,
            settle_timeout_seconds=1.0,
            helpers_dir=str(tmp_path),
        )

        strategy = select_capture_strategy("win32", config)

        assert strategy.helpers_dir == tmp_path
        assert strategy.initial_timeout == 8.0
        assert strategy.settle_timeout == 1.0
