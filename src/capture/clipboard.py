"""
Clipboard Image Capture for okyimages

Extracts the image currently on the system clipboard into a file by
running a small platform helper as a child process:

- Windows: PowerShell runs helpers/pc.ps1 with -imagePath <target>
- macOS: osascript runs helpers/mac.applescript <target>
- Linux and other UNIX: sh runs helpers/linux.sh <target>; the helper
  prints "no xclip" when xclip is not installed

Each platform is a ClipboardCaptureStrategy chosen once by
select_capture_strategy(). Only the Windows strategy has a local timeout:
an inactivity deadline that is pushed back whenever the helper produces
output and kills it when it goes quiet. The macOS and Linux strategies
wait for the helper to exit on its own.

A helper that exits 0 without writing the target file means the
clipboard held no image.
"""

import asyncio
import logging
import shutil
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from src.capture.deadline import DebouncedDeadline
from src.core.config import CaptureConfig
from src.core.errors import (
    ClipboardEmptyError,
    ScriptMissingError,
    SubprocessExitError,
    SubprocessTimeoutError,
    ToolMissingError,
)

logger = logging.getLogger(__name__)

HELPERS_DIR = Path(__file__).parent / "helpers"

WINDOWS_POWERSHELL = Path(r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe")

# Printed by linux.sh when xclip is not installed
NO_XCLIP_SENTINEL = "no xclip"

_READ_CHUNK = 4096


@dataclass
class CapturedImage:
    """A file holding raw captured or user-selected image bytes."""

    path: Path
    created_at: datetime = field(default_factory=datetime.now)
    # True for scratch files the pipeline created and must delete
    owned: bool = True

    @property
    def display_name(self) -> str:
        return self.path.name


@dataclass
class HelperRun:
    """Exit status and output of one helper invocation."""

    returncode: int | None
    stdout: str
    stderr: str


class ClipboardCaptureStrategy(ABC):
    """One way of getting the clipboard image into a file."""

    name: str = "generic"
    helper_name: str = ""
    interpreter: str = ""
    has_timeout: bool = False

    def __init__(
        self,
        helpers_dir: Path | str | None = None,
        interpreter: str | None = None,
    ):
        """
        Args:
            helpers_dir: Directory holding the helper scripts
            interpreter: Program that runs the helper (defaults per platform)
        """
        self.helpers_dir = Path(helpers_dir) if helpers_dir else HELPERS_DIR
        if interpreter:
            self.interpreter = interpreter

    @property
    def helper_path(self) -> Path:
        return self.helpers_dir / self.helper_name

    def resolve_interpreter(self) -> str:
        """
        Locate the interpreter executable.

        Raises:
            ToolMissingError: If it cannot be found
        """
        candidate = Path(self.interpreter)
        if candidate.is_absolute():
            if candidate.exists():
                return str(candidate)
            raise ToolMissingError(self.interpreter)

        resolved = shutil.which(self.interpreter)
        if resolved is None:
            raise ToolMissingError(self.interpreter)
        return resolved

    @abstractmethod
    def build_command(self, executable: str, script: Path, target: Path) -> list[str]:
        """Build the argv that runs the helper against the target path."""

    async def capture(self, target: Path | str) -> CapturedImage:
        """
        Write the clipboard image to target.

        Args:
            target: Absolute path the helper should write

        Returns:
            CapturedImage owned by the caller

        Raises:
            ScriptMissingError: The helper script does not exist
            ToolMissingError: The interpreter or a tool it needs is missing
            SubprocessTimeoutError: The helper was killed for inactivity
            SubprocessExitError: The helper exited non-zero
            ClipboardEmptyError: The helper succeeded but wrote nothing
        """
        target = Path(target)
        created_at = datetime.now()

        script = self.helper_path
        if not script.is_file():
            raise ScriptMissingError(str(script))
        executable = self.resolve_interpreter()

        argv = self.build_command(executable, script, target)
        logger.debug(f"[{self.name}] running capture helper: {argv}")

        run = await self.run_helper(argv)
        self.check_result(run)

        if not target.exists():
            logger.info(f"[{self.name}] helper finished without writing {target.name}")
            raise ClipboardEmptyError()

        logger.debug(f"[{self.name}] captured clipboard image to {target}")
        return CapturedImage(path=target, created_at=created_at, owned=True)

    async def spawn(self, argv: list[str]) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ToolMissingError(argv[0]) from e
        except OSError as e:
            logger.warning(f"[{self.name}] could not start {argv[0]}: {e}")
            raise SubprocessExitError(None, str(e)) from e

    async def run_helper(self, argv: list[str]) -> HelperRun:
        """Run the helper to completion with no local time limit."""
        process = await self.spawn(argv)
        try:
            stdout, stderr = await process.communicate()
        finally:
            await _reap(process)
        return HelperRun(
            returncode=process.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )

    def check_result(self, run: HelperRun) -> None:
        """Classify a finished helper run; raise on failure."""
        if run.returncode != 0:
            logger.warning(f"[{self.name}] helper exited {run.returncode}: {run.stderr.strip()}")
            raise SubprocessExitError(run.returncode, run.stderr)


class WindowsClipboardCapture(ClipboardCaptureStrategy):
    """
    PowerShell-based capture.

    The only strategy with a local timeout. The helper gets
    initial_timeout seconds to produce its first output; after every chunk
    of output the window is re-armed with settle_timeout. When a window
    elapses with no output the process is killed.
    """

    name = "windows"
    helper_name = "pc.ps1"
    interpreter = "powershell"
    has_timeout = True

    def __init__(
        self,
        helpers_dir: Path | str | None = None,
        interpreter: str | None = None,
        initial_timeout: float = 15.0,
        settle_timeout: float = 2.0,
    ):
        if interpreter is None and WINDOWS_POWERSHELL.exists():
            interpreter = str(WINDOWS_POWERSHELL)
        super().__init__(helpers_dir=helpers_dir, interpreter=interpreter)
        self.initial_timeout = initial_timeout
        self.settle_timeout = settle_timeout

    def build_command(self, executable: str, script: Path, target: Path) -> list[str]:
        return [
            executable,
            "-noprofile",
            "-noninteractive",
            "-nologo",
            "-sta",
            "-executionpolicy",
            "Bypass",
            "-windowstyle",
            "hidden",
            "-Command",
            f'& "{script}" -imagePath "{target}"',
        ]

    async def run_helper(self, argv: list[str]) -> HelperRun:
        process = await self.spawn(argv)

        def kill() -> None:
            logger.warning(f"[{self.name}] helper silent for {deadline.window}s, killing it")
            try:
                process.kill()
            except ProcessLookupError:
                pass

        deadline = DebouncedDeadline(on_expire=kill)
        stdout: list[bytes] = []
        stderr: list[bytes] = []

        async def pump(stream: asyncio.StreamReader, sink: list[bytes]) -> None:
            while True:
                chunk = await stream.read(_READ_CHUNK)
                if not chunk:
                    return
                sink.append(chunk)
                deadline.arm(self.settle_timeout)

        deadline.arm(self.initial_timeout)
        try:
            await asyncio.gather(pump(process.stdout, stdout), pump(process.stderr, stderr))
            await process.wait()
        finally:
            deadline.cancel()
            await _reap(process)

        if deadline.fired:
            raise SubprocessTimeoutError(deadline.window or self.initial_timeout)

        return HelperRun(
            returncode=process.returncode,
            stdout=_decode(b"".join(stdout)),
            stderr=_decode(b"".join(stderr)),
        )


class MacClipboardCapture(ClipboardCaptureStrategy):
    """AppleScript-based capture; success is decided by exit code alone."""

    name = "macos"
    helper_name = "mac.applescript"
    interpreter = "osascript"

    def build_command(self, executable: str, script: Path, target: Path) -> list[str]:
        return [executable, str(script), str(target)]


class LinuxClipboardCapture(ClipboardCaptureStrategy):
    """
    xclip-based capture through a POSIX shell helper.

    Only the exact stdout line "no xclip" is treated as a missing tool;
    any other failure is a generic non-zero exit.
    """

    name = "linux"
    helper_name = "linux.sh"
    interpreter = "sh"

    def build_command(self, executable: str, script: Path, target: Path) -> list[str]:
        return [executable, str(script), str(target)]

    def check_result(self, run: HelperRun) -> None:
        if any(line.strip() == NO_XCLIP_SENTINEL for line in run.stdout.splitlines()):
            raise ToolMissingError("xclip")
        super().check_result(run)


def select_capture_strategy(
    platform: str | None = None,
    config: CaptureConfig | None = None,
) -> ClipboardCaptureStrategy:
    """
    Pick the capture strategy for the running platform.

    Args:
        platform: sys.platform-style identifier (defaults to sys.platform)
        config: Capture settings (defaults to CaptureConfig())

    Returns:
        A ready-to-use strategy
    """
    platform = platform or sys.platform
    config = config or CaptureConfig()
    helpers_dir = config.helpers_dir

    if platform.startswith(("win32", "cygwin")):
        strategy: ClipboardCaptureStrategy = WindowsClipboardCapture(
            helpers_dir=helpers_dir,
            initial_timeout=config.initial_timeout_seconds,
            settle_timeout=config.settle_timeout_seconds,
        )
    elif platform == "darwin":
        strategy = MacClipboardCapture(helpers_dir=helpers_dir)
    else:
        strategy = LinuxClipboardCapture(helpers_dir=helpers_dir)

    logger.debug(f"Selected {strategy.name} clipboard capture for platform {platform!r}")
    return strategy


async def _reap(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


if __name__ == "__main__":
    import fire

    def info(platform: str | None = None):
        """Show which capture strategy would be used."""
        strategy = select_capture_strategy(platform)
        return {
            "strategy": strategy.name,
            "helper": str(strategy.helper_path),
            "helper_exists": strategy.helper_path.is_file(),
            "interpreter": strategy.interpreter,
            "has_timeout": strategy.has_timeout,
        }

    def grab(target: str):
        """Capture the clipboard image into target."""
        captured = asyncio.run(select_capture_strategy().capture(Path(target).resolve()))
        return {"path": str(captured.path), "created_at": captured.created_at.isoformat()}

    fire.Fire(
        {
            "info": info,
            "grab": grab,
        }
    )
