"""
Failure taxonomy for the capture and upload pipeline.

Every classified failure is a subclass of CaptureError carrying a
FailureKind tag and only the structured data its message needs:

- Environment: ScriptMissingError, ToolMissingError, FilesystemError
- Clipboard state: ClipboardEmptyError
- Subprocess: SubprocessExitError, SubprocessTimeoutError
- Remote: NetworkError, RemoteRejectedError

Pipeline steps raise these; the orchestrator turns them into a
CaptureOutcome for the caller.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Tag identifying a failure category."""

    CLIPBOARD_EMPTY = "clipboard_empty"
    TOOL_MISSING = "tool_missing"
    SCRIPT_MISSING = "script_missing"
    SUBPROCESS_TIMEOUT = "subprocess_timeout"
    SUBPROCESS_EXIT = "subprocess_exit"
    NETWORK = "network"
    REMOTE_REJECTED = "remote_rejected"
    FILESYSTEM = "filesystem"


class CaptureError(Exception):
    """Base class for classified pipeline failures."""

    kind: FailureKind
    summary: str = "Image upload failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """Human-readable message: summary plus any diagnostic detail."""
        if self.detail:
            return f"{self.summary}: {self.detail}"
        return self.summary


class ClipboardEmptyError(CaptureError):
    """The clipboard did not hold an image."""

    kind = FailureKind.CLIPBOARD_EMPTY
    summary = "No image found on the clipboard"

    def __init__(self):
        super().__init__()


class ToolMissingError(CaptureError):
    """A required system program is not installed."""

    kind = FailureKind.TOOL_MISSING

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__()

    @property
    def summary(self) -> str:  # type: ignore[override]
        return f"Required tool '{self.tool}' is not installed"


class ScriptMissingError(CaptureError):
    """The platform capture helper script is not where it should be."""

    kind = FailureKind.SCRIPT_MISSING
    summary = "Clipboard capture helper script not found"

    def __init__(self, script_path: str):
        self.script_path = script_path
        super().__init__(script_path)


class SubprocessTimeoutError(CaptureError):
    """The capture helper went quiet for longer than its inactivity window."""

    kind = FailureKind.SUBPROCESS_TIMEOUT
    summary = "Clipboard capture timed out"

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"no output for {timeout_seconds:g}s, helper was terminated")


class SubprocessExitError(CaptureError):
    """The capture helper exited with a non-zero status."""

    kind = FailureKind.SUBPROCESS_EXIT

    def __init__(self, exit_code: int | None, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(stderr.strip() or None)

    @property
    def summary(self) -> str:  # type: ignore[override]
        if self.exit_code is None:
            return "Clipboard capture helper could not be started"
        return f"Clipboard capture helper failed (exit code {self.exit_code})"


class NetworkError(CaptureError):
    """The upload endpoint could not be reached."""

    kind = FailureKind.NETWORK
    summary = "Network error during upload"

    def __init__(self, detail: str):
        super().__init__(detail)


class RemoteRejectedError(CaptureError):
    """The upload endpoint answered but did not accept the image."""

    kind = FailureKind.REMOTE_REJECTED
    summary = "Upload rejected by server"

    def __init__(self, detail: str):
        super().__init__(detail)


class FilesystemError(CaptureError):
    """A local file or directory could not be read or written."""

    kind = FailureKind.FILESYSTEM
    summary = "Filesystem error"

    def __init__(self, detail: str):
        super().__init__(detail)
