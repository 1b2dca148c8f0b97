"""Error taxonomy for a backup run.

Every failure the session can meet while trying to run the backup script is a
`BackupError`. The controller turns them into log lines; none of them is meant
to crash the interactive loop.
"""

from __future__ import annotations


class BackupError(Exception):
    """Base class for errors surfaced to the user in the output log."""


class ExecutableError(BackupError):
    """The backup script path is unusable (empty, missing, directory, not executable)."""


class ProcessLaunchError(BackupError):
    """The operating system refused to spawn the backup process."""


class ProcessFailedError(BackupError):
    """The backup process exited with a non-zero status."""

    def __init__(self, returncode: int) -> None:
        self.returncode = returncode
        if returncode < 0:
            message = f"signal: killed by signal {-returncode}"
        else:
            message = f"exit status {returncode}"
        super().__init__(message)


class RunCancelled(BackupError):
    """The run was stopped on user request. Not a failure."""

    def __init__(self, message: str = "run cancelled") -> None:
        super().__init__(message)
