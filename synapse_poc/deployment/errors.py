from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence


class SynapsePocError(Exception):
    """Base class for every error raised while deploying or configuring the PoC."""


class PreconditionReason(Enum):
    ALREADY_COMPLETED = "already_completed"
    NOT_CLOUD_SHELL = "not_cloud_shell"
    NOT_LOGGED_IN = "not_logged_in"


class PreconditionError(SynapsePocError):
    def __init__(self, reason: PreconditionReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class CommandError(SynapsePocError):
    """An external command (az, sqlcmd, terraform) exited unsuccessfully."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout).strip()
        message = f"Command failed ({returncode}): {' '.join(self.command)}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class TemplateError(SynapsePocError):
    pass


class DeploymentError(SynapsePocError):
    pass


class StepFailedError(SynapsePocError):
    def __init__(self, step: str, cause: Exception) -> None:
        super().__init__(f"Configuration step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
