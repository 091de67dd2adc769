"""
Thin wrapper around ``subprocess.run`` used for every external tool call.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from synapse_poc.deployment.errors import CommandError

logger = logging.getLogger(__name__)

REDACTED = "***"


def redact(args: Sequence[str], secrets: Sequence[str] = ()) -> List[str]:
    """Return a copy of ``args`` with every secret value masked."""
    masked = []
    for arg in args:
        text = str(arg)
        for secret in secrets:
            if secret:
                text = text.replace(secret, REDACTED)
        masked.append(text)
    return masked


@dataclass
class CommandResult:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    secrets: List[str] = field(default_factory=list, repr=False)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, the way ``2>&1`` would capture it."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def check(self) -> "CommandResult":
        if not self.ok:
            raise CommandError(
                redact(self.args, self.secrets),
                self.returncode,
                redact([self.stdout], self.secrets)[0],
                redact([self.stderr], self.secrets)[0],
            )
        return self


class CommandRunner:
    """Runs external commands synchronously and captures their output."""

    def __init__(
        self, cwd: Optional[Path] = None, timeout: Optional[float] = None
    ) -> None:
        self.cwd = cwd
        self.timeout = timeout

    def run(
        self,
        args: Sequence[str],
        *,
        secrets: Sequence[str] = (),
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        args = [str(a) for a in args]
        logger.info("$ %s", " ".join(redact(args, secrets)))

        child_env = None
        if env:
            child_env = os.environ.copy()
            child_env.update(env)

        try:
            completed = subprocess.run(
                args,
                check=False,
                capture_output=True,
                text=True,
                cwd=str(self.cwd) if self.cwd else None,
                env=child_env,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(redact(args, secrets), None, "", str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                redact(args, secrets),
                None,
                "",
                f"Timed out after {self.timeout} seconds",
            ) from e

        result = CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=(completed.stdout or "").strip(),
            stderr=(completed.stderr or "").strip(),
            secrets=[s for s in secrets if s],
        )
        if not result.ok:
            logger.debug("Command exited with %s: %s", result.returncode, redact([result.stderr], secrets)[0])
        return result

    def run_checked(
        self,
        args: Sequence[str],
        *,
        secrets: Sequence[str] = (),
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        return self.run(args, secrets=secrets, env=env).check()
