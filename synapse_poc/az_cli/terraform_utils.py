from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from synapse_poc.az_cli.command_runner import CommandRunner
from synapse_poc.deployment.errors import CommandError


class TerraformCli:
    """Reads outputs of an existing Terraform deployment."""

    def __init__(self, runner: CommandRunner, working_dir: Path, executable: str = "terraform") -> None:
        self.runner = runner
        self.working_dir = working_dir
        self.executable = executable

    def outputs(self) -> Dict[str, Any]:
        """Return ``{output_name: value}`` from ``terraform output -json``."""
        args = [self.executable, f"-chdir={self.working_dir}", "output", "-json"]
        result = self.runner.run_checked(args)
        try:
            raw = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise CommandError(args, result.returncode, result.stdout, f"Invalid JSON output: {e}") from e
        return {name: entry.get("value") for name, entry in raw.items()}
