"""
Azure CLI utilities for the Synapse PoC deployment.

Every call goes through a :class:`CommandRunner` so results are always checked
and secrets never reach the logs.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from synapse_poc.az_cli.command_runner import CommandResult, CommandRunner
from synapse_poc.deployment.errors import CommandError

logger = logging.getLogger(__name__)


class AzCli:
    """Wrapper around the ``az`` command for the calls this project needs."""

    def __init__(self, runner: CommandRunner, executable: str = "az") -> None:
        self.runner = runner
        self.executable = executable

    def _az(self, *args: str, secrets: tuple = ()) -> CommandResult:
        return self.runner.run_checked(
            [self.executable, *args, "--only-show-errors"], secrets=secrets
        )

    def _az_json(self, *args: str) -> Any:
        result = self._az(*args, "--output", "json")
        if not result.stdout:
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise CommandError(
                [self.executable, *args], result.returncode, result.stdout, f"Invalid JSON output: {e}"
            ) from e

    def _az_tsv(self, *args: str) -> str:
        return self._az(*args, "--output", "tsv").stdout.strip()

    # Account and identity

    def account_show(self) -> Dict[str, Any]:
        return self._az_json("account", "show") or {}

    def ad_user_object_id(self, user_principal_name: str) -> str:
        return self._az_tsv(
            "ad", "user", "show", "--id", user_principal_name, "--query", "id"
        )

    # Deployments

    def deployment_group_show(
        self, resource_group: str, name: str, query: str
    ) -> CommandResult:
        """
        Query a resource group deployment without raising on failure.

        The caller inspects the result, because a missing deployment is an
        expected outcome rather than an error.
        """
        return self.runner.run(
            [
                self.executable,
                "deployment",
                "group",
                "show",
                "--resource-group",
                resource_group,
                "--name",
                name,
                "--query",
                query,
                "--output",
                "tsv",
                "--only-show-errors",
            ]
        )

    def deployment_group_outputs(
        self, resource_group: str, name: str
    ) -> Dict[str, Any]:
        return (
            self._az_json(
                "deployment",
                "group",
                "show",
                "--resource-group",
                resource_group,
                "--name",
                name,
                "--query",
                "properties.outputs",
            )
            or {}
        )

    def deployment_sub_create(
        self, template_file: Path, parameters_file: Path, name: str, location: str
    ) -> CommandResult:
        return self.runner.run(
            [
                self.executable,
                "deployment",
                "sub",
                "create",
                "--template-file",
                str(template_file),
                "--parameters",
                str(parameters_file),
                "--name",
                name,
                "--location",
                location,
                "--only-show-errors",
                "--output",
                "none",
            ]
        )

    # Networking

    def storage_account_default_action(
        self, account_name: str, resource_group: str, action: str
    ) -> None:
        self._az(
            "storage",
            "account",
            "update",
            "--name",
            account_name,
            "--resource-group",
            resource_group,
            "--default-action",
            action,
            "--output",
            "none",
        )

    def synapse_firewall_rule_create(
        self,
        rule_name: str,
        resource_group: str,
        workspace_name: str,
        start_ip: str = "0.0.0.0",
        end_ip: str = "0.0.0.0",
    ) -> None:
        self._az(
            "synapse",
            "workspace",
            "firewall-rule",
            "create",
            "--name",
            rule_name,
            "--resource-group",
            resource_group,
            "--workspace-name",
            workspace_name,
            "--start-ip-address",
            start_ip,
            "--end-ip-address",
            end_ip,
            "--output",
            "none",
        )

    def synapse_firewall_rule_delete(
        self, rule_name: str, resource_group: str, workspace_name: str
    ) -> None:
        self._az(
            "synapse",
            "workspace",
            "firewall-rule",
            "delete",
            "--name",
            rule_name,
            "--resource-group",
            resource_group,
            "--workspace-name",
            workspace_name,
            "--yes",
            "--output",
            "none",
        )

    # Synapse workspace artifacts

    def synapse_create(
        self, artifact: str, workspace_name: str, name: str, definition_file: Path
    ) -> None:
        """Create a pipeline, trigger, linked-service or dataset from a JSON file."""
        self._az(
            "synapse",
            artifact,
            "create",
            "--workspace-name",
            workspace_name,
            "--name",
            name,
            "--file",
            f"@{definition_file}",
            "--output",
            "none",
        )

    # Storage

    def storage_copy(
        self, source: str, destination: str, account_key: Optional[str] = None
    ) -> None:
        args = ["storage", "copy", "--source", source, "--destination", destination]
        secrets: tuple = ()
        if account_key:
            args.extend(["--account-key", account_key])
            secrets = (account_key,)
        self._az(*args, "--output", "none", secrets=secrets)
