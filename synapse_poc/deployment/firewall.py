from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List

from synapse_poc.az_cli.az_cli_utils import AzCli
from synapse_poc.deployment.errors import SynapsePocError
from synapse_poc.deployment.outputs import DeploymentOutputs

logger = logging.getLogger(__name__)

FIREWALL_RULE_NAME = "AllowAllWindowsAzureIps"


class FirewallToggle:
    """
    Temporarily opens the data lake and workspace firewalls when the
    environment uses private endpoints.

    Restoration assumes the starting state was ``Deny`` with no allow-all rule.
    """

    def __init__(self, az: AzCli, outputs: DeploymentOutputs) -> None:
        self.az = az
        self.outputs = outputs

    @property
    def enabled(self) -> bool:
        return self.outputs.private_endpoints_enabled

    def relax(self) -> None:
        logger.info("Temporarily opening firewalls on %s and %s", self.outputs.datalake_name, self.outputs.workspace_name)
        self.az.storage_account_default_action(
            self.outputs.datalake_name, self.outputs.resource_group, "Allow"
        )
        self.az.synapse_firewall_rule_create(
            FIREWALL_RULE_NAME, self.outputs.resource_group, self.outputs.workspace_name
        )

    def restore(self) -> None:
        """Revert both rules; each revert is attempted even if the other fails."""
        logger.info("Restoring firewall rules")
        errors: List[SynapsePocError] = []
        for revert in (self._deny_storage, self._delete_workspace_rule):
            try:
                revert()
            except SynapsePocError as e:
                errors.append(e)
        for error in errors[1:]:
            logger.error("Failed to restore firewall rules: %s", error)
        if errors:
            raise errors[0]

    def _deny_storage(self) -> None:
        self.az.storage_account_default_action(
            self.outputs.datalake_name, self.outputs.resource_group, "Deny"
        )

    def _delete_workspace_rule(self) -> None:
        self.az.synapse_firewall_rule_delete(
            FIREWALL_RULE_NAME, self.outputs.resource_group, self.outputs.workspace_name
        )

    @contextmanager
    def opened(self) -> Iterator[None]:
        if not self.enabled:
            yield
            return

        try:
            # A relax that fails halfway is reverted as well
            self.relax()
            yield
        except BaseException:
            try:
                self.restore()
            except SynapsePocError as restore_error:
                logger.error("Failed to restore firewall rules: %s", restore_error)
            raise
        self.restore()
