from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from synapse_poc.az_cli.az_cli_utils import AzCli
from synapse_poc.az_cli.terraform_utils import TerraformCli
from synapse_poc.deployment.errors import DeploymentError
from synapse_poc.deployment.resolver import DeploymentResolution, DeploymentType
from synapse_poc.project_config import DeploySettings

logger = logging.getLogger(__name__)

RESOURCE_GROUP_OUTPUT = "synapse_analytics_workspace_resource_group"

# DeploymentOutputs field -> output name shared by the Terraform and Bicep deployments
OUTPUT_NAMES = {
    "workspace_name": "synapse_analytics_workspace_name",
    "sql_pool_name": "synapse_sql_pool_name",
    "sql_admin_login": "synapse_sql_administrator_login",
    "sql_admin_password": "synapse_sql_administrator_login_password",
    "datalake_name": "datalake_name",
    "datalake_key": "datalake_key",
}

# Optional; a deployment that does not report it has no private endpoints
PRIVATE_ENDPOINTS_OUTPUT = "private_endpoints_enabled"


def parse_flag(value: Any) -> bool:
    """Decode a deployment output flag. Only a real boolean or the text ``true`` count."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip() == "true"


@dataclass(frozen=True)
class DeploymentOutputs:
    resource_group: str
    workspace_name: str
    sql_pool_name: str
    sql_admin_login: str
    sql_admin_password: str
    datalake_name: str
    datalake_key: str
    private_endpoints_enabled: bool

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.summary().items())
        return f"DeploymentOutputs({fields})"

    def summary(self) -> Dict[str, str]:
        """Display-safe values; the password and storage key are left out."""
        return {
            "Synapse Analytics Workspace Resource Group": self.resource_group,
            "Synapse Analytics Workspace": self.workspace_name,
            "Synapse Analytics SQL Pool": self.sql_pool_name,
            "Synapse Analytics SQL Admin": self.sql_admin_login,
            "Data Lake Name": self.datalake_name,
            "Private Endpoints Enabled": str(self.private_endpoints_enabled).lower(),
        }

    @classmethod
    def from_outputs(cls, resource_group: str, values: Mapping[str, Any], source: str) -> "DeploymentOutputs":
        missing = [name for name in OUTPUT_NAMES.values() if values.get(name) is None]
        if missing:
            raise DeploymentError(f"{source} deployment is missing outputs: {', '.join(missing)}")
        if not resource_group:
            raise DeploymentError(f"{source} deployment did not report a resource group")
        return cls(
            resource_group=str(resource_group),
            workspace_name=str(values[OUTPUT_NAMES["workspace_name"]]),
            sql_pool_name=str(values[OUTPUT_NAMES["sql_pool_name"]]),
            sql_admin_login=str(values[OUTPUT_NAMES["sql_admin_login"]]),
            sql_admin_password=str(values[OUTPUT_NAMES["sql_admin_password"]]),
            datalake_name=str(values[OUTPUT_NAMES["datalake_name"]]),
            datalake_key=str(values[OUTPUT_NAMES["datalake_key"]]),
            private_endpoints_enabled=parse_flag(values.get(PRIVATE_ENDPOINTS_OUTPUT)),
        )


def extract_outputs(
    resolution: DeploymentResolution,
    settings: DeploySettings,
    az: AzCli,
    terraform: TerraformCli,
) -> DeploymentOutputs:
    if resolution.deployment_type == DeploymentType.TERRAFORM:
        values = terraform.outputs()
        return DeploymentOutputs.from_outputs(values.get(RESOURCE_GROUP_OUTPUT), values, "Terraform")

    raw = az.deployment_group_outputs(resolution.resource_group, settings.outputs_deployment_name)
    # ARM returns {"name": {"type": "String", "value": ...}}
    values = {name: (entry or {}).get("value") for name, entry in raw.items()}
    return DeploymentOutputs.from_outputs(resolution.resource_group, values, "Bicep")
