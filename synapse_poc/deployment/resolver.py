"""
Works out how the Synapse environment was (or should be) deployed.

A Terraform state file wins. Otherwise the Bicep deployment is looked up in
the resource group named in the Bicep parameters file and, if it does not
exist, submitted on the user's behalf.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from synapse_poc.az_cli.az_cli_utils import AzCli
from synapse_poc.deployment.discovery import EnvironmentDetails
from synapse_poc.deployment.errors import DeploymentError
from synapse_poc.deployment.template_utils import substitute
from synapse_poc.project_config import DeploySettings

logger = logging.getLogger(__name__)

TERRAFORM_VARS_FILE = "terraform.tfvars"
TERRAFORM_STATE_FILE = "terraform.tfstate"
BICEP_TEMPLATE_FILE = "main.bicep"
BICEP_PARAMETERS_FILE = "main.parameters.json"

ADMIN_UPN_TOKEN = "REPLACE_SYNAPSE_AZURE_AD_ADMIN_UPN"
ADMIN_OBJECT_ID_TOKEN = "REPLACE_SYNAPSE_AZURE_AD_ADMIN_OBJECT_ID"

SUCCEEDED = "Succeeded"

# The az CLI reports a missing deployment only as error text.
NOT_FOUND_MARKERS = ("could not be found", "DeploymentNotFound")


class DeploymentType(str, Enum):
    TERRAFORM = "terraform"
    BICEP = "bicep"


@dataclass
class DeploymentResolution:
    deployment_type: DeploymentType
    resource_group: Optional[str] = None
    triggered: bool = False
    provisioning_state: Optional[str] = None


def is_deployment_not_found(text: str) -> bool:
    return any(marker in (text or "") for marker in NOT_FOUND_MARKERS)


def parameterize_infrastructure(settings: DeploySettings, environment: EnvironmentDetails) -> None:
    """Fill in the Azure AD admin placeholders the user did not configure."""
    targets = [
        (settings.terraform_path / TERRAFORM_VARS_FILE, ADMIN_UPN_TOKEN, environment.username),
        (settings.bicep_path / BICEP_PARAMETERS_FILE, ADMIN_OBJECT_ID_TOKEN, environment.user_object_id),
    ]
    for path, token, value in targets:
        if not path.is_file():
            logger.warning("Skipping %s: file not found", path)
            continue
        substitute(path, token, value)


def read_bicep_parameters(parameters_file: Path) -> Dict[str, Any]:
    """Return ``{name: value}`` from an ARM/Bicep parameters file."""
    try:
        with open(parameters_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise DeploymentError(f"Bicep parameters file not found: {parameters_file}") from e
    except json.JSONDecodeError as e:
        raise DeploymentError(f"Bicep parameters file is not valid JSON: {parameters_file}: {e}") from e
    return {name: (entry or {}).get("value") for name, entry in data.get("parameters", {}).items()}


class DeploymentResolver:
    def __init__(self, settings: DeploySettings, az: AzCli) -> None:
        self.settings = settings
        self.az = az

    @property
    def terraform_state(self) -> Path:
        return self.settings.terraform_path / TERRAFORM_STATE_FILE

    @property
    def bicep_parameters(self) -> Path:
        return self.settings.bicep_path / BICEP_PARAMETERS_FILE

    def provisioning_state_text(self, resource_group: str) -> str:
        result = self.az.deployment_group_show(
            resource_group, self.settings.deployment_name, "properties.provisioningState"
        )
        return result.stdout.strip() if result.ok else result.output

    def resolve(self, allow_trigger: bool = True) -> DeploymentResolution:
        if self.terraform_state.is_file():
            logger.info("Found Terraform state at %s", self.terraform_state)
            return DeploymentResolution(deployment_type=DeploymentType.TERRAFORM)

        parameters = read_bicep_parameters(self.bicep_parameters)
        region = parameters.get("azure_region")
        resource_group = parameters.get("resource_group_name")
        if not resource_group:
            raise DeploymentError(f"resource_group_name is not set in {self.bicep_parameters}")

        resolution = DeploymentResolution(
            deployment_type=DeploymentType.BICEP, resource_group=resource_group
        )

        state = self.provisioning_state_text(resource_group)
        if is_deployment_not_found(state):
            if not allow_trigger:
                raise DeploymentError(
                    f"No Bicep deployment '{self.settings.deployment_name}' found in resource group {resource_group}."
                )
            self.trigger(region)
            resolution.triggered = True
        else:
            logger.info("Bicep deployment already present (state: %s)", state)

        resolution.provisioning_state = self.provisioning_state_text(resource_group)
        if resolution.provisioning_state != SUCCEEDED:
            if resolution.triggered:
                raise DeploymentError(
                    "It looks like a Bicep deployment was attempted, but failed. "
                    f"Provisioning state: {resolution.provisioning_state}"
                )
            raise DeploymentError(
                f"Bicep deployment '{self.settings.deployment_name}' exists but is not in a succeeded state: "
                f"{resolution.provisioning_state}"
            )
        return resolution

    def trigger(self, region: Optional[str]) -> None:
        if not region:
            raise DeploymentError(f"azure_region is not set in {self.bicep_parameters}")
        logger.warning("Deploying Synapse Environment. This will take several minutes...")
        result = self.az.deployment_sub_create(
            self.settings.bicep_path / BICEP_TEMPLATE_FILE,
            self.bicep_parameters,
            self.settings.deployment_name,
            region,
        )
        if not result.ok:
            # The provisioning state re-check turns this into a DeploymentError.
            logger.error("Bicep deployment submission failed: %s", result.output)
