import json
from pathlib import Path

import pytest

from synapse_poc.az_cli import AzCli, TerraformCli
from synapse_poc.deployment.errors import DeploymentError
from synapse_poc.deployment.outputs import DeploymentOutputs, extract_outputs, parse_flag
from synapse_poc.deployment.resolver import DeploymentResolution, DeploymentType

from conftest import BICEP_OUTPUTS

TERRAFORM_OUTPUTS = {
    "synapse_analytics_workspace_resource_group": {"value": "tf-rg"},
    "synapse_analytics_workspace_name": {"value": "tfws"},
    "synapse_sql_pool_name": {"value": "tfpool"},
    "synapse_sql_administrator_login": {"value": "sqladmin"},
    "synapse_sql_administrator_login_password": {"sensitive": True, "value": "pw"},
    "datalake_name": {"value": "tfdl"},
    "datalake_key": {"sensitive": True, "value": "k=="},
    "private_endpoints_enabled": {"value": True},
}


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, True),
        (False, False),
        ("true", True),
        ("true\n", True),
        ("True", False),
        ("false", False),
        ("", False),
        (None, False),
        ("ERROR: output not found", False),
    ],
)
def test_parse_flag(value, expected):
    assert parse_flag(value) is expected


def test_bicep_outputs(settings, runner):
    runner.on("properties.outputs", stdout=json.dumps(BICEP_OUTPUTS))
    resolution = DeploymentResolution(DeploymentType.BICEP, resource_group="rg1")

    outputs = extract_outputs(resolution, settings, AzCli(runner), TerraformCli(runner, settings.terraform_path))

    assert outputs.resource_group == "rg1"
    assert outputs.workspace_name == "ws1"
    assert outputs.sql_pool_name == "pool1"
    assert outputs.datalake_key == "KEY/abc+def=="
    assert outputs.private_endpoints_enabled is False
    assert "--name PoC" in runner.lines[0]


def test_terraform_outputs(settings, runner):
    runner.on("output -json", stdout=json.dumps(TERRAFORM_OUTPUTS))
    resolution = DeploymentResolution(DeploymentType.TERRAFORM)

    outputs = extract_outputs(resolution, settings, AzCli(runner), TerraformCli(runner, settings.terraform_path))

    assert outputs.resource_group == "tf-rg"
    assert outputs.workspace_name == "tfws"
    assert outputs.private_endpoints_enabled is True
    assert runner.calls[0].args[0] == "terraform"


def test_missing_outputs_are_reported(settings, runner):
    partial = {k: v for k, v in BICEP_OUTPUTS.items() if k != "datalake_key"}
    runner.on("properties.outputs", stdout=json.dumps(partial))
    resolution = DeploymentResolution(DeploymentType.BICEP, resource_group="rg1")

    with pytest.raises(DeploymentError, match="datalake_key"):
        extract_outputs(resolution, settings, AzCli(runner), TerraformCli(runner, settings.terraform_path))


def test_bicep_outputs_without_private_endpoint_flag(settings, runner):
    legacy = {k: v for k, v in BICEP_OUTPUTS.items() if k != "private_endpoints_enabled"}
    runner.on("properties.outputs", stdout=json.dumps(legacy))
    resolution = DeploymentResolution(DeploymentType.BICEP, resource_group="rg1")

    outputs = extract_outputs(resolution, settings, AzCli(runner), TerraformCli(runner, settings.terraform_path))

    assert outputs.private_endpoints_enabled is False
    assert outputs.workspace_name == "ws1"


def test_summary_hides_secrets():
    values = {name: entry["value"] for name, entry in BICEP_OUTPUTS.items()}
    outputs = DeploymentOutputs.from_outputs("rg1", values, "Bicep")

    rendered = " ".join(outputs.summary().values()) + repr(outputs)
    assert "S3cret!Pass" not in rendered
    assert "KEY/abc+def==" not in rendered
    assert outputs.summary()["Synapse Analytics Workspace"] == "ws1"
