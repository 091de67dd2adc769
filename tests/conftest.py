import json
import types
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

from synapse_poc.az_cli.command_runner import CommandResult, CommandRunner
from synapse_poc.project_config import DeploySettings

ACCOUNT = {
    "name": "Sub1",
    "id": "00000000-1111-2222-3333-444444444444",
    "tenantId": "tenant-1",
    "user": {"name": "user@x.com", "type": "user"},
}

BICEP_OUTPUTS = {
    "synapse_analytics_workspace_name": {"type": "String", "value": "ws1"},
    "synapse_sql_pool_name": {"type": "String", "value": "pool1"},
    "synapse_sql_administrator_login": {"type": "String", "value": "sqladmin"},
    "synapse_sql_administrator_login_password": {"type": "String", "value": "S3cret!Pass"},
    "datalake_name": {"type": "String", "value": "dl1"},
    "datalake_key": {"type": "String", "value": "KEY/abc+def=="},
    "private_endpoints_enabled": {"type": "Bool", "value": False},
}

ARTIFACTS = {
    "Auto_Pause_and_Resume.json.tmpl": json.dumps(
        {
            "subscription": "REPLACE_SUBSCRIPTION",
            "resourceGroup": "REPLACE_RESOURCE_GROUP",
            "workspace": "REPLACE_SYNAPSE_ANALYTICS_WORKSPACE_NAME",
            "pool": "REPLACE_SYNAPSE_ANALYTICS_SQL_POOL_NAME",
        }
    ),
    "triggerPause.json.tmpl": '{"name": "Pause"}',
    "triggerResume.json.tmpl": '{"name": "Resume"}',
    "Auto_Ingestion_Logging_DDL.sql": "CREATE SCHEMA logging;",
    "Create_Resource_Class_Logins.sql.tmpl": "CREATE LOGIN rc WITH PASSWORD = 'REPLACE_PASSWORD';",
    "Create_Resource_Class_Users.sql": "-- REPLACE_SYNAPSE_ANALYTICS_SQL_POOL_NAME\nCREATE USER rc FOR LOGIN rc;",
    "LS_Synapse_Managed_Identity.json.tmpl": json.dumps(
        {"server": "REPLACE_SYNAPSE_ANALYTICS_WORKSPACE_NAME", "db": "REPLACE_SYNAPSE_ANALYTICS_SQL_POOL_NAME"}
    ),
    "DS_Synapse_Managed_Identity.json.tmpl": json.dumps(
        {"server": "REPLACE_SYNAPSE_ANALYTICS_WORKSPACE_NAME", "db": "REPLACE_SYNAPSE_ANALYTICS_SQL_POOL_NAME"}
    ),
    "Parquet_Auto_Ingestion.json.tmpl": json.dumps(
        {
            "workspace": "REPLACE_SYNAPSE_ANALYTICS_WORKSPACE_NAME",
            "datalake": "REPLACE_DATALAKE_NAME",
            "key": "REPLACE_DATALAKE_KEY",
            "pool": "REPLACE_SYNAPSE_ANALYTICS_SQL_POOL_NAME",
        }
    ),
    "Parquet_Auto_Ingestion_Metadata.csv": "source,target\nhttps://REPLACE_DATALAKE_NAME.dfs.core.windows.net/data,stage\n",
    "Demo_Data_Serverless_DDL.sql": "CREATE VIEW v AS SELECT 1 AS one;",
}


class FakeRunner(CommandRunner):
    """Records every command and answers from scripted responses.

    A response matches when all of its fragments occur in the joined command
    line. Responses registered with several results hand them out in order and
    repeat the last one.
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[types.SimpleNamespace] = []
        self._rules: List[Dict[str, Any]] = []

    def on(self, *fragments: str, results: Optional[Sequence[tuple]] = None, returncode=0, stdout="", stderr=""):
        self._rules.append(
            {"fragments": fragments, "results": list(results or [(returncode, stdout, stderr)])}
        )
        return self

    def run(self, args, *, secrets=(), env=None):
        args = [str(a) for a in args]
        self.calls.append(types.SimpleNamespace(args=args, secrets=list(secrets), env=env))
        line = " ".join(args)
        for rule in self._rules:
            if all(f in line for f in rule["fragments"]):
                results = rule["results"]
                returncode, stdout, stderr = results.pop(0) if len(results) > 1 else results[0]
                return CommandResult(args, returncode, stdout, stderr, [s for s in secrets if s])
        return CommandResult(args, 0, "", "", [s for s in secrets if s])

    @property
    def lines(self) -> List[str]:
        return [" ".join(c.args) for c in self.calls]

    def index_of(self, *fragments: str) -> int:
        for i, line in enumerate(self.lines):
            if all(f in line for f in fragments):
                return i
        raise AssertionError(f"No command containing {fragments}")

    def count(self, *fragments: str) -> int:
        return sum(1 for line in self.lines if all(f in line for f in fragments))


class FakeCredential:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.scopes: List[str] = []

    def get_token(self, *scopes: str, **kwargs: Any) -> types.SimpleNamespace:
        self.scopes.extend(scopes)
        if self.error:
            raise self.error
        return types.SimpleNamespace(token="token", expires_on=0)


def write_repo(root: Path, artifacts: Optional[Dict[str, str]] = None) -> Path:
    (root / "Terraform").mkdir(parents=True, exist_ok=True)
    (root / "Terraform" / "terraform.tfvars").write_text(
        'synapse_azure_ad_admin_upn = "REPLACE_SYNAPSE_AZURE_AD_ADMIN_UPN"\n', encoding="utf-8"
    )
    (root / "Bicep").mkdir(exist_ok=True)
    (root / "Bicep" / "main.bicep").write_text("targetScope = 'subscription'\n", encoding="utf-8")
    (root / "Bicep" / "main.parameters.json").write_text(
        json.dumps(
            {
                "parameters": {
                    "azure_region": {"value": "eastus"},
                    "resource_group_name": {"value": "rg1"},
                    "synapse_azure_ad_admin_object_id": {"value": "REPLACE_SYNAPSE_AZURE_AD_ADMIN_OBJECT_ID"},
                }
            }
        ),
        encoding="utf-8",
    )
    artifacts_dir = root / "artifacts"
    artifacts_dir.mkdir(exist_ok=True)
    for name, content in (artifacts or ARTIFACTS).items():
        (artifacts_dir / name).write_text(content, encoding="utf-8")
    return root


def script_bicep_environment(runner: FakeRunner, outputs: Optional[Dict[str, Any]] = None) -> FakeRunner:
    """Script an authenticated session with an already succeeded Bicep deployment."""
    runner.on("account show", stdout=json.dumps(ACCOUNT))
    runner.on("ad user show", stdout="abc-123")
    runner.on("properties.provisioningState", stdout="Succeeded")
    runner.on("properties.outputs", stdout=json.dumps(outputs or BICEP_OUTPUTS))
    return runner


@pytest.fixture
def repo(tmp_path):
    return write_repo(tmp_path)


@pytest.fixture
def settings(repo):
    return DeploySettings(repo_dir=repo, require_cloud_shell=False)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def credential():
    return FakeCredential()
