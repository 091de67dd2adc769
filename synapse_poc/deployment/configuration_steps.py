"""
Post-deployment configuration of the Synapse workspace.

Each step is a plain function of :class:`DeploymentContext`. The order of
``CONFIGURATION_STEPS`` matters: the managed identity linked service and
dataset must exist before the Parquet Auto Ingestion pipeline that references
them is created.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List

from synapse_poc.az_cli.az_cli_utils import AzCli
from synapse_poc.az_cli.command_runner import CommandRunner
from synapse_poc.az_cli.sqlcmd_utils import SqlCmd
from synapse_poc.deployment.discovery import EnvironmentDetails
from synapse_poc.deployment.outputs import DeploymentOutputs
from synapse_poc.deployment.template_utils import render_template, substitute
from synapse_poc.project_config import DeploySettings

logger = logging.getLogger(__name__)

SUBSCRIPTION_TOKEN = "REPLACE_SUBSCRIPTION"
RESOURCE_GROUP_TOKEN = "REPLACE_RESOURCE_GROUP"
WORKSPACE_TOKEN = "REPLACE_SYNAPSE_ANALYTICS_WORKSPACE_NAME"
SQL_POOL_TOKEN = "REPLACE_SYNAPSE_ANALYTICS_SQL_POOL_NAME"
PASSWORD_TOKEN = "REPLACE_PASSWORD"
DATALAKE_NAME_TOKEN = "REPLACE_DATALAKE_NAME"
DATALAKE_KEY_TOKEN = "REPLACE_DATALAKE_KEY"

PAUSE_RESUME_PIPELINE = "Auto Pause and Resume"
PARQUET_INGESTION_PIPELINE = "Parquet Auto Ingestion"
MANAGED_IDENTITY_LINKED_SERVICE = "LS_Synapse_Managed_Identity"
MANAGED_IDENTITY_DATASET = "DS_Synapse_Managed_Identity"
SERVERLESS_DATABASE = "Demo Data (Serverless)"

SAMPLE_DATASETS = [
    (
        "https://pandemicdatalake.blob.core.windows.net/public/curated/covid-19/bing_covid-19_data/latest/bing_covid-19_data.parquet",
        "Sample/Bing_COVID19/",
    ),
    (
        "https://azureopendatastorage.blob.core.windows.net/holidaydatacontainer/Processed/*",
        "Sample/Public_Holidays/",
    ),
]


@dataclass
class DeploymentContext:
    """Everything a configuration step needs, gathered by the earlier phases."""

    settings: DeploySettings
    environment: EnvironmentDetails
    outputs: DeploymentOutputs
    runner: CommandRunner
    az: AzCli

    @property
    def artifacts(self) -> Path:
        return self.settings.artifacts_path

    @property
    def pool_sql(self) -> SqlCmd:
        return SqlCmd.for_dedicated_pool(
            self.runner,
            self.outputs.workspace_name,
            self.outputs.sql_admin_login,
            self.outputs.sql_admin_password,
        )

    @property
    def serverless_sql(self) -> SqlCmd:
        return SqlCmd.for_serverless(
            self.runner,
            self.outputs.workspace_name,
            self.outputs.sql_admin_login,
            self.outputs.sql_admin_password,
        )

    @property
    def data_container_url(self) -> str:
        return f"https://{self.outputs.datalake_name}.blob.core.windows.net/data/"


@dataclass(frozen=True)
class ConfigurationStep:
    name: str
    description: str
    action: Callable[[DeploymentContext], None]


def enable_result_set_caching(ctx: DeploymentContext) -> None:
    ctx.pool_sql.query(
        "master", f"ALTER DATABASE {ctx.outputs.sql_pool_name} SET RESULT_SET_CACHING ON;"
    )


def create_pause_resume_pipeline(ctx: DeploymentContext) -> None:
    pipeline = render_template(
        ctx.artifacts / "Auto_Pause_and_Resume.json.tmpl",
        {
            SUBSCRIPTION_TOKEN: ctx.environment.subscription_id,
            RESOURCE_GROUP_TOKEN: ctx.outputs.resource_group,
            WORKSPACE_TOKEN: ctx.outputs.workspace_name,
            SQL_POOL_TOKEN: ctx.outputs.sql_pool_name,
        },
    )
    ctx.az.synapse_create("pipeline", ctx.outputs.workspace_name, PAUSE_RESUME_PIPELINE, pipeline)


def create_pause_resume_triggers(ctx: DeploymentContext) -> None:
    for name, template in (("Pause", "triggerPause.json.tmpl"), ("Resume", "triggerResume.json.tmpl")):
        ctx.az.synapse_create("trigger", ctx.outputs.workspace_name, name, ctx.artifacts / template)


def create_auto_ingestion_logging(ctx: DeploymentContext) -> None:
    ctx.pool_sql.run_file(ctx.outputs.sql_pool_name, ctx.artifacts / "Auto_Ingestion_Logging_DDL.sql")


def create_resource_class_logins(ctx: DeploymentContext) -> None:
    script = render_template(
        ctx.artifacts / "Create_Resource_Class_Logins.sql.tmpl",
        {PASSWORD_TOKEN: ctx.outputs.sql_admin_password},
    )
    ctx.pool_sql.run_file("master", script)


def create_resource_class_users(ctx: DeploymentContext) -> None:
    script = ctx.artifacts / "Create_Resource_Class_Users.sql"
    substitute(script, SQL_POOL_TOKEN, ctx.outputs.sql_pool_name)
    ctx.pool_sql.run_file(ctx.outputs.sql_pool_name, script)


def create_managed_identity_linked_service(ctx: DeploymentContext) -> None:
    definition = render_template(
        ctx.artifacts / f"{MANAGED_IDENTITY_LINKED_SERVICE}.json.tmpl",
        {
            WORKSPACE_TOKEN: ctx.outputs.workspace_name,
            SQL_POOL_TOKEN: ctx.outputs.sql_pool_name,
        },
    )
    ctx.az.synapse_create(
        "linked-service", ctx.outputs.workspace_name, MANAGED_IDENTITY_LINKED_SERVICE, definition
    )


def create_managed_identity_dataset(ctx: DeploymentContext) -> None:
    definition = render_template(
        ctx.artifacts / f"{MANAGED_IDENTITY_DATASET}.json.tmpl",
        {
            WORKSPACE_TOKEN: ctx.outputs.workspace_name,
            SQL_POOL_TOKEN: ctx.outputs.sql_pool_name,
        },
    )
    ctx.az.synapse_create("dataset", ctx.outputs.workspace_name, MANAGED_IDENTITY_DATASET, definition)


def prepare_parquet_ingestion_pipeline(ctx: DeploymentContext) -> None:
    render_template(
        ctx.artifacts / "Parquet_Auto_Ingestion.json.tmpl",
        {
            WORKSPACE_TOKEN: ctx.outputs.workspace_name,
            DATALAKE_NAME_TOKEN: ctx.outputs.datalake_name,
            DATALAKE_KEY_TOKEN: ctx.outputs.datalake_key,
            SQL_POOL_TOKEN: ctx.outputs.sql_pool_name,
        },
    )


def upload_ingestion_metadata(ctx: DeploymentContext) -> None:
    metadata = ctx.artifacts / "Parquet_Auto_Ingestion_Metadata.csv"
    substitute(metadata, DATALAKE_NAME_TOKEN, ctx.outputs.datalake_name)
    ctx.az.storage_copy(str(metadata), ctx.data_container_url)


def copy_sample_datasets(ctx: DeploymentContext) -> None:
    for source, folder in SAMPLE_DATASETS:
        ctx.az.storage_copy(source, ctx.data_container_url + folder)


def create_parquet_ingestion_pipeline(ctx: DeploymentContext) -> None:
    ctx.az.synapse_create(
        "pipeline",
        ctx.outputs.workspace_name,
        PARQUET_INGESTION_PIPELINE,
        ctx.artifacts / "Parquet_Auto_Ingestion.json",
    )


def create_serverless_database(ctx: DeploymentContext) -> None:
    ctx.serverless_sql.query("master", f"CREATE DATABASE [{SERVERLESS_DATABASE}];")


def create_serverless_views(ctx: DeploymentContext) -> None:
    ctx.serverless_sql.run_file(SERVERLESS_DATABASE, ctx.artifacts / "Demo_Data_Serverless_DDL.sql")


CONFIGURATION_STEPS: List[ConfigurationStep] = [
    ConfigurationStep("enable_result_set_caching", "Enabling Result Set Caching", enable_result_set_caching),
    ConfigurationStep(
        "create_pause_resume_pipeline", "Creating the auto pause/resume pipeline", create_pause_resume_pipeline
    ),
    ConfigurationStep(
        "create_pause_resume_triggers", "Creating the Pause/Resume triggers", create_pause_resume_triggers
    ),
    ConfigurationStep(
        "create_auto_ingestion_logging",
        "Creating the auto ingestion logging schema and tables",
        create_auto_ingestion_logging,
    ),
    ConfigurationStep(
        "create_resource_class_logins", "Creating the resource class logins", create_resource_class_logins
    ),
    ConfigurationStep(
        "create_resource_class_users", "Creating the resource class users", create_resource_class_users
    ),
    ConfigurationStep(
        "create_managed_identity_linked_service",
        "Creating the managed identity linked service",
        create_managed_identity_linked_service,
    ),
    ConfigurationStep(
        "create_managed_identity_dataset", "Creating the managed identity dataset", create_managed_identity_dataset
    ),
    ConfigurationStep(
        "prepare_parquet_ingestion_pipeline",
        "Preparing the parquet auto ingestion pipeline definition",
        prepare_parquet_ingestion_pipeline,
    ),
    ConfigurationStep(
        "upload_ingestion_metadata", "Uploading the parquet auto ingestion metadata", upload_ingestion_metadata
    ),
    ConfigurationStep("copy_sample_datasets", "Copying sample datasets to the data lake", copy_sample_datasets),
    ConfigurationStep(
        "create_parquet_ingestion_pipeline",
        "Creating the parquet auto ingestion pipeline",
        create_parquet_ingestion_pipeline,
    ),
    ConfigurationStep(
        "create_serverless_database",
        "Creating the Demo Data database using Synapse Serverless SQL",
        create_serverless_database,
    ),
    ConfigurationStep("create_serverless_views", "Creating the views over the external data", create_serverless_views),
]
