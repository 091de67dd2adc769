from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from synapse_poc.cli_utils.console_styles import ConsoleStyles, MessageHelpers
from synapse_poc.deployment.deploy_synapse import SynapseDeployment
from synapse_poc.deployment.errors import SynapsePocError
from synapse_poc.project_config import DeploySettings, load_deploy_settings

logger = logging.getLogger(__name__)


def _settings_from_context(ctx: typer.Context, **overrides) -> DeploySettings:
    repo_dir = Path(ctx.obj.get("repo_dir"))
    try:
        return load_deploy_settings(repo_dir, **overrides)
    except ValueError as e:
        ConsoleStyles.print_error(Console(), f"Invalid configuration: {e}")
        raise typer.Exit(code=1)


def _abort(console: Console, error: SynapsePocError) -> typer.Exit:
    logger.debug("Deployment aborted", exc_info=error)
    ConsoleStyles.print_error(console, f"ERROR: {error}")
    return typer.Exit(code=1)


def deploy(
    ctx: typer.Context,
    mode: Optional[str] = None,
    skip_cloud_shell_check: bool = False,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    settings = _settings_from_context(
        ctx,
        execution_mode=mode,
        require_cloud_shell=False if skip_cloud_shell_check else None,
    )
    try:
        SynapseDeployment(settings, console=console).run()
    except SynapsePocError as e:
        raise _abort(console, e)


def check(ctx: typer.Context, skip_cloud_shell_check: bool = False, console: Optional[Console] = None) -> None:
    """Run the precondition gate and environment discovery without changing anything."""
    console = console or Console()
    settings = _settings_from_context(
        ctx, require_cloud_shell=False if skip_cloud_shell_check else None
    )
    try:
        environment = SynapseDeployment(settings, console=console).check_preconditions()
    except SynapsePocError as e:
        raise _abort(console, e)

    MessageHelpers(console).print_details(
        "Azure Environment",
        {
            "Azure Subscription": environment.subscription_name,
            "Azure Subscription ID": environment.subscription_id,
            "Azure Tenant ID": environment.tenant_id,
            "Azure AD Username": environment.username,
            "Azure AD Object ID": environment.user_object_id,
        },
    )
    ConsoleStyles.print_success(console, "Ready to deploy.")


def show_outputs(ctx: typer.Context, console: Optional[Console] = None) -> None:
    console = console or Console()
    settings = _settings_from_context(ctx)
    try:
        outputs = SynapseDeployment(settings, console=console).resolve_only()
    except SynapsePocError as e:
        raise _abort(console, e)

    MessageHelpers(console).print_details("Deployment Outputs", outputs.summary())
