from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import lazy_import
import typer
from rich.console import Console
from rich.logging import RichHandler
from typing_extensions import Annotated

from synapse_poc.cli_utils.console_styles import ConsoleStyles

# Lazy import - pulls in azure.identity only when a command actually runs
deploy_commands = lazy_import.lazy_module("synapse_poc.cli_utils.deploy_commands")

console = Console()
console_styles = ConsoleStyles()

app = typer.Typer(no_args_is_help=True, pretty_exceptions_show_locals=False)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # Suppress verbose Azure SDK logging
    logging.getLogger("azure").setLevel(logging.WARNING)


@app.callback()
def main(
    ctx: typer.Context,
    repo_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--repo-dir",
            "-r",
            help="Directory containing the Terraform, Bicep and artifacts folders",
        ),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log every external command")] = False,
):
    configure_logging(verbose)

    if repo_dir is None:
        env_val = os.environ.get("SYNAPSE_POC_REPO_DIR")
        if env_val:
            console_styles.print_warning(
                console, "Falling back to SYNAPSE_POC_REPO_DIR environment variable."
            )
            repo_dir = Path(env_val)
        else:
            repo_dir = Path.cwd()

    if not repo_dir.is_dir():
        console_styles.print_error(console, f"Repository directory does not exist: {repo_dir}")
        raise typer.Exit(code=1)

    ctx.obj = {"repo_dir": repo_dir}


@app.command()
def deploy(
    ctx: typer.Context,
    mode: Annotated[
        Optional[str],
        typer.Option(
            "--mode",
            "-m",
            help="strict stops at the first failed configuration step; best-effort records it and continues",
        ),
    ] = None,
    skip_cloud_shell_check: Annotated[
        bool,
        typer.Option("--skip-cloud-shell-check", help="Allow running outside the Azure Cloud Shell"),
    ] = False,
):
    """Verify or trigger the Synapse deployment, then apply the post-deployment configuration."""
    deploy_commands.deploy(ctx, mode=mode, skip_cloud_shell_check=skip_cloud_shell_check, console=console)


@app.command()
def check(
    ctx: typer.Context,
    skip_cloud_shell_check: Annotated[
        bool,
        typer.Option("--skip-cloud-shell-check", help="Allow running outside the Azure Cloud Shell"),
    ] = False,
):
    """Check that a deployment can run here and show the Azure environment."""
    deploy_commands.check(ctx, skip_cloud_shell_check=skip_cloud_shell_check, console=console)


@app.command()
def outputs(ctx: typer.Context):
    """Show the outputs of an existing Terraform or Bicep deployment."""
    deploy_commands.show_outputs(ctx, console=console)


if __name__ == "__main__":
    app()
