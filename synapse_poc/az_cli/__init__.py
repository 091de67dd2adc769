"""
Wrappers around the external command-line tools used by the deployment: Azure CLI, sqlcmd and Terraform.
"""

from .az_cli_utils import AzCli
from .command_runner import CommandResult, CommandRunner
from .sqlcmd_utils import SqlCmd
from .terraform_utils import TerraformCli

__all__ = ["AzCli", "CommandResult", "CommandRunner", "SqlCmd", "TerraformCli"]
