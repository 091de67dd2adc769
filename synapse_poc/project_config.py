from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_FILE_NAME = "synapse_poc.yml"


class ExecutionMode(str, Enum):
    """How configuration step failures are handled."""

    STRICT = "strict"
    BEST_EFFORT = "best-effort"

    @classmethod
    def parse(cls, value: str) -> "ExecutionMode":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Invalid execution mode '{value}'. Valid modes: {valid}")


@dataclass
class DeploySettings:
    repo_dir: Path
    execution_mode: ExecutionMode = ExecutionMode.STRICT
    require_cloud_shell: bool = True
    cloud_shell_signature: str = "cloud-shell/1.0"
    token_resource: str = "https://dev.azuresynapse.net"
    sentinel_file: str = "deploySynapse.complete"
    terraform_dir: str = "Terraform"
    bicep_dir: str = "Bicep"
    artifacts_dir: str = "artifacts"
    deployment_name: str = "Azure-Synapse-Analytics-PoC"
    outputs_deployment_name: str = "PoC"
    command_timeout: Optional[float] = None

    @property
    def sentinel_path(self) -> Path:
        return self.repo_dir / self.sentinel_file

    @property
    def terraform_path(self) -> Path:
        return self.repo_dir / self.terraform_dir

    @property
    def bicep_path(self) -> Path:
        return self.repo_dir / self.bicep_dir

    @property
    def artifacts_path(self) -> Path:
        return self.repo_dir / self.artifacts_dir

    @classmethod
    def from_dict(cls, data: Dict[str, Any], repo_dir: Path) -> "DeploySettings":
        """Create DeploySettings from a dictionary loaded from YAML."""
        defaults = cls(repo_dir=repo_dir)
        timeout = data.get("command_timeout", defaults.command_timeout)
        return cls(
            repo_dir=repo_dir,
            execution_mode=ExecutionMode.parse(
                data.get("execution_mode", defaults.execution_mode.value)
            ),
            require_cloud_shell=bool(
                data.get("require_cloud_shell", defaults.require_cloud_shell)
            ),
            cloud_shell_signature=data.get(
                "cloud_shell_signature", defaults.cloud_shell_signature
            ),
            token_resource=data.get("token_resource", defaults.token_resource),
            sentinel_file=data.get("sentinel_file", defaults.sentinel_file),
            terraform_dir=data.get("terraform_dir", defaults.terraform_dir),
            bicep_dir=data.get("bicep_dir", defaults.bicep_dir),
            artifacts_dir=data.get("artifacts_dir", defaults.artifacts_dir),
            deployment_name=data.get("deployment_name", defaults.deployment_name),
            outputs_deployment_name=data.get(
                "outputs_deployment_name", defaults.outputs_deployment_name
            ),
            command_timeout=float(timeout) if timeout is not None else None,
        )


def load_project_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load project configuration from YAML.

    The search order is:
    1. The ``config_dir`` parameter if provided.
    2. The path specified in the ``SYNAPSE_POC_CONFIG`` environment variable.
    3. ``synapse_poc.yml`` in the current working directory.
    Returns an empty dictionary if no configuration file is found.
    """
    search_paths = []
    if config_dir:
        search_paths.append(Path(config_dir))
    env_path = os.getenv("SYNAPSE_POC_CONFIG")
    if env_path:
        search_paths.append(Path(env_path))
    search_paths.append(Path.cwd())

    for path in search_paths:
        config_file = path
        if config_file.is_dir():
            config_file = config_file / CONFIG_FILE_NAME
        if config_file.is_file():
            with config_file.open("r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
    return {}


def load_deploy_settings(repo_dir: Path, **overrides: Any) -> DeploySettings:
    """Load typed settings for ``repo_dir``, applying non-None ``overrides``."""
    data = load_project_config(repo_dir)
    data.update({k: v for k, v in overrides.items() if v is not None})
    return DeploySettings.from_dict(data, repo_dir)
