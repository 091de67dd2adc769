"""
Synapse PoC deployment: verify (or trigger) the infrastructure deployment,
then apply the post-deployment configuration.

Part 1 validates that the Terraform or Bicep deployment finished, deploying
the environment through Bicep when neither was run. Part 2 applies data-plane
settings that Terraform and Bicep do not manage: database settings, logins,
pipelines, triggers and sample data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from rich.console import Console

from synapse_poc.az_cli.az_cli_utils import AzCli
from synapse_poc.az_cli.command_runner import CommandRunner
from synapse_poc.az_cli.terraform_utils import TerraformCli
from synapse_poc.cli_utils.console_styles import MessageHelpers
from synapse_poc.deployment.configuration_steps import (
    CONFIGURATION_STEPS,
    ConfigurationStep,
    DeploymentContext,
)
from synapse_poc.deployment.discovery import EnvironmentDetails, discover_environment
from synapse_poc.deployment.errors import StepFailedError, SynapsePocError
from synapse_poc.deployment.firewall import FirewallToggle
from synapse_poc.deployment.outputs import DeploymentOutputs, extract_outputs
from synapse_poc.deployment.precondition import PreconditionGate
from synapse_poc.deployment.resolver import (
    DeploymentResolution,
    DeploymentResolver,
    DeploymentType,
    parameterize_infrastructure,
)
from synapse_poc.project_config import DeploySettings, ExecutionMode

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    name: str
    succeeded: bool
    error: Optional[str] = None


@dataclass
class DeploymentReport:
    deployment_type: Optional[DeploymentType] = None
    environment: Optional[EnvironmentDetails] = None
    outputs: Optional[DeploymentOutputs] = None
    steps: List[StepResult] = field(default_factory=list)
    completed: bool = False

    @property
    def failed_steps(self) -> List[StepResult]:
        return [s for s in self.steps if not s.succeeded]


class SynapseDeployment:
    def __init__(
        self,
        settings: DeploySettings,
        *,
        runner: Optional[CommandRunner] = None,
        credential: Optional[Any] = None,
        console: Optional[Console] = None,
        steps: Optional[List[ConfigurationStep]] = None,
    ) -> None:
        self.settings = settings
        self.runner = runner or CommandRunner(cwd=settings.repo_dir, timeout=settings.command_timeout)
        self.credential = credential
        self.msg = MessageHelpers(console)
        self.steps = steps if steps is not None else CONFIGURATION_STEPS
        self.az = AzCli(self.runner)
        self.terraform = TerraformCli(self.runner, settings.terraform_path)

    def check_preconditions(self) -> EnvironmentDetails:
        PreconditionGate(self.settings, credential=self.credential).check()
        return discover_environment(self.az)

    def resolve_only(self) -> DeploymentOutputs:
        """Look up an existing deployment's outputs without changing anything."""
        resolution = DeploymentResolver(self.settings, self.az).resolve(allow_trigger=False)
        return extract_outputs(resolution, self.settings, self.az, self.terraform)

    def run(self) -> DeploymentReport:
        report = DeploymentReport()

        # Part 1: Synapse environment deployment
        self.msg.print_rule("Synapse Environment Deployment")
        report.environment = self.check_preconditions()
        parameterize_infrastructure(self.settings, report.environment)

        resolution = DeploymentResolver(self.settings, self.az).resolve()
        report.deployment_type = resolution.deployment_type

        # Part 2: Post-deployment configuration
        report.outputs = extract_outputs(resolution, self.settings, self.az, self.terraform)
        self._print_summary(resolution, report.environment, report.outputs)

        ctx = DeploymentContext(
            settings=self.settings,
            environment=report.environment,
            outputs=report.outputs,
            runner=self.runner,
            az=self.az,
        )

        self.msg.print_rule("Post-Deployment Configuration")
        firewall = FirewallToggle(self.az, report.outputs)
        if firewall.enabled:
            self.msg.print_info("Private endpoints enabled; temporarily opening firewalls...")
        with firewall.opened():
            for step in self.steps:
                report.steps.append(self._run_step(step, ctx))
        if firewall.enabled:
            self.msg.print_info("Firewall rules restored.")

        self.settings.sentinel_path.touch()
        report.completed = True

        if report.failed_steps:
            self.msg.print_warning(
                f"Deployment finished with {len(report.failed_steps)} failed step(s): "
                + ", ".join(s.name for s in report.failed_steps)
            )
        else:
            self.msg.print_success("Deployment complete!")
        return report

    def _run_step(self, step: ConfigurationStep, ctx: DeploymentContext) -> StepResult:
        self.msg.print_info(f"{step.description}...")
        try:
            step.action(ctx)
        except (SynapsePocError, OSError) as e:
            if self.settings.execution_mode == ExecutionMode.STRICT:
                raise StepFailedError(step.name, e) from e
            logger.warning("Step %s failed, continuing: %s", step.name, e)
            self.msg.print_warning(f"{step.description} failed: {e}")
            return StepResult(step.name, False, str(e))
        return StepResult(step.name, True)

    def _print_summary(
        self,
        resolution: DeploymentResolution,
        environment: EnvironmentDetails,
        outputs: DeploymentOutputs,
    ) -> None:
        details = {
            "Deployment Type": resolution.deployment_type.value,
            "Azure Subscription": environment.subscription_name,
            "Azure Subscription ID": environment.subscription_id,
            "Azure AD Username": environment.username,
        }
        details.update(outputs.summary())
        self.msg.print_details("Deployment Details", details)
