from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from azure.core.exceptions import ClientAuthenticationError
from azure.identity import AzureCliCredential

from synapse_poc.deployment.errors import PreconditionError, PreconditionReason
from synapse_poc.project_config import DeploySettings

logger = logging.getLogger(__name__)

HOST_ENVIRONMENT_VARIABLE = "AZUREPS_HOST_ENVIRONMENT"


class PreconditionGate:
    """
    Checks that run before anything is changed.

    Order matters: an already completed run is reported first, then the
    execution host, then the Azure CLI sign-in.
    """

    def __init__(
        self,
        settings: DeploySettings,
        *,
        credential: Optional[Any] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.settings = settings
        self.credential = credential or AzureCliCredential()
        self.environ = environ if environ is not None else os.environ

    def check(self) -> None:
        self.check_not_completed()
        self.check_cloud_shell()
        self.check_logged_in()

    def check_not_completed(self) -> None:
        if self.settings.sentinel_path.exists():
            raise PreconditionError(
                PreconditionReason.ALREADY_COMPLETED,
                f"It appears this configuration has already been completed ({self.settings.sentinel_path}).",
            )

    def check_cloud_shell(self) -> None:
        if not self.settings.require_cloud_shell:
            logger.info("Cloud Shell check disabled")
            return
        if self.environ.get(HOST_ENVIRONMENT_VARIABLE) != self.settings.cloud_shell_signature:
            raise PreconditionError(
                PreconditionReason.NOT_CLOUD_SHELL,
                "It doesn't appear like you're executing this from the Azure Cloud Shell. "
                "Please use the Azure Cloud Shell at https://shell.azure.com",
            )

    def check_logged_in(self) -> None:
        scope = self.settings.token_resource.rstrip("/") + "/.default"
        try:
            self.credential.get_token(scope)
        except ClientAuthenticationError as e:
            raise PreconditionError(
                PreconditionReason.NOT_LOGGED_IN,
                "You don't appear to be logged in to Azure CLI. Please login to the Azure CLI using 'az login'",
            ) from e
