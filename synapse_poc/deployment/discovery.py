from __future__ import annotations

import logging
from dataclasses import dataclass

from synapse_poc.az_cli.az_cli_utils import AzCli
from synapse_poc.deployment.errors import SynapsePocError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentDetails:
    subscription_name: str
    subscription_id: str
    tenant_id: str
    username: str
    user_object_id: str


def discover_environment(az: AzCli) -> EnvironmentDetails:
    """Read subscription and signed-in user details from the Azure CLI session."""
    account = az.account_show()
    username = (account.get("user") or {}).get("name", "")
    if not account.get("id") or not username:
        raise SynapsePocError(
            "Could not determine the Azure subscription or signed-in user from 'az account show'."
        )

    object_id = az.ad_user_object_id(username)
    if not object_id:
        raise SynapsePocError(f"Could not resolve the Azure AD object id for {username}.")

    details = EnvironmentDetails(
        subscription_name=account.get("name", ""),
        subscription_id=account["id"],
        tenant_id=account.get("tenantId", ""),
        username=username,
        user_object_id=object_id,
    )
    logger.info("Discovered subscription %s for %s", details.subscription_id, details.username)
    return details
