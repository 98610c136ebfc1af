"""Security enforcement for secretless Azure access.

The tool only ever authenticates with an ambient Entra ID identity:
a managed identity, workload identity, or an interactive `az login`
session. It never handles account keys, connection strings or
service principal secrets.

SECURITY INVARIANTS:
1. Secret-bearing credential variables must not be present in the environment
2. Storage is accessed with Entra ID tokens, never with account keys
3. The credential is created once per invocation and shared by all clients
"""

from __future__ import annotations

import logging
import os

from azure.core.credentials import TokenCredential
from azure.identity import DefaultAzureCredential, ManagedIdentityCredential

logger = logging.getLogger(__name__)

# Environment variables that indicate credential leakage
FORBIDDEN_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
    "AZURE_STORAGE_KEY",
    "AZURE_STORAGE_CONNECTION_STRING",
)

SECRETLESS_VIOLATION_MESSAGE = (
    "Detected {env_var} in the environment. Secret-based authentication is not "
    "allowed: remove the variable and sign in with 'az login', a managed identity "
    "or workload identity instead."
)


class SecretlessViolationError(Exception):
    """Raised when a secret-bearing credential is found in the environment."""

    pass


def enforce_secretless_architecture() -> None:
    """Refuse to continue when credential secrets are present in the environment.

    Raises:
        SecretlessViolationError: If any forbidden variable is set.
    """
    for env_var in FORBIDDEN_CREDENTIAL_ENV_VARS:
        if os.environ.get(env_var):
            logger.critical(
                "Secretless architecture violation",
                extra={"security_event": "credential_detected", "env_var": env_var},
            )
            raise SecretlessViolationError(SECRETLESS_VIOLATION_MESSAGE.format(env_var=env_var))

    logger.debug("Secretless architecture verified", extra={"security_event": "secretless_verified"})


def get_credential(client_id: str | None = None) -> TokenCredential:
    """Get the ambient Azure credential after verifying secretless architecture.

    Args:
        client_id: Client ID of a user-assigned managed identity. When None,
            DefaultAzureCredential picks up workload identity, managed identity
            or an existing `az login` session.

    Returns:
        A token credential shared by every Azure client of this invocation.

    Raises:
        SecretlessViolationError: If credential environment variables detected.
    """
    enforce_secretless_architecture()

    if client_id:
        logger.info(
            "Using user-assigned managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
        return ManagedIdentityCredential(client_id=client_id)

    logger.debug("Using DefaultAzureCredential")
    return DefaultAzureCredential()
