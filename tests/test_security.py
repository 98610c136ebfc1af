"""Tests for secretless architecture enforcement.

These tests verify that azfw refuses to run with secret-bearing credential
environment variables and only builds ambient Entra ID credentials.
"""

from __future__ import annotations

import os
from unittest import mock

import pytest

from azfw.security import (
    FORBIDDEN_CREDENTIAL_ENV_VARS,
    SecretlessViolationError,
    enforce_secretless_architecture,
    get_credential,
)


class TestSecretlessEnforcement:
    """Tests for secretless architecture enforcement."""

    def test_clean_environment_passes(self) -> None:
        """Test that enforcement passes with no credential env vars."""
        with mock.patch.dict(os.environ, {}, clear=True):
            enforce_secretless_architecture()

    @pytest.mark.parametrize("env_var", FORBIDDEN_CREDENTIAL_ENV_VARS)
    def test_forbidden_env_var_raises(self, env_var: str) -> None:
        """Test that each forbidden env var raises SecretlessViolationError."""
        with mock.patch.dict(os.environ, {env_var: "some-secret-value"}):
            with pytest.raises(SecretlessViolationError) as exc_info:
                enforce_secretless_architecture()

            assert env_var in str(exc_info.value)

    def test_empty_value_is_ignored(self) -> None:
        """Test that an exported but empty variable is not a violation."""
        with mock.patch.dict(os.environ, {"AZURE_CLIENT_SECRET": ""}, clear=True):
            enforce_secretless_architecture()

    def test_storage_connection_string_rejected(self) -> None:
        """Test that storage keys cannot sneak in through a connection string."""
        with mock.patch.dict(
            os.environ, {"AZURE_STORAGE_CONNECTION_STRING": "AccountKey=abc"}, clear=True
        ):
            with pytest.raises(SecretlessViolationError):
                enforce_secretless_architecture()


class TestGetCredential:
    """Tests for the ambient credential getter."""

    def test_rejects_secret_env_var(self) -> None:
        """Test that get_credential enforces secretless."""
        with mock.patch.dict(os.environ, {"AZURE_CLIENT_SECRET": "secret"}):
            with pytest.raises(SecretlessViolationError):
                get_credential()

    @mock.patch("azfw.security.DefaultAzureCredential")
    def test_default_credential_without_client_id(self, mock_default: mock.Mock) -> None:
        """Test that DefaultAzureCredential is used when no client ID is given."""
        with mock.patch.dict(os.environ, {}, clear=True):
            credential = get_credential()

        mock_default.assert_called_once_with()
        assert credential is mock_default.return_value

    @mock.patch("azfw.security.ManagedIdentityCredential")
    def test_user_assigned_identity(self, mock_managed: mock.Mock) -> None:
        """Test that a client ID selects the user-assigned managed identity."""
        client_id = "11111111-2222-3333-4444-555555555555"

        with mock.patch.dict(os.environ, {}, clear=True):
            credential = get_credential(client_id)

        mock_managed.assert_called_once_with(client_id=client_id)
        assert credential is mock_managed.return_value
