"""Mock Azure credential for secretless testing.

Stands in for DefaultAzureCredential and ManagedIdentityCredential. Returns
fake tokens without Azure connectivity and records how it was used.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError

# Token validity duration
TOKEN_VALIDITY_HOURS = 1


class MockCredential:
    """TokenCredential returning fake tokens.

    Tracks get_token calls for test assertions. Can be switched to fail the
    way an expired `az login` session does.
    """

    def __init__(self, client_id: str | None = None) -> None:
        self._client_id = client_id
        self._scopes_requested: list[tuple[str, ...]] = []
        self._should_fail = False
        self._failure_message = "Authentication failed"

    @property
    def client_id(self) -> str | None:
        return self._client_id

    @property
    def get_token_call_count(self) -> int:
        return len(self._scopes_requested)

    @property
    def scopes_requested(self) -> list[tuple[str, ...]]:
        return self._scopes_requested.copy()

    def set_failure(self, should_fail: bool, message: str = "Authentication failed") -> None:
        self._should_fail = should_fail
        self._failure_message = message

    def get_token(self, *scopes: str, **_kwargs: Any) -> AccessToken:
        self._scopes_requested.append(scopes)
        if self._should_fail:
            raise ClientAuthenticationError(message=self._failure_message)

        expires_on = datetime.now(UTC) + timedelta(hours=TOKEN_VALIDITY_HOURS)
        identity_part = self._client_id or "ambient"
        token = f"mock-token-{len(self._scopes_requested)}-{identity_part}"
        return AccessToken(token, int(expires_on.timestamp()))

    def close(self) -> None:
        pass

    def __enter__(self) -> MockCredential:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def create_mock_credential(client_id: str | None = None) -> MockCredential:
    return MockCredential(client_id=client_id)
