"""Mock azure-mgmt-resource SubscriptionClient.

Only `subscriptions.list()` is provided: it is the single call azfw makes
when no subscription is configured.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any


@dataclass
class MockSubscription:
    """The Subscription fields azfw reads."""

    subscription_id: str
    display_name: str = "Mock Subscription"
    state: str | None = "Enabled"


class MockSubscriptionClient:
    """Mock implementation of azure.mgmt.resource.SubscriptionClient."""

    def __init__(
        self,
        subscriptions: list[MockSubscription],
        list_error: Exception | None = None,
    ) -> None:
        self.subscriptions = _MockSubscriptionsOperations(subscriptions, list_error)


class _MockSubscriptionsOperations:
    def __init__(self, subscriptions: list[MockSubscription], list_error: Exception | None) -> None:
        self._subscriptions = subscriptions
        self._list_error = list_error

    def list(self, **_kwargs: Any) -> Iterator[MockSubscription]:
        if self._list_error is not None:
            raise self._list_error
        return iter(list(self._subscriptions))
