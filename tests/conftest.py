"""Shared fixtures for vendor push tests."""

from __future__ import annotations

import threading

import pytest

from vendor_push.notifications.contracts import PushPayload, PushSubscription, PushSubscriptionKeys
from vendor_push.notifications.registry import InMemorySubscriptionRegistry

P256DH = "BEl6f5Y8X5Y_u7d8mV_AbpZfXfTLT3s1O3L4wM1x8QY2_5qWQ-jxJq7uKjv8mQ4I"
AUTH = "gq8Yh5xA9l2mQ6pR"


def make_subscription(endpoint: str, *, p256dh: str = P256DH, auth: str = AUTH) -> PushSubscription:
  return PushSubscription(endpoint=endpoint, keys=PushSubscriptionKeys(p256dh=p256dh, auth=auth))


class FakePushSender:
  """Records calls and raises the configured exception per endpoint."""

  def __init__(self, failures: dict[str, Exception] | None = None) -> None:
    self.failures = dict(failures or {})
    self.calls: list[tuple[str, PushPayload]] = []
    self._lock = threading.Lock()

  def send(self, subscription: PushSubscription, payload: PushPayload) -> None:
    with self._lock:
      self.calls.append((subscription.endpoint, payload))
    failure = self.failures.get(subscription.endpoint)
    if failure is not None:
      raise failure


# Force anyio to use asyncio
@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def registry() -> InMemorySubscriptionRegistry:
  return InMemorySubscriptionRegistry()


@pytest.fixture
def payload() -> PushPayload:
  return PushPayload(title="New Order! #42", body="From: Asha, Total: ₹1250", url="https://vendors.unoshops.com/AllOrders/?42")


@pytest.fixture
def subscription_factory():
  return make_subscription


@pytest.fixture
def fake_sender() -> FakePushSender:
  return FakePushSender()
