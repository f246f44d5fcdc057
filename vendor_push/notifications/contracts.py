"""Contracts for vendor push subscription storage and delivery."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol


@dataclass(frozen=True)
class PushSubscriptionKeys:
  """Browser-provided key material for Web Push encryption."""

  p256dh: str
  auth: str


@dataclass(frozen=True)
class PushSubscription:
  """A single device push destination; identity is the endpoint alone."""

  endpoint: str
  keys: PushSubscriptionKeys = field(compare=False)
  expiration_time: int | None = field(default=None, compare=False)

  def to_subscription_info(self) -> dict:
    """Return the subscription in the shape expected by pywebpush."""
    return {"endpoint": self.endpoint, "keys": {"p256dh": self.keys.p256dh, "auth": self.keys.auth}}


@dataclass(frozen=True)
class PushPayload:
  """Fixed-shape notification payload shown by the vendor's browser."""

  title: str
  body: str
  url: str

  def to_dict(self) -> dict[str, str]:
    return {"title": self.title, "body": self.body, "url": self.url}


class DeliveryStatus(str, Enum):
  """Classification of a single delivery attempt."""

  DELIVERED = "delivered"
  PERMANENTLY_INVALID = "permanently_invalid"
  TRANSIENT_ERROR = "transient_error"


@dataclass(frozen=True)
class DeliveryOutcome:
  """Result of one delivery attempt to one endpoint."""

  endpoint: str
  status: DeliveryStatus
  detail: str | None = None

  @property
  def success(self) -> bool:
    return self.status is DeliveryStatus.DELIVERED

  @property
  def invalid(self) -> bool:
    return self.status is DeliveryStatus.PERMANENTLY_INVALID


@dataclass(frozen=True)
class DeliveryReport:
  """Aggregated outcome of fanning a payload out to one vendor's endpoints."""

  vendor_id: str
  attempted: int
  results: tuple[DeliveryOutcome, ...] = ()

  @property
  def delivered(self) -> int:
    return sum(1 for outcome in self.results if outcome.success)

  @property
  def pruned(self) -> int:
    return sum(1 for outcome in self.results if outcome.invalid)


class InvalidArgumentError(ValueError):
  """Raised when a required identifier or payload is missing or malformed."""


class NotificationError(Exception):
  """Base class for all notification delivery failures."""


class NotificationProviderError(NotificationError):
  """Exception raised when the push service returns a delivery error."""


class InvalidPushSubscriptionError(NotificationProviderError):
  """Exception raised when a push subscription endpoint is expired or invalid."""


class TransientPushProviderError(NotificationProviderError):
  """Exception raised when a delivery attempt fails but the endpoint may recover."""


class PushSender(Protocol):
  """Delivery contract for sending push notifications."""

  def send(self, subscription: PushSubscription, payload: PushPayload) -> None:
    """Send a push notification synchronously.

    Returns normally on delivery. Raises `InvalidPushSubscriptionError` when the
    endpoint is gone for good and `TransientPushProviderError` otherwise.
    """


class SubscriptionRegistry(Protocol):
  """Storage contract for vendor push subscriptions."""

  def add(self, vendor_id: str, subscription: PushSubscription) -> bool:
    """Store a subscription unless its endpoint is already registered for the vendor."""

  def get(self, vendor_id: str) -> tuple[PushSubscription, ...]:
    """Return a snapshot of the vendor's subscriptions."""

  def prune(self, vendor_id: str, invalid_endpoints: Iterable[str]) -> int:
    """Remove the vendor's subscriptions whose endpoints are listed."""

  def remove(self, vendor_id: str, endpoint: str) -> bool:
    """Remove one subscription by endpoint."""
