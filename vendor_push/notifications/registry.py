"""In-process storage for vendor push subscriptions."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from vendor_push.notifications.contracts import InvalidArgumentError, PushSubscription

logger = logging.getLogger(__name__)


class InMemorySubscriptionRegistry:
  """Keep each vendor's subscriptions in memory, deduplicated by endpoint.

  State lives for the lifetime of the process only. A single lock guards every
  read and write so snapshots are never torn and concurrent adds and prunes
  for the same vendor cannot lose updates.
  """

  def __init__(self) -> None:
    self._lock = threading.Lock()
    self._subscriptions: dict[str, list[PushSubscription]] = {}

  def add(self, vendor_id: str, subscription: PushSubscription) -> bool:
    """Store a subscription; return False when the endpoint is already known for the vendor."""
    if not vendor_id or not vendor_id.strip():
      raise InvalidArgumentError("vendor_id must not be empty.")

    if not subscription.endpoint or not subscription.endpoint.strip():
      raise InvalidArgumentError("subscription endpoint must not be empty.")

    with self._lock:
      vendor_subscriptions = self._subscriptions.setdefault(vendor_id, [])
      if any(existing.endpoint == subscription.endpoint for existing in vendor_subscriptions):
        logger.info("Vendor %s already subscribed with this endpoint.", vendor_id)
        return False

      vendor_subscriptions.append(subscription)
      total = len(vendor_subscriptions)

    logger.info("Vendor %s subscribed. Total subscriptions: %d", vendor_id, total)
    return True

  def get(self, vendor_id: str) -> tuple[PushSubscription, ...]:
    """Return an immutable snapshot of the vendor's subscriptions in insertion order."""
    with self._lock:
      return tuple(self._subscriptions.get(vendor_id, ()))

  def prune(self, vendor_id: str, invalid_endpoints: Iterable[str]) -> int:
    """Remove listed endpoints that are still registered; return how many were removed."""
    targets = set(invalid_endpoints)
    if not targets:
      return 0

    with self._lock:
      vendor_subscriptions = self._subscriptions.get(vendor_id)
      if not vendor_subscriptions:
        return 0

      # Check and remove under the same lock so concurrent adds survive.
      retained = [subscription for subscription in vendor_subscriptions if subscription.endpoint not in targets]
      removed = len(vendor_subscriptions) - len(retained)
      self._subscriptions[vendor_id] = retained

    if removed:
      logger.info("Pruned %d invalid subscription(s) for vendor %s; %d remaining.", removed, vendor_id, len(retained))
    return removed

  def remove(self, vendor_id: str, endpoint: str) -> bool:
    """Remove one subscription by endpoint; idempotent."""
    if not vendor_id or not vendor_id.strip():
      raise InvalidArgumentError("vendor_id must not be empty.")

    if not endpoint or not endpoint.strip():
      raise InvalidArgumentError("endpoint must not be empty.")

    return self.prune(vendor_id, {endpoint}) > 0

  def vendor_count(self) -> int:
    """Return the number of vendors with at least one subscription."""
    with self._lock:
      return sum(1 for subscriptions in self._subscriptions.values() if subscriptions)

  def subscription_count(self) -> int:
    """Return the total number of stored subscriptions."""
    with self._lock:
      return sum(len(subscriptions) for subscriptions in self._subscriptions.values())
