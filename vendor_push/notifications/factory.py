"""Factory helpers for the push delivery stack."""

from __future__ import annotations

from vendor_push.config import Settings
from vendor_push.core.keys import VapidKeyPair
from vendor_push.notifications.contracts import SubscriptionRegistry
from vendor_push.notifications.delivery import DeliveryEngine
from vendor_push.notifications.push_sender import VapidConfig, WebPushSender

# Headroom over the HTTP timeout so the transport normally reports its own timeout first.
ATTEMPT_TIMEOUT_GRACE_SECONDS = 5.0


def build_push_sender(settings: Settings, key_pair: VapidKeyPair) -> WebPushSender:
  """Construct the Web Push transport signed with the process key pair."""
  vapid_config = VapidConfig(public_key=key_pair.public_key, private_key=key_pair.private_key, sub=settings.vapid_sub)
  return WebPushSender(vapid_config=vapid_config, timeout_seconds=settings.push_timeout_seconds, ttl_seconds=settings.push_ttl_seconds)


def build_delivery_engine(settings: Settings, key_pair: VapidKeyPair, registry: SubscriptionRegistry) -> DeliveryEngine:
  """Construct a delivery engine bound to the registry and the configured transport."""
  return DeliveryEngine(
    registry=registry,
    push_sender=build_push_sender(settings, key_pair),
    attempt_timeout_seconds=settings.push_timeout_seconds + ATTEMPT_TIMEOUT_GRACE_SECONDS,
    max_concurrency=settings.push_max_concurrency,
    worker_threads=settings.push_worker_threads,
  )
