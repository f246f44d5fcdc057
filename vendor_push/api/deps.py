"""Shared FastAPI dependencies resolving the process-wide push components."""

from __future__ import annotations

from fastapi import Request

from vendor_push.config import Settings, get_settings
from vendor_push.core.keys import VapidKeyPair
from vendor_push.notifications.delivery import DeliveryEngine
from vendor_push.notifications.registry import InMemorySubscriptionRegistry


def get_registry(request: Request) -> InMemorySubscriptionRegistry:
  """Return the registry created during startup."""
  return request.app.state.registry


def get_delivery_engine(request: Request) -> DeliveryEngine:
  """Return the delivery engine created during startup."""
  return request.app.state.delivery_engine


def get_vapid_keys(request: Request) -> VapidKeyPair:
  """Return the active VAPID key pair."""
  return request.app.state.vapid_keys


def get_app_settings() -> Settings:
  """Dependency wrapper so routes can be tested with overridden settings."""
  return get_settings()
