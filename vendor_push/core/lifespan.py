import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from vendor_push.core.keys import KeyProvisioningError, provision_vapid_keys
from vendor_push.core.logging import initialize_logging
from vendor_push.notifications.factory import build_delivery_engine
from vendor_push.notifications.registry import InMemorySubscriptionRegistry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialize logging, keys and the in-memory registry before serving requests."""
  from vendor_push.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("vendor_push.core.lifespan")

  initialize_logging(settings)

  try:
    key_pair = provision_vapid_keys(settings)
  except KeyProvisioningError:
    # Refuse to serve with keys that would bind subscriptions to the wrong pair.
    logger.error("VAPID key provisioning failed; refusing to start the service.", exc_info=True)
    raise

  # Subscriptions live in process memory and are lost on restart.
  registry = InMemorySubscriptionRegistry()
  app.state.vapid_keys = key_pair
  app.state.registry = registry
  engine = build_delivery_engine(settings, key_pair, registry)
  app.state.delivery_engine = engine

  logger.info("Startup complete environment=%s generated_keys=%s allowed_origins=%s", settings.environment, key_pair.generated, ",".join(settings.allowed_origins))
  yield
  engine.close()
  logger.info("Shutting down; %d in-memory subscription(s) discarded.", registry.subscription_count())
