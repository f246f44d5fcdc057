"""Concurrent fan-out of push payloads to a vendor's registered devices."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from concurrent.futures import ThreadPoolExecutor

from vendor_push.notifications.contracts import (
  DeliveryOutcome,
  DeliveryReport,
  DeliveryStatus,
  InvalidArgumentError,
  InvalidPushSubscriptionError,
  NotificationProviderError,
  PushPayload,
  PushSender,
  PushSubscription,
  SubscriptionRegistry,
)

logger = logging.getLogger(__name__)

DEFAULT_WORKER_THREADS = 32


class DeliveryEngine:
  """Deliver one payload to every endpoint of a vendor and prune the dead ones.

  All attempts for a dispatch start together and are joined before the report
  is built. Sends run on the engine's own worker pool, and each attempt is
  bounded by `attempt_timeout_seconds` from the moment its send starts running,
  so one hanging endpoint cannot hold the whole dispatch and time spent waiting
  for a free worker never counts against an attempt. Pruning happens once, after
  every outcome is known.
  """

  def __init__(self, *, registry: SubscriptionRegistry, push_sender: PushSender, attempt_timeout_seconds: float, max_concurrency: int = 0, worker_threads: int | None = None) -> None:
    if attempt_timeout_seconds <= 0:
      raise ValueError("attempt_timeout_seconds must be positive.")

    if max_concurrency < 0:
      raise ValueError("max_concurrency must be zero (unbounded) or positive.")

    if worker_threads is not None and worker_threads <= 0:
      raise ValueError("worker_threads must be positive.")

    self._registry = registry
    self._push_sender = push_sender
    self._attempt_timeout_seconds = attempt_timeout_seconds
    self._max_concurrency = max_concurrency
    self._executor = ThreadPoolExecutor(max_workers=worker_threads or max_concurrency or DEFAULT_WORKER_THREADS, thread_name_prefix="vendor-push")

  def close(self) -> None:
    """Release the worker pool; sends already running finish on their threads."""
    self._executor.shutdown(wait=False)

  async def dispatch(self, vendor_id: str, payload: PushPayload) -> DeliveryReport:
    """Send `payload` to each of the vendor's endpoints and return per-endpoint outcomes."""
    if not isinstance(vendor_id, str) or not vendor_id.strip():
      raise InvalidArgumentError("vendor_id must not be empty.")

    if not isinstance(payload, PushPayload):
      raise InvalidArgumentError("payload must be a PushPayload.")

    subscriptions = self._registry.get(vendor_id)
    if not subscriptions:
      logger.info("No active push subscriptions for vendor %s.", vendor_id)
      return DeliveryReport(vendor_id=vendor_id, attempted=0, results=())

    # A fresh semaphore per dispatch keeps the cap local to this fan-out.
    semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
    outcomes = await asyncio.gather(*(self._deliver(vendor_id, subscription, payload, semaphore) for subscription in subscriptions))

    invalid_endpoints = {outcome.endpoint for outcome in outcomes if outcome.invalid}
    if invalid_endpoints:
      self._registry.prune(vendor_id, invalid_endpoints)

    report = DeliveryReport(vendor_id=vendor_id, attempted=len(subscriptions), results=tuple(outcomes))
    logger.info("Dispatch complete vendor=%s attempted=%d delivered=%d pruned=%d", vendor_id, report.attempted, report.delivered, report.pruned)
    return report

  async def _deliver(self, vendor_id: str, subscription: PushSubscription, payload: PushPayload, semaphore: asyncio.Semaphore | None) -> DeliveryOutcome:
    """Run one bounded attempt and classify it; never raises."""
    endpoint = subscription.endpoint
    guard = semaphore if semaphore is not None else contextlib.nullcontext()

    try:
      async with guard:
        await self._bounded_send(subscription, payload)
    except InvalidPushSubscriptionError as exc:
      logger.error("Error sending push to vendor %s (endpoint: %s): %s", vendor_id, endpoint, exc)
      logger.info("Removing invalid subscription for vendor %s: %s", vendor_id, endpoint)
      return DeliveryOutcome(endpoint=endpoint, status=DeliveryStatus.PERMANENTLY_INVALID, detail=str(exc))
    except asyncio.TimeoutError:
      detail = f"Push delivery timed out after {self._attempt_timeout_seconds:g}s"
      logger.error("Error sending push to vendor %s (endpoint: %s): %s", vendor_id, endpoint, detail)
      return DeliveryOutcome(endpoint=endpoint, status=DeliveryStatus.TRANSIENT_ERROR, detail=detail)
    except NotificationProviderError as exc:
      logger.error("Error sending push to vendor %s (endpoint: %s): %s", vendor_id, endpoint, exc)
      return DeliveryOutcome(endpoint=endpoint, status=DeliveryStatus.TRANSIENT_ERROR, detail=str(exc))
    except Exception as exc:  # noqa: BLE001
      logger.error("Unexpected push failure vendor=%s endpoint=%s error=%s", vendor_id, endpoint, exc, exc_info=True)
      return DeliveryOutcome(endpoint=endpoint, status=DeliveryStatus.TRANSIENT_ERROR, detail=f"{type(exc).__name__}: {exc}")

    logger.info("Push notification sent to vendor %s (endpoint: %s).", vendor_id, endpoint)
    return DeliveryOutcome(endpoint=endpoint, status=DeliveryStatus.DELIVERED)

  async def _bounded_send(self, subscription: PushSubscription, payload: PushPayload) -> None:
    """Run the send on the worker pool and start the attempt clock once a thread picks it up."""
    loop = asyncio.get_running_loop()
    started = asyncio.Event()

    def _run() -> None:
      loop.call_soon_threadsafe(started.set)
      self._push_sender.send(subscription, payload)

    future = loop.run_in_executor(self._executor, _run)
    try:
      await started.wait()
    except BaseException:
      # Still queued: withdraw it so a cancelled dispatch never sends late.
      future.cancel()
      raise

    # wait_for abandons a stuck send; the worker thread finishes on its own.
    await asyncio.wait_for(future, timeout=self._attempt_timeout_seconds)
