from __future__ import annotations

import asyncio
import threading

import pytest

from vendor_push.notifications.contracts import DeliveryStatus, InvalidArgumentError, InvalidPushSubscriptionError, TransientPushProviderError
from vendor_push.notifications.delivery import DeliveryEngine

A = "https://fcm.googleapis.com/fcm/send/A"
B = "https://fcm.googleapis.com/fcm/send/B"
C = "https://updates.push.services.mozilla.com/wpush/v2/C"
D = "https://web.push.apple.com/D"


def _engine(registry, sender, *, timeout: float = 5.0, max_concurrency: int = 0, worker_threads: int | None = None) -> DeliveryEngine:
  return DeliveryEngine(registry=registry, push_sender=sender, attempt_timeout_seconds=timeout, max_concurrency=max_concurrency, worker_threads=worker_threads)


@pytest.mark.anyio
async def test_dispatch_without_subscribers_makes_no_calls(registry, fake_sender, payload):
  report = await _engine(registry, fake_sender).dispatch("v", payload)

  assert report.attempted == 0
  assert report.results == ()
  assert fake_sender.calls == []
  assert "v" not in registry._subscriptions


@pytest.mark.anyio
async def test_partial_failure_prunes_only_permanent_failures(registry, fake_sender, payload, subscription_factory):
  for endpoint in (A, B, C):
    registry.add("v1", subscription_factory(endpoint))
  fake_sender.failures[B] = InvalidPushSubscriptionError("Push subscription is invalid (status=410)")
  fake_sender.failures[C] = TransientPushProviderError("Push delivery failed (status=503)")

  report = await _engine(registry, fake_sender).dispatch("v1", payload)

  assert report.attempted == 3
  assert [outcome.endpoint for outcome in report.results] == [A, B, C]
  assert [outcome.status for outcome in report.results] == [DeliveryStatus.DELIVERED, DeliveryStatus.PERMANENTLY_INVALID, DeliveryStatus.TRANSIENT_ERROR]
  assert [outcome.success for outcome in report.results] == [True, False, False]
  assert report.results[2].detail == "Push delivery failed (status=503)"
  assert report.delivered == 1
  assert report.pruned == 1
  assert [subscription.endpoint for subscription in registry.get("v1")] == [A, C]


@pytest.mark.anyio
async def test_every_endpoint_receives_the_payload(registry, fake_sender, payload, subscription_factory):
  for endpoint in (A, B):
    registry.add("v1", subscription_factory(endpoint))

  await _engine(registry, fake_sender).dispatch("v1", payload)

  assert sorted(endpoint for endpoint, _ in fake_sender.calls) == [A, B]
  assert all(sent is payload for _, sent in fake_sender.calls)


@pytest.mark.anyio
async def test_all_failing_endpoints_still_return_report(registry, fake_sender, payload, subscription_factory):
  for endpoint in (A, B):
    registry.add("v1", subscription_factory(endpoint))
    fake_sender.failures[endpoint] = InvalidPushSubscriptionError("gone")

  report = await _engine(registry, fake_sender).dispatch("v1", payload)

  assert report.attempted == 2
  assert report.pruned == 2
  assert registry.get("v1") == ()


@pytest.mark.anyio
async def test_unexpected_sender_error_is_transient(registry, fake_sender, payload, subscription_factory):
  registry.add("v1", subscription_factory(A))
  fake_sender.failures[A] = RuntimeError("boom")

  report = await _engine(registry, fake_sender).dispatch("v1", payload)

  assert report.results[0].status is DeliveryStatus.TRANSIENT_ERROR
  assert report.results[0].detail == "RuntimeError: boom"
  assert len(registry.get("v1")) == 1


@pytest.mark.anyio
async def test_attempts_run_concurrently(registry, payload, subscription_factory):
  # Each send waits for all three to be in flight; serial dispatch would break the barrier.
  barrier = threading.Barrier(3, timeout=5)

  class _BarrierSender:
    def send(self, subscription, payload):
      barrier.wait()

  for endpoint in (A, B, C):
    registry.add("v1", subscription_factory(endpoint))

  report = await _engine(registry, _BarrierSender()).dispatch("v1", payload)

  assert report.delivered == 3


@pytest.mark.anyio
async def test_hanging_endpoint_is_bounded_by_attempt_timeout(registry, payload, subscription_factory):
  release = threading.Event()

  class _HangingSender:
    def send(self, subscription, payload):
      if subscription.endpoint == B:
        release.wait(10)

  registry.add("v1", subscription_factory(A))
  registry.add("v1", subscription_factory(B))

  try:
    report = await asyncio.wait_for(_engine(registry, _HangingSender(), timeout=0.2).dispatch("v1", payload), timeout=5)
  finally:
    release.set()

  assert report.results[0].status is DeliveryStatus.DELIVERED
  assert report.results[1].status is DeliveryStatus.TRANSIENT_ERROR
  assert "timed out" in report.results[1].detail
  # A slow endpoint is not a dead endpoint.
  assert len(registry.get("v1")) == 2


@pytest.mark.anyio
async def test_add_during_dispatch_is_not_lost(registry, payload, subscription_factory):
  in_flight = threading.Event()
  release = threading.Event()

  class _BlockingSender:
    def send(self, subscription, payload):
      in_flight.set()
      release.wait(5)
      raise InvalidPushSubscriptionError("gone")

  registry.add("v1", subscription_factory(A))
  task = asyncio.create_task(_engine(registry, _BlockingSender()).dispatch("v1", payload))

  await asyncio.to_thread(in_flight.wait, 5)
  assert registry.add("v1", subscription_factory(D)) is True
  release.set()
  report = await task

  # The in-flight dispatch used its snapshot; D waits for the next event.
  assert [outcome.endpoint for outcome in report.results] == [A]
  assert [subscription.endpoint for subscription in registry.get("v1")] == [D]


@pytest.mark.anyio
async def test_max_concurrency_caps_parallel_attempts(registry, payload, subscription_factory):
  lock = threading.Lock()
  active = {"now": 0, "peak": 0}

  class _CountingSender:
    def send(self, subscription, payload):
      with lock:
        active["now"] += 1
        active["peak"] = max(active["peak"], active["now"])
      threading.Event().wait(0.05)
      with lock:
        active["now"] -= 1

  for index in range(6):
    registry.add("v1", subscription_factory(f"https://fcm.googleapis.com/fcm/send/{index}"))

  report = await _engine(registry, _CountingSender(), max_concurrency=2).dispatch("v1", payload)

  assert report.delivered == 6
  assert active["peak"] <= 2


@pytest.mark.anyio
async def test_queued_sends_are_not_charged_for_waiting_on_a_worker(registry, payload, subscription_factory):
  # Six sends share two worker threads; each takes longer than half the bound.
  lock = threading.Lock()
  started: list[str] = []

  class _SlowSender:
    def send(self, subscription, payload):
      with lock:
        started.append(subscription.endpoint)
      threading.Event().wait(0.2)

  endpoints = [f"https://fcm.googleapis.com/fcm/send/{index}" for index in range(6)]
  for endpoint in endpoints:
    registry.add("v1", subscription_factory(endpoint))

  engine = _engine(registry, _SlowSender(), timeout=0.3, worker_threads=2)
  try:
    report = await engine.dispatch("v1", payload)
  finally:
    engine.close()

  assert [outcome.status for outcome in report.results] == [DeliveryStatus.DELIVERED] * 6
  assert sorted(started) == sorted(endpoints)


@pytest.mark.anyio
async def test_closed_engine_reports_transient_errors(registry, fake_sender, payload, subscription_factory):
  registry.add("v1", subscription_factory(A))
  engine = _engine(registry, fake_sender)
  engine.close()

  report = await engine.dispatch("v1", payload)

  assert report.results[0].status is DeliveryStatus.TRANSIENT_ERROR
  assert fake_sender.calls == []
  assert len(registry.get("v1")) == 1


@pytest.mark.anyio
@pytest.mark.parametrize("vendor_id", ["", "   "])
async def test_dispatch_rejects_blank_vendor(registry, fake_sender, payload, vendor_id):
  with pytest.raises(InvalidArgumentError):
    await _engine(registry, fake_sender).dispatch(vendor_id, payload)


@pytest.mark.anyio
async def test_dispatch_rejects_malformed_payload(registry, fake_sender):
  with pytest.raises(InvalidArgumentError):
    await _engine(registry, fake_sender).dispatch("v1", {"title": "x"})


def test_engine_rejects_invalid_limits(registry, fake_sender):
  with pytest.raises(ValueError):
    _engine(registry, fake_sender, timeout=0)

  with pytest.raises(ValueError):
    _engine(registry, fake_sender, max_concurrency=-1)

  with pytest.raises(ValueError):
    _engine(registry, fake_sender, worker_threads=0)
