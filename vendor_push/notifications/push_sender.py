"""Push notification delivery over the Web Push protocol."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from http import HTTPStatus

import requests
from pywebpush import WebPushException, webpush

from vendor_push.notifications.contracts import InvalidPushSubscriptionError, PushPayload, PushSender, PushSubscription, TransientPushProviderError

logger = logging.getLogger(__name__)

_GONE_STATUSES = {HTTPStatus.GONE, HTTPStatus.NOT_FOUND}


@dataclass(frozen=True)
class VapidConfig:
  """Configuration required to sign Web Push requests."""

  public_key: str
  private_key: str
  sub: str


class WebPushSender(PushSender):
  """`pywebpush` backed sender with invalid-endpoint classification.

  Each call makes exactly one attempt; retry policy belongs to the caller.
  """

  def __init__(self, *, vapid_config: VapidConfig, timeout_seconds: float = 10.0, ttl_seconds: int = 86400) -> None:
    self._vapid_config = vapid_config
    self._timeout_seconds = timeout_seconds
    self._ttl_seconds = ttl_seconds

  def send(self, subscription: PushSubscription, payload: PushPayload) -> None:
    """Send a Web Push payload once, classifying failures by provider status."""
    try:
      # pywebpush adds aud/exp to the claims dict in place, so build a fresh one per call.
      webpush(
        subscription_info=subscription.to_subscription_info(),
        data=json.dumps(payload.to_dict(), ensure_ascii=False),
        vapid_private_key=self._vapid_config.private_key,
        vapid_claims={"sub": self._vapid_config.sub},
        timeout=self._timeout_seconds,
        ttl=self._ttl_seconds,
      )
    except WebPushException as exc:
      status_code = _extract_status_code(exc)

      if status_code in _GONE_STATUSES:
        raise InvalidPushSubscriptionError(f"Push subscription is invalid (status={int(status_code)})") from exc

      raise TransientPushProviderError(f"Push delivery failed (status={int(status_code) if status_code else 'unknown'})") from exc
    except requests.RequestException as exc:
      # Network failures and timeouts leave the endpoint usable for the next event.
      raise TransientPushProviderError(f"Push delivery failed ({type(exc).__name__}: {exc})") from exc


def _extract_status_code(exc: WebPushException) -> int | None:
  """Extract an HTTP status code from a pywebpush exception when available."""
  response = getattr(exc, "response", None)
  if response is None:
    return None

  status = getattr(response, "status_code", None)
  if isinstance(status, int):
    return status

  return None
