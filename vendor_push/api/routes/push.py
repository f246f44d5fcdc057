"""Routes for vendor push subscriptions and order notifications."""

from __future__ import annotations

import logging
import re
import urllib.parse
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from vendor_push.api.deps import get_app_settings, get_delivery_engine, get_registry, get_vapid_keys
from vendor_push.config import Settings
from vendor_push.core.keys import VapidKeyPair
from vendor_push.notifications.contracts import DeliveryReport, PushSubscription, PushSubscriptionKeys
from vendor_push.notifications.delivery import DeliveryEngine
from vendor_push.notifications.payloads import build_order_payload
from vendor_push.notifications.registry import InMemorySubscriptionRegistry

_BASE64_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")

logger = logging.getLogger(__name__)

router = APIRouter()


def _coerce_identifier(value: Any) -> Any:
  """Accept numeric identifiers from JSON clients by normalizing them to strings."""
  if isinstance(value, int) and not isinstance(value, bool):
    return str(value)
  return value


Identifier = Annotated[str, BeforeValidator(_coerce_identifier), Field(min_length=1, max_length=256)]


def _validate_endpoint_url(value: str) -> str:
  """Require an absolute https endpoint as issued by browser push services."""
  normalized = value.strip()
  parsed = urllib.parse.urlparse(normalized)

  if parsed.scheme.lower() != "https":
    raise PydanticCustomError("push_endpoint_https", "endpoint must use https.")

  if not parsed.hostname:
    raise PydanticCustomError("push_endpoint_host", "endpoint must include a host.")

  return normalized


class PushSubscriptionKeysPayload(BaseModel):
  """Browser-provided key material for Web Push encryption."""

  p256dh: str = Field(min_length=1, max_length=512)
  auth: str = Field(min_length=1, max_length=256)
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  @field_validator("p256dh", "auth")
  @classmethod
  def validate_base64url(cls, value: str) -> str:
    """Keys must be base64url encoded."""
    if not _BASE64_RE.fullmatch(value):
      raise PydanticCustomError("push_key_format", "push keys must be base64url encoded.")
    return value


class PushSubscriptionPayload(BaseModel):
  """Standard browser push subscription object payload."""

  endpoint: str = Field(min_length=1, max_length=2048)
  expiration_time: int | None = Field(default=None, alias="expirationTime")
  keys: PushSubscriptionKeysPayload
  model_config = ConfigDict(extra="ignore", populate_by_name=True)

  @field_validator("endpoint")
  @classmethod
  def validate_endpoint(cls, value: str) -> str:
    return _validate_endpoint_url(value)

  def to_subscription(self) -> PushSubscription:
    return PushSubscription(endpoint=self.endpoint, keys=PushSubscriptionKeys(p256dh=self.keys.p256dh, auth=self.keys.auth), expiration_time=self.expiration_time)


class SubscribeRequest(BaseModel):
  """Registration of one browser for a vendor's order notifications."""

  vendor_id: Identifier = Field(alias="vendorId")
  subscription: PushSubscriptionPayload
  model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class UnsubscribeRequest(BaseModel):
  """Removal of one browser from a vendor's subscriptions."""

  vendor_id: Identifier = Field(alias="vendorId")
  endpoint: str = Field(min_length=1, max_length=2048)
  model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class NewOrderRequest(BaseModel):
  """Order event that triggers a notification to the vendor's devices."""

  vendor_id: Identifier = Field(alias="vendorId")
  order_id: Identifier = Field(alias="orderId")
  customer_name: str = Field(alias="customerName", min_length=1, max_length=256)
  order_total: str = Field(alias="orderTotal", min_length=1, max_length=64)
  model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

  @field_validator("order_total", mode="before")
  @classmethod
  def normalize_order_total(cls, value: Any) -> Any:
    """Render numeric totals the way they were sent, without a trailing `.0` for whole amounts."""
    if isinstance(value, bool):
      raise PydanticCustomError("order_total_type", "orderTotal must be a number or string.")
    if isinstance(value, float):
      return str(int(value)) if value.is_integer() else repr(value)
    return _coerce_identifier(value)


class PublicKeyResponse(BaseModel):
  public_key: str = Field(alias="publicKey")
  model_config = ConfigDict(populate_by_name=True)


class SubscribeResponse(BaseModel):
  message: str
  created: bool


class UnsubscribeResponse(BaseModel):
  message: str
  removed: bool


class DeliveryResultResponse(BaseModel):
  """One endpoint's delivery outcome as reported to the caller."""

  endpoint: str
  status: str
  success: bool
  invalid: bool
  error: str | None = None


class NewOrderResponse(BaseModel):
  message: str
  attempted: int
  results: list[DeliveryResultResponse]

  @classmethod
  def from_report(cls, report: DeliveryReport) -> NewOrderResponse:
    message = "Notifications processing complete." if report.attempted else "No active subscriptions for vendor."
    results = [DeliveryResultResponse(endpoint=outcome.endpoint, status=outcome.status.value, success=outcome.success, invalid=outcome.invalid, error=None if outcome.success else outcome.detail) for outcome in report.results]
    return cls(message=message, attempted=report.attempted, results=results)


@router.get("/vapid-public-key", response_model=PublicKeyResponse)
async def get_vapid_public_key(vapid_keys: VapidKeyPair = Depends(get_vapid_keys)) -> PublicKeyResponse:  # noqa: B008
  """Return the application server key browsers need to subscribe."""
  return PublicKeyResponse(public_key=vapid_keys.public_key)


@router.post("/subscribe", status_code=status.HTTP_201_CREATED, response_model=SubscribeResponse)
async def subscribe(payload: SubscribeRequest, registry: InMemorySubscriptionRegistry = Depends(get_registry)) -> SubscribeResponse:  # noqa: B008
  """Register a browser subscription for a vendor; resubscribing is a no-op."""
  created = registry.add(payload.vendor_id, payload.subscription.to_subscription())
  return SubscribeResponse(message="Subscription received", created=created)


@router.delete("/subscribe", response_model=UnsubscribeResponse)
async def unsubscribe(payload: UnsubscribeRequest, registry: InMemorySubscriptionRegistry = Depends(get_registry)) -> UnsubscribeResponse:  # noqa: B008
  """Remove a browser subscription for a vendor; idempotent."""
  removed = registry.remove(payload.vendor_id, payload.endpoint)
  message = "Subscription removed" if removed else "Subscription not found"
  return UnsubscribeResponse(message=message, removed=removed)


@router.post("/new-order", response_model=NewOrderResponse)
async def new_order(payload: NewOrderRequest, engine: DeliveryEngine = Depends(get_delivery_engine), settings: Settings = Depends(get_app_settings)) -> NewOrderResponse:  # noqa: B008
  """Notify every device of the vendor about a new order and report per-device outcomes."""
  logger.info("New order received for vendor %s: Order #%s from %s", payload.vendor_id, payload.order_id, payload.customer_name)

  push_payload = build_order_payload(payload.order_id, payload.customer_name, payload.order_total, currency_symbol=settings.currency_symbol, order_url_base=settings.order_url_base)
  report = await engine.dispatch(payload.vendor_id, push_payload)
  return NewOrderResponse.from_report(report)
