"""Push payload rendering for order events."""

from __future__ import annotations

from vendor_push.notifications.contracts import PushPayload

DEFAULT_ORDER_URL_BASE = "https://vendors.unoshops.com/AllOrders/"
DEFAULT_CURRENCY_SYMBOL = "₹"


def build_order_payload(order_id: str, customer_name: str, order_total: str, *, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL, order_url_base: str = DEFAULT_ORDER_URL_BASE) -> PushPayload:
  """Render the new-order notification with a deep link to the order."""
  # Callers validate required fields; this only formats them.
  return PushPayload(title=f"New Order! #{order_id}", body=f"From: {customer_name}, Total: {currency_symbol}{order_total}", url=f"{order_url_base}?{order_id}")
