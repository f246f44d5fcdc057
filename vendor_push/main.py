from __future__ import annotations

from fastapi import Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from vendor_push import __version__
from vendor_push.api.deps import get_registry
from vendor_push.api.routes import push
from vendor_push.config import get_settings
from vendor_push.core.exceptions import global_exception_handler, http_exception_handler, invalid_argument_exception_handler, request_validation_exception_handler
from vendor_push.core.lifespan import lifespan
from vendor_push.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from vendor_push.notifications.contracts import InvalidArgumentError
from vendor_push.notifications.registry import InMemorySubscriptionRegistry

settings = get_settings()

app = FastAPI(title="Vendor Push", version=__version__, lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=False, allow_methods=["GET", "POST", "DELETE", "OPTIONS"], allow_headers=["content-type"], expose_headers=["x-request-id"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(InvalidArgumentError, invalid_argument_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check(registry: InMemorySubscriptionRegistry = Depends(get_registry)) -> dict[str, object]:  # noqa: B008
  """Return a simple health status with registry size."""
  return {"status": "ok", "version": __version__, "vendors": registry.vendor_count(), "subscriptions": registry.subscription_count()}


app.include_router(push.router, prefix="/api", tags=["push"])
