"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

# Real environment variables win over the repo-root .env file.
load_dotenv(Path(__file__).resolve().parents[1] / ".env", override=False)

_PRODUCTION_ENVIRONMENTS = {"production", "prod"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the vendor push service."""

  environment: str
  port: int
  allowed_origins: tuple[str, ...]
  debug: bool
  log_dir: str | None
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  vapid_public_key: str | None
  vapid_private_key: str | None
  vapid_sub: str
  require_vapid_keys: bool
  push_timeout_seconds: float
  push_ttl_seconds: int
  push_max_concurrency: int
  push_worker_threads: int
  order_url_base: str
  currency_symbol: str

  @property
  def is_production(self) -> bool:
    """Return True when running in a production-like environment."""
    return self.environment in _PRODUCTION_ENVIRONMENTS


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("FRONTEND_URL must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("FRONTEND_URL must include at least one origin.")

  if "*" in origins:
    raise ValueError("FRONTEND_URL must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("VENDOR_PUSH_ENV", "development").strip().lower()

  port = int(os.getenv("PORT", "5000"))
  if port <= 0 or port > 65535:
    raise ValueError("PORT must be between 1 and 65535.")

  # Toggle verbose logging in non-production environments.
  debug = _parse_bool(os.getenv("VENDOR_PUSH_DEBUG"))

  log_max_bytes = int(os.getenv("VENDOR_PUSH_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("VENDOR_PUSH_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("VENDOR_PUSH_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("VENDOR_PUSH_LOG_BACKUP_COUNT must be zero or a positive integer.")

  vapid_sub = (os.getenv("WEB_PUSH_EMAIL") or "mailto:admin@unoshops.com").strip()
  if not (vapid_sub.startswith("mailto:") or vapid_sub.startswith("https://")):
    raise ValueError("WEB_PUSH_EMAIL must start with 'mailto:' or 'https://'.")

  # Production refuses to run on throwaway keys unless explicitly overridden.
  raw_require_keys = os.getenv("VENDOR_PUSH_REQUIRE_VAPID_KEYS")
  require_vapid_keys = _parse_bool(raw_require_keys) if raw_require_keys is not None else environment in _PRODUCTION_ENVIRONMENTS

  push_timeout_seconds = float(os.getenv("VENDOR_PUSH_TIMEOUT_SECONDS", "10"))
  if push_timeout_seconds <= 0:
    raise ValueError("VENDOR_PUSH_TIMEOUT_SECONDS must be a positive number.")

  push_ttl_seconds = int(os.getenv("VENDOR_PUSH_TTL_SECONDS", "86400"))
  if push_ttl_seconds < 0:
    raise ValueError("VENDOR_PUSH_TTL_SECONDS must be zero or a positive integer.")

  push_max_concurrency = int(os.getenv("VENDOR_PUSH_MAX_CONCURRENCY", "0"))
  if push_max_concurrency < 0:
    raise ValueError("VENDOR_PUSH_MAX_CONCURRENCY must be zero (unbounded) or a positive integer.")

  # Defaults to the concurrency cap when one is set, otherwise to a fixed pool.
  raw_worker_threads = _optional_str(os.getenv("VENDOR_PUSH_WORKER_THREADS"))
  push_worker_threads = int(raw_worker_threads) if raw_worker_threads is not None else (push_max_concurrency or 32)
  if push_worker_threads <= 0:
    raise ValueError("VENDOR_PUSH_WORKER_THREADS must be a positive integer.")

  return Settings(
    environment=environment,
    port=port,
    allowed_origins=_parse_origins(os.getenv("FRONTEND_URL", "http://localhost:5173")),
    debug=debug,
    log_dir=_optional_str(os.getenv("VENDOR_PUSH_LOG_DIR")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("VENDOR_PUSH_LOG_HTTP_4XX")),
    vapid_public_key=_optional_str(os.getenv("VAPID_PUBLIC_KEY")),
    vapid_private_key=_optional_str(os.getenv("VAPID_PRIVATE_KEY")),
    vapid_sub=vapid_sub,
    require_vapid_keys=require_vapid_keys,
    push_timeout_seconds=push_timeout_seconds,
    push_ttl_seconds=push_ttl_seconds,
    push_max_concurrency=push_max_concurrency,
    push_worker_threads=push_worker_threads,
    order_url_base=(os.getenv("VENDOR_PUSH_ORDER_URL_BASE") or "https://vendors.unoshops.com/AllOrders/").strip(),
    currency_symbol=os.getenv("VENDOR_PUSH_CURRENCY_SYMBOL", "₹"),
  )
