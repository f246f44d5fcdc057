"""VAPID key pair provisioning for Web Push authentication.

How/Why:
- Subscriptions are bound to the public key the browser saw at subscribe time,
  so the pair must stay stable across restarts.
- Externally supplied keys are validated once at startup and used verbatim.
- Without keys, development runs on a freshly generated pair and says so loudly;
  production-like environments refuse to start instead.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from py_vapid import Vapid

from vendor_push.config import Settings

logger = logging.getLogger(__name__)


class KeyProvisioningError(RuntimeError):
  """Raised when the VAPID key pair is missing, partial, or inconsistent."""


@dataclass(frozen=True)
class VapidKeyPair:
  """Base64url-encoded application server key pair."""

  public_key: str
  private_key: str
  generated: bool = False


def _b64url(raw: bytes) -> str:
  return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _encode_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
  """Encode a public key as the uncompressed point browsers expect for applicationServerKey."""
  return _b64url(public_key.public_bytes(serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint))


def _encode_private_key(private_key: ec.EllipticCurvePrivateKey) -> str:
  """Encode a private key as its raw 32-byte scalar, the form pywebpush accepts."""
  return _b64url(private_key.private_numbers().private_value.to_bytes(32, "big"))


def generate_vapid_keys() -> VapidKeyPair:
  """Generate a fresh P-256 key pair."""
  vapid = Vapid()
  vapid.generate_keys()
  return VapidKeyPair(public_key=_encode_public_key(vapid.public_key), private_key=_encode_private_key(vapid.private_key), generated=True)


def load_vapid_keys(public_key: str, private_key: str) -> VapidKeyPair:
  """Validate an externally supplied pair and return it unchanged."""
  try:
    vapid = Vapid.from_string(private_key=private_key)
  except Exception as exc:  # noqa: BLE001
    raise KeyProvisioningError(f"VAPID_PRIVATE_KEY could not be parsed: {type(exc).__name__}") from exc

  # Reject a public key that does not belong to the private key.
  derived_public_key = _encode_public_key(vapid.public_key)
  if derived_public_key != public_key.rstrip("="):
    raise KeyProvisioningError("VAPID_PUBLIC_KEY does not match VAPID_PRIVATE_KEY.")

  return VapidKeyPair(public_key=public_key, private_key=private_key, generated=False)


def provision_vapid_keys(settings: Settings) -> VapidKeyPair:
  """Resolve the process-wide key pair from configuration, generating one in development."""
  public_key = settings.vapid_public_key
  private_key = settings.vapid_private_key

  if public_key and private_key:
    key_pair = load_vapid_keys(public_key, private_key)
    logger.info("VAPID keys loaded from environment variables.")
    return key_pair

  if public_key or private_key:
    missing = "VAPID_PRIVATE_KEY" if public_key else "VAPID_PUBLIC_KEY"
    raise KeyProvisioningError(f"{missing} must be set together with its counterpart.")

  if settings.require_vapid_keys:
    raise KeyProvisioningError(f"VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY must be set (environment={settings.environment}).")

  key_pair = generate_vapid_keys()
  logger.warning("WARNING: VAPID keys not found in environment variables. New keys generated.")
  logger.warning("Subscriptions collected with these keys become undeliverable after a restart unless the pair is persisted.")
  logger.warning("Persist a key pair with `vendor-push-keys` and set VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY. Generated VAPID_PUBLIC_KEY=%s", key_pair.public_key)
  return key_pair
