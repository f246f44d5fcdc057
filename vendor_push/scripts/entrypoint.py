import logging
import os

from vendor_push.config import get_settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Launch the service under uvicorn on the configured port."""
  settings = get_settings()
  logger.info("Starting vendor push service on port %d...", settings.port)
  # Replace the current process so uvicorn receives SIGTERM directly.
  args = ["uvicorn", "vendor_push.main:app", "--host", "0.0.0.0", "--port", str(settings.port), "--no-server-header"]
  os.execvp("uvicorn", args)


if __name__ == "__main__":
  main()
