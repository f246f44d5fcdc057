import logging
import logging.handlers
import sys
import time
from pathlib import Path
from types import TracebackType

from vendor_push.config import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
LOG_FORMATTER = logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT)

_LOGGING_INITIALIZED = False


class TruncatedFormatter(logging.Formatter):
  """Formatter that truncates the stack trace to the last few lines."""

  # ruff: noqa: N802
  def formatException(self, ei: tuple[type[BaseException] | None, BaseException | None, TracebackType | None]) -> str:
    import traceback

    lines = traceback.format_exception(*ei)
    # Keep header + last 5 lines of traceback
    if len(lines) > 6:
      return "".join(lines[:1] + ["    ...\n"] + lines[-5:])
    return "".join(lines)


def _build_file_handler(settings: Settings) -> tuple[logging.Handler, Path]:
  """Create a rotating file handler inside the configured log directory."""
  log_dir = Path(settings.log_dir or "logs")
  try:
    log_dir.mkdir(parents=True, exist_ok=True)
  except OSError as exc:
    raise RuntimeError(f"Failed to create log directory at {log_dir}: {exc}") from exc

  log_path = log_dir / f"vendor_push_{time.strftime('%Y%m%d_%H%M%S')}.log"
  file_handler = logging.handlers.RotatingFileHandler(log_path, encoding="utf-8", maxBytes=settings.log_max_bytes, backupCount=settings.log_backup_count)
  file_handler.setFormatter(LOG_FORMATTER)
  return file_handler, log_path


def setup_logging(settings: Settings) -> Path | None:
  """Route application and uvicorn loggers to stdout and, when configured, a rotating file."""
  stream_handler = logging.StreamHandler(sys.stdout)
  stream_handler.setFormatter(TruncatedFormatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  handlers: list[logging.Handler] = [stream_handler]

  log_path: Path | None = None
  if settings.log_dir:
    file_handler, log_path = _build_file_handler(settings)
    handlers.append(file_handler)

  for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
    log = logging.getLogger(logger_name)
    log.handlers = list(handlers)
    log.propagate = False

  level = logging.DEBUG if settings.debug else logging.INFO
  logging.basicConfig(level=level, handlers=handlers, force=True)
  return log_path


def initialize_logging(settings: Settings) -> None:
  """Initialize logging once per process."""
  global _LOGGING_INITIALIZED
  if _LOGGING_INITIALIZED:
    return
  log_path = setup_logging(settings)
  _LOGGING_INITIALIZED = True
  logger = logging.getLogger("vendor_push.core.logging")
  if log_path is not None:
    logger.info("Logging initialized. Writing to %s", log_path)
  else:
    logger.info("Logging initialized (stdout only).")
