from __future__ import annotations

import dataclasses

from vendor_push.config import get_settings
from vendor_push.scripts import entrypoint


def test_main_execs_uvicorn_on_configured_port(monkeypatch):
  calls = []
  settings = dataclasses.replace(get_settings(), port=8123)
  monkeypatch.setattr(entrypoint, "get_settings", lambda: settings)
  monkeypatch.setattr(entrypoint.os, "execvp", lambda file, args: calls.append((file, args)))

  entrypoint.main()

  file, args = calls[0]
  assert file == "uvicorn"
  assert args[1] == "vendor_push.main:app"
  assert args[args.index("--port") + 1] == "8123"
