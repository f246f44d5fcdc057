"""Print a fresh VAPID key pair in .env format."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from vendor_push.core.keys import generate_vapid_keys


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(description="Generate a VAPID key pair for the vendor push service.")
  parser.add_argument("--output", "-o", help="Append the pair to this .env file instead of printing it.")
  return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
  """Generate a key pair once so it can be stored with the deployment configuration."""
  args = _parse_args(argv)
  key_pair = generate_vapid_keys()
  lines = f"VAPID_PUBLIC_KEY={key_pair.public_key}\nVAPID_PRIVATE_KEY={key_pair.private_key}\n"

  if args.output:
    output = Path(args.output)
    # Keep the pair on its own lines when the file lacks a trailing newline.
    if output.is_file() and output.stat().st_size and not output.read_bytes().endswith(b"\n"):
      lines = "\n" + lines
    with output.open("a", encoding="utf-8") as handle:
      handle.write(lines)
    print(f"VAPID key pair appended to {args.output}", file=sys.stderr)
    return 0

  sys.stdout.write(lines)
  return 0


if __name__ == "__main__":
  sys.exit(main())
