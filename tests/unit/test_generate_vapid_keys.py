from __future__ import annotations

from vendor_push.scripts.generate_vapid_keys import main


def test_main_prints_env_lines(capsys):
  assert main([]) == 0

  lines = capsys.readouterr().out.splitlines()
  assert [line.split("=", 1)[0] for line in lines] == ["VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY"]
  assert all(line.split("=", 1)[1] for line in lines)


def test_main_appends_to_env_file(tmp_path):
  env_file = tmp_path / ".env"
  env_file.write_text("PORT=5000\n", encoding="utf-8")

  assert main(["--output", str(env_file)]) == 0

  content = env_file.read_text(encoding="utf-8").splitlines()
  assert content[0] == "PORT=5000"
  assert content[1].startswith("VAPID_PUBLIC_KEY=")
  assert content[2].startswith("VAPID_PRIVATE_KEY=")


def test_main_starts_a_new_line_when_env_file_lacks_trailing_newline(tmp_path):
  env_file = tmp_path / ".env"
  env_file.write_text("PORT=5000", encoding="utf-8")

  assert main(["--output", str(env_file)]) == 0

  content = env_file.read_text(encoding="utf-8").splitlines()
  assert content[0] == "PORT=5000"
  assert content[1].startswith("VAPID_PUBLIC_KEY=")
  assert content[2].startswith("VAPID_PRIVATE_KEY=")


def test_main_creates_missing_env_file(tmp_path):
  env_file = tmp_path / ".env"

  assert main(["--output", str(env_file)]) == 0

  assert env_file.read_text(encoding="utf-8").startswith("VAPID_PUBLIC_KEY=")
