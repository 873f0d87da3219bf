"""End-to-end tests for the ``mailtree`` command-line interface.

What:
  Run ``parse`` as operators do (``python -m mailtree.cli``) against stored
  messages, and run ``fetch`` in-process against the fake IMAP backend.

Why:
  These tests cover the entry point wiring, configuration bootstrap, JSON
  output, and exit codes that scripts depend on.

How:
  ``parse`` runs in a subprocess with ``PYTHONPATH`` pointing at the in-repo
  source tree. ``fetch`` needs the network layer replaced, so it goes through
  :class:`typer.testing.CliRunner` with ``IMAPClient`` monkeypatched.

Interfaces:
  ``test_cli_parse_*``, ``test_cli_fetch_*``.

Invariants & Safety:
  - No test requires network access.
"""

import json
import os
import pathlib
import subprocess
import sys

import pytest
from typer.testing import CliRunner

from mailtree.cli import app

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]
UNIT_DIR = PROJECT_ROOT / "tests" / "unit"
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend, simple_message


MULTIPART = (
    b"From: Alice <alice@example.com>\r\n"
    b"To: bob@example.com\r\n"
    b"Subject: =?UTF-8?B?UmVwb3J0?=\r\n"
    b"Date: Wed, 01 May 2024 09:30:00 +0000\r\n"
    b"Content-Type: multipart/mixed; boundary=SEP\r\n\r\n"
    b"--SEP\r\nContent-Type: text/plain\r\n\r\nsee attached\r\n"
    b"--SEP\r\nContent-Type: broken\r\n\r\nxx\r\n"
    b"--SEP--\r\n"
)


def _run_cli(*args: str) -> subprocess.CompletedProcess:
    """Execute ``python -m mailtree.cli`` against the in-repo sources."""

    env = os.environ.copy()
    src = str(PROJECT_ROOT / "mailtree" / "src")
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [src, env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "mailtree.cli", *args],
        capture_output=True,
        text=True,
        env=env,
        cwd=PROJECT_ROOT,
        check=False,
    )


def test_cli_parse_prints_tree_with_advisory_error(tmp_path):
    message = tmp_path / "report.eml"
    message.write_bytes(MULTIPART)
    result = _run_cli("parse", str(message))

    assert result.returncode == 0, result.stderr
    payload = json.loads(result.stdout)
    assert payload["subject"] == "Report"
    assert payload["from"]["address"] == "alice@example.com"
    assert payload["mimeType"] == "multipart/mixed"
    assert len(payload["children"]) == 1
    assert payload["error"].startswith("part 1:")


def test_cli_parse_strict_refuses_broken_message(tmp_path):
    message = tmp_path / "report.eml"
    message.write_bytes(MULTIPART)
    result = _run_cli("parse", "--strict", str(message))
    assert result.returncode == 1
    assert "error" in json.loads(result.stdout)


def test_cli_parse_reports_missing_sender(tmp_path):
    message = tmp_path / "anon.eml"
    message.write_bytes(b"Subject: nobody\r\n\r\nbody")
    result = _run_cli("parse", str(message))
    assert result.returncode == 1
    assert "From" in json.loads(result.stdout)["error"]


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakeImapBackend:
    fake = FakeImapBackend()
    monkeypatch.setattr(
        "mailtree.imap.client.IMAPClient",
        lambda host, port, ssl, ssl_context: fake,
    )
    return fake


def test_cli_fetch_streams_json_lines(backend):
    backend.add(1, *simple_message("first", subject="One"))
    backend.add(2, *simple_message("second", sender=""))
    backend.add_spurious(50)

    result = CliRunner().invoke(app, ["fetch", "--query", "UNSEEN", "--since", "2024-05-01"])

    assert result.exit_code == 0, result.output
    lines = [json.loads(line) for line in result.stdout.splitlines() if line.strip()]
    assert [line["uid"] for line in lines] == [1, 2]
    assert lines[0]["subject"] == "One"
    assert "error" not in lines[0]
    assert "From" in lines[1]["error"]
    assert backend.search_calls == ["UNSEEN SINCE 01-May-2024"]
    assert backend.logged_out


def test_cli_fetch_transport_failure_exits_nonzero(backend):
    backend.add(1, *simple_message("first"))
    backend.fail_on.add("fetch")
    result = CliRunner().invoke(app, ["fetch"])
    assert result.exit_code == 1


def test_cli_rejects_invalid_config(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("imap:\n  nope: 1\n")
    result = CliRunner().invoke(app, ["fetch", "--config", str(bad)])
    assert result.exit_code == 1
