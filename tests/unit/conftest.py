"""Pytest fixtures for unit tests requiring IMAP fakes.

What:
  Make ``tests/unit`` importable and expose fixtures backed by
  :class:`FakeImapBackend`.

Why:
  Session and fetch tests assert on backend state (selected folder, issued
  criteria, fetch calls) while driving the high-level client. A fresh fake per
  test keeps message flows deterministic and offline.

How:
  Monkeypatch ``mailtree.imap.client.IMAPClient`` to return the fake backend
  and yield the connected :class:`MailboxClient` inside its context manager so
  the login/select/logout flow mirrors production.

Interfaces:
  :func:`backend`, :func:`imap_client` (pytest fixtures).
"""

import sys
from pathlib import Path

import pytest

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend

from mailtree.imap.client import ImapConfig, MailboxClient


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakeImapBackend:
    """Return a fresh fake installed in place of ``IMAPClient``."""

    fake = FakeImapBackend()
    monkeypatch.setattr(
        "mailtree.imap.client.IMAPClient",
        lambda host, port, ssl, ssl_context: fake,
    )
    return fake


@pytest.fixture
def imap_client(backend: FakeImapBackend):
    """Yield ``(MailboxClient, FakeImapBackend)`` with an open session.

    Yields:
      The connected client and the backend it talks to.
    """

    with MailboxClient(ImapConfig()) as client:
        yield client, backend
