"""Facade for the IMAP integration layer.

What:
  Surface the session wrapper, the fetch stream types, and the search helper.

Why:
  Callers import ``MailboxClient`` and ``FetchResult`` without depending on
  the module layout.

How:
  Re-exports the canonical classes and functions.

Interfaces:
  ``ImapConfig``, ``MailboxClient``, ``FetchResult``, ``FetchStream``,
  ``fetch_stream``, ``build_search``.

Invariants & Safety:
  - All IMAP operations run in UID mode.
"""

from .client import ImapConfig, MailboxClient
from .fetch import FetchResult, FetchStream, fetch_stream
from .search import build_search

__all__ = [
    "ImapConfig",
    "MailboxClient",
    "FetchResult",
    "FetchStream",
    "fetch_stream",
    "build_search",
]
