"""
Module: mailtree.__init__

What:
  Aggregate the public surface of the mailbox client: reconstruction of raw
  IMAP fetch results into envelopes and navigable MIME body trees, and the
  streaming fetch that produces them.

Why:
  Importers build on a handful of names (``MailboxClient``, ``Message``,
  ``BodyPart``, ``FetchResult``) and should not depend on module layout.

How:
  Re-export the primary classes and list the subpackages in ``__all__``.

Interfaces:
  - config: Runtime configuration loader and schema.
  - mime: Transfer decoding, header helpers, body tree builder and queries.
  - mail: Envelope extraction and message assembly.
  - imap: Session wrapper, UID search, streaming fetch.
  - utils: Structured logging.
"""

from .imap import FetchResult, FetchStream, ImapConfig, MailboxClient
from .mail import Address, Message, assemble, parse_message
from .mime import BodyPart, build_tree

__version__ = "0.1.0"

__all__ = [
    "config",
    "errors",
    "imap",
    "mail",
    "mime",
    "utils",
    "Address",
    "BodyPart",
    "FetchResult",
    "FetchStream",
    "ImapConfig",
    "MailboxClient",
    "Message",
    "assemble",
    "build_tree",
    "parse_message",
]
