"""Message assembly from raw fetch fields.

What:
  Combine the raw ``RFC822.HEADER`` block, the raw body, the server arrival
  time, and the UID of one fetched item into a :class:`Message`: the root
  :class:`~mailtree.mime.parts.BodyPart` of the body tree enriched with the
  envelope.

Why:
  Envelope failures and body failures have different consequences. Without a
  sender there is no message, but a broken attachment still leaves a message
  whose envelope and remaining parts are worth delivering. The assembler
  encodes that split so the fetch stream can report partial results honestly.

How:
  Parses the header block with :func:`~mailtree.mime.headers.parse_headers`
  (``compat32`` policy, raw 8-bit text kept, no implicit decoding), extracts
  the envelope, then runs :func:`~mailtree.mime.multipart.build_tree` over the
  raw body bytes exactly as fetched.

Interfaces:
  :class:`Message`, :class:`AssembleResult`, :func:`assemble`,
  :func:`parse_message`.

Invariants & Safety:
  - Envelope errors raise; body errors are returned next to the message.
  - ``uid`` is only meaningful within the UIDVALIDITY epoch it came from.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional, Tuple

from ..errors import MailtreeError, MessageParseError
from ..mime.headers import header_value, parse_headers
from ..mime.multipart import DEFAULT_MAX_DEPTH, build_tree
from ..mime.parts import BodyPart
from .envelope import Address, extract_envelope


@dataclass(frozen=True, kw_only=True)
class Message(BodyPart):
    """Root of a reconstructed body tree plus its envelope metadata."""

    sender: Address
    to: Tuple[Address, ...] = ()
    internal_date: Optional[datetime] = None
    precedence: str = ""
    subject: str = ""
    uid: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            {
                "from": self.sender.to_dict(),
                "to": [address.to_dict() for address in self.to],
                "internalDate": self.internal_date.isoformat() if self.internal_date else None,
                "precedence": self.precedence,
                "subject": self.subject,
                "uid": self.uid,
            }
        )
        return payload


@dataclass(frozen=True)
class AssembleResult:
    """Assembled message (if any) and the body errors met along the way."""

    message: Optional[Message]
    errors: Tuple[MailtreeError, ...] = ()

    @property
    def error(self) -> Optional[MailtreeError]:
        return self.errors[0] if self.errors else None


def assemble(
    raw_header: bytes,
    raw_body: bytes,
    internal_date: Optional[datetime],
    uid: int,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    strict: bool = False,
    cancel: Optional[threading.Event] = None,
) -> AssembleResult:
    """Reconstruct one fetched item into a :class:`Message`.

    What:
      Parses the header block, extracts the envelope, and builds the body tree.

    Why:
      Keeps the per-item contract in one place: envelope failures are fatal
      for the item, body failures are advisory unless ``strict`` is requested.

    How:
      See the module docstring. With ``strict`` any collected part error drops
      the message and leaves only the errors.

    Args:
      raw_header: ``RFC822.HEADER`` bytes.
      raw_body: Raw body bytes (everything after the header block).
      internal_date: Arrival time assigned by the server.
      uid: Server UID of the message.
      max_depth: Multipart nesting limit.
      strict: Refuse messages whose body did not parse cleanly.
      cancel: Optional cancellation event checked while parsing parts.

    Returns:
      :class:`AssembleResult` with the message and any body errors.

    Raises:
      MessageParseError: If the header block is empty.
      InvalidFrom, InvalidTo: If the envelope cannot be extracted.
      ParseCancelled: If ``cancel`` fires while the body is parsed.
    """

    if not raw_header.strip():
        raise MessageParseError("parsing mail: empty header block")
    headers = parse_headers(raw_header.rstrip(b"\r\n") + b"\r\n\r\n")
    if not headers.keys():
        raise MessageParseError("parsing mail: no header fields found")

    envelope = extract_envelope(headers)
    outcome = build_tree(headers, raw_body, max_depth=max_depth, cancel=cancel)
    if strict and outcome.errors:
        return AssembleResult(None, outcome.errors)

    root = outcome.part if outcome.part is not None else BodyPart(mime_type="")
    message = Message(
        mime_type=root.mime_type,
        filename=root.filename,
        inline=root.inline,
        children=root.children,
        body=root.body,
        sender=envelope.sender,
        to=envelope.to,
        internal_date=internal_date,
        precedence=envelope.precedence,
        subject=envelope.subject,
        uid=uid,
    )
    return AssembleResult(message, outcome.errors)


def split_message(raw: bytes) -> Tuple[bytes, bytes]:
    """Split a complete RFC 5322 message into header block and body."""

    candidates = [
        (index, len(separator))
        for separator in (b"\r\n\r\n", b"\n\n")
        for index in (raw.find(separator),)
        if index != -1
    ]
    if not candidates:
        return raw, b""
    index, width = min(candidates)
    return raw[: index + width], raw[index + width:]


def parse_message(raw: bytes, *, uid: int = 0, **kwargs: Any) -> AssembleResult:
    """Assemble a message from a complete ``.eml`` payload.

    The arrival time falls back to the ``Date`` header since no server is
    involved.
    """

    raw_header, raw_body = split_message(raw)
    internal_date: Optional[datetime] = None
    date_value = header_value(parse_headers(raw_header), "Date")
    if date_value:
        try:
            internal_date = parsedate_to_datetime(date_value)
        except (TypeError, ValueError):
            internal_date = None
    return assemble(raw_header, raw_body, internal_date, uid, **kwargs)
