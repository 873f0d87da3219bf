"""Envelope extraction from message headers.

What:
  Turn ``From``, ``To``, ``Subject``, and ``Precedence`` headers into an
  :class:`Envelope` of structured addresses and decoded text.

Why:
  The envelope is what callers route and filter on. A message without a single
  identifiable sender is useless downstream, so sender problems are fatal,
  while subject decoding is a convenience that must never fail a message.

How:
  Addresses go through :func:`email.utils.getaddresses` followed by an
  addr-spec sanity check; display names and subjects go through the
  encoded-word decoder.

Interfaces:
  :class:`Address`, :class:`Envelope`, :func:`extract_envelope`,
  :func:`parse_address`, :func:`parse_address_list`.

Invariants & Safety:
  - ``From`` must name exactly one valid address (:class:`InvalidFrom`).
  - An absent or empty ``To`` yields an empty tuple; garbage raises
    :class:`InvalidTo`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from email.message import Message
from email.utils import getaddresses
from typing import Dict, Tuple

from ..errors import InvalidFrom, InvalidTo
from ..mime.headers import decode_encoded_words, header_value


_ADDR_SPEC = re.compile(r"^[^\s@<>]+@[^\s@<>]+$")
_EMPTY_GROUP = re.compile(r"^[^:;@<>\"]*:\s*;$")


@dataclass(frozen=True)
class Address:
    """Mailbox address with its decoded display name."""

    name: str
    address: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "address": self.address}

    def __str__(self) -> str:
        return f"{self.name} <{self.address}>" if self.name else self.address


@dataclass(frozen=True)
class Envelope:
    sender: Address
    to: Tuple[Address, ...]
    subject: str
    precedence: str


def _to_addresses(value: str) -> Tuple[Address, ...]:
    addresses = []
    for name, addr in getaddresses([value]):
        if not _ADDR_SPEC.match(addr):
            raise ValueError(f"invalid address {addr!r}")
        addresses.append(Address(name=decode_encoded_words(name), address=addr))
    return tuple(addresses)


def parse_address(value: str) -> Address:
    """Parse a header value that must contain exactly one address.

    Raises:
      ValueError: If ``value`` is empty, malformed, or lists several addresses.
    """

    if not value:
        raise ValueError("no address")
    addresses = _to_addresses(value)
    if len(addresses) != 1:
        raise ValueError(f"expected one address, found {len(addresses)}")
    return addresses[0]


def parse_address_list(value: str) -> Tuple[Address, ...]:
    """Parse an address list; empty values and empty groups yield ``()``."""

    if not value or _EMPTY_GROUP.match(value):
        return ()
    return _to_addresses(value)


def extract_envelope(headers: Message) -> Envelope:
    """Build the :class:`Envelope` of a message from its parsed headers.

    What:
      Reads sender, recipients, subject, and precedence.

    Why:
      Centralising the rules keeps the fatal/non-fatal split in one place: the
      sender and recipient lists are validated strictly while the subject is
      decoded on a best-effort basis.

    How:
      Unfolds each header, parses addresses, and decodes the subject with
      :func:`~mailtree.mime.headers.decode_encoded_words`.

    Args:
      headers: Parsed header block of the message.

    Returns:
      The populated :class:`Envelope`.

    Raises:
      InvalidFrom: If ``From`` is missing or not a single valid address.
      InvalidTo: If ``To`` is present but malformed.
    """

    try:
        sender = parse_address(header_value(headers, "From"))
    except ValueError as exc:
        raise InvalidFrom(f"parsing From: {exc}") from exc
    try:
        to = parse_address_list(header_value(headers, "To"))
    except ValueError as exc:
        raise InvalidTo(f"parsing To: {exc}") from exc
    return Envelope(
        sender=sender,
        to=to,
        subject=decode_encoded_words(header_value(headers, "Subject")),
        precedence=header_value(headers, "Precedence"),
    )
