"""Header parsing helpers for raw IMAP payloads.

What:
  Parse raw header blocks into :class:`email.message.Message` objects, read
  unfolded header values, validate media types, and decode RFC 2047 encoded
  words.

Why:
  Reconstruction needs the header text exactly as the server sent it. The
  ``email`` package's modern policy silently decodes and normalises values,
  which would hide malformed media types and double-decode subjects, so the
  helpers pin the ``compat32`` policy and apply decoding explicitly.

How:
  Decode header octets as UTF-8 (ISO-8859-1 fallback) and parse them with
  :class:`~email.parser.HeaderParser`, use
  :meth:`email.message.Message.get_params` for media type parameters (RFC 2231
  continuations included), and :func:`email.header.decode_header` for encoded
  words.

Interfaces:
  :func:`parse_headers`, :func:`decode_header_block`, :func:`header_value`,
  :func:`parse_media_type`,
  :func:`decode_encoded_words`, :func:`has_encoding`, :func:`is_encoded_word`.

Invariants & Safety:
  - Encoded-word decoding is best effort and never raises; values that fail
    the strict shape check or fail to decode are returned unchanged.
  - Media type names are returned lowercased.
  - Raw 8-bit header text (RFC 6532) survives parsing with its characters
    intact.
"""
from __future__ import annotations

import re
from email import policy
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.message import Message
from email.parser import HeaderParser
from email.utils import collapse_rfc2231_value
from typing import Dict, Optional, Tuple


_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_FOLD = re.compile(r"\r?\n(?=[ \t])")


def decode_header_block(raw: bytes) -> str:
    """Return header octets as text, keeping raw 8-bit characters.

    Servers deliver RFC 6532 headers as raw UTF-8; older software emits
    ISO-8859-1. UTF-8 is tried first since it rarely validates by accident.
    """

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def parse_headers(raw: bytes) -> Message:
    """Parse a raw header block without decoding any encoded words.

    The octets are decoded by :func:`decode_header_block` first. Handing bytes
    to the ``email`` parser instead would wrap every non-ASCII value in an
    ``unknown-8bit`` header and replace its characters on ``str()``.
    """

    return HeaderParser(policy=policy.compat32).parsestr(decode_header_block(raw))


def header_value(headers: Message, name: str) -> str:
    """Return the unfolded value of ``name`` or ``""`` when absent."""

    value = headers.get(name)
    if value is None:
        return ""
    return _FOLD.sub("", str(value)).strip()


def parse_media_type(headers: Message, name: str) -> Optional[Tuple[str, Dict[str, str]]]:
    """Split a ``Content-Type`` style header into its value and parameters.

    What:
      Returns the lowercased media value and a parameter mapping for ``name``,
      or ``None`` when the header is absent.

    Why:
      ``Content-Type`` must be a ``type/subtype`` pair of RFC 2045 tokens while
      ``Content-Disposition`` is a single token. The stdlib accessors fall back
      to defaults on garbage; the tree builder needs to know the value was bad.

    How:
      Reads ``Message.get_params`` for the header, validates the leading value
      against the token grammar, and collapses RFC 2231 encoded parameters.

    Args:
      headers: Parsed header block.
      name: Header to inspect (``Content-Type`` or ``Content-Disposition``).

    Returns:
      ``(value, params)`` or ``None`` if the header is missing.

    Raises:
      ValueError: If the value does not match the expected grammar.
    """

    if headers.get(name) is None:
        return None
    params = headers.get_params(header=name.lower())
    if not params:
        raise ValueError(f"empty {name} header")
    value = params[0][0].strip().lower()
    if name.lower() == "content-type":
        major, sep, minor = value.partition("/")
        if not sep or not _TOKEN.match(major) or not _TOKEN.match(minor):
            raise ValueError(f"invalid media type {value!r}")
    elif not _TOKEN.match(value):
        raise ValueError(f"invalid {name} value {value!r}")
    result: Dict[str, str] = {}
    for key, raw_value in params[1:]:
        if not key:
            continue
        result[key.lower()] = collapse_rfc2231_value(raw_value)
    return value, result


def has_encoding(value: str) -> bool:
    return "=?" in value and "?=" in value


def is_encoded_word(value: str) -> bool:
    return value.startswith("=?") and value.endswith("?=") and value.count("?") == 4


def decode_encoded_words(value: str) -> str:
    """Resolve an RFC 2047 encoded word such as ``=?UTF-8?B?SGVsbG8=?=``.

    Only values shaped exactly like a single encoded word are decoded; anything
    else, including words that fail to decode, comes back unchanged.
    """

    if not has_encoding(value) or not is_encoded_word(value):
        return value
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, ValueError):
        return value
