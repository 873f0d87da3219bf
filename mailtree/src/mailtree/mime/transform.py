"""Transfer-encoding and charset normalisation for MIME payloads.

What:
  Turn the raw octets of a body part into decoded octets, given the declared
  ``charset`` parameter and ``Content-Transfer-Encoding`` header.

Why:
  Transfer encodings and charsets are independent transforms that must be
  applied in a fixed order before a multipart body can be split on its
  boundary or a leaf body can be stored.

How:
  The charset reinterpretation is applied to the raw octets first and the
  transfer decoder then reads the result. Only ISO-8859-1 is reinterpreted
  (into UTF-8); every other charset passes through untouched.

Interfaces:
  :func:`decode_body`, :data:`IDENTITY_ENCODINGS`.

Invariants & Safety:
  - Unknown transfer encodings raise :class:`UnsupportedEncoding` instead of
    returning undecoded data that callers could mistake for content.
  - ``base64`` input tolerates line breaks and other non-alphabet bytes, but
    corrupt padding raises :class:`BodyDecodeError`.
"""
from __future__ import annotations

import base64
import binascii
import quopri

from ..errors import BodyDecodeError, UnsupportedEncoding


IDENTITY_ENCODINGS = frozenset({"", "7bit"})
LATIN1_CHARSET = "iso-8859-1"


def _reinterpret_charset(charset: str, raw: bytes) -> bytes:
    if charset.strip().lower() == LATIN1_CHARSET:
        return raw.decode("latin-1").encode("utf-8")
    return raw


def decode_body(charset: str, encoding: str, raw: bytes) -> bytes:
    """Decode ``raw`` according to its declared charset and transfer encoding.

    What:
      Applies charset reinterpretation and then transfer decoding to a body
      part payload.

    Why:
      Transfer encodings operate on octets while a charset maps octets to text,
      so the reinterpretation has to wrap the raw bytes and the transfer
      decoder has to read through it.

    How:
      Reinterprets ISO-8859-1 payloads as UTF-8, then dispatches on the
      lowercased encoding name to the identity, quoted-printable, or base64
      decoder.

    Args:
      charset: Value of the ``charset`` Content-Type parameter (may be empty).
      encoding: Value of ``Content-Transfer-Encoding`` (may be empty).
      raw: Raw payload octets.

    Returns:
      The decoded payload octets.

    Raises:
      UnsupportedEncoding: If ``encoding`` is not recognised.
      BodyDecodeError: If a base64 payload is corrupt.
    """

    normalized = (encoding or "").strip().lower()
    data = _reinterpret_charset(charset or "", raw)
    if normalized in IDENTITY_ENCODINGS:
        return data
    if normalized == "quoted-printable":
        return quopri.decodestring(data)
    if normalized == "base64":
        try:
            return base64.b64decode(data)
        except binascii.Error as exc:
            raise BodyDecodeError(f"invalid base64 payload: {exc}") from exc
    raise UnsupportedEncoding(encoding)
