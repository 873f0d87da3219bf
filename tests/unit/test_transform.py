"""Unit tests for transfer decoding and charset reinterpretation.

What:
  Exercise :func:`mailtree.mime.transform.decode_body` across identity,
  quoted-printable, and base64 payloads, the ISO-8859-1 conversion, and the
  failure modes.

Why:
  Every leaf body and every multipart payload passes through this function
  before anything else sees it; a silent mis-decode would corrupt whole trees.
"""

import base64

import pytest

from mailtree.errors import BodyDecodeError, UnsupportedEncoding
from mailtree.mime.transform import decode_body


@pytest.mark.parametrize("encoding", ["", "7bit", "7BIT", " 7bit "])
def test_identity_encodings_return_payload_unchanged(encoding):
    assert decode_body("", encoding, b"plain text\r\n") == b"plain text\r\n"


def test_quoted_printable_handles_soft_breaks_and_escapes():
    raw = b"caf=C3=A9 and a soft=\r\nbreak"
    assert decode_body("utf-8", "quoted-printable", raw) == "café and a softbreak".encode("utf-8")


def test_base64_tolerates_line_breaks():
    payload = bytes(range(256)) * 3
    encoded = base64.encodebytes(payload)
    assert b"\n" in encoded
    assert decode_body("", "Base64", encoded) == payload


def test_corrupt_base64_raises_body_decode_error():
    with pytest.raises(BodyDecodeError):
        decode_body("", "base64", b"abc")


def test_unknown_encoding_is_rejected():
    with pytest.raises(UnsupportedEncoding) as excinfo:
        decode_body("", "x-uuencode", b"begin 644 file")
    assert excinfo.value.encoding == "x-uuencode"
    assert excinfo.value.fatal


def test_eight_bit_is_not_treated_as_identity():
    with pytest.raises(UnsupportedEncoding):
        decode_body("", "8bit", b"caf\xc3\xa9")


def test_latin1_payload_is_converted_to_utf8():
    assert decode_body("ISO-8859-1", "", b"caf\xe9") == "café".encode("utf-8")


def test_other_charsets_pass_through():
    assert decode_body("windows-1252", "", b"caf\xe9") == b"caf\xe9"


def test_charset_reinterpretation_precedes_transfer_decoding():
    # The escaped octet is only produced by the transfer decoder, after the
    # charset pass has already run over the ASCII source.
    assert decode_body("iso-8859-1", "quoted-printable", b"caf=E9") == b"caf\xe9"
