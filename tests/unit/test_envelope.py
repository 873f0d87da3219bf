"""Unit tests for envelope extraction.

What:
  Check sender, recipient, subject, and precedence extraction, including the
  fatal ``InvalidFrom``/``InvalidTo`` paths.
"""

import pytest

from mailtree.errors import InvalidFrom, InvalidTo
from mailtree.mail.envelope import Address, extract_envelope, parse_address_list
from mailtree.mime.headers import parse_headers


def _envelope(raw: str):
    return extract_envelope(parse_headers(raw.encode("utf-8")))


def test_full_envelope():
    envelope = _envelope(
        "From: Alice Example <alice@example.com>\r\n"
        "To: bob@example.com, \"Carol C\" <carol@example.org>\r\n"
        "Subject: =?UTF-8?B?SGVsbG8=?=\r\n"
        "Precedence: bulk\r\n\r\n"
    )
    assert envelope.sender == Address(name="Alice Example", address="alice@example.com")
    assert envelope.to == (
        Address(name="", address="bob@example.com"),
        Address(name="Carol C", address="carol@example.org"),
    )
    assert envelope.subject == "Hello"
    assert envelope.precedence == "bulk"


def test_encoded_display_name_is_decoded():
    envelope = _envelope("From: =?ISO-8859-1?Q?Ren=E9?= <rene@example.com>\r\n\r\n")
    assert envelope.sender.name == "René"
    assert str(envelope.sender) == "René <rene@example.com>"


def test_folded_subject_is_unfolded():
    envelope = _envelope("From: a@example.com\r\nSubject: part one\r\n part two\r\n\r\n")
    assert envelope.subject == "part one part two"


def test_missing_optional_headers_default_to_empty():
    envelope = _envelope("From: a@example.com\r\n\r\n")
    assert envelope.to == ()
    assert envelope.subject == ""
    assert envelope.precedence == ""


@pytest.mark.parametrize(
    "header",
    [
        "",
        "From: not an address\r\n",
        "From: a@example.com, b@example.com\r\n",
    ],
)
def test_invalid_sender_is_fatal(header):
    with pytest.raises(InvalidFrom):
        _envelope(header + "Subject: x\r\n\r\n")


def test_invalid_recipients_are_fatal():
    with pytest.raises(InvalidTo):
        _envelope("From: a@example.com\r\nTo: not-an-address\r\n\r\n")


def test_empty_group_yields_no_recipients():
    assert parse_address_list("undisclosed-recipients:;") == ()
    assert parse_address_list("") == ()


def test_address_to_dict():
    assert Address(name="A", address="a@example.com").to_dict() == {"name": "A", "address": "a@example.com"}


def test_raw_utf8_header_text_is_preserved():
    envelope = extract_envelope(
        parse_headers("From: Jürgen <j@example.org>\r\nTo: Zoë <z@example.org>\r\nSubject: Grüße\r\n\r\n".encode("utf-8"))
    )
    assert envelope.subject == "Grüße"
    assert envelope.sender == Address(name="Jürgen", address="j@example.org")
    assert envelope.to == (Address(name="Zoë", address="z@example.org"),)


def test_raw_latin1_header_text_falls_back():
    envelope = extract_envelope(parse_headers(b"From: a@example.com\r\nSubject: Gr\xfc\xdfe\r\n\r\n"))
    assert envelope.subject == "Grüße"
