"""Unit tests for header parsing helpers.

What:
  Cover unfolding, media type validation with RFC 2231 parameters, and the
  strict single encoded-word decoder.
"""

import pytest

from mailtree.mime.headers import (
    decode_encoded_words,
    decode_header_block,
    has_encoding,
    header_value,
    is_encoded_word,
    parse_headers,
    parse_media_type,
)


def test_header_value_unfolds_continuation_lines():
    headers = parse_headers(b"Subject: hello\r\n world\r\nX-Other: 1\r\n\r\n")
    assert header_value(headers, "Subject") == "hello world"
    assert header_value(headers, "Missing") == ""


def test_parse_media_type_lowercases_and_reads_params():
    headers = parse_headers(b'Content-Type: Multipart/Mixed; boundary="a b"; Charset=UTF-8\r\n\r\n')
    value, params = parse_media_type(headers, "Content-Type")
    assert value == "multipart/mixed"
    assert params == {"boundary": "a b", "charset": "UTF-8"}


def test_parse_media_type_absent_header_returns_none():
    headers = parse_headers(b"Subject: x\r\n\r\n")
    assert parse_media_type(headers, "Content-Type") is None


@pytest.mark.parametrize("value", [b"garbage", b"text/", b"/plain", b"text/pl ain"])
def test_parse_media_type_rejects_malformed_values(value):
    headers = parse_headers(b"Content-Type: " + value + b"\r\n\r\n")
    with pytest.raises(ValueError):
        parse_media_type(headers, "Content-Type")


def test_parse_media_type_collapses_rfc2231_filename():
    headers = parse_headers(b"Content-Disposition: attachment; filename*=UTF-8''na%C3%AFve.txt\r\n\r\n")
    value, params = parse_media_type(headers, "Content-Disposition")
    assert value == "attachment"
    assert params["filename"] == "naïve.txt"


def test_single_encoded_words_are_decoded():
    assert decode_encoded_words("=?UTF-8?B?SGVsbG8=?=") == "Hello"
    assert decode_encoded_words("=?ISO-8859-1?Q?caf=E9?=") == "café"


@pytest.mark.parametrize(
    "value",
    [
        "plain subject",
        "Re: =?UTF-8?B?SGVsbG8=?=",
        "=?broken?=",
        "",
    ],
)
def test_values_not_shaped_like_one_encoded_word_are_unchanged(value):
    assert decode_encoded_words(value) == value


def test_shape_predicates():
    assert has_encoding("x =?a?b?c?= y")
    assert not has_encoding("no markers")
    assert is_encoded_word("=?UTF-8?Q?abc?=")
    assert not is_encoded_word("=?UTF-8?Q?a?b?c?=")


def test_decode_header_block_prefers_utf8():
    assert decode_header_block("Subject: été\r\n".encode("utf-8")) == "Subject: été\r\n"
    assert decode_header_block(b"Subject: \xe9t\xe9\r\n") == "Subject: été\r\n"
