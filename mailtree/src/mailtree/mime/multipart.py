"""Recursive construction of MIME body trees.

What:
  Build a :class:`~mailtree.mime.parts.BodyPart` tree from a header block and
  the raw body bytes of a message or nested part.

Why:
  Server payloads are untrusted and frequently broken: unknown transfer
  encodings, garbage media types, truncated boundaries, absurd nesting. One bad
  attachment must not cost the rest of the message, so failures are contained
  at the node where they happen and reported alongside the tree instead of
  aborting the whole parse.

How:
  :func:`build_tree` parses ``Content-Type`` and ``Content-Disposition``, runs
  :func:`~mailtree.mime.transform.decode_body`, and for ``multipart/*`` nodes
  splits the decoded payload on its boundary with :func:`split_parts` before
  recursing into every part. Each call returns a :class:`PartOutcome` holding
  the node and every error collected in its subtree.

Interfaces:
  :class:`PartOutcome`, :func:`build_tree`, :func:`split_parts`,
  :data:`DEFAULT_MAX_DEPTH`.

Invariants & Safety:
  - Children that fail fatally are skipped, logged, and their errors kept;
    siblings keep their original relative order.
  - Nesting deeper than ``max_depth`` is rejected with :class:`NestingTooDeep`.
    Running out of interpreter stack first is reported the same way.
  - Cancellation is checked on entry to every node.
"""
from __future__ import annotations

import io
import threading
from dataclasses import dataclass
from email.message import Message
from typing import Iterator, List, Optional, Tuple

from ..errors import (
    InvalidContentDisposition,
    InvalidContentType,
    MultipartError,
    NestingTooDeep,
    ParseCancelled,
    PartError,
)
from ..utils.logging import get_logger
from .headers import decode_encoded_words, header_value, parse_headers, parse_media_type
from .parts import MULTIPART_PREFIX, BodyPart
from .transform import decode_body


DEFAULT_CONTENT_TYPE = "text/plain"
DEFAULT_MAX_DEPTH = 32

_LOGGER = get_logger("mailtree.multipart")


@dataclass(frozen=True)
class PartOutcome:
    """Result of parsing one node together with every error in its subtree.

    What:
      Pairs the (possibly partial) node with the errors accumulated while
      building it and its descendants.

    Why:
      Lenient callers want whatever could be salvaged, strict callers want to
      refuse anything that was not parsed cleanly. Returning both lets each
      caller pick a policy without re-parsing.

    How:
      ``part`` is ``None`` only when not even the media type was readable.
      Errors raised by this node have an empty ``path``; errors from
      descendants carry the child indices leading to them.
    """

    part: Optional[BodyPart]
    errors: Tuple[PartError, ...] = ()

    @property
    def usable(self) -> bool:
        """Whether the node parsed without a fatal error of its own."""

        if self.part is None:
            return False
        return not any(error.fatal and not error.path for error in self.errors)

    def raise_for_errors(self) -> BodyPart:
        """Return the node, raising the first collected error if there is one."""

        if self.errors:
            raise self.errors[0]
        assert self.part is not None
        return self.part


def _join_part(lines: List[bytes]) -> bytes:
    data = b"".join(lines)
    if data.endswith(b"\r\n"):
        return data[:-2]
    if data.endswith(b"\n"):
        return data[:-1]
    return data


def split_parts(body: bytes, boundary: str) -> Iterator[bytes]:
    """Yield the raw parts of a multipart payload in order.

    What:
      Splits ``body`` on ``--boundary`` delimiter lines and yields the bytes
      between consecutive delimiters.

    Why:
      The ``email`` package splits a multipart payload as it reads the raw
      message, before any transfer decoding. Here the container payload is
      transfer-decoded first (a base64 encoded ``multipart/*`` is split after
      decoding), and each part must stay raw so that its own failures are
      contained at that part. The split tolerates preambles, epilogues,
      trailing whitespace on delimiter lines, and both CRLF and bare LF line
      endings as produced by real servers.

    How:
      Reads the payload line by line, ignoring everything before the first
      delimiter and after the closing ``--boundary--`` line. The line break
      preceding a delimiter belongs to the delimiter and is dropped from the
      part.

    Args:
      body: Decoded multipart payload.
      boundary: Value of the ``boundary`` Content-Type parameter.

    Yields:
      Raw part bytes (header block, blank line, body).

    Raises:
      MultipartError: Fatal when no opening delimiter exists; non-fatal when
        the closing delimiter is missing (parts already yielded stay valid).
    """

    delimiter = b"--" + boundary.encode("utf-8")
    current: Optional[List[bytes]] = None
    for line in io.BytesIO(body):
        content = line.rstrip(b"\r\n")
        if content.startswith(delimiter):
            tail = content[len(delimiter):].rstrip(b" \t")
            if tail in (b"", b"--"):
                if current is not None:
                    yield _join_part(current)
                if tail == b"--":
                    return
                current = []
                continue
        if current is not None:
            current.append(line)
    if current is None:
        raise MultipartError(f"no opening boundary {boundary!r}")
    raise MultipartError(f"missing closing boundary {boundary!r}", fatal=False)


def _split_header_block(chunk: bytes) -> Tuple[Message, bytes]:
    stream = io.BytesIO(chunk)
    header_lines: List[bytes] = []
    for line in stream:
        if line in (b"\r\n", b"\n"):
            break
        header_lines.append(line)
    return parse_headers(b"".join(header_lines)), stream.read()


def build_tree(
    headers: Message,
    body: bytes,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    cancel: Optional[threading.Event] = None,
) -> PartOutcome:
    """Parse ``body`` described by ``headers`` into a :class:`BodyPart` tree.

    Args:
      headers: Header block of the message or part.
      body: Raw (still transfer-encoded) body bytes.
      max_depth: Maximum multipart nesting below this node.
      cancel: Optional event; when set, parsing stops at the next node.

    Returns:
      The :class:`PartOutcome` for the root node.

    Raises:
      ParseCancelled: If ``cancel`` is set while the tree is being built.
    """

    try:
        return _build(headers, body, depth=0, max_depth=max_depth, cancel=cancel)
    except RecursionError:
        return PartOutcome(None, (NestingTooDeep("nesting exceeds the interpreter recursion limit"),))


def _build(
    headers: Message,
    body: bytes,
    *,
    depth: int,
    max_depth: int,
    cancel: Optional[threading.Event],
) -> PartOutcome:
    if cancel is not None and cancel.is_set():
        raise ParseCancelled("fetch cancelled while parsing body parts")
    if depth > max_depth:
        return PartOutcome(None, (NestingTooDeep(f"nesting exceeds {max_depth} levels"),))

    try:
        content_type = parse_media_type(headers, "Content-Type")
    except ValueError as exc:
        return PartOutcome(None, (InvalidContentType(f"parsing Content-Type: {exc}"),))
    mime_type, params = content_type or (DEFAULT_CONTENT_TYPE, {})

    errors: List[PartError] = []
    filename: Optional[str] = None
    inline = False
    try:
        disposition = parse_media_type(headers, "Content-Disposition")
    except ValueError as exc:
        errors.append(InvalidContentDisposition(f"parsing Content-Disposition: {exc}"))
    else:
        if disposition is not None:
            value, disposition_params = disposition
            raw_filename = disposition_params.get("filename")
            if raw_filename is not None:
                filename = decode_encoded_words(raw_filename)
            inline = value == "inline"

    try:
        decoded = decode_body(
            params.get("charset", ""),
            header_value(headers, "Content-Transfer-Encoding"),
            body,
        )
    except PartError as exc:
        errors.append(exc)
        return PartOutcome(BodyPart(mime_type=mime_type, filename=filename, inline=inline), tuple(errors))

    if not mime_type.startswith(MULTIPART_PREFIX):
        part = BodyPart(mime_type=mime_type, filename=filename, inline=inline, body=decoded)
        return PartOutcome(part, tuple(errors))

    boundary = params.get("boundary")
    if not boundary:
        errors.append(MultipartError("missing boundary parameter"))
        return PartOutcome(BodyPart(mime_type=mime_type, filename=filename, inline=inline), tuple(errors))

    children: List[BodyPart] = []
    try:
        for index, chunk in enumerate(split_parts(decoded, boundary)):
            child_headers, child_body = _split_header_block(chunk)
            try:
                outcome = _build(
                    child_headers,
                    child_body,
                    depth=depth + 1,
                    max_depth=max_depth,
                    cancel=cancel,
                )
            except RecursionError:
                outcome = PartOutcome(None, (NestingTooDeep("nesting exceeds the interpreter recursion limit"),))
            if outcome.usable:
                assert outcome.part is not None
                children.append(outcome.part)
            else:
                _LOGGER.warning(
                    "skipping unparsable body part",
                    depth=depth + 1,
                    index=index,
                    error=str(outcome.errors[0]) if outcome.errors else "",
                )
            errors.extend(error.at((index,)) for error in outcome.errors)
    except MultipartError as exc:
        errors.append(exc)

    part = BodyPart(mime_type=mime_type, filename=filename, inline=inline, children=tuple(children))
    return PartOutcome(part, tuple(errors))
