"""Error taxonomy for mailbox access and message reconstruction.

What:
  Declare the exception hierarchy shared by the IMAP session wrapper, the
  fetch stream, the envelope extractor, and the multipart tree builder.

Why:
  Failures have very different blast radii. A dropped connection aborts a whole
  operation, a missing ``From`` header ruins one message, and a corrupt nested
  attachment only costs a single body part. Encoding that scope in the type
  lets callers decide what to retry, what to report, and what to ignore.

How:
  Three branches hang off :class:`MailtreeError`: :class:`TransportError` for
  session level failures, :class:`MessageError` for per-item failures, and
  :class:`PartError` for node level failures inside a body tree. Part errors
  carry the child index ``path`` of the node that failed and a ``fatal`` flag
  stating whether the node itself had to be discarded.

Interfaces:
  All exception classes listed in ``__all__``.

Invariants & Safety:
  - ``TransportError`` is raised synchronously and never placed on a stream.
  - ``PartError.fatal`` is a class level default that individual instances may
    override (see :class:`MultipartError`).
"""
from __future__ import annotations

from typing import Optional, Tuple


class MailtreeError(Exception):
    """Base class for every error raised by mailtree."""


class TransportError(MailtreeError):
    """Connection, login, select, search, or fetch command failure.

    The ``step`` attribute names the session phase that failed (``dialing``,
    ``authenticating``, ``selecting mailbox``, ``searching``, ``fetching``).
    """

    def __init__(self, step: str, cause: Optional[BaseException] = None) -> None:
        message = step if cause is None else f"{step}: {cause}"
        super().__init__(message)
        self.step = step
        self.cause = cause


class MessageError(MailtreeError):
    """A single fetched item could not be turned into a message."""


class MessageParseError(MessageError):
    """The combined header block could not be parsed at all."""


class InvalidFrom(MessageError):
    """The ``From`` header is absent, malformed, or names several senders."""


class InvalidTo(MessageError):
    """The ``To`` header is not a valid address list."""


class PartError(MailtreeError):
    """A body part failed to parse.

    What:
      Records which node of the body tree failed and whether the failure
      forced the node to be dropped.

    Why:
      The tree builder keeps going after node failures. Callers that want a
      strict policy need to know where each problem happened and how severe it
      was without re-parsing the message.

    How:
      ``path`` holds the child indices from the root down to the failing node
      (``()`` is the root). ``fatal`` defaults to the class attribute and can
      be overridden per instance.
    """

    fatal = True

    def __init__(
        self,
        message: str,
        *,
        path: Tuple[int, ...] = (),
        fatal: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        if fatal is not None:
            self.fatal = fatal

    def at(self, path: Tuple[int, ...]) -> "PartError":
        """Return the error re-anchored below ``path``."""

        self.path = path + self.path
        return self

    def __str__(self) -> str:
        base = super().__str__()
        if not self.path:
            return base
        location = ".".join(str(index) for index in self.path)
        return f"part {location}: {base}"


class InvalidContentType(PartError):
    """``Content-Type`` is not a parsable ``type/subtype`` media type."""


class InvalidContentDisposition(PartError):
    """``Content-Disposition`` is malformed; the node survives without it."""

    fatal = False


class UnsupportedEncoding(PartError):
    """``Content-Transfer-Encoding`` names an encoding we cannot decode."""

    def __init__(self, encoding: str, **kwargs) -> None:
        super().__init__(f"unsupported encoding {encoding!r}", **kwargs)
        self.encoding = encoding


class BodyDecodeError(PartError):
    """The transfer-encoded payload is corrupt."""


class MultipartError(PartError):
    """Boundary framing of a multipart container is broken."""


class NestingTooDeep(PartError):
    """The multipart hierarchy exceeds the configured nesting limit."""


class ParseCancelled(MailtreeError):
    """Reconstruction stopped because the caller cancelled the fetch."""


__all__ = [
    "MailtreeError",
    "TransportError",
    "MessageError",
    "MessageParseError",
    "InvalidFrom",
    "InvalidTo",
    "PartError",
    "InvalidContentType",
    "InvalidContentDisposition",
    "UnsupportedEncoding",
    "BodyDecodeError",
    "MultipartError",
    "NestingTooDeep",
    "ParseCancelled",
]
