"""Streaming UID fetch with per-item message reconstruction.

What:
  Issue one bulk ``UID FETCH`` for a set of UIDs and stream one
  :class:`FetchResult` per real message through a bounded channel while the
  caller consumes results concurrently.

Why:
  Fetching a large mailbox should not require holding every reconstructed tree
  in memory before the first one can be processed, and one malformed message
  must not hide the others. A bounded channel gives the producer room to run
  ahead of a slow consumer without letting it grow without limit.

How:
  :func:`fetch_stream` performs the bulk fetch synchronously (so transport
  failures raise immediately), then starts a daemon producer thread that walks
  the response in server order, drops spurious items lacking
  ``RFC822.HEADER``, assembles each remaining item, and emits the outcome.
  :class:`FetchStream` bounds buffered results with a slot semaphore; the
  producer blocks on a full channel and wakes up when a consumer takes an
  item or the stream is cancelled.

Interfaces:
  :class:`FetchResult`, :class:`FetchStream`, :func:`fetch_stream`,
  :data:`FETCH_FIELDS`, :data:`DEFAULT_CAPACITY`.

Invariants & Safety:
  - Exactly one result per non-spurious item, in response order.
  - The stream is closed exactly once; closure is the only end-of-stream
    signal seen by consumers.
  - An empty UID set yields an already-closed stream without touching the
    session.
  - The bulk fetch completes before streaming starts, so the session is free
    for the next command as soon as :func:`fetch_stream` returns.
"""
from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from imapclient.datetime_util import parse_to_datetime
from imapclient.exceptions import IMAPClientError

from ..errors import MailtreeError, MessageParseError, ParseCancelled, TransportError
from ..mail.message import Message, assemble
from ..mime.multipart import DEFAULT_MAX_DEPTH
from ..utils.logging import get_logger


FETCH_FIELDS = ["INTERNALDATE", "BODY.PEEK[TEXT]", "UID", "RFC822.HEADER"]
DEFAULT_CAPACITY = 100

_HEADER_KEY = b"RFC822.HEADER"
_BODY_KEY = b"BODY[TEXT]"
_DATE_KEY = b"INTERNALDATE"
_UID_KEY = b"UID"
_CANCEL_POLL_SECONDS = 0.05
_CLOSED = object()

_LOGGER = get_logger("mailtree.fetch")


@dataclass(frozen=True)
class FetchResult:
    """Outcome of reconstructing one fetched item.

    ``message`` and ``error`` are both set when the envelope parsed but part of
    the body did not; at least one of them is always set.
    """

    uid: int
    message: Optional[Message] = None
    error: Optional[MailtreeError] = None

    def __post_init__(self) -> None:
        if self.message is None and self.error is None:
            raise ValueError("FetchResult needs a message or an error")

    @property
    def ok(self) -> bool:
        return self.message is not None and self.error is None

    def to_dict(self) -> Dict[str, Any]:
        payload = self.message.to_dict() if self.message is not None else {"uid": self.uid}
        if self.error is not None:
            payload["error"] = str(self.error)
        return payload


class FetchStream:
    """Bounded, closable channel of :class:`FetchResult` items.

    What:
      The consumer side of a fetch: iterate it (from one or several threads)
      to receive results until the producer closes it.

    Why:
      Mirrors a bounded producer/consumer channel: the producer may run ahead
      by ``capacity`` results and then blocks, consumers block until the next
      result or closure.

    How:
      Results travel through an unbounded :class:`queue.Queue`; a semaphore
      with ``capacity`` slots bounds how many of them may be buffered. Closing
      enqueues a private marker that consumers translate into
      ``StopIteration`` and pass on to the other consumers.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, *, cancel: Optional[threading.Event] = None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._slots = threading.Semaphore(capacity)
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._cancel = cancel if cancel is not None else threading.Event()
        self._lock = threading.Lock()
        self._closed = False
        self._pending = 0
        self._thread: Optional[threading.Thread] = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        """Whether the producer has finished emitting."""

        return self._closed

    @property
    def pending(self) -> int:
        """Number of results emitted but not yet consumed."""

        with self._lock:
            return self._pending

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Ask the producer to stop at the next item boundary."""

        self._cancel.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the producer thread; return ``True`` once it has exited."""

        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def get(self, timeout: Optional[float] = None) -> Optional[FetchResult]:
        """Return the next result, or ``None`` once the stream is closed.

        Raises:
          queue.Empty: If ``timeout`` elapses before anything arrives.
        """

        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            self._queue.put(_CLOSED)
            return None
        with self._lock:
            self._pending -= 1
        self._slots.release()
        assert isinstance(item, FetchResult)
        return item

    def __iter__(self) -> Iterator[FetchResult]:
        return self

    def __next__(self) -> FetchResult:
        result = self.get()
        if result is None:
            raise StopIteration
        return result

    def _emit(self, result: FetchResult) -> bool:
        while not self._slots.acquire(timeout=_CANCEL_POLL_SECONDS):
            if self._cancel.is_set():
                return False
        if self._cancel.is_set():
            self._slots.release()
            return False
        with self._lock:
            self._pending += 1
        self._queue.put(result)
        return True

    def _close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._queue.put(_CLOSED)


def _field(fields: Mapping[Any, Any], key: bytes) -> Any:
    if key in fields:
        return fields[key]
    return fields.get(key.decode("ascii"))


def _as_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    return bytes(value)


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return parse_to_datetime(_as_bytes(value))


def _reconstruct(
    uid: int,
    fields: Mapping[Any, Any],
    *,
    max_depth: int,
    strict: bool,
    cancel: threading.Event,
) -> FetchResult:
    try:
        assembled = assemble(
            _as_bytes(_field(fields, _HEADER_KEY)),
            _as_bytes(_field(fields, _BODY_KEY)),
            _as_datetime(_field(fields, _DATE_KEY)),
            uid,
            max_depth=max_depth,
            strict=strict,
            cancel=cancel,
        )
    except ParseCancelled:
        raise
    except MailtreeError as exc:
        _LOGGER.warning("message reconstruction failed", uid=uid, error=str(exc))
        return FetchResult(uid=uid, error=exc)
    except Exception as exc:  # pragma: no cover - unexpected parser failure
        _LOGGER.error("unexpected reconstruction failure", uid=uid, error=repr(exc))
        return FetchResult(uid=uid, error=MessageParseError(f"parsing mail: {exc!r}"))
    if assembled.error is not None:
        _LOGGER.warning(
            "message body parsed with errors",
            uid=uid,
            errors=len(assembled.errors),
            error=str(assembled.error),
        )
    return FetchResult(uid=uid, message=assembled.message, error=assembled.error)


def _produce(
    stream: FetchStream,
    items: Iterable[Tuple[Any, Mapping[Any, Any]]],
    *,
    max_depth: int,
    strict: bool,
) -> None:
    emitted = 0
    try:
        for key, fields in items:
            if stream.cancelled:
                break
            if _field(fields, _HEADER_KEY) is None:
                # Unsolicited FETCH responses (flag updates) carry no header.
                _LOGGER.debug("dropping spurious fetch response", key=key)
                continue
            uid = int(_field(fields, _UID_KEY) or key)
            try:
                result = _reconstruct(uid, fields, max_depth=max_depth, strict=strict, cancel=stream._cancel)
            except ParseCancelled:
                break
            if not stream._emit(result):
                break
            emitted += 1
    finally:
        stream._close()
        _LOGGER.debug("fetch stream closed", emitted=emitted, cancelled=stream.cancelled)


def fetch_stream(
    session: Any,
    uids: Iterable[int],
    *,
    capacity: int = DEFAULT_CAPACITY,
    max_depth: int = DEFAULT_MAX_DEPTH,
    strict: bool = False,
    cancel: Optional[threading.Event] = None,
) -> FetchStream:
    """Fetch ``uids`` through ``session`` and stream reconstructed messages.

    What:
      Runs the bulk fetch and returns a :class:`FetchStream` that a background
      thread fills with one :class:`FetchResult` per message.

    Why:
      Transport failures must surface synchronously as a single error while
      per-message failures travel on the stream next to successful results.

    How:
      Returns a closed stream for an empty UID set. Otherwise calls
      ``session.fetch(uids, FETCH_FIELDS)`` (an ``imapclient.IMAPClient`` or
      compatible object), wraps protocol and socket errors in
      :class:`TransportError`, and hands the ordered response to the producer
      thread.

    Args:
      session: Object exposing ``fetch(uids, fields)`` like ``IMAPClient``.
      uids: Message UIDs to fetch.
      capacity: Maximum number of buffered results.
      max_depth: Multipart nesting limit applied to every message.
      strict: Turn any body part error into a per-item failure.
      cancel: Optional event shared with the caller to stop production.

    Returns:
      The :class:`FetchStream` to consume.

    Raises:
      TransportError: If the fetch command itself fails.
    """

    uid_list = list(uids)
    stream = FetchStream(capacity, cancel=cancel)
    if not uid_list:
        stream._close()
        return stream
    try:
        response = session.fetch(uid_list, FETCH_FIELDS)
    except (IMAPClientError, OSError) as exc:
        raise TransportError("fetching mails", exc) from exc
    thread = threading.Thread(
        target=_produce,
        args=(stream, list(response.items())),
        kwargs={"max_depth": max_depth, "strict": strict},
        name="mailtree-fetch",
        daemon=True,
    )
    stream._thread = thread
    thread.start()
    return stream
