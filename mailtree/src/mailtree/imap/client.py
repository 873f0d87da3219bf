"""Stateful IMAP session wrapper built on ``imapclient``.

What:
  Wrap :class:`imapclient.IMAPClient` with configuration defaults, step-tagged
  transport errors, UID search, and the streaming fetch pipeline.

Why:
  The reconstruction pipeline only needs a narrow capability surface (search
  UIDs, bulk fetch). Centralising connection set-up keeps TLS options, folder
  selection, and error wrapping consistent and guarantees that only one
  command is in flight on the connection at a time.

How:
  :class:`ImapConfig` fills unset fields from the runtime configuration.
  :class:`MailboxClient` connects, logs in, and selects the folder in
  :meth:`MailboxClient.__enter__`; every command runs under a lock and
  protocol or socket failures are re-raised as :class:`TransportError` naming
  the step that failed.

Interfaces:
  :class:`ImapConfig` and :class:`MailboxClient` (``search_uids``,
  ``fetch_uids``, ``client``).

Invariants & Safety:
  - All operations run in UID mode; sequence numbers are never used.
  - Fetches use ``BODY.PEEK`` so reading never sets ``\\Seen``.
  - Transport errors surface synchronously and abort the operation.
"""
from __future__ import annotations

import ssl as ssl_lib
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from ..config.loader import get_runtime_config
from ..config.schema import RuntimeConfig
from ..errors import TransportError
from ..utils.logging import get_logger
from .fetch import FetchStream, fetch_stream
from .search import build_search


_LOGGER = get_logger("mailtree.imap")


@dataclass
class ImapConfig:
    """Connection parameters for one IMAP mailbox.

    What:
      Host, credentials, TLS options, and the folder to select.

    Why:
      Callers usually only know the host and credentials; everything else
      should follow the operator's configuration file.

    How:
      :meth:`__post_init__` replaces ``None`` fields with values from
      :func:`~mailtree.config.loader.get_runtime_config`.

    Attributes:
      host: IMAP hostname.
      username: Login name; no login is attempted when empty.
      password: Password or app-specific token.
      port: IMAP port.
      ssl: Whether to connect over implicit TLS.
      insecure_skip_verify: Disable certificate verification.
      folder: Mailbox to select.
      readonly: Select the folder with ``EXAMINE`` semantics.
    """

    host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    port: Optional[int] = None
    ssl: Optional[bool] = None
    insecure_skip_verify: Optional[bool] = None
    folder: Optional[str] = None
    readonly: Optional[bool] = None

    def __post_init__(self) -> None:
        settings = get_runtime_config().imap
        for name in ("host", "username", "password", "port", "ssl", "insecure_skip_verify", "folder", "readonly"):
            if getattr(self, name) is None:
                setattr(self, name, getattr(settings, name))
        if not self.host:
            raise ValueError("IMAP host not configured")

    def ssl_context(self) -> Optional[ssl_lib.SSLContext]:
        if not self.ssl:
            return None
        context = ssl_lib.create_default_context()
        if self.insecure_skip_verify:
            context.check_hostname = False
            context.verify_mode = ssl_lib.CERT_NONE
        return context


class MailboxClient:
    """Context manager owning one IMAP connection with a selected folder.

    What:
      Connects on entry, logs out on exit, and exposes UID search and the
      streaming fetch.

    Why:
      Gives the rest of the package a single-flight session: the lock ensures
      no second command starts while another one is running, and the fetch
      stream only starts after the bulk fetch has fully returned.

    How:
      Delegates to ``imapclient.IMAPClient`` and wraps its exceptions (and
      socket errors) in :class:`TransportError`.
    """

    def __init__(self, config: ImapConfig, *, runtime: Optional[RuntimeConfig] = None):
        self._config = config
        self._runtime = runtime
        self._client: Optional[IMAPClient] = None
        self._lock = threading.Lock()

    def __enter__(self) -> "MailboxClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def client(self) -> IMAPClient:
        """Return the underlying ``IMAPClient``.

        Raises:
          RuntimeError: If accessed before :meth:`connect`.
        """

        if self._client is None:
            raise RuntimeError("IMAP client not connected")
        return self._client

    @property
    def config(self) -> ImapConfig:
        return self._config

    @property
    def runtime(self) -> RuntimeConfig:
        return self._runtime if self._runtime is not None else get_runtime_config()

    def connect(self) -> None:
        """Dial the server, authenticate, and select the configured folder.

        What:
          Runs the three session set-up steps in order.

        Why:
          Each step fails for different reasons (network, credentials, folder
          name), so each failure is tagged with its step for the operator.

        How:
          Instantiates ``IMAPClient``; logs in only when a username is set;
          selects the folder honouring ``readonly``. A failure after dialing
          closes the connection before re-raising.

        Raises:
          TransportError: With ``step`` set to ``dialing``,
            ``authenticating``, or ``selecting mailbox``.
        """

        config = self._config
        try:
            self._client = IMAPClient(
                config.host,
                port=config.port,
                ssl=config.ssl,
                ssl_context=config.ssl_context(),
            )
        except (IMAPClientError, OSError) as exc:
            raise TransportError("dialing", exc) from exc

        if config.username:
            try:
                self._client.login(config.username, config.password or "")
            except (IMAPClientError, OSError) as exc:
                self._abandon()
                raise TransportError("authenticating", exc) from exc

        try:
            self._client.select_folder(config.folder, readonly=bool(config.readonly))
        except (IMAPClientError, OSError) as exc:
            self._abandon()
            raise TransportError(f"selecting mailbox {config.folder!r}", exc) from exc
        _LOGGER.info("mailbox selected", host=config.host, folder=config.folder, readonly=config.readonly)

    def _abandon(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.shutdown()
        except (IMAPClientError, OSError) as exc:  # pragma: no cover - best effort
            _LOGGER.debug("connection shutdown failed", error=str(exc))

    def close(self) -> None:
        """Log out and release the connection."""

        if self._client is None:
            return
        try:
            with self._lock:
                self._client.logout()
        finally:
            self._client = None

    def search_uids(self, query: str = "", since: Optional[Union[date, datetime]] = None) -> List[int]:
        """Return UIDs matching ``query`` that arrived on or after ``since``.

        Args:
          query: Raw IMAP search expression; empty to omit the text term.
          since: Arrival cut-off; ``None`` to omit the date filter.

        Returns:
          Matching UIDs in server order.

        Raises:
          TransportError: If the search command fails.
        """

        criteria = build_search(query, since)
        with self._lock:
            try:
                return list(self.client.search(criteria))
            except (IMAPClientError, OSError) as exc:
                raise TransportError("searching", exc) from exc

    def fetch_uids(self, uids: Iterable[int], *, cancel: Optional[threading.Event] = None) -> FetchStream:
        """Bulk fetch ``uids`` and stream reconstructed messages.

        Channel capacity, nesting limit, and strictness come from the runtime
        configuration.

        Raises:
          TransportError: If the fetch command fails.
        """

        runtime = self.runtime
        with self._lock:
            return fetch_stream(
                self.client,
                uids,
                capacity=runtime.fetch.channel_capacity,
                max_depth=runtime.parsing.max_depth,
                strict=runtime.parsing.strict,
                cancel=cancel,
            )
