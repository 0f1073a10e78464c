"""
Stateful IMAP session: connection lifecycle, authentication, mailbox
selection and recovery from transient failures.
"""
from enum import IntEnum
from typing import Any, Callable, Optional, Union
import functools
import logging

from .auth import negotiate
from .capability import CapabilitySet
from .client import ImapClient
from .endpoint import Endpoint
from .exceptions import (
    REJECTED_ERRORS,
    NoMailboxSelected,
    NotAuthenticated,
    NotConnected,
)
from .options import SessionOptions
from .protocol import ProtocolClient, Response
from .quirks import QuirkProfile, detect
from .retry import RetryPolicy, run
from . import mailbox as mailbox_path

Connector = Callable[..., ProtocolClient]

# Errors a half-dead transport may raise while being shut down.
_TEARDOWN_ERRORS = (OSError,) + REJECTED_ERRORS


class SessionState(IntEnum):
    DISCONNECTED = 0
    CONNECTED = 1
    AUTHENTICATED = 2
    MAILBOX_OPEN = 3


def delegated(name: str):
    """
    Forward a method to the protocol client command *name*, after checking
    the session state that ``ProtocolClient.REQUIRES_AUTH`` asks for.
    """
    requires_auth = ProtocolClient.REQUIRES_AUTH[name]

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            if requires_auth:
                self._require_auth()
            else:
                self._require_connection()
            return getattr(self._conn, name)(*args, **kwargs)
        return wrapper
    return decorator


class Session:
    """
    A resilient session with one IMAP server.

    The session owns its connection. It picks the strongest authentication
    mechanism the server offers, remembers the mailbox it has open, and with
    :meth:`safely` re-establishes all of that after a dropped connection.

    Not safe for concurrent use; run one session per thread.
    """

    def __init__(self, endpoint: Union[Endpoint, str],
                 options: Optional[SessionOptions] = None,
                 logger: Optional[logging.Logger] = None,
                 connector: Optional[Connector] = None):
        """
        Create a session without connecting.

        Args:
            endpoint: Endpoint or IMAP URI; the URI path names the mailbox
                :meth:`start` opens
            options: Session configuration
            logger: Optional logger instance
            connector: Callable opening a protocol client, called as
                ``connector(host, port, ssl=..., ssl_context=..., timeout=...)``
        """
        self.endpoint = endpoint if isinstance(endpoint, Endpoint) else Endpoint.from_uri(endpoint)
        self.options = options or SessionOptions()
        self.logger = logger or logging.getLogger(__name__)
        self._connector = connector or self._open_client

        self._conn: Optional[ProtocolClient] = None
        self._state = SessionState.DISCONNECTED
        self._capability = CapabilitySet()
        self._quirks = QuirkProfile()
        self._read_only = False
        self._mailbox_path = mailbox_path.to_path(self.endpoint.mailbox) if self.endpoint.mailbox else ''

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def __repr__(self):
        return f"<Session {self.uri} {self.state.name}>"

    @property
    def host(self) -> str:
        return self.endpoint.host

    @property
    def port(self) -> int:
        return self.endpoint.port

    @property
    def ssl(self) -> bool:
        return self.endpoint.ssl

    @property
    def username(self) -> str:
        return self.endpoint.username

    @property
    def password(self) -> str:
        return self.endpoint.password

    @property
    def uri(self) -> str:
        """The endpoint URI with the current mailbox path, password masked."""
        return self.endpoint.to_uri(self._mailbox_path)

    @property
    def capability(self) -> CapabilitySet:
        return self._capability

    @property
    def quirks(self) -> QuirkProfile:
        return self._quirks

    @property
    def state(self) -> SessionState:
        if self._conn is None or not self._conn.connected:
            return SessionState.DISCONNECTED
        return self._state

    @property
    def connected(self) -> bool:
        return self.state >= SessionState.CONNECTED

    @property
    def authenticated(self) -> bool:
        return self.state >= SessionState.AUTHENTICATED

    @property
    def read_only(self) -> bool:
        """True if the open mailbox was opened with EXAMINE."""
        return self.state is SessionState.MAILBOX_OPEN and self._read_only

    @property
    def mailbox(self) -> Optional[str]:
        """The name of the open mailbox, or None."""
        if self.state is not SessionState.MAILBOX_OPEN:
            return None
        return mailbox_path.from_path(self._mailbox_path)

    @property
    def mailbox_utf7(self) -> Optional[bytes]:
        """The open mailbox as a modified UTF-7 wire name, or None."""
        name = self.mailbox
        return mailbox_path.wire_name(name) if name is not None else None

    def connect(self) -> bool:
        """
        Open a new connection, replacing any existing one.

        Detects server quirks from the greeting, sends any workaround they
        need, then reads the capability list.
        """
        self.disconnect()

        self.logger.info(f"Connecting to {self.host}:{self.port}")
        ssl_context = self.options.ssl_context() if self.ssl else None
        self._conn = self._connector(
            self.host,
            self.port,
            ssl=self.ssl,
            ssl_context=ssl_context,
            timeout=self.options.timeout
        )
        self._state = SessionState.CONNECTED
        self._capability = CapabilitySet()

        greeting = self._conn.greeting()
        self._quirks = detect(greeting, self.host)
        if self._quirks:
            self.logger.debug(f"Detected server quirks: {', '.join(sorted(self._quirks))}")

        # Workarounds go first: some servers won't answer CAPABILITY before.
        for command in self._quirks.workarounds:
            self._conn.send_raw(command)

        self.refresh_capabilities(greeting)
        self.logger.info(f"Connected to {self.host}")
        return True

    def authenticate(self) -> bool:
        """
        Log in with the best available mechanism. Does nothing if already
        authenticated.

        Raises:
            NotConnected: Not connected
            NoSupportedAuthMethod: No mechanism succeeded
        """
        if not self.connected:
            raise NotConnected("must connect before authenticating")
        if self.authenticated:
            return True

        response = negotiate(self._conn, self._capability, self.username, self.password, self.logger)
        self._state = SessionState.AUTHENTICATED
        self.logger.info(f"Authenticated as {self.username} on {self.host}")

        self.refresh_capabilities(response)
        return True

    def refresh_capabilities(self, response: Optional[Response] = None) -> CapabilitySet:
        """
        Replace the capability set, from *response* if it carries an inline
        CAPABILITY code, otherwise by asking the server.

        Raises:
            NotConnected: A query is needed but there is no connection
        """
        capability = CapabilitySet.from_response(response)
        if capability is None:
            self._require_connection()
            capability = CapabilitySet(self._conn.capability())
            self.logger.debug(f"Queried capabilities of {self.host}")
        else:
            self.logger.debug(f"Read inline capabilities of {self.host}")

        self._capability = capability
        return capability

    def select(self, mailbox: Union[str, bytes]) -> Any:
        """
        Open *mailbox* in read-write mode.

        Args:
            mailbox: Display name, or the raw modified UTF-7 name as bytes

        Returns:
            The SELECT response from the protocol client
        """
        return self._open(mailbox, read_only=False)

    def examine(self, mailbox: Union[str, bytes]) -> Any:
        """
        Open *mailbox* in read-only mode. Works like :meth:`select`.
        """
        return self._open(mailbox, read_only=True)

    def close(self) -> Response:
        """
        Close the open mailbox. On a mailbox opened with SELECT this
        permanently expunges every message flagged ``\\Deleted``.

        Raises:
            NoMailboxSelected: No mailbox is open
        """
        self._require_auth()
        if self.state is not SessionState.MAILBOX_OPEN:
            raise NoMailboxSelected("no mailbox is open")

        response = self._conn.close()
        self.logger.info(f"Closed mailbox {mailbox_path.from_path(self._mailbox_path)}")
        self._mailbox_path = ''
        self._state = SessionState.AUTHENTICATED
        return response

    def disconnect(self) -> None:
        """
        Drop the connection. Safe to call in any state.
        """
        conn, self._conn = self._conn, None
        self._state = SessionState.DISCONNECTED
        if conn is None or not conn.connected:
            return

        try:
            conn.disconnect()
            self.logger.info(f"Disconnected from {self.host}")
        except _TEARDOWN_ERRORS as e:
            self.logger.warning(f"Error disconnecting from {self.host}: {e}")

    def start(self) -> None:
        """
        Connect if needed, authenticate if needed, then open the session's
        mailbox (if any), read-only when configured so.

        On an established session this only re-opens the mailbox.
        """
        if not self.connected:
            self.connect()
        if not self.authenticated:
            self.authenticate()

        name = mailbox_path.from_path(self._mailbox_path)
        if name:
            if self.options.read_only:
                self.examine(name)
            else:
                self.select(name)

    def safely(self, work: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Start the session and run *work*, retrying from scratch after a
        recoverable error.

        Up to ``options.max_retries`` retries are made, waiting one
        ``retry_delay`` longer before each. Certificate verification
        failures and any non-network error are raised immediately.

        Returns:
            Whatever *work* returns
        """
        policy = RetryPolicy(self.options.max_retries, self.options.retry_delay)
        bound = functools.partial(work, *args, **kwargs)
        return run(policy, self.start, self._reset, bound, logger=self.logger)

    @delegated('noop')
    def noop(self):
        """Send NOOP."""

    @delegated('logout')
    def logout(self):
        """Send LOGOUT; the server closes the connection."""

    @delegated('list_folders')
    def list_folders(self, directory: str = '', pattern: str = '*'):
        """List mailboxes; names are returned as modified UTF-7."""

    @delegated('search')
    def search(self, criteria='ALL', charset=None):
        """Search the open mailbox, returning UIDs."""

    @delegated('fetch')
    def fetch(self, messages, data):
        """Fetch *data* items for the given UIDs."""

    def _open(self, mailbox: Union[str, bytes], read_only: bool) -> Any:
        self._require_auth()
        name = mailbox_path.display_name(mailbox)
        wire = mailbox_path.wire_name(mailbox)

        try:
            response = self._conn.examine(wire) if read_only else self._conn.select(wire)
        except REJECTED_ERRORS:
            # A failed SELECT/EXAMINE leaves no mailbox selected.
            if self._state is SessionState.MAILBOX_OPEN:
                self._state = SessionState.AUTHENTICATED
            raise

        self._mailbox_path = mailbox_path.to_path(name)
        self._read_only = read_only
        self._state = SessionState.MAILBOX_OPEN
        self.logger.info(f"Opened mailbox {name} ({'read-only' if read_only else 'read-write'})")
        return response

    def _reset(self) -> None:
        # The old connection is presumed dead: drop it without a teardown.
        self._conn = None
        self._state = SessionState.DISCONNECTED

    def _require_connection(self) -> None:
        if not self.connected:
            raise NotConnected("not connected")

    def _require_auth(self) -> None:
        self._require_connection()
        if not self.authenticated:
            raise NotAuthenticated("not authenticated")

    def _open_client(self, host, port, ssl=True, ssl_context=None, timeout=None) -> ProtocolClient:
        return ImapClient.open(host, port, ssl=ssl, ssl_context=ssl_context, timeout=timeout, logger=self.logger)
