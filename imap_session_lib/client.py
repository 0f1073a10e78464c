"""
IMAP protocol client backed by IMAPClient.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
import logging
import ssl as ssl_lib

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError, LoginError

from .exceptions import ABORT_ERRORS
from .protocol import ProtocolClient, Response
from . import sasl


class ImapClient(ProtocolClient):
    """
    Adapts an ``imapclient.IMAPClient`` connection to the protocol client
    interface used by :class:`~imap_session_lib.session.Session`.
    """

    def __init__(self, client: IMAPClient, logger: Optional[logging.Logger] = None):
        """
        Wrap an already connected IMAPClient.

        Args:
            client: The connected IMAPClient instance
            logger: Optional logger instance
        """
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self._closed = False
        # Mailbox names arrive already encoded as modified UTF-7.
        self.client.folder_encode = False

    @classmethod
    def open(cls, host: str, port: int, ssl: bool = True,
             ssl_context: Optional[ssl_lib.SSLContext] = None,
             timeout: Optional[float] = None,
             logger: Optional[logging.Logger] = None) -> 'ImapClient':
        """
        Open a connection to the IMAP server.

        Args:
            host: Server host name
            port: Server port
            ssl: Connect over TLS
            ssl_context: SSL context controlling certificate verification
            timeout: Socket timeout in seconds
            logger: Optional logger instance

        Returns:
            ImapClient: Adapter around the new connection
        """
        logger = logger or logging.getLogger(__name__)
        logger.debug(f"Opening {'TLS' if ssl else 'plain text'} connection to {host}:{port}")
        client = IMAPClient(
            host,
            port=port,
            use_uid=True,
            ssl=ssl,
            ssl_context=ssl_context if ssl else None,
            timeout=timeout
        )
        return cls(client, logger)

    def greeting(self) -> Optional[Response]:
        return Response.parse(self.client.welcome)

    def login(self, username: str, password: str) -> Response:
        with self._transport():
            try:
                data = self.client.login(username, password)
            except LoginError as e:
                self._raise_abort(e)
                raise
        return Response.from_tagged(data)

    def authenticate(self, mechanism: str, username: str, password: str) -> Response:
        handler = sasl.handler_for(mechanism, username, password)
        with self._transport():
            try:
                data = self.client.sasl_login(mechanism, handler)
            except LoginError as e:
                self._raise_abort(e)
                raise
        return Response.from_tagged(data)

    def capability(self) -> Sequence[str]:
        # IMAPClient.capabilities() may answer from its cache; ask the server.
        with self._transport():
            typ, data = self.client._imap.capability()
        if typ != 'OK':
            raise IMAPClientError(f"capability failed: {data}")
        raw = b' '.join(item for item in data if isinstance(item, bytes))
        return tuple(raw.decode('ascii', errors='replace').upper().split())

    def select(self, mailbox: bytes) -> Dict[bytes, Any]:
        with self._transport():
            return self.client.select_folder(mailbox, readonly=False)

    def examine(self, mailbox: bytes) -> Dict[bytes, Any]:
        with self._transport():
            return self.client.select_folder(mailbox, readonly=True)

    def close(self) -> Response:
        with self._transport():
            return Response.from_tagged(self.client.close_folder())

    def send_raw(self, command: str) -> Response:
        """
        Send *command* verbatim, e.g. ``ID ("guid" "1")``.

        ``IMAPClient.id_()`` is not used for this: it checks the ID
        capability first, and servers needing the workaround won't answer
        CAPABILITY before it.

        Raises:
            IMAPClientError: The server did not answer OK
        """
        name, _, args = command.strip().partition(' ')
        self.logger.debug(f"Sending raw command: {name}")
        with self._transport():
            if args:
                typ, data = self.client._imap.xatom(name, args)
            else:
                typ, data = self.client._imap.xatom(name)
        if typ != 'OK':
            raise IMAPClientError(f"{name} failed: {data[-1] if data else typ}")
        return Response.from_tagged(data[-1] if data else None)

    @property
    def connected(self) -> bool:
        """False once closed, or after the server dropped the connection."""
        return not self._closed

    def disconnect(self) -> None:
        """
        Close the connection without logging out.
        """
        if self._closed:
            return
        self._closed = True
        self.client.shutdown()

    def noop(self) -> Any:
        with self._transport():
            return self.client.noop()

    def logout(self) -> Any:
        with self._transport():
            response = self.client.logout()
        self._closed = True
        return response

    def list_folders(self, directory: str = '', pattern: str = '*') -> List[Tuple[Any, bytes, str]]:
        with self._transport():
            return self.client.list_folders(directory, pattern)

    def search(self, criteria: Any = 'ALL', charset: Optional[str] = None) -> List[int]:
        with self._transport():
            return self.client.search(criteria, charset)

    def fetch(self, messages: Any, data: Any) -> Dict[int, Dict[bytes, Any]]:
        with self._transport():
            return self.client.fetch(messages, data)

    @contextmanager
    def _transport(self) -> Iterator[None]:
        """
        Mark the connection closed when a command fails because the server
        hung up (BYE, EOF) or the socket broke.
        """
        try:
            yield
        except ABORT_ERRORS + (OSError,) as e:
            if not self._closed:
                self.logger.debug(f"Connection lost: {e}")
                self._closed = True
                self._release()
            raise

    def _release(self) -> None:
        try:
            self.client.shutdown()
        except OSError as e:
            self.logger.debug(f"Error releasing socket: {e}")

    @staticmethod
    def _raise_abort(error: LoginError) -> None:
        # IMAPClient reports a dropped connection during login as LoginError.
        context = error.__context__
        if isinstance(context, ABORT_ERRORS):
            raise context from None
