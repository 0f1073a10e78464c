"""
The narrow interface the session layer needs from an IMAP protocol client,
and the response model it reads.
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

_UNTAGGED_RE = re.compile(r'^\*\s+(?P<status>[A-Za-z]+)(?:\s+(?P<rest>.*))?$', re.DOTALL)
_CODE_RE = re.compile(r'^\[(?P<name>[A-Za-z0-9.\-]+)(?:\s+(?P<data>[^\]]*))?\]\s*(?P<text>.*)$', re.DOTALL)


@dataclass(frozen=True)
class Response:
    """
    A status response from the server.

    ``code`` and ``code_data`` hold the optional bracketed response code,
    e.g. ``[CAPABILITY IMAP4rev1 AUTH=PLAIN]`` gives ``'CAPABILITY'`` and
    ``'IMAP4rev1 AUTH=PLAIN'``. ``text`` is the human readable remainder.
    """
    tagged: bool
    status: str = 'OK'
    code: Optional[str] = None
    code_data: Optional[str] = None
    text: str = ''

    @classmethod
    def parse(cls, line: Union[bytes, str, None]) -> Optional['Response']:
        """
        Parse an untagged status line such as a server greeting
        (``* OK [CAPABILITY ...] Gimap ready``). Returns None for anything
        that is not an untagged status line.
        """
        if line is None:
            return None
        line = _to_text(line).rstrip('\r\n')
        match = _UNTAGGED_RE.match(line)
        if not match:
            return None
        return cls._build(False, match.group('status').upper(), match.group('rest') or '')

    @classmethod
    def from_tagged(cls, data: Union[bytes, str, None], status: str = 'OK') -> 'Response':
        """
        Build a response from the text of a completed tagged response, as
        IMAPClient returns it from login and authenticate
        (``[CAPABILITY ...] Logged in``).
        """
        return cls._build(True, status, _to_text(data or b'').rstrip('\r\n'))

    @classmethod
    def _build(cls, tagged: bool, status: str, rest: str) -> 'Response':
        match = _CODE_RE.match(rest)
        if not match:
            return cls(tagged=tagged, status=status, text=rest)
        return cls(
            tagged=tagged,
            status=status,
            code=match.group('name').upper(),
            code_data=match.group('data'),
            text=match.group('text'),
        )


def _to_text(value: Union[bytes, str]) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return value


class ProtocolClient(ABC):
    """
    What a session calls on the underlying protocol client.

    Implementations raise the IMAPClient/imaplib error types: an
    ``IMAPClientError`` (``LoginError`` for failed logins) for NO/BAD
    responses, an ``IMAPClientAbortError`` when the connection drops or the
    server says BYE, and plain socket/ssl errors from the transport.

    ``REQUIRES_AUTH`` lists, per delegated command, whether the session
    must be authenticated before calling it.
    """

    REQUIRES_AUTH: Dict[str, bool] = {
        'noop': False,
        'logout': False,
        'list_folders': True,
        'search': True,
        'fetch': True,
    }

    @abstractmethod
    def greeting(self) -> Optional[Response]:
        """Return the server greeting received on connect."""

    @abstractmethod
    def login(self, username: str, password: str) -> Response:
        """Issue LOGIN."""

    @abstractmethod
    def authenticate(self, mechanism: str, username: str, password: str) -> Response:
        """Issue AUTHENTICATE with the given SASL mechanism."""

    @abstractmethod
    def capability(self) -> Sequence[str]:
        """Issue CAPABILITY and return the advertised tokens."""

    @abstractmethod
    def select(self, mailbox: bytes) -> Dict[bytes, Any]:
        """Issue SELECT for a modified UTF-7 mailbox name."""

    @abstractmethod
    def examine(self, mailbox: bytes) -> Dict[bytes, Any]:
        """Issue EXAMINE for a modified UTF-7 mailbox name."""

    @abstractmethod
    def close(self) -> Response:
        """Issue CLOSE."""

    @abstractmethod
    def send_raw(self, command: str) -> Response:
        """Send *command* (name and arguments) verbatim."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """True while the transport is open."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the transport without logging out."""

    @abstractmethod
    def noop(self) -> Any:
        """Issue NOOP."""

    @abstractmethod
    def logout(self) -> Any:
        """Issue LOGOUT."""

    @abstractmethod
    def list_folders(self, directory: str = '', pattern: str = '*') -> List[Tuple[Any, bytes, str]]:
        """Issue LIST."""

    @abstractmethod
    def search(self, criteria: Any = 'ALL', charset: Optional[str] = None) -> List[int]:
        """Issue UID SEARCH."""

    @abstractmethod
    def fetch(self, messages: Any, data: Any) -> Dict[int, Dict[bytes, Any]]:
        """Issue UID FETCH."""
