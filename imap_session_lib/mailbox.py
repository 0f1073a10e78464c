"""
Mailbox name bookkeeping.

Mailbox names travel in three forms: the display name (a Unicode ``str``),
the modified UTF-7 wire name (``bytes``, RFC 3501 section 5.1.3) and the
percent-encoded path segment the session stores.
"""
from typing import Optional, Union
from urllib.parse import quote, unquote

from imapclient import imap_utf7


def display_name(mailbox: Union[str, bytes]) -> str:
    """
    Return the Unicode name of *mailbox*.

    ``bytes`` are taken to be a raw modified UTF-7 name as listed by the
    server; ``str`` is already a display name.
    """
    if isinstance(mailbox, bytes):
        return imap_utf7.decode(mailbox)
    return mailbox


def wire_name(mailbox: Union[str, bytes]) -> bytes:
    """
    Return the modified UTF-7 name to send to the server.
    """
    if isinstance(mailbox, bytes):
        return mailbox
    return imap_utf7.encode(mailbox)


def to_path(mailbox: Union[str, bytes]) -> str:
    """
    Encode *mailbox* as a percent-escaped path segment for storage.
    """
    return quote(display_name(mailbox), safe='')


def from_path(path: Optional[str]) -> Optional[str]:
    """
    Decode a stored path segment back into a display name, or None when
    the path is empty.

    A leading '/' is stripped. Any further '/' is kept as part of the name;
    it is not translated into the server's hierarchy delimiter.
    """
    if not path:
        return None
    if path.startswith('/'):
        path = path[1:]
    name = unquote(path)
    return name or None
