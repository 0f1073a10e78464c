"""
Detection of server implementations that need workarounds.
"""
import re
from typing import Iterable, Optional, Tuple

from .protocol import Response

GMAIL = 'gmail'
YAHOO = 'yahoo'

_GMAIL_GREETING = re.compile(r'^Gimap ready')
_YAHOO_HOST = re.compile(r'^imap(?:-ssl)?\.mail\.yahoo\.com$', re.IGNORECASE)

# Commands that must be sent right after connecting, before the capability
# list is read or any authentication is attempted.
WORKAROUNDS = {
    # Yahoo! refuses CAPABILITY and authentication until it sees an ID.
    YAHOO: ('ID ("guid" "1")',),
}


class QuirkProfile(frozenset):
    """
    Quirk flags for one connection.
    """

    @property
    def gmail(self) -> bool:
        return GMAIL in self

    @property
    def yahoo(self) -> bool:
        return YAHOO in self

    @property
    def workarounds(self) -> Tuple[str, ...]:
        commands = []
        for flag in sorted(self):
            commands.extend(WORKAROUNDS.get(flag, ()))
        return tuple(commands)

    def __repr__(self):
        return f"QuirkProfile({sorted(self)!r})"


def detect(greeting: Optional[Response], host: str) -> QuirkProfile:
    """
    Identify known non-conforming servers from the greeting and host name.

    Only an untagged greeting is inspected; anything else yields an empty
    profile.
    """
    if greeting is None or greeting.tagged:
        return QuirkProfile()

    flags: Iterable[str] = ()
    if _GMAIL_GREETING.match(greeting.text):
        flags = (GMAIL,)
    elif _YAHOO_HOST.match(host or ''):
        flags = (YAHOO,)
    return QuirkProfile(flags)
