"""
SASL response handlers for AUTHENTICATE.

Each handler is called by imaplib with the decoded server challenge and
returns the client response, matching what ``IMAPClient.sasl_login``
expects.
"""
import hmac
from typing import Callable, Union

Handler = Callable[[bytes], Union[bytes, str]]


class CramMD5:
    """CRAM-MD5 (RFC 2195)."""

    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password

    def __call__(self, challenge: bytes) -> str:
        digest = hmac.HMAC(self.password.encode('utf-8'), challenge, 'md5').hexdigest()
        return f"{self.username} {digest}"


class Login:
    """
    The non-standard LOGIN mechanism: the server asks for the username,
    then for the password.
    """

    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password
        self.step = 0

    def __call__(self, challenge: bytes) -> str:
        self.step += 1
        if self.step == 1:
            return self.username
        if self.step == 2:
            return self.password
        return ''


class Plain:
    """PLAIN (RFC 4616), for servers reached through AUTHENTICATE."""

    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password

    def __call__(self, challenge: bytes) -> str:
        return f"\0{self.username}\0{self.password}"


MECHANISMS = {
    'CRAM-MD5': CramMD5,
    'LOGIN': Login,
    'PLAIN': Plain,
}


def handler_for(mechanism: str, username: str, password: str) -> Handler:
    """
    Return a fresh handler for *mechanism*.

    Raises:
        ValueError: The mechanism is not implemented
    """
    try:
        factory = MECHANISMS[mechanism.upper()]
    except KeyError:
        raise ValueError(f"unsupported SASL mechanism: {mechanism}") from None
    return factory(username, password)
