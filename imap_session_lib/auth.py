"""
Authentication mechanism negotiation.
"""
from typing import List, Optional
import logging

from .capability import CapabilitySet
from .exceptions import REJECTED_ERRORS, NoSupportedAuthMethod, is_rejection
from .protocol import ProtocolClient, Response

# Weakest first; candidates are tried from the end of this list.
MECHANISMS = ('PLAIN', 'LOGIN', 'CRAM-MD5')

# Mechanisms that put the password on the wire in the clear.
PLAINTEXT_MECHANISMS = ('PLAIN', 'LOGIN')


def candidates(capabilities: CapabilitySet) -> List[str]:
    """
    Return the mechanisms worth trying, weakest first.

    If the server advertises LOGINDISABLED the plaintext mechanisms are
    dropped so that credentials are never sent in the clear to a server that
    has said it will refuse them.
    """
    methods = [m for m in MECHANISMS if capabilities.supports_auth(m)]
    if capabilities.login_disabled:
        methods = [m for m in methods if m not in PLAINTEXT_MECHANISMS]
    return methods


def negotiate(client: ProtocolClient, capabilities: CapabilitySet,
              username: str, password: str,
              logger: Optional[logging.Logger] = None) -> Response:
    """
    Log in with the strongest mechanism the server supports, falling back to
    weaker ones when the server rejects an attempt.

    CRAM-MD5 is tried first, then LOGIN, then PLAIN. PLAIN is sent as a LOGIN
    command, the others through AUTHENTICATE.

    Args:
        client: Connected protocol client
        capabilities: The server's current capability set
        username: Login name
        password: Password

    Returns:
        Response: The server's response to the successful attempt

    Raises:
        NoSupportedAuthMethod: Every candidate was rejected, or there were none
    """
    logger = logger or logging.getLogger(__name__)
    methods = candidates(capabilities)
    tried = []
    last_error = None

    while methods:
        method = methods.pop()
        tried.append(method)
        logger.debug(f"Trying {method} authentication as {username}")

        try:
            if method == 'PLAIN':
                return client.login(username, password)
            return client.authenticate(method, username, password)
        except REJECTED_ERRORS as e:
            if not is_rejection(e):
                raise
            logger.debug(f"{method} authentication rejected: {e}")
            last_error = e

    error = NoSupportedAuthMethod(tried, str(last_error) if last_error else None)
    if last_error is not None:
        raise error from last_error
    raise error
