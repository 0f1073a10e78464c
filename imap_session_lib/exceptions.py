"""
Exceptions raised by the IMAP session layer.
"""
import imaplib
from typing import List, Optional

from imapclient.exceptions import IMAPClientAbortError, IMAPClientError

# Server rejected a command with a NO or BAD response.
REJECTED_ERRORS = (IMAPClientError, imaplib.IMAP4.error)

# Connection was dropped or the server sent an unsolicited BYE.
ABORT_ERRORS = (IMAPClientAbortError, imaplib.IMAP4.abort)


class Error(Exception):
    """
    Base class for all errors raised by imap_session_lib.
    """


class InvalidEndpoint(Error, ValueError):
    """
    The connection URI is malformed or lacks a required part.
    """


class NotConnected(Error):
    """
    The operation needs an open connection.
    """


class NotAuthenticated(Error):
    """
    The operation needs an authenticated session.
    """


class NoMailboxSelected(Error):
    """
    The operation needs an open mailbox.
    """


class NoSupportedAuthMethod(Error):
    """
    None of the mechanisms the server advertises (and permits) succeeded.

    The mechanisms that were attempted are available, in order, as
    ``tried``.
    """

    def __init__(self, tried: List[str], reason: Optional[str] = None):
        self.tried = list(tried)
        self.reason = reason
        if self.tried:
            message = f"no supported authentication method succeeded (tried {', '.join(self.tried)})"
        else:
            message = "server advertises no supported authentication method"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


def is_rejection(error: BaseException) -> bool:
    """
    Return True if *error* is a NO/BAD response from the server rather than
    a dropped connection.
    """
    return isinstance(error, REJECTED_ERRORS) and not isinstance(error, ABORT_ERRORS)
