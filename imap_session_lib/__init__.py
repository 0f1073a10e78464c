"""
A resilient session layer for IMAP servers.
"""

from .session import Session, SessionState
from .endpoint import Endpoint
from .options import SessionOptions
from .capability import CapabilitySet
from .quirks import QuirkProfile
from .retry import FailureKind, RetryPolicy, classify
from .exceptions import (
    Error,
    InvalidEndpoint,
    NoMailboxSelected,
    NoSupportedAuthMethod,
    NotAuthenticated,
    NotConnected,
)

__version__ = "0.1.0"
__all__ = [
    "Session", "SessionState", "Endpoint", "SessionOptions", "CapabilitySet",
    "QuirkProfile", "FailureKind", "RetryPolicy", "classify", "Error",
    "InvalidEndpoint", "NoMailboxSelected", "NoSupportedAuthMethod",
    "NotAuthenticated", "NotConnected",
]
