"""
Recovery from transient connection failures.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional
import errno
import logging
import socket
import ssl
import time

from .exceptions import ABORT_ERRORS


class FailureKind(Enum):
    TRANSIENT = 'transient'
    TRUST = 'trust'
    FATAL = 'fatal'


TRANSIENT_ERRORS = (
    ConnectionAbortedError,
    ConnectionRefusedError,
    ConnectionResetError,
    BrokenPipeError,
    TimeoutError,
    socket.timeout,
    socket.gaierror,
    socket.herror,
    ssl.SSLError,
) + ABORT_ERRORS

TRANSIENT_ERRNOS = frozenset((
    errno.ENOTCONN,
    errno.ECONNABORTED,
    errno.ECONNREFUSED,
    errno.ECONNRESET,
    errno.EPIPE,
    errno.ETIMEDOUT,
    errno.EIO,
))

_CERT_VERIFY_FAILED = 'certificate verify failed'


def classify(error: BaseException) -> FailureKind:
    """
    Decide whether *error* is worth retrying after reconnecting.

    Certificate verification failures are never retried. Network, socket,
    TLS and generic I/O errors, and aborted IMAP connections (including an
    unsolicited BYE), are transient. Everything else is fatal.
    """
    if isinstance(error, ssl.SSLCertVerificationError):
        return FailureKind.TRUST
    if isinstance(error, ssl.SSLError) and _CERT_VERIFY_FAILED in str(error):
        return FailureKind.TRUST
    if isinstance(error, TRANSIENT_ERRORS):
        return FailureKind.TRANSIENT
    if isinstance(error, OSError) and (type(error) is OSError or error.errno in TRANSIENT_ERRNOS):
        return FailureKind.TRANSIENT
    return FailureKind.FATAL


@dataclass(frozen=True)
class Attempt:
    """
    Outcome of one run of the unit of work.
    """
    number: int
    value: Any = None
    error: Optional[BaseException] = None
    kind: Optional[FailureKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often to retry, and how long to wait in between.

    The wait grows linearly: ``attempt * base_delay`` seconds.
    """
    max_retries: int = 3
    base_delay: float = 1.0

    def delay(self, attempt: int) -> float:
        return attempt * self.base_delay

    def exhausted(self, retries: int) -> bool:
        return retries > self.max_retries


def run(policy: RetryPolicy, start: Callable[[], Any], reset: Callable[[], None],
        work: Callable[[], Any], logger: Optional[logging.Logger] = None,
        sleep: Optional[Callable[[float], None]] = None) -> Any:
    """
    Call *start* then *work*, starting over after a transient failure.

    Args:
        policy: Retry budget and backoff
        start: Establishes the session (connect, authenticate, open mailbox)
        reset: Discards the connection before a retry
        work: The unit of work, called without arguments
        logger: Optional logger instance
        sleep: Function used to wait between attempts, ``time.sleep`` by
            default

    Returns:
        The value returned by *work*

    Raises:
        The original error when it is fatal, a certificate verification
        failure, or a transient failure with the retry budget spent.
    """
    logger = logger or logging.getLogger(__name__)
    sleep = sleep or time.sleep
    retries = 0

    while True:
        attempt = _attempt(retries + 1, start, work)
        if attempt.ok:
            return attempt.value

        error = attempt.error
        if attempt.kind is FailureKind.TRUST:
            logger.error(f"Certificate verification failed, not retrying: {error}")
            error.add_note("TLS certificate verification failed; not retried")
            raise error

        retries += 1
        if policy.exhausted(retries):
            logger.error(f"Giving up after {policy.max_retries} retries: {error}")
            error.add_note(f"gave up after {policy.max_retries} retries")
            raise error

        delay = policy.delay(retries)
        logger.warning(
            f"Recoverable error ({type(error).__name__}: {error}), "
            f"retry {retries}/{policy.max_retries} in {delay:g}s"
        )
        reset()
        sleep(delay)


def _attempt(number: int, start: Callable[[], Any], work: Callable[[], Any]) -> Attempt:
    try:
        start()
        return Attempt(number, value=work())
    except Exception as e:
        kind = classify(e)
        if kind is FailureKind.FATAL:
            raise
        return Attempt(number, error=e, kind=kind)
