"""
Session configuration.
"""
import ssl
from dataclasses import dataclass
from typing import Optional


@dataclass
class SessionOptions:
    """
    Tunables for an IMAP session.

    Attributes:
        max_retries: How many times a recoverable error is retried
        read_only: Open mailboxes with EXAMINE instead of SELECT by default
        ssl_certs: Path to a trusted CA certificate bundle
        ssl_verify: Verify server certificates against ``ssl_certs``
        timeout: Socket timeout in seconds, None to block indefinitely
        retry_delay: Base delay of the linear backoff between retries
    """
    max_retries: int = 3
    read_only: bool = False
    ssl_certs: Optional[str] = None
    ssl_verify: bool = False
    timeout: Optional[float] = None
    retry_delay: float = 1.0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionOptions':
        """
        Create a SessionOptions instance from a dictionary.

        Args:
            data: Dictionary containing session configuration

        Returns:
            SessionOptions: New SessionOptions instance
        """
        return cls(
            max_retries=int(data.get('max_retries', 3)),
            read_only=bool(data.get('read_only', False)),
            ssl_certs=data.get('ssl_certs'),
            ssl_verify=bool(data.get('ssl_verify', False)),
            timeout=data.get('timeout'),
            retry_delay=float(data.get('retry_delay', 1.0))
        )

    def ssl_context(self) -> ssl.SSLContext:
        """
        Build the SSL context used for ``imaps`` connections.

        Without ``ssl_verify`` the server certificate is accepted as is.
        """
        if self.ssl_verify:
            return ssl.create_default_context(cafile=self.ssl_certs)

        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context
