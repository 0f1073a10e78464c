"""
Server capability tracking.
"""
from typing import Iterable, List, Optional, Union

from .protocol import Response


class CapabilitySet(frozenset):
    """
    The capability tokens last advertised by the server, uppercased.

    Never updated in place: each refresh produces a new set.
    """

    def __new__(cls, tokens: Iterable[Union[str, bytes]] = ()):
        return super().__new__(cls, (_token(t) for t in tokens if t))

    def __contains__(self, token) -> bool:
        return super().__contains__(_token(token))

    def __repr__(self):
        return f"CapabilitySet({sorted(self)!r})"

    @classmethod
    def from_response(cls, response: Optional[Response]) -> Optional['CapabilitySet']:
        """
        Extract an inline ``[CAPABILITY ...]`` response code from a tagged or
        untagged response. Returns None when the response carries none.
        """
        if response is None or response.code != 'CAPABILITY' or not response.code_data:
            return None
        return cls(response.code_data.split())

    @property
    def auth_mechanisms(self) -> List[str]:
        """
        SASL mechanisms named by ``AUTH=`` tokens.
        """
        return sorted(token[5:] for token in self if token.startswith('AUTH='))

    @property
    def login_disabled(self) -> bool:
        return 'LOGINDISABLED' in self

    def supports_auth(self, mechanism: str) -> bool:
        return f"AUTH={mechanism}" in self


def _token(value) -> str:
    if isinstance(value, bytes):
        value = value.decode('ascii', errors='replace')
    return str(value).upper()
