"""
MockRules Request Snapshot

Read-only view of an incoming request, as seen by response rules.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Any, Mapping, Optional, Union


@dataclass(frozen=True)
class RequestSnapshot:
    """
    Immutable request data handed to the rules interpreter.

    Attributes:
        body: Raw body as delivered (str or bytes)
        headers: Request headers; lookups through header() ignore case
        query: Decoded query string, nested structures allowed
        params: Route parameters extracted from the endpoint pattern
    """

    body: Union[str, bytes, None] = b''
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        lowered: Dict[str, str] = {str(k).lower(): v for k, v in self.headers.items()}
        object.__setattr__(self, '_headers_lower', MappingProxyType(lowered))

    def header(self, name: str) -> Optional[str]:
        """
        Look up a header by name, ignoring case.

        Returns:
            Header value, or None when the header is absent
        """
        return self._headers_lower.get(name.lower())
