"""
MockRules URL Utilities

Route path building and Express-style endpoint matching.
"""

import re
from typing import Dict, List, Optional


class RouteMatcher:
    """
    Matches request paths against an endpoint pattern.

    Endpoint patterns follow the usual mock-server conventions:
    - `:name` captures one path segment as route parameter `name`
    - `*` matches any remainder, including slashes
    - a trailing slash is optional and matching ignores case
    - a parameter name used twice keeps the value of its last occurrence

    Example:
        matcher = RouteMatcher('users/:id', prefix='api')
        matcher.match('/api/users/42')   # {'id': '42'}
        matcher.match('/api/orders/42')  # None
    """

    TOKEN_PATTERN = re.compile(r':([A-Za-z_][A-Za-z0-9_]*)|(\*)')

    def __init__(self, endpoint: str, prefix: str = ''):
        """
        Initialize route matcher.

        Args:
            endpoint: Endpoint pattern, with or without leading slash
            prefix: Optional endpoint prefix shared by an environment
        """
        self.path = self.build_path(endpoint, prefix)
        self.param_names: List[str] = []
        self.regex = self._compile(self.path)

    @staticmethod
    def build_path(endpoint: str, prefix: str = '') -> str:
        """
        Join prefix and endpoint into an absolute path.

        Args:
            endpoint: Endpoint pattern
            prefix: Endpoint prefix

        Returns:
            Path starting with a single slash, e.g. `/api/users/:id`
        """
        parts = [p.strip('/') for p in (prefix, endpoint) if p and p.strip('/')]
        return '/' + '/'.join(parts)

    def _compile(self, path: str) -> 're.Pattern[str]':
        """Translate an endpoint pattern into a regular expression."""
        pattern = ''
        position = 0

        for token in self.TOKEN_PATTERN.finditer(path):
            pattern += re.escape(path[position:token.start()])
            name, wildcard = token.groups()
            if wildcard:
                pattern += '.*'
            else:
                self.param_names.append(name)
                pattern += '([^/]+?)'
            position = token.end()

        pattern += re.escape(path[position:])
        if pattern.endswith('/'):
            pattern = pattern[:-1]

        return re.compile(f'^{pattern}/?$', re.IGNORECASE)

    def match(self, request_path: str) -> Optional[Dict[str, str]]:
        """
        Match a request path.

        Args:
            request_path: Decoded request path, e.g. `/users/42`

        Returns:
            Route parameters when the path matches, otherwise None
        """
        result = self.regex.match(request_path)
        if result is None:
            return None
        params = {}
        for name, value in zip(self.param_names, result.groups()):
            params[name] = value
        return params
