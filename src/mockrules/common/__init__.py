"""
MockRules Common Utilities

Shared utilities and helpers used across MockRules modules.
"""

from .utils import MISSING, EnvironmentLoader, get_path, parse_path, safe_json_parse
from .url_utils import RouteMatcher

__all__ = [
    'MISSING',
    'EnvironmentLoader',
    'get_path',
    'parse_path',
    'safe_json_parse',
    'RouteMatcher'
]
