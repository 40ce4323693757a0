"""
MockRules Common Utilities

Shared helpers for path lookups, JSON parsing and environment file loading.
"""

import json
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import List, Dict, Any, Union

import yaml


class _Missing:
    """Marker for a path that does not resolve to a value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return 'MISSING'


MISSING = _Missing()

# Matches `name`, `[0]`, `['key']` and `["key"]` path segments
_PATH_SEGMENT = re.compile(r"""\[(?:'([^']*)'|"([^"]*)"|([^\]]*))\]|([^.\[\]]+)""")


def safe_json_parse(json_string: Union[str, bytes, None], default: Any = None) -> Any:
    """
    Safely parse a JSON document.

    Args:
        json_string: JSON text or bytes
        default: Value returned when parsing fails

    Returns:
        Parsed JSON object, or default if parsing fails

    Example:
        body = safe_json_parse(request_body, default={})
    """
    if json_string is None:
        return default

    try:
        return json.loads(json_string)
    except (ValueError, TypeError, RecursionError):
        return default


def parse_path(path: str) -> List[str]:
    """
    Split a path expression into its segments.

    Both dot and bracket notation are accepted, so `users[0].name`,
    `users.0.name` and `users['0'].name` all yield `['users', '0', 'name']`.
    """
    segments = []
    for match in _PATH_SEGMENT.finditer(path):
        single, double, bare, dotted = match.groups()
        if bare is not None:
            segments.append(bare.strip())
        else:
            segments.append(next(p for p in (single, double, dotted) if p is not None))
    return segments


def get_path(data: Any, path: str) -> Any:
    """
    Resolve a path expression against nested mappings and sequences.

    Args:
        data: Decoded structure (dicts, lists, scalars)
        path: Dot/bracket path such as `user.addresses[0].city`

    Returns:
        The value at the path, or MISSING when any segment is absent.
        An empty path returns the data itself.
    """
    current = data
    for segment in parse_path(path):
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not segment.isdecimal():
                return MISSING
            index = int(segment)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING

    return current


class EnvironmentLoader:
    """
    Loader for mock environment files.

    Handles the document shapes used for environments:
    - Format 1: {"name": ..., "routes": [...]}       (bare environment)
    - Format 2: {"environment": {...}}              (wrapped export)

    JSON is read from `.json` files, YAML from `.yaml`/`.yml` files.

    Example:
        loader = EnvironmentLoader("environment.yaml")
        data = loader.load()

        for route in data['routes']:
            print(route['endpoint'])
    """

    YAML_SUFFIXES = ('.yaml', '.yml')

    def __init__(self, file_path: Union[str, Path]):
        """
        Initialize environment loader.

        Args:
            file_path: Path to the environment file
        """
        self.file_path = Path(file_path)

    def load(self) -> Dict[str, Any]:
        """
        Load the environment document.

        Returns:
            Environment dictionary

        Raises:
            FileNotFoundError: If the environment file doesn't exist
            ValueError: If the document can't be parsed or isn't an environment
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"Environment file not found: {self.file_path}")

        with open(self.file_path, 'r', encoding='utf-8') as f:
            try:
                if self.file_path.suffix.lower() in self.YAML_SUFFIXES:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ValueError(f"Could not parse environment file {self.file_path}: {e}") from e

        if isinstance(data, dict) and isinstance(data.get('environment'), dict):
            data = data['environment']

        if not isinstance(data, dict):
            raise ValueError(
                f"Unexpected format in {self.file_path}. "
                f"Expected an environment object, got {type(data).__name__}"
            )

        if not isinstance(data.get('routes', []), list):
            raise ValueError(
                f"Unexpected format in {self.file_path}. "
                f"'routes' must be a list, got {type(data['routes']).__name__}"
            )

        return data

    @staticmethod
    def load_from_file(file_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Convenience method to load an environment in one call.

        Example:
            data = EnvironmentLoader.load_from_file("environment.json")
        """
        return EnvironmentLoader(file_path).load()
