"""
MockRules Rule Targets

Decodes the parts of a request that rules can inspect.

Bodies are decoded according to their Content-Type:
- application/x-www-form-urlencoded: nested form data (bracket notation)
- application/json: JSON document
- anything else: empty object

Decoding never raises; a body that fails to decode becomes `{}`.
"""

import re
from dataclasses import dataclass, field
from typing import List, Dict, Any, Union
from urllib.parse import parse_qsl

from ..common import safe_json_parse
from .models import RuleTarget
from .request import RequestSnapshot

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'
JSON_CONTENT_TYPE = 'application/json'

# Limits applied while decoding bracket notation
FORM_DEPTH_LIMIT = 5
FORM_ARRAY_LIMIT = 20
FORM_PARAMETER_LIMIT = 1000

_BRACKET_SEGMENT = re.compile(r'\[[^\[\]]*\]')


@dataclass(frozen=True)
class ExtractedTargets:
    """Decoded body, query and route parameters of one request."""

    body: Any = field(default_factory=dict)
    query: Any = field(default_factory=dict)
    params: Any = field(default_factory=dict)

    def __getitem__(self, target: RuleTarget) -> Any:
        if target is RuleTarget.HEADER:
            raise KeyError('Headers are read from the request, not extracted')
        return getattr(self, target.value)


def _split_key(key: str) -> List[str]:
    """
    Split a form key into its parent and bracket segments.

    `user[address][city]` -> ['user', '[address]', '[city]']. Segments past
    FORM_DEPTH_LIMIT are kept together as one literal segment.
    """
    match = _BRACKET_SEGMENT.search(key)
    parent = key[:match.start()] if match else key
    segments = [parent] if parent else []

    depth = 0
    while match and depth < FORM_DEPTH_LIMIT:
        segments.append(match.group(0))
        depth += 1
        match = _BRACKET_SEGMENT.search(key, match.end())

    if match:
        segments.append('[' + key[match.start():] + ']')

    return segments


class _IndexedList(dict):
    """List under construction, keyed by the indices given in the data."""

    def next_index(self) -> int:
        return max(self) + 1 if self else 0


def _build_value(segments: List[str], value: Any) -> Any:
    """Wrap a value in the containers described by its key segments."""
    leaf = value
    for segment in reversed(segments):
        if segment == '[]':
            leaf = _IndexedList({0: leaf})
            continue

        is_bracketed = segment.startswith('[') and segment.endswith(']')
        clean = segment[1:-1] if is_bracketed else segment
        if is_bracketed and clean.isdecimal() and str(int(clean)) == clean and int(clean) <= FORM_ARRAY_LIMIT:
            leaf = _IndexedList({int(clean): leaf})
        else:
            leaf = {clean: leaf}
    return leaf


def _merge(target: Any, source: Any) -> Any:
    """Merge a decoded pair into the values collected so far."""
    if not isinstance(source, dict):
        if isinstance(target, _IndexedList):
            target[target.next_index()] = source
            return target
        if isinstance(target, dict):
            target[source] = True
            return target
        return _IndexedList({0: target, 1: source})

    if not isinstance(target, dict):
        if isinstance(source, _IndexedList):
            merged = _IndexedList({0: target})
            merged.update((index + 1, item) for index, item in source.items())
            return merged
        return _IndexedList({0: target, 1: source})

    if isinstance(target, _IndexedList) and isinstance(source, _IndexedList):
        for index, item in source.items():
            if index not in target:
                target[index] = item
            elif isinstance(target[index], dict) and isinstance(item, dict):
                target[index] = _merge(target[index], item)
            else:
                target[target.next_index()] = item
        return target

    if isinstance(target, _IndexedList):
        target = {str(index): item for index, item in sorted(target.items())}
    if isinstance(source, _IndexedList):
        source = {str(index): item for index, item in sorted(source.items())}

    for key, value in source.items():
        target[key] = _merge(target[key], value) if key in target else value
    return target


def _compact(value: Any) -> Any:
    """Turn indexed lists into plain lists, in index order."""
    if isinstance(value, _IndexedList):
        return [_compact(item) for _, item in sorted(value.items())]
    if isinstance(value, dict):
        return {key: _compact(item) for key, item in value.items()}
    return value


def parse_query_string(raw: Union[str, bytes, None]) -> Dict[str, Any]:
    """
    Decode URL-encoded form data into a nested structure.

    Args:
        raw: Encoded data, e.g. `user[name]=Ann&tags[]=a&tags[]=b`

    Returns:
        Decoded dictionary, e.g. {'user': {'name': 'Ann'}, 'tags': ['a', 'b']}

    Raises:
        UnicodeDecodeError: If raw bytes are not valid UTF-8
    """
    if not raw:
        return {}
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8')

    result: Dict[str, Any] = {}
    pairs = parse_qsl(raw, keep_blank_values=True)[:FORM_PARAMETER_LIMIT]
    for key, value in pairs:
        segments = _split_key(key)
        if not segments:
            continue
        result = _merge(result, _build_value(segments, value))

    return _compact(result)


def decode_body(body: Union[str, bytes, None], content_type: str) -> Any:
    """
    Decode a request body according to its Content-Type.

    Args:
        body: Raw request body
        content_type: Content-Type header value (may be empty)

    Returns:
        Decoded body, or {} for unknown content types and malformed bodies
    """
    if not content_type or body is None:
        return {}

    if FORM_CONTENT_TYPE in content_type:
        try:
            return parse_query_string(body)
        except (ValueError, TypeError):
            return {}

    if JSON_CONTENT_TYPE in content_type:
        return safe_json_parse(body, default={})

    return {}


def extract_targets(request: RequestSnapshot) -> ExtractedTargets:
    """
    Extract the rule targets of a request.

    The body is decoded once; query and route parameters are used as-is.
    Headers are not extracted, rules read them from the request directly.
    """
    content_type = request.header('Content-Type') or ''

    return ExtractedTargets(
        body=decode_body(request.body, content_type.lower()),
        query=request.query,
        params=request.params
    )
