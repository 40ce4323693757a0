"""
MockRules Environment Models

Dataclasses describing a mock environment: routes, their candidate
responses and the rules that gate each response.

Documents may use the camelCase keys of exported mock environments
(`statusCode`, `rulesOperator`, `isRegex`, ...) or snake_case keys.
"""

import json
import uuid as uuid_lib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Dict, Any, Optional, Union

from ..common import EnvironmentLoader


def _new_uuid() -> str:
    return str(uuid_lib.uuid4())


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in data."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _headers_from(value: Any) -> Dict[str, str]:
    """Accept headers as a mapping or as a list of {key, value} entries."""
    if not value:
        return {}
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items()}
    headers = {}
    for entry in value:
        key = entry.get('key')
        if key:
            headers[str(key)] = str(entry.get('value', ''))
    return headers


class RuleTarget(str, Enum):
    """Part of the request a rule inspects."""

    BODY = 'body'
    QUERY = 'query'
    PARAMS = 'params'
    HEADER = 'header'


class RulesOperator(str, Enum):
    """How the rules of a response are combined."""

    ALL = 'AND'
    ANY = 'OR'

    @classmethod
    def parse(cls, value: Union[str, 'RulesOperator', None]) -> 'RulesOperator':
        """Parse `AND`/`OR` as well as `ALL`/`ANY`, defaulting to ANY."""
        if value is None or value == '':
            return cls.ANY
        if isinstance(value, cls):
            return value
        text = str(value).upper()
        if text in cls.__members__:
            return cls[text]
        return cls(text)


@dataclass
class ResponseRule:
    """A single condition comparing a request value with a configured value."""

    target: Optional[RuleTarget] = None
    modifier: Optional[str] = None
    value: str = ''
    is_regex: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ResponseRule':
        """Create ResponseRule from dictionary."""
        target = data.get('target')
        value = data.get('value')
        return cls(
            target=RuleTarget(str(target).lower()) if target else None,
            modifier=data.get('modifier') or None,
            value='' if value is None else str(value),
            is_regex=bool(_pick(data, 'isRegex', 'is_regex', default=False))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'target': self.target.value if self.target else None,
            'modifier': self.modifier,
            'value': self.value,
            'isRegex': self.is_regex
        }


@dataclass
class RouteResponse:
    """One candidate response of a route, gated by its rules."""

    uuid: str = field(default_factory=_new_uuid)
    label: str = ''
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ''
    latency: int = 0
    rules: List[ResponseRule] = field(default_factory=list)
    rules_operator: RulesOperator = RulesOperator.ANY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RouteResponse':
        """Create RouteResponse from dictionary."""
        body = data.get('body', '')
        if body is None:
            body = ''
        elif not isinstance(body, str):
            body = json.dumps(body)

        return cls(
            uuid=data.get('uuid') or _new_uuid(),
            label=data.get('label', ''),
            status_code=int(_pick(data, 'statusCode', 'status_code', 'status', default=200)),
            headers=_headers_from(data.get('headers')),
            body=body,
            latency=int(data.get('latency', 0) or 0),
            rules=[ResponseRule.from_dict(rule) for rule in data.get('rules') or []],
            rules_operator=RulesOperator.parse(_pick(data, 'rulesOperator', 'rules_operator'))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'uuid': self.uuid,
            'label': self.label,
            'statusCode': self.status_code,
            'headers': [{'key': k, 'value': v} for k, v in self.headers.items()],
            'body': self.body,
            'latency': self.latency,
            'rules': [rule.to_dict() for rule in self.rules],
            'rulesOperator': self.rules_operator.value
        }


@dataclass
class Route:
    """An endpoint and its ordered candidate responses."""

    uuid: str = field(default_factory=_new_uuid)
    documentation: str = ''
    method: str = 'get'
    endpoint: str = ''
    enabled: bool = True
    random_response: bool = False
    responses: List[RouteResponse] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Route':
        """Create Route from dictionary."""
        return cls(
            uuid=data.get('uuid') or _new_uuid(),
            documentation=data.get('documentation', ''),
            method=str(data.get('method', 'get')).lower(),
            endpoint=data.get('endpoint', ''),
            enabled=bool(data.get('enabled', True)),
            random_response=bool(_pick(data, 'randomResponse', 'random_response', default=False)),
            responses=[RouteResponse.from_dict(r) for r in data.get('responses') or []]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'uuid': self.uuid,
            'documentation': self.documentation,
            'method': self.method,
            'endpoint': self.endpoint,
            'enabled': self.enabled,
            'randomResponse': self.random_response,
            'responses': [r.to_dict() for r in self.responses]
        }


@dataclass
class Environment:
    """A set of routes served together on one port."""

    uuid: str = field(default_factory=_new_uuid)
    name: str = 'New environment'
    port: int = 3000
    hostname: str = '127.0.0.1'
    endpoint_prefix: str = ''
    latency: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    routes: List[Route] = field(default_factory=list)

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'Environment':
        """Load environment from a JSON or YAML file."""
        return cls.from_dict(EnvironmentLoader(file_path).load())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Environment':
        """Create Environment from dictionary."""
        return cls(
            uuid=data.get('uuid') or _new_uuid(),
            name=data.get('name', 'New environment'),
            port=int(data.get('port', 3000)),
            hostname=data.get('hostname') or '127.0.0.1',
            endpoint_prefix=_pick(data, 'endpointPrefix', 'endpoint_prefix', default='') or '',
            latency=int(data.get('latency', 0) or 0),
            headers=_headers_from(data.get('headers')),
            routes=[Route.from_dict(route) for route in data.get('routes') or []]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'uuid': self.uuid,
            'name': self.name,
            'port': self.port,
            'hostname': self.hostname,
            'endpointPrefix': self.endpoint_prefix,
            'latency': self.latency,
            'headers': [{'key': k, 'value': v} for k, v in self.headers.items()],
            'routes': [route.to_dict() for route in self.routes]
        }
