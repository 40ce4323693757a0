"""
MockRules Mock Server Module

Rule-driven mock HTTP server functionality.

This module provides:
- FastAPI-based mock server
- Environment, route and response rule models
- Request target extraction (JSON and form bodies, query, route params)
- Response rules interpreter
"""

from .server import MockServer, MockConfig, MockMetrics, create_mock_server
from .interpreter import ResponseRulesInterpreter, ResponseChoice, to_rule_string
from .models import (
    Environment,
    Route,
    RouteResponse,
    ResponseRule,
    RuleTarget,
    RulesOperator
)
from .request import RequestSnapshot
from .targets import ExtractedTargets, decode_body, extract_targets, parse_query_string

__all__ = [
    # Server
    'MockServer',
    'MockConfig',
    'MockMetrics',
    'create_mock_server',

    # Interpreter
    'ResponseRulesInterpreter',
    'ResponseChoice',
    'to_rule_string',

    # Models
    'Environment',
    'Route',
    'RouteResponse',
    'ResponseRule',
    'RuleTarget',
    'RulesOperator',

    # Request data
    'RequestSnapshot',
    'ExtractedTargets',
    'decode_body',
    'extract_targets',
    'parse_query_string',
]
