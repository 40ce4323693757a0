"""
MockRules Response Rules Interpreter

Chooses which of a route's responses to serve for an incoming request.

Responses are scanned in order and the first one whose rules are fulfilled
is served. Rules are combined per response:
- ALL (AND): every rule must match; an empty rule list always matches
- ANY (OR): at least one rule must match; an empty rule list never matches

When no response matches, the first response is served. In random mode
rules are ignored and a response is drawn uniformly.
"""

import json
import random
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import List, Dict, Any, Optional

from ..common import MISSING, get_path
from .models import ResponseRule, RouteResponse, RuleTarget, RulesOperator
from .request import RequestSnapshot
from .targets import extract_targets


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def to_rule_string(value: Any) -> str:
    """
    Render a request value the way it appears on the wire.

    JSON literals keep their JSON spelling (`true`, `false`, `null`), integral
    floats drop their fractional part and mappings become compact JSON.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return 'null'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8', errors='replace')
    if isinstance(value, Mapping):
        return json.dumps(value, separators=(',', ':'))
    if _is_sequence(value):
        return ','.join(to_rule_string(item) for item in value)
    return str(value)


@dataclass
class ResponseChoice:
    """Response chosen for a request."""

    response: RouteResponse
    matched: bool = False
    random: bool = False
    reason: str = ""

    @property
    def is_fallback(self) -> bool:
        """True when no rule matched and the first response was served."""
        return not self.matched and not self.random

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'response_uuid': self.response.uuid,
            'label': self.response.label,
            'matched': self.matched,
            'random': self.random,
            'reason': self.reason
        }


class ResponseRulesInterpreter:
    """
    Interpreter for route response rules.

    Extracts the rule targets from the request once (body, query, route
    params), then picks the first response whose rules are fulfilled.

    Example:
        interpreter = ResponseRulesInterpreter(route.responses, snapshot)
        response = interpreter.choose_response()
    """

    def __init__(
        self,
        route_responses: List[RouteResponse],
        request: RequestSnapshot,
        random_response: bool = False
    ):
        """
        Initialize interpreter.

        Args:
            route_responses: Candidate responses, in priority order
            request: Snapshot of the incoming request
            random_response: Ignore rules and pick a random response

        Raises:
            ValueError: If route_responses is empty
        """
        if not route_responses:
            raise ValueError("At least one route response is required")

        self.route_responses = list(route_responses)
        self.request = request
        self.random_response = random_response
        self.targets = extract_targets(request)

    def choose(self) -> ResponseChoice:
        """
        Choose the response to serve, with how it was chosen.

        Raises:
            re.error: If a regex rule holds an invalid pattern
        """
        if self.random_response:
            index = random.randrange(len(self.route_responses))
            return ResponseChoice(
                response=self.route_responses[index],
                random=True,
                reason=f"Random response #{index + 1}"
            )

        for index, route_response in enumerate(self.route_responses):
            if self._rules_fulfilled(route_response):
                return ResponseChoice(
                    response=route_response,
                    matched=True,
                    reason=f"Rules fulfilled for response #{index + 1}"
                )

        return ResponseChoice(
            response=self.route_responses[0],
            reason="No rules fulfilled, serving first response"
        )

    def choose_response(self) -> RouteResponse:
        """Choose the response to serve."""
        return self.choose().response

    def _rules_fulfilled(self, route_response: RouteResponse) -> bool:
        """Combine a response's rules with its operator."""
        if route_response.rules_operator == RulesOperator.ALL:
            return all(self.is_valid_rule(rule) for rule in route_response.rules)
        return any(self.is_valid_rule(rule) for rule in route_response.rules)

    def is_valid_rule(self, rule: ResponseRule) -> bool:
        """
        Check if a rule is fulfilled by the request.

        Args:
            rule: Rule to evaluate

        Returns:
            True if the value read from the rule's target matches rule.value

        Raises:
            re.error: If rule.is_regex is set and rule.value is not a valid pattern
        """
        if not rule.modifier or not rule.target:
            return False

        value = self._resolve_value(rule)
        if value is MISSING:
            return False

        if rule.is_regex:
            regex = re.compile(rule.value)
            if _is_sequence(value):
                return any(regex.search(to_rule_string(item)) for item in value)
            return regex.search(to_rule_string(value)) is not None

        if _is_sequence(value):
            return any(
                item == rule.value or to_rule_string(item) == rule.value
                for item in value
            )

        return to_rule_string(value) == to_rule_string(rule.value)

    def _resolve_value(self, rule: ResponseRule) -> Any:
        """Read the value a rule inspects, or MISSING."""
        # Headers are read live from the request
        if rule.target == RuleTarget.HEADER:
            header_value: Optional[str] = self.request.header(rule.modifier)
            return MISSING if header_value is None else header_value

        if rule.modifier:
            return get_path(self.targets[rule.target], rule.modifier)

        return MISSING if self.request.body is None else self.request.body
