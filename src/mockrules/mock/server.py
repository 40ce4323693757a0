"""
MockRules Mock Server

FastAPI-based HTTP mock server that serves responses from a mock environment.

Features:
- Express-style endpoint patterns with route parameters
- Response selection through response rules (body, query, params, header)
- Random response mode per route
- Environment, response and global latency
- Admin API for metrics, runtime configuration and live debugging
"""

from __future__ import annotations  # Enable forward references for type hints

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple, Union

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from ..common import RouteMatcher
from .interpreter import ResponseChoice, ResponseRulesInterpreter
from .models import Environment, Route, RouteResponse
from .request import RequestSnapshot
from .targets import parse_query_string

HTTP_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


@dataclass
class MockConfig:
    """Configuration for mock server behavior."""

    # Response behavior
    latency: int = 0  # Extra delay in milliseconds, added to environment and response latency
    default_content_type: str = "application/json"

    # Fallback behavior
    fallback_status: int = 404
    fallback_body: str = '{"error": "No route matches this request"}'

    # Server options (None means use the environment's values)
    host: Optional[str] = None
    port: Optional[int] = None
    log_level: str = "info"
    verbose_mode: bool = False  # Show chosen response for each request in console

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"


@dataclass
class MockMetrics:
    """Track mock server metrics."""

    total_requests: int = 0
    matched_requests: int = 0
    unmatched_requests: int = 0
    rule_matches: int = 0
    fallback_responses: int = 0
    random_responses: int = 0
    rule_errors: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())

    def record_choice(self, choice: ResponseChoice):
        """Count how a response was chosen."""
        if choice.random:
            self.random_responses += 1
        elif choice.matched:
            self.rule_matches += 1
        else:
            self.fallback_responses += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'total_requests': self.total_requests,
            'matched_requests': self.matched_requests,
            'unmatched_requests': self.unmatched_requests,
            'rule_matches': self.rule_matches,
            'fallback_responses': self.fallback_responses,
            'random_responses': self.random_responses,
            'rule_errors': self.rule_errors,
            'match_rate': round((self.matched_requests / self.total_requests * 100) if self.total_requests > 0 else 0, 2),
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


class MockServer:
    """
    FastAPI-based mock server for a mock environment.

    Each route holds an ordered list of responses; the response served for a
    request is chosen by the route's response rules.

    Example:
        # Load environment and start server
        server = MockServer('environment.yaml')
        server.start(port=3000)

        # With custom config
        config = MockConfig(latency=100, verbose_mode=True)
        server = MockServer('environment.json', config=config)
        server.start()
    """

    def __init__(
        self,
        environment: Union[str, Path, Environment],
        config: Optional[MockConfig] = None
    ):
        """
        Initialize mock server.

        Args:
            environment: Environment, or path to a JSON/YAML environment file
            config: Optional MockConfig for server behavior
        """
        self.config = config or MockConfig()
        self.metrics = MockMetrics()
        self.live_requests: List[Dict[str, Any]] = []  # Store recent requests for live dashboard
        self.live_requests_limit = 100  # Keep last 100 requests

        # Setup logging first (before loading the environment)
        self.logger = logging.getLogger("mockrules.mock")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.environment = self._load_environment(environment)
        self.route_matchers = self._build_route_matchers()

        # Setup FastAPI app
        self.app = self._create_app()

    def _load_environment(self, environment: Union[str, Path, Environment]) -> Environment:
        """Load the environment from a file unless one was given."""
        if isinstance(environment, Environment):
            return environment

        loaded = Environment.from_file(environment)
        self.logger.info(f"Loaded {len(loaded.routes)} routes from {environment}")
        return loaded

    def _build_route_matchers(self) -> List[Tuple[Route, RouteMatcher]]:
        """Compile endpoint patterns for every servable route, in order."""
        matchers = []
        for route in self.environment.routes:
            if not route.responses:
                self.logger.warning(f"Route {route.method.upper()} /{route.endpoint} has no responses, skipping")
                continue
            matchers.append((route, RouteMatcher(route.endpoint, self.environment.endpoint_prefix)))
        return matchers

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="MockRules Mock Server",
            description=f"Mock HTTP server for environment '{self.environment.name}'",
            version="1.0.0"
        )

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(f"{self.config.admin_prefix}/metrics")
            async def get_metrics():
                """Get server metrics."""
                return JSONResponse(content=self.metrics.to_dict())

            @app.post(f"{self.config.admin_prefix}/reset")
            async def reset_metrics():
                """Reset metrics."""
                self.metrics = MockMetrics()
                return JSONResponse(content={'status': 'reset'})

            @app.get(f"{self.config.admin_prefix}/live")
            async def get_live_requests():
                """Get recent requests with the response chosen for each."""
                return JSONResponse(content={
                    'total': len(self.live_requests),
                    'limit': self.live_requests_limit,
                    'requests': list(reversed(self.live_requests))  # Most recent first
                })

            @app.get(f"{self.config.admin_prefix}/config")
            async def get_config():
                """Get current configuration."""
                return JSONResponse(content={
                    'environment': self.environment.name,
                    'endpoint_prefix': self.environment.endpoint_prefix,
                    'environment_latency': self.environment.latency,
                    'latency': self.config.latency,
                    'verbose_mode': self.config.verbose_mode,
                    'total_routes': len(self.environment.routes)
                })

            @app.post(f"{self.config.admin_prefix}/config")
            async def update_config(request: Request):
                """Update configuration at runtime."""
                try:
                    body = await request.json()
                except json.JSONDecodeError:
                    return JSONResponse(content={'error': 'Body must be a JSON object'}, status_code=400)

                if not isinstance(body, dict):
                    return JSONResponse(content={'error': 'Body must be a JSON object'}, status_code=400)

                if 'latency' in body:
                    try:
                        self.config.latency = int(body['latency'])
                    except (TypeError, ValueError):
                        return JSONResponse(content={'error': 'latency must be an integer'}, status_code=400)
                if 'verbose_mode' in body:
                    self.config.verbose_mode = bool(body['verbose_mode'])

                return JSONResponse(content={'status': 'updated'})

            @app.get(f"{self.config.admin_prefix}/routes")
            async def list_routes():
                """List all routes with their responses and rules."""
                routes_summary = [
                    {
                        'uuid': route.uuid,
                        'method': route.method.upper(),
                        'path': RouteMatcher.build_path(route.endpoint, self.environment.endpoint_prefix),
                        'enabled': route.enabled,
                        'random_response': route.random_response,
                        'responses': [
                            {
                                'uuid': r.uuid,
                                'label': r.label,
                                'status': r.status_code,
                                'rules_operator': r.rules_operator.value,
                                'rules': [rule.to_dict() for rule in r.rules]
                            }
                            for r in route.responses
                        ]
                    }
                    for route in self.environment.routes
                ]
                return JSONResponse(content={
                    'total': len(routes_summary),
                    'routes': routes_summary
                })

        # Main catch-all route for mocking
        @app.api_route("/{path:path}", methods=HTTP_METHODS)
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve mock responses."""
            return await self._handle_request(request, path)

        return app

    def find_route(self, method: str, path: str) -> Tuple[Optional[Route], Dict[str, str]]:
        """
        Find the first enabled route matching a request.

        Args:
            method: HTTP method
            path: Decoded request path

        Returns:
            Tuple of (route, route parameters); route is None when nothing matches
        """
        method_lower = method.lower()
        for route, matcher in self.route_matchers:
            if not route.enabled or route.method != method_lower:
                continue
            params = matcher.match(path)
            if params is not None:
                return route, params
        return None, {}

    async def _handle_request(self, request: Request, path: str) -> Response:
        """
        Handle incoming request and serve mock response.

        Args:
            request: FastAPI Request object
            path: Request path

        Returns:
            FastAPI Response for the chosen route response
        """
        start_time = time.time()
        self.metrics.total_requests += 1

        method = request.method
        request_path = '/' + path

        self.logger.debug(f"Incoming: {method} {request_path}")

        route, params = self.find_route(method, request_path)
        if route is None:
            self.metrics.unmatched_requests += 1
            self.logger.warning(f"No route found for {method} {request_path}")
            self._track_live(method, request_path, start_time, self.config.fallback_status)
            return Response(
                content=self.config.fallback_body,
                status_code=self.config.fallback_status,
                media_type="application/json",
                headers={'X-MockRules-Matched': 'false'}
            )

        self.metrics.matched_requests += 1

        snapshot = RequestSnapshot(
            body=await request.body(),
            headers={key: ', '.join(request.headers.getlist(key)) for key in request.headers.keys()},
            query=parse_query_string(request.url.query),
            params=params
        )

        try:
            choice = ResponseRulesInterpreter(route.responses, snapshot, route.random_response).choose()
        except re.error as e:
            self.metrics.rule_errors += 1
            self.logger.error(f"Invalid regex rule on {route.method.upper()} /{route.endpoint}: {e}")
            self._track_live(method, request_path, start_time, 500, route=route)
            return JSONResponse(
                content={
                    'error': 'Invalid rule configuration',
                    'route': route.uuid,
                    'detail': str(e)
                },
                status_code=500
            )

        self.metrics.record_choice(choice)
        self.logger.debug(f"Route {route.uuid}: {choice.reason}")

        if self.config.verbose_mode:
            timestamp = datetime.now().strftime("%H:%M:%S")
            label = choice.response.label or choice.response.uuid
            print(f"[{timestamp}] {method} {request_path} -> {label} ({choice.reason})")

        await self._apply_delay(choice.response)

        response = self._create_response(route, choice)
        self._track_live(method, request_path, start_time, response.status_code, route=route, choice=choice)
        return response

    def _create_response(self, route: Route, choice: ResponseChoice) -> Response:
        """
        Create FastAPI Response from the chosen route response.

        Environment headers are applied first and overridden by the
        response's own headers.
        """
        route_response: RouteResponse = choice.response

        # Filter headers that FastAPI shouldn't set manually
        headers_to_skip = {'content-length', 'transfer-encoding', 'connection'}
        merged_headers = {**self.environment.headers, **route_response.headers}
        filtered_headers = {
            k: v for k, v in merged_headers.items()
            if k.lower() not in headers_to_skip
        }

        has_content_type = any(k.lower() == 'content-type' for k in filtered_headers)

        # Add MockRules debug headers for developer visibility
        filtered_headers['X-MockRules-Route'] = route.uuid
        filtered_headers['X-MockRules-Response'] = route_response.uuid
        filtered_headers['X-MockRules-Fallback'] = 'true' if choice.is_fallback else 'false'

        return Response(
            content=route_response.body,
            status_code=route_response.status_code,
            headers=filtered_headers,
            media_type=None if has_content_type else self.config.default_content_type
        )

    async def _apply_delay(self, route_response: RouteResponse):
        """Apply environment, response and configured latency."""
        delay_ms = self.environment.latency + route_response.latency + self.config.latency
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

    def _track_live(
        self,
        method: str,
        path: str,
        start_time: float,
        status: int,
        route: Optional[Route] = None,
        choice: Optional[ResponseChoice] = None
    ):
        """Track request for live dashboard (FIFO with limit)."""
        if len(self.live_requests) >= self.live_requests_limit:
            self.live_requests.pop(0)

        live_entry = {
            'timestamp': datetime.now().isoformat(),
            'method': method,
            'path': path,
            'route': route.uuid if route else None,
            'response_status': status,
            'response_time_ms': round((time.time() - start_time) * 1000, 2)
        }

        if choice:
            live_entry['choice'] = choice.to_dict()

        self.live_requests.append(live_entry)

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = True
    ):
        """
        Start the mock server.

        Args:
            host: Host to bind to (overrides config and environment)
            port: Port to bind to (overrides config and environment)
            access_log: Enable access logging
        """
        actual_host = host or self.config.host or self.environment.hostname
        actual_port = port or self.config.port or self.environment.port

        print(f"🚀 MockRules Mock Server starting...")
        print(f"   Environment: {self.environment.name}")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Routes loaded: {len(self.environment.routes)}")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/metrics")

        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mock_server(
    environment_file: str,
    host: Optional[str] = None,
    port: Optional[int] = None,
    latency: int = 0,
    admin_enabled: bool = True,
    log_level: str = "info",
    verbose_mode: bool = False
) -> MockServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        environment_file: Path to JSON/YAML environment file
        host: Host to bind to (defaults to the environment's hostname)
        port: Port to bind to (defaults to the environment's port)
        latency: Extra latency in milliseconds for every response
        admin_enabled: Enable the admin API
        log_level: Log level (debug, info, warning, error)
        verbose_mode: Print the chosen response for each request

    Returns:
        Configured MockServer instance

    Example:
        server = create_mock_server('environment.yaml', port=3000, latency=50)
        server.start()
    """
    config = MockConfig(
        host=host,
        port=port,
        latency=latency,
        admin_enabled=admin_enabled,
        log_level=log_level,
        verbose_mode=verbose_mode
    )

    return MockServer(environment_file, config=config)
