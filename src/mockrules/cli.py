"""
MockRules CLI

Command-line interface for the MockRules mock server.

Commands:
    serve       - Start mock HTTP server for an environment
    routes      - List routes, responses and rules of an environment

Examples:
    # Start mock server
    mockrules serve environment.yaml --port 3000

    # Inspect response rules
    mockrules routes environment.json
"""

import argparse
import logging
import sys

from .common import RouteMatcher
from .mock import Environment, MockServer, MockConfig

logger = logging.getLogger("mockrules.cli")


def cmd_serve(args):
    """
    Start mock HTTP server for an environment.

    Args:
        args: Parsed command-line arguments
    """
    print(f"🎭 MockRules Mock Server")

    if args.verbose:
        print(f"📋 Verbose mode enabled (chosen response logged per request)")

    config = MockConfig(
        host=args.host,
        port=args.port,
        latency=args.latency,
        admin_enabled=not args.no_admin,
        log_level=args.log_level,
        verbose_mode=args.verbose
    )

    try:
        server = MockServer(args.environment_file, config=config)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Failed to load environment: {e}")
        sys.exit(1)

    try:
        server.start()
    except KeyboardInterrupt:
        print("\n👋 Mock server stopped")


def cmd_routes(args):
    """
    List routes of an environment with their responses and rules.

    Args:
        args: Parsed command-line arguments
    """
    try:
        environment = Environment.from_file(args.environment_file)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Failed to load environment: {e}")
        sys.exit(1)

    print(f"📂 {environment.name} ({len(environment.routes)} routes)")

    for route in environment.routes:
        path = RouteMatcher.build_path(route.endpoint, environment.endpoint_prefix)
        flags = []
        if not route.enabled:
            flags.append('disabled')
        if route.random_response:
            flags.append('random')
        flag_text = f"  [{', '.join(flags)}]" if flags else ""
        print(f"\n{route.method.upper():7} {path}{flag_text}")

        for index, response in enumerate(route.responses):
            label = response.label or response.uuid
            default_marker = " (default)" if index == 0 else ""
            print(f"   {index + 1}. {response.status_code} {label}{default_marker}")

            if not response.rules:
                continue

            joiner = f" {response.rules_operator.value} "
            conditions = []
            for rule in response.rules:
                target = rule.target.value if rule.target else '?'
                operator = '~=' if rule.is_regex else '=='
                conditions.append(f"{target}.{rule.modifier or ''} {operator} {rule.value!r}")
            print(f"      when {joiner.join(conditions)}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="MockRules - rule-driven HTTP mock server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start mock server on the environment's port
  %(prog)s serve environment.yaml

  # Override port and add latency
  %(prog)s serve environment.json --port 8080 --latency 200

  # List routes and their response rules
  %(prog)s routes environment.yaml
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start mock HTTP server')
    serve_parser.add_argument('environment_file', help='Environment file (JSON or YAML)')
    serve_parser.add_argument('--host', help="Host to bind (default: environment's hostname)")
    serve_parser.add_argument('-p', '--port', type=int, help="Port to bind (default: environment's port)")
    serve_parser.add_argument('--latency', type=int, default=0, help='Extra latency in ms for every response (default: 0)')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')
    serve_parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'],
                              help='Log level (default: info)')
    serve_parser.add_argument('--verbose', action='store_true', help='Show the chosen response for each request')

    # --- ROUTES command ---
    routes_parser = subparsers.add_parser('routes', help='List routes and response rules')
    routes_parser.add_argument('environment_file', help='Environment file (JSON or YAML)')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, getattr(args, 'log_level', 'info').upper()),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    logger.debug(f"Running command: {args.command}")

    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'routes':
        cmd_routes(args)


if __name__ == '__main__':
    main()
