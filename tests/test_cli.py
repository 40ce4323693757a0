"""
Tests for the MockRules command-line interface.
"""

import json
from unittest.mock import patch

import pytest

from mockrules import cli


@pytest.fixture
def environment_file(tmp_path):
    """Small environment written as YAML."""
    path = tmp_path / 'environment.yaml'
    path.write_text(
        "name: Demo\n"
        "port: 4000\n"
        "routes:\n"
        "  - method: get\n"
        "    endpoint: users/:id\n"
        "    responses:\n"
        "      - label: Found\n"
        "        statusCode: 200\n"
        "      - label: Admin\n"
        "        statusCode: 200\n"
        "        rulesOperator: AND\n"
        "        rules:\n"
        "          - target: header\n"
        "            modifier: X-Role\n"
        "            value: admin\n"
        "          - target: params\n"
        "            modifier: id\n"
        "            value: '^1'\n"
        "            isRegex: true\n"
        "  - method: post\n"
        "    endpoint: users\n"
        "    randomResponse: true\n"
        "    responses:\n"
        "      - statusCode: 201\n"
    )
    return str(path)


def run_cli(*argv):
    with patch('sys.argv', ['mockrules', *argv]):
        cli.main()


class TestRoutesCommand:
    """Test `mockrules routes`."""

    def test_lists_routes_and_rules(self, environment_file, capsys):
        run_cli('routes', environment_file)

        output = capsys.readouterr().out
        assert 'Demo (2 routes)' in output
        assert 'GET     /users/:id' in output
        assert '1. 200 Found (default)' in output
        assert "header.X-Role == 'admin' AND params.id ~= '^1'" in output
        assert '[random]' in output

    def test_missing_file_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli('routes', str(tmp_path / 'missing.yaml'))

        assert exc_info.value.code == 1
        assert 'Failed to load environment' in capsys.readouterr().out


class TestServeCommand:
    """Test `mockrules serve`."""

    def test_serve_builds_config(self, environment_file):
        with patch('mockrules.cli.MockServer') as server_cls:
            run_cli('serve', environment_file, '--port', '8081', '--latency', '30', '--no-admin')

        _, kwargs = server_cls.call_args
        config = kwargs['config']
        assert server_cls.call_args[0][0] == environment_file
        assert config.port == 8081
        assert config.latency == 30
        assert config.admin_enabled is False
        server_cls.return_value.start.assert_called_once_with()

    def test_serve_invalid_environment(self, tmp_path, capsys):
        path = tmp_path / 'environment.json'
        path.write_text(json.dumps({'routes': [{'responses': [{'rules': [{'target': 'cookie'}]}]}]}))

        with pytest.raises(SystemExit) as exc_info:
            run_cli('serve', str(path))

        assert exc_info.value.code == 1


class TestNoCommand:
    """Test running without a command."""

    def test_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_cli()

        assert exc_info.value.code == 1
        assert 'serve' in capsys.readouterr().out
