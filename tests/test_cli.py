"""
Tests for the command-line client

Run with: python -m pytest tests/test_cli.py -v
"""

import asyncio

import pytest

from raito import ConnectionOptions, ConnectionState, RaitoConnectionError
from raito.cli import (
    build_options,
    execute,
    format_value,
    parse_args,
    run_interactive,
    run_once,
)


class TestArguments:
    """Test argument parsing and option building."""

    def test_command_tokens(self):
        args = parse_args(["--port", "7180", "set", "k", "v", "100"])
        assert args.port == 7180
        assert args.command == ["set", "k", "v", "100"]

    def test_no_command_is_interactive(self):
        assert parse_args([]).command == []

    def test_options_from_host_and_port(self):
        args = parse_args(["--host", "cache", "--port", "7180", "--password", "pw", "--timeout", "3"])
        assert build_options(args) == ConnectionOptions(
            host="cache", port=7180, password="pw", connect_timeout=3.0, request_timeout=3.0,
        )

    def test_options_from_url(self):
        args = parse_args(["--url", "raito://cache:7180?ttl=5000", "--timeout", "1"])
        options = build_options(args)
        assert (options.host, options.port, options.ttl) == ("cache", 7180, 5000)

    def test_ttl_flag_overrides_url(self):
        args = parse_args(["--url", "raito://cache:7180?ttl=5000", "--ttl", "10"])
        assert build_options(args).ttl == 10

    def test_invalid_url(self):
        with pytest.raises(RaitoConnectionError):
            build_options(parse_args(["--url", "cache:7180"]))

    def test_format_value(self):
        assert format_value("text") == "text"
        assert format_value({"a": 1}) == '{"a": 1}'


@pytest.mark.asyncio
@pytest.mark.integration
class TestExecute:
    """Test running commands against the fake server."""

    async def test_set_get_clear(self, server, client):
        assert await execute(client, ["SET", "k", "v", "60000"]) == "OK"
        assert await execute(client, ["get", "k"]) == "v"
        assert await execute(client, ["clear", "k"]) == "OK"
        assert await execute(client, ["GET", "k"]) == "(nil)"

    @pytest.mark.parametrize("tokens", [
        [],
        ["GET"],
        ["SET", "k"],
        ["SET", "k", "v", "soon"],
        ["EXISTS", "k"],
    ])
    async def test_invalid_commands(self, server, client, tokens):
        with pytest.raises(ValueError):
            await execute(client, tokens)

    async def test_run_once_success(self, server, client, capsys):
        assert await run_once(client, ["set", "k", "v"]) == 0
        assert capsys.readouterr().out.strip() == "OK"

    async def test_run_once_server_error(self, server, client, capsys):
        server.replies.append({"error": "boom"})

        assert await run_once(client, ["get", "k"]) == 1
        assert "boom" in capsys.readouterr().err

    async def test_run_once_usage_error(self, server, client, capsys):
        assert await run_once(client, ["frobnicate"]) == 2
        assert "invalid command" in capsys.readouterr().err


@pytest.mark.asyncio
@pytest.mark.integration
class TestInteractive:
    """Test the interactive session."""

    async def test_session_until_exit(self, server, client, monkeypatch, capsys):
        lines = iter(["set k v", "get k", "exit"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))

        assert await run_interactive(client) == 0
        out = capsys.readouterr().out
        assert "OK" in out
        assert "Goodbye!" in out

    async def test_session_ends_when_server_disconnects(
            self, server, client, wait_until, monkeypatch, capsys):
        loop = asyncio.get_running_loop()
        lines = iter(["set k v", "get k", "exit"])

        def fake_input(prompt=""):
            line = next(lines)
            if line == "get k":
                # input() runs in an executor thread; drive the loop from here
                asyncio.run_coroutine_threadsafe(server.drop_connections(), loop).result(5)
                asyncio.run_coroutine_threadsafe(
                    wait_until(lambda: client.state is ConnectionState.CLOSED), loop
                ).result(5)
            return line

        monkeypatch.setattr("builtins.input", fake_input)

        assert await run_interactive(client) == 1
        assert list(lines) == ["exit"]
        assert "Connection closed by server" in capsys.readouterr().out
