"""Tests for the bundled echo worker."""

import json
import stat
import sys
from pathlib import Path

import pytest

from src.mcp_transport.schemas import RequestId
from src.gateway.catalog import extract_tools
from src.worker.session import WorkerSession

ECHO_WORKER = Path(__file__).parent.parent / "tools" / "echo" / "worker.py"


@pytest.fixture
def echo_worker(tmp_path) -> str:
    script = tmp_path / "echo.sh"
    script.write_text(f"#!/bin/sh\nexec '{sys.executable}' '{ECHO_WORKER}'\n", encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    return str(script)


@pytest.mark.asyncio
async def test_lists_both_tools(echo_worker, session_config):
    response = await WorkerSession(echo_worker, session_config).run(
        b'{"jsonrpc":"2.0","method":"tools/list","id":"x"}'
    )
    tools = extract_tools(echo_worker, response, RequestId.string("x"))
    assert [tool["name"] for tool in tools] == ["echo", "reverse"]


@pytest.mark.asyncio
async def test_reverse(echo_worker, session_config):
    response = await WorkerSession(echo_worker, session_config).run(
        b'{"jsonrpc":"2.0","id":3,"method":"tools/call","params":{"name":"reverse","arguments":{"text":"abc"}}}'
    )
    message = json.loads(response)
    assert message["id"] == 3
    assert message["result"]["content"][0]["text"] == "cba"


@pytest.mark.asyncio
async def test_bad_arguments_return_error(echo_worker, session_config):
    response = await WorkerSession(echo_worker, session_config).run(
        b'{"jsonrpc":"2.0","id":4,"method":"tools/call","params":{"name":"echo","arguments":{}}}'
    )
    assert json.loads(response)["error"]["code"] == -32602
