#!/usr/bin/env python3
"""Minimal stdio MCP worker serving ``echo`` and ``reverse``.

Reads one JSON-RPC message per line on stdin and answers on stdout.
Diagnostics go to stderr, which the gateway captures for its logs.
"""

import json
import sys

PROTOCOL_VERSION = "2024-11-05"

TOOLS = [
    {
        "name": "echo",
        "description": "Return the given text unchanged.",
        "inputSchema": {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
    },
    {
        "name": "reverse",
        "description": "Return the given text reversed.",
        "inputSchema": {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
    },
]


def _reply(request_id, result=None, error=None):
    message = {"jsonrpc": "2.0", "id": request_id}
    if error is not None:
        message["error"] = error
    else:
        message["result"] = result
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def _text_result(text):
    return {"content": [{"type": "text", "text": text}], "isError": False}


def call_tool(params):
    name = params.get("name")
    arguments = params.get("arguments") or {}
    text = arguments.get("text")
    if not isinstance(text, str):
        return None, {"code": -32602, "message": "Invalid params", "data": "'text' must be a string"}
    if name == "echo":
        return _text_result(text), None
    if name == "reverse":
        return _text_result(text[::-1]), None
    return None, {"code": -32601, "message": f"Unknown tool: {name}"}


def handle(message):
    method = message.get("method")
    request_id = message.get("id")

    if method == "initialize":
        _reply(request_id, {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": "echo-worker", "version": "0.1.0"},
        })
    elif method == "notifications/initialized":
        return
    elif method == "ping":
        _reply(request_id, {})
    elif method == "tools/list":
        _reply(request_id, {"tools": TOOLS})
    elif method == "tools/call":
        result, error = call_tool(message.get("params") or {})
        _reply(request_id, result, error)
    elif "id" in message:
        _reply(request_id, error={"code": -32601, "message": "Method not found"})


def main():
    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            print(f"echo-worker: bad input: {e}", file=sys.stderr)
            _reply(None, error={"code": -32700, "message": "Parse error"})
            continue
        if isinstance(message, dict):
            handle(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
