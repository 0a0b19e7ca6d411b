"""Check tools/list against a running gateway over raw TCP."""

import json
import socket
import sys

HOST = sys.argv[1] if len(sys.argv) > 1 else "127.0.0.1"
PORT = int(sys.argv[2]) if len(sys.argv) > 2 else 8999

request = {"jsonrpc": "2.0", "method": "tools/list", "params": {}, "id": "check-1"}

with socket.create_connection((HOST, PORT), timeout=90) as sock:
    sock.sendall((json.dumps(request) + "\n").encode("utf-8"))
    reply = sock.makefile("r", encoding="utf-8").readline()

data = json.loads(reply)

if "result" in data and "tools" in data["result"]:
    tools = data["result"]["tools"]
    print(f"Tools returned: {len(tools)}")
    for tool in tools:
        print(f"  - {tool['name']}: {tool.get('description', '')[:50]}")
else:
    print(f"Response: {data}")
