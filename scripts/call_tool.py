"""Call one tool through a running gateway over raw TCP.

Usage: python scripts/call_tool.py echo '{"text": "hello"}' [host] [port]
"""

import json
import socket
import sys

if len(sys.argv) < 2:
    print(__doc__.strip().splitlines()[-1])
    sys.exit(2)

TOOL = sys.argv[1]
ARGUMENTS = json.loads(sys.argv[2]) if len(sys.argv) > 2 else {}
HOST = sys.argv[3] if len(sys.argv) > 3 else "127.0.0.1"
PORT = int(sys.argv[4]) if len(sys.argv) > 4 else 8999

request = {
    "jsonrpc": "2.0",
    "method": "tools/call",
    "params": {"name": TOOL, "arguments": ARGUMENTS},
    "id": 1,
}

with socket.create_connection((HOST, PORT), timeout=90) as sock:
    sock.sendall((json.dumps(request) + "\n").encode("utf-8"))
    reply = sock.makefile("r", encoding="utf-8").readline()

data = json.loads(reply)

if "result" in data:
    result = data["result"]
    if "content" in result:
        for item in result["content"]:
            if item.get("type") == "text":
                print(f"Result: {item['text']}")
    else:
        print(f"Result: {result}")
else:
    print(f"Error: {data.get('error')}")
    sys.exit(1)
