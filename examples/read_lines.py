"""Example: Read lines from a line-oriented sensor."""

import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sensorlink import BufferedTCPClient, ClientConfig, OpenError
from sensorlink.platform import shutdown_network


def run(host: str, port: int, command: bytes, count: int) -> int:
    """Send a command and print the reply lines."""
    config = ClientConfig(host=host, port=port, read_timeout_ms=500)
    client = BufferedTCPClient.from_config(config)

    try:
        client.open()
    except OpenError as e:
        print(f"Cannot connect: {e}")
        return 1

    try:
        if command and client.write(command) < 0:
            print(f"Send failed: {client.error_message}")
            return 1

        for _ in range(count):
            line = client.readline()
            if line is None:
                print("No data")
                break
            print(line.decode("ascii", errors="replace"))
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    host = sys.argv[1] if len(sys.argv) > 1 else "localhost"
    port = int(sys.argv[2]) if len(sys.argv) > 2 else 10940
    command = sys.argv[3].encode("ascii") + b"\n" if len(sys.argv) > 3 else b""
    try:
        status = run(host, port, command, count=10)
    finally:
        shutdown_network()
    sys.exit(status)
