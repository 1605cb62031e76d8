"""Integration tests for BufferedTCPClient over loopback sockets."""

import socket
import threading
import time

import pytest

from sensorlink.errors import ConnectError, ConnectRejected
from sensorlink.transports.tcp.buffered_client import BufferedTCPClient


class ScriptedServer:
    """Single-connection TCP server that plays back a fixed script."""

    def __init__(self, payload=b"", delay=0.0, echo=False, close_after_send=False):
        self.payload = payload
        self.delay = delay
        self.echo = echo
        self.close_after_send = close_after_send
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.listener.bind(("127.0.0.1", 0))
        self.listener.listen(1)
        self.port = self.listener.getsockname()[1]
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self) -> "ScriptedServer":
        self._thread.start()
        return self

    def _serve(self) -> None:
        self.listener.settimeout(5.0)
        try:
            conn, _ = self.listener.accept()
        except OSError:
            return
        with conn:
            if self.delay:
                time.sleep(self.delay)
            if self.payload:
                conn.sendall(self.payload)
            if self.echo:
                conn.settimeout(0.1)
                while not self._stop.is_set():
                    try:
                        data = conn.recv(4096)
                    except socket.timeout:
                        continue
                    if not data:
                        break
                    conn.sendall(data)
            elif not self.close_after_send:
                self._stop.wait(5.0)

    def stop(self) -> None:
        self._stop.set()
        self.listener.close()
        self._thread.join(2.0)


@pytest.fixture
def serve():
    """Start scripted servers and stop them after the test."""
    servers = []

    def start(**kwargs):
        server = ScriptedServer(**kwargs).start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.stop()


def unused_port() -> int:
    """Return a loopback port with nothing listening on it."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


class TestBufferedTCPClientLoopback:
    """Integration tests against a local server."""

    @pytest.mark.timeout(10)
    def test_readline_sequence(self, serve):
        """Test lines, including an overlong one, arrive intact."""
        server = serve(payload=b"VV\nabcdefgh\n")

        with BufferedTCPClient("127.0.0.1", server.port) as client:
            assert client.readline(10, timeout_ms=1000) == b"VV"
            assert client.readline(5, timeout_ms=1000) == b"abcd"
            assert client.readline(5, timeout_ms=1000) == b"efgh"

    @pytest.mark.timeout(10)
    def test_localhost_literal(self, serve):
        """Test the localhost literal connects to loopback."""
        server = serve(payload=b"ready\n")

        with BufferedTCPClient("localhost", server.port) as client:
            assert client.readline(16, timeout_ms=1000) == b"ready"

    @pytest.mark.timeout(10)
    def test_read_exact_count(self, serve):
        """Test callers can accumulate an exact count across reads."""
        payload = bytes(range(256)) * 8
        server = serve(payload=payload)

        with BufferedTCPClient("127.0.0.1", server.port) as client:
            received = bytearray()
            while len(received) < len(payload):
                chunk = client.read(len(payload) - len(received), timeout_ms=500)
                assert chunk, "connection stalled"
                received += chunk

        assert bytes(received) == payload

    @pytest.mark.timeout(10)
    def test_read_waits_for_late_data(self, serve):
        """Test the blocking receive picks up data sent after the call."""
        server = serve(payload=b"hello", delay=0.2)

        with BufferedTCPClient("127.0.0.1", server.port) as client:
            assert client.read(5, timeout_ms=2000) == b"hello"

    @pytest.mark.timeout(10)
    def test_read_timeout_elapsed(self, serve):
        """Test a silent peer makes read return after about the timeout."""
        server = serve()

        with BufferedTCPClient("127.0.0.1", server.port) as client:
            start = time.monotonic()
            data = client.read(10, timeout_ms=200)
            elapsed = time.monotonic() - start

        assert data == b""
        assert 0.15 <= elapsed < 1.5

    @pytest.mark.timeout(10)
    def test_write_and_read_back(self, serve):
        """Test written bytes reach the peer."""
        server = serve(echo=True)

        with BufferedTCPClient("127.0.0.1", server.port) as client:
            assert client.write(b"ping\n") == 5
            assert client.readline(16, timeout_ms=1000) == b"ping"

    @pytest.mark.timeout(10)
    def test_peer_close(self, serve):
        """Test data before a close is delivered, then reads come back empty."""
        server = serve(payload=b"bye\n", close_after_send=True)

        with BufferedTCPClient("127.0.0.1", server.port) as client:
            assert client.readline(16, timeout_ms=1000) == b"bye"
            assert client.readline(16, timeout_ms=1000) is None

    @pytest.mark.timeout(10)
    def test_connect_refused(self):
        """Test nothing listening fails fast and leaves the client unopened."""
        client = BufferedTCPClient("127.0.0.1", unused_port(), connect_timeout=2.0)

        start = time.monotonic()
        with pytest.raises((ConnectError, ConnectRejected)):
            client.open()
        elapsed = time.monotonic() - start

        assert elapsed < 2.5
        assert client.socket is None
        assert client.error_message

    @pytest.mark.timeout(10)
    def test_reopen(self, serve):
        """Test a client can be reopened after close."""
        first = serve(payload=b"one\n")
        second = serve(payload=b"two\n")

        client = BufferedTCPClient("127.0.0.1", first.port)
        client.open()
        assert client.readline(16, timeout_ms=1000) == b"one"
        client.close()
        client.close()
        assert client.socket is None

        client.open(port=second.port)
        try:
            assert client.readline(16, timeout_ms=1000) == b"two"
        finally:
            client.close()
