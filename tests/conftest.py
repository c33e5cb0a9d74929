"""Shared fakes for socket-level tests."""

import socket

import pytest

import httpconnect


class FakeSocket:
    """In-memory stand-in for a connected socket."""

    def __init__(self, chunks=(), error=None, send_error=None):
        self.chunks = list(chunks)
        self.error = error
        self.send_error = send_error
        self.sent = bytearray()
        self.writes = []
        self.recv_calls = 0
        self.timeouts = []
        self.closed = False

    def settimeout(self, timeout):
        self.timeouts.append(timeout)

    def sendall(self, data):
        if self.send_error:
            raise self.send_error
        self.writes.append(bytes(data))
        self.sent.extend(data)

    def recv(self, size):
        self.recv_calls += 1
        if self.chunks:
            return self.chunks.pop(0)
        if self.error:
            raise self.error
        return b''

    def close(self):
        self.closed = True


class FakeNetwork:
    """Resolver plus dialer; when `reachable` is set only those addresses accept connections."""

    def __init__(self, addresses=("93.184.216.34",), reachable=None, chunks=(), error=None):
        self.addresses = list(addresses)
        self.reachable = None if reachable is None else set(reachable)
        self.chunks = chunks
        self.error = error
        self.lookups = []
        self.attempts = []
        self.sockets = []

    def getaddrinfo(self, host, port, family=0, type=0, proto=0, flags=0):
        self.lookups.append(host)
        if host == "nonexistent.invalid":
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, '', (addr, 0)) for addr in self.addresses]

    def create_connection(self, address, timeout=None, *args, **kwargs):
        self.attempts.append((address, timeout))
        if self.reachable is not None and address[0] not in self.reachable:
            raise ConnectionRefusedError(111, "Connection refused")
        sock = FakeSocket(self.chunks, self.error)
        self.sockets.append(sock)
        return sock

    @property
    def last_socket(self):
        return self.sockets[-1]


@pytest.fixture
def network(monkeypatch):
    """Patch name resolution and dialing with a FakeNetwork."""
    net = FakeNetwork(chunks=[b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok"])
    monkeypatch.setattr(httpconnect.socket, "getaddrinfo", net.getaddrinfo)
    monkeypatch.setattr(httpconnect.socket, "create_connection", net.create_connection)
    return net


@pytest.fixture
def echo_client():
    """Flask test client for the echo server."""
    from test_server.echo_server import app
    app.config['TESTING'] = True
    return app.test_client(use_cookies=False)
