"""Tests for the response read loop."""

from httpconnect import Connected, Deadline
from httperrors import TransportError
from httpresponse import MAXDATASIZE, ResponseBuffer, read_response

from conftest import FakeSocket

HEAD = b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n\r\n"


def connection(chunks=(), error=None):
    sock = FakeSocket(chunks, error)
    return Connected(sock, "10.0.0.1"), sock


class TestResponseBuffer:
    """Incremental header boundary detection."""

    def test_boundary_in_one_chunk(self):
        buf = ResponseBuffer()
        buf.append(HEAD + b"body")
        assert buf.boundary_seen
        assert buf.headers == HEAD

    def test_boundary_split_across_chunks(self):
        buf = ResponseBuffer()
        buf.append(b"HTTP/1.1 200 OK\r\n\r")
        assert not buf.boundary_seen
        buf.append(b"\nbody")
        assert buf.headers == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_boundary_split_one_byte_at_a_time(self):
        buf = ResponseBuffer()
        for byte in HEAD + b"rest":
            buf.append(bytes([byte]))
        assert buf.header_end == len(HEAD)

    def test_first_occurrence_is_kept(self):
        buf = ResponseBuffer()
        buf.append(HEAD)
        buf.append(b"part one\r\n\r\npart two")
        assert buf.header_end == len(HEAD)

    def test_capture_happens_once(self):
        delivered = []
        buf = ResponseBuffer()
        buf.append(b"HTTP/1.1 200 OK\r\n")
        assert not buf.capture_headers(delivered.append)
        buf.append(b"\r\n")
        assert buf.capture_headers(delivered.append)
        assert not buf.capture_headers(delivered.append)
        assert delivered == [b"HTTP/1.1 200 OK\r\n\r\n"]
        assert buf.headers_captured


class TestReadResponse:
    """Reading the whole response off a connection."""

    def test_reads_until_end_of_stream(self):
        conn, sock = connection([HEAD, b"hello ", b"world"])
        response = read_response(conn)
        assert bytes(response) == HEAD + b"hello world"
        assert response.error is None
        assert sock.recv_calls == 4

    def test_bounded_reads(self, monkeypatch):
        sizes = []
        conn, sock = connection([HEAD])
        real_recv = sock.recv

        def recv(size):
            sizes.append(size)
            return real_recv(size)

        monkeypatch.setattr(sock, "recv", recv)
        read_response(conn)
        assert set(sizes) == {MAXDATASIZE}

    def test_header_sink_gets_headers_once(self):
        delivered = []
        body = b"<pre>\r\n\r\nstill body\r\n\r\n</pre>"
        conn, _ = connection([HEAD[:10], HEAD[10:] + body[:8], body[8:]])

        response = read_response(conn, header_sink=delivered.append)

        assert delivered == [HEAD]
        assert bytes(response) == HEAD + body

    def test_no_sink_means_no_capture(self):
        conn, _ = connection([HEAD])
        response = read_response(conn)
        assert response.boundary_seen
        assert not response.headers_captured

    def test_head_only_stops_after_headers(self):
        conn, sock = connection([b"HTTP/1.1 200 OK\r\n", b"Server: x\r\n\r\n", b"unexpected", b"more"])
        response = read_response(conn, head_only=True)
        assert bytes(response) == b"HTTP/1.1 200 OK\r\nServer: x\r\n\r\n"
        assert sock.recv_calls == 2
        assert sock.chunks == [b"unexpected", b"more"]

    def test_head_only_keeps_bytes_from_same_chunk(self):
        conn, sock = connection([HEAD + b"trailing", b"never read"])
        response = read_response(conn, head_only=True)
        assert bytes(response) == HEAD + b"trailing"
        assert sock.recv_calls == 1

    def test_head_only_with_sink(self):
        delivered = []
        conn, sock = connection([HEAD, b"never read"])
        read_response(conn, head_only=True, header_sink=delivered.append)
        assert delivered == [HEAD]
        assert sock.recv_calls == 1

    def test_read_error_keeps_accumulated_bytes(self, capsys):
        conn, _ = connection([HEAD, b"partial"], error=ConnectionResetError(104, "Connection reset by peer"))
        response = read_response(conn)
        assert bytes(response) == HEAD + b"partial"
        assert isinstance(response.error, TransportError)
        assert "Error reading response" in str(response.error)
        assert capsys.readouterr().out == ""

    def test_expired_deadline_ends_the_loop(self):
        now = [0.0]
        sock = FakeSocket([b"HTTP/1.1 200 OK\r\n"])
        conn = Connected(sock, "10.0.0.1", Deadline(2, clock=lambda: now[0]))

        def recv(size):
            now[0] += 3
            return FakeSocket.recv(sock, size)

        sock.recv = recv
        response = read_response(conn)
        assert bytes(response) == b"HTTP/1.1 200 OK\r\n"
        assert "deadline" in str(response.error)

    def test_empty_response(self):
        conn, _ = connection([])
        response = read_response(conn, header_sink=lambda h: None)
        assert bytes(response) == b""
        assert not response.headers_captured
