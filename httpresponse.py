#!/usr/bin/env python3
"""Read the raw response off a connection, spotting where the headers end"""

import logging

from httperrors import TransportError

logger = logging.getLogger(__name__)

MAXDATASIZE = 10000
HEADER_BOUNDARY = b'\r\n\r\n'


class ResponseBuffer:
    """Append-only response bytes; remembers the first header/body boundary"""

    def __init__(self):
        self.data = bytearray()
        self.header_end = -1
        self.headers_captured = False
        self.error = None
        self._scanned = 0

    def append(self, chunk):
        self.data.extend(chunk)
        if self.header_end == -1:
            # Only new bytes are searched; keep an overlap for a split boundary
            start = max(0, self._scanned - len(HEADER_BOUNDARY) + 1)
            idx = self.data.find(HEADER_BOUNDARY, start)
            if idx != -1:
                self.header_end = idx + len(HEADER_BOUNDARY)
                logger.debug("header block ends at byte %d", self.header_end)
            self._scanned = len(self.data)

    @property
    def boundary_seen(self):
        return self.header_end != -1

    @property
    def headers(self):
        return bytes(self.data[:self.header_end]) if self.boundary_seen else b''

    def capture_headers(self, sink):
        """Hand the header block to sink the first time it is available"""
        if self.headers_captured or not self.boundary_seen:
            return False
        self.headers_captured = True
        sink(self.headers)
        return True

    def __bytes__(self):
        return bytes(self.data)

    def __len__(self):
        return len(self.data)


def read_response(conn, head_only=False, header_sink=None):
    """Read until the peer closes, a read fails, or (head_only) the headers are in"""
    response = ResponseBuffer()

    while True:
        try:
            chunk = conn.recv(MAXDATASIZE)
        except OSError as e:
            response.error = TransportError(f"Error reading response: {e}")
            logger.debug("read loop ended: %s", e)
            break
        if not chunk:
            break
        response.append(chunk)

        if header_sink is not None:
            response.capture_headers(header_sink)

        if head_only and response.boundary_seen:
            break

    logger.debug("read %d bytes", len(response))
    return response
