#!/usr/bin/env python3
"""Resolve a host and open one plain or TLS connection, trying each address in turn"""

import logging, socket, ssl, time
from dataclasses import dataclass

from httperrors import (
    CertificateError, ConnectionExhaustedError, DialError, ResolutionError, TransportError,
)

logger = logging.getLogger(__name__)

HTTP_PORT = 80
HTTPS_PORT = 443
DEFAULT_CONNECT_TIMEOUT = 5


@dataclass(frozen=True)
class ConnectionConfig:
    addresses: tuple = ()
    insecure: bool = False
    cert_file: str = ""
    connect_timeout: int = 0
    max_time: int = 0

    @property
    def use_tls(self):
        return bool(self.cert_file) or self.insecure

    @property
    def port(self):
        return HTTPS_PORT if self.use_tls else HTTP_PORT

    @property
    def dial_timeout(self):
        return self.connect_timeout if self.connect_timeout > 0 else DEFAULT_CONNECT_TIMEOUT


class Deadline:
    """Absolute point in time after which any pending socket operation fails"""

    def __init__(self, seconds, clock=time.monotonic):
        self._clock = clock
        self.expires = clock() + seconds

    def remaining(self):
        return self.expires - self._clock()

    def arm(self, sock):
        left = self.remaining()
        if left <= 0:
            raise TimeoutError("deadline exceeded")
        sock.settimeout(left)


@dataclass
class Connected:
    """A live connection; owned by the caller until close()"""
    sock: object
    address: str
    deadline: Deadline = None

    def _arm(self):
        if self.deadline is not None:
            self.deadline.arm(self.sock)

    def send(self, header_block, body=b""):
        """Write the header block, then the body if there is one"""
        try:
            self._arm()
            self.sock.sendall(header_block)
            if body:
                self._arm()
                self.sock.sendall(body)
        except OSError as e:
            raise TransportError(f"Failed to send request: {e}") from e

    def recv(self, size):
        self._arm()
        return self.sock.recv(size)

    def close(self):
        self.sock.close()


def resolve_host(hostname):
    """Return the addresses for hostname, in resolver order"""
    if not hostname:
        raise ResolutionError(hostname, "no such host")
    try:
        infos = socket.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(hostname, e) from e

    addresses = [info[4][0] for info in infos]
    if not addresses:
        raise ResolutionError(hostname, "no such host")
    logger.debug("resolved %s to %s", hostname, addresses)
    return addresses


def tls_context(config):
    """Build the TLS context once, loading the client certificate if one is configured"""
    context = ssl.create_default_context()
    if config.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    if config.cert_file:
        # Certificate and private key live in the same PEM file
        try:
            context.load_cert_chain(config.cert_file)
        except OSError as e:
            raise CertificateError(e) from e
    return context


def _dial(hostname, address, config, context):
    timeout = config.dial_timeout
    deadline = Deadline(config.max_time) if config.max_time > 0 else None
    if deadline:
        timeout = min(timeout, deadline.remaining())

    sock = socket.create_connection((address, config.port), timeout=timeout)
    if context is None:
        return sock

    try:
        if deadline:
            deadline.arm(sock)
        return context.wrap_socket(sock, server_hostname=hostname)
    except OSError:
        sock.close()
        raise


def connect(hostname, config, report=None, on_failure=None):
    """Try each address in order and return the first connection that succeeds

    report gets verbose progress lines; on_failure gets a DialError for every
    address that could not be connected.
    """
    context = tls_context(config) if config.use_tls else None
    failures = []

    for address in config.addresses:
        if report:
            report(f"Trying address: {address}")

        started = time.monotonic()
        try:
            sock = _dial(hostname, address, config, context)
        except OSError as e:
            failure = DialError(address, e)
            failures.append(failure)
            if on_failure:
                on_failure(failure)
            logger.debug("dial %s:%d failed after %.3fs", address, config.port, time.monotonic() - started)
            continue

        logger.debug("dial %s:%d took %.3fs", address, config.port, time.monotonic() - started)
        if report:
            report(f"Connected to {address}")

        # One deadline for the write and the whole read loop
        deadline = Deadline(config.max_time) if config.max_time > 0 else None
        if deadline is None:
            sock.settimeout(None)
        return Connected(sock, address, deadline)

    raise ConnectionExhaustedError(failures)
