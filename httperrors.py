#!/usr/bin/env python3
"""Error conditions raised by the smol-curl core"""


class CurlError(Exception):
    """Base class for every reported failure"""


class UsageError(CurlError):
    """Wrong number of positional arguments"""


class ResolutionError(CurlError):
    def __init__(self, hostname, reason):
        super().__init__(f"LookupHost error: {reason}")
        self.hostname = hostname


class CertificateError(CurlError):
    def __init__(self, reason):
        super().__init__(f"Error loading client certificate: {reason}")


class DialError(CurlError):
    """One candidate address could not be connected; the scan moves on"""

    def __init__(self, address, reason):
        super().__init__(f"Connection failed: {address}\nReason: {reason}")
        self.address = address
        self.reason = reason


class ConnectionExhaustedError(CurlError):
    def __init__(self, attempts=()):
        super().__init__("Failed to connect to any address")
        self.attempts = list(attempts)


class InputError(CurlError):
    """Bad -F argument or unreadable upload file, raised before anything is sent"""


class TransportError(CurlError):
    pass


class OutputError(CurlError):
    pass
