#!/usr/bin/env python3
"""Build the raw HTTP/1.1 request: method, header block and body"""

import base64, logging, mimetypes, os
from dataclasses import dataclass
from urllib.parse import urlencode

from httperrors import InputError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "GolangHTTPClient/1.0"
FORM_URLENCODED = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class MultipartPart:
    name: str
    value: str = None
    filename: str = None

    @property
    def is_file(self):
        return self.filename is not None


@dataclass(frozen=True)
class RequestSpec:
    method: str = ""
    head_only: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    headers: tuple = ()
    cookie: str = ""
    user_auth: str = ""
    data: tuple = ()
    form: tuple = ()


def parse_form_field(text):
    """Turn a -F argument ('name=value' or 'name=@path') into a MultipartPart"""
    if "=" not in text:
        raise InputError(f"Invalid form data: {text}")
    name, value = text.split("=", 1)
    if value.startswith("@"):
        # A bare "@" names no file; it is sent as an empty field
        if value == "@":
            return MultipartPart(name, value="")
        return MultipartPart(name, filename=value[1:])
    return MultipartPart(name, value=value)


def resolve_method(spec):
    if spec.method:
        return spec.method.upper()
    if spec.head_only:
        return "HEAD"
    if spec.data or spec.form:
        return "POST"
    return "GET"


def is_head_only(spec):
    """True when the reader should stop once the header block has arrived"""
    return spec.head_only or resolve_method(spec) == "HEAD"


def _quote(s):
    return s.replace("\\", "\\\\").replace('"', '\\"')


def encode_multipart(parts, boundary=None):
    """Assemble a multipart/form-data body in memory, reading any referenced files"""
    boundary = boundary or os.urandom(30).hex()

    body = []
    for part in parts:
        body.append(f"--{boundary}\r\n".encode())
        if part.is_file:
            try:
                with open(part.filename, 'rb') as f:
                    content = f.read()
            except OSError as e:
                raise InputError(f"Error creating multipart form data: {e}") from e

            filename = os.path.basename(part.filename)
            content_type = mimetypes.guess_type(filename)[0] or 'application/octet-stream'
            body.append(f'Content-Disposition: form-data; name="{_quote(part.name)}"; '
                        f'filename="{_quote(filename)}"\r\n'.encode())
            body.append(f'Content-Type: {content_type}\r\n\r\n'.encode())
            body.append(content)
        else:
            body.append(f'Content-Disposition: form-data; name="{_quote(part.name)}"\r\n\r\n'.encode())
            body.append(part.value.encode())
        body.append(b"\r\n")
    body.append(f"--{boundary}--\r\n".encode())

    return b''.join(body), f"multipart/form-data; boundary={boundary}"


def encode_data(data):
    """Encode -d items; the first item alone decides between key=value pairs and raw text"""
    if "=" in data[0]:
        pairs = [tuple(item.split("=", 1)) if "=" in item else (item, "") for item in data]
        return urlencode(pairs).encode(), FORM_URLENCODED
    return "&".join(data).encode(), FORM_URLENCODED


def encode_body(spec):
    """Pick the body encoding: multipart, then urlencoded/raw, then none"""
    if spec.form:
        return encode_multipart(spec.form)
    if spec.data:
        return encode_data(spec.data)
    return b"", None


def build_request(hostname, spec):
    """Return (header block, body) ready to be written to the connection"""
    body, content_type = encode_body(spec)

    lines = [
        f"{resolve_method(spec)} / HTTP/1.1",
        f"Host: {hostname}",
        f"User-Agent: {spec.user_agent}",
        "Accept: */*",
    ]
    if body:
        lines.append(f"Content-Type: {content_type}")
        lines.append(f"Content-Length: {len(body)}")
    if spec.cookie:
        lines.append(f"Cookie: {spec.cookie}")
    lines.extend(spec.headers)
    if spec.user_auth:
        token = base64.b64encode(spec.user_auth.encode()).decode()
        lines.append(f"Authorization: Basic {token}")
    lines.append("Connection: close")

    header_block = "".join(f"{line}\r\n" for line in lines) + "\r\n"
    logger.debug("built %d header lines and a %d byte body", len(lines), len(body))
    return header_block.encode(), body
