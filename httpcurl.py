#!/usr/bin/env python3
"""smol-curl: a small curl work-alike that talks HTTP/1.1 over raw sockets"""

import argparse, logging, sys
from contextlib import closing
from dataclasses import dataclass

from httpconnect import ConnectionConfig, connect, resolve_host
from httperrors import CurlError, OutputError, UsageError
from httprequest import DEFAULT_USER_AGENT, RequestSpec, build_request, is_head_only, parse_form_field
from httpresponse import read_response

logger = logging.getLogger(__name__)

RESET, RED, GREEN, YELLOW, BLUE, PURPLE, CYAN = (
    "\033[0m", "\033[31m", "\033[32m", "\033[33m", "\033[34m", "\033[35m", "\033[36m",
)

LOGO = r"""
 ___  __  __   ___   _           ___  _   _  ___  _
/ __||  \/  | / _ \ | |   ___   / __|| | | || _ \| |
\__ \| |\/| || (_) || |__|___| | (__ | |_| ||   /| |__
|___/|_|  |_| \___/ |____|      \___| \___/ |_|_\|____|
"""

# flag, type shown in help, description
FLAGS = [
    ("-a", "<string>", "Specify the User-Agent string"),
    ("-k", "<bool>", "Allow insecure server connections when using SSL"),
    ("-v", "<bool>", "Make the request more detailed"),
    ("-m", "<int>", "Maximum time allowed for the operation in seconds"),
    ("-u", "<string>", "Specify the user name and password for server authentication"),
    ("-o", "<string>", "Write the response body to the specified file"),
    ("-d", "<string>", "HTTP POST data"),
    ("-I", "<bool>", "Send HTTP HEAD request instead of GET"),
    ("-E", "<string>", "Specify the client certificate file for HTTPS"),
    ("-D", "<string>", "Write the response headers to the specified file"),
    ("-X", "<string>", "Specify custom request method"),
    ("-H", "<string[]>", "Pass custom header(s) to server"),
    ("-F", "<string[]>", "Specify HTTP multipart POST data"),
    ("--cookie", "<string>", "Send the specified cookies with the request"),
    ("--connect-timeout", "<int>", "Maximum time allowed for connection"),
]
COLUMN_WIDTHS = (20, 10, 50)


@dataclass(frozen=True)
class Options:
    hostname: str
    request: RequestSpec
    insecure: bool = False
    cert_file: str = ""
    connect_timeout: int = 0
    max_time: int = 0
    verbose: bool = False
    output_file: str = ""
    header_file: str = ""

    def connection_config(self, addresses):
        return ConnectionConfig(tuple(addresses), self.insecure, self.cert_file,
                                self.connect_timeout, self.max_time)


def print_flag_table():
    print(f"{CYAN}{LOGO}{RESET}")
    print(f"{YELLOW}Usage: smol-curl [options] <hostname>{RESET}")
    print(f"{GREEN}Options:{RESET}")

    for i, row in enumerate([("Flag", "Type", "Description")] + FLAGS):
        cells = []
        for j, cell in enumerate(row):
            cell = cell.ljust(COLUMN_WIDTHS[j])
            if i == 0:
                cell = f"{PURPLE}{cell}{RESET}"
            elif j == 0:
                cell = f"{BLUE}{cell}{RESET}"
            elif j == 1:
                cell = f"{RED}{cell}{RESET}"
            cells.append(cell + " | ")
        print("".join(cells))
        if i == 0:
            print("-" * 85)


def build_parser():
    helps = {flag: desc for flag, _, desc in FLAGS}
    parser = argparse.ArgumentParser(prog="smol-curl", add_help=False,
                                     description="HTTP client over raw sockets")
    parser.add_argument('-a', dest='user_agent', default=DEFAULT_USER_AGENT, help=helps['-a'])
    parser.add_argument('-k', dest='insecure', action='store_true', help=helps['-k'])
    parser.add_argument('-v', dest='verbose', action='store_true', help=helps['-v'])
    parser.add_argument('-m', dest='max_time', type=int, default=0, help=helps['-m'])
    parser.add_argument('-u', dest='user_auth', default='', help=helps['-u'])
    parser.add_argument('-o', dest='output_file', default='', help=helps['-o'])
    parser.add_argument('-d', dest='data', action='append', default=[], help=helps['-d'])
    parser.add_argument('-I', dest='head', action='store_true', help=helps['-I'])
    parser.add_argument('-E', dest='cert_file', default='', help=helps['-E'])
    parser.add_argument('-D', dest='header_file', default='', help=helps['-D'])
    parser.add_argument('-X', dest='method', default='', help=helps['-X'])
    parser.add_argument('-H', dest='headers', action='append', default=[], help=helps['-H'])
    parser.add_argument('-F', dest='form', action='append', default=[], help=helps['-F'])
    parser.add_argument('--cookie', default='', help=helps['--cookie'])
    parser.add_argument('--connect-timeout', type=int, default=0, help=helps['--connect-timeout'])
    parser.add_argument('-h', '--help', action='store_true')
    parser.add_argument('targets', nargs='*')
    return parser


def parse_target(url):
    """Strip the scheme and everything from the first '/' onward"""
    for scheme in ("http://", "https://"):
        if url.startswith(scheme):
            url = url[len(scheme):]
    return url.split("/", 1)[0]


def options_from_args(args):
    if args.help or len(args.targets) != 1:
        raise UsageError(f"expected exactly one target, got {len(args.targets)}")

    request = RequestSpec(
        method=args.method, head_only=args.head, user_agent=args.user_agent,
        headers=tuple(args.headers), cookie=args.cookie, user_auth=args.user_auth,
        data=tuple(args.data), form=tuple(parse_form_field(f) for f in args.form),
    )
    return Options(
        hostname=parse_target(args.targets[0]), request=request,
        insecure=args.insecure, cert_file=args.cert_file,
        connect_timeout=args.connect_timeout, max_time=args.max_time,
        verbose=args.verbose, output_file=args.output_file, header_file=args.header_file,
    )


def write_headers_file(path, headers):
    try:
        with open(path, 'wb') as f:
            f.write(headers)
    except OSError as e:
        raise OutputError(f"Failed to write headers to file: {e}") from e


def write_output_file(path, response):
    try:
        with open(path, 'wb') as f:
            f.write(response)
    except OSError as e:
        raise OutputError(f"Failed to write response to file: {e}") from e


def run(options):
    """Resolve, connect, send, read and hand the response to the outputs"""
    report = print if options.verbose else None
    hostname = options.hostname
    if report:
        report(f"Fetching {hostname} ...")

    # Bad uploads abort here, before anything touches the network
    header_block, body = build_request(hostname, options.request)

    config = options.connection_config(resolve_host(hostname))
    conn = connect(hostname, config, report=report, on_failure=print)

    def dump_headers(headers):
        try:
            write_headers_file(options.header_file, headers)
        except OutputError as e:
            print(e)
        else:
            if report:
                report(f"Headers written to {options.header_file}")

    with closing(conn):
        if report:
            report("Sending request:")
            report(header_block.decode(errors='replace'))
        conn.send(header_block, body)

        response = read_response(
            conn, head_only=is_head_only(options.request),
            header_sink=dump_headers if options.header_file else None,
        )

    if response.error is not None:
        print(response.error)

    if report:
        report("Received response:")
    print(bytes(response).decode('utf-8', errors='replace'))
    print("-" * 50)

    if options.output_file:
        try:
            write_output_file(options.output_file, bytes(response))
        except OutputError as e:
            print(e)
        else:
            print(f"Response saved to file: {options.output_file}")

    return response


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        options = options_from_args(args)
    except UsageError as e:
        logger.debug("usage error: %s", e)
        print_flag_table()
        return 0
    except CurlError as e:
        print(e)
        return 0

    try:
        run(options)
    except CurlError as e:
        print(e)
    return 0


if __name__ == "__main__":
    sys.exit(main())
