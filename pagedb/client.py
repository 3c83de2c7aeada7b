"""Interactive command-line client that sends SQL to a database server."""

from __future__ import annotations

import re
import socket
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TextIO

try:
    import readline  # noqa: F401  (enables line editing and history for input())
except ImportError:  # pragma: no cover - platform without readline
    readline = None

MAX_MEM_BUFFER_SIZE = 8192
PORT_DEFAULT = 8765
HOST_DEFAULT = "127.0.0.1"
PROMPT = "Rucbase> "

_EXIT_COMMANDS = frozenset({"exit", "exit;", "bye", "bye;"})
_INT_PREFIX = re.compile(r"\s*[+-]?\d+")


@dataclass(frozen=True)
class ClientOptions:
    """Where the client connects."""

    unix_socket_path: str | None = None
    host: str = HOST_DEFAULT
    port: int = PORT_DEFAULT


def is_exit_command(cmd: str) -> bool:
    """Tell whether a line ends the session."""
    return cmd in _EXIT_COMMANDS


def connect_unix(path: str) -> socket.socket:
    """Connect to a server over a Unix domain socket."""
    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    except OSError as exc:
        raise ConnectionError(f"failed to create unix socket. {exc.strerror}") from exc
    try:
        sock.connect(path)
    except OSError as exc:
        sock.close()
        raise ConnectionError(
            f"failed to connect to server. unix socket path '{path}'. error {exc.strerror}"
        ) from exc
    return sock


def connect_tcp(host: str, port: int) -> socket.socket:
    """Connect to a server over TCP/IPv4."""
    try:
        address = socket.gethostbyname(host)
    except OSError as exc:
        raise ConnectionError(f"gethostbyname failed. errmsg={exc.errno}:{exc.strerror}") from exc
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as exc:
        raise ConnectionError(f"create socket error. errmsg={exc.errno}:{exc.strerror}") from exc
    try:
        sock.connect((address, port))
    except OSError as exc:
        sock.close()
        raise ConnectionError(f"Failed to connect. errmsg={exc.errno}:{exc.strerror}") from exc
    return sock


def _parse_port(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group()) if match else 0


def parse_args(argv: Sequence[str]) -> ClientOptions:
    """Parse ``-s path``, ``-h host`` and ``-p port`` in getopt style."""
    values: dict[str, str] = {}
    args = iter(argv)
    for arg in args:
        if arg == "--":
            break
        if not arg.startswith("-") or arg == "-":
            continue
        chars = arg[1:]
        while chars:
            opt, chars = chars[0], chars[1:]
            if opt not in "shp":
                print(f"invalid option -- '{opt}'", file=sys.stderr)
                continue
            if chars:
                values[opt], chars = chars, ""
                break
            value = next(args, None)
            if value is None:
                print(f"option requires an argument -- '{opt}'", file=sys.stderr)
            else:
                values[opt] = value
    return ClientOptions(
        unix_socket_path=values.get("s"),
        host=values.get("h", HOST_DEFAULT),
        port=_parse_port(values["p"]) if "p" in values else PORT_DEFAULT,
    )


def run_session(
    sock: socket.socket,
    read_line: Callable[[str], str | None],
    out: TextIO,
) -> None:
    """Read commands, send each to the server and write its reply.

    ``read_line`` is given the prompt and returns None at end of input.
    Raises ConnectionError if a command cannot be sent.
    """
    while True:
        command = read_line(PROMPT)
        if command is None:
            break
        if not command:
            continue
        if is_exit_command(command):
            out.write("The client will be closed.\n")
            break
        try:
            sock.sendall(command.encode() + b"\0")
        except OSError as exc:
            raise ConnectionError(f"send error: {exc.errno}:{exc.strerror}") from exc
        try:
            data = sock.recv(MAX_MEM_BUFFER_SIZE)
        except OSError as exc:
            print(f"Connection was broken: {exc.strerror}", file=sys.stderr)
            break
        if not data:
            out.write("Connection has been closed\n")
            break
        out.write(data.split(b"\0", 1)[0].decode("utf-8", errors="replace"))
        out.flush()


def _read_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def main(argv: Sequence[str] | None = None) -> int:
    """Run the interactive client; returns the process exit status."""
    options = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        if options.unix_socket_path is not None:
            sock = connect_unix(options.unix_socket_path)
        else:
            sock = connect_tcp(options.host, options.port)
    except ConnectionError as exc:
        print(exc, file=sys.stderr)
        return 1
    with sock:
        try:
            run_session(sock, _read_line, sys.stdout)
        except ConnectionError as exc:
            print(f"{exc} ", file=sys.stderr)
            return 1
    sys.stdout.write("Bye.\n")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())