"""Interactive command-line client for the database server."""

from __future__ import annotations

import argparse
import re
import socket
import sys

try:
    import readline
except ImportError:  # pragma: no cover - platform without readline
    readline = None

MAX_MEM_BUFFER_SIZE = 8192
PORT_DEFAULT = 8765
DEFAULT_HOST = "127.0.0.1"
PROMPT = "Rucbase> "

_EXIT_COMMANDS = frozenset({"exit", "exit;", "bye", "bye;"})


def is_exit_command(cmd: str) -> bool:
    """Return True if the command asks the client to quit."""
    return cmd in _EXIT_COMMANDS


def connect(
    host: str = DEFAULT_HOST,
    port: int = PORT_DEFAULT,
    unix_socket_path: str | None = None,
) -> socket.socket:
    """Open a stream connection to the server.

    A Unix domain socket is used when ``unix_socket_path`` is given,
    otherwise a TCP connection to ``host``:``port``. Raises ``OSError``
    when the connection cannot be made.
    """
    if unix_socket_path is not None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        target: object = unix_socket_path
    else:
        address = socket.gethostbyname(host)
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        target = (address, port)
    try:
        sock.connect(target)
    except OSError:
        sock.close()
        raise
    return sock


def receive_reply(sock: socket.socket) -> str | None:
    """Read one reply from the server.

    Returns the text up to the first NUL byte, or ``None`` when the
    server has closed the connection.
    """
    data = sock.recv(MAX_MEM_BUFFER_SIZE)
    if not data:
        return None
    text, _, _ = data.partition(b"\0")
    return text.decode("utf-8", errors="replace")


def _parse_port(text: str) -> int:
    """Parse a port the lenient way: leading decimal digits, else 0."""
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rmdb-client", add_help=False)
    parser.add_argument("-s", dest="unix_socket_path", default=None)
    parser.add_argument("-h", dest="host", default=DEFAULT_HOST)
    parser.add_argument("-p", dest="port", type=_parse_port, default=PORT_DEFAULT)
    return parser


def _read_commands():
    """Yield lines typed by the user until end of input."""
    while True:
        try:
            yield input(PROMPT)
        except EOFError:
            return


def main(argv: list[str] | None = None) -> int:
    """Run the interactive client; returns the process exit status."""
    args = _build_parser().parse_args(argv)

    try:
        sock = connect(args.host, args.port, args.unix_socket_path)
    except OSError as exc:
        if args.unix_socket_path is not None:
            print(
                f"failed to connect to server. unix socket path "
                f"'{args.unix_socket_path}'. error {exc}",
                file=sys.stderr,
            )
        else:
            print(f"Failed to connect. errmsg={exc.errno}:{exc}", file=sys.stderr)
        return 1

    with sock:
        for command in _read_commands():
            if not command:
                continue
            if readline is not None:
                readline.add_history(command)
            if is_exit_command(command):
                print("The client will be closed.")
                break
            try:
                sock.sendall(command.encode("utf-8") + b"\0")
            except OSError as exc:
                print(f"send error: {exc.errno}:{exc} \n", file=sys.stderr)
                return 1
            try:
                reply = receive_reply(sock)
            except OSError as exc:
                print(f"Connection was broken: {exc}", file=sys.stderr)
                break
            if reply is None:
                print("Connection has been closed")
                break
            print(reply, end="")
    print("Bye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())