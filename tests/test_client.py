import socket
import threading

import pytest

from rmdb import client


@pytest.mark.parametrize("cmd", ["exit", "exit;", "bye", "bye;"])
def test_exit_commands_recognised(cmd):
    assert client.is_exit_command(cmd) is True


@pytest.mark.parametrize("cmd", ["", "EXIT", "exit ;", "select * from t;", "quit"])
def test_other_commands_are_not_exit(cmd):
    assert client.is_exit_command(cmd) is False


def test_receive_reply_stops_at_nul():
    a, b = socket.socketpair()
    with a, b:
        b.sendall(b"hello\0garbage")
        assert client.receive_reply(a) == "hello"


def test_receive_reply_without_nul_returns_all():
    a, b = socket.socketpair()
    with a, b:
        b.sendall(b"abc")
        assert client.receive_reply(a) == "abc"


def test_receive_reply_returns_none_on_close():
    a, b = socket.socketpair()
    with a:
        b.close()
        assert client.receive_reply(a) is None


def _serve(listener, replies, received):
    conn, _ = listener.accept()
    with conn:
        buf = b""
        while True:
            data = conn.recv(4096)
            if not data:
                return
            buf += data
            while b"\0" in buf:
                cmd, _, buf = buf.partition(b"\0")
                received.append(cmd.decode())
                conn.sendall(replies.pop(0) + b"\0")


def _start_server(replies):
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    received = []
    thread = threading.Thread(target=_serve, args=(listener, replies, received), daemon=True)
    thread.start()
    return listener, thread, received


def test_connect_tcp_round_trip():
    listener, thread, received = _start_server([b"pong"])
    port = listener.getsockname()[1]
    with listener:
        sock = client.connect("127.0.0.1", port)
        with sock:
            sock.sendall(b"ping\0")
            assert client.receive_reply(sock) == "pong"
        thread.join(timeout=5)
    assert received == ["ping"]


def _unused_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


def test_connect_refused_raises():
    with pytest.raises(OSError):
        client.connect("127.0.0.1", _unused_port())


def test_main_returns_one_when_server_missing(capsys):
    assert client.main(["-h", "127.0.0.1", "-p", str(_unused_port())]) == 1
    assert "Failed to connect" in capsys.readouterr().err


def test_main_sends_commands_and_prints_replies(monkeypatch, capsys):
    listener, thread, received = _start_server([b"first\n", b"second\n"])
    port = listener.getsockname()[1]
    lines = iter(["help;", "", "show tables;", "exit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    with listener:
        status = client.main(["-h", "127.0.0.1", "-p", str(port)])
        thread.join(timeout=5)
    out = capsys.readouterr().out
    assert status == 0
    assert received == ["help;", "show tables;"]
    assert "first\nsecond\n" in out
    assert "The client will be closed.\n" in out
    assert out.endswith("Bye.\n")


def test_main_stops_at_end_of_input(monkeypatch, capsys):
    listener, thread, received = _start_server([])

    def eof(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", eof)
    port = listener.getsockname()[1]
    with listener:
        status = client.main(["-p", str(port)])
        thread.join(timeout=5)
    assert status == 0
    assert received == []
    assert capsys.readouterr().out == "Bye.\n"