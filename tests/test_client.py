import io
import socket
import threading

from ostepkit.client import main, print_response, send_request
from ostepkit.netio import open_listen
from ostepkit.request import handle_request


def test_send_request_wire_format():
    out = io.BytesIO()
    send_request(out, "/index.html", "myhost")
    assert out.getvalue() == b"GET /index.html HTTP/1.1\nhost: myhost\n\r\n"


def test_print_response_marks_headers():
    stream = io.BytesIO(b"HTTP/1.0 200 OK\r\nA: b\r\n\r\nline1\nline2")
    out = io.StringIO()
    print_response(stream, out)
    assert out.getvalue() == "Header: HTTP/1.0 200 OK\r\nHeader: A: b\r\nline1\nline2"


def test_print_response_headers_only():
    stream = io.BytesIO(b"HTTP/1.0 404 Not found\r\n")
    out = io.StringIO()
    print_response(stream, out)
    assert out.getvalue() == "Header: HTTP/1.0 404 Not found\r\n"


def test_main_wrong_argument_count(capsys):
    assert main(["localhost", "80"]) == 1
    assert "Usage: wclient <host> <port> <filename>" in capsys.readouterr().err


def test_main_connection_refused(capsys):
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    assert main(["127.0.0.1", str(port), "/"]) == 1
    assert "wclient:" in capsys.readouterr().err


def test_main_fetches_file(tmp_path, monkeypatch, capsys):
    (tmp_path / "page.html").write_bytes(b"<p>body</p>")
    monkeypatch.chdir(tmp_path)
    with open_listen(0) as listener:
        port = listener.getsockname()[1]

        def serve_once():
            conn, _ = listener.accept()
            with conn:
                handle_request(conn)

        worker = threading.Thread(target=serve_once, daemon=True)
        worker.start()
        assert main(["127.0.0.1", str(port), "/page.html"]) == 0
        worker.join(timeout=5)
    out = capsys.readouterr().out
    assert "Header: HTTP/1.0 200 OK\r\n" in out
    assert "Header: Content-Type: text/html\r\n" in out
    assert out.endswith("<p>body</p>")