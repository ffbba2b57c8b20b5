"""Small HTTP/1.0 server: static files, a form echo and an editable user record."""

from __future__ import annotations

import copy
import re
import signal
import socket
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Sequence, Union

MAX_CONNECTIONS = 50
METHOD_LENGTH = 8
URL_LENGTH = 128
LOCAL_HOST = "127.0.0.1"

DEFAULT_NAME = "John Doe"
DEFAULT_AGE = 30

_ENCODING = "latin-1"
_HEADER_CAPACITY = 4096
_HEADER_MAX = 8192
_MAX_BODY = 1024
_CHUNK = 8192
_SANITIZED_LIMIT = 1024 - 6
_DECODED_LIMIT = 256 - 1
_ESCAPED_LIMIT = 512 - 2
_FILE_URL_LIMIT = 94
_POLL_SECONDS = 0.2

_SUBMIT_PAGE = (
    "<html><body><h1>Submitted Data</h1><p>{}</p>"
    "<a href='/'>Back</a></body></html>"
)

_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".css": "text/css",
    ".js": "application/javascript",
    ".html": "text/html",
    ".ttf": "font/woff2",
    ".woff": "font/woff2",
    ".woff2": "font/woff2",
    ".json": "application/json",
    ".txt": "text/plain",
}

_REASONS = {200: "OK", 404: "Not Found", 400: "Bad Request"}

_ATOI = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]*)")
_HEX_PREFIX = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9a-fA-F]*)")


class HttpError(Exception):
    """Raised when a request cannot be read or parsed."""


@dataclass
class HttpRequest:
    """Method and target of an HTTP request line."""

    method: str
    url: str


@dataclass
class UserRecord:
    """The user data that PATCH and DELETE on /api/user act upon."""

    name: str = DEFAULT_NAME
    age: int = DEFAULT_AGE

    def reset(self) -> None:
        """Restore the default name and age."""
        self.name = DEFAULT_NAME
        self.age = DEFAULT_AGE

    def to_json(self) -> str:
        """Return the record as a JSON object; the name is stored already escaped."""
        return f'{{"name":"{self.name}","age":{self.age}}}'


def _log(message: str) -> None:
    print(message, file=sys.stderr)


def _to_int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def _atoi(text: str) -> int:
    """Parse a leading decimal integer the way the C library does, 0 if none."""
    digits = _ATOI.match(text).group(1)
    if digits in ("", "+", "-"):
        return 0
    value = max(min(int(digits), 2**63 - 1), -(2**63))
    return _to_int32(value)


def _hex_prefix(text: str) -> int:
    sign, digits = _HEX_PREFIX.match(text).groups()
    if not digits:
        return 0
    value = int(digits, 16)
    return -value if sign == "-" else value


def parse_request(text: str) -> HttpRequest:
    """Split the request line into method and URL, truncating overlong parts."""
    method, space, rest = text.partition(" ")
    if not space:
        raise HttpError("request line has no space after the method")
    url, space, _ = rest.partition(" ")
    if not space:
        raise HttpError("request line has no space after the URL")
    return HttpRequest(method[: METHOD_LENGTH - 1], url[: URL_LENGTH - 1])


def get_mime_type(url: str) -> str:
    """Return the content type for the extension after the last dot in ``url``."""
    dot = url.rfind(".")
    if dot < 0:
        return "application/octet-stream"
    return _MIME_TYPES.get(url[dot:].lower(), "application/octet-stream")


def sanitize_input(body: str) -> str:
    """Escape HTML special characters, keeping the result under 1024 characters."""
    escapes = {"<": "&lt;", ">": "&gt;", "&": "&amp;", '"': "&quot;"}
    parts: list[str] = []
    length = 0
    for ch in body:
        if length >= _SANITIZED_LIMIT:
            break
        piece = escapes.get(ch, ch)
        parts.append(piece)
        length += len(piece)
    return "".join(parts)


def url_decode(src: str) -> str:
    """Decode %XX escapes; escapes that decode to zero are kept literally."""
    out: list[str] = []
    i = 0
    while i < len(src) and len(out) < _DECODED_LIMIT:
        if src[i] == "%" and i + 2 < len(src):
            decoded = _hex_prefix(src[i + 1 : i + 3]) & 0xFF
            if decoded:
                out.append(chr(decoded))
                i += 3
                continue
        out.append(src[i])
        i += 1
    return "".join(out)


def http_headers(code: int) -> bytes:
    """Return the status line and fixed headers sent ahead of every reply."""
    reason = _REASONS.get(code, "Internal Server Error")
    text = (
        f"HTTP/1.0 {code} {reason}\r\n"
        "Server: based\r\n"
        "Cache-Control: no-store, no-cache, max-age=0, private\r\n"
        "Content-Language: en\r\n"
        "Expires: -1\r\n"
        "X-Frame-Options: SAMEORIGIN\r\n"
    )
    return text.encode(_ENCODING)[:511]


def http_response(content_type: str, data: str) -> bytes:
    """Return a complete 200 response carrying ``data``, capped at 2047 bytes."""
    payload = data.encode(_ENCODING, "replace")
    head = (
        "HTTP/1.0 200 OK\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(payload)}\r\n\r\n"
    ).encode(_ENCODING, "replace")
    return (head + payload)[:2047]


def read_header(stream: BinaryIO) -> str:
    """Read until the blank line ending the headers, at most about 8 KiB."""
    reader = getattr(stream, "read1", stream.read)
    buf = bytearray()
    capacity = _HEADER_CAPACITY
    while len(buf) < _HEADER_MAX:
        chunk = reader(capacity - len(buf) - 1)
        if not chunk:
            break
        buf += chunk
        if b"\r\n\r\n" in buf:
            break
        if len(buf) >= capacity - 1:
            if capacity >= _HEADER_MAX:
                raise HttpError("request too large")
            capacity *= 2
    if not buf:
        raise HttpError("empty request")
    return buf.decode(_ENCODING)


def read_body(stream: BinaryIO, header: str) -> Optional[str]:
    """Return the body announced by Content-Length (1..1024 bytes), else None."""
    marker = "Content-Length: "
    at = header.find(marker)
    if at < 0:
        return None
    length = _atoi(header[at + len(marker) :])
    if not 0 < length <= _MAX_BODY:
        return None
    body = bytearray()
    start = header.find("\r\n\r\n")
    if start >= 0:
        body += header[start + 4 :][:length].encode(_ENCODING)
    while len(body) < length:
        chunk = stream.read(length - len(body))
        if not chunk:
            _log("body read failure: connection closed")
            return None
        body += chunk
    return body.decode(_ENCODING)


def _reply(wfile: BinaryIO, code: int, content_type: str, data: str) -> None:
    try:
        wfile.write(http_headers(code))
        wfile.write(http_response(content_type, data))
        wfile.flush()
    except OSError as exc:
        _log(f"write failure: {exc}")


def _send_file(wfile: BinaryIO, mime_type: str, handle: BinaryIO, size: int) -> bool:
    head = (
        "HTTP/1.0 200 OK\r\n"
        f"Content-Type: {mime_type}\r\n"
        f"Content-Length: {size}\r\n"
        "Cache-Control: no-cache\r\n\r\n"
    )
    try:
        wfile.write(head.encode(_ENCODING))
        remaining = size
        while remaining > 0:
            chunk = handle.read(min(remaining, _CHUNK))
            if not chunk:
                _log("send_file read failure")
                return False
            wfile.write(chunk)
            remaining -= len(chunk)
        wfile.flush()
    except OSError as exc:
        _log(f"send_file failure: {exc}")
        return False
    return True


def _serve_path(wfile: BinaryIO, path: Path, label: str, mime_type: str) -> None:
    try:
        handle = open(path, "rb")
    except OSError as exc:
        _log(f"Failed to read file: {label} ({exc.strerror})")
        _reply(wfile, 404, "text/plain", "File not found")
        return
    with handle:
        _log(f"Serving file {label} with MIME type {mime_type}")
        size = Path(path).stat().st_size
        if not _send_file(wfile, mime_type, handle, size):
            _reply(wfile, 500, "text/plain", "Server error")


def _escape_json(name: str) -> str:
    parts: list[str] = []
    length = 0
    for ch in name:
        if length >= _ESCAPED_LIMIT:
            break
        piece = "\\" + ch if ch in '"\\' else ch
        parts.append(piece)
        length += len(piece)
    return "".join(parts)


def _update_user(rfile: BinaryIO, wfile: BinaryIO, header: str, user: UserRecord) -> bool:
    body = read_body(rfile, header)
    if body is None:
        _reply(wfile, 400, "text/plain", "No new input provided")
        return False
    name_at = body.find("name=")
    age_at = body.find("age=")
    new_name = ""
    if name_at >= 0:
        raw = body[name_at + 5 :].split("&", 1)[0][:_DECODED_LIMIT]
        new_name = url_decode(raw)
    new_age = 0
    if age_at >= 0:
        segment = body[age_at + 4 :].split("&", 1)[0]
        if len(segment) > 10:
            _reply(wfile, 400, "text/plain", "Invalid age format")
            return False
        new_age = _atoi(body[age_at + 4 :])
    if name_at < 0 and age_at < 0:
        _reply(wfile, 400, "text/plain", "Invalid data format")
        return False
    escaped = _escape_json(new_name)
    if name_at >= 0:
        user.name = escaped
    if age_at >= 0:
        user.age = new_age
    answer = UserRecord(escaped, user.age).to_json()[:1023]
    _reply(wfile, 200, "application/json", answer)
    return True


def handle_connection(
    rfile: BinaryIO, wfile: BinaryIO, user: UserRecord, root: Union[str, Path]
) -> bool:
    """Serve one request read from ``rfile``; return False when it was refused."""
    root = Path(root)
    try:
        header = read_header(rfile)
        request = parse_request(header)
    except HttpError as exc:
        _log(str(exc))
        return False

    method, url = request.method, request.url
    body = read_body(rfile, header) if method == "POST" else None

    if method == "POST" and url == "/api/submit":
        if body is not None:
            page = _SUBMIT_PAGE.format(sanitize_input(body))[:2047]
            _reply(wfile, 200, "text/html", page)
        else:
            _reply(wfile, 400, "text/plain", "No data submitted")
        return True

    if method == "GET" and url.startswith("/static/"):
        _log(f"Serving static file: {url}")
        file_url = url[1:][:_FILE_URL_LIMIT]
        if ".." in file_url:
            _reply(wfile, 403, "text/plain", "Forbidden")
            return False
        _serve_path(wfile, root / file_url, file_url, get_mime_type(url))
        return True

    if method == "GET" and url == "/":
        _serve_path(wfile, root / "index.html", "index.html", get_mime_type("index.html"))
        return True

    if url == "/api/user" and method in ("PATCH", "DELETE"):
        if method == "DELETE":
            user.reset()
            _reply(wfile, 200, "text/plain", "User data deleted")
            return True
        return _update_user(rfile, wfile, header, user)

    _reply(wfile, 404, "text/plain", "Page Not Found")
    return True


class BasedServer:
    """Listening TCP server; every connection works on its own copy of the user record."""

    def __init__(
        self,
        bind_addr: str = LOCAL_HOST,
        port: int = 0,
        root: Union[str, Path] = ".",
    ) -> None:
        try:
            packed = socket.inet_aton(bind_addr)
        except OSError:
            raise ValueError("Invalid bind address") from None
        if packed == b"\xff\xff\xff\xff":
            raise ValueError("Invalid bind address")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((socket.inet_ntoa(packed), port))
            sock.listen(5)
        except (OSError, OverflowError):
            sock.close()
            raise
        self._socket: Optional[socket.socket] = sock
        self.bind_addr = bind_addr
        self.port = sock.getsockname()[1]
        self.root = Path(root)
        self.user = UserRecord()
        self.active_connections = 0
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._serving = False

    def _close_socket(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError as exc:
                _log(f"Failed to close server socket: {exc}")
            self._socket = None

    def _serve_client(self, conn: socket.socket) -> None:
        try:
            conn.settimeout(None)
            with conn, conn.makefile("rb") as rfile, conn.makefile("wb") as wfile:
                handle_connection(rfile, wfile, copy.copy(self.user), self.root)
        except OSError as exc:
            _log(f"connection failure: {exc}")
        finally:
            with self._lock:
                self.active_connections -= 1

    def serve_forever(self) -> None:
        """Accept connections until shutdown() is called, then close the socket."""
        if self._socket is None:
            raise RuntimeError("server socket is closed")
        self._serving = True
        self._socket.settimeout(_POLL_SECONDS)
        try:
            while not self._stop.is_set():
                with self._lock:
                    full = self.active_connections >= MAX_CONNECTIONS
                if full:
                    _log("Too many connections")
                    self._stop.wait(_POLL_SECONDS)
                    continue
                try:
                    conn, _ = self._socket.accept()
                except socket.timeout:
                    continue
                except OSError as exc:
                    if self._stop.is_set():
                        break
                    _log(f"accept failure: {exc}")
                    continue
                with self._lock:
                    self.active_connections += 1
                    count = self.active_connections
                print(f"Incoming connection ({count}/{MAX_CONNECTIONS})", flush=True)
                threading.Thread(
                    target=self._serve_client, args=(conn,), daemon=True
                ).start()
        finally:
            self._serving = False
            self._close_socket()
            print("Shutting down server...", flush=True)

    def shutdown(self) -> None:
        """Ask serve_forever() to stop; close the socket at once if not serving."""
        self._stop.set()
        if not self._serving:
            self._close_socket()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Serve the current directory on 127.0.0.1 at the port given first."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        _log("Usage: based-server <listening port> [bind_addr]")
        return 1
    port_text = args[0]
    try:
        server = BasedServer(LOCAL_HOST, _atoi(port_text), Path.cwd())
    except (OSError, ValueError, OverflowError) as exc:
        _log(f"Server initialization failed: {exc}")
        return 1
    print(f"Listening on {LOCAL_HOST}:{port_text}", flush=True)

    previous = None
    in_main_thread = threading.current_thread() is threading.main_thread()
    if in_main_thread:
        previous = signal.signal(signal.SIGINT, lambda signum, frame: server.shutdown())
    try:
        server.serve_forever()
    finally:
        if in_main_thread:
            signal.signal(signal.SIGINT, previous)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())