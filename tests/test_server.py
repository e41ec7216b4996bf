import asyncio
import contextlib
import socket

import pytest

from kisserve import responses
from kisserve.cache import build_file_cache
from kisserve.server import Server, main


@pytest.fixture
def cache(tmp_path):
    (tmp_path / "index.html").write_text("<html><body>Home Page</body></html>")
    (tmp_path / "style.css").write_text("body { color: blue; }")
    (tmp_path / "app.js").write_text("console.log('Test app');")
    (tmp_path / "test.svg").write_text('<svg xmlns="urn:test"><circle r="10"/></svg>')
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "style.css").write_text("p { margin: 0; }")
    return build_file_cache(tmp_path)


@contextlib.asynccontextmanager
async def running(cache, keepalive=0.2, connection_timeout=5.0):
    server = Server(cache, "127.0.0.1", 0)
    server.keepalive_timeout = keepalive
    server.connection_timeout = connection_timeout
    listener = await server.start()
    try:
        yield server.port
    finally:
        listener.close()


async def exchange(port, data):
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    try:
        writer.write(data)
        await writer.drain()
        return await asyncio.wait_for(reader.read(), 5)
    finally:
        writer.close()


def get(path, *headers, method="GET", version="HTTP/1.1"):
    lines = [f"{method} {path} {version}", "Host: localhost", *headers, "", ""]
    return "\r\n".join(lines).encode("utf-8")


def split(response):
    head, _, body = response.partition(b"\r\n\r\n")
    return head.decode("utf-8"), body


def header(response, name):
    head, _ = split(response)
    for line in head.split("\r\n")[1:]:
        key, _, value = line.partition(": ")
        if key.lower() == name.lower():
            return value
    return None


@pytest.mark.asyncio
async def test_health_endpoint(cache):
    async with running(cache) as port:
        response = await exchange(port, get("/health"))
    assert response.startswith(b"HTTP/1.1 200 OK")
    assert header(response, "Content-Type") == "application/json"
    _, body = split(response)
    assert b'"status":"healthy"' in body
    assert b"timestamp" in body
    assert int(header(response, "Content-Length")) == len(body)


@pytest.mark.asyncio
async def test_ready_endpoint(cache):
    async with running(cache) as port:
        response = await exchange(port, get("/ready"))
    assert response == responses.READY_COMPLETE
    assert b'"status":"ready"' in response


@pytest.mark.asyncio
async def test_head_health_has_no_body(cache):
    async with running(cache) as port:
        response = await exchange(port, get("/health", method="HEAD"))
    assert response == responses.HEALTH_HEADERS
    assert split(response)[1] == b""


@pytest.mark.asyncio
async def test_missing_file_is_404(cache):
    async with running(cache) as port:
        response = await exchange(port, get("/nonexistent.html"))
    assert response == responses.NOT_FOUND
    assert b"File not found" in response


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH", "OPTIONS"])
async def test_other_methods_rejected(cache, method):
    async with running(cache) as port:
        response = await exchange(port, f"{method} /index.html HTTP/1.1\r\n".encode())
    assert response == responses.METHOD_NOT_ALLOWED


@pytest.mark.asyncio
@pytest.mark.parametrize("line", ["INVALID REQUEST\r\n", "GET\r\n", "GET /health\r\n"])
async def test_malformed_request_line(cache, line):
    async with running(cache) as port:
        response = await exchange(port, line.encode())
    assert response == responses.BAD_REQUEST


@pytest.mark.asyncio
async def test_extra_spaces_accepted(cache):
    async with running(cache) as port:
        response = await exchange(port, b"GET  /health  HTTP/1.1\r\n\r\n")
    assert response.startswith(b"HTTP/1.1 200 OK")


@pytest.mark.asyncio
async def test_unknown_version_still_answered(cache):
    async with running(cache, keepalive=30.0) as port:
        response = await exchange(port, get("/health", version="INVALID/1.1"))
    assert response == responses.HEALTH_COMPLETE


@pytest.mark.asyncio
async def test_oversized_request_line(cache):
    request = f"GET /{'a' * 9000} HTTP/1.1\r\n".encode()
    async with running(cache) as port:
        response = await exchange(port, request)
    assert response == responses.REQUEST_TOO_LARGE


@pytest.mark.asyncio
async def test_request_without_host_header(cache):
    async with running(cache) as port:
        response = await exchange(port, b"GET /health HTTP/1.1\r\n\r\n")
    assert response == responses.HEALTH_COMPLETE


@pytest.mark.asyncio
async def test_blank_lines_before_request_are_skipped(cache):
    async with running(cache) as port:
        response = await exchange(port, b"\r\n\r\nGET /health HTTP/1.1\r\nConnection: close\r\n\r\n")
    assert response == responses.HEALTH_COMPLETE


@pytest.mark.asyncio
async def test_connection_close_ends_connection(cache):
    async with running(cache, keepalive=30.0) as port:
        response = await exchange(port, get("/health", "Connection: close"))
    assert response == responses.HEALTH_COMPLETE


@pytest.mark.asyncio
async def test_http10_closes_by_default(cache):
    async with running(cache, keepalive=30.0) as port:
        response = await exchange(port, get("/ready", version="HTTP/1.0"))
    assert response == responses.READY_COMPLETE


@pytest.mark.asyncio
async def test_keep_alive_serves_several_requests(cache):
    async with running(cache, keepalive=5.0) as port:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        try:
            writer.write(get("/health"))
            await writer.drain()
            first = await asyncio.wait_for(reader.readexactly(len(responses.HEALTH_COMPLETE)), 5)
            writer.write(get("/ready", "Connection: close"))
            await writer.drain()
            second = await asyncio.wait_for(reader.read(), 5)
        finally:
            writer.close()
    assert first == responses.HEALTH_COMPLETE
    assert second == responses.READY_COMPLETE


@pytest.mark.asyncio
async def test_incomplete_request_times_out(cache):
    async with running(cache, keepalive=5.0, connection_timeout=0.3) as port:
        response = await exchange(port, b"GET /health HTTP/1.1\r\nHost: localhost")
    assert response == responses.REQUEST_TIMEOUT


@pytest.mark.asyncio
async def test_security_headers_on_cached_files(cache):
    async with running(cache) as port:
        response = await exchange(port, get("/index.html"))
    assert header(response, "X-Content-Type-Options") == "nosniff"
    assert header(response, "X-Frame-Options") is None
    assert header(response, "Content-Security-Policy") is None
    assert header(response, "ETag").startswith('W/"')
    assert header(response, "Last-Modified").endswith(" GMT")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "content_type"),
    [
        ("/test.svg", "image/svg+xml"),
        ("/style.css", "text/css; charset=utf-8"),
        ("/app.js", "text/javascript; charset=utf-8"),
        ("/index.html", "text/html; charset=utf-8"),
        ("/css/style.css", "text/css; charset=utf-8"),
    ],
)
async def test_content_types_with_caching(cache, path, content_type):
    async with running(cache) as port:
        response = await exchange(port, get(path))
    assert response.startswith(b"HTTP/1.1 200 OK")
    assert header(response, "Content-Type") == content_type
    assert header(response, "Cache-Control") == "public, max-age=3600"
    _, body = split(response)
    assert int(header(response, "Content-Length")) == len(body)


@pytest.mark.asyncio
async def test_svg_body_served(cache):
    async with running(cache) as port:
        response = await exchange(port, get("/test.svg"))
    assert b"<svg xmlns" in split(response)[1]


@pytest.mark.asyncio
async def test_etag_conditional_requests(cache):
    async with running(cache) as port:
        etag = header(await exchange(port, get("/index.html")), "ETag")
        matching = await exchange(port, get("/index.html", f"If-None-Match: {etag}"))
        other = await exchange(port, get("/index.html", 'If-None-Match: W/"999-999"'))
        wildcard = await exchange(port, get("/index.html", "If-None-Match: *"))
    assert matching.startswith(b"HTTP/1.1 304 Not Modified")
    assert header(matching, "Cache-Control") == "public, max-age=3600"
    assert header(matching, "ETag") == etag
    assert other.startswith(b"HTTP/1.1 200 OK")
    assert wildcard.startswith(b"HTTP/1.1 304 Not Modified")


@pytest.mark.asyncio
async def test_if_modified_since(cache):
    async with running(cache) as port:
        last_modified = header(await exchange(port, get("/index.html")), "Last-Modified")
        same = await exchange(port, get("/index.html", f"If-Modified-Since: {last_modified}"))
        older = await exchange(port, get("/index.html", "If-Modified-Since: Mon, 01 Jan 1990 00:00:00 GMT"))
    assert same.startswith(b"HTTP/1.1 304 Not Modified")
    assert older.startswith(b"HTTP/1.1 200 OK")


@pytest.mark.asyncio
async def test_etag_and_timestamp_headers_together(cache):
    async with running(cache) as port:
        etag = header(await exchange(port, get("/index.html")), "ETag")
        matched = await exchange(
            port, get("/index.html", "If-Modified-Since: timestamp_0", f"If-None-Match: {etag}")
        )
        unmatched = await exchange(
            port, get("/index.html", "If-Modified-Since: timestamp_9999999999", 'If-None-Match: W/"999-999"')
        )
    assert matched.startswith(b"HTTP/1.1 304 Not Modified")
    assert unmatched.startswith(b"HTTP/1.1 200 OK")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name", ["if-none-match", "If-None-Match", "IF-NONE-MATCH", "If-none-match", "if-None-Match"]
)
async def test_header_names_case_insensitive(cache, name):
    async with running(cache) as port:
        etag = header(await exchange(port, get("/index.html")), "ETag")
        response = await exchange(port, get("/index.html", f"{name}: {etag}"))
    assert response.startswith(b"HTTP/1.1 304 Not Modified")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "value",
    ["malformed-etag-without-quotes", '"missing-closing-quote', "W/malformed-weak-etag", 'W/"' + "x" * 10000 + '"'],
)
async def test_unmatched_or_malformed_etags_return_file(cache, value):
    async with running(cache) as port:
        response = await exchange(port, get("/index.html", f"If-None-Match: {value}"))
    assert response.startswith(b"HTTP/1.1 200 OK")
    assert header(response, "ETag").startswith("W/")


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["not-a-valid-date", "2023-13-45 25:70:80", "Mon, 32 Dec 2023 24:00:00 GMT"])
async def test_malformed_dates_ignored(cache, value):
    async with running(cache) as port:
        response = await exchange(port, get("/index.html", f"If-Modified-Since: {value}"))
    assert response.startswith(b"HTTP/1.1 200 OK")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "status"),
    [
        ("/index.html?v=1", b"HTTP/1.1 200 OK"),
        ("/style.css?version=2", b"HTTP/1.1 200 OK"),
        ("/app.js?timestamp=123", b"HTTP/1.1 200 OK"),
        ("/nonexistent.html?param=value", b"HTTP/1.1 404 Not Found"),
    ],
)
async def test_query_parameters(cache, path, status):
    async with running(cache) as port:
        response = await exchange(port, get(path))
    assert response.startswith(status)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path",
    [
        "/../etc/passwd",
        "/css/../../../etc/passwd",
        "/./././../etc/passwd",
        "/css/../index.html",
        "/kiss",
        "/etc/passwd",
        "/css/",
    ],
)
async def test_paths_outside_cache_are_404(cache, path):
    async with running(cache) as port:
        response = await exchange(port, get(path))
    assert response == responses.NOT_FOUND


@pytest.mark.asyncio
async def test_head_file_has_headers_only(cache):
    async with running(cache) as port:
        response = await exchange(port, get("/index.html", method="HEAD"))
    assert response.startswith(b"HTTP/1.1 200 OK")
    assert header(response, "Content-Length") == str(len("<html><body>Home Page</body></html>"))
    assert split(response)[1] == b""


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit):
        main(["--port", "not-a-number"])


def test_main_reports_port_in_use(tmp_path):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen()
        port = busy.getsockname()[1]
        assert main(["--dir", str(tmp_path), "--host", "127.0.0.1", "--port", str(port)]) == 1