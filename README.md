# kisserve

kisserve is a small HTTP/1.1 static file server built on asyncio. At startup it
walks a content directory and reads every regular file into memory. It also
prepares each file's responses ahead of time: the full `200` reply, the
headers-only reply for `HEAD`, and the `304 Not Modified` reply. Once the
server is running, answering a request never touches the disk.

## Features

- Only `GET` and `HEAD` are accepted. Any other method gets
  `405 Method Not Allowed`, and the connection is then closed.
- Files come from the cache that is built at startup. A path that is not in
  the cache gets `404 File not found`, so `..` in a path cannot reach files
  outside the content directory.
- Subdirectories are walked recursively, in name order. Symbolic links are
  not followed.
- Query strings are ignored, so `/app.js?v=2` serves `/app.js`.
- A path that ends in a slash serves that directory's `index.html`. For
  example, `/docs/` serves `/docs/index.html`.
- Each file gets a weak ETag, `W/"<size>-<mtime seconds>"`, and a
  `Last-Modified` date.
- Conditional requests can return `304 Not Modified`:
  - `If-Modified-Since` returns 304 when the file is not newer than the given
    date. The date may be in IMF-fixdate, RFC 850 or asctime format. A date
    that cannot be parsed is ignored.
  - `If-None-Match` returns 304 when its value is `*` or contains the file's
    ETag.
- The content type is chosen from the file extension. The extensions covered
  are html, htm, css, js, json, xml, txt, ico, png, jpg, jpeg, gif, svg, pdf,
  woff, woff2, ttf and eot. Any other file is served as
  `application/octet-stream`.
- Two health endpoints, `/health` and `/ready`, return a small JSON status.
- Connections are handled as follows:
  - HTTP/1.1 connections are kept alive unless the client sends
    `Connection: close`.
  - HTTP/1.0 connections are kept alive only when the client sends
    `Connection: keep-alive`.
  - A connection that is idle for 5 seconds is closed.
  - A connection still open after 30 seconds in total is sent
    `408 Request Timeout` and closed.
- Bad requests are rejected:
  - A request line longer than 8192 bytes gets `413`.
  - A request line that does not have exactly method, path and version gets
    `400`.
- The server stops on SIGINT or SIGTERM.

## Installation

```
pip install kisserve
```

## Usage

Put your site in a `content` directory and start the server:

```
kisserve
```

By default the server listens on `0.0.0.0:8080` and serves `./content`. You
can change these with options:

```
kisserve --dir ./public --host 127.0.0.1 --port 9000
```

If the address cannot be bound, the command prints an error and exits with
status 1.

Files added or changed after startup are not picked up. Restart the server to
rebuild the cache.

### From Python

To run the server from Python, call `run`:

```python
from kisserve.server import run

run("./content", "127.0.0.1", 8080)
```

To run a `Server` inside your own asyncio program, build the cache yourself:

```python
import asyncio

from kisserve.cache import build_file_cache
from kisserve.server import Server


async def main():
    cache = build_file_cache("./content")
    server = Server(cache, "127.0.0.1", 8080)
    await server.serve()


asyncio.run(main())
```

`Server.start()` binds the socket without waiting for a signal. If you pass
port `0`, the port that was actually bound is stored in `server.port`.

The smaller parts can be used on their own:

```python
from kisserve.cache import build_file_cache
from kisserve.handler import respond
from kisserve.mime import get_mime_type

get_mime_type("styles/site.css").value   # 'text/css; charset=utf-8'

cache = build_file_cache("./content")
respond(cache, "/index.html", is_head=True)   # raw response bytes
```

## Example responses

```
$ curl -i http://localhost:8080/health
HTTP/1.1 200 OK
Content-Type: application/json
Content-Length: 36
X-Content-Type-Options: nosniff
Connection: keep-alive

{"status":"healthy","timestamp":"0"}
```

Every static file response carries these headers:

- `Cache-Control: public, max-age=3600`
- `X-Content-Type-Options: nosniff`
- `ETag`
- `Last-Modified`

## What it does not do

- There are no directory listings.
- A bare `/` is not mapped to the top-level `index.html`. Request
  `/index.html` instead.
- There is no HTTPS, range request support or compression.
- Request bodies are not read.
- The cache is never refreshed while the server runs.

## Running the tests

```
pip install "kisserve[test]"
pytest
```