"""In-memory cache of prebuilt responses for every file under the static directory."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

from .httputil import format_http_date
from .mime import get_mime_type

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
_INDEX_SUFFIX = "/index.html"


@dataclass(frozen=True)
class CacheEntry:
    """Everything needed to answer a request for one file without touching the disk."""

    complete_response: bytes
    headers_only: bytes
    not_modified_response: bytes
    last_modified: int
    etag: str


def normalize_path_hash(path: str) -> tuple[int, bool]:
    """Hash a request path with 32-bit FNV-1a.

    The query string is ignored and a trailing slash (on anything longer than
    ``/``) is dropped. Returns the hash and whether the path ended in a slash.
    """
    data = path.encode("utf-8", "surrogateescape").split(b"?", 1)[0]
    directory_style = len(data) > 1 and data.endswith(b"/")
    if directory_style:
        data = data[:-1]
    value = FNV_OFFSET_BASIS
    for byte in data:
        value = ((value ^ byte) * FNV_PRIME) & 0xFFFFFFFF
    return value, directory_style


@dataclass
class PathTrie:
    """Maps request paths to cache entries, resolving directory paths to index.html."""

    _exact: dict[int, CacheEntry] = field(default_factory=dict)
    _index: dict[int, CacheEntry] = field(default_factory=dict)

    def insert(self, path: str, entry: CacheEntry) -> None:
        """Register an entry under its URL path, and under its directory for index files."""
        path_hash, _ = normalize_path_hash(path)
        self._exact[path_hash] = entry
        if path.endswith(_INDEX_SUFFIX):
            dir_hash, _ = normalize_path_hash(path[: -len(_INDEX_SUFFIX)])
            self._index[dir_hash] = entry

    def get(self, path: str) -> CacheEntry | None:
        """Look up a request path; directory-style paths fall back to their index file."""
        path_hash, directory_style = normalize_path_hash(path)
        entry = self._exact.get(path_hash)
        if entry is not None:
            return entry
        if directory_style or path == "/":
            return self._index.get(path_hash)
        return None

    def __len__(self) -> int:
        return len(self._exact)


def build_cache_entry(file_path: str | os.PathLike[str]) -> CacheEntry:
    """Read a file and prebuild its 200, HEAD and 304 responses."""
    stat = os.stat(file_path)
    last_modified = max(0, stat.st_mtime_ns // 1_000_000_000)
    etag = f'W/"{stat.st_size}-{last_modified}"'
    mime = get_mime_type(file_path).value
    last_modified_str = format_http_date(last_modified)

    with open(file_path, "rb") as handle:
        content = handle.read()

    headers = (
        "HTTP/1.1 200 OK\r\n"
        f"Content-Type: {mime}\r\n"
        f"Content-Length: {len(content)}\r\n"
        f"Last-Modified: {last_modified_str}\r\n"
        f"ETag: {etag}\r\n"
        "Cache-Control: public, max-age=3600\r\n"
        "X-Content-Type-Options: nosniff\r\n"
        "Connection: keep-alive\r\n\r\n"
    ).encode("utf-8")
    not_modified = (
        "HTTP/1.1 304 Not Modified\r\n"
        f"ETag: {etag}\r\n"
        "Cache-Control: public, max-age=3600\r\n"
        "Connection: keep-alive\r\n\r\n"
    ).encode("utf-8")

    return CacheEntry(
        complete_response=headers + content,
        headers_only=headers,
        not_modified_response=not_modified,
        last_modified=last_modified,
        etag=etag,
    )


def _discover(base_dir: str, relative: str, cache: PathTrie) -> None:
    full_path = os.path.join(base_dir, relative) if relative else base_dir
    with os.scandir(full_path) as entries:
        children = sorted(entries, key=lambda item: item.name)
    for entry in children:
        child_relative = f"{relative}/{entry.name}" if relative else entry.name
        if entry.is_file(follow_symlinks=False):
            try:
                cache_entry = build_cache_entry(entry.path)
            except OSError:
                continue
            cache.insert("/" + child_relative, cache_entry)
        elif entry.is_dir(follow_symlinks=False):
            _discover(base_dir, child_relative, cache)


def discover_files(base_dir: str | os.PathLike[str], cache: PathTrie) -> None:
    """Walk ``base_dir`` recursively and add every regular file to ``cache``.

    Raises OSError when a directory cannot be listed; files that cannot be
    read are skipped.
    """
    _discover(os.fspath(base_dir), "", cache)


def build_file_cache(static_dir: str | os.PathLike[str]) -> PathTrie:
    """Build the cache for a static directory, warning instead of failing on errors."""
    cache = PathTrie()
    try:
        discover_files(static_dir, cache)
    except OSError as exc:
        print(f"Warning: Failed to build file cache: {exc}", file=sys.stderr)
    print(f"Optimized file cache built with {len(cache)} entries")
    return cache