"""In-memory static file HTTP server with precomputed responses."""

__version__ = "0.2.1"
__all__ = ["cache", "handler", "httputil", "mime", "responses", "server"]