"""An embeddable asyncio HTTP server engine: header parsing, byte ranges, sockets, method dispatch and proxying."""

__version__ = "1.0.0"

__all__ = [
    "copier",
    "headers",
    "methodhandler",
    "parser",
    "proxy",
    "range",
    "server",
    "socket",
]