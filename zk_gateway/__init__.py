"""ZK-PRET gateway: HTTP/WebSocket front end for the ZK-PRET proof toolchain."""

__version__ = "1.0.0"
