"""ZK-PRET gateway server entry point.

Usage:
    # Defaults from environment / .env (ZK_PRET_* variables):
    python run_server.py

    # Custom host/port and toolchain location:
    python run_server.py --host 0.0.0.0 --port 3001 --stdio-path /opt/zk-pret-test-v3.6

    # Synchronous execution only:
    python run_server.py --disable-async
"""
from __future__ import annotations

import argparse
import logging

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="ZK-PRET Gateway Server")
    parser.add_argument("--host", default=None, help="Bind address (default: ZK_PRET_HOST or localhost)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: ZK_PRET_PORT or 3001)")
    parser.add_argument("--stdio-path", default=None, help="ZK-PRET toolchain directory")
    parser.add_argument("--timeout", type=float, default=None, help="Per-execution timeout in seconds")
    parser.add_argument("--disable-async", action="store_true", help="Reject asynchronous job submissions")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    import uvicorn

    from zk_gateway.api.config import ApiSettings
    from zk_gateway.api.main import create_app

    overrides = {"log_level": args.log_level.upper()}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.stdio_path is not None:
        overrides["stdio_path"] = args.stdio_path
    if args.timeout is not None:
        overrides["execution_timeout"] = args.timeout
    if args.disable_async:
        overrides["enable_async_jobs"] = False

    settings = ApiSettings(**overrides)

    if args.reload:
        # uvicorn reloads by import string, so settings come from the environment.
        uvicorn.run("zk_gateway.api.main:create_app", factory=True, host=settings.host,
                    port=settings.port, reload=True)
        return

    app = create_app(settings)
    logger.info("Starting ZK-PRET gateway on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
