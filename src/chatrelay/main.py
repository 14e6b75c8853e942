# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the main unit so this responsibility stays isolated, testable, and easy to evolve.

Main application entry point for the chatrelay server.
Includes configuration wiring, error handling, and router registration.
"""

from __future__ import annotations

import argparse
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional

import httpx
from fastapi import FastAPI, APIRouter, Request
from fastapi.responses import JSONResponse

from chatrelay.core.config import load_relay_config
from chatrelay.models.config import RelayConfig
from chatrelay.services.chat.chat_view_ops import ChatView
from chatrelay.services.exceptions import ServiceError

from chatrelay.api.proxy import router as proxy_router  # noqa: E402
from chatrelay.api.chat import router as chat_router, page_router  # noqa: E402
from chatrelay.api.debug import router as debug_router  # noqa: E402

# Host used for in-process calls from the chat view to the proxy endpoints.
SAME_ORIGIN_BASE_URL = "http://chatrelay"


def build_same_origin_client(app: FastAPI) -> httpx.AsyncClient:
    """Client the chat view uses to reach this app's own ``/api`` routes.

    No timeout: a slow backend keeps the view busy until it answers.
    """
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url=SAME_ORIGIN_BASE_URL,
        timeout=httpx.Timeout(None),
    )


def create_app(
    config: Optional[RelayConfig] = None,
    backend_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Create the FastAPI app.

    ``config`` pins the relay configuration; without it the configuration is
    re-read from the environment on every request. ``backend_transport``
    replaces the network transport used to reach the backend.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.chat_view.client.aclose()

    app = FastAPI(title="chatrelay", lifespan=lifespan)

    config_provider: Callable[[], RelayConfig]
    if config is not None:
        config_provider = lambda: config  # noqa: E731
    else:
        config_provider = load_relay_config
    app.state.config_provider = config_provider
    app.state.backend_transport = backend_transport
    app.state.chat_view = ChatView(build_same_origin_client(app))

    api_router = APIRouter(prefix="/api")
    api_router.include_router(proxy_router)
    api_router.include_router(chat_router)
    api_router.include_router(debug_router)
    api_router.add_api_route(
        "/health", endpoint=lambda: {"status": "ok"}, methods=["GET"]
    )

    app.include_router(api_router)
    app.include_router(page_router)

    # --------------- global exception handler ---------------
    @app.exception_handler(ServiceError)
    async def _service_error_handler(
        _request: Request, exc: ServiceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "detail": exc.detail},
        )

    return app


app = create_app()


def build_arg_parser() -> argparse.ArgumentParser:
    """Build Arg Parser."""
    parser = argparse.ArgumentParser(
        prog="chatrelay",
        description="Run the chatrelay chat page and backend proxy",
    )
    parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port", type=int, default=3000, help="Port to bind (default: 3000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (development only)",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for the server (default: info)",
    )
    parser.add_argument(
        "--backend-url",
        default=None,
        help="Base URL of the Python backend (overrides PYTHON_BACKEND_URL)",
    )
    parser.add_argument(
        "--proxy-dump",
        action="store_true",
        help="Dump proxied request/response data to a file",
    )
    parser.add_argument(
        "--proxy-dump-path",
        default=None,
        help="Path for the proxy dump file (overrides default)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entrypoint to run the server via a normal Python invocation.

    Examples:
      python -m chatrelay.main --help
      python -m chatrelay.main --backend-url http://localhost:8000 --port 3000
    """
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.backend_url:
        os.environ["PYTHON_BACKEND_URL"] = args.backend_url
    if args.proxy_dump:
        os.environ["CHATRELAY_PROXY_DUMP"] = "1"
    if args.proxy_dump_path:
        os.environ["CHATRELAY_PROXY_DUMP_PATH"] = args.proxy_dump_path

    # Fail at startup rather than on the first proxied request.
    load_relay_config()

    # Import uvicorn lazily so that importing this module doesn't require it for tests/tools
    import uvicorn  # type: ignore

    # Reload mode requires an import string.
    if args.reload:
        app_target = "chatrelay.main:create_app"
        factory = True
    else:
        app_target = app
        factory = False

    uvicorn.run(
        app_target,
        host=args.host,
        port=args.port,
        reload=bool(args.reload),
        log_level=args.log_level,
        factory=factory,
    )


if __name__ == "__main__":
    main()
