# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the proxy ops unit so this responsibility stays isolated, testable, and easy to evolve.

Same-origin relay to the Python backend. The inbound JSON body is re-POSTed
verbatim and the backend JSON is returned unchanged with status 200, whatever
status the backend chose. Every failure collapses to one fixed 500 body.
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse

from chatrelay.models.config import RelayConfig
from chatrelay.services.exceptions import ConfigurationError
from chatrelay.services.proxy.proxy_logging import create_log_entry, finish_log_entry

PROXY_ERROR_MESSAGE = "Failed to proxy request to Python backend"
PROXY_HEADERS = {"Content-Type": "application/json"}


def build_backend_url(config: RelayConfig, path: str) -> str:
    """Join the configured backend base with an endpoint path."""
    return config.backend_url.rstrip("/") + "/" + path.lstrip("/")


def build_backend_client(
    config: RelayConfig, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Create the client used for one proxied request.

    A ``proxy_timeout_s`` of ``None`` disables every httpx timeout.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.proxy_timeout_s), transport=transport
    )


async def relay_json(
    config: RelayConfig,
    path: str,
    body: Any,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """POST ``body`` to the backend and return its decoded JSON body.

    Raises ``httpx.HTTPError``/``httpx.InvalidURL`` for transport failures and
    ``ValueError`` when the backend body is not JSON. The backend status code
    is recorded in the log but never inspected.
    """
    url = build_backend_url(config, path)
    log_entry = create_log_entry(url, "POST", dict(PROXY_HEADERS), body)
    try:
        async with build_backend_client(config, transport) as client:
            response = await client.post(url, json=body, headers=PROXY_HEADERS)
            data = response.json()
    except (httpx.HTTPError, httpx.InvalidURL, ValueError, RecursionError) as exc:
        finish_log_entry(log_entry, error_detail=f"{type(exc).__name__}: {exc}")
        raise
    finish_log_entry(log_entry, status_code=response.status_code, body=data)
    return data


def proxy_failure(url: str, body: Any, error_detail: str) -> JSONResponse:
    """Log a failure that happened before the backend was contacted."""
    log_entry = create_log_entry(url, "POST", {}, body)
    finish_log_entry(log_entry, error_detail=error_detail)
    return JSONResponse(status_code=500, content={"error": PROXY_ERROR_MESSAGE})


async def proxy_request(
    request: Request,
    config_provider: Callable[[], RelayConfig],
    path: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> JSONResponse:
    """Relay the JSON body of ``request`` to ``<backend_url>/<path>``.

    ``config_provider`` is called once for this request; a configuration that
    cannot be resolved fails like an unreachable backend.
    """
    try:
        body = await request.json()
    except (ValueError, RecursionError) as exc:
        return proxy_failure(
            str(request.url), None, f"Inbound body is not JSON: {exc}"
        )

    try:
        config = config_provider()
    except (ConfigurationError, ValueError) as exc:
        detail = exc.detail if isinstance(exc, ConfigurationError) else str(exc)
        return proxy_failure(str(request.url), body, f"Configuration error: {detail}")

    try:
        data = await relay_json(config, path, body, transport=transport)
    except (httpx.HTTPError, httpx.InvalidURL, ValueError, RecursionError):
        return JSONResponse(status_code=500, content={"error": PROXY_ERROR_MESSAGE})
    return JSONResponse(status_code=200, content=data)
