# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the proxy unit so this responsibility stays isolated, testable, and easy to evolve.

Same-origin endpoints the chat page posts to. Bodies are forwarded as-is:

  POST /api/prompt        {"prompt": str}        -> <backend>/prompt
  POST /api/instructions  {"instructions": str}  -> <backend>/instructions

The configuration is resolved inside the proxy rather than through a
dependency, so a bad backend URL yields the proxy's own failure body.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from chatrelay.services.proxy.proxy_ops import proxy_request

router = APIRouter(tags=["Proxy"])


@router.post("/prompt")
async def api_prompt(request: Request) -> JSONResponse:
    """Relay a chat prompt to the backend."""
    return await proxy_request(
        request,
        request.app.state.config_provider,
        "/prompt",
        transport=request.app.state.backend_transport,
    )


@router.post("/instructions")
async def api_instructions(request: Request) -> JSONResponse:
    """Relay new agent instructions to the backend."""
    return await proxy_request(
        request,
        request.app.state.config_provider,
        "/instructions",
        transport=request.app.state.backend_transport,
    )
