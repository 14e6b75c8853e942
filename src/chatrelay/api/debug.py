# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the debug unit so this responsibility stays isolated, testable, and easy to evolve."""

from fastapi import APIRouter
from chatrelay.services.proxy.proxy_logging import proxy_logs

router = APIRouter(prefix="/debug", tags=["debug"])


router.add_api_route("/proxy_logs", endpoint=lambda: proxy_logs, methods=["GET"])


@router.delete("/proxy_logs")
async def clear_proxy_logs():
    """Clear the proxy diagnostic logs."""
    proxy_logs.clear()
    return {"status": "ok"}
