# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the config unit so this responsibility stays isolated, testable, and easy to evolve.

Pydantic model for the resolved relay configuration.
"""

from __future__ import annotations

from pydantic import BaseModel

DEFAULT_BACKEND_URL = "http://localhost:8000"
DEFAULT_TITLE = "Scenariusz jutra"


class RelayConfig(BaseModel):
    """Settings the proxy endpoints and the chat page are built from.

    ``proxy_timeout_s`` of ``None`` means the proxy waits for the backend
    indefinitely.
    """

    backend_url: str = DEFAULT_BACKEND_URL
    proxy_timeout_s: float | None = None
    title: str = DEFAULT_TITLE
