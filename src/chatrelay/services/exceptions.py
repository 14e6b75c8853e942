# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Domain exception hierarchy for the service layer.

Purpose: Provide HTTP-agnostic domain exceptions that carry enough context for
the API layer (or a global exception handler) to translate them into proper
HTTP responses. Service code should raise these instead of ``HTTPException``
so that it stays decoupled from any web framework.

The proxy endpoints deliberately do not use this hierarchy: their failure
body is a fixed ``{"error": ...}`` contract the chat page relies on.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base domain exception that carries an HTTP-equivalent status code.

    The global exception handler registered in ``main.py`` translates these
    into ``{"ok": false, "detail": ...}`` JSON responses automatically.
    """

    default_status_code: int = 500

    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = (
            status_code if status_code is not None else self.default_status_code
        )


class ConfigurationError(ServiceError):
    """Raised when the relay configuration is missing or invalid (HTTP 500)."""

    default_status_code = 500
