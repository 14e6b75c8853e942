# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the deps unit so this responsibility stays isolated, testable, and easy to evolve.

Request-scoped accessors for what ``create_app`` stores on ``app.state``.
"""

from __future__ import annotations

from fastapi import Request

from chatrelay.models.config import RelayConfig
from chatrelay.services.chat.chat_view_ops import ChatView


def get_relay_config(request: Request) -> RelayConfig:
    """Resolve the relay config for this request.

    Either the value injected at construction, or a fresh load from the
    environment and config file.
    """
    return request.app.state.config_provider()


def get_chat_view(request: Request) -> ChatView:
    return request.app.state.chat_view
