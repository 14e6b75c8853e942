# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat unit so this responsibility stays isolated, testable, and easy to evolve.

Pydantic models for the chat view API.
"""

from __future__ import annotations

import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel

from chatrelay.services.chat.chat_state import ChatState, Message


class ChatActionRequest(BaseModel):
    """Body for the ``/api/chat/*`` actions.

    The page sends its current drafts with every action so the session state
    matches what the user sees before the action is applied. ``None`` leaves
    the stored draft unchanged.
    """

    input: Optional[str] = None
    instructions: Optional[str] = None


class ToolModel(BaseModel):
    name: str
    description: str
    data: Any = None


class MessageModel(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime.datetime
    tools: Optional[list[ToolModel]] = None

    @classmethod
    def from_message(cls, message: Message) -> "MessageModel":
        tools = None
        if message.tools is not None:
            tools = [
                ToolModel(name=t.name, description=t.description, data=t.data)
                for t in message.tools
            ]
        return cls(
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            tools=tools,
        )


class ChatStateResponse(BaseModel):
    """Response body for ``GET /api/chat``."""

    messages: list[MessageModel]
    input: str
    instructions: str
    show_instructions: bool
    loading: bool

    @classmethod
    def from_state(cls, state: ChatState) -> "ChatStateResponse":
        return cls(
            messages=[MessageModel.from_message(m) for m in state.messages],
            input=state.input,
            instructions=state.instructions,
            show_instructions=state.show_instructions,
            loading=state.loading,
        )
