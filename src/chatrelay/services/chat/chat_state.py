# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat state unit so this responsibility stays isolated, testable, and easy to evolve.

The chat view is a two-phase machine. ``Idle`` accepts edits and submissions;
``Busy`` carries the one outstanding request and only accepts its outcome.
``reduce`` is the single place state changes: it is pure, returns the next
state and, for a submission, the request the caller must issue. Anything the
current phase does not accept returns the same state and no request.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from typing import Literal, Optional, Union

from chatrelay.services.chat.response_normalizer import (
    NO_RESPONSE_TEXT,
    NormalizedResponse,
    Tool,
)

Role = Literal["user", "assistant"]
RequestKind = Literal["prompt", "instructions"]

CHAT_ERROR_TEXT = "Sorry, I encountered an error. Please try again."
INSTRUCTIONS_ERROR_TEXT = "Failed to update instructions. Please try again."
INSTRUCTIONS_SUCCESS_TEXT = "Instructions updated successfully"


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    timestamp: datetime.datetime
    tools: Optional[tuple[Tool, ...]] = None


@dataclass(frozen=True)
class PendingRequest:
    """The network call a submission asks the controller to make."""

    kind: RequestKind
    path: str
    body: dict

    @property
    def error_text(self) -> str:
        return CHAT_ERROR_TEXT if self.kind == "prompt" else INSTRUCTIONS_ERROR_TEXT

    @property
    def fallback_text(self) -> str:
        return NO_RESPONSE_TEXT if self.kind == "prompt" else INSTRUCTIONS_SUCCESS_TEXT


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Busy:
    request: PendingRequest


Phase = Union[Idle, Busy]


@dataclass(frozen=True)
class ChatState:
    messages: tuple[Message, ...] = ()
    input: str = ""
    instructions: str = ""
    show_instructions: bool = False
    phase: Phase = field(default_factory=Idle)

    @property
    def loading(self) -> bool:
        return isinstance(self.phase, Busy)

    @property
    def can_send_message(self) -> bool:
        return not self.loading and bool(self.input.strip())

    @property
    def can_send_instructions(self) -> bool:
        return not self.loading and bool(self.instructions.strip())


# --------------- events ---------------


@dataclass(frozen=True)
class InputChanged:
    text: str


@dataclass(frozen=True)
class InstructionsChanged:
    text: str


@dataclass(frozen=True)
class ToggleInstructions:
    pass


@dataclass(frozen=True)
class SubmitMessage:
    now: datetime.datetime


@dataclass(frozen=True)
class SubmitInstructions:
    pass


@dataclass(frozen=True)
class ResponseReceived:
    response: NormalizedResponse
    now: datetime.datetime


@dataclass(frozen=True)
class RequestFailed:
    now: datetime.datetime


Event = Union[
    InputChanged,
    InstructionsChanged,
    ToggleInstructions,
    SubmitMessage,
    SubmitInstructions,
    ResponseReceived,
    RequestFailed,
]


@dataclass(frozen=True)
class Transition:
    state: ChatState
    request: Optional[PendingRequest] = None

    @property
    def accepted(self) -> bool:
        return self.request is not None


def _reduce_idle(state: ChatState, event: Event) -> Transition:
    if isinstance(event, InputChanged):
        return Transition(replace(state, input=event.text))
    if isinstance(event, InstructionsChanged):
        return Transition(replace(state, instructions=event.text))
    if isinstance(event, ToggleInstructions):
        return Transition(replace(state, show_instructions=not state.show_instructions))

    if isinstance(event, SubmitMessage):
        prompt = state.input.strip()
        if not prompt:
            return Transition(state)
        request = PendingRequest("prompt", "/api/prompt", {"prompt": prompt})
        user_message = Message(role="user", content=prompt, timestamp=event.now)
        return Transition(
            replace(
                state,
                messages=state.messages + (user_message,),
                input="",
                phase=Busy(request),
            ),
            request,
        )

    if isinstance(event, SubmitInstructions):
        instructions = state.instructions.strip()
        if not instructions:
            return Transition(state)
        request = PendingRequest(
            "instructions", "/api/instructions", {"instructions": instructions}
        )
        return Transition(replace(state, phase=Busy(request)), request)

    # Outcomes without an outstanding request are stale.
    return Transition(state)


def _reduce_busy(state: ChatState, phase: Busy, event: Event) -> Transition:
    if isinstance(event, ResponseReceived):
        message = Message(
            role="assistant",
            content=event.response.content,
            timestamp=event.now,
            tools=event.response.tools,
        )
        next_state = replace(
            state, messages=state.messages + (message,), phase=Idle()
        )
        if phase.request.kind == "instructions":
            next_state = replace(next_state, instructions="", show_instructions=False)
        return Transition(next_state)

    if isinstance(event, RequestFailed):
        message = Message(
            role="assistant", content=phase.request.error_text, timestamp=event.now
        )
        return Transition(
            replace(state, messages=state.messages + (message,), phase=Idle())
        )

    # Controls are disabled while a request is outstanding.
    return Transition(state)


def reduce(state: ChatState, event: Event) -> Transition:
    """Apply ``event`` to ``state``."""
    if isinstance(state.phase, Busy):
        return _reduce_busy(state, state.phase, event)
    return _reduce_idle(state, event)
