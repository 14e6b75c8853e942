# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat view ops unit so this responsibility stays isolated, testable, and easy to evolve.

``ChatView`` owns the single in-memory chat session. It feeds user actions
through ``reduce`` and, when a submission is accepted, performs the request
against the proxy endpoints and feeds the outcome back in. The submit guard
is evaluated before the first ``await``, so one event loop never has two
requests in flight for the same view.
"""

from __future__ import annotations

import datetime
from typing import Callable, Optional

import httpx

from chatrelay.services.chat.chat_state import (
    ChatState,
    Event,
    InputChanged,
    InstructionsChanged,
    PendingRequest,
    RequestFailed,
    ResponseReceived,
    SubmitInstructions,
    SubmitMessage,
    ToggleInstructions,
    Transition,
    reduce,
)
from chatrelay.services.chat.response_normalizer import parse_response_data
from chatrelay.services.proxy.proxy_logging import create_log_entry, finish_log_entry


def _now() -> datetime.datetime:
    return datetime.datetime.now()


class ChatView:
    """Chat session bound to an HTTP client that can reach ``/api/prompt``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ):
        self.client = client
        self.state = ChatState()
        self._clock = clock or _now

    def dispatch(self, event: Event) -> Transition:
        transition = reduce(self.state, event)
        self.state = transition.state
        return transition

    def set_input(self, text: str) -> None:
        self.dispatch(InputChanged(text))

    def set_instructions(self, text: str) -> None:
        self.dispatch(InstructionsChanged(text))

    def toggle_instructions(self) -> bool:
        """Show or hide the instructions panel; returns False while busy."""
        before = self.state
        self.dispatch(ToggleInstructions())
        return self.state is not before

    async def submit_message(self, text: Optional[str] = None) -> bool:
        """Send the current input (or ``text``) as a prompt.

        Returns False without touching the network when the input is blank or
        another request is outstanding.
        """
        if text is not None:
            self.set_input(text)
        transition = self.dispatch(SubmitMessage(self._clock()))
        if transition.request is None:
            return False
        await self._perform(transition.request)
        return True

    async def submit_instructions(self, text: Optional[str] = None) -> bool:
        """Push the current instructions (or ``text``) to the backend."""
        if text is not None:
            self.set_instructions(text)
        transition = self.dispatch(SubmitInstructions())
        if transition.request is None:
            return False
        await self._perform(transition.request)
        return True

    async def _perform(self, request: PendingRequest) -> None:
        try:
            response = await self.client.post(request.path, json=request.body)
            data = response.json() if response.is_success else None
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, RecursionError) as exc:
            self._fail(request, error_detail=f"{type(exc).__name__}: {exc}")
            return
        except Exception as exc:
            # Leave the view usable before propagating the unexpected error.
            self._fail(request, error_detail=f"{type(exc).__name__}: {exc}")
            raise

        if not response.is_success:
            self._fail(
                request,
                status_code=response.status_code,
                error_detail=f"{request.path} answered {response.status_code}",
            )
            return

        normalized = parse_response_data(data, fallback=request.fallback_text)
        self.dispatch(ResponseReceived(normalized, self._clock()))

    def _fail(
        self,
        request: PendingRequest,
        status_code: int | None = None,
        error_detail: str | None = None,
    ) -> None:
        log_entry = create_log_entry(request.path, "POST", {}, request.body)
        finish_log_entry(log_entry, status_code=status_code, error_detail=error_detail)
        self.dispatch(RequestFailed(self._clock()))
