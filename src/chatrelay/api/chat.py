# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat unit so this responsibility stays isolated, testable, and easy to evolve.

The chat page and the actions its script posts. Each action answers with the
re-rendered panel so the page never renders state on its own.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, JSONResponse

from chatrelay.api.deps import get_chat_view, get_relay_config
from chatrelay.api.http_responses import ok_json, rejected_json
from chatrelay.models.chat import ChatActionRequest, ChatStateResponse
from chatrelay.models.config import RelayConfig
from chatrelay.services.chat.chat_render_ops import render_chat_page, render_chat_panel
from chatrelay.services.chat.chat_view_ops import ChatView

router = APIRouter(tags=["Chat"])
page_router = APIRouter(tags=["Chat"])


def _apply_drafts(view: ChatView, payload: ChatActionRequest) -> None:
    if payload.input is not None:
        view.set_input(payload.input)
    if payload.instructions is not None:
        view.set_instructions(payload.instructions)


def _panel_response(view: ChatView, accepted: bool) -> JSONResponse:
    build = ok_json if accepted else rejected_json
    return build(
        html=render_chat_panel(view.state),
        state=ChatStateResponse.from_state(view.state).model_dump(mode="json"),
    )


@page_router.get("/", response_class=HTMLResponse)
async def chat_page(
    view: ChatView = Depends(get_chat_view),
    config: RelayConfig = Depends(get_relay_config),
) -> HTMLResponse:
    return HTMLResponse(render_chat_page(view.state, config.title))


@router.get("/chat", response_model=ChatStateResponse)
async def api_get_chat(view: ChatView = Depends(get_chat_view)) -> ChatStateResponse:
    """Return the current chat session state."""
    return ChatStateResponse.from_state(view.state)


@router.post("/chat/message")
async def api_chat_message(
    payload: ChatActionRequest, view: ChatView = Depends(get_chat_view)
) -> JSONResponse:
    """Submit the message draft and wait for the assistant's reply."""
    _apply_drafts(view, payload)
    accepted = await view.submit_message()
    return _panel_response(view, accepted)


@router.post("/chat/instructions")
async def api_chat_instructions(
    payload: ChatActionRequest, view: ChatView = Depends(get_chat_view)
) -> JSONResponse:
    """Submit the instructions draft."""
    _apply_drafts(view, payload)
    accepted = await view.submit_instructions()
    return _panel_response(view, accepted)


@router.post("/chat/instructions/toggle")
async def api_toggle_instructions(
    payload: ChatActionRequest, view: ChatView = Depends(get_chat_view)
) -> JSONResponse:
    """Show or hide the instructions panel."""
    _apply_drafts(view, payload)
    accepted = view.toggle_instructions()
    return _panel_response(view, accepted)
