# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the chat render ops unit so this responsibility stays isolated, testable, and easy to evolve.

HTML for the chat page. Every function here is a pure function of the chat
state: rendering the same state twice gives the same markup. Message bodies
go through markdown-it-py with raw HTML disabled, so backend text can never
inject markup into the page.
"""

from __future__ import annotations

from html import escape

from markdown_it import MarkdownIt

from chatrelay.services.chat.chat_state import ChatState, Message
from chatrelay.services.chat.response_normalizer import Tool

_md = MarkdownIt("commonmark", {"html": False}).enable(["table", "strikethrough"])


def render_markdown(text: str) -> str:
    """Markdown to HTML: paragraphs, emphasis, lists, code, GFM tables."""
    return _md.render(text)


def render_tool(tool: Tool, tooltip_id: str) -> str:
    """One labeled control; hover or focus reveals the description."""
    return (
        '<span class="tool">'
        f'<button type="button" class="tool-label" aria-describedby="{tooltip_id}">'
        f"{escape(tool.name)}</button>"
        f'<span class="tool-tooltip" role="tooltip" id="{tooltip_id}">'
        f"{escape(tool.description)}</span>"
        "</span>"
    )


def render_message(message: Message, index: int) -> str:
    tools_html = ""
    if message.role == "assistant" and message.tools:
        tools_html = (
            '<div class="tools">'
            + "".join(
                render_tool(tool, f"tool-{index}-{n}")
                for n, tool in enumerate(message.tools)
            )
            + "</div>"
        )
    return (
        f'<div class="message message-{message.role}">'
        '<div class="bubble">'
        f'<div class="content">{render_markdown(message.content)}</div>'
        f"{tools_html}"
        f'<p class="timestamp">{message.timestamp.strftime("%H:%M:%S")}</p>'
        "</div>"
        "</div>"
    )


def _render_messages(state: ChatState) -> str:
    if not state.messages and not state.loading:
        body = (
            '<div class="welcome">'
            "<p>&#128075; Welcome to the AI Chatbot!</p>"
            "<p>Start a conversation by typing a message below.</p>"
            "</div>"
        )
    else:
        body = "".join(render_message(m, i) for i, m in enumerate(state.messages))
    if state.loading:
        body += (
            '<div class="message message-assistant thinking">'
            '<div class="bubble">AI is thinking...</div>'
            "</div>"
        )
    return f'<div class="messages" id="messages">{body}<div id="messages-end"></div></div>'


def _disabled(flag: bool) -> str:
    return " disabled" if flag else ""


def _render_instructions_panel(state: ChatState) -> str:
    if not state.show_instructions:
        return ""
    return (
        '<div class="instructions">'
        '<textarea id="instructions-input" rows="4" '
        f'placeholder="Enter instructions for the agent..."{_disabled(state.loading)}>'
        f"{escape(state.instructions)}</textarea>"
        '<div class="instructions-actions">'
        '<button type="button" data-action="toggle-instructions"'
        f"{_disabled(state.loading)}>Cancel</button>"
        '<button type="button" data-action="send-instructions" class="primary"'
        f"{_disabled(not state.can_send_instructions)}>"
        f"{'Sending...' if state.loading else 'Send Instructions'}</button>"
        "</div>"
        "</div>"
    )


def render_chat_panel(state: ChatState) -> str:
    """Message list plus controls; the part the page swaps after each action."""
    return (
        f"{_render_messages(state)}"
        '<div class="controls">'
        f"{_render_instructions_panel(state)}"
        '<form id="message-form">'
        '<input type="text" id="message-input" placeholder="Type your message..." '
        f'value="{escape(state.input)}"{_disabled(state.loading)}>'
        '<button type="button" data-action="toggle-instructions"'
        f"{_disabled(state.loading)}>Instructions</button>"
        '<button type="submit" class="primary"'
        f"{_disabled(not state.can_send_message)}>"
        f"{'...' if state.loading else 'Send'}</button>"
        "</form>"
        "</div>"
    )


PAGE_STYLE = """
body { margin: 0; font-family: sans-serif; background: #f3f4f6; }
.chat { width: 70vw; height: 90vh; margin: 5vh auto; background: #fff; border-radius: 1rem;
  display: flex; flex-direction: column; overflow: hidden; box-shadow: 0 10px 25px rgba(0,0,0,.1); }
.chat header { background: #2563eb; color: #fff; padding: 1rem; font-size: 1.25rem; }
#chat-panel { flex: 1; display: flex; flex-direction: column; min-height: 0; }
.messages { flex: 1; overflow-y: auto; padding: 1rem; }
.welcome { text-align: center; color: #6b7280; margin-top: 2rem; }
.message { display: flex; margin-bottom: 1rem; }
.message-user { justify-content: flex-end; }
.bubble { max-width: 28rem; padding: .5rem 1rem; border-radius: .5rem; background: #e5e7eb; }
.message-user .bubble { background: #2563eb; color: #fff; }
.timestamp { font-size: .75rem; opacity: .7; margin: .25rem 0 0; }
.content table { border-collapse: collapse; }
.content th, .content td { border: 1px solid #d1d5db; padding: .25rem .5rem; }
.tools { display: flex; flex-wrap: wrap; gap: .25rem; margin-top: .5rem; }
.tool { position: relative; }
.tool-tooltip { display: none; position: absolute; bottom: 100%; left: 0; z-index: 1;
  background: #111827; color: #fff; padding: .25rem .5rem; border-radius: .25rem; width: max-content; max-width: 16rem; }
.tool:hover .tool-tooltip, .tool:focus-within .tool-tooltip { display: block; }
.controls { border-top: 1px solid #e5e7eb; padding: 1rem; }
.instructions textarea { width: 100%; box-sizing: border-box; }
.instructions-actions { display: flex; justify-content: flex-end; gap: .5rem; margin: .5rem 0 1rem; }
#message-form { display: flex; gap: .5rem; }
#message-input { flex: 1; padding: .5rem 1rem; border-radius: 9999px; border: 1px solid #d1d5db; }
button { padding: .5rem 1rem; border-radius: 9999px; border: 1px solid #d1d5db; cursor: pointer; }
button.primary { background: #2563eb; color: #fff; border: none; }
button:disabled { opacity: .5; cursor: not-allowed; }
"""

PAGE_SCRIPT = """
const panel = document.getElementById("chat-panel");

function scrollToEnd() {
  const end = document.getElementById("messages-end");
  if (end) end.scrollIntoView({ behavior: "smooth" });
}

function drafts() {
  const input = document.getElementById("message-input");
  const instructions = document.getElementById("instructions-input");
  return {
    input: input ? input.value : "",
    instructions: instructions ? instructions.value : null,
  };
}

function showPending(text) {
  panel.querySelectorAll("input, textarea, button").forEach((el) => { el.disabled = true; });
  const end = document.getElementById("messages-end");
  if (text) {
    const bubble = document.createElement("div");
    bubble.className = "message message-user";
    bubble.innerHTML = '<div class="bubble"><div class="content"></div></div>';
    bubble.querySelector(".content").textContent = text;
    end.before(bubble);
  }
  const thinking = document.createElement("div");
  thinking.className = "message message-assistant thinking";
  thinking.innerHTML = '<div class="bubble">AI is thinking...</div>';
  end.before(thinking);
  scrollToEnd();
}

async function post(url, body) {
  try {
    const response = await fetch(url, {
      method: "POST",
      headers: { "Content-Type": "application/json" },
      body: JSON.stringify(body),
    });
    const data = await response.json();
    if (data.html) panel.innerHTML = data.html;
  } catch (error) {
    console.error("Chat view error:", error);
  }
  scrollToEnd();
}

panel.addEventListener("submit", (event) => {
  event.preventDefault();
  const body = drafts();
  if (!body.input.trim()) return;
  showPending(body.input.trim());
  post("/api/chat/message", body);
});

panel.addEventListener("click", (event) => {
  const action = event.target.dataset.action;
  if (action === "toggle-instructions") {
    post("/api/chat/instructions/toggle", drafts());
  } else if (action === "send-instructions") {
    const body = drafts();
    if (!body.instructions || !body.instructions.trim()) return;
    showPending(null);
    post("/api/chat/instructions", body);
  }
});

panel.addEventListener("input", () => {
  const body = drafts();
  const send = panel.querySelector('#message-form button[type="submit"]');
  if (send) send.disabled = !body.input.trim();
  const sendInstructions = panel.querySelector('[data-action="send-instructions"]');
  if (sendInstructions) sendInstructions.disabled = !(body.instructions || "").trim();
});

scrollToEnd();
"""


def render_chat_page(state: ChatState, title: str) -> str:
    """Full HTML document for ``GET /``."""
    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="utf-8">'
        f"<title>{escape(title)}</title>"
        f"<style>{PAGE_STYLE}</style></head>"
        '<body><div class="chat">'
        f"<header>{escape(title)}</header>"
        f'<div id="chat-panel">{render_chat_panel(state)}</div>'
        "</div>"
        f"<script>{PAGE_SCRIPT}</script>"
        "</body></html>"
    )
