# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the proxy logging unit so this responsibility stays isolated, testable, and easy to evolve.

Diagnostic stream for the relay: every proxied request and every failed chat
view request becomes one structured entry. Entries are never shown in the
chat itself; they are served by the debug API.
"""

from __future__ import annotations

import datetime
import json
import os
import uuid
from typing import Any, Dict, List

MAX_PROXY_LOGS = 100

# Global list to store proxy communication logs for the current session
proxy_logs: List[Dict[str, Any]] = []


def add_proxy_log(log_entry: Dict[str, Any]):
    """Add a log entry to the global list, keeping only the last 100 entries.

    If CHATRELAY_PROXY_DUMP is set, also append the raw log to a file.
    """
    if log_entry not in proxy_logs:
        proxy_logs.append(log_entry)
        if len(proxy_logs) > MAX_PROXY_LOGS:
            proxy_logs.pop(0)

    if os.getenv("CHATRELAY_PROXY_DUMP") == "1":
        default_path = os.path.join("data", "logs", "proxy_raw.log")
        log_path = os.getenv("CHATRELAY_PROXY_DUMP_PATH") or default_path
        try:
            os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
            with open(log_path, "a", encoding="utf-8") as f:
                f.write("=" * 80 + "\n")
                f.write(f"TIMESTAMP: {datetime.datetime.now().isoformat()}\n")
                f.write("-" * 80 + "\n")
                f.write(json.dumps(log_entry, indent=2, default=str) + "\n")
                f.write("=" * 80 + "\n\n")
        except OSError:
            # The dump file is a dev-only aid; the in-memory entry is kept.
            pass


def create_log_entry(
    url: str, method: str, headers: Dict[str, str], body: Any
) -> Dict[str, Any]:
    """Create a new log entry structure."""
    safe_body = body
    if isinstance(body, dict):
        safe_body = body.copy()
        for key in ["api_key", "secret", "password"]:
            if key in safe_body:
                safe_body[key] = "REDACTED"

    return {
        "id": str(uuid.uuid4()),
        "timestamp_start": datetime.datetime.now().isoformat(),
        "timestamp_end": None,
        "request": {
            "url": url,
            "method": method,
            "headers": {
                k: ("***" if k.lower() in ("authorization", "x-api-key") else v)
                for k, v in headers.items()
            },
            "body": safe_body,
        },
        "response": {
            "status_code": None,
            "body": None,
            "error_detail": None,
        },
    }


def finish_log_entry(
    log_entry: Dict[str, Any],
    status_code: int | None = None,
    body: Any = None,
    error_detail: str | None = None,
) -> Dict[str, Any]:
    """Record the outcome on ``log_entry`` and store it."""
    log_entry["timestamp_end"] = datetime.datetime.now().isoformat()
    log_entry["response"]["status_code"] = status_code
    log_entry["response"]["body"] = body
    log_entry["response"]["error_detail"] = error_detail
    add_proxy_log(log_entry)
    return log_entry
