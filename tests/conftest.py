# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the conftest unit so this responsibility stays isolated, testable, and easy to evolve."""

import os
import pytest

from chatrelay.services.proxy.proxy_logging import proxy_logs

# Variables that would otherwise leak a developer's setup into the tests.
_RELAY_ENV_VARS = (
    "PYTHON_BACKEND_URL",
    "CHATRELAY_PROXY_TIMEOUT_S",
    "CHATRELAY_TITLE",
    "CHATRELAY_PROXY_DUMP",
    "CHATRELAY_PROXY_DUMP_PATH",
)


@pytest.fixture(scope="session", autouse=True)
def session_clean_env():
    originals = {name: os.environ.pop(name, None) for name in _RELAY_ENV_VARS}

    yield

    for name, value in originals.items():
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)


@pytest.fixture(autouse=True)
def clear_proxy_logs():
    proxy_logs.clear()
    yield
    proxy_logs.clear()
