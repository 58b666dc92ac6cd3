"""Shared pytest fixtures for the full Culturicon test suite."""

from __future__ import annotations

from collections.abc import Iterator
import os

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real provider credentials and runtime overrides out of tests."""

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    for key in list(os.environ):
        if key.startswith("CULTURICON_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def loguru_messages() -> Iterator[list[str]]:
    """Capture loguru messages emitted during a test."""

    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)), format="{message}")
    yield messages
    logger.remove(handler_id)
