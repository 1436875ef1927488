"""
Shared test fixtures.

FakeBackend stands in for the completion service so no test touches the network.
"""

import os
import sys
from datetime import datetime, timedelta

import pytest

# Add project root to path
project_root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
sys.path.insert(0, os.path.join(project_root, "socratic_math_tutor", "src"))

from socratic_math_tutor.errors import CompletionBackendError


class FakeBackend:
    """Replays scripted replies and records every request it receives."""

    def __init__(self, replies=None, default="What do you notice about the equation?"):
        self.replies = list(replies or [])
        self.default = default
        self.calls = []
        self.fail_next = 0

    async def complete(self, messages, guidance):
        self.calls.append({"messages": list(messages), "guidance": guidance})
        if self.fail_next:
            self.fail_next -= 1
            raise CompletionBackendError("scripted failure")
        if self.replies:
            return self.replies.pop(0)
        return self.default


class SteppingClock:
    """Deterministic clock that advances a fixed step on every read."""

    def __init__(self, start=None, step_seconds=20.0):
        self.now = start or datetime(2024, 1, 1, 9, 0, 0)
        self.step = timedelta(seconds=step_seconds)

    def __call__(self):
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return SteppingClock()
