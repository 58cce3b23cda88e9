"""
Pytest Configuration and Fixtures
=================================

Shared fakes for the test suite:
- a virtual clock whose ``sleep`` advances time instead of waiting
- a scripted completion client that never touches the network
- an orchestrator wired to both
"""

import asyncio
from typing import Union

import pytest

from core.cache import ResponseCache
from core.conversation import ChatOrchestrator
from core.dispatcher import RateLimitedDispatcher
from core.llm import ProviderThrottled, ProviderUnreachable


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    """Virtual monotonic clock; pass the instance as ``clock`` and ``sleep`` as ``sleep``"""

    def __init__(self, start: float = 1000.0):
        self.start = start
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)

    @property
    def elapsed(self) -> float:
        return self.now - self.start


class FakeCompletionClient:
    """
    Stands in for CompletionClient.

    Each call consumes the next scripted item: a string is returned, an
    exception instance is raised. Once the script runs out ``default`` is
    returned.
    """

    def __init__(self, *script: Union[str, Exception], default: str = "Happy cooking!"):
        self.script = list(script)
        self.default = default
        self.calls: list[tuple[list, object]] = []

    async def complete(self, messages, options) -> str:
        self.calls.append((list(messages), options))
        if not self.script:
            return self.default
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def last_messages(self) -> list:
        return self.calls[-1][0]


def throttled(retry_after=None) -> ProviderThrottled:
    return ProviderThrottled("Rate limited by LLM provider", retry_after=retry_after)


def unreachable() -> ProviderUnreachable:
    return ProviderUnreachable("Network error: connection reset")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_orchestrator(clock):
    """Factory: orchestrator over a scripted client, virtual time, fresh cache"""

    def _make(*script, requests_per_minute: float = 60, max_retries: int = 3, **kwargs):
        client = FakeCompletionClient(*script)
        orchestrator = ChatOrchestrator(
            client=client,
            cache=ResponseCache(ttl=1800, max_entries=100, clock=clock),
            dispatcher=RateLimitedDispatcher(
                requests_per_minute=requests_per_minute,
                max_retries=max_retries,
                clock=clock,
                sleep=clock.sleep,
            ),
            **kwargs,
        )
        return orchestrator, client

    return _make
