"""
Response Cache
Time-bounded memoization of completion text keyed by a request fingerprint.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from config import LLM_CACHE_MAX_ENTRIES, LLM_CACHE_PREFIX_CHARS, LLM_CACHE_TTL
from core.models import GenerationOptions, Message

logger = logging.getLogger(__name__)


def fingerprint(
    messages: Sequence[Union[Message, dict]],
    options: GenerationOptions,
    prefix_chars: int = LLM_CACHE_PREFIX_CHARS,
) -> str:
    """
    Cache key for a request.

    By default the whole role-tagged conversation is hashed, so two chats
    sharing the same system prompt never collide. A positive ``prefix_chars``
    keys on only that many leading characters of the prompt instead, which
    trades correctness for more hits on near-duplicate requests.
    """
    prompt = "\n".join(f"{m.role}:{m.content}" for m in (Message.from_dict(m) for m in messages))
    if prefix_chars > 0:
        prompt = prompt[:prefix_chars]
    key_src = json.dumps([prompt, options.model, options.temperature], ensure_ascii=False)
    return hashlib.sha256(key_src.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    key: str
    value: str
    created_at: float


class ResponseCache:
    """In-memory cache with lazy TTL eviction (no background sweep)"""

    def __init__(
        self,
        ttl: float = LLM_CACHE_TTL,
        max_entries: int = LLM_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[str]:
        """Get cached result if still fresh; expired entries are dropped here"""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("cache miss %s", key[:12])
            return None
        if self._clock() - entry.created_at >= self.ttl:
            del self._entries[key]
            logger.debug("cache expired %s", key[:12])
            return None
        logger.debug("cache hit %s", key[:12])
        return entry.value

    def put(self, key: str, value: str) -> None:
        """Cache a result, evicting the oldest entry when full"""
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, value=value, created_at=self._clock())
        # dicts keep insertion order, so the first key is the oldest
        while len(self._entries) > self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    def clear(self) -> None:
        self._entries.clear()
