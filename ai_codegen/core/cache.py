"""
Prompt to code result cache.

Bounded least-recently-used mapping consulted before any network call.
"""

from collections import OrderedDict
from typing import Optional

DEFAULT_CACHE_SIZE = 100


class CodeCache:
    """LRU cache of generated code keyed by the exact prompt text.

    Prompts are compared byte for byte; no normalisation is applied, so
    " users" and "users" are distinct entries. Not safe for concurrent
    mutation; callers sharing one instance across threads must lock.
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_SIZE):
        """Initialize an empty cache.

        Args:
            capacity: Maximum number of entries, fixed for the cache lifetime

        Raises:
            ValueError: If capacity is not a positive integer
        """
        if not isinstance(capacity, int) or capacity <= 0:
            raise ValueError("capacity must be a positive integer")
        self._capacity = capacity
        self._entries: "OrderedDict[str, str]" = OrderedDict()

    @property
    def capacity(self) -> int:
        """Maximum number of entries."""
        return self._capacity

    def get(self, prompt: str) -> Optional[str]:
        """Return the cached code for prompt and mark it most recently used.

        A miss returns None and leaves the recency order untouched.
        """
        if prompt not in self._entries:
            return None
        self._entries.move_to_end(prompt)
        return self._entries[prompt]

    def put(self, prompt: str, code: str) -> None:
        """Insert or overwrite the entry for prompt as most recently used.

        When the cache is full and prompt is new, the least recently used
        entry is evicted first.
        """
        if prompt in self._entries:
            self._entries.move_to_end(prompt)
        elif len(self._entries) >= self._capacity:
            self._entries.popitem(last=False)
        self._entries[prompt] = code

    def __contains__(self, prompt: object) -> bool:
        # Membership checks do not count as a use.
        return prompt in self._entries

    def __len__(self) -> int:
        return len(self._entries)
