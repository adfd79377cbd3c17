"""
Bounded two-way key/value memo.
"""

from collections import OrderedDict
from typing import Dict, Generic, Iterator, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class DualSidedCache(Generic[K, V]):
    """
    Map kept in both directions, evicting the least recently used pair.

    Values are unique: storing a value under a new key drops its old key.
    """

    def __init__(self, max_entries: int = 4096):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._forward: "OrderedDict[K, V]" = OrderedDict()
        self._reverse: Dict[V, K] = {}

    def __len__(self) -> int:
        return len(self._forward)

    def __contains__(self, key: K) -> bool:
        return key in self._forward

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._forward))

    def items(self) -> Iterator[Tuple[K, V]]:
        return iter(list(self._forward.items()))

    def get(self, key: K) -> Optional[V]:
        value = self._forward.get(key)
        if value is not None:
            self._forward.move_to_end(key)
        return value

    def get_key(self, value: V) -> Optional[K]:
        key = self._reverse.get(value)
        if key is not None:
            self._forward.move_to_end(key)
        return key

    def set(self, key: K, value: V) -> None:
        self.remove(key)
        old_key = self._reverse.get(value)
        if old_key is not None:
            self.remove(old_key)

        self._forward[key] = value
        self._reverse[value] = key

        while len(self._forward) > self.max_entries:
            evicted_key, evicted_value = self._forward.popitem(last=False)
            self._reverse.pop(evicted_value, None)

    def remove(self, key: K) -> Optional[V]:
        value = self._forward.pop(key, None)
        if value is not None:
            self._reverse.pop(value, None)
        return value

    def clear(self) -> None:
        self._forward.clear()
        self._reverse.clear()
