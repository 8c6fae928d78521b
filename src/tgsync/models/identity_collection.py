"""Ordered, append-only collection that deduplicates by identity key."""

from typing import Callable, Dict, Generic, Hashable, Iterable, Iterator, List, Optional, TypeVar


T = TypeVar("T")


class IdentityCollection(Generic[T]):
    """Keeps the first-seen element for every identity key.

    Elements are compared through ``key`` only, so two payloads for the
    same external id collapse to one stored element even if other fields
    differ.
    """

    def __init__(self, key: Callable[[T], Hashable], items: Iterable[T] = ()):
        self._key = key
        self._items: List[T] = []
        self._index: Dict[Hashable, T] = {}
        for item in items:
            self.insert(item)

    def insert(self, item: T) -> T:
        """Append ``item`` unless its identity is present; return the stored element."""
        identity = self._key(item)
        stored = self._index.get(identity)
        if stored is not None:
            return stored

        self._index[identity] = item
        self._items.append(item)
        return item

    def contains(self, item: T) -> bool:
        return self._key(item) in self._index

    def get(self, identity: Hashable, default: Optional[T] = None) -> Optional[T]:
        return self._index.get(identity, default)

    def keys(self) -> List[Hashable]:
        return [self._key(item) for item in self._items]

    def __contains__(self, item: object) -> bool:
        return self.contains(item)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"IdentityCollection({self.keys()!r})"
