"""
In-memory entity store.

An `EntityStore` is the key-value table behind the memory storage provider:
one instance per entity kind, mapping a key (an integer id, or a composite
tuple for join records) to a record. Integer ids come from a per-store
counter that starts at 1 and only ever grows.

Records are treated as immutable values. `update` builds a replacement record
and swaps it in, so a shallow `snapshot` of the mapping is enough to roll a
store back to an earlier state.
"""

from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class EntityStore(Generic[K, V]):
    """Key-value table for one entity kind"""

    def __init__(self, name: str):
        self.name = name
        self._records: Dict[K, V] = {}
        self._next_id = 1

    def next_id(self) -> int:
        """Reserve the next integer id"""
        value = self._next_id
        self._next_id += 1
        return value

    def put(self, key: K, record: V) -> V:
        self._records[key] = record
        return record

    def get(self, key: K) -> Optional[V]:
        return self._records.get(key)

    def all(self) -> List[V]:
        """All records in insertion order"""
        return list(self._records.values())

    def delete(self, key: K) -> bool:
        return self._records.pop(key, None) is not None

    def contains(self, key: K) -> bool:
        return key in self._records

    def update(self, key: K, change: Callable[[V], V]) -> Optional[V]:
        """Replace the record at `key` with `change(record)`; None if absent"""
        current = self._records.get(key)
        if current is None:
            return None
        replacement = change(current)
        self._records[key] = replacement
        return replacement

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> Tuple[Dict[K, V], int]:
        return dict(self._records), self._next_id

    def restore(self, state: Tuple[Dict[K, V], int]) -> None:
        records, next_id = state
        self._records = dict(records)
        self._next_id = next_id


def replace_fields(record: Any, **changes: Any) -> Any:
    """Return a copy of a model record with `changes` applied"""
    return type(record)(**{**record.model_dump(), **changes})
