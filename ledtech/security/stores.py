"""
Key-value stores backing sessions and CSRF tokens.

The managers only talk to the SecurityStore interface, so the in-process
MemoryStore and the shared RedisStore are interchangeable.
"""

import json
import logging
from typing import Any, Callable, Dict, Iterator, Optional, Protocol, Tuple

import redis

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class SecurityStore(Protocol):
    """Capability required from a record store"""

    def get(self, key: str) -> Optional[Record]: ...

    def set(self, key: str, value: Record, ttl: Optional[int] = None) -> None: ...

    def touch(self, key: str, value: Record, ttl: Optional[int] = None) -> bool: ...

    def delete(self, key: str) -> bool: ...

    def items(self) -> Iterator[Tuple[str, Record]]: ...

    def sweep(self, predicate: Callable[[str, Record], bool]) -> int: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


class MemoryStore:
    """Single-process store; ``ttl`` is ignored, expiry is left to sweeps"""

    def __init__(self):
        self._data: Dict[str, Record] = {}

    def get(self, key: str) -> Optional[Record]:
        record = self._data.get(key)
        return dict(record) if record is not None else None

    def set(self, key: str, value: Record, ttl: Optional[int] = None) -> None:
        self._data[key] = dict(value)

    def touch(self, key: str, value: Record, ttl: Optional[int] = None) -> bool:
        """Overwrite an existing record; a missing key stays missing"""
        if key not in self._data:
            return False
        self._data[key] = dict(value)
        return True

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def items(self) -> Iterator[Tuple[str, Record]]:
        # Snapshot so callers may delete while iterating
        for key, record in list(self._data.items()):
            yield key, dict(record)

    def sweep(self, predicate: Callable[[str, Record], bool]) -> int:
        doomed = [key for key, record in self._data.items() if predicate(key, record)]
        for key in doomed:
            del self._data[key]
        return len(doomed)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class RedisStore:
    """
    Store shared between processes through Redis.

    Records are JSON encoded under ``<namespace>:<key>``. When a ttl is
    given Redis expires the key natively, sweeps handle the rest.
    """

    def __init__(self, client: redis.Redis, namespace: str):
        self.client = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str) -> "RedisStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def _strip(self, full_key: str) -> str:
        return full_key[len(self.namespace) + 1:]

    @staticmethod
    def _load(raw: Any) -> Optional[Record]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable record from Redis")
            return None

    def get(self, key: str) -> Optional[Record]:
        return self._load(self.client.get(self._key(key)))

    def set(self, key: str, value: Record, ttl: Optional[int] = None) -> None:
        self.client.set(self._key(key), json.dumps(value), ex=ttl)

    def touch(self, key: str, value: Record, ttl: Optional[int] = None) -> bool:
        # XX: only written if the key still exists
        return bool(self.client.set(self._key(key), json.dumps(value), ex=ttl, xx=True))

    def delete(self, key: str) -> bool:
        return bool(self.client.delete(self._key(key)))

    def items(self) -> Iterator[Tuple[str, Record]]:
        for full_key in self.client.scan_iter(match=f"{self.namespace}:*", count=100):
            if isinstance(full_key, bytes):
                full_key = full_key.decode("utf-8")
            record = self._load(self.client.get(full_key))
            if record is not None:
                yield self._strip(full_key), record

    def sweep(self, predicate: Callable[[str, Record], bool]) -> int:
        doomed = [key for key, record in self.items() if predicate(key, record)]
        if doomed:
            self.client.delete(*(self._key(key) for key in doomed))
        return len(doomed)

    def clear(self) -> None:
        keys = list(self.client.scan_iter(match=f"{self.namespace}:*", count=100))
        if keys:
            self.client.delete(*keys)

    def __len__(self) -> int:
        return sum(1 for _ in self.client.scan_iter(match=f"{self.namespace}:*", count=100))
