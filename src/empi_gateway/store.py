"""
In-memory storage for locally authored FHIR resources.

Entries live for the lifetime of the process. Reads may run concurrently with
each other; writes exclude all other access.
"""

import itertools
import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ReadWriteLock:
    """
    A reader/writer lock that prefers writers.

    Once a writer is waiting, new readers queue behind it so a steady stream
    of reads cannot starve writes.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._condition:
            while self._writer_active or self._writers_waiting:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._condition:
            self._writers_waiting += 1
            while self._writer_active or self._readers:
                self._condition.wait()
            self._writers_waiting -= 1
            self._writer_active = True
        try:
            yield
        finally:
            with self._condition:
                self._writer_active = False
                self._condition.notify_all()


class ResourceStore:
    """
    Keyed storage of canonical JSON bytes.

    Ids come from a process-wide counter that is independent of the store
    lock, so assigning an id never waits for readers.

    Usage:

        store = ResourceStore()
        resource_id = store.next_id()
        store.put(resource_id, body)
        store.get(resource_id)
    """

    def __init__(self) -> None:
        self._resources: dict[str, bytes] = {}
        self._lock = ReadWriteLock()
        self._counter = itertools.count(1)
        self._counter_lock = threading.Lock()

    def next_id(self) -> str:
        """Return a new, never previously issued, resource id."""
        with self._counter_lock:
            return str(next(self._counter))

    def put(self, resource_id: str, body: bytes) -> None:
        with self._lock.write_locked():
            self._resources[resource_id] = body

    def get(self, resource_id: str) -> bytes | None:
        """
        :returns: The stored bytes, or ``None`` if ``resource_id`` is unknown.
            ``bytes`` are immutable, so callers cannot alter the stored copy.
        """
        with self._lock.read_locked():
            return self._resources.get(resource_id)

    def exists(self, resource_id: str) -> bool:
        with self._lock.read_locked():
            return resource_id in self._resources

    def update(self, resource_id: str, body: bytes) -> bool:
        """
        Overwrite an existing entry.

        The existence check and the write happen under one write lock.

        :returns: ``False`` without writing if ``resource_id`` is unknown.
        """
        with self._lock.write_locked():
            if resource_id not in self._resources:
                return False
            self._resources[resource_id] = body
            return True

    def delete(self, resource_id: str) -> bool:
        """:returns: ``False`` if there was nothing to delete."""
        with self._lock.write_locked():
            return self._resources.pop(resource_id, None) is not None

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._resources)
