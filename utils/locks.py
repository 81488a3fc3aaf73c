"""
Per-room mutual exclusion.

The overlap read and the reservation write that depends on it must run as
one critical section. Within a process this is a keyed threading lock; the
write transaction itself is opened with BEGIN IMMEDIATE so separate
processes sharing the database file are serialized by SQLite as well.
"""

import threading
from contextlib import contextmanager

_registry_lock = threading.Lock()
_room_locks = {}


def _get_room_lock(room_id: int) -> threading.Lock:
    with _registry_lock:
        lock = _room_locks.get(room_id)
        if lock is None:
            lock = threading.Lock()
            _room_locks[room_id] = lock
        return lock


@contextmanager
def room_lock(*room_ids):
    """
    Hold the locks for one or more rooms.

    Locks are always taken in ascending room id order so that a room move
    (old room + new room) cannot deadlock against another move.

    Usage:
        with room_lock(room_id):
            ...overlap check + write...
    """
    ordered = sorted({int(room_id) for room_id in room_ids if room_id is not None})
    acquired = []
    try:
        for room_id in ordered:
            lock = _get_room_lock(room_id)
            lock.acquire()
            acquired.append(lock)
        yield
    finally:
        for lock in reversed(acquired):
            lock.release()
