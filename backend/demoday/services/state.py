"""Owned, per-app coordination state.

One ``EventState`` lives in ``app.extensions['demoday']`` (through the
coordinator). It holds the voting-open flag, the clock every service reads
time from, and the locks that serialize state transitions.
"""
import threading
import weakref
from contextlib import contextmanager

from demoday.models import utcnow


class KeyedLocks:
    """Lazily created lock per key (voter id, etc.).

    Locks are held weakly: one nobody holds or waits on is dropped, so the
    map only tracks keys in use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def get(self, key):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, key):
        lock = self.get(key)
        with lock:
            yield

    def clear(self):
        with self._guard:
            self._locks.clear()

    def __len__(self):
        with self._guard:
            return len(self._locks)


class EventState:
    def __init__(self, voting_open=True, clock=utcnow):
        self._voting_default = bool(voting_open)
        self.clock = clock
        self.queue_lock = threading.RLock()
        self.timer_lock = threading.RLock()
        self.voter_locks = KeyedLocks()
        self._flag_lock = threading.Lock()
        self.init()

    def init(self):
        with self._flag_lock:
            self._voting_open = self._voting_default

    def reset(self):
        """Back to boot state: default voting flag, no per-voter locks."""
        self.init()
        self.voter_locks.clear()

    def now(self):
        return self.clock()

    def set_voting_open(self, is_open):
        with self._flag_lock:
            self._voting_open = bool(is_open)
            return self._voting_open

    @property
    def voting_open(self):
        with self._flag_lock:
            return self._voting_open
