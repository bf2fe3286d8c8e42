"""Per-rule mutual exclusion for the automation engine.

One rule has one logical owner at a time. This works within a single
process; multiple processes additionally rely on the conditional update
in RoundUpAccumulator.
"""

import threading
import weakref
from contextlib import contextmanager


class RuleLockRegistry:
    """Hands out one lock per automation rule ID.

    Locks are held weakly, so a rule that nobody is claiming (including
    one that was deleted) drops out of the registry.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, rule_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(rule_id)
            if lock is None:
                lock = self._locks[rule_id] = threading.Lock()
            return lock

    @contextmanager
    def claim(self, rule_id: str, blocking: bool = True):
        """Hold the rule's lock for the duration of the block.

        Yields True if the lock was acquired. With ``blocking=False`` a
        busy rule yields False and the caller should skip it.
        """
        lock = self._lock_for(rule_id)
        acquired = lock.acquire(blocking=blocking)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()

    def is_claimed(self, rule_id: str) -> bool:
        """Check whether a rule is currently being executed."""
        lock = self._lock_for(rule_id)
        acquired = lock.acquire(blocking=False)
        if acquired:
            lock.release()
            return False
        return True


# Process-wide registry shared by every engine instance.
rule_locks = RuleLockRegistry()
