"""
Per-Organization Locking
Owner: CC2
Workstream: W2P2

A fixed pool of locks indexed by the hash of the organization ID. Events for
one organization always take the same lock; two organizations only wait on
each other when they hash to the same slot. Memory stays constant no matter
how many organization IDs the routes are called with.
"""

import threading

DEFAULT_POOL_SIZE = 64


class OrgLockPool:

    def __init__(self, size: int = DEFAULT_POOL_SIZE):
        if size < 1:
            raise ValueError('Lock pool size must be at least 1')
        self.locks = [threading.Lock() for _ in range(size)]

    def __len__(self):
        return len(self.locks)

    def lock_for(self, org_id: str) -> threading.Lock:
        """Get the lock guarding an organization."""
        return self.locks[hash(org_id) % len(self.locks)]
