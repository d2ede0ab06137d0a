"""Per-account serialization of claim commits.

Matching runs and manual matches on the same bank account take the
account's lock before claiming movements, so claim commits never
interleave within a process. The database claim primitive still guards
against writers in other processes.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from bankrec.domain.errors import TransientError

_registry_lock = threading.Lock()
_account_locks: dict[int, threading.Lock] = {}


def account_lock(bank_account_id: int) -> threading.Lock:
    """Return the process-wide lock for a bank account."""
    with _registry_lock:
        lock = _account_locks.get(bank_account_id)
        if lock is None:
            lock = threading.Lock()
            _account_locks[bank_account_id] = lock
        return lock


@contextmanager
def hold_account_lock(bank_account_id: int, timeout: Optional[float] = None) -> Iterator[None]:
    """Hold the account lock, waiting at most ``timeout`` seconds.

    Raises:
        TransientError: If the lock could not be acquired in time
    """
    lock = account_lock(bank_account_id)
    acquired = lock.acquire(timeout=-1 if timeout is None else max(timeout, 0))
    if not acquired:
        raise TransientError(
            f"Bank account {bank_account_id} is busy with another reconciliation; retry later"
        )
    try:
        yield
    finally:
        lock.release()
