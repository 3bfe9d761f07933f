import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from storecart.commonUtils.cartErrors import (
    CartError,
    CartRevisionConflict,
    CONCURRENT_MODIFICATION,
    OPERATION_TIMED_OUT,
)
from storecart.commonUtils.enumUtils import ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Deadline:
    """
    Deadline shared by every I/O step of one cart operation.

    Reads and lock waits are cancelled when the deadline passes. Writes are
    only started while time remains and then run to completion, so a single
    document write is never cut in half.
    """

    def __init__(self, timeout: Optional[float]):
        self.timeout = timeout
        if timeout is None:
            self._expires_at = None
        else:
            self._expires_at = asyncio.get_running_loop().time() + timeout

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return self._expires_at - asyncio.get_running_loop().time()

    def ensure_time_left(self) -> None:
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise CartError(ErrorKind.TIMEOUT, OPERATION_TIMED_OUT)

    async def run(self, awaitable: Awaitable[T]) -> T:
        remaining = self.remaining()
        if remaining is None:
            return await awaitable
        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CartError(ErrorKind.TIMEOUT, OPERATION_TIMED_OUT)
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError:
            raise CartError(ErrorKind.TIMEOUT, OPERATION_TIMED_OUT)


class OwnerLocks:
    """In-process mutual exclusion keyed by cart owner"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, owner: str, deadline: Optional[Deadline] = None):
        lock = self._locks.setdefault(owner, asyncio.Lock())
        self._holders[owner] = self._holders.get(owner, 0) + 1
        try:
            if deadline is None:
                await lock.acquire()
            else:
                await deadline.run(lock.acquire())
            try:
                yield
            finally:
                lock.release()
        finally:
            self._holders[owner] -= 1
            if not self._holders[owner]:
                del self._holders[owner]
                del self._locks[owner]

    def is_locked(self, owner: str) -> bool:
        lock = self._locks.get(owner)
        return lock is not None and lock.locked()


async def run_with_retries(
        operation: Callable[[], Awaitable[T]],
        attempts: int,
        owner: Any,
) -> T:
    """Re-run an operation that lost a revision race, at most `attempts` times"""
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except CartRevisionConflict:
            logger.warning(f"Cart of {owner} changed during write (attempt {attempt}/{attempts})")
    raise CartError(ErrorKind.CONFLICT, CONCURRENT_MODIFICATION)


# Shared by every mutating cart operation in this process
owner_locks = OwnerLocks()
