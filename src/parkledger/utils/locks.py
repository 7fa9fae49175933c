"""Process-wide advisory locks keyed by name."""

import threading
from contextlib import contextmanager
from typing import Iterator

from parkledger.domain.errors import OperationInProgressError, operation_in_progress


class KeyedLock:
    """Non-blocking locks, one per key.

    Used to keep two runs of the catch-up job, or two saves of the same budget
    year, from overlapping. A held key raises OperationInProgressError instead
    of waiting.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._held: set[str] = set()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            if key in self._held:
                raise OperationInProgressError(operation_in_progress(key))
            self._held.add(key)
        try:
            yield
        finally:
            with self._guard:
                self._held.discard(key)

    def is_held(self, key: str) -> bool:
        with self._guard:
            return key in self._held


# Shared by every service in the process
advisory_locks = KeyedLock()
