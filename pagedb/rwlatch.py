"""Reader-writer latch that favours waiting writers."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ReaderWriterLatch:
    """Many readers or one writer; a waiting writer blocks new readers."""

    MAX_READERS = 0xFFFFFFFF

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._writer = threading.Condition(self._mutex)
        self._reader = threading.Condition(self._mutex)
        self._reader_count = 0
        self._writer_entered = False

    def w_lock(self) -> None:
        """Acquire the latch exclusively."""
        with self._mutex:
            while self._writer_entered:
                self._reader.wait()
            self._writer_entered = True
            while self._reader_count > 0:
                self._writer.wait()

    def w_unlock(self) -> None:
        """Release an exclusive hold."""
        with self._mutex:
            if not self._writer_entered:
                raise RuntimeError("write latch is not held")
            self._writer_entered = False
            self._reader.notify_all()

    def r_lock(self) -> None:
        """Acquire a shared hold."""
        with self._mutex:
            while self._writer_entered or self._reader_count == self.MAX_READERS:
                self._reader.wait()
            self._reader_count += 1

    def r_unlock(self) -> None:
        """Release a shared hold."""
        with self._mutex:
            if self._reader_count == 0:
                raise RuntimeError("read latch is not held")
            self._reader_count -= 1
            if self._writer_entered:
                if self._reader_count == 0:
                    self._writer.notify()
            elif self._reader_count == self.MAX_READERS - 1:
                self._reader.notify()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        """Hold a shared latch for the duration of the block."""
        self.r_lock()
        try:
            yield
        finally:
            self.r_unlock()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        """Hold an exclusive latch for the duration of the block."""
        self.w_lock()
        try:
            yield
        finally:
            self.w_unlock()