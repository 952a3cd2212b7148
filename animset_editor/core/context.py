from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .config import EditorConfigModel
from .errors import AssetBusyError
from .files import Files


class AssetState:
    """Owns the currently opened :class:`Files` and serialises access to it.

    Views handed out by ``Files.file`` borrow from the cached containers, so
    they must not be kept past the ``borrow()`` block that produced them.
    """

    def __init__(self, files: Optional[Files] = None) -> None:
        self._files = files if files is not None else Files.empty()
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: Path, config: Optional[EditorConfigModel] = None) -> "AssetState":
        return cls(Files.init(path, config))

    def _acquire(self) -> None:
        if not self._lock.acquire(blocking=False):
            raise AssetBusyError("Asset state is already in use")

    @contextmanager
    def borrow(self) -> Iterator[Files]:
        self._acquire()
        try:
            yield self._files
        finally:
            self._lock.release()

    @property
    def is_borrowed(self) -> bool:
        return self._lock.locked()

    def replace(self, files: Files) -> None:
        """Swap in a newly opened asset; pending edits of the old one are dropped."""
        self._acquire()
        try:
            self._files = files
        finally:
            self._lock.release()
