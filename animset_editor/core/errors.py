from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence


class AnimError(Exception):
    """Base class for errors raised by the anim asset layer."""


class DecodeError(AnimError):
    """Container bytes could not be decoded."""

    def __init__(self, message: str, *, path: Optional[Path] = None, offset: Optional[int] = None):
        self.path = path
        self.offset = offset
        detail = message
        if offset is not None:
            detail = f"{detail} (at 0x{offset:x})"
        if path is not None:
            detail = f"{path}: {detail}"
        super().__init__(detail)

    def with_path(self, path: Path) -> "DecodeError":
        if self.path is not None:
            return self
        message = str(self)
        return DecodeError(message, path=path)


class StructuralError(AnimError):
    """An edit or lookup does not fit the shape of the asset."""


class SaveError(AnimError):
    """Committing written files over the originals failed."""

    def __init__(self, message: str, *, rolled_back: Sequence[Path] = ()):
        self.rolled_back: List[Path] = list(rolled_back)
        super().__init__(message)


class AssetBusyError(AnimError):
    """The asset state is already borrowed by another caller."""
