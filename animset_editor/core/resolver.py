"""
Location resolution for (sprite, variant) pairs.

SD data always lives in the aggregate container; HD and HD2 data live in
per-sprite files which are opened lazily and kept in an :class:`OpenFileCache`
until the caller closes the selection or saves.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from PIL import Image

from . import anim
from .errors import DecodeError, StructuralError
from .layout import SpriteFiles, Variant, separate_file_path
from .logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class CacheHandle:
    slot: int
    generation: int


class OpenFileCache:
    """Arena of decoded single-sprite containers.

    Handles stay valid across later insertions; :meth:`clear` starts a new
    generation so handles issued before it are rejected.
    """

    def __init__(self) -> None:
        self._entries: List[Tuple[anim.Anim, int, Variant]] = []
        self._index: Dict[Tuple[int, Variant], int] = {}
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, sprite: int, variant: Variant) -> Optional[CacheHandle]:
        slot = self._index.get((sprite, variant))
        if slot is None:
            return None
        return CacheHandle(slot, self._generation)

    def insert(self, container: anim.Anim, sprite: int, variant: Variant) -> CacheHandle:
        existing = self.lookup(sprite, variant)
        if existing is not None:
            return existing
        self._entries.append((container, sprite, variant))
        slot = len(self._entries) - 1
        self._index[(sprite, variant)] = slot
        return CacheHandle(slot, self._generation)

    def get(self, handle: CacheHandle) -> anim.Anim:
        if handle.generation != self._generation or handle.slot >= len(self._entries):
            raise StructuralError("Stale handle to a closed sprite file")
        return self._entries[handle.slot][0]

    def clear(self) -> None:
        self._entries.clear()
        self._index.clear()
        self._generation += 1


class MainSdLocation:
    """Sprite data inside the aggregate container."""

    def __init__(self, sprite: int, mainsd: anim.MainSd):
        self.sprite = sprite
        self.mainsd = mainsd

    def values_or_ref(self) -> Optional[anim.ValuesOrRef]:
        return self.mainsd.values_or_ref(self.sprite)

    def sprite_values(self) -> Optional[anim.SpriteValues]:
        return self.mainsd.sprite_values(self.sprite)

    def frames(self) -> Optional[List[anim.Frame]]:
        return self.mainsd.frames(self.sprite)

    def texture_sizes(self) -> Optional[List[Optional[anim.Texture]]]:
        return self.mainsd.texture_sizes(self.sprite)

    def texture_formats(self) -> List[Optional[anim.TextureFormat]]:
        return self.mainsd.texture_formats(self.sprite)

    def texture(self, layer: int) -> Image.Image:
        return self.mainsd.texture(self.sprite, layer)

    def layer_names(self) -> List[str]:
        return self.mainsd.layer_names()

    def image_ref(self) -> Optional[int]:
        slot = self.mainsd.sprite_slot(self.sprite)
        if isinstance(slot, anim.SpriteRef):
            return slot.target
        return None


class SeparateLocation:
    """Sprite data in a cached single-sprite file."""

    def __init__(self, handle: CacheHandle, cache: OpenFileCache):
        self.handle = handle
        self._cache = cache

    @property
    def file(self) -> anim.Anim:
        return self._cache.get(self.handle)

    def values_or_ref(self) -> Optional[anim.ValuesOrRef]:
        return anim.Values(self.file.sprite_values())

    def sprite_values(self) -> Optional[anim.SpriteValues]:
        return self.file.sprite_values()

    def frames(self) -> Optional[List[anim.Frame]]:
        return self.file.frames()

    def texture_sizes(self) -> Optional[List[Optional[anim.Texture]]]:
        return self.file.texture_sizes()

    def texture_formats(self) -> List[Optional[anim.TextureFormat]]:
        return self.file.texture_formats()

    def texture(self, layer: int) -> Image.Image:
        return self.file.texture(layer)

    def layer_names(self) -> List[str]:
        return self.file.layer_names()

    def image_ref(self) -> Optional[int]:
        return None


Location = Union[MainSdLocation, SeparateLocation]


def load_anim(path: Path) -> anim.Anim:
    with path.open("rb") as fh:
        try:
            return anim.Anim.read(fh)
        except DecodeError as exc:
            raise exc.with_path(path) from exc


def load_mainsd(path: Path) -> anim.MainSd:
    with path.open("rb") as fh:
        try:
            return anim.MainSd.read(fh)
        except DecodeError as exc:
            raise exc.with_path(path) from exc


class LocationResolver:
    """Maps (sprite, variant) to the container holding its original data."""

    def __init__(self, sprites: Sequence[SpriteFiles], mainsd: Optional[anim.MainSd] = None):
        self._sprites = sprites
        self.mainsd = mainsd
        self.open_files = OpenFileCache()

    def sprite_count(self) -> int:
        return len(self._sprites)

    def check_index(self, sprite: int) -> None:
        if sprite < 0 or sprite >= len(self._sprites):
            raise StructuralError(
                f"Sprite index {sprite} out of range (0..{len(self._sprites) - 1})"
            )

    def resolve(self, sprite: int, variant: Variant) -> Optional[Location]:
        """Return the location of the original data, or None if there is none.

        Raises StructuralError for an index outside the catalogue; decode and
        I/O errors from opening a single-sprite file propagate.
        """
        self.check_index(sprite)
        if variant is Variant.SD:
            if self.mainsd is None or sprite >= self.mainsd.sprite_count():
                return None
            return MainSdLocation(sprite, self.mainsd)
        handle = self.open_files.lookup(sprite, variant)
        if handle is not None:
            log.debug(f"Using cached file for {sprite}/{variant.value}")
            return SeparateLocation(handle, self.open_files)
        path = self.separate_file_path(sprite, variant)
        if path is None:
            return None
        container = load_anim(path)
        handle = self.open_files.insert(container, sprite, variant)
        return SeparateLocation(handle, self.open_files)

    def separate_file_path(self, sprite: int, variant: Variant) -> Optional[Path]:
        """Path of the existing HD/HD2 file for *sprite*, or None."""
        if sprite < 0 or sprite >= len(self._sprites):
            return None
        path = separate_file_path(self._sprites[sprite], variant)
        if path is None or not path.is_file():
            return None
        return path

    def close_opened(self) -> None:
        self.open_files.clear()
