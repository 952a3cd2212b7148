from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from .logger import get_logger

log = get_logger(__name__)

MAINSD_NAME = "mainSD.anim"
SD_DIR = "SD"
HD_DIR = "anim"
HD2_DIR = "HD2/anim"


class Variant(str, Enum):
    SD = "sd"
    HD = "hd"
    HD2 = "hd2"

    @property
    def scale(self) -> int:
        return {Variant.SD: 1, Variant.HD2: 2, Variant.HD: 4}[self]


@dataclass(frozen=True)
class AnimSet:
    image_id: int
    hd_filename: Path
    hd2_filename: Path
    name: str


@dataclass(frozen=True)
class SingleFile:
    path: Path

    @property
    def name(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class MainSdOnly:
    image_id: int
    name: str


SpriteFiles = Union[AnimSet, SingleFile, MainSdOnly]


def image_name(image_id: int) -> str:
    return f"#{image_id:03}"


def is_mainsd(path: Path) -> bool:
    return path.name.lower() == MAINSD_NAME.lower()


def file_root_from_file(path: Path) -> Optional[Path]:
    """Return the asset tree root if *path* sits where a tree keeps its files.

    Recognised (case-insensitively): ``<root>/SD/mainSD.anim``,
    ``<root>/anim/main_NNN.anim`` and ``<root>/HD2/anim/main_NNN.anim``.
    """
    filename = path.name
    parent_path = path.parent
    parent = parent_path.name
    if not filename or not parent:
        return None
    if filename.lower() == MAINSD_NAME.lower():
        if parent.lower() == "sd":
            return parent_path.parent
        return None
    if filename.endswith(".anim") and filename.startswith("main_"):
        if parent.lower() != "anim":
            return None
        level2 = parent_path.parent
        if level2.name.lower() == "hd2":
            return level2.parent
        return level2
    return None


def separate_file_path(sprite_files: SpriteFiles, variant: Variant) -> Optional[Path]:
    """Expected path of the single-sprite file for *variant*, if one could exist."""
    if isinstance(sprite_files, AnimSet):
        if variant is Variant.HD:
            return sprite_files.hd_filename
        if variant is Variant.HD2:
            return sprite_files.hd2_filename
        return None
    if isinstance(sprite_files, SingleFile) and variant is Variant.HD:
        return sprite_files.path
    return None


def anim_set_catalogue(root: Path, sprite_count: int) -> List[SpriteFiles]:
    # Paths are templated for every index; existence is checked on lookup.
    return [
        AnimSet(
            image_id=i,
            hd_filename=root / HD_DIR / f"main_{i:03}.anim",
            hd2_filename=root / HD2_DIR / f"main_{i:03}.anim",
            name=image_name(i),
        )
        for i in range(sprite_count)
    ]


def mainsd_only_catalogue(sprite_count: int) -> List[SpriteFiles]:
    return [MainSdOnly(image_id=i, name=image_name(i)) for i in range(sprite_count)]


def mainsd_path(root: Path) -> Path:
    return root / SD_DIR / MAINSD_NAME
