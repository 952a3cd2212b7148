from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from animset_editor.core import anim

LAYERS = ["body", "shadow"]


def mono(width: int, height: int, fill: int):
    payload = bytes([fill]) * (width * height)
    return anim.Texture(offset=0, size=len(payload), width=width, height=height), payload


def packed(width: int, height: int, fill: int, frames: Optional[List[anim.Frame]] = None, unk2: int = 0):
    """Values plus a one-layer monochrome texture of width x height."""
    if frames is None:
        frames = [anim.Frame(0, 0, 0, 0, width, height, 0)]
    return (
        anim.SpriteValues(unk2=unk2, width=width, height=height),
        anim.TexChanges(frames=frames, textures=[mono(width, height, fill), None]),
    )


def write_mainsd(path: Path, sprites: Sequence[anim.PackedSprite], layers=LAYERS) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as fh:
        anim.write_main_sd(fh, layers, sprites)
    return path


def write_single(path: Path, scale: int, sprite, layers=LAYERS) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    values, changes = sprite
    with path.open("wb") as fh:
        anim.write_anim(fh, scale, layers, values, changes)
    return path


def snapshot(root: Path) -> Dict[str, bytes]:
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


SPRITE1_FRAMES = [
    anim.Frame(0, 0, 0, 0, 3, 6, 0),
    anim.Frame(3, 0, 1, -1, 3, 6, 1),
]


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch):
    monkeypatch.delenv("ANIMSET_EDITOR_CONFIG", raising=False)


@pytest.fixture
def anim_tree(tmp_path: Path) -> Path:
    """
    Tree with three SD sprites:
      0: 8x4 data, 1: 6x6 data with two frames, 2: reference to 0.
    HD files exist for 0 and 1, HD2 only for 0.
    """
    root = tmp_path / "sprites"
    write_mainsd(
        root / "SD" / "mainSD.anim",
        [packed(8, 4, 10), packed(6, 6, 20, SPRITE1_FRAMES), anim.Ref(0)],
    )
    write_single(root / "anim" / "main_000.anim", 4, packed(32, 16, 30))
    write_single(root / "anim" / "main_001.anim", 4, packed(24, 24, 40))
    write_single(root / "HD2" / "anim" / "main_000.anim", 2, packed(16, 8, 50))
    return root


@pytest.fixture
def mainsd_file(anim_tree: Path) -> Path:
    return anim_tree / "SD" / "mainSD.anim"
