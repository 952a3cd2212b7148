"""
Texture change manifests.

A manifest is a JSON file listing the new frame geometry and, per layer, an
already encoded texture payload (DDS or raw monochrome plane) with its size.
Layout and compression happen before this point; the payloads are attached
verbatim.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from . import anim


class FrameModel(BaseModel):
    tex_x: int = Field(..., ge=0, le=0xFFFF)
    tex_y: int = Field(..., ge=0, le=0xFFFF)
    x_off: int = Field(..., ge=-0x8000, le=0x7FFF)
    y_off: int = Field(..., ge=-0x8000, le=0x7FFF)
    width: int = Field(..., ge=0, le=0xFFFF)
    height: int = Field(..., ge=0, le=0xFFFF)
    unknown: int = Field(0, ge=0, le=0xFFFFFFFF, description="Frame type tag")


class LayerTextureModel(BaseModel):
    file: str = Field(..., description="Payload path, relative to the manifest")
    width: int = Field(..., ge=0, le=0xFFFF)
    height: int = Field(..., ge=0, le=0xFFFF)


class TextureChangeModel(BaseModel):
    frames: List[FrameModel] = Field(default_factory=list)
    textures: List[Optional[LayerTextureModel]] = Field(default_factory=list)


def load_texture_change(manifest_path: Path) -> anim.TexChanges:
    data = json.loads(manifest_path.read_text(encoding="utf-8"))
    model = TextureChangeModel.model_validate(data)
    base = manifest_path.parent
    textures: List[Optional[tuple]] = []
    for layer in model.textures:
        if layer is None:
            textures.append(None)
            continue
        payload = (base / layer.file).read_bytes()
        # Validates the payload header before it ends up in a container
        anim.texture_format(payload)
        size = anim.Texture(offset=0, size=len(payload), width=layer.width, height=layer.height)
        textures.append((size, payload))
    frames = [anim.Frame(**f.model_dump()) for f in model.frames]
    return anim.TexChanges(frames=frames, textures=textures)
