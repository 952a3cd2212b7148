from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image

from .errors import StructuralError
from .files import File
from .logger import get_logger

log = get_logger(__name__)

FRAMEDEF_NAME = "frame_info.txt"


def default_layer_prefixes(file: File) -> List[Optional[str]]:
    """One prefix per layer that has a texture, named after the layer."""
    names = file.layer_names()
    prefixes: List[Optional[str]] = []
    for i, name in enumerate(names):
        has_texture = file.texture_size(i) is not None
        prefixes.append((name or f"layer{i}") if has_texture else None)
    return prefixes


def _frame_type_runs(tags: Sequence[int]) -> List[tuple]:
    runs = []
    start = 0
    for i in range(1, len(tags) + 1):
        if i == len(tags) or tags[i] != tags[start]:
            runs.append((start, i - 1, tags[start]))
            start = i
    return runs


def export_frames(
    file: File,
    out_dir: Path,
    layer_prefixes: Sequence[Optional[str]],
    framedef_file: str = FRAMEDEF_NAME,
) -> int:
    """
    Write every frame of every prefixed layer as ``<prefix>_NNN.png``.

    All frames share one canvas size covering every frame offset, so the
    images line up when stacked. A framedef text file describing the
    offsets, layers and frame type runs is written next to them.

    Returns:
        Number of PNG files written
    """
    if not out_dir.is_dir():
        raise NotADirectoryError(f"{out_dir} is not a directory")
    frames = file.frames()
    if frames is None:
        raise StructuralError("Unable to get frames")
    values = file.sprite_values()
    if values is None:
        raise StructuralError("Couldn't get sprite values")

    x_base = min([0] + [f.x_off for f in frames])
    y_base = min([0] + [f.y_off for f in frames])
    x_max = max([f.x_off + f.width for f in frames], default=1)
    y_max = max([f.y_off + f.height for f in frames], default=1)
    out_width = max(x_max, values.width) - x_base
    out_height = max(y_max, values.height) - y_base

    written = 0
    for layer, prefix in enumerate(layer_prefixes):
        if prefix is None:
            continue
        texture = file.texture(layer)
        for n, frame in enumerate(frames):
            right = frame.tex_x + frame.width
            bottom = frame.tex_y + frame.height
            if right > texture.width or bottom > texture.height:
                raise StructuralError(f"Bad frame data for frame {n}")
            canvas = Image.new("RGBA", (out_width, out_height), (0, 0, 0, 0))
            if frame.width and frame.height:
                piece = texture.crop((frame.tex_x, frame.tex_y, right, bottom))
                canvas.paste(piece, (frame.x_off - x_base, frame.y_off - y_base))
            canvas.save(out_dir / f"{prefix}_{n:03}.png", format="PNG")
            written += 1
        log.info(f"Exported {len(frames)} frames of layer {layer} as {prefix}_*.png")

    lines = [
        "# Frame info for an anim file",
        "",
        f"frame_count = {len(frames)}",
        f"offset_x = {x_base}",
        f"offset_y = {y_base}",
    ]
    for layer, prefix in enumerate(layer_prefixes):
        if prefix is not None:
            lines.append(f"layer_{layer} = {prefix}")
    for first, last, tag in _frame_type_runs([f.unknown for f in frames]):
        lines.append(f"frame_types_{first}_{last} = {tag}")
    (out_dir / framedef_file).write_text("\n".join(lines) + "\n", encoding="utf-8")
    return written
