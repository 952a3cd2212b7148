from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from . import anim
from .files import Files
from .layout import Variant


@dataclass
class VariantSummary:
    variant: Variant
    values: Optional[anim.SpriteValues]
    frame_count: Optional[int]
    image_ref: Optional[int]
    layers: List[str]
    edited: bool

    def line(self) -> str:
        if self.image_ref is not None:
            head = f"ref -> #{self.image_ref:03}"
        elif self.values is not None:
            head = f"{self.values.width}x{self.values.height} unk 0x{self.values.unk2:04x}"
        else:
            head = "no values"
        frames = "?" if self.frame_count is None else str(self.frame_count)
        mark = " *" if self.edited else ""
        return f"  {self.variant.value:<3} {head}, {frames} frames, layers [{', '.join(self.layers)}]{mark}"


@dataclass
class SpriteSummary:
    index: int
    name: str
    variants: Dict[Variant, VariantSummary] = field(default_factory=dict)

    def lines(self) -> List[str]:
        out = [f"{self.name}"]
        for variant in Variant:
            summary = self.variants.get(variant)
            if summary is not None:
                out.append(summary.line())
        return out


def sprite_summary(files: Files, sprite: int) -> SpriteSummary:
    """Describe which variants of *sprite* exist and what they currently hold."""
    entry = files.sprites()[sprite]
    result = SpriteSummary(index=sprite, name=entry.name)
    for variant in Variant:
        view = files.file(sprite, variant)
        if view is None:
            continue
        frames = view.frames()
        result.variants[variant] = VariantSummary(
            variant=variant,
            values=view.sprite_values(),
            frame_count=len(frames) if frames is not None else None,
            image_ref=view.image_ref(),
            layers=view.layer_names(),
            edited=(sprite, variant) in files.edits,
        )
    return result
