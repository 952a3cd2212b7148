"""Export the frames of one sprite variant as PNG files"""
from __future__ import annotations
from pathlib import Path
from ._common import check_sprite, open_state, variant_of
from ...core.errors import StructuralError
from ...core.frame_export import FRAMEDEF_NAME, default_layer_prefixes, export_frames
from ...core.logger import get_logger

log = get_logger(__name__)


def run(args) -> None:
    """
    Args:
        args: Command-line arguments with:
            - path: Any file of the anim tree
            - sprite: Sprite index
            - variant: sd, hd or hd2
            - out: Output directory, created if missing
    """
    variant = variant_of(args)
    out_dir = Path(args.out).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    state = open_state(args)
    with state.borrow() as files:
        check_sprite(files, args.sprite)
        view = files.file(args.sprite, variant)
        if view is None:
            raise StructuralError(f"Sprite {args.sprite} has no {variant.value} data")
        if view.is_reference:
            log.info(f"Sprite {args.sprite} references {view.image_ref()}; exporting its data")
        written = export_frames(view, out_dir, default_layer_prefixes(view))
        log.info(f"Wrote {written} PNG file(s) and {FRAMEDEF_NAME} to {out_dir}")
