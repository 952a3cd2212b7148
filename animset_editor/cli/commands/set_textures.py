"""Replace the frames and textures of one sprite variant"""
from __future__ import annotations
from pathlib import Path
from ._common import check_sprite, commit_or_report, open_state, variant_of
from ...core.errors import StructuralError
from ...core.logger import get_logger
from ...core.tex_import import load_texture_change

log = get_logger(__name__)


def run(args) -> None:
    """
    Args:
        args: Command-line arguments with:
            - path: Any file of the anim tree
            - sprite: Sprite index
            - variant: sd, hd or hd2
            - manifest: JSON manifest describing frames and layer payloads
            - dry_run: Preview without writing files
    """
    variant = variant_of(args)
    changes = load_texture_change(Path(args.manifest).resolve())
    log.info(
        f"Manifest: {len(changes.frames)} frame(s), "
        f"{sum(1 for t in changes.textures if t is not None)} texture layer(s)"
    )

    state = open_state(args)
    with state.borrow() as files:
        check_sprite(files, args.sprite)
        view = files.file(args.sprite, variant)
        if view is None:
            raise StructuralError(f"Sprite {args.sprite} has no {variant.value} data")
        if files.edits.is_reference(args.sprite, variant):
            raise StructuralError(
                f"Sprite {args.sprite} is a reference; run clear-ref before setting textures"
            )
        layer_count = len(view.layer_names())
        if len(changes.textures) > layer_count:
            raise StructuralError(
                f"Manifest has {len(changes.textures)} layers, container has {layer_count}"
            )
        files.set_tex_changes(args.sprite, variant, changes)
        commit_or_report(files, args.sprite, args.dry_run)
