"""Turn an SD reference back into a sprite with its own (empty) data"""
from __future__ import annotations
from ._common import check_sprite, commit_or_report, open_state
from ...core.layout import Variant
from ...core.logger import get_logger

log = get_logger(__name__)


def run(args) -> None:
    """
    The sprite gets width and height 0 and no frames; use ``set-values``
    and ``set-textures`` afterwards to give it content.

    Args:
        args: Command-line arguments with:
            - path: Any file of the anim tree
            - sprite: Sprite whose reference is removed
            - dry_run: Preview without writing files
    """
    state = open_state(args)
    with state.borrow() as files:
        check_sprite(files, args.sprite)
        if not files.edits.is_reference(args.sprite, Variant.SD):
            log.info(f"Sprite {args.sprite} is not a reference")
            return
        files.set_ref_enabled(args.sprite, Variant.SD, False)
        commit_or_report(files, args.sprite, args.dry_run)
