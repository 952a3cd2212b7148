"""Make an SD sprite reference another sprite's data"""
from __future__ import annotations
from ._common import check_sprite, commit_or_report, open_state
from ...core.layout import Variant
from ...core.logger import get_logger

log = get_logger(__name__)


def run(args) -> None:
    """
    Args:
        args: Command-line arguments with:
            - path: Any file of the anim tree
            - sprite: Sprite to turn into a reference
            - target: Sprite whose SD data is shown instead
            - dry_run: Preview without writing files
    """
    state = open_state(args)
    with state.borrow() as files:
        check_sprite(files, args.sprite)
        files.set_ref_img(args.sprite, Variant.SD, args.target)
        log.info(f"Sprite {args.sprite} -> {args.target}")
        commit_or_report(files, args.sprite, args.dry_run)
