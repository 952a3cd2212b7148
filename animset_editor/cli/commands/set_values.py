"""Change the header values of one sprite variant"""
from __future__ import annotations
from dataclasses import replace
from ._common import check_sprite, commit_or_report, open_state, variant_of
from ...core.errors import StructuralError
from ...core.logger import get_logger

log = get_logger(__name__)


def run(args) -> None:
    """
    Args:
        args: Command-line arguments with:
            - path: Any file of the anim tree
            - sprite: Sprite index
            - variant: sd, hd or hd2
            - width/height/unknown: New values; omitted ones are kept
            - dry_run: Preview without writing files
    """
    variant = variant_of(args)
    changes = {}
    if args.width is not None:
        changes["width"] = args.width
    if args.height is not None:
        changes["height"] = args.height
    if args.unknown is not None:
        changes["unk2"] = args.unknown
    for name, value in changes.items():
        if not 0 <= value <= 0xFFFF:
            raise StructuralError(f"{name} must fit in 16 bits, got {value}")
    if not changes:
        log.warning("No values given; nothing to do")
        return

    state = open_state(args)
    with state.borrow() as files:
        check_sprite(files, args.sprite)
        if files.file(args.sprite, variant) is None:
            raise StructuralError(f"Sprite {args.sprite} has no {variant.value} data")
        if files.edits.is_reference(args.sprite, variant):
            raise StructuralError(
                f"Sprite {args.sprite} is a reference; run clear-ref before setting values"
            )
        files.update_file(args.sprite, variant, lambda values: replace(values, **changes))
        commit_or_report(files, args.sprite, args.dry_run)
