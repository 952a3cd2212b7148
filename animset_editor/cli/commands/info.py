"""Describe the sprites of an anim tree"""
from __future__ import annotations
from ._common import open_state
from ...core.layout import AnimSet
from ...core.logger import get_logger
from ...core.summary import sprite_summary

log = get_logger(__name__)


def run(args) -> None:
    """
    Log every sprite (or one) with the data each variant currently holds.

    Args:
        args: Command-line arguments with:
            - path: Any file of the anim tree, or a single .anim file
            - sprite: Optional sprite index to restrict the listing to
    """
    state = open_state(args)
    with state.borrow() as files:
        mainsd = files.mainsd()
        if mainsd is not None:
            log.info(
                f"{files.mainsd_path}: {mainsd.sprite_count()} sprites, "
                f"layers [{', '.join(mainsd.layer_names())}]"
            )
        elif any(isinstance(s, AnimSet) for s in files.sprites()):
            log.warning("No mainSD found; sprite count is a guess")

        if args.sprite is not None:
            files.resolver.check_index(args.sprite)
            indices = [args.sprite]
        else:
            indices = range(len(files.sprites()))

        shown = 0
        for sprite in indices:
            summary = sprite_summary(files, sprite)
            if not summary.variants:
                continue
            for line in summary.lines():
                log.info(line)
            shown += 1
        log.info(f"{shown} sprite(s) with data")
