from __future__ import annotations
from pathlib import Path
from ...core.context import AssetState
from ...core.errors import StructuralError
from ...core.files import Files
from ...core.layout import Variant
from ...core.logger import get_logger
from ...core.summary import sprite_summary

log = get_logger(__name__)


def open_state(args) -> AssetState:
    path = Path(args.path).resolve()
    return AssetState.open(path, getattr(args, "editor_config", None))


def variant_of(args) -> Variant:
    return Variant(getattr(args, "variant", "sd"))


def check_sprite(files: Files, sprite: int) -> None:
    files.resolver.check_index(sprite)
    if files.file(sprite, Variant.SD) is None and all(
        files.file(sprite, v) is None for v in (Variant.HD, Variant.HD2)
    ):
        raise StructuralError(f"Sprite {sprite} has no data in any variant")


def commit_or_report(files: Files, sprite: int, dry_run: bool) -> None:
    """Log the sprite as it now looks and save unless this is a dry run."""
    for line in sprite_summary(files, sprite).lines():
        log.info(line)
    if not files.has_changes():
        log.info("Nothing to save; edit matches the file on disk")
        return
    if dry_run:
        log.info(f"[dry-run] {len(files.edits)} pending edit(s) not written")
        return
    report = files.save()
    for path in report.committed:
        log.info(f"Wrote {path}")
    if report.mainsd_reloaded:
        log.info("Reloaded mainSD")
