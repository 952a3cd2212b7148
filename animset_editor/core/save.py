"""
Transactional save of pending edits.

Every affected container is written to a temporary file next to the
original first. Only when all writes succeeded are the temporary files
renamed over the originals; a failing rename restores the originals that
were already replaced, so the tree is either fully saved or left as it was.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

from .edits import RefEdit, ValuesEdit
from .errors import SaveError, StructuralError
from .layout import Variant
from .logger import get_logger
from .resolver import load_anim

if TYPE_CHECKING:
    from .files import Files

log = get_logger(__name__)


@dataclass
class SaveReport:
    """Files written by a save."""

    committed: List[Path] = field(default_factory=list)
    mainsd_reloaded: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.committed)


def temp_file_path(orig_file: Path, prefix: str) -> Path:
    return orig_file.with_name(f"{prefix}{orig_file.name}")


def _discard(paths: List[Path]) -> None:
    for path in paths:
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            log.warning(f"Unable to remove temporary file {path}: {exc}")


def _check_edits(files: "Files") -> List[Tuple[int, Variant, ValuesEdit, Path]]:
    """Validate edits before anything is written; returns the HD/HD2 jobs."""
    jobs = []
    for (sprite, variant), edit in files.edits.items():
        if variant is Variant.SD:
            continue
        if isinstance(edit, RefEdit):
            raise StructuralError(f"Ref edit for a separate sprite {sprite}/{variant.value}")
        path = files.resolver.separate_file_path(sprite, variant)
        if path is None:
            raise StructuralError(f"No path for sprite {sprite}/{variant.value}")
        jobs.append((sprite, variant, edit, path))
    return jobs


def _write_staged(files: "Files") -> List[Tuple[Path, Path]]:
    prefix = files.config.temp_prefix
    jobs = _check_edits(files)
    data_changes, tex_changes = files.sd_changes()
    mainsd = files.mainsd()
    sd_path: Optional[Path] = files.mainsd_path
    if data_changes and (mainsd is None or sd_path is None):
        raise StructuralError("SD edits pending but no mainsd loaded")

    staged: List[Tuple[Path, Path]] = []
    try:
        for sprite, variant, edit, path in jobs:
            # Read fresh from disk, the open-file cache is not reused here
            original = load_anim(path)
            out_path = temp_file_path(path, prefix)
            staged.append((out_path, path))
            with out_path.open("wb") as out:
                original.write_patched(
                    out,
                    files.scale_for(sprite, variant, original),
                    original.layer_names(),
                    edit.values,
                    edit.tex_changes,
                )
        if data_changes:
            out_path = temp_file_path(sd_path, prefix)
            staged.append((out_path, sd_path))
            with out_path.open("wb") as out:
                mainsd.write_patched(
                    out,
                    mainsd.sprite_count(),
                    mainsd.layer_names(),
                    data_changes,
                    tex_changes,
                )
    except Exception:
        _discard([temp for temp, _ in staged])
        raise
    return staged


def _rollback(committed: List[Tuple[Path, Path]]) -> List[Path]:
    restored = []
    for dest, backup in reversed(committed):
        try:
            os.replace(backup, dest)
            restored.append(dest)
        except OSError as exc:
            log.error(f"Unable to restore {dest} from {backup}: {exc}")
    return restored


def _commit(staged: List[Tuple[Path, Path]], backup_prefix: str) -> List[Path]:
    committed: List[Tuple[Path, Path]] = []
    for position, (temp, dest) in enumerate(staged):
        backup = temp_file_path(dest, backup_prefix)
        try:
            os.replace(dest, backup)
            try:
                os.replace(temp, dest)
            except OSError:
                os.replace(backup, dest)
                raise
        except OSError as exc:
            restored = _rollback(committed)
            _discard([t for t, _ in staged[position:]])
            raise SaveError(
                f"Unable to replace {dest}: {exc}; restored {len(restored)} file(s)",
                rolled_back=restored,
            ) from exc
        committed.append((dest, backup))
        log.info(f"Saved {dest}")
    _discard([backup for _, backup in committed])
    return [dest for dest, _ in committed]


def save_files(files: "Files") -> SaveReport:
    """Write all pending edits of *files* to disk.

    Edits are only cleared when every file was committed. On failure the
    edits stay, the open-file cache stays closed and no file on disk is
    left modified.
    """
    report = SaveReport()
    if not files.has_changes():
        return report

    files.close_opened()
    staged = _write_staged(files)
    sd_touched = any(dest == files.mainsd_path for _, dest in staged)
    report.committed = _commit(staged, files.config.backup_prefix)
    files.edits.clear()

    if sd_touched:
        files.reload_mainsd()
        report.mainsd_reloaded = True
    return report
