"""
Asset state for one opened anim tree (or single file).

:class:`Files` ties together the sprite catalogue, the aggregate SD
container, the location resolver and the edit overlay. :meth:`Files.file`
hands out :class:`File` views which show the original data with any pending
edits merged on top.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Tuple

from PIL import Image

from . import anim
from .config import EditorConfigModel, load_config
from .edits import Edit, EditOverlay, RefEdit, ValuesEdit
from .errors import StructuralError
from .layout import (
    SingleFile,
    SpriteFiles,
    Variant,
    anim_set_catalogue,
    file_root_from_file,
    is_mainsd,
    mainsd_only_catalogue,
    mainsd_path,
)
from .logger import get_logger
from .resolver import Location, LocationResolver, MainSdLocation, SeparateLocation, load_mainsd
from .save import SaveReport, save_files

log = get_logger(__name__)

EditLookup = Callable[[int, Variant], Optional[Edit]]


class File:
    """Read-only merged view of one (sprite, variant).

    ``location`` is where the sprite itself lives; ``data_location`` is where
    its unedited data is read from (the reference target for references,
    None when a reference leads to another reference).
    """

    def __init__(
        self,
        location: Location,
        data_location: Optional[Location],
        image_ref: Optional[int],
        sprite_values: Optional[anim.SpriteValues] = None,
        tex_changes: Optional[anim.TexChanges] = None,
    ):
        self.location = location
        self.data_location = data_location
        self._image_ref = image_ref
        self._sprite_values = sprite_values
        self._tex_changes = tex_changes

    def sprite_values(self) -> Optional[anim.SpriteValues]:
        if self._sprite_values is not None:
            return self._sprite_values
        if self.data_location is None:
            return None
        return self.data_location.sprite_values()

    def frames(self) -> Optional[List[anim.Frame]]:
        if self._tex_changes is not None:
            return list(self._tex_changes.frames)
        if self.data_location is None:
            return None
        return self.data_location.frames()

    def _changed_texture(self, layer: int) -> Tuple[anim.Texture, bytes]:
        textures = self._tex_changes.textures
        tex = textures[layer] if 0 <= layer < len(textures) else None
        if tex is None:
            raise StructuralError(f"No texture for layer {layer}")
        return tex

    def texture(self, layer: int) -> Image.Image:
        if self._tex_changes is not None:
            size, data = self._changed_texture(layer)
            return anim.read_texture(data, size)
        if self.data_location is None:
            raise StructuralError(
                f"Reference {self._image_ref} points at another reference; no texture data"
            )
        return self.data_location.texture(layer)

    def texture_size(self, layer: int) -> Optional[anim.Texture]:
        if self._tex_changes is not None:
            textures = self._tex_changes.textures
            if 0 <= layer < len(textures) and textures[layer] is not None:
                return textures[layer][0]
            return None
        if self.data_location is None:
            return None
        sizes = self.data_location.texture_sizes()
        if sizes is None or not 0 <= layer < len(sizes):
            return None
        return sizes[layer]

    def texture_formats(self) -> List[Optional[anim.TextureFormat]]:
        if self._tex_changes is not None:
            return [
                anim.layer_format(tex[1], layer) if tex is not None else None
                for layer, tex in enumerate(self._tex_changes.textures)
            ]
        if self.data_location is None:
            return []
        return self.data_location.texture_formats()

    def layer_names(self) -> List[str]:
        return self.location.layer_names()

    def image_ref(self) -> Optional[int]:
        return self._image_ref

    @property
    def is_reference(self) -> bool:
        return self._image_ref is not None


def _chase_reference(
    edit_lookup: EditLookup,
    location: Location,
    target: int,
    variant: Variant,
) -> File:
    if not isinstance(location, MainSdLocation):
        raise StructuralError("Ref in HD sprite")
    mainsd = location.mainsd
    if target < 0 or target >= mainsd.sprite_count():
        raise StructuralError(
            f"Sprite {location.sprite} references {target}, outside 0..{mainsd.sprite_count() - 1}"
        )
    target_edit = edit_lookup(target, variant)
    if isinstance(target_edit, ValuesEdit):
        return File(
            location,
            MainSdLocation(target, mainsd),
            target,
            sprite_values=target_edit.values,
            tex_changes=target_edit.tex_changes,
        )
    if isinstance(target_edit, RefEdit) or isinstance(mainsd.sprite_slot(target), anim.SpriteRef):
        log.warning(f"Double ref for {location.sprite} (via {target})")
        return File(location, None, target)
    return File(location, MainSdLocation(target, mainsd), target)


def compose_view(edit_lookup: EditLookup, sprite: int, variant: Variant, location: Location) -> File:
    """Merge pending edits over the original data at *location*.

    An explicit values edit wins; a reference edit (or an unedited
    reference) shows the target's edit if it has one, else the target's
    original data. References are followed one hop only.
    """
    edit = edit_lookup(sprite, variant)
    if isinstance(edit, ValuesEdit):
        return File(location, location, None, sprite_values=edit.values, tex_changes=edit.tex_changes)
    if isinstance(edit, RefEdit):
        return _chase_reference(edit_lookup, location, edit.target, variant)
    original_ref = location.image_ref()
    if original_ref is not None:
        return _chase_reference(edit_lookup, location, original_ref, variant)
    return File(location, location, None)


class Files:
    """Catalogue, containers and pending edits of one opened asset."""

    def __init__(
        self,
        sprites: List[SpriteFiles],
        mainsd_anim: Optional[Tuple[Path, anim.MainSd]] = None,
        root_path: Optional[Path] = None,
        config: Optional[EditorConfigModel] = None,
    ):
        self._sprites = list(sprites)
        self._mainsd_path = mainsd_anim[0] if mainsd_anim is not None else None
        self._root_path = root_path
        self.config = config or EditorConfigModel()
        self.resolver = LocationResolver(
            self._sprites, mainsd_anim[1] if mainsd_anim is not None else None
        )
        self.edits = EditOverlay(self.resolver)

    @classmethod
    def empty(cls) -> "Files":
        return cls([])

    @classmethod
    def init(cls, one_filename: Path, config: Optional[EditorConfigModel] = None) -> "Files":
        """Open the anim tree *one_filename* belongs to, or just that file.

        Failures reading the aggregate container propagate.
        """
        config = config or load_config()
        root = file_root_from_file(one_filename)
        if root is not None:
            sd_path = mainsd_path(root)
            mainsd_anim = None
            if sd_path.is_file():
                mainsd_anim = (sd_path, load_mainsd(sd_path))
            if mainsd_anim is not None:
                sprite_count = mainsd_anim[1].sprite_count()
            else:
                sprite_count = config.speculative_sprite_count
            log.info(
                f"Opened anim tree {root} ({sprite_count} sprites, "
                f"{'with' if mainsd_anim else 'without'} {sd_path.name})"
            )
            return cls(anim_set_catalogue(root, sprite_count), mainsd_anim, root, config)
        if is_mainsd(one_filename):
            mainsd = load_mainsd(one_filename)
            log.info(f"Opened standalone {one_filename} ({mainsd.sprite_count()} sprites)")
            return cls(
                mainsd_only_catalogue(mainsd.sprite_count()),
                (one_filename, mainsd),
                one_filename,
                config,
            )
        log.info(f"Opened single file {one_filename}")
        return cls([SingleFile(one_filename)], None, one_filename, config)

    @property
    def root_path(self) -> Optional[Path]:
        return self._root_path

    @property
    def mainsd_path(self) -> Optional[Path]:
        return self._mainsd_path

    def sprites(self) -> List[SpriteFiles]:
        return list(self._sprites)

    def mainsd(self) -> Optional[anim.MainSd]:
        return self.resolver.mainsd

    def reload_mainsd(self) -> None:
        """Re-read the aggregate container from its path."""
        if self._mainsd_path is None:
            return
        self.resolver.mainsd = load_mainsd(self._mainsd_path)

    def file(self, sprite: int, variant: Variant) -> Optional[File]:
        """Merged view of (sprite, variant), or None if it has no data."""
        location = self.resolver.resolve(sprite, variant)
        if location is None:
            return None
        return compose_view(self.edits.get, sprite, variant, location)

    def close_opened(self) -> None:
        self.resolver.close_opened()

    def set_ref_enabled(self, sprite: int, variant: Variant, enabled: bool) -> None:
        self.edits.set_reference_enabled(sprite, variant, enabled)

    def set_ref_img(self, sprite: int, variant: Variant, image: int) -> None:
        self.edits.set_reference_target(sprite, variant, image)

    def set_tex_changes(self, sprite: int, variant: Variant, changes: anim.TexChanges) -> None:
        self.edits.set_texture_change(sprite, variant, changes)

    def update_file(
        self,
        sprite: int,
        variant: Variant,
        fun: Callable[[anim.SpriteValues], anim.SpriteValues],
    ) -> None:
        self.edits.update_values(sprite, variant, fun)

    def has_changes(self) -> bool:
        return self.edits.has_pending_edits()

    def scale_for(self, sprite: int, variant: Variant, container: anim.Anim) -> int:
        if isinstance(self._sprites[sprite], SingleFile):
            return container.scale
        return variant.scale

    def sd_changes(self) -> Tuple[List[Tuple[int, anim.ValuesOrRef]], List[Tuple[int, anim.TexChanges]]]:
        """Pending SD edits in the shape the aggregate writer takes."""
        data_changes: List[Tuple[int, anim.ValuesOrRef]] = []
        tex_changes: List[Tuple[int, anim.TexChanges]] = []
        for (sprite, variant), edit in self.edits.items():
            if variant is not Variant.SD:
                continue
            if isinstance(edit, RefEdit):
                data_changes.append((sprite, anim.Ref(edit.target)))
                continue
            data_changes.append((sprite, anim.Values(edit.values)))
            if edit.tex_changes is not None:
                tex_changes.append((sprite, edit.tex_changes))
        return data_changes, tex_changes

    def write_mainsd(self, out: BinaryIO) -> None:
        """Write the aggregate container with pending SD edits to *out*."""
        mainsd = self.mainsd()
        if mainsd is None:
            raise StructuralError("No mainsd loaded")
        data_changes, tex_changes = self.sd_changes()
        mainsd.write_patched(
            out, mainsd.sprite_count(), mainsd.layer_names(), data_changes, tex_changes
        )

    def write_separate(self, out: BinaryIO, sprite: int, variant: Variant) -> None:
        """Write the HD/HD2 file of *sprite* with its pending edit to *out*."""
        file = self.file(sprite, variant)
        if file is None or not isinstance(file.location, SeparateLocation):
            raise StructuralError(f"No anim file for sprite {sprite}/{variant.value}")
        values = file.sprite_values()
        if values is None:
            raise StructuralError(f"No sprite values for {sprite}/{variant.value}")
        container = file.location.file
        edit = self.edits.get(sprite, variant)
        tex_changes = edit.tex_changes if isinstance(edit, ValuesEdit) else None
        container.write_patched(
            out,
            self.scale_for(sprite, variant, container),
            file.layer_names(),
            values,
            tex_changes,
        )

    def save(self) -> SaveReport:
        """Commit every pending edit to disk; see :func:`save.save_files`."""
        return save_files(self)
