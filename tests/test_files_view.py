from dataclasses import replace
from pathlib import Path

import pytest

from animset_editor.core import anim
from animset_editor.core.edits import RefEdit, ValuesEdit
from animset_editor.core.errors import StructuralError
from animset_editor.core.files import Files, compose_view
from animset_editor.core.layout import Variant
from animset_editor.core.resolver import MainSdLocation
from conftest import LAYERS, SPRITE1_FRAMES, mono, packed, write_mainsd

SD = Variant.SD


@pytest.fixture
def files(mainsd_file: Path) -> Files:
    return Files.init(mainsd_file)


def test_untouched_view_matches_container(files: Files):
    mainsd = files.mainsd()
    view = files.file(1, SD)
    assert view.sprite_values() == mainsd.sprite_values(1)
    assert view.frames() == SPRITE1_FRAMES
    assert view.texture_size(0) == mainsd.texture_sizes(1)[0]
    assert view.texture_size(1) is None
    assert view.layer_names() == LAYERS
    assert view.image_ref() is None
    assert not view.is_reference


def test_hd_view(files: Files):
    view = files.file(0, Variant.HD)
    assert view.sprite_values() == anim.SpriteValues(0, 32, 16)
    assert view.texture(0).size == (32, 16)
    assert files.file(1, Variant.HD2) is None


def test_reference_shows_target_data(files: Files):
    view = files.file(2, SD)
    assert view.image_ref() == 0
    assert view.is_reference
    assert view.sprite_values() == anim.SpriteValues(0, 8, 4)
    assert view.texture(0).getpixel((0, 0)) == (10, 10, 10, 255)
    assert view.layer_names() == LAYERS


def test_reference_follows_target_edit(files: Files):
    files.update_file(0, SD, lambda v: replace(v, width=12))
    assert files.file(2, SD).sprite_values().width == 12

    changes = anim.TexChanges(frames=[anim.Frame(0, 0, 0, 0, 2, 2, 0)], textures=[mono(2, 2, 99)])
    files.set_tex_changes(0, SD, changes)
    view = files.file(2, SD)
    assert view.frames() == changes.frames
    assert view.texture(0).getpixel((1, 1)) == (99, 99, 99, 255)


def test_values_edit_wins(files: Files):
    files.update_file(1, SD, lambda v: replace(v, height=1, unk2=5))
    view = files.file(1, SD)
    assert view.sprite_values() == anim.SpriteValues(5, 6, 1)
    # Frames and textures still come from the container
    assert view.frames() == SPRITE1_FRAMES
    assert view.texture(0).size == (6, 6)


def test_pending_reference_edit(files: Files):
    files.set_ref_img(1, SD, 0)
    view = files.file(1, SD)
    assert view.image_ref() == 0
    assert view.sprite_values() == anim.SpriteValues(0, 8, 4)


def test_texture_change_missing_layer(files: Files):
    files.set_tex_changes(0, SD, anim.TexChanges(textures=[mono(2, 2, 1)]))
    view = files.file(0, SD)
    assert view.texture_formats() == [anim.TextureFormat.MONOCHROME]
    with pytest.raises(StructuralError):
        view.texture(1)


def test_double_reference_on_disk_has_no_data(tmp_path: Path):
    path = write_mainsd(
        tmp_path / "tree" / "SD" / "mainSD.anim",
        [packed(4, 4, 1), anim.Ref(2), anim.Ref(0)],
    )
    files = Files.init(path)
    view = files.file(1, SD)
    assert view.image_ref() == 2
    assert view.sprite_values() is None
    assert view.frames() is None
    assert view.texture_size(0) is None
    with pytest.raises(StructuralError):
        view.texture(0)


def test_reference_out_of_range(tmp_path: Path):
    path = write_mainsd(tmp_path / "tree" / "SD" / "mainSD.anim", [packed(4, 4, 1), anim.Ref(7)])
    files = Files.init(path)
    with pytest.raises(StructuralError):
        files.file(1, SD)


def test_compose_view_with_plain_lookup(files: Files):
    location = MainSdLocation(2, files.mainsd())
    target_values = anim.SpriteValues(1, 2, 3)
    edits = {(0, SD): ValuesEdit(target_values)}
    view = compose_view(lambda s, v: edits.get((s, v)), 2, SD, location)
    assert view.sprite_values() == target_values

    edits = {(0, SD): RefEdit(1)}
    view = compose_view(lambda s, v: edits.get((s, v)), 2, SD, location)
    assert view.sprite_values() is None
    assert view.image_ref() == 0


def test_ref_edit_on_hd_location_is_structural(files: Files):
    location = files.resolver.resolve(0, Variant.HD)
    with pytest.raises(StructuralError):
        compose_view(lambda s, v: RefEdit(1), 0, Variant.HD, location)
