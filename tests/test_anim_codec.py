import io
import struct

import pytest

from animset_editor.core import anim
from animset_editor.core.errors import DecodeError, StructuralError
from conftest import LAYERS, SPRITE1_FRAMES, packed


def _mainsd_bytes(sprites):
    buf = io.BytesIO()
    anim.write_main_sd(buf, LAYERS, sprites)
    return buf.getvalue()


def test_mainsd_read_back():
    data = _mainsd_bytes([packed(8, 4, 10), packed(6, 6, 20, SPRITE1_FRAMES), anim.Ref(0)])
    mainsd = anim.MainSd.read(data)

    assert mainsd.sprite_count() == 3
    assert mainsd.layer_names() == LAYERS
    assert mainsd.scale == 1
    assert mainsd.values_or_ref(0) == anim.Values(anim.SpriteValues(0, 8, 4))
    assert mainsd.values_or_ref(2) == anim.Ref(0)
    assert mainsd.frames(1) == SPRITE1_FRAMES
    assert mainsd.frames(2) is None
    assert mainsd.values_or_ref(3) is None

    sizes = mainsd.texture_sizes(0)
    assert sizes[1] is None
    assert (sizes[0].width, sizes[0].height) == (8, 4)
    assert mainsd.texture_formats(0) == [anim.TextureFormat.MONOCHROME, None]

    img = mainsd.texture(0, 0)
    assert img.mode == "RGBA"
    assert img.size == (8, 4)
    assert img.getpixel((3, 2)) == (10, 10, 10, 255)


def test_zero_frame_sprite_is_not_a_reference():
    data = _mainsd_bytes([(anim.SpriteValues(0xFFFF, 0, 0), anim.TexChanges())])
    mainsd = anim.MainSd.read(data)
    assert mainsd.values_or_ref(0) == anim.Values(anim.SpriteValues(0xFFFF, 0, 0))
    assert mainsd.frames(0) == []


def test_texture_errors():
    mainsd = anim.MainSd.read(_mainsd_bytes([packed(4, 4, 1), anim.Ref(0)]))
    with pytest.raises(StructuralError):
        mainsd.texture(0, 1)
    with pytest.raises(StructuralError):
        mainsd.texture(0, 5)
    with pytest.raises(StructuralError):
        mainsd.texture(1, 0)


def test_single_anim_read_back():
    buf = io.BytesIO()
    values, changes = packed(32, 16, 30)
    anim.write_anim(buf, 4, LAYERS, values, changes)
    container = anim.Anim.read(buf.getvalue())
    assert container.scale == 4
    assert container.sprite_values() == values
    assert container.frames() == changes.frames
    assert container.texture(0).getpixel((0, 0)) == (30, 30, 30, 255)


def test_write_patched_keeps_untouched_sprites():
    original = _mainsd_bytes([packed(8, 4, 10), packed(6, 6, 20, SPRITE1_FRAMES), anim.Ref(0)])
    mainsd = anim.MainSd.read(original)

    out = io.BytesIO()
    mainsd.write_patched(out, mainsd.sprite_count(), mainsd.layer_names(), [], [])
    assert out.getvalue() == original

    out = io.BytesIO()
    mainsd.write_patched(out, 3, mainsd.layer_names(), [(1, anim.Ref(0))], [])
    patched = anim.MainSd.read(out.getvalue())
    assert patched.values_or_ref(1) == anim.Ref(0)
    assert patched.frames(0) == mainsd.frames(0)
    assert patched.texture(0, 0).tobytes() == mainsd.texture(0, 0).tobytes()


class TestDecodeErrors:
    def test_bad_magic(self):
        data = bytearray(_mainsd_bytes([packed(2, 2, 1)]))
        data[0:4] = b"NOPE"
        with pytest.raises(DecodeError):
            anim.MainSd.read(bytes(data))

    def test_wrong_container_type(self):
        with pytest.raises(DecodeError):
            anim.Anim.read(_mainsd_bytes([packed(2, 2, 1)]))

    def test_truncated(self):
        data = _mainsd_bytes([packed(4, 4, 1), packed(4, 4, 2)])
        with pytest.raises(DecodeError):
            anim.MainSd.read(data[: anim.HEADER_SIZE + 2])

    def test_empty(self):
        with pytest.raises(DecodeError):
            anim.MainSd.read(b"")


def test_texture_format_sniffing():
    assert anim.texture_format(b"\x00" * 16) is anim.TextureFormat.MONOCHROME
    dds = bytearray(anim.rgba_dds(1, 1, b"\x01\x02\x03\x04"))
    assert anim.texture_format(bytes(dds)) is anim.TextureFormat.RGBA

    struct.pack_into("<I4s", dds, 80, anim.DDPF_FOURCC, b"DXT5")
    assert anim.texture_format(bytes(dds)) is anim.TextureFormat.DXT5
    struct.pack_into("<I4s", dds, 80, anim.DDPF_FOURCC, b"DXT1")
    assert anim.texture_format(bytes(dds)) is anim.TextureFormat.DXT1
    struct.pack_into("<I4s", dds, 80, anim.DDPF_FOURCC, b"ATI2")
    with pytest.raises(DecodeError):
        anim.texture_format(bytes(dds))
    with pytest.raises(DecodeError):
        anim.texture_format(b"DDS " + b"\x00" * 10)


def test_rgba_dds_decodes_with_pillow():
    pixels = bytes([255, 0, 0, 255, 0, 255, 0, 128])
    data = anim.rgba_dds(2, 1, pixels)
    img = anim.read_texture(data, anim.Texture(0, len(data), 2, 1))
    assert img.size == (2, 1)
    assert img.getpixel((0, 0)) == (255, 0, 0, 255)
    assert img.getpixel((1, 0)) == (0, 255, 0, 128)


def test_monochrome_too_short():
    with pytest.raises(DecodeError):
        anim.read_texture(b"\x01\x02", anim.Texture(0, 2, 4, 4))


class TestUneditedFieldsSurviveRewrite:
    def test_mainsd_header_and_reference_fields(self):
        buf = io.BytesIO()
        anim.write_main_sd(
            buf,
            LAYERS,
            [packed(4, 4, 1), anim.Ref(0, unknown=0x55), packed(2, 2, 3)],
            header_unknown=0x1234,
        )
        original = buf.getvalue()
        mainsd = anim.MainSd.read(original)
        assert mainsd.header_unknown == 0x1234
        assert mainsd.sprite_slot(1).unknown == 0x55

        out = io.BytesIO()
        mainsd.write_patched(out, 3, mainsd.layer_names(), [], [])
        assert out.getvalue() == original

        out = io.BytesIO()
        mainsd.write_patched(
            out,
            3,
            mainsd.layer_names(),
            [(1, anim.Ref(2)), (0, anim.Values(anim.SpriteValues(0, 9, 4)))],
            [],
        )
        patched = anim.MainSd.read(out.getvalue())
        assert patched.header_unknown == 0x1234
        assert patched.sprite_slot(1).target == 2
        assert patched.sprite_slot(1).unknown == 0x55

    def test_single_sprite_header(self):
        buf = io.BytesIO()
        values, changes = packed(8, 8, 2)
        anim.write_anim(buf, 2, LAYERS, values, changes, header_unknown=0x77)
        container = anim.Anim.read(buf.getvalue())
        assert container.header_unknown == 0x77

        out = io.BytesIO()
        container.write_patched(out, 2, container.layer_names(), anim.SpriteValues(1, 8, 8), None)
        assert anim.Anim.read(out.getvalue()).header_unknown == 0x77


def test_non_ascii_layer_names_round_trip():
    names = ["éclat", "shadow"]
    original = _mainsd_bytes_with_layers(names)
    assert original[anim.HEADER.size] == 0xE9
    mainsd = anim.MainSd.read(original)
    assert mainsd.layer_names() == names

    out = io.BytesIO()
    mainsd.write_patched(out, mainsd.sprite_count(), mainsd.layer_names(), [], [])
    assert out.getvalue() == original


def test_unencodable_layer_name():
    with pytest.raises(StructuralError):
        _mainsd_bytes_with_layers(["中", "shadow"])


def _mainsd_bytes_with_layers(names):
    buf = io.BytesIO()
    anim.write_main_sd(buf, names, [packed(2, 2, 1)])
    return buf.getvalue()


def test_unreadable_layer_does_not_hide_others():
    broken = bytearray(anim.rgba_dds(1, 1, b"\x00\x00\x00\xff"))
    struct.pack_into("<I4s", broken, 80, anim.DDPF_FOURCC, b"ATI2")
    values, changes = packed(2, 2, 1)
    changes.textures[1] = (anim.Texture(0, len(broken), 1, 1), bytes(broken))
    buf = io.BytesIO()
    anim.write_main_sd(buf, LAYERS, [(values, changes)])

    mainsd = anim.MainSd.read(buf.getvalue())
    assert mainsd.texture_formats(0) == [anim.TextureFormat.MONOCHROME, None]
    assert mainsd.texture(0, 0).size == (2, 2)
