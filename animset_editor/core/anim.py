"""
Anim container codec.

Reads and writes the two container kinds used by the sprite asset tree:
the aggregate ``mainSD.anim`` holding every sprite's SD data, and the
per-sprite ``main_NNN.anim`` files holding one HD or HD2 sprite. Texture
payloads are kept as the stored bytes; decoding to RGBA goes through Pillow.
"""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Dict, List, Optional, Sequence, Tuple, Union

from PIL import Image

from .errors import DecodeError, StructuralError
from .logger import get_logger

log = get_logger(__name__)

ANIM_MAGIC = b"ANIM"
TYPE_MAINSD = 1
TYPE_ANIM = 2
MAX_LAYERS = 10
LAYER_NAME_SIZE = 32
# One byte per character; stored names round-trip unchanged
NAME_ENCODING = "latin-1"
FLAG_REF = 0x1

HEADER = struct.Struct("<4sBBHHH")
ENTRY_PREFIX = struct.Struct("<HH")
REF_ENTRY = struct.Struct("<HHHH")
VALUES_ENTRY = struct.Struct("<HHHHHHI")
TEXTURE = struct.Struct("<IIHH")
FRAME = struct.Struct("<HHhhHHI")
OFFSET = struct.Struct("<I")

HEADER_SIZE = HEADER.size + MAX_LAYERS * LAYER_NAME_SIZE

DDS_MAGIC = b"DDS "
DDS_HEADER_SIZE = 128
DDPF_ALPHAPIXELS = 0x1
DDPF_FOURCC = 0x4
DDPF_RGB = 0x40


@dataclass(frozen=True)
class SpriteValues:
    unk2: int
    width: int
    height: int


@dataclass(frozen=True)
class Frame:
    tex_x: int
    tex_y: int
    x_off: int
    y_off: int
    width: int
    height: int
    unknown: int


@dataclass(frozen=True)
class Texture:
    offset: int
    size: int
    width: int
    height: int


class TextureFormat(str, Enum):
    DXT1 = "dxt1"
    DXT5 = "dxt5"
    RGBA = "rgba"
    MONOCHROME = "monochrome"


@dataclass(frozen=True)
class Values:
    """Owned sprite values, one side of a sprite slot."""

    values: SpriteValues


@dataclass(frozen=True)
class Ref:
    """A sprite slot pointing at another sprite's data."""

    target: int
    # Opaque entry field, written back unchanged
    unknown: int = field(default=0, compare=False)


ValuesOrRef = Union[Values, Ref]


@dataclass
class TexChanges:
    """Complete replacement of a sprite's frames and per-layer textures."""

    frames: List[Frame] = field(default_factory=list)
    textures: List[Optional[Tuple[Texture, bytes]]] = field(default_factory=list)


@dataclass
class SpriteData:
    values: SpriteValues
    frames: List[Frame]
    textures: List[Optional[Texture]]


@dataclass
class SpriteRef:
    target: int
    unknown: int = 0


SpriteSlot = Union[SpriteData, SpriteRef]
# What the writers accept per sprite
PackedSprite = Union[Ref, Tuple[SpriteValues, TexChanges]]


def _source_bytes(source: Union[bytes, bytearray, BinaryIO]) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    return source.read()


def _unpack(st: struct.Struct, data: bytes, pos: int, what: str) -> tuple:
    if pos < 0 or pos + st.size > len(data):
        raise DecodeError(f"Truncated {what}", offset=pos)
    return st.unpack_from(data, pos)


def _read_header(data: bytes, expected_type: int) -> Tuple[int, int, int, List[str]]:
    magic, scale, ty, header_unknown, layer_count, sprite_count = _unpack(HEADER, data, 0, "header")
    if magic != ANIM_MAGIC:
        raise DecodeError(f"Bad magic {magic!r}", offset=0)
    if ty != expected_type:
        raise DecodeError(f"Unexpected container type {ty}, expected {expected_type}", offset=5)
    if layer_count > MAX_LAYERS:
        raise DecodeError(f"Too many layers: {layer_count}", offset=8)
    if len(data) < HEADER_SIZE:
        raise DecodeError("Truncated layer names", offset=HEADER.size)
    names = []
    for i in range(layer_count):
        start = HEADER.size + i * LAYER_NAME_SIZE
        raw = data[start:start + LAYER_NAME_SIZE].split(b"\0", 1)[0]
        names.append(raw.decode(NAME_ENCODING))
    return scale, header_unknown, sprite_count, names


def _read_sprite(data: bytes, pos: int, layer_count: int, allow_ref: bool) -> SpriteSlot:
    frame_count, flags = _unpack(ENTRY_PREFIX, data, pos, "sprite entry")
    if flags & FLAG_REF:
        if not allow_ref:
            raise DecodeError("Reference entry in a single sprite file", offset=pos)
        _, _, target, unknown = _unpack(REF_ENTRY, data, pos, "reference entry")
        return SpriteRef(target=target, unknown=unknown)
    _, _, unk2, width, height, _pad, frame_offset = _unpack(
        VALUES_ENTRY, data, pos, "sprite entry"
    )
    textures: List[Optional[Texture]] = []
    tex_pos = pos + VALUES_ENTRY.size
    for layer in range(layer_count):
        offset, size, tex_w, tex_h = _unpack(
            TEXTURE, data, tex_pos + layer * TEXTURE.size, "texture record"
        )
        if offset == 0:
            textures.append(None)
            continue
        if offset + size > len(data):
            raise DecodeError(f"Texture for layer {layer} out of bounds", offset=offset)
        textures.append(Texture(offset, size, tex_w, tex_h))
    frames = [
        Frame(*_unpack(FRAME, data, frame_offset + i * FRAME.size, "frame"))
        for i in range(frame_count)
    ]
    return SpriteData(SpriteValues(unk2, width, height), frames, textures)


def texture_format(data: bytes) -> TextureFormat:
    """Sniff the texture format from stored texture bytes."""
    if data[:4] != DDS_MAGIC:
        return TextureFormat.MONOCHROME
    if len(data) < DDS_HEADER_SIZE:
        raise DecodeError("Truncated DDS header")
    pf_flags, fourcc, bit_count = struct.unpack_from("<I4sI", data, 80)
    if pf_flags & DDPF_FOURCC:
        if fourcc == b"DXT1":
            return TextureFormat.DXT1
        if fourcc == b"DXT5":
            return TextureFormat.DXT5
        raise DecodeError(f"Unsupported DDS FourCC {fourcc!r}")
    if pf_flags & DDPF_RGB and bit_count == 32:
        return TextureFormat.RGBA
    raise DecodeError(f"Unsupported DDS pixel format flags 0x{pf_flags:x}")


def layer_format(data: bytes, layer: int) -> Optional[TextureFormat]:
    """Like :func:`texture_format`, but None (with a warning) for an unreadable layer."""
    try:
        return texture_format(data)
    except DecodeError as exc:
        log.warning(f"Layer {layer}: {exc}")
        return None


def read_texture(data: bytes, texture: Texture) -> Image.Image:
    """Decode stored texture bytes to an RGBA image."""
    fmt = texture_format(data)
    if fmt is TextureFormat.MONOCHROME:
        expected = texture.width * texture.height
        if len(data) < expected:
            raise DecodeError(
                f"Monochrome texture has {len(data)} bytes, expected {expected}"
            )
        plane = Image.frombytes("L", (texture.width, texture.height), bytes(data[:expected]))
        return plane.convert("RGBA")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (OSError, ValueError) as exc:
        raise DecodeError(f"Unable to decode {fmt.value} texture: {exc}") from exc


def rgba_dds(width: int, height: int, rgba: bytes) -> bytes:
    """Wrap raw RGBA pixels in an uncompressed 32-bit DDS container."""
    if len(rgba) != width * height * 4:
        raise ValueError("RGBA buffer size isn't 4 * w * h")
    header = bytearray(DDS_HEADER_SIZE)
    header[0:4] = DDS_MAGIC
    # CAPS | HEIGHT | WIDTH | PITCH | PIXELFORMAT
    struct.pack_into("<IIIII", header, 4, 124, 0x100F, height, width, width * 4)
    struct.pack_into(
        "<II4sIIIII",
        header,
        76,
        32,
        DDPF_RGB | DDPF_ALPHAPIXELS,
        b"\0\0\0\0",
        32,
        0x00FF0000,
        0x0000FF00,
        0x000000FF,
        0xFF000000,
    )
    struct.pack_into("<I", header, 108, 0x1000)
    bgra = bytearray(len(rgba))
    bgra[0::4] = rgba[2::4]
    bgra[1::4] = rgba[1::4]
    bgra[2::4] = rgba[0::4]
    bgra[3::4] = rgba[3::4]
    return bytes(header) + bytes(bgra)


def _pack_header(
    buf: bytearray,
    scale: int,
    ty: int,
    layer_names: Sequence[str],
    sprite_count: int,
    header_unknown: int = 0,
) -> None:
    if len(layer_names) > MAX_LAYERS:
        raise StructuralError(f"At most {MAX_LAYERS} layers are supported")
    if sprite_count > 0xFFFF:
        raise StructuralError(f"Too many sprites: {sprite_count}")
    buf += HEADER.pack(ANIM_MAGIC, scale, ty, header_unknown, len(layer_names), sprite_count)
    for i in range(MAX_LAYERS):
        try:
            name = layer_names[i].encode(NAME_ENCODING) if i < len(layer_names) else b""
        except UnicodeEncodeError as exc:
            raise StructuralError(f"Layer name {layer_names[i]!r} can't be stored: {exc}") from exc
        if len(name) >= LAYER_NAME_SIZE:
            raise StructuralError(f"Layer name too long: {layer_names[i]}")
        buf += name.ljust(LAYER_NAME_SIZE, b"\0")


def _reserve_sprite(buf: bytearray, layer_count: int) -> int:
    pos = len(buf)
    buf += bytes(VALUES_ENTRY.size + TEXTURE.size * layer_count)
    return pos


def _fill_sprite(buf: bytearray, entry_pos: int, layer_count: int, values: SpriteValues, changes: TexChanges) -> None:
    frame_offset = len(buf)
    for f in changes.frames:
        buf += FRAME.pack(f.tex_x, f.tex_y, f.x_off, f.y_off, f.width, f.height, f.unknown)
    VALUES_ENTRY.pack_into(
        buf,
        entry_pos,
        len(changes.frames),
        0,
        values.unk2,
        values.width,
        values.height,
        0,
        frame_offset,
    )
    for layer in range(layer_count):
        tex = changes.textures[layer] if layer < len(changes.textures) else None
        record_pos = entry_pos + VALUES_ENTRY.size + layer * TEXTURE.size
        if tex is None:
            TEXTURE.pack_into(buf, record_pos, 0, 0, 0, 0)
            continue
        size_info, payload = tex
        offset = len(buf)
        buf += payload
        TEXTURE.pack_into(buf, record_pos, offset, len(payload), size_info.width, size_info.height)


def write_main_sd(
    out: BinaryIO,
    layer_names: Sequence[str],
    sprites: Sequence[PackedSprite],
    *,
    scale: int = 1,
    header_unknown: int = 0,
) -> None:
    """Serialize a complete aggregate container to *out*."""
    layer_count = len(layer_names)
    buf = bytearray()
    _pack_header(buf, scale, TYPE_MAINSD, layer_names, len(sprites), header_unknown)
    table_pos = len(buf)
    buf += bytes(OFFSET.size * len(sprites))
    pending = []
    for index, sprite in enumerate(sprites):
        OFFSET.pack_into(buf, table_pos + index * OFFSET.size, len(buf))
        if isinstance(sprite, Ref):
            buf += REF_ENTRY.pack(0, FLAG_REF, sprite.target, sprite.unknown)
        else:
            pending.append((_reserve_sprite(buf, layer_count), sprite))
    for entry_pos, (values, changes) in pending:
        _fill_sprite(buf, entry_pos, layer_count, values, changes)
    out.write(bytes(buf))


def write_anim(
    out: BinaryIO,
    scale: int,
    layer_names: Sequence[str],
    values: SpriteValues,
    changes: TexChanges,
    *,
    header_unknown: int = 0,
) -> None:
    """Serialize a complete single-sprite container to *out*."""
    buf = bytearray()
    _pack_header(buf, scale, TYPE_ANIM, layer_names, 1, header_unknown)
    entry_pos = _reserve_sprite(buf, len(layer_names))
    _fill_sprite(buf, entry_pos, len(layer_names), values, changes)
    out.write(bytes(buf))


class _Container:
    def __init__(self, data: bytes, scale: int, layer_names: List[str], header_unknown: int = 0):
        self._data = data
        self.scale = scale
        self._layer_names = layer_names
        self.header_unknown = header_unknown

    def layer_names(self) -> List[str]:
        return list(self._layer_names)

    def _texture_bytes(self, tex: Texture) -> bytes:
        return self._data[tex.offset:tex.offset + tex.size]

    def _original_changes(self, sprite: SpriteData) -> TexChanges:
        return TexChanges(
            frames=list(sprite.frames),
            textures=[
                (tex, self._texture_bytes(tex)) if tex is not None else None
                for tex in sprite.textures
            ],
        )

    def _decode_layer(self, sprite: SpriteData, layer: int) -> Image.Image:
        if layer < 0 or layer >= len(sprite.textures):
            raise StructuralError(f"No texture layer {layer} (have {len(sprite.textures)})")
        tex = sprite.textures[layer]
        if tex is None:
            raise StructuralError(f"No texture for layer {layer}")
        return read_texture(self._texture_bytes(tex), tex)

    def _formats(self, sprite: SpriteData) -> List[Optional[TextureFormat]]:
        return [
            layer_format(self._texture_bytes(tex), layer) if tex is not None else None
            for layer, tex in enumerate(sprite.textures)
        ]


class MainSd(_Container):
    """Aggregate SD container holding every sprite."""

    def __init__(
        self,
        data: bytes,
        scale: int,
        layer_names: List[str],
        sprites: List[SpriteSlot],
        header_unknown: int = 0,
    ):
        super().__init__(data, scale, layer_names, header_unknown)
        self._sprites = sprites

    @classmethod
    def read(cls, source: Union[bytes, BinaryIO]) -> "MainSd":
        data = _source_bytes(source)
        scale, header_unknown, sprite_count, names = _read_header(data, TYPE_MAINSD)
        sprites: List[SpriteSlot] = []
        for i in range(sprite_count):
            (entry_pos,) = _unpack(OFFSET, data, HEADER_SIZE + i * OFFSET.size, "sprite offset")
            sprites.append(_read_sprite(data, entry_pos, len(names), allow_ref=True))
        return cls(data, scale, names, sprites, header_unknown)

    def sprites(self) -> List[SpriteSlot]:
        return list(self._sprites)

    def sprite_count(self) -> int:
        return len(self._sprites)

    def sprite_slot(self, index: int) -> Optional[SpriteSlot]:
        if 0 <= index < len(self._sprites):
            return self._sprites[index]
        return None

    def _data_slot(self, index: int) -> Optional[SpriteData]:
        slot = self.sprite_slot(index)
        return slot if isinstance(slot, SpriteData) else None

    def values_or_ref(self, index: int) -> Optional[ValuesOrRef]:
        slot = self.sprite_slot(index)
        if slot is None:
            return None
        if isinstance(slot, SpriteRef):
            return Ref(slot.target, slot.unknown)
        return Values(slot.values)

    def sprite_values(self, index: int) -> Optional[SpriteValues]:
        slot = self._data_slot(index)
        return slot.values if slot is not None else None

    def frames(self, index: int) -> Optional[List[Frame]]:
        slot = self._data_slot(index)
        return list(slot.frames) if slot is not None else None

    def texture_sizes(self, index: int) -> Optional[List[Optional[Texture]]]:
        slot = self._data_slot(index)
        return list(slot.textures) if slot is not None else None

    def texture_formats(self, index: int) -> List[Optional[TextureFormat]]:
        slot = self._data_slot(index)
        return self._formats(slot) if slot is not None else []

    def texture(self, index: int, layer: int) -> Image.Image:
        slot = self.sprite_slot(index)
        if slot is None:
            raise StructuralError(f"Sprite {index} out of range")
        if isinstance(slot, SpriteRef):
            raise StructuralError(f"Sprite {index} is a reference to {slot.target}")
        return self._decode_layer(slot, layer)

    def write_patched(
        self,
        out: BinaryIO,
        sprite_count: int,
        layer_names: Sequence[str],
        data_changes: Sequence[Tuple[int, ValuesOrRef]],
        tex_changes: Sequence[Tuple[int, TexChanges]],
    ) -> None:
        """Write this container with *data_changes* and *tex_changes* applied."""
        data_by_index: Dict[int, ValuesOrRef] = dict(data_changes)
        tex_by_index: Dict[int, TexChanges] = dict(tex_changes)
        sprites: List[PackedSprite] = []
        for i in range(sprite_count):
            slot = self.sprite_slot(i)
            change = data_by_index.get(i)
            if change is None:
                if slot is None:
                    change = Values(SpriteValues(0xFFFF, 0, 0))
                elif isinstance(slot, SpriteRef):
                    change = Ref(slot.target)
                else:
                    change = Values(slot.values)
            if isinstance(change, Ref):
                if isinstance(slot, SpriteRef):
                    change = Ref(change.target, slot.unknown)
                sprites.append(change)
                continue
            tex = tex_by_index.get(i)
            if tex is None:
                tex = self._original_changes(slot) if isinstance(slot, SpriteData) else TexChanges()
            sprites.append((change.values, tex))
        write_main_sd(out, layer_names, sprites, scale=self.scale, header_unknown=self.header_unknown)


class Anim(_Container):
    """Single-sprite HD or HD2 container."""

    def __init__(
        self,
        data: bytes,
        scale: int,
        layer_names: List[str],
        sprite: SpriteData,
        header_unknown: int = 0,
    ):
        super().__init__(data, scale, layer_names, header_unknown)
        self._sprite = sprite

    @classmethod
    def read(cls, source: Union[bytes, BinaryIO]) -> "Anim":
        data = _source_bytes(source)
        scale, header_unknown, sprite_count, names = _read_header(data, TYPE_ANIM)
        if sprite_count != 1:
            raise DecodeError(f"Single sprite file has {sprite_count} sprites", offset=10)
        sprite = _read_sprite(data, HEADER_SIZE, len(names), allow_ref=False)
        return cls(data, scale, names, sprite, header_unknown)

    def sprite_values(self) -> SpriteValues:
        return self._sprite.values

    def frames(self) -> List[Frame]:
        return list(self._sprite.frames)

    def texture_sizes(self) -> List[Optional[Texture]]:
        return list(self._sprite.textures)

    def texture_formats(self) -> List[Optional[TextureFormat]]:
        return self._formats(self._sprite)

    def texture(self, layer: int) -> Image.Image:
        return self._decode_layer(self._sprite, layer)

    def write_patched(
        self,
        out: BinaryIO,
        scale: int,
        layer_names: Sequence[str],
        values: SpriteValues,
        tex_changes: Optional[TexChanges],
    ) -> None:
        changes = tex_changes if tex_changes is not None else self._original_changes(self._sprite)
        write_anim(out, scale, layer_names, values, changes, header_unknown=self.header_unknown)
