"""Reading and writing PS2 ``.icn`` 3D icon models."""

from __future__ import annotations

import struct
import zlib
from dataclasses import dataclass, field
from decimal import Decimal

from .color import Color, color_from_u16

__all__ = [
    "ICN_MAGIC",
    "TEXTURE_WIDTH",
    "TEXTURE_HEIGHT",
    "TEXTURE_SIZE",
    "ICNFormatError",
    "Vertex",
    "Normal",
    "UV",
    "Key",
    "Frame",
    "AnimationHeader",
    "ICNHeader",
    "IcnTexture",
    "ICN",
    "decompress_texture",
    "parse_icn",
    "write_icn",
]

ICN_MAGIC = 0x010000
TEXTURE_WIDTH = 128
TEXTURE_HEIGHT = 128
TEXTURE_SIZE = TEXTURE_WIDTH * TEXTURE_HEIGHT

_ANIMATION_TAG = 0x01
_TEXTURE_PRESENT = 0b0100
_TEXTURE_COMPRESSED = 0b1000
_MAX_UNCOMPRESSED_TYPE = 0x07

_HEADER = struct.Struct("<5I")
_VERTEX = struct.Struct("<hhhH")
_UV = struct.Struct("<hh")
_COLOR = struct.Struct("<4B")
_ANIMATION = struct.Struct("<IIfII")
_FRAME = struct.Struct("<II")
_KEY = struct.Struct("<ff")
_U32 = struct.Struct("<I")
_F32 = struct.Struct("<f")
_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class ICNFormatError(ValueError):
    """Raised when ICN data is malformed or cannot be written."""


@dataclass(frozen=True)
class Vertex:
    x: int
    y: int
    z: int
    w: int = 0


@dataclass(frozen=True)
class Normal:
    x: int
    y: int
    z: int
    w: int = 0


@dataclass(frozen=True)
class UV:
    u: int
    v: int


@dataclass(frozen=True)
class Key:
    time: float
    value: float


@dataclass
class Frame:
    shape_id: int
    keys: list[Key] = field(default_factory=list)


@dataclass
class AnimationHeader:
    tag: int
    frame_length: int
    anim_speed: float
    play_offset: int
    frame_count: int


@dataclass
class ICNHeader:
    animation_shape_count: int
    vertex_count: int
    texture_type: int


@dataclass
class IcnTexture:
    """A 128x128 texture of 16-bit packed colours."""

    pixels: tuple[int, ...] = (0xFFFF,) * TEXTURE_SIZE

    def __post_init__(self) -> None:
        self.pixels = tuple(self.pixels)
        if len(self.pixels) != TEXTURE_SIZE:
            raise ValueError(
                f"texture must have {TEXTURE_SIZE} pixels, got {len(self.pixels)}"
            )


def _f32(value: float) -> float:
    return _F32.unpack(_F32.pack(value))[0]


def _format_f32(value: float) -> str:
    """Shortest positional text that reads back as the same 32-bit float."""
    number = _f32(value)
    if number == 0:
        return "-0" if str(number).startswith("-") else "0"
    for precision in range(1, 18):
        text = format(number, f".{precision}g")
        if _f32(float(text)) == number:
            break
    result = format(Decimal(text).normalize(), "f")
    if "." in result:
        result = result.rstrip("0").rstrip(".")
    return result


def _png_chunk(kind: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(kind + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", crc)


@dataclass
class ICN:
    """An icon model: animation shapes, per-vertex data, texture and frames."""

    header: ICNHeader
    animation_shapes: list[list[Vertex]]
    normals: list[Normal]
    uvs: list[UV]
    colors: list[Color]
    texture: IcnTexture
    animation_header: AnimationHeader
    frames: list[Frame]

    def export_obj(self) -> str:
        """The first animation shape as Wavefront OBJ text."""
        lines = ["mtllib list.mtl", "o list"]
        for vertex in self.animation_shapes[0]:
            lines.append(
                "v {} {} {}".format(
                    _format_f32(vertex.x / 4096.0),
                    _format_f32(-vertex.y / 4096.0),
                    _format_f32(-vertex.z / 4096.0),
                )
            )
        for uv in self.uvs[: self.header.vertex_count]:
            u = _f32(uv.u / 4096.0)
            v = _f32(1.0 - _f32(uv.v / 4096.0))
            lines.append(f"vt {_format_f32(u)} {_format_f32(v)}")
        lines.append("usemtl tex")
        for face in range(self.header.vertex_count // 3):
            a, b, c = face * 3 + 1, face * 3 + 2, face * 3 + 3
            lines.append(f"f {a}/{a} {b}/{b} {c}/{c}")
        return "\n".join(lines) + "\n"

    def export_png(self) -> bytes:
        """The texture as an RGBA PNG image."""
        rows = []
        for row in range(TEXTURE_HEIGHT):
            start = row * TEXTURE_WIDTH
            pixels = self.texture.pixels[start : start + TEXTURE_WIDTH]
            rows.append(
                b"\x00"
                + bytes(
                    channel
                    for pixel in pixels
                    for channel in color_from_u16(pixel).to_rgba()
                )
            )
        header = struct.pack(">IIBBBBB", TEXTURE_WIDTH, TEXTURE_HEIGHT, 8, 6, 0, 0, 0)
        return b"".join(
            [
                _PNG_SIGNATURE,
                _png_chunk(b"IHDR", header),
                _png_chunk(b"IDAT", zlib.compress(b"".join(rows))),
                _png_chunk(b"IEND", b""),
            ]
        )


def decompress_texture(words) -> tuple[int, ...]:
    """Expand run-length encoded texture words into exactly TEXTURE_SIZE pixels."""
    data = list(words)
    pixels: list[int] = []
    offset = 0
    while offset < len(data):
        code = data[offset]
        offset += 1
        if code & 0x8000:
            count = 0x8000 - (code ^ 0x8000)
            literal = data[offset : offset + min(count, TEXTURE_SIZE - len(pixels))]
            pixels.extend(literal)
            offset += len(literal)
        elif code > 0 and offset < len(data):
            pixel = data[offset]
            offset += 1
            pixels.extend([pixel] * min(code, TEXTURE_SIZE - len(pixels)))
    pixels.extend([0] * (TEXTURE_SIZE - len(pixels)))
    return tuple(pixels[:TEXTURE_SIZE])


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._offset = 0

    def unpack(self, layout: struct.Struct) -> tuple:
        end = self._offset + layout.size
        if end > len(self._data):
            raise ICNFormatError(f"unexpected end of data at offset {self._offset}")
        values = layout.unpack_from(self._data, self._offset)
        self._offset = end
        return values

    def words(self, count: int) -> tuple[int, ...]:
        return self.unpack(struct.Struct(f"<{count}H"))


def _parse_header(reader: _Reader) -> ICNHeader:
    magic, shape_count, texture_type, _, vertex_count = reader.unpack(_HEADER)
    if magic != ICN_MAGIC:
        raise ICNFormatError(f"bad ICN magic: {magic:#x}")
    return ICNHeader(
        animation_shape_count=shape_count,
        vertex_count=vertex_count,
        texture_type=texture_type,
    )


def _parse_texture(reader: _Reader, texture_type: int) -> IcnTexture:
    if not texture_type & _TEXTURE_PRESENT:
        return IcnTexture()
    if texture_type & _TEXTURE_COMPRESSED:
        (compressed_size,) = reader.unpack(_U32)
        return IcnTexture(decompress_texture(reader.words(compressed_size // 2)))
    return IcnTexture(reader.words(TEXTURE_SIZE))


def parse_icn(data: bytes) -> ICN:
    """Parse an ICN model."""
    reader = _Reader(data)
    header = _parse_header(reader)

    shapes: list[list[Vertex]] = [[] for _ in range(header.animation_shape_count)]
    normals: list[Normal] = []
    uvs: list[UV] = []
    colors: list[Color] = []
    for _ in range(header.vertex_count):
        for shape in shapes:
            shape.append(Vertex(*reader.unpack(_VERTEX)))
        normals.append(Normal(*reader.unpack(_VERTEX)))
        uvs.append(UV(*reader.unpack(_UV)))
        r, b, g, a = reader.unpack(_COLOR)
        colors.append(Color(r, g, b, a))

    tag, frame_length, anim_speed, play_offset, frame_count = reader.unpack(_ANIMATION)
    if tag != _ANIMATION_TAG:
        raise ICNFormatError(f"bad animation tag: {tag:#x}")
    frames = []
    for _ in range(frame_count):
        shape_id, key_count = reader.unpack(_FRAME)
        keys = [Key(*reader.unpack(_KEY)) for _ in range(key_count)]
        frames.append(Frame(shape_id, keys))

    texture = _parse_texture(reader, header.texture_type)
    return ICN(
        header=header,
        animation_shapes=shapes,
        normals=normals,
        uvs=uvs,
        colors=colors,
        texture=texture,
        animation_header=AnimationHeader(
            tag, frame_length, anim_speed, play_offset, frame_count
        ),
        frames=frames,
    )


def _write_frame(frame: Frame) -> bytes:
    parts = [struct.pack("<IIII", frame.shape_id, len(frame.keys) + 1, 0, 0)]
    parts.extend(_KEY.pack(key.time, key.value) for key in frame.keys)
    return b"".join(parts)


def write_icn(icn: ICN) -> bytes:
    """Serialise an ICN model; only uncompressed textures can be written."""
    header = icn.header
    if header.vertex_count <= 0:
        raise ICNFormatError("an ICN needs at least one vertex")
    if header.animation_shape_count <= 0:
        raise ICNFormatError("an ICN needs at least one animation shape")
    if header.texture_type > _MAX_UNCOMPRESSED_TYPE:
        raise ICNFormatError("Failed to compress texture")

    parts = [
        _HEADER.pack(
            ICN_MAGIC,
            header.animation_shape_count,
            header.texture_type,
            0,
            header.vertex_count,
        )
    ]
    for i in range(header.vertex_count):
        normal, uv, color = icn.normals[i], icn.uvs[i], icn.colors[i]
        for shape in icn.animation_shapes[: header.animation_shape_count]:
            vertex = shape[i]
            parts.append(_VERTEX.pack(vertex.x, vertex.y, vertex.z, vertex.w))
            parts.append(_VERTEX.pack(normal.x, normal.y, normal.z, normal.w))
            parts.append(_UV.pack(uv.u, uv.v))
            parts.append(_COLOR.pack(color.r, color.g, color.b, color.a))

    animation = icn.animation_header
    parts.append(
        _ANIMATION.pack(
            _ANIMATION_TAG,
            animation.frame_length,
            animation.anim_speed,
            animation.play_offset,
            animation.frame_count,
        )
    )
    parts.extend(_write_frame(frame) for frame in icn.frames)
    parts.append(struct.pack(f"<{TEXTURE_SIZE}H", *icn.texture.pixels))
    return b"".join(parts)