"""Type definitions for RenderWare DFF and TXD streams."""
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Dict, List, Optional, Tuple

Vec3 = Tuple[float, float, float]
Matrix3 = Tuple[Vec3, Vec3, Vec3]

# Chunk header: tag(4) + body_size(4) + version(4)
CHUNK_HEADER_SIZE = 12

# Library versions (unpacked, see library_version()) that gate optional data
LEGACY_GEOMETRY_COLORS_BELOW = 0x34000
MATERIAL_SURFACE_PROPS_ABOVE = 0x30400


class Tag(IntEnum):
    """Known chunk tags. Tags outside this set are kept as plain ints."""
    STRUCT = 0x01
    STRING = 0x02
    EXTENSION = 0x03
    TEXTURE = 0x06
    MATERIAL = 0x07
    MATERIAL_LIST = 0x08
    FRAME_LIST = 0x0E
    GEOMETRY = 0x0F
    CLUMP = 0x10
    UNICODE_STRING = 0x13
    ATOMIC = 0x14
    TEXTURE_NATIVE = 0x15
    TEXTURE_DICTIONARY = 0x16
    GEOMETRY_LIST = 0x1A
    HANIM_PLUGIN = 0x11E
    NODE_NAME = 0x0253F2FE


# Tags whose bodies hold text
STRING_TAGS = frozenset({Tag.STRING, Tag.UNICODE_STRING})

# Tags whose bodies are made of nested chunks rather than raw fields
CONTAINER_TAGS = frozenset({
    Tag.EXTENSION,
    Tag.TEXTURE,
    Tag.MATERIAL,
    Tag.MATERIAL_LIST,
    Tag.FRAME_LIST,
    Tag.GEOMETRY,
    Tag.CLUMP,
    Tag.ATOMIC,
    Tag.TEXTURE_NATIVE,
    Tag.TEXTURE_DICTIONARY,
    Tag.GEOMETRY_LIST,
})


def known_tag(value: int):
    """Return the Tag member for value, or value itself if unknown."""
    try:
        return Tag(value)
    except ValueError:
        return value


def tag_name(value: int) -> str:
    tag = known_tag(value)
    if isinstance(tag, Tag):
        return tag.name
    return f"Unknown({value:#x})"


def library_version(stamp: int) -> int:
    """Unpack a header version stamp into a library version like 0x34003.

    Old files store the version directly (0x0310 means 3.1.0.0); newer
    files pack version and build number together (0x1803FFFF).
    """
    if stamp & 0xFFFF0000:
        return (((stamp >> 14) & 0x3FF00) + 0x30000) | ((stamp >> 16) & 0x3F)
    return stamp << 8


def bytes_to_text(raw: bytes) -> str:
    return raw.decode("ascii", errors="replace")


class GeometryFlags(IntFlag):
    """Geometry format flags."""
    TRISTRIP = 0x01
    POSITIONS = 0x02
    TEXTURED = 0x04
    PRELIT = 0x08
    NORMALS = 0x10
    LIGHT = 0x20
    MODULATE_MATERIAL_COLOR = 0x40
    TEXTURED2 = 0x80
    NATIVE = 0x01000000


class HAnimBoneType(IntEnum):
    DEFORMABLE = 0
    NUB = 1
    UNKNOWN = 2
    RIGID = 3


@dataclass
class ChunkHeader:
    """Section header preceding every chunk body (12 bytes)."""

    tag: int
    body_size: int
    version: int

    @property
    def library_version(self) -> int:
        return library_version(self.version)

    @property
    def tag_name(self) -> str:
        return tag_name(self.tag)

    @property
    def is_known(self) -> bool:
        return isinstance(known_tag(self.tag), Tag)


@dataclass
class HAnimBone:
    node_id: int
    index: int
    bone_type: int

    def to_dict(self) -> Dict:
        try:
            bone_type = HAnimBoneType(self.bone_type).name
        except ValueError:
            bone_type = self.bone_type
        return {"node_id": self.node_id, "index": self.index, "type": bone_type}


@dataclass
class HAnimPlugin:
    """Bone hierarchy plugin attached to a frame.

    Only the root bone's frame carries the bone table; other frames
    carry just their node id.
    """

    version: int
    node_id: int
    bones: List[HAnimBone] = field(default_factory=list)
    flags: int = 0
    keyframe_size: int = 0

    def to_dict(self) -> Dict:
        return {
            "version": self.version,
            "node_id": self.node_id,
            "flags": self.flags,
            "keyframe_size": self.keyframe_size,
            "bones": [b.to_dict() for b in self.bones],
        }


@dataclass
class ExtensionBlock:
    """Decoded contents of an Extension chunk.

    Attributes:
        node_name: Raw NodeName payload if present
        hanim: HAnim plugin if present
        skipped: Tags that were skipped by size
    """

    node_name: Optional[bytes] = None
    hanim: Optional[HAnimPlugin] = None
    skipped: List[int] = field(default_factory=list)


@dataclass
class Frame:
    """Node of the clump's transform hierarchy."""

    rotation: Matrix3
    position: Vec3
    parent_index: int  # -1 for root frames
    matrix_flags: int = 0
    name: Optional[bytes] = None
    hanim: Optional[HAnimPlugin] = None

    @property
    def is_root(self) -> bool:
        return self.parent_index == -1

    @property
    def name_text(self) -> Optional[str]:
        return None if self.name is None else bytes_to_text(self.name)

    def to_dict(self) -> Dict:
        return {
            "name": self.name_text,
            "parent_index": self.parent_index,
            "rotation": [list(row) for row in self.rotation],
            "position": list(self.position),
            "matrix_flags": self.matrix_flags,
            "hanim": self.hanim.to_dict() if self.hanim else None,
        }


@dataclass
class Triangle:
    """Triangle record in wire order."""

    first: int
    second: int
    attrib: int  # material index
    third: int

    @property
    def vertices(self) -> Tuple[int, int, int]:
        return (self.first, self.second, self.third)


@dataclass
class BoundingSphere:
    center: Vec3
    radius: float
    has_positions: int = 0
    has_normals: int = 0


@dataclass
class LegacyColors:
    """Lighting coefficients stored by pre-3.4 geometry."""

    ambient: float
    diffuse: float
    specular: float


@dataclass
class MorphTarget:
    bounding_sphere: BoundingSphere
    positions: List[Vec3] = field(default_factory=list)
    normals: List[Vec3] = field(default_factory=list)


@dataclass
class Texture:
    """Texture reference inside a material."""

    filter_flags: int
    name: bytes = b""
    alpha_name: bytes = b""

    @property
    def filter_mode(self) -> int:
        return self.filter_flags & 0xFF

    @property
    def wrap_u(self) -> int:
        return (self.filter_flags >> 8) & 0x0F

    @property
    def wrap_v(self) -> int:
        return (self.filter_flags >> 12) & 0x0F

    @property
    def has_mipmaps(self) -> bool:
        return bool(self.filter_flags & 0x10000)

    @property
    def name_text(self) -> str:
        return bytes_to_text(self.name)

    @property
    def alpha_name_text(self) -> str:
        return bytes_to_text(self.alpha_name)

    def to_dict(self) -> Dict:
        return {
            "name": self.name_text,
            "alpha_name": self.alpha_name_text,
            "filter_mode": self.filter_mode,
            "wrap_u": self.wrap_u,
            "wrap_v": self.wrap_v,
            "has_mipmaps": self.has_mipmaps,
        }


@dataclass
class Material:
    flags: int
    color: Tuple[int, int, int, int]  # RGBA
    unused: int
    texture_count: int
    ambient: Optional[float] = None
    specular: Optional[float] = None
    diffuse: Optional[float] = None
    textures: List[Texture] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "flags": self.flags,
            "color": list(self.color),
            "texture_count": self.texture_count,
            "ambient": self.ambient,
            "specular": self.specular,
            "diffuse": self.diffuse,
            "textures": [t.to_dict() for t in self.textures],
        }


@dataclass
class MaterialList:
    slots: List[int] = field(default_factory=list)  # opaque, -1 for new materials
    materials: List[Material] = field(default_factory=list)


@dataclass
class Geometry:
    """Mesh data of one geometry chunk.

    Optional arrays are empty (or None for legacy_colors) when their
    flag or version gate says they are absent.
    """

    flags: GeometryFlags
    uv_set_count: int
    triangle_count: int
    vertex_count: int
    morph_target_count: int
    version: int
    legacy_colors: Optional[LegacyColors] = None
    prelit_colors: List[Tuple[int, int, int, int]] = field(default_factory=list)
    uv_sets: List[List[Tuple[float, float]]] = field(default_factory=list)
    triangles: List[Triangle] = field(default_factory=list)
    morph_targets: List[MorphTarget] = field(default_factory=list)
    material_list: MaterialList = field(default_factory=MaterialList)
    extension: ExtensionBlock = field(default_factory=ExtensionBlock)

    def has_flag(self, flag: GeometryFlags) -> bool:
        return bool(self.flags & flag)

    @property
    def is_native(self) -> bool:
        return self.has_flag(GeometryFlags.NATIVE)

    @property
    def bounding_sphere(self) -> Optional[BoundingSphere]:
        return self.morph_targets[0].bounding_sphere if self.morph_targets else None

    @property
    def positions(self) -> List[Vec3]:
        return self.morph_targets[0].positions if self.morph_targets else []

    @property
    def normals(self) -> List[Vec3]:
        return self.morph_targets[0].normals if self.morph_targets else []

    @property
    def uvs(self) -> List[Tuple[float, float]]:
        """First UV set, or an empty list."""
        return self.uv_sets[0] if self.uv_sets else []

    @property
    def materials(self) -> List[Material]:
        return self.material_list.materials

    def to_dict(self) -> Dict:
        sphere = self.bounding_sphere
        return {
            "flags": int(self.flags),
            "flag_names": [f.name for f in GeometryFlags if self.flags & f],
            "uv_set_count": self.uv_set_count,
            "triangle_count": self.triangle_count,
            "vertex_count": self.vertex_count,
            "morph_target_count": self.morph_target_count,
            "legacy_colors": vars(self.legacy_colors) if self.legacy_colors else None,
            "prelit_colors": [list(c) for c in self.prelit_colors],
            "uv_sets": [[list(uv) for uv in uv_set] for uv_set in self.uv_sets],
            "triangles": [
                [t.first, t.second, t.attrib, t.third] for t in self.triangles
            ],
            "bounding_sphere": {
                "center": list(sphere.center),
                "radius": sphere.radius,
            } if sphere else None,
            "positions": [list(p) for p in self.positions],
            "normals": [list(n) for n in self.normals],
            "material_slots": list(self.material_list.slots),
            "materials": [m.to_dict() for m in self.materials],
        }


@dataclass
class Atomic:
    """Binds a frame to a geometry."""

    frame_index: int
    geometry_index: int
    flags: int = 0
    unused: int = 0


@dataclass
class Clump:
    """Root of a DFF model."""

    atomic_count: int
    version: int
    light_count: int = 0
    camera_count: int = 0
    frames: List[Frame] = field(default_factory=list)
    geometries: List[Geometry] = field(default_factory=list)
    atomics: List[Atomic] = field(default_factory=list)

    @property
    def root_frames(self) -> List[Frame]:
        return [f for f in self.frames if f.is_root]

    def get_children(self, index: int) -> List[Frame]:
        """Get direct children of the frame at index."""
        return [f for f in self.frames if f.parent_index == index]

    def to_dict(self) -> Dict:
        return {
            "version": self.version,
            "atomic_count": self.atomic_count,
            "light_count": self.light_count,
            "camera_count": self.camera_count,
            "frames": [f.to_dict() for f in self.frames],
            "geometries": [g.to_dict() for g in self.geometries],
            "atomics": [vars(a) for a in self.atomics],
        }


@dataclass
class TextureNative:
    """Platform raster record from a texture dictionary."""

    platform_id: int
    filter_mode: int
    wrap_u: int
    wrap_v: int
    name: bytes
    alpha_name: bytes
    raster_format: int
    has_alpha: int
    width: int
    height: int
    depth: int
    mipmap_count: int
    raster_type: int
    compression: int
    data_size: int

    @property
    def name_text(self) -> str:
        return bytes_to_text(self.name)

    @property
    def alpha_name_text(self) -> str:
        return bytes_to_text(self.alpha_name)

    def to_dict(self) -> Dict:
        result = {k: v for k, v in vars(self).items()
                  if k not in ("name", "alpha_name")}
        result["name"] = self.name_text
        result["alpha_name"] = self.alpha_name_text
        return result


@dataclass
class TextureDictionary:
    """Root of a TXD archive."""

    device_id: int
    version: int
    textures: List[TextureNative] = field(default_factory=list)

    def get_texture(self, name: str) -> Optional[TextureNative]:
        """Get texture by its diffuse name."""
        return next((t for t in self.textures if t.name_text == name), None)

    def to_dict(self) -> Dict:
        return {
            "version": self.version,
            "device_id": self.device_id,
            "textures": [t.to_dict() for t in self.textures],
        }


@dataclass
class ChunkNode:
    """One entry of a generic chunk tree listing."""

    header: ChunkHeader
    offset: int
    depth: int
    children: List["ChunkNode"] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "tag": self.header.tag_name,
            "offset": self.offset,
            "size": self.header.body_size,
            "version": self.header.version,
            "children": [c.to_dict() for c in self.children],
        }
