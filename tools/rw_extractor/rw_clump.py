"""Decoder for RenderWare DFF model files.

DFF layout (sibling chunks inside the Clump body):
- Struct: atomic count (+ light and camera counts since 3.3)
- FrameList: Struct (frame count + 56-byte frames), one Extension per frame
  carrying NodeName / HAnim plugins
- GeometryList: Struct (geometry count), then one Geometry chunk each
- Atomic: Struct binding a frame to a geometry
- Extension: clump plugins, skipped

Geometry body:
- Struct: format flags, counts, then gated arrays in stream order:
  legacy colors (pre-3.4) -> prelit colors -> UV sets -> triangles ->
  morph targets (bounding sphere, positions, normals)
- MaterialList -> Material -> Texture
- Extension
"""
from typing import List, Tuple, Union

from .rw_chunks import expect_chunk, iter_chunks, read_root, read_string
from .rw_cursor import Cursor
from .rw_errors import TruncatedData
from .rw_types import (
    LEGACY_GEOMETRY_COLORS_BELOW,
    MATERIAL_SURFACE_PROPS_ABOVE,
    STRING_TAGS,
    Atomic,
    BoundingSphere,
    ChunkHeader,
    Clump,
    ExtensionBlock,
    Frame,
    Geometry,
    GeometryFlags,
    HAnimBone,
    HAnimPlugin,
    LegacyColors,
    Material,
    MaterialList,
    MorphTarget,
    Tag,
    Texture,
    Triangle,
    library_version,
)

# Frame: rotation(9f) + position(3f) + parent(i) + matrix flags(I) = 56 bytes
FRAME_FORMAT = "<9f3fiI"
# Bounding sphere: center(3f) + radius(f) + has_positions(I) + has_normals(I)
SPHERE_FORMAT = "<4fII"
SPHERE_SIZE = 24
# Smallest possible nested chunk: a bare header
MIN_CHUNK_SIZE = 12

CLUMP_LIGHTS_CAMERAS_ABOVE = 0x33000
ATOMIC_UNUSED_FIELD_SINCE = 0x30400

_Frame = Tuple[Tuple, Tuple, int, int]


class ClumpDecoder:
    """Decodes a DFF buffer into a Clump record."""

    def decode(self, buffer: Union[bytes, bytearray, memoryview]) -> Clump:
        """Decode a complete DFF buffer.

        Args:
            buffer: Entire contents of a .dff file

        Returns:
            Clump with frames, geometries and atomics

        Raises:
            UnexpectedFormat: If the root chunk is not a Clump
            TruncatedData, MalformedChunk, CountOutOfBounds: On corrupt data
        """
        header, body = read_root(buffer, Tag.CLUMP)

        struct_header, struct_body = expect_chunk(body, Tag.STRUCT)
        atomic_count = struct_body.read_u32()
        light_count = camera_count = 0
        if struct_header.library_version > CLUMP_LIGHTS_CAMERAS_ABOVE:
            light_count, camera_count = struct_body.read_struct("<II")

        frame_records: List[_Frame] = []
        frame_extensions: List[ExtensionBlock] = []
        geometries: List[Geometry] = []
        atomics: List[Atomic] = []

        # Extensions directly after the frame list belong to its frames
        in_frame_extensions = False
        for child_header, child in iter_chunks(body):
            tag = child_header.tag
            if tag == Tag.FRAME_LIST:
                frame_records, frame_extensions = self._read_frame_list(child)
                in_frame_extensions = True
                continue
            if tag == Tag.EXTENSION and in_frame_extensions:
                frame_extensions.append(self._read_extension(child))
                continue
            in_frame_extensions = False

            if tag == Tag.GEOMETRY_LIST:
                geometries = self._read_geometry_list(child)
            elif tag == Tag.ATOMIC:
                atomics.append(self._read_atomic(child))

        return Clump(
            atomic_count=atomic_count,
            version=header.version,
            light_count=light_count,
            camera_count=camera_count,
            frames=self._build_frames(frame_records, frame_extensions),
            geometries=geometries,
            atomics=atomics,
        )

    # --- Frames ---

    def _read_frame_list(self, body: Cursor) -> Tuple[List[_Frame], List[ExtensionBlock]]:
        _, struct_body = expect_chunk(body, Tag.STRUCT)
        count = struct_body.read_u32()
        records = []
        for values in struct_body.read_array(FRAME_FORMAT, count, "frames"):
            rotation = (values[0:3], values[3:6], values[6:9])
            records.append((rotation, values[9:12], values[12], values[13]))

        extensions = []
        for header, child in iter_chunks(body):
            if header.tag == Tag.EXTENSION:
                extensions.append(self._read_extension(child))
        return records, extensions

    def _build_frames(self, records: List[_Frame],
                      extensions: List[ExtensionBlock]) -> List[Frame]:
        frames = []
        for index, (rotation, position, parent, matrix_flags) in enumerate(records):
            ext = extensions[index] if index < len(extensions) else ExtensionBlock()
            frames.append(Frame(
                rotation=rotation,
                position=position,
                parent_index=parent,
                matrix_flags=matrix_flags,
                name=ext.node_name,
                hanim=ext.hanim,
            ))
        return frames

    # --- Extensions ---

    def _read_extension(self, body: Cursor) -> ExtensionBlock:
        """Decode recognized plugins of an Extension chunk, skip the rest."""
        block = ExtensionBlock()
        for header, child in iter_chunks(body):
            if header.tag == Tag.NODE_NAME:
                block.node_name = child.read_fixed_bytes(child.remaining())
            elif header.tag == Tag.HANIM_PLUGIN:
                block.hanim = self._read_hanim(child)
            else:
                block.skipped.append(header.tag)
        return block

    def _read_hanim(self, body: Cursor) -> HAnimPlugin:
        version, node_id, bone_count = body.read_struct("<Iii")
        plugin = HAnimPlugin(version=version, node_id=node_id)
        if bone_count > 0:
            plugin.flags, plugin.keyframe_size = body.read_struct("<ii")
            plugin.bones = [
                HAnimBone(node_id=b[0], index=b[1], bone_type=b[2])
                for b in body.read_array("<iii", bone_count, "bones")
            ]
        return plugin

    # --- Geometry ---

    def _read_geometry_list(self, body: Cursor) -> List[Geometry]:
        _, struct_body = expect_chunk(body, Tag.STRUCT)
        count = struct_body.read_u32()
        body.check_count(count, MIN_CHUNK_SIZE, "geometries")

        geometries = []
        for _ in range(count):
            header, child = expect_chunk(body, Tag.GEOMETRY)
            geometries.append(self._read_geometry(header, child))
        return geometries

    def _read_geometry(self, header: ChunkHeader, body: Cursor) -> Geometry:
        _, s = expect_chunk(body, Tag.STRUCT)
        fmt, triangle_count, vertex_count, morph_count = s.read_struct("<Iiii")

        flags = GeometryFlags(fmt & 0xFF00FFFF)
        uv_set_count = (fmt >> 16) & 0xFF
        if uv_set_count == 0 and flags & (GeometryFlags.TEXTURED | GeometryFlags.TEXTURED2):
            uv_set_count = 2 if flags & GeometryFlags.TEXTURED2 else 1

        geometry = Geometry(
            flags=flags,
            uv_set_count=uv_set_count,
            triangle_count=triangle_count,
            vertex_count=vertex_count,
            morph_target_count=morph_count,
            version=header.version,
        )

        if library_version(header.version) < LEGACY_GEOMETRY_COLORS_BELOW:
            ambient, specular, diffuse = s.read_struct("<3f")
            geometry.legacy_colors = LegacyColors(
                ambient=ambient, diffuse=diffuse, specular=specular
            )

        native = bool(flags & GeometryFlags.NATIVE)
        if not native:
            if flags & GeometryFlags.PRELIT:
                geometry.prelit_colors = s.read_array("<4B", vertex_count, "prelit colors")
            if flags & (GeometryFlags.TEXTURED | GeometryFlags.TEXTURED2):
                s.check_count(uv_set_count * vertex_count, 8, "texture coordinates")
                geometry.uv_sets = [
                    s.read_array("<2f", vertex_count, "texture coordinates")
                    for _ in range(uv_set_count)
                ]
            geometry.triangles = [
                Triangle(first=t[0], second=t[1], attrib=t[2], third=t[3])
                for t in s.read_array("<4H", triangle_count, "triangles")
            ]

        geometry.morph_targets = self._read_morph_targets(
            s, morph_count or 1, vertex_count, flags, native
        )

        _, list_body = expect_chunk(body, Tag.MATERIAL_LIST)
        geometry.material_list = self._read_material_list(list_body)

        for child_header, child in iter_chunks(body):
            if child_header.tag == Tag.EXTENSION:
                geometry.extension = self._read_extension(child)
        return geometry

    def _read_morph_targets(self, s: Cursor, count: int, vertex_count: int,
                            flags: GeometryFlags, native: bool) -> List[MorphTarget]:
        s.check_count(count, SPHERE_SIZE, "morph targets")
        targets = []
        for _ in range(count):
            x, y, z, radius, has_positions, has_normals = s.read_struct(SPHERE_FORMAT)
            target = MorphTarget(bounding_sphere=BoundingSphere(
                center=(x, y, z),
                radius=radius,
                has_positions=has_positions,
                has_normals=has_normals,
            ))
            # Native geometry keeps its vertices in a platform plugin
            read_positions = has_positions if native else True
            read_normals = has_normals if native else flags & GeometryFlags.NORMALS
            if read_positions:
                target.positions = s.read_array("<3f", vertex_count, "positions")
            if read_normals:
                target.normals = s.read_array("<3f", vertex_count, "normals")
            targets.append(target)
        return targets

    # --- Materials ---

    def _read_material_list(self, body: Cursor) -> MaterialList:
        _, s = expect_chunk(body, Tag.STRUCT)
        count = s.read_u32()
        slots = [v[0] for v in s.read_array("<i", count, "material slots")]
        body.check_count(count, MIN_CHUNK_SIZE, "materials")

        materials = []
        for _ in range(count):
            header, child = expect_chunk(body, Tag.MATERIAL)
            materials.append(self._read_material(header, child))
        return MaterialList(slots=slots, materials=materials)

    def _read_material(self, header: ChunkHeader, body: Cursor) -> Material:
        _, s = expect_chunk(body, Tag.STRUCT)
        flags, r, g, b, a, unused, texture_count = s.read_struct("<i4Bii")
        material = Material(
            flags=flags,
            color=(r, g, b, a),
            unused=unused,
            texture_count=texture_count,
        )
        if library_version(header.version) > MATERIAL_SURFACE_PROPS_ABOVE:
            material.ambient, material.specular, material.diffuse = s.read_struct("<3f")

        body.check_count(texture_count, MIN_CHUNK_SIZE, "textures")
        for _ in range(texture_count):
            _, child = expect_chunk(body, Tag.TEXTURE)
            material.textures.append(self._read_texture(child))
        return material

    def _read_texture(self, body: Cursor) -> Texture:
        _, s = expect_chunk(body, Tag.STRUCT)
        texture = Texture(filter_flags=s.read_u32())

        # Name then alpha name, each in either string flavour
        names = []
        for header, child in iter_chunks(body):
            if header.tag in STRING_TAGS:
                names.append(read_string(child, header.tag))
                if len(names) == 2:
                    break
        if len(names) < 2:
            raise TruncatedData("Missing texture name string chunk", body.position)
        texture.name, texture.alpha_name = names
        return texture

    # --- Atomics ---

    def _read_atomic(self, body: Cursor) -> Atomic:
        header, s = expect_chunk(body, Tag.STRUCT)
        frame_index, geometry_index, flags = s.read_struct("<iii")
        atomic = Atomic(frame_index=frame_index, geometry_index=geometry_index, flags=flags)
        if header.library_version >= ATOMIC_UNUSED_FIELD_SINCE:
            atomic.unused = s.read_i32()
        return atomic


def decode_model(buffer: Union[bytes, bytearray, memoryview]) -> Clump:
    """Decode a DFF buffer. See ClumpDecoder.decode."""
    return ClumpDecoder().decode(buffer)
