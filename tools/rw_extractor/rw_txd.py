"""Decoder for RenderWare TXD texture dictionaries.

TXD layout:
- TextureDictionary root
  - Struct: texture count (uint16), device id (uint16)
  - TextureNative x count
    - Struct: fixed raster record (92 bytes) followed by pixel payload
    - Extension (skipped)
  - Extension (skipped)

Raster record:
  platform_id (4) | filter (1) | wrap (1, U low nibble, V high nibble) | pad (2)
  name (32, NUL-padded) | alpha_name (32, NUL-padded)
  raster_format (4) | has_alpha (4) | width (2) | height (2)
  depth (1) | mipmap_count (1) | raster_type (1) | compression (1)
  data_size (4)

Pixel data is left undecoded; the enclosing chunk size steps over it.
"""
from typing import Union

from .rw_chunks import expect_chunk, read_root
from .rw_cursor import Cursor
from .rw_types import Tag, TextureDictionary, TextureNative

NAME_FIELD_SIZE = 32
# Smallest TextureNative chunk: header + Struct header
MIN_TEXTURE_NATIVE_SIZE = 24


class TxdDecoder:
    """Decodes a TXD buffer into a TextureDictionary record."""

    def decode(self, buffer: Union[bytes, bytearray, memoryview]) -> TextureDictionary:
        """Decode a complete TXD buffer.

        Args:
            buffer: Entire contents of a .txd file

        Returns:
            TextureDictionary with one TextureNative per texture

        Raises:
            UnexpectedFormat: If the root chunk is not a TextureDictionary
            TruncatedData, MalformedChunk, CountOutOfBounds: On corrupt data
        """
        header, body = read_root(buffer, Tag.TEXTURE_DICTIONARY)

        _, s = expect_chunk(body, Tag.STRUCT)
        count, device_id = s.read_struct("<HH")
        body.check_count(count, MIN_TEXTURE_NATIVE_SIZE, "textures")

        dictionary = TextureDictionary(device_id=device_id, version=header.version)
        for _ in range(count):
            _, native = expect_chunk(body, Tag.TEXTURE_NATIVE)
            dictionary.textures.append(self._read_texture_native(native))
        return dictionary

    def _read_texture_native(self, body: Cursor) -> TextureNative:
        _, s = expect_chunk(body, Tag.STRUCT)
        platform_id, filter_mode, wrap, _pad = s.read_struct("<IBBH")
        name = s.read_fixed_string(NAME_FIELD_SIZE)
        alpha_name = s.read_fixed_string(NAME_FIELD_SIZE)
        (raster_format, has_alpha, width, height, depth, mipmap_count,
         raster_type, compression, data_size) = s.read_struct("<IIHHBBBBI")

        return TextureNative(
            platform_id=platform_id,
            filter_mode=filter_mode,
            wrap_u=wrap & 0x0F,
            wrap_v=(wrap >> 4) & 0x0F,
            name=name,
            alpha_name=alpha_name,
            raster_format=raster_format,
            has_alpha=has_alpha,
            width=width,
            height=height,
            depth=depth,
            mipmap_count=mipmap_count,
            raster_type=raster_type,
            compression=compression,
            data_size=data_size,
        )


def decode_texture_dictionary(
    buffer: Union[bytes, bytearray, memoryview]
) -> TextureDictionary:
    """Decode a TXD buffer. See TxdDecoder.decode."""
    return TxdDecoder().decode(buffer)
