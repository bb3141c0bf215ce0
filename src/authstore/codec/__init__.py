"""
Codec package for value serialization.

- BufferJSONCodec: JSON text with a tagged representation for byte buffers
"""

from authstore.codec.buffer_json import BUFFER_TYPE, BufferJSONCodec

__all__ = ["BUFFER_TYPE", "BufferJSONCodec"]
