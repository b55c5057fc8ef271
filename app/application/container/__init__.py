from .atom_reader import BufferMediaSource, WindowedMediaSource, read_range
from .box_parser import BoxHeader, BoxParser, decode_header_fields, read_box_header

__all__ = [
    "BufferMediaSource",
    "WindowedMediaSource",
    "read_range",
    "BoxHeader",
    "BoxParser",
    "decode_header_fields",
    "read_box_header",
]
