"""
Driving simulator telemetry: stream framing, record decoding and rendering.
"""
from telemetry.framer import FramingError, JsonObjectFramer, frame_stream
from telemetry.decoder import DecodeError, RecordDecoder, decode_record
from telemetry.render import render_record

__all__ = [
    'FramingError', 'JsonObjectFramer', 'frame_stream',
    'DecodeError', 'RecordDecoder', 'decode_record',
    'render_record',
]
