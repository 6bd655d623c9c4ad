"""Wire protocol implementations."""

from .frame_codec import FrameCodec

__all__ = [
    "FrameCodec",
]
