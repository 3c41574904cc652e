"""
Utility Modules

Supporting utilities for the session controller:
- Live video source capture
- Frame sampling, PNG encoding and thumbnails
"""

from .video_source import VideoSource, parse_source
from .frame_sampler import FrameSampler, downsample, encode_png_base64, make_thumbnail, load_image_rgb

__all__ = [
    'VideoSource',
    'parse_source',
    'FrameSampler',
    'downsample',
    'encode_png_base64',
    'make_thumbnail',
    'load_image_rgb'
]
