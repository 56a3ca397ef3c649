"""RTP payloaders and depacketizers for G.711, G.722, Opus, H.264, H.265, VP8 and VP9."""

__version__ = "0.1.0"

__all__ = [
    "common",
    "vp9header",
    "audio",
    "h264",
    "vp8",
    "vp9",
    "h265",
    "h265_payloader",
]