"""Parser for the uncompressed header of a VP9 frame."""

from __future__ import annotations

from dataclasses import dataclass

from .common import CodecError


class NotEnoughBitsError(CodecError):
    """The buffer ended before the header did."""

    default_message = "not enough bits"


class InvalidFrameMarkerError(CodecError):
    """The frame marker is not the value the bitstream requires."""

    default_message = "invalid frame marker"


class WrongFrameSyncByteError(CodecError):
    """One of the three key-frame sync bytes has the wrong value."""

    def __init__(self, index: int) -> None:
        super().__init__(f"wrong frame_sync_byte_{index}")
        self.index = index


class _BitReader:
    """Reads big-endian bit fields from a byte buffer."""

    def __init__(self, buf: bytes) -> None:
        self._buf = bytes(buf)
        self.pos = 0

    def require(self, n: int) -> None:
        if n > len(self._buf) * 8 - self.pos:
            raise NotEnoughBitsError()

    def skip(self, n: int) -> None:
        self.require(n)
        self.pos += n

    def read_bits(self, n: int) -> int:
        self.require(n)
        value = 0
        for _ in range(n):
            byte = self._buf[self.pos >> 3]
            value = (value << 1) | ((byte >> (7 - (self.pos & 7))) & 1)
            self.pos += 1
        return value

    def read_flag(self) -> bool:
        return self.read_bits(1) == 1


@dataclass
class HeaderColorConfig:
    """The color_config member of a header."""

    ten_or_twelve_bit: bool = False
    bit_depth: int = 0
    color_space: int = 0
    color_range: bool = False
    subsampling_x: bool = False
    subsampling_y: bool = False

    @classmethod
    def _read(cls, profile: int, reader: _BitReader) -> HeaderColorConfig:
        config = cls()
        if profile >= 2:
            config.ten_or_twelve_bit = reader.read_flag()
            config.bit_depth = 12 if config.ten_or_twelve_bit else 10
        else:
            config.bit_depth = 8

        config.color_space = reader.read_bits(3)

        if config.color_space != 7:
            config.color_range = reader.read_flag()
            if profile in (1, 3):
                reader.require(3)
                config.subsampling_x = reader.read_flag()
                config.subsampling_y = reader.read_flag()
                reader.skip(1)
            else:
                config.subsampling_x = True
                config.subsampling_y = True
        else:
            config.color_range = True
            if profile in (1, 3):
                config.subsampling_x = False
                config.subsampling_y = False
                reader.skip(1)
        return config


@dataclass
class HeaderFrameSize:
    """The frame_size member of a header."""

    frame_width_minus_1: int = 0
    frame_height_minus_1: int = 0

    @classmethod
    def _read(cls, reader: _BitReader) -> HeaderFrameSize:
        reader.require(32)
        return cls(reader.read_bits(16), reader.read_bits(16))


@dataclass
class Header:
    """A VP9 uncompressed frame header."""

    profile: int = 0
    show_existing_frame: bool = False
    frame_to_show_map_idx: int = 0
    non_key_frame: bool = False
    show_frame: bool = False
    error_resilient_mode: bool = False
    color_config: HeaderColorConfig | None = None
    frame_size: HeaderFrameSize | None = None

    @classmethod
    def parse(cls, buf: bytes) -> Header:
        """Decode a header from the start of ``buf``."""
        reader = _BitReader(buf)
        reader.require(4)

        if reader.read_bits(2) != 2:
            raise InvalidFrameMarkerError()

        low = reader.read_bits(1)
        high = reader.read_bits(1)
        header = cls(profile=(high << 1) + low)

        if header.profile == 3:
            reader.skip(1)

        header.show_existing_frame = reader.read_flag()
        if header.show_existing_frame:
            header.frame_to_show_map_idx = reader.read_bits(3)
            return header

        reader.require(3)
        header.non_key_frame = reader.read_flag()
        header.show_frame = reader.read_flag()
        header.error_resilient_mode = reader.read_flag()

        if not header.non_key_frame:
            reader.require(24)
            for index, expected in enumerate((0x49, 0x83, 0x42)):
                if reader.read_bits(8) != expected:
                    raise WrongFrameSyncByteError(index)
            header.color_config = HeaderColorConfig._read(header.profile, reader)
            header.frame_size = HeaderFrameSize._read(reader)

        return header

    def width(self) -> int:
        """Video width in pixels, or 0 when the header carries no size."""
        if self.frame_size is None:
            return 0
        return (self.frame_size.frame_width_minus_1 + 1) & 0xFFFF

    def height(self) -> int:
        """Video height in pixels, or 0 when the header carries no size."""
        if self.frame_size is None:
            return 0
        return (self.frame_size.frame_height_minus_1 + 1) & 0xFFFF