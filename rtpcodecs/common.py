"""Shared errors and depacketizer base classes for the RTP codecs."""

from __future__ import annotations

from abc import ABC, abstractmethod


class CodecError(ValueError):
    """Base class for every error raised while handling codec payloads."""

    default_message = "codec error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class ShortPacketError(CodecError):
    """The packet is too small to hold what its headers announce."""

    default_message = "packet is not large enough"


class NilPacketError(CodecError):
    """No packet was given at all."""

    default_message = "invalid nil packet"


class TooManyPDiffError(CodecError):
    """A VP9 descriptor lists more reference indices than allowed."""

    default_message = "too many PDiff"


class TooManySpatialLayersError(CodecError):
    """A VP9 descriptor names a spatial layer beyond the supported count."""

    default_message = "too many spatial layers"


class UnhandledNALUTypeError(CodecError):
    """The NAL unit type is not one this depacketizer understands."""

    default_message = "NALU Type is unhandled"


class Depacketizer(ABC):
    """Removes RTP-specific framing from a payload and yields media data."""

    @abstractmethod
    def unmarshal(self, packet: bytes | None) -> bytes:
        """Parse an RTP payload and return the media it carries."""

    @abstractmethod
    def is_partition_head(self, payload: bytes | None) -> bool:
        """Tell whether the payload starts a partition; False if unknown."""

    @abstractmethod
    def is_partition_tail(self, marker: bool, payload: bytes | None) -> bool:
        """Tell whether the payload ends a partition; False if unknown."""


class AudioDepacketizer(Depacketizer):
    """Audio payloads are always complete partitions on their own."""

    #: Every audio payload carries whole frames, so it opens and closes a partition.
    self_contained: bool = True

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Every audio payload starts a partition."""
        return self.self_contained

    def is_partition_tail(self, marker: bool, payload: bytes | None) -> bool:
        """Every audio payload ends a partition, whatever the marker says."""
        return self.self_contained


class VideoDepacketizer(Depacketizer):
    """Video payloads end a partition when the RTP marker bit is set.

    Setting ``zero_allocation`` makes depacketizers that support it return
    the payload untouched instead of parsing it.
    """

    zero_allocation: bool = False

    def is_partition_tail(self, marker: bool, payload: bytes | None) -> bool:
        """A video partition ends on the packet carrying the marker bit."""
        return bool(marker)