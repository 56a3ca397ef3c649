"""Payloaders and depacketizers for G.711, G.722 and Opus audio."""

from __future__ import annotations

from dataclasses import dataclass

from .common import AudioDepacketizer, NilPacketError, ShortPacketError


def _split_fixed(mtu: int, payload: bytes | None) -> list[bytes]:
    """Cut ``payload`` into consecutive pieces of at most ``mtu`` bytes."""
    if payload is None or mtu <= 0:
        return []
    data = bytes(payload)
    if not data:
        return [b""]
    return [data[start:start + mtu] for start in range(0, len(data), mtu)]


class G711Payloader:
    """Splits G.711 samples across RTP payloads."""

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment ``payload`` into pieces no larger than ``mtu``."""
        return _split_fixed(mtu, payload)


class G722Payloader:
    """Splits G.722 samples across RTP payloads."""

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment ``payload`` into pieces no larger than ``mtu``."""
        return _split_fixed(mtu, payload)


class OpusPayloader:
    """Places each Opus frame into a single RTP payload."""

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Return the frame as one payload; the MTU is not applied."""
        if payload is None:
            return []
        return [bytes(payload)]


@dataclass
class OpusPacket(AudioDepacketizer):
    """The Opus data carried in the payload of an RTP packet."""

    payload: bytes = b""

    def unmarshal(self, packet: bytes | None) -> bytes:
        """Store and return the Opus data of ``packet``."""
        if packet is None:
            raise NilPacketError()
        if len(packet) == 0:
            raise ShortPacketError()
        self.payload = bytes(packet)
        return self.payload


class OpusPartitionHeadChecker:
    """Checks Opus partition heads; prefer OpusPacket.is_partition_head."""

    def is_partition_head(self, packet: bytes | None) -> bool:
        return OpusPacket().is_partition_head(packet)