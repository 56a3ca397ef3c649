"""VP8 payloading and depacketizing as described by RFC 7741."""

from __future__ import annotations

from dataclasses import dataclass

from .common import NilPacketError, ShortPacketError, VideoDepacketizer

_VP8_HEADER_SIZE = 1


@dataclass
class VP8Payloader:
    """Splits VP8 frames into RTP payloads with a VP8 payload descriptor."""

    enable_picture_id: bool = False
    picture_id: int = 0

    def _header_size(self) -> int:
        if not self.enable_picture_id or self.picture_id == 0:
            return _VP8_HEADER_SIZE
        if self.picture_id < 128:
            return _VP8_HEADER_SIZE + 2
        return _VP8_HEADER_SIZE + 3

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment ``payload`` into RTP payloads no larger than ``mtu``."""
        header_size = self._header_size()
        max_fragment_size = mtu - header_size
        data = b"" if payload is None else bytes(payload)

        if min(max_fragment_size, len(data)) <= 0:
            return []

        payloads: list[bytes] = []
        for index in range(0, len(data), max_fragment_size):
            header = bytearray(header_size)
            if index == 0:
                header[0] = 0x10
            if header_size == _VP8_HEADER_SIZE + 2:
                header[0] |= 0x80
                header[1] |= 0x80
                header[2] |= self.picture_id & 0x7F
            elif header_size == _VP8_HEADER_SIZE + 3:
                header[0] |= 0x80
                header[1] |= 0x80
                header[2] |= 0x80 | ((self.picture_id >> 8) & 0x7F)
                header[3] |= self.picture_id & 0xFF
            payloads.append(bytes(header) + data[index:index + max_fragment_size])

        self.picture_id = (self.picture_id + 1) & 0x7FFF
        return payloads


@dataclass
class VP8Packet(VideoDepacketizer):
    """The VP8 payload descriptor and data of an RTP packet."""

    x: int = 0
    n: int = 0
    s: int = 0
    pid: int = 0
    i: int = 0
    l: int = 0  # noqa: E741
    t: int = 0
    k: int = 0
    picture_id: int = 0
    tl0picidx: int = 0
    tid: int = 0
    y: int = 0
    keyidx: int = 0
    payload: bytes = b""

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse the descriptor of ``payload`` and return the VP8 data."""
        if payload is None:
            raise NilPacketError()
        data = bytes(payload)
        length = len(data)
        index = 0

        if index >= length:
            raise ShortPacketError()
        first = data[index]
        self.x = (first & 0x80) >> 7
        self.n = (first & 0x20) >> 5
        self.s = (first & 0x10) >> 4
        self.pid = first & 0x07
        index += 1

        if self.x == 1:
            if index >= length:
                raise ShortPacketError()
            ext = data[index]
            self.i = (ext & 0x80) >> 7
            self.l = (ext & 0x40) >> 6
            self.t = (ext & 0x20) >> 5
            self.k = (ext & 0x10) >> 4
            index += 1
        else:
            self.i = self.l = self.t = self.k = 0

        if self.i == 1:
            if index >= length:
                raise ShortPacketError()
            if data[index] & 0x80:
                if index + 1 >= length:
                    raise ShortPacketError()
                self.picture_id = ((data[index] & 0x7F) << 8) | data[index + 1]
                index += 2
            else:
                self.picture_id = data[index]
                index += 1
        else:
            self.picture_id = 0

        if self.l == 1:
            if index >= length:
                raise ShortPacketError()
            self.tl0picidx = data[index]
            index += 1
        else:
            self.tl0picidx = 0

        if self.t == 1 or self.k == 1:
            if index >= length:
                raise ShortPacketError()
            value = data[index]
            if self.t == 1:
                self.tid = value >> 6
                self.y = (value >> 5) & 0x1
            else:
                self.tid = 0
                self.y = 0
            self.keyidx = value & 0x1F if self.k == 1 else 0
            index += 1
        else:
            self.tid = 0
            self.y = 0
            self.keyidx = 0

        self.payload = data[index:]
        return self.payload

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Tell whether the S bit marks the start of a VP8 partition."""
        if not payload:
            return False
        return bool(payload[0] & 0x10)


class VP8PartitionHeadChecker:
    """Checks VP8 partition heads; prefer VP8Packet.is_partition_head."""

    def is_partition_head(self, packet: bytes | None) -> bool:
        return VP8Packet().is_partition_head(packet)