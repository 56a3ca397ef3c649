"""VP9 payloading and depacketizing of the RTP payload descriptor."""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field, fields

from .common import (
    CodecError,
    NilPacketError,
    ShortPacketError,
    TooManyPDiffError,
    TooManySpatialLayersError,
    VideoDepacketizer,
)
from .vp9header import Header

_MAX_SPATIAL_LAYERS = 5
_MAX_VP9_REF_PICS = 3
_PICTURE_ID_LIMIT = 0x8000


def _random_picture_id() -> int:
    return random.randrange(0x7FFF)


@dataclass
class VP9Payloader:
    """Splits VP9 frames into RTP payloads with a VP9 payload descriptor.

    ``initial_picture_id_fn`` supplies the first picture ID; a random one is
    chosen when it is not given.
    """

    flexible_mode: bool = False
    initial_picture_id_fn: Callable[[], int] | None = None
    _picture_id: int = field(default=0, init=False, repr=False)
    _initialized: bool = field(default=False, init=False, repr=False)

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment ``payload`` into RTP payloads no larger than ``mtu``."""
        if not self._initialized:
            if self.initial_picture_id_fn is None:
                self.initial_picture_id_fn = _random_picture_id
            self._picture_id = self.initial_picture_id_fn() & 0x7FFF
            self._initialized = True

        data = b"" if payload is None else bytes(payload)
        if self.flexible_mode:
            payloads = self._payload_flexible(mtu, data)
        else:
            payloads = self._payload_non_flexible(mtu, data)

        self._picture_id += 1
        if self._picture_id >= _PICTURE_ID_LIMIT:
            self._picture_id = 0
        return payloads

    def _picture_id_bytes(self) -> bytes:
        return bytes([((self._picture_id >> 8) & 0xFF) | 0x80, self._picture_id & 0xFF])

    def _payload_flexible(self, mtu: int, data: bytes) -> list[bytes]:
        header_size = 3
        max_fragment_size = mtu - header_size
        if min(max_fragment_size, len(data)) <= 0:
            return []

        payloads: list[bytes] = []
        for index in range(0, len(data), max_fragment_size):
            fragment = data[index:index + max_fragment_size]
            first = 0x90  # F=1, I=1
            if index == 0:
                first |= 0x08  # B=1
            if index + len(fragment) == len(data):
                first |= 0x04  # E=1
            payloads.append(bytes([first]) + self._picture_id_bytes() + fragment)
        return payloads

    def _payload_non_flexible(self, mtu: int, data: bytes) -> list[bytes]:
        try:
            header = Header.parse(data)
        except CodecError:
            return []

        payloads: list[bytes] = []
        index = 0
        while index < len(data):
            remaining = len(data) - index
            with_ss = not header.non_key_frame and index == 0
            header_size = 3 + 8 if with_ss else 3

            current = min(mtu - header_size, remaining)
            if current <= 0:
                return []

            first = 0x80 | 0x01  # I=1, Z=1
            if header.non_key_frame:
                first |= 0x40  # P=1
            if index == 0:
                first |= 0x08  # B=1
            if remaining == current:
                first |= 0x04  # E=1

            out = bytearray([first]) + self._picture_id_bytes()
            if with_ss:
                out[0] |= 0x02  # V=1
                width = header.width()
                height = header.height()
                out += bytes(
                    [
                        0x10 | 0x08,  # N_S=0, Y=1, G=1
                        (width >> 8) & 0xFF,
                        width & 0xFF,
                        (height >> 8) & 0xFF,
                        height & 0xFF,
                        0x01,  # N_G=1
                        (1 << 4) | (1 << 2),  # TID=0, U=1, R=1
                        0x01,  # P_DIFF=1
                    ]
                )

            out += data[index:index + current]
            payloads.append(bytes(out))
            index += current
        return payloads


@dataclass
class VP9Packet(VideoDepacketizer):
    """The VP9 payload descriptor and data of an RTP packet."""

    i: bool = False
    p: bool = False
    l: bool = False  # noqa: E741
    f: bool = False
    b: bool = False
    e: bool = False
    v: bool = False
    z: bool = False

    picture_id: int = 0

    tid: int = 0
    u: bool = False
    sid: int = 0
    d: bool = False

    pdiff: list[int] = field(default_factory=list)
    tl0picidx: int = 0

    ns: int = 0
    y: bool = False
    g: bool = False
    ng: int = 0
    width: list[int] = field(default_factory=list)
    height: list[int] = field(default_factory=list)
    pgtid: list[int] = field(default_factory=list)
    pgu: list[bool] = field(default_factory=list)
    pgpdiff: list[list[int]] = field(default_factory=list)

    payload: bytes = b""

    def _reset(self) -> None:
        fresh = VP9Packet()
        for item in fields(self):
            setattr(self, item.name, getattr(fresh, item.name))

    def unmarshal(self, packet: bytes | None) -> bytes:
        """Parse the descriptor of ``packet`` and return the VP9 data."""
        if packet is None:
            raise NilPacketError()
        data = bytes(packet)
        if len(data) < 1:
            raise ShortPacketError()

        self._reset()
        first = data[0]
        self.i = bool(first & 0x80)
        self.p = bool(first & 0x40)
        self.l = bool(first & 0x20)
        self.f = bool(first & 0x10)
        self.b = bool(first & 0x08)
        self.e = bool(first & 0x04)
        self.v = bool(first & 0x02)
        self.z = bool(first & 0x01)

        pos = 1
        if self.i:
            pos = self._parse_picture_id(data, pos)
        if self.l:
            pos = self._parse_layer_info(data, pos)
        if self.f and self.p:
            pos = self._parse_ref_indices(data, pos)
        if self.v:
            pos = self._parse_ss_data(data, pos)

        self.payload = data[pos:]
        return self.payload

    def _parse_picture_id(self, data: bytes, pos: int) -> int:
        if len(data) <= pos:
            raise ShortPacketError()
        self.picture_id = data[pos] & 0x7F
        if data[pos] & 0x80:
            pos += 1
            if len(data) <= pos:
                raise ShortPacketError()
            self.picture_id = (self.picture_id << 8) | data[pos]
        return pos + 1

    def _parse_layer_info(self, data: bytes, pos: int) -> int:
        if len(data) <= pos:
            raise ShortPacketError()
        value = data[pos]
        self.tid = value >> 5
        self.u = bool(value & 0x10)
        self.sid = (value >> 1) & 0x7
        self.d = bool(value & 0x01)
        if self.sid >= _MAX_SPATIAL_LAYERS:
            raise TooManySpatialLayersError()
        pos += 1

        if self.f:
            return pos
        if len(data) <= pos:
            raise ShortPacketError()
        self.tl0picidx = data[pos]
        return pos + 1

    def _parse_ref_indices(self, data: bytes, pos: int) -> int:
        while True:
            if len(data) <= pos:
                raise ShortPacketError()
            self.pdiff.append(data[pos] >> 1)
            if data[pos] & 0x01 == 0:
                break
            if len(self.pdiff) >= _MAX_VP9_REF_PICS:
                raise TooManyPDiffError()
            pos += 1
        return pos + 1

    def _parse_ss_data(self, data: bytes, pos: int) -> int:
        if len(data) <= pos:
            raise ShortPacketError()
        value = data[pos]
        self.ns = value >> 5
        self.y = bool(value & 0x10)
        self.g = bool(value & 0x08)
        pos += 1

        layers = self.ns + 1
        self.ng = 0

        if self.y:
            self.width = [0] * layers
            self.height = [0] * layers
            for layer in range(layers):
                if len(data) <= pos + 3:
                    raise ShortPacketError()
                self.width[layer] = (data[pos] << 8) | data[pos + 1]
                self.height[layer] = (data[pos + 2] << 8) | data[pos + 3]
                pos += 4

        if self.g:
            if len(data) <= pos:
                raise ShortPacketError()
            self.ng = data[pos]
            pos += 1

        for _ in range(self.ng):
            if len(data) <= pos:
                raise ShortPacketError()
            value = data[pos]
            self.pgtid.append(value >> 5)
            self.pgu.append(bool(value & 0x10))
            refs = (value >> 2) & 0x3
            pos += 1

            if len(data) <= pos + refs - 1:
                raise ShortPacketError()
            self.pgpdiff.append(list(data[pos:pos + refs]))
            pos += refs

        return pos

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Tell whether the B bit marks the start of a VP9 frame."""
        if not payload:
            return False
        return bool(payload[0] & 0x08)


class VP9PartitionHeadChecker:
    """Checks VP9 partition heads; prefer VP9Packet.is_partition_head."""

    def is_partition_head(self, packet: bytes | None) -> bool:
        return VP9Packet().is_partition_head(packet)