"""H.265 depacketizing as described by RFC 7798."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .common import CodecError, NilPacketError, ShortPacketError, VideoDepacketizer

_H265_NALU_HEADER_SIZE = 2
_H265_NALU_AGGREGATION_PACKET_TYPE = 48
_H265_NALU_FRAGMENTATION_UNIT_TYPE = 49
_H265_NALU_PACI_PACKET_TYPE = 50
_H265_FRAGMENTATION_UNIT_HEADER_SIZE = 1


class H265CorruptedPacketError(CodecError):
    """The forbidden bit of the NAL unit header is set."""

    default_message = "corrupted h265 packet"


class InvalidH265PacketTypeError(CodecError):
    """The NAL unit type does not match the packet kind being parsed."""

    default_message = "invalid h265 packet type"


class H265NALUHeader(int):
    """A 16-bit H.265 NAL unit header: F, Type, LayerID and TID."""

    def f(self) -> bool:
        """The forbidden bit; it should always be clear."""
        return (self >> 15) != 0

    def type(self) -> int:
        """The NAL unit type."""
        return (self & 0x7E00) >> 9

    def is_type_vcl_unit(self) -> bool:
        """Tell whether the type denotes a VCL NAL unit."""
        return (self.type() & 0b00100000) == 0

    def layer_id(self) -> int:
        """The layer identifier; zero outside 3D HEVC."""
        return (self & 0x01F8) >> 3

    def tid(self) -> int:
        """The temporal identifier plus one."""
        return self & 0x07

    def is_aggregation_packet(self) -> bool:
        return self.type() == _H265_NALU_AGGREGATION_PACKET_TYPE

    def is_fragmentation_unit(self) -> bool:
        return self.type() == _H265_NALU_FRAGMENTATION_UNIT_TYPE

    def is_paci_packet(self) -> bool:
        return self.type() == _H265_NALU_PACI_PACKET_TYPE


def _read_header(data: bytes) -> H265NALUHeader:
    return H265NALUHeader((data[0] << 8) | data[1])


def _check_payload(payload: bytes | None, header_size: int) -> tuple[bytes, H265NALUHeader]:
    if payload is None:
        raise NilPacketError()
    data = bytes(payload)
    if len(data) <= header_size:
        raise ShortPacketError(f"packet is not large enough: {len(data)} <= {header_size}")
    header = _read_header(data)
    if header.f():
        raise H265CorruptedPacketError()
    return data, header


@dataclass
class H265SingleNALUnitPacket:
    """A packet carrying exactly one NAL unit.

    ``with_donl`` tells whether a DONL field may follow the header, which is
    the case when ``sprop-max-don-diff`` is greater than 0 on the stream.
    """

    with_donl: bool = False
    payload_header: H265NALUHeader = H265NALUHeader(0)
    donl: int | None = None
    payload: bytes = b""

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse ``payload`` into this packet; no media is returned."""
        data, header = _check_payload(payload, _H265_NALU_HEADER_SIZE)
        if header.is_fragmentation_unit() or header.is_paci_packet() or header.is_aggregation_packet():
            raise InvalidH265PacketTypeError()

        rest = data[2:]
        donl = None
        if self.with_donl:
            if len(rest) <= 2:
                raise ShortPacketError()
            donl = (rest[0] << 8) | rest[1]
            rest = rest[2:]

        self.donl = donl
        self.payload_header = header
        self.payload = rest
        return b""


@dataclass
class H265AggregationUnitFirst:
    """The first aggregation unit of an aggregation packet."""

    donl: int | None = None
    nal_unit_size: int = 0
    nal_unit: bytes = b""


@dataclass
class H265AggregationUnit:
    """An aggregation unit that is not the first one of its packet."""

    dond: int | None = None
    nal_unit_size: int = 0
    nal_unit: bytes = b""


@dataclass
class H265AggregationPacket:
    """An aggregation packet holding two or more NAL units."""

    with_donl: bool = False
    first_unit: H265AggregationUnitFirst | None = None
    other_units: list[H265AggregationUnit] = field(default_factory=list)

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse ``payload`` into this packet; no media is returned."""
        data, header = _check_payload(payload, _H265_NALU_HEADER_SIZE)
        if not header.is_aggregation_packet():
            raise InvalidH265PacketTypeError()

        rest = data[2:]
        first = H265AggregationUnitFirst()
        if self.with_donl:
            if len(rest) < 2:
                raise ShortPacketError()
            first.donl = (rest[0] << 8) | rest[1]
            rest = rest[2:]
        if len(rest) < 2:
            raise ShortPacketError()
        first.nal_unit_size = (rest[0] << 8) | rest[1]
        rest = rest[2:]
        if len(rest) < first.nal_unit_size:
            raise ShortPacketError()
        first.nal_unit = rest[:first.nal_unit_size]
        rest = rest[first.nal_unit_size:]

        units: list[H265AggregationUnit] = []
        while True:
            unit = H265AggregationUnit()
            if self.with_donl:
                if len(rest) < 1:
                    break
                unit.dond = rest[0]
                rest = rest[1:]
            if len(rest) < 2:
                break
            unit.nal_unit_size = (rest[0] << 8) | rest[1]
            rest = rest[2:]
            if len(rest) < unit.nal_unit_size:
                break
            unit.nal_unit = rest[:unit.nal_unit_size]
            rest = rest[unit.nal_unit_size:]
            units.append(unit)

        if not units:
            raise ShortPacketError()

        self.first_unit = first
        self.other_units = units
        return b""


class H265FragmentationUnitHeader(int):
    """An 8-bit fragmentation unit header: S, E and FuType."""

    def s(self) -> bool:
        """Start of a fragmented NAL unit."""
        return bool(self & 0b10000000)

    def e(self) -> bool:
        """End of a fragmented NAL unit."""
        return bool(self & 0b01000000)

    def fu_type(self) -> int:
        """The type of the fragmented NAL unit."""
        return self & 0b00111111


@dataclass
class H265FragmentationUnitPacket:
    """A single fragmentation unit packet."""

    with_donl: bool = False
    payload_header: H265NALUHeader = H265NALUHeader(0)
    fu_header: H265FragmentationUnitHeader = H265FragmentationUnitHeader(0)
    donl: int | None = None
    payload: bytes = b""

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse ``payload`` into this packet; no media is returned."""
        header_size = _H265_NALU_HEADER_SIZE + _H265_FRAGMENTATION_UNIT_HEADER_SIZE
        data, header = _check_payload(payload, header_size)
        if not header.is_fragmentation_unit():
            raise InvalidH265PacketTypeError()

        fu_header = H265FragmentationUnitHeader(data[2])
        rest = data[3:]
        donl = None
        if fu_header.s() and self.with_donl:
            if len(rest) <= 2:
                raise ShortPacketError()
            donl = (rest[0] << 8) | rest[1]
            rest = rest[2:]

        self.donl = donl
        self.payload_header = header
        self.fu_header = fu_header
        self.payload = rest
        return b""


class H265TSCI(int):
    """Temporal Scalability Control Information header extension."""

    def tl0picidx(self) -> int:
        return (((self & 0xFFFF0000) >> 16) & 0xFF00) >> 8

    def irap_pic_id(self) -> int:
        return ((self & 0xFFFF0000) >> 16) & 0x00FF

    def s(self) -> bool:
        return bool(((self & 0xFF00) >> 8) & 0b10000000)

    def e(self) -> bool:
        return bool(((self & 0xFF00) >> 8) & 0b01000000)

    def res(self) -> int:
        return ((self & 0xFF00) >> 8) & 0b00111111


@dataclass
class H265PACIPacket:
    """A payload content information (PACI) packet."""

    payload_header: H265NALUHeader = H265NALUHeader(0)
    paci_header_fields: int = 0
    phes: bytes = b""
    payload: bytes = b""

    def a(self) -> bool:
        """Copy of the F bit of the PACI payload NAL unit."""
        return bool(self.paci_header_fields & 0x8000)

    def c_type(self) -> int:
        """Copy of the Type field of the PACI payload NAL unit."""
        return (self.paci_header_fields & 0x7E00) >> 9

    def phs_size(self) -> int:
        """Size of the PHES field in bytes."""
        return (self.paci_header_fields & 0x01F0) >> 4

    def f0(self) -> bool:
        """Whether a temporal scalability extension is in the PHES."""
        return bool(self.paci_header_fields & 0b1000)

    def f1(self) -> bool:
        return bool(self.paci_header_fields & 0b0100)

    def f2(self) -> bool:
        return bool(self.paci_header_fields & 0b0010)

    def y(self) -> bool:
        return bool(self.paci_header_fields & 0b0001)

    def tsci(self) -> H265TSCI | None:
        """The temporal scalability extension, if present."""
        if not self.f0() or self.phs_size() < 3:
            return None
        return H265TSCI((self.phes[0] << 16) | (self.phes[1] << 8) | self.phes[0])

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse ``payload`` into this packet; no media is returned."""
        data, header = _check_payload(payload, _H265_NALU_HEADER_SIZE + 2)
        if not header.is_paci_packet():
            raise InvalidH265PacketTypeError()

        self.paci_header_fields = (data[2] << 8) | data[3]
        rest = data[4:]
        extension_size = self.phs_size()
        if len(rest) < extension_size + 1:
            self.paci_header_fields = 0
            raise ShortPacketError()

        self.payload_header = header
        if extension_size > 0:
            self.phes = rest[:extension_size]
        self.payload = rest[extension_size:]
        return b""


H265SubPacket = Union[
    H265SingleNALUnitPacket,
    H265AggregationPacket,
    H265FragmentationUnitPacket,
    H265PACIPacket,
]


@dataclass
class H265Packet(VideoDepacketizer):
    """An H.265 RTP payload, parsed into the packet kind it carries."""

    with_donl: bool = False
    packet: H265SubPacket | None = None

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse ``payload``; the result is stored in ``packet``."""
        data, header = _check_payload(payload, _H265_NALU_HEADER_SIZE)

        decoded: H265SubPacket
        if header.is_paci_packet():
            decoded = H265PACIPacket()
        elif header.is_fragmentation_unit():
            decoded = H265FragmentationUnitPacket(with_donl=self.with_donl)
        elif header.is_aggregation_packet():
            decoded = H265AggregationPacket(with_donl=self.with_donl)
        else:
            decoded = H265SingleNALUnitPacket(with_donl=self.with_donl)

        decoded.unmarshal(data)
        self.packet = decoded
        return b""

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Tell whether the payload starts a packetized NAL unit stream."""
        if payload is None or len(payload) < 3:
            return False
        if _read_header(payload).type() == _H265_NALU_FRAGMENTATION_UNIT_TYPE:
            return H265FragmentationUnitHeader(payload[2]).s()
        return True