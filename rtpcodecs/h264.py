"""H.264 payloading and depacketizing as described by RFC 6184."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .common import ShortPacketError, UnhandledNALUTypeError, VideoDepacketizer

_STAPA_NALU_TYPE = 24
_FUA_NALU_TYPE = 28
_FUB_NALU_TYPE = 29
_SPS_NALU_TYPE = 7
_PPS_NALU_TYPE = 8
_AUD_NALU_TYPE = 9
_FILLER_NALU_TYPE = 12

_FUA_HEADER_SIZE = 2
_STAPA_HEADER_SIZE = 1
_STAPA_NALU_LENGTH_SIZE = 2

_NALU_TYPE_BITMASK = 0x1F
_NALU_REF_IDC_BITMASK = 0x60
_FU_START_BITMASK = 0x80
_FU_END_BITMASK = 0x40

_OUTPUT_STAPA_HEADER = 0x78

_NALU_START_CODE = b"\x00\x00\x01"
_ANNEXB_NALU_START_CODE = b"\x00\x00\x00\x01"


def split_nalus(nals: bytes) -> Iterator[bytes]:
    """Yield the NAL units of an Annex B byte stream.

    A buffer without any start code is yielded whole.
    """
    data = bytes(nals)
    start = data.find(_NALU_START_CODE)
    if start == -1:
        yield data
        return

    offset = 3
    length = len(data)
    while start < length:
        next_start = data.find(_NALU_START_CODE, start + offset)
        if next_start == -1:
            yield data[start + offset:]
            break

        end_is_4_byte = data[next_start - 1] == 0
        if end_is_4_byte:
            next_start -= 1

        yield data[start + offset:next_start]

        start = next_start
        offset = 4 if end_is_4_byte else 3


@dataclass
class H264Payloader:
    """Splits an H.264 Annex B stream into RTP payloads.

    SPS and PPS units are held back and sent as a STAP-A together with the
    next NAL unit unless ``disable_stap_a`` is set.
    """

    disable_stap_a: bool = False
    _sps_nalu: bytes | None = field(default=None, init=False, repr=False)
    _pps_nalu: bytes | None = field(default=None, init=False, repr=False)

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment ``payload`` into RTP payloads no larger than ``mtu``."""
        payloads: list[bytes] = []
        if not payload:
            return payloads

        for nalu in split_nalus(payload):
            payloads.extend(self._packetize_nalu(mtu, nalu))
        return payloads

    def _packetize_nalu(self, mtu: int, nalu: bytes) -> list[bytes]:
        if not nalu:
            return []

        out: list[bytes] = []
        nalu_type = nalu[0] & _NALU_TYPE_BITMASK
        nalu_ref_idc = nalu[0] & _NALU_REF_IDC_BITMASK

        if nalu_type in (_AUD_NALU_TYPE, _FILLER_NALU_TYPE):
            return []
        if nalu_type == _SPS_NALU_TYPE:
            if not self.disable_stap_a:
                self._sps_nalu = nalu
                return []
        elif nalu_type == _PPS_NALU_TYPE:
            if not self.disable_stap_a:
                self._pps_nalu = nalu
                return []
        elif (
            not self.disable_stap_a
            and self._sps_nalu is not None
            and self._pps_nalu is not None
        ):
            stap_a = b"".join(
                (
                    bytes([_OUTPUT_STAPA_HEADER]),
                    (len(self._sps_nalu) & 0xFFFF).to_bytes(2, "big"),
                    self._sps_nalu,
                    (len(self._pps_nalu) & 0xFFFF).to_bytes(2, "big"),
                    self._pps_nalu,
                )
            )
            if len(stap_a) <= mtu:
                out.append(stap_a)
            self._sps_nalu = None
            self._pps_nalu = None

        if len(nalu) <= mtu:
            out.append(nalu)
            return out

        # FU-A: the original NAL header byte is carried in the FU indicator
        # and FU header, so it is left out of the fragment data.
        max_fragment_size = mtu - _FUA_HEADER_SIZE
        body = nalu[1:]
        if min(max_fragment_size, len(body)) <= 0:
            return out

        indicator = _FUA_NALU_TYPE | nalu_ref_idc
        for index in range(0, len(body), max_fragment_size):
            fragment = body[index:index + max_fragment_size]
            fu_header = nalu_type
            if index == 0:
                fu_header |= _FU_START_BITMASK
            elif index + len(fragment) == len(body):
                fu_header |= _FU_END_BITMASK
            out.append(bytes([indicator, fu_header]) + fragment)
        return out


@dataclass
class H264Packet(VideoDepacketizer):
    """Depacketizes H.264 RTP payloads into Annex B or AVC framed NAL units."""

    is_avc: bool = False
    _fua_buffer: bytearray | None = field(default=None, init=False, repr=False)

    def _package(self, nalu: bytes) -> bytes:
        if self.is_avc:
            return (len(nalu) & 0xFFFFFFFF).to_bytes(4, "big") + nalu
        return _ANNEXB_NALU_START_CODE + nalu

    def is_detected_final_packet_in_sequence(self, marker: bool) -> bool:
        """Tell whether the RTP marker bit ends the packet sequence."""
        return self.is_partition_tail(marker, None)

    def unmarshal(self, payload: bytes | None) -> bytes:
        """Parse an RTP payload and return the NAL units it completes."""
        if self.zero_allocation:
            return b"" if payload is None else bytes(payload)
        return self._parse_body(b"" if payload is None else bytes(payload))

    def _parse_body(self, payload: bytes) -> bytes:
        if not payload:
            raise ShortPacketError(f"packet is not large enough: {len(payload)} <=0")

        nalu_type = payload[0] & _NALU_TYPE_BITMASK

        if 0 < nalu_type < 24:
            return self._package(payload)

        if nalu_type == _STAPA_NALU_TYPE:
            offset = _STAPA_HEADER_SIZE
            result = bytearray()
            while offset < len(payload):
                if len(payload) - offset < _STAPA_NALU_LENGTH_SIZE:
                    break
                nalu_size = int.from_bytes(payload[offset:offset + 2], "big")
                offset += _STAPA_NALU_LENGTH_SIZE
                if len(payload) < offset + nalu_size:
                    raise ShortPacketError(
                        f"packet is not large enough STAP-A declared size({nalu_size}) "
                        f"is larger than buffer({len(payload) - offset})"
                    )
                result += self._package(payload[offset:offset + nalu_size])
                offset += nalu_size
            return bytes(result)

        if nalu_type == _FUA_NALU_TYPE:
            if len(payload) < _FUA_HEADER_SIZE:
                raise ShortPacketError()
            if self._fua_buffer is None:
                self._fua_buffer = bytearray()
            self._fua_buffer += payload[_FUA_HEADER_SIZE:]

            if payload[1] & _FU_END_BITMASK:
                ref_idc = payload[0] & _NALU_REF_IDC_BITMASK
                fragmented_type = payload[1] & _NALU_TYPE_BITMASK
                nalu = bytes([ref_idc | fragmented_type]) + bytes(self._fua_buffer)
                self._fua_buffer = None
                return self._package(nalu)
            return b""

        raise UnhandledNALUTypeError(f"NALU Type is unhandled: {nalu_type}")

    def is_partition_head(self, payload: bytes | None) -> bool:
        """Tell whether the payload starts a packetized NAL unit stream."""
        if payload is None or len(payload) < 2:
            return False
        if payload[0] & _NALU_TYPE_BITMASK in (_FUA_NALU_TYPE, _FUB_NALU_TYPE):
            return bool(payload[1] & _FU_START_BITMASK)
        return True


class H264PartitionHeadChecker:
    """Checks H.264 partition heads; prefer H264Packet.is_partition_head."""

    def is_partition_head(self, packet: bytes | None) -> bool:
        return H264Packet().is_partition_head(packet)