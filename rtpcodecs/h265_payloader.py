"""H.265 payloading as described by RFC 7798."""

from __future__ import annotations

from dataclasses import dataclass, field

from .h264 import split_nalus
from .h265 import H265NALUHeader

_NALU_HEADER_SIZE = 2
_AGGREGATION_PACKET_TYPE = 48
_FRAGMENTATION_UNIT_TYPE = 49
_FU_HEADER_SIZE = 1
_MAX_U8 = 0xFF


def _u16(value: int) -> bytes:
    return (value & 0xFFFF).to_bytes(2, "big")


@dataclass
class H265Payloader:
    """Splits an H.265 Annex B stream into RTP payloads.

    Small NAL units are combined into aggregation packets unless
    ``skip_aggregation`` is set; NAL units too large for the MTU are sent as
    fragmentation units. ``add_donl`` writes decoding order numbers.
    """

    add_donl: bool = False
    skip_aggregation: bool = False
    _donl: int = field(default=0, init=False, repr=False)

    def _next_donl(self) -> int:
        donl = self._donl
        self._donl = (self._donl + 1) & 0xFFFF
        return donl

    def payload(self, mtu: int, payload: bytes | None) -> list[bytes]:
        """Fragment ``payload`` into RTP payloads no larger than ``mtu``."""
        payloads: list[bytes] = []
        if not payload or mtu == 0:
            return payloads

        buffered: list[bytes] = []
        buffer_size = 0

        def flush() -> None:
            nonlocal buffered, buffer_size
            if not buffered:
                return
            if len(buffered) == 1:
                nalu = buffered[0]
                if self.add_donl:
                    payloads.append(
                        nalu[:_NALU_HEADER_SIZE]
                        + _u16(self._next_donl())
                        + nalu[_NALU_HEADER_SIZE:]
                    )
                else:
                    payloads.append(nalu)
            else:
                payloads.append(self._aggregate(buffered))
            buffered = []
            buffer_size = 0

        def marginal_size(nalu: bytes) -> int:
            size = len(nalu) + 2
            if len(buffered) == 1:
                size = len(nalu) + 4
            if self.add_donl:
                size += 2 if not buffered else 1
            return size

        for nalu in split_nalus(payload):
            if len(nalu) < _NALU_HEADER_SIZE:
                continue

            nalu_len = len(nalu) + 2
            if self.add_donl:
                nalu_len += 2

            if nalu_len <= mtu:
                extra = marginal_size(nalu)
                if buffer_size + extra > mtu:
                    flush()
                    extra = marginal_size(nalu)
                buffered.append(nalu)
                buffer_size += extra
                if self.skip_aggregation:
                    flush()
            else:
                fragments = self._fragment(mtu, nalu, flush)
                payloads.extend(fragments)

        flush()
        return payloads

    def _aggregate(self, nalus: list[bytes]) -> bytes:
        headers = [H265NALUHeader((nalu[0] << 8) | nalu[1]) for nalu in nalus]
        layer_id = min([_MAX_U8] + [h.layer_id() for h in headers])
        tid = min([_MAX_U8] + [h.tid() for h in headers])

        out = bytearray(
            _u16((_AGGREGATION_PACKET_TYPE << 9) | (layer_id << 3) | tid)
        )
        for position, nalu in enumerate(nalus):
            if self.add_donl:
                if position == 0:
                    out += _u16(self._donl)
                else:
                    out.append((position - 1) & 0xFF)
            out += _u16(len(nalu))
            out += nalu
        return bytes(out)

    def _fragment(self, mtu: int, nalu: bytes, flush) -> list[bytes]:
        header_size = _FU_HEADER_SIZE + _NALU_HEADER_SIZE
        if self.add_donl:
            header_size += 2
        max_fu_payload = mtu - header_size

        nalu_header = H265NALUHeader((nalu[0] << 8) | nalu[1])
        body = nalu[_NALU_HEADER_SIZE:]
        if max_fu_payload <= 0 or not body:
            return []

        flush()

        fragments: list[bytes] = []
        header_bytes = _u16(nalu_header)
        payload_header = bytes(
            [
                (header_bytes[0] & 0b10000001) | (_FRAGMENTATION_UNIT_TYPE << 1),
                header_bytes[1],
            ]
        )
        for index in range(0, len(body), max_fu_payload):
            chunk = body[index:index + max_fu_payload]
            fu_header = nalu_header.type()
            if index == 0:
                fu_header |= 1 << 7
            elif index + len(chunk) == len(body):
                fu_header |= 1 << 6

            out = bytearray(payload_header)
            out.append(fu_header & 0xFF)
            if self.add_donl:
                out += _u16(self._next_donl())
            out += chunk
            fragments.append(bytes(out))
        return fragments