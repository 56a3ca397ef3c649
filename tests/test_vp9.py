import pytest

from rtpcodecs.common import (
    NilPacketError,
    ShortPacketError,
    TooManyPDiffError,
    TooManySpatialLayersError,
)
from rtpcodecs.vp9 import VP9Packet, VP9Payloader, VP9PartitionHeadChecker

R0 = 0x21F4
RANDS = [(((R0 + i) >> 8) | 0x80, (R0 + i) & 0xFF) for i in range(10)]


def _initial_id() -> int:
    return R0


UNMARSHAL_OK = {
    "NonFlexible": (bytes([0x00, 0xAA]), VP9Packet(payload=b"\xaa")),
    "NonFlexiblePictureID": (
        bytes([0x80, 0x02, 0xAA]),
        VP9Packet(i=True, picture_id=0x02, payload=b"\xaa"),
    ),
    "NonFlexiblePictureIDExt": (
        bytes([0x80, 0x81, 0xFF, 0xAA]),
        VP9Packet(i=True, picture_id=0x01FF, payload=b"\xaa"),
    ),
    "NonFlexibleLayerIndicePictureID": (
        bytes([0xA0, 0x02, 0x23, 0x01, 0xAA]),
        VP9Packet(
            i=True, l=True, picture_id=0x02, tid=0x01, sid=0x01, d=True,
            tl0picidx=0x01, payload=b"\xaa",
        ),
    ),
    "FlexibleLayerIndicePictureID": (
        bytes([0xB0, 0x02, 0x23, 0x01, 0xAA]),
        VP9Packet(
            f=True, i=True, l=True, picture_id=0x02, tid=0x01, sid=0x01,
            d=True, payload=b"\x01\xaa",
        ),
    ),
    "FlexiblePictureIDRefIndex": (
        bytes([0xD0, 0x02, 0x03, 0x04, 0xAA]),
        VP9Packet(i=True, p=True, f=True, picture_id=0x02, pdiff=[1, 2], payload=b"\xaa"),
    ),
    "FlexiblePictureIDRefIndexNoPayload": (
        bytes([0xD0, 0x02, 0x03, 0x04]),
        VP9Packet(i=True, p=True, f=True, picture_id=0x02, pdiff=[1, 2], payload=b""),
    ),
    "ScalabilityStructureResolutionsNoPayload": (
        bytes([
            0x0A, (1 << 5) | (1 << 4),
            640 >> 8, 640 & 0xFF, 360 >> 8, 360 & 0xFF,
            1280 >> 8, 1280 & 0xFF, 720 >> 8, 720 & 0xFF,
        ]),
        VP9Packet(
            b=True, v=True, ns=1, y=True, g=False, ng=0,
            width=[640, 1280], height=[360, 720], payload=b"",
        ),
    ),
    "ScalabilityStructureNoPayload": (
        bytes([
            0x0A, (1 << 5) | (1 << 3), 2,
            (0 << 5) | (1 << 4) | (0 << 2),
            (2 << 5) | (0 << 4) | (1 << 2),
            33,
        ]),
        VP9Packet(
            b=True, v=True, ns=1, y=False, g=True, ng=2,
            pgtid=[0, 2], pgu=[True, False], pgpdiff=[[], [33]], payload=b"",
        ),
    ),
    "ScalabilityStructureReserved": (
        bytes([0x0A, (1 << 5) | (1 << 2) | (1 << 1) | 1]),
        VP9Packet(b=True, v=True, ns=1, payload=b""),
    ),
}

UNMARSHAL_ERR = {
    "Nil": (None, NilPacketError),
    "Empty": (b"", ShortPacketError),
    "NonFlexiblePictureIDExt_ShortPacket0": (bytes([0x80, 0x81]), ShortPacketError),
    "NonFlexiblePictureIDExt_ShortPacket1": (bytes([0x80]), ShortPacketError),
    "NonFlexibleLayerIndicePictureID_ShortPacket0": (bytes([0xA0, 0x02, 0x23]), ShortPacketError),
    "NonFlexibleLayerIndicePictureID_ShortPacket1": (bytes([0xA0, 0x02]), ShortPacketError),
    "FlexiblePictureIDRefIndex_TooManyPDiff": (
        bytes([0xD0, 0x02, 0x03, 0x05, 0x07, 0x09, 0x10, 0xAA]),
        TooManyPDiffError,
    ),
    "FlexiblePictureIDRefIndex_ShortPacket0": (bytes([0xD0, 0x02, 0x03]), ShortPacketError),
    "FlexiblePictureIDRefIndex_ShortPacket1": (bytes([0xD0, 0x02]), ShortPacketError),
    "FlexiblePictureIDRefIndex_ShortPacket2": (bytes([0xD0]), ShortPacketError),
    "ScalabilityStructure_ShortPacket0": (bytes([0x0A, 0x10]), ShortPacketError),
    "ScalabilityMissingWidth": (b"200", ShortPacketError),
    "ScalabilityMissingNG": (b"b00800000000", ShortPacketError),
    "ScalabilityMissingTemporalLayerIDs": (b"20H0", ShortPacketError),
    "ScalabilityMissingReferenceIndices": (b"20H007", ShortPacketError),
    "TooManySpatialLayers": (bytes([0x20, 0x0A, 0x00]), TooManySpatialLayersError),
}


@pytest.mark.parametrize("name", sorted(UNMARSHAL_OK))
def test_unmarshal_ok(name):
    data, expected = UNMARSHAL_OK[name]
    packet = VP9Packet()
    raw = packet.unmarshal(data)
    assert raw == expected.payload
    assert packet == expected


@pytest.mark.parametrize("name", sorted(UNMARSHAL_ERR))
def test_unmarshal_errors(name):
    data, error = UNMARSHAL_ERR[name]
    with pytest.raises(error):
        VP9Packet().unmarshal(data)


def test_unmarshal_reused_packet_does_not_accumulate():
    packet = VP9Packet()
    packet.unmarshal(bytes([0xD0, 0x02, 0x03, 0x04, 0xAA]))
    packet.unmarshal(bytes([0xD0, 0x02, 0x03, 0x04, 0xAA]))
    assert packet.pdiff == [1, 2]


KEY_FRAME = bytes([0x82, 0x49, 0x83, 0x42, 0x00, 0x77, 0xF0, 0x32, 0x34])

PAYLOAD_CASES = {
    "flexible NilPayload": ([None], True, 100, []),
    "flexible SmallMTU": ([b"\x00\x00"], True, 1, []),
    "flexible OnePacket": (
        [b"\x01\x02"], True, 10,
        [bytes([0x9C, *RANDS[0], 0x01, 0x02])],
    ),
    "flexible TwoPackets": (
        [b"\x01\x02"], True, 4,
        [bytes([0x98, *RANDS[0], 0x01]), bytes([0x94, *RANDS[0], 0x02])],
    ),
    "flexible ThreePackets": (
        [b"\x01\x02\x03"], True, 4,
        [
            bytes([0x98, *RANDS[0], 0x01]),
            bytes([0x90, *RANDS[0], 0x02]),
            bytes([0x94, *RANDS[0], 0x03]),
        ],
    ),
    "flexible TwoFramesFourPackets": (
        [b"\x01\x02\x03", b"\x04"], True, 5,
        [
            bytes([0x98, *RANDS[0], 0x01, 0x02]),
            bytes([0x94, *RANDS[0], 0x03]),
            bytes([0x9C, *RANDS[1], 0x04]),
        ],
    ),
    "non-flexible NilPayload": ([None], False, 100, []),
    "non-flexible SmallMTU": ([KEY_FRAME], False, 1, []),
    "non-flexible OnePacket key frame": (
        [KEY_FRAME], False, 20,
        [bytes([
            0x8F, 0xA1, 0xF4, 0x18, 0x07, 0x80, 0x03, 0x24,
            0x01, 0x14, 0x01, 0x82, 0x49, 0x83, 0x42, 0x00,
            0x77, 0xF0, 0x32, 0x34,
        ])],
    ),
    "non-flexible TwoPackets key frame": (
        [KEY_FRAME], False, 12,
        [
            bytes([0x8B, 0xA1, 0xF4, 0x18, 0x07, 0x80, 0x03, 0x24, 0x01, 0x14, 0x01, 0x82]),
            bytes([0x85, 0xA1, 0xF4, 0x49, 0x83, 0x42, 0x00, 0x77, 0xF0, 0x32, 0x34]),
        ],
    ),
    "non-flexible ThreePackets key frame": (
        [KEY_FRAME + bytes([0x01, 0x02, 0x03, 0x04, 0x05, 0x06, 0x07, 0x08])], False, 12,
        [
            bytes([0x8B, 0xA1, 0xF4, 0x18, 0x07, 0x80, 0x03, 0x24, 0x01, 0x14, 0x01, 0x82]),
            bytes([0x81, 0xA1, 0xF4, 0x49, 0x83, 0x42, 0x00, 0x77, 0xF0, 0x32, 0x34, 0x01]),
            bytes([0x85, 0xA1, 0xF4, 0x02, 0x03, 0x04, 0x05, 0x06, 0x07, 0x08]),
        ],
    ),
    "non-flexible OnePacket non key frame": (
        [bytes([0x86, 0x00, 0x40, 0x92, 0xE1, 0x31, 0x42, 0x8C, 0xC0, 0x40])], False, 20,
        [bytes([
            0xCD, 0xA1, 0xF4, 0x86, 0x00, 0x40, 0x92, 0xE1,
            0x31, 0x42, 0x8C, 0xC0, 0x40,
        ])],
    ),
}


@pytest.mark.parametrize("name", sorted(PAYLOAD_CASES))
def test_payloader(name):
    frames, flexible, mtu, expected = PAYLOAD_CASES[name]
    payloader = VP9Payloader(flexible_mode=flexible, initial_picture_id_fn=_initial_id)
    result = []
    for frame in frames:
        result.extend(payloader.payload(mtu, frame))
    assert result == expected


def test_payloader_picture_id_overflow():
    payloader = VP9Payloader(flexible_mode=True, initial_picture_id_fn=_initial_id)
    previous = None
    for _ in range(0x8000):
        result = payloader.payload(4, b"\x01")
        packet = VP9Packet()
        packet.unmarshal(result[0])
        if previous is not None:
            if previous == 0x7FFF:
                assert packet.picture_id == 0
            else:
                assert packet.picture_id == previous + 1
        previous = packet.picture_id


def test_payloader_default_initial_picture_id_is_in_range():
    payloader = VP9Payloader(flexible_mode=True)
    packet = VP9Packet()
    packet.unmarshal(payloader.payload(10, b"\x01")[0])
    assert 0 <= packet.picture_id < 0x7FFF
    assert packet.payload == b"\x01"


def test_payloaded_frame_round_trips():
    payloader = VP9Payloader(flexible_mode=True, initial_picture_id_fn=_initial_id)
    frame = bytes(range(50))
    packets = payloader.payload(10, frame)
    data = b""
    for packet_bytes in packets:
        packet = VP9Packet()
        data += packet.unmarshal(packet_bytes)
        assert packet.picture_id == R0
    assert data == frame


def test_is_partition_head():
    packet = VP9Packet()
    assert packet.is_partition_head(None) is False
    assert packet.is_partition_head(bytes([0x18, 0x00, 0x00])) is True
    assert packet.is_partition_head(bytes([0x10, 0x00, 0x00])) is False


def test_partition_head_checker():
    checker = VP9PartitionHeadChecker()
    assert checker.is_partition_head(b"") is False
    assert checker.is_partition_head(bytes([0x08])) is True


def test_partition_tail_follows_marker():
    packet = VP9Packet()
    assert packet.is_partition_tail(True, b"\x00") is True
    assert packet.is_partition_tail(False, b"\x00") is False