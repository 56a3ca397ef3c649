import math
import random

import pytest

from rtpcodecs.audio import (
    G711Payloader,
    G722Payloader,
    OpusPacket,
    OpusPartitionHeadChecker,
    OpusPayloader,
)
from rtpcodecs.common import NilPacketError, ShortPacketError


def test_large_payload_is_split_and_rejoined():
    testlen, testmtu = 10000, 1500
    samples = random.Random(7).randbytes(testlen)
    for payloader in (G711Payloader(), G722Payloader()):
        samples_in = bytearray(samples)

        payloads = payloader.payload(testmtu, samples_in)

        assert len(payloads) == math.ceil(testlen / testmtu)
        assert bytes(samples_in) == samples, "Modified input samples"
        assert b"".join(payloads) == samples
        assert all(len(p) <= testmtu for p in payloads)


@pytest.mark.parametrize(
    ("mtu", "count"),
    [(0, 0), (1, 3), (2, 2), (10, 1)],
)
def test_small_payload_piece_counts(mtu, count):
    payload = b"\x90\x90\x90"
    for payloader in (G711Payloader(), G722Payloader()):
        res = payloader.payload(mtu, payload)
        assert len(res) == count
        if count:
            assert b"".join(res) == payload


def test_fixed_payloader_none_payload():
    assert G711Payloader().payload(100, None) == []
    assert G722Payloader().payload(100, None) == []


def test_fixed_payloader_empty_payload_gives_one_empty_piece():
    assert G711Payloader().payload(100, b"") == [b""]
    assert G722Payloader().payload(100, b"") == [b""]


def test_fixed_payloader_exact_mtu():
    assert G711Payloader().payload(3, b"\x01\x02\x03") == [b"\x01\x02\x03"]
    assert G722Payloader().payload(3, b"\x01\x02\x03") == [b"\x01\x02\x03"]


def test_opus_unmarshal_nil():
    with pytest.raises(NilPacketError):
        OpusPacket().unmarshal(None)


def test_opus_unmarshal_empty():
    with pytest.raises(ShortPacketError):
        OpusPacket().unmarshal(b"")


def test_opus_unmarshal_normal():
    data = bytes([0x00, 0x11, 0x22, 0x33, 0x44, 0x55, 0x66, 0x90])
    packet = OpusPacket()
    raw = packet.unmarshal(data)
    assert raw == data
    assert packet.payload == data


def test_opus_payloader():
    payloader = OpusPayloader()
    payload = b"\x90\x90\x90"
    assert payloader.payload(1, None) == []
    assert payloader.payload(1, payload) == [payload]
    assert payloader.payload(2, payload) == [payload]


def test_opus_is_partition_head():
    assert OpusPacket().is_partition_head(b"\x00\x00") is True
    assert OpusPacket().is_partition_tail(False, b"\x00\x00") is True


def test_opus_partition_head_checker():
    assert OpusPartitionHeadChecker().is_partition_head(b"\x00\x00") is True