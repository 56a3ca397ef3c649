# rtpcodecs

Split encoded media frames into RTP payloads and read RTP payloads back, for
the common audio and video codecs:

| Codec        | Module                                     | Payloader       | Depacketizer |
|--------------|--------------------------------------------|-----------------|--------------|
| G.711        | `rtpcodecs.audio`                          | `G711Payloader` | –            |
| G.722        | `rtpcodecs.audio`                          | `G722Payloader` | –            |
| Opus         | `rtpcodecs.audio`                          | `OpusPayloader` | `OpusPacket` |
| H.264        | `rtpcodecs.h264`                           | `H264Payloader` | `H264Packet` |
| H.265 / HEVC | `rtpcodecs.h265_payloader`, `rtpcodecs.h265` | `H265Payloader` | `H265Packet` |
| VP8          | `rtpcodecs.vp8`                            | `VP8Payloader`  | `VP8Packet`  |
| VP9          | `rtpcodecs.vp9`                            | `VP9Payloader`  | `VP9Packet`  |

The package has no runtime dependencies.

## Installation

```
pip install rtpcodecs
```

## Payloading

Every payloader has `payload(mtu, payload)`. It splits one frame into a list of
`bytes`, each no larger than `mtu`. If the MTU is too small to carry any data,
or there is no payload, it returns an empty list.

```python
from rtpcodecs.h264 import H264Payloader

payloader = H264Payloader()
frame = b"\x00\x00\x00\x01\x65" + b"\x88" * 3000   # Annex B stream
chunks = payloader.payload(1200, frame)             # FU-A fragments
```

Notes per codec:

- `G711Payloader` and `G722Payloader` cut the samples into pieces of at most
  `mtu` bytes. `OpusPayloader` returns the whole frame as one payload and does
  not apply the MTU.
- `H264Payloader` splits an Annex B stream with `rtpcodecs.h264.split_nalus`.
  It drops access unit delimiters and filler data. It holds SPS and PPS units
  and sends them as a STAP-A in front of the next unit, unless
  `disable_stap_a=True`. Units larger than the MTU are sent as FU-A fragments.
- `H265Payloader` combines small NAL units into aggregation packets, unless
  `skip_aggregation=True`. It sends units too large for the MTU as
  fragmentation units. With `add_donl=True` it writes decoding order numbers.
- `VP8Payloader` writes the VP8 payload descriptor. With
  `enable_picture_id=True` it adds a picture ID, which goes up by one with
  every frame.
- `VP9Payloader` works in flexible mode (`flexible_mode=True`) or
  non-flexible mode. In non-flexible mode it parses the VP9 frame header, and
  for key frames it adds a scalability structure with the frame size. If the
  header cannot be parsed, it returns an empty list. The first picture ID
  comes from `initial_picture_id_fn`, or is random when that is not given.

Payloaders keep state from one call to the next: held SPS/PPS, picture IDs and
DONL counters.

## Depacketizing

A depacketizer's `unmarshal(packet)` takes the payload of one RTP packet. When
the packet is malformed it raises a subclass of `rtpcodecs.common.CodecError`
(`ShortPacketError`, `NilPacketError`, `UnhandledNALUTypeError`,
`TooManyPDiffError`, `TooManySpatialLayersError`, and the H.265 errors in
`rtpcodecs.h265`). `CodecError` is a `ValueError`.

```python
from rtpcodecs.h264 import H264Packet
from rtpcodecs.common import CodecError

depacketizer = H264Packet()          # H264Packet(is_avc=True) for AVC framing
try:
    annexb = depacketizer.unmarshal(rtp_payload)
except CodecError:
    annexb = b""
```

- `H264Packet` returns the NAL units with Annex B start codes, or with 4-byte
  length prefixes when `is_avc=True`. It unpacks STAP-A and joins FU-A
  fragments across calls. An empty result means more fragments are expected.
- `VP8Packet` and `VP9Packet` store the descriptor fields as attributes and
  return the codec data that follows.
- `OpusPacket` returns the packet unchanged. An empty packet raises
  `ShortPacketError`.
- `H265Packet` returns `b""`. It stores the parsed packet in its `packet`
  attribute: an `H265SingleNALUnitPacket`, `H265AggregationPacket`,
  `H265FragmentationUnitPacket` or `H265PACIPacket`. Set `with_donl=True` when
  the stream carries DONL fields.

Setting `zero_allocation = True` on an `H264Packet` makes `unmarshal` return
the payload untouched.

Each depacketizer also has `is_partition_head(payload)` and
`is_partition_tail(marker, payload)`, which a jitter buffer can use to find
frame boundaries. For video, a partition ends when the marker bit is set. Every
audio payload is both head and tail.

## VP9 frame headers

`rtpcodecs.vp9header.Header.parse(buf)` reads the uncompressed VP9 frame
header: the profile, the key-frame and show flags, the colour configuration and
the frame size. `width()` and `height()` give the dimensions in pixels, or 0
when the header has no frame size.

## What it does not do

The package works on RTP payloads only. It does not build or parse RTP packet
headers, and it does not send or receive packets. There are no depacketizers
for G.711 or G.722. The H.265 depacketizer parses packet structure but does not
join fragmentation units back into NAL units.

## Running the tests

```
pip install -e .[test]
pytest
```