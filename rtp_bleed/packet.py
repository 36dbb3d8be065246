from __future__ import annotations

import struct

RTP_HEADER_LEN = 12
RTP_V2 = 0x80

# Largest payload a single UDP/IPv4 datagram can carry.
MAX_UDP_PAYLOAD = 65507


def build_probe() -> bytes:
    """
    Bare 12-byte RTP header used to make a relay latch onto us.
    Version 2, marker bit set, seq/timestamp/ssrc all zero.
    """
    return struct.pack("!BBHII", RTP_V2, 0x80, 0, 0, 0)


PROBE_PACKET = build_probe()


def looks_like_rtp(data: bytes) -> bool:
    return data[:1] == bytes([RTP_V2])


def rtp_payload(data: bytes) -> bytes:
    # Datagrams shorter than a header carry no payload.
    return data[RTP_HEADER_LEN:]
