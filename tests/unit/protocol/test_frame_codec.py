"""Unit tests for the length-prefixed frame codec."""

from __future__ import annotations

import json
import struct

import pytest

from fishbowl_link.protocol.exceptions import FrameDecodeError
from fishbowl_link.protocol.frame_codec import LENGTH_PREFIX_SIZE, FrameDecoder, encode_frame

SAMPLE_BODY = '{"FbiJson":{"Ticket":{"Key":"K1"},"FbiMsgsRs":{"statusCode":1000}}}'


class TestEncodeFrame:
    def test_length_prefix_is_big_endian_byte_count(self):
        frame = encode_frame(SAMPLE_BODY)
        (length,) = struct.unpack(">I", frame[:LENGTH_PREFIX_SIZE])
        assert length == len(SAMPLE_BODY.encode("utf-8"))
        assert frame[LENGTH_PREFIX_SIZE:] == SAMPLE_BODY.encode("utf-8")

    def test_length_counts_utf8_bytes_not_characters(self):
        payload = json.dumps({"Name": "Müller"}, ensure_ascii=False)
        frame = encode_frame(payload)
        (length,) = struct.unpack(">I", frame[:LENGTH_PREFIX_SIZE])
        assert length == len(payload) + 1

    def test_empty_payload(self):
        assert encode_frame("") == b"\x00\x00\x00\x00"


class TestFrameDecoder:
    def test_whole_frame_in_one_chunk(self):
        decoder = FrameDecoder()
        assert decoder.feed(encode_frame(SAMPLE_BODY)) == [SAMPLE_BODY.encode()]
        assert decoder.awaiting_data is False

    @pytest.mark.parametrize("split", [1, 3, 4, 5, 20])
    def test_frame_split_across_two_chunks(self, split: int):
        decoder = FrameDecoder()
        frame = encode_frame(SAMPLE_BODY)

        assert decoder.feed(frame[:split]) == []
        assert decoder.awaiting_data is True
        assert decoder.feed(frame[split:]) == [SAMPLE_BODY.encode()]
        assert decoder.awaiting_data is False

    def test_byte_at_a_time(self):
        decoder = FrameDecoder()
        frames: list[bytes] = []
        for byte in encode_frame(SAMPLE_BODY):
            frames.extend(decoder.feed(bytes([byte])))
        assert frames == [SAMPLE_BODY.encode()]

    def test_declared_length_is_kept_while_waiting(self):
        decoder = FrameDecoder()
        _ = decoder.feed(encode_frame(SAMPLE_BODY)[:10])
        assert decoder.declared_length == len(SAMPLE_BODY)
        assert len(decoder.buffer) == 10 - LENGTH_PREFIX_SIZE

    def test_two_frames_in_one_chunk(self):
        decoder = FrameDecoder()
        data = encode_frame('{"a":1}') + encode_frame('{"b":2}')
        assert decoder.feed(data) == [b'{"a":1}', b'{"b":2}']

    def test_frame_tail_followed_by_partial_next_frame(self):
        decoder = FrameDecoder()
        first = encode_frame('{"a":1}')
        second = encode_frame('{"b":2}')

        assert decoder.feed(first[:5]) == []
        assert decoder.feed(first[5:] + second[:2]) == [b'{"a":1}']
        assert decoder.feed(second[2:]) == [b'{"b":2}']

    def test_zero_length_frame(self):
        decoder = FrameDecoder()
        assert decoder.feed(encode_frame("")) == [b""]

    def test_oversized_frame_raises_and_resets(self):
        decoder = FrameDecoder(max_frame_size=16)
        with pytest.raises(FrameDecodeError) as exc_info:
            _ = decoder.feed(struct.pack(">I", 17) + b"x" * 5)

        assert exc_info.value.reason == "frame_too_large"
        assert exc_info.value.buffer_size == 17
        assert decoder.awaiting_data is False

    def test_reset_drops_partial_frame(self):
        decoder = FrameDecoder()
        _ = decoder.feed(encode_frame(SAMPLE_BODY)[:7])
        decoder.reset()

        assert decoder.awaiting_data is False
        assert decoder.feed(encode_frame('{"c":3}')) == [b'{"c":3}']
