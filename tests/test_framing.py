"""Tests for incremental line framing."""

import itertools

import pytest

from papershift_client.ocr.framing import FrameDecoder, aiter_lines

STREAM = (
    'data: {"event":"progress","progress":10,"message":"Página 1 ✓"}\n'
    "\n"
    'data: {"event":"page","page":1}\r\n'
    'data: {"event":"complete","result":{"markdown":"日本語テキスト"}}\n'
).encode("utf-8")


def decode_all(chunks: list[bytes]) -> list[str]:
    decoder = FrameDecoder()
    lines = []
    for chunk in chunks:
        lines.extend(decoder.feed(chunk))
    lines.extend(decoder.flush())
    return lines


def split_at(data: bytes, points: tuple[int, ...]) -> list[bytes]:
    bounds = [0, *points, len(data)]
    return [data[a:b] for a, b in zip(bounds, bounds[1:])]


class TestFrameDecoder:
    def test_whole_buffer(self):
        lines = decode_all([STREAM])
        assert lines == [
            'data: {"event":"progress","progress":10,"message":"Página 1 ✓"}',
            "",
            'data: {"event":"page","page":1}',
            'data: {"event":"complete","result":{"markdown":"日本語テキスト"}}',
        ]

    def test_every_single_split_matches_whole_buffer(self):
        expected = decode_all([STREAM])
        for point in range(1, len(STREAM)):
            assert decode_all(split_at(STREAM, (point,))) == expected, point

    def test_two_way_splits_match_whole_buffer(self):
        """Splits through multi-byte characters and line endings."""
        expected = decode_all([STREAM])
        # Every 7th pair of split points keeps the test fast but covers all offsets
        for a, b in itertools.combinations(range(1, len(STREAM)), 2):
            if (a + b) % 7:
                continue
            assert decode_all(split_at(STREAM, (a, b))) == expected, (a, b)

    def test_byte_at_a_time(self):
        chunks = [STREAM[i:i + 1] for i in range(len(STREAM))]
        assert decode_all(chunks) == decode_all([STREAM])

    def test_partial_line_is_held_back(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b'data: {"event":')) == []
        assert decoder.pending == 'data: {"event":'
        assert list(decoder.feed(b'"page"}\n')) == ['data: {"event":"page"}']
        assert decoder.pending == ""

    def test_split_multibyte_character(self):
        encoded = "✓\n".encode("utf-8")
        decoder = FrameDecoder()
        assert list(decoder.feed(encoded[:1])) == []
        assert list(decoder.feed(encoded[1:2])) == []
        assert list(decoder.feed(encoded[2:])) == ["✓"]

    def test_flush_emits_unterminated_last_line(self):
        decoder = FrameDecoder()
        assert list(decoder.feed(b"data: a\ndata: b")) == ["data: a"]
        assert list(decoder.flush()) == ["data: b"]
        assert list(decoder.flush()) == []

    def test_flush_on_empty_decoder(self):
        assert list(FrameDecoder().flush()) == []

    def test_invalid_bytes_are_replaced(self):
        lines = decode_all([b"data: \xff\xfe\n"])
        assert lines == ["data: ��"]

    def test_state_updates_even_if_iterator_not_consumed(self):
        decoder = FrameDecoder()
        decoder.feed(b"first\nsec")
        assert decoder.pending == "sec"
        assert list(decoder.feed(b"ond\n")) == ["second"]


class TestAiterLines:
    @pytest.mark.asyncio
    async def test_yields_lines_across_chunks(self):
        async def chunks():
            for piece in (b"data: o", b"ne\ndata: ", b"two\n", b"tail"):
                yield piece

        lines = [line async for line in aiter_lines(chunks())]
        assert lines == ["data: one", "data: two", "tail"]

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        async def chunks():
            return
            yield

        assert [line async for line in aiter_lines(chunks())] == []
