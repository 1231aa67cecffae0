"""Unit tests for response body sinks."""

import pytest

from fetchcat.request.capture import BufferSink, CappedBufferSink, make_body_sink
from fetchcat.request.constants import UNBOUNDED_SIZE


class TestCappedBufferSink:
    """Tests for the size-capped body sink."""

    @pytest.mark.unit
    def test_accepts_up_to_capacity(self) -> None:
        sink = CappedBufferSink(10)

        assert sink.write(b"12345") == 5
        assert sink.write(b"67890") == 5
        assert sink.getvalue() == b"1234567890"

    @pytest.mark.unit
    def test_refuses_chunk_that_overflows(self) -> None:
        """An overflowing chunk is refused whole, not truncated."""
        sink = CappedBufferSink(10)
        sink.write(b"123456")

        assert sink.write(b"7890X") == 0
        assert sink.getvalue() == b"123456"

    @pytest.mark.unit
    def test_zero_capacity_accepts_empty_only(self) -> None:
        sink = CappedBufferSink(0)

        assert sink.write(b"") == 0
        assert sink.write(b"x") == 0
        assert sink.getvalue() == b""

    @pytest.mark.unit
    def test_negative_capacity_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            CappedBufferSink(-5)


class TestMakeBodySink:
    """Tests for sink selection."""

    @pytest.mark.unit
    def test_unbounded_uses_plain_buffer(self) -> None:
        sink = make_body_sink(UNBOUNDED_SIZE)

        assert isinstance(sink, BufferSink)
        assert sink.write(b"x" * 100_000) == 100_000

    @pytest.mark.unit
    def test_cap_uses_capped_buffer(self) -> None:
        sink = make_body_sink(0)

        assert isinstance(sink, CappedBufferSink)
        assert sink.capacity == 0
