"""Tests for bounded stream views and stream helpers."""

from __future__ import annotations

import io

import pytest

from chunkvault.chunks.base import StreamIOError
from chunkvault.chunks.io import BoundedReader, NullWriter, close_quietly, copy_stream
from tests.mocks.chunk_mocks import ClosingStream, FailingStream, TrackingStream


class TestBoundedReader:
    """Tests for BoundedReader."""

    def test_reads_up_to_limit(self):
        stream = io.BytesIO(b"abcdefgh")
        view = BoundedReader(stream, 5)

        assert view.read() == b"abcde"
        assert view.read() == b""
        assert stream.read() == b"fgh"

    def test_partial_reads(self):
        view = BoundedReader(io.BytesIO(b"abcdefgh"), 6)
        assert view.read(4) == b"abcd"
        assert view.remaining == 2
        assert view.read(4) == b"ef"
        assert view.exhausted

    def test_never_reads_past_limit(self):
        stream = TrackingStream(b"x" * 100)
        view = BoundedReader(stream, 10, buffer_size=64)
        view.read()
        assert stream.bytes_read == 10
        assert max(stream.read_sizes) <= 10

    def test_zero_limit(self):
        stream = TrackingStream(b"abc")
        view = BoundedReader(stream, 0)
        assert view.read() == b""
        assert view.exhausted
        assert stream.bytes_read == 0

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            BoundedReader(io.BytesIO(), -1)

    def test_close_does_not_close_stream(self):
        stream = TrackingStream(b"abcdef")
        view = BoundedReader(stream, 3)
        view.close()

        assert view.closed
        assert stream.close_calls == 0
        with pytest.raises(ValueError):
            view.read()

    def test_context_manager_drains(self):
        stream = io.BytesIO(b"0123456789")
        with BoundedReader(stream, 7) as view:
            assert view.read(2) == b"01"

        assert view.consumed == 7
        assert view.closed
        assert stream.read() == b"789"

    def test_drain_returns_discarded(self):
        view = BoundedReader(io.BytesIO(b"abcdef"), 5, buffer_size=2)
        view.read(1)
        assert view.drain() == 4
        assert view.drain() == 0

    def test_short_stream(self):
        view = BoundedReader(io.BytesIO(b"abc"), 10)
        assert view.read() == b"abc"
        assert view.short
        assert view.exhausted
        assert view.consumed == 3

    def test_not_short_when_complete(self):
        view = BoundedReader(io.BytesIO(b"abc"), 3)
        view.drain()
        assert not view.short

    def test_stream_error_wrapped(self):
        view = BoundedReader(FailingStream(b"abcdef", fail_after=2), 6)
        assert view.read(2) == b"ab"
        with pytest.raises(StreamIOError) as exc_info:
            view.read(2)
        assert isinstance(exc_info.value.cause, OSError)

    def test_exit_does_not_drain_failed_stream(self):
        stream = FailingStream(b"abcdef", fail_after=0)
        with pytest.raises(StreamIOError):
            with BoundedReader(stream, 6) as view:
                view.read(1)
        assert view.closed

    def test_closed_stream_is_stream_error(self):
        """A stream closed by the caller mid-read surfaces as a stream failure."""
        view = BoundedReader(ClosingStream(b"abcdef", close_after=2), 6)
        assert view.read(4) == b"ab"
        with pytest.raises(StreamIOError) as exc_info:
            view.read(4)
        assert isinstance(exc_info.value.cause, ValueError)

    def test_exit_propagates_drain_failure(self):
        """A failure while draining on exit is a stream failure too."""
        stream = FailingStream(b"abcdef", fail_after=2)
        with pytest.raises(StreamIOError):
            with BoundedReader(stream, 6) as view:
                view.read(1)


class TestStreamHelpers:
    """Tests for copy_stream, NullWriter and close_quietly."""

    def test_copy_stream(self):
        sink = io.BytesIO()
        copied = copy_stream(io.BytesIO(b"a" * 1000), sink, buffer_size=64)
        assert copied == 1000
        assert sink.getvalue() == b"a" * 1000

    def test_copy_to_null_writer(self):
        assert copy_stream(io.BytesIO(b"abc"), NullWriter()) == 3

    def test_close_quietly_ignores_os_error(self):
        class _Broken:
            def close(self):
                raise OSError("already gone")

        close_quietly(_Broken())
        close_quietly(None)

    def test_close_quietly_closes(self):
        stream = TrackingStream(b"")
        close_quietly(stream)
        assert stream.close_calls == 1
        assert stream.closed
