"""Tests for the pre-signed archive download, gunzip and NDJSON parsing."""

import asyncio
import gzip

import httpx
import pytest

from core.archive import (
    GzipStreamDecoder,
    download_log_archive,
    fetch_presigned_gzip,
    parse_ndjson_logs,
)
from core.errors import ArchiveDownloadError
from tests.helpers import ARCHIVE_URL, gunzip, gzip_lines, log_line, stream_response


def _serve(body, status_code=200, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return stream_response(body, status_code)

    return httpx.MockTransport(handler)


class TestPresignedFetch:
    """The download must go out exactly as signed."""

    @pytest.mark.asyncio
    async def test_sends_no_headers_besides_host(self):
        seen = []
        transport = _serve(gzip_lines([log_line(1)]), seen=seen)

        await fetch_presigned_gzip(ARCHIVE_URL, transport=transport)

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "GET"
        assert list(request.headers.keys()) == ["host"]
        assert "authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_keeps_signature_query_intact(self):
        seen = []
        transport = _serve(gzip_lines([log_line(1)]), seen=seen)

        await fetch_presigned_gzip(ARCHIVE_URL, transport=transport)

        assert seen[0].url.params["X-Amz-Signature"] == "abc123"
        assert seen[0].url.path == "/org/2024/05/01/12.json.gz"

    @pytest.mark.asyncio
    async def test_returns_decompressed_payload(self):
        payload = await fetch_presigned_gzip(ARCHIVE_URL, transport=_serve(gzip.compress(b"hello\nworld")))
        assert payload == b"hello\nworld"

    @pytest.mark.asyncio
    async def test_non_200_fails(self):
        with pytest.raises(ArchiveDownloadError, match="HTTP 403: Forbidden"):
            await fetch_presigned_gzip(ARCHIVE_URL, transport=_serve(b"denied", status_code=403))

    @pytest.mark.asyncio
    async def test_times_out(self):
        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, content=b"")

        with pytest.raises(ArchiveDownloadError, match="Download timeout after 0.05 seconds"):
            await fetch_presigned_gzip(ARCHIVE_URL, timeout=0.05, transport=httpx.MockTransport(slow))

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        def broken(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ArchiveDownloadError, match="connection refused"):
            await fetch_presigned_gzip(ARCHIVE_URL, transport=httpx.MockTransport(broken))

    @pytest.mark.asyncio
    async def test_corrupt_gzip_fails(self):
        with pytest.raises(ArchiveDownloadError, match="not valid gzip"):
            await fetch_presigned_gzip(ARCHIVE_URL, transport=_serve(b"plain text, not gzip"))


class TestGunzip:

    def test_small_chunks(self):
        data = ("line\n" * 10_000).encode()
        assert gunzip(gzip.compress(data), chunk_size=512) == data

    def test_concatenated_members(self):
        data = gzip.compress(b"first\n") + gzip.compress(b"second\n")
        assert gunzip(data) == b"first\nsecond\n"

    def test_truncated_stream(self):
        data = gzip.compress(b"x" * 10_000)
        with pytest.raises(ArchiveDownloadError, match="ended before"):
            gunzip(data[: len(data) // 2])

    def test_decoder_bounds_each_block(self):
        decoder = GzipStreamDecoder(chunk_size=1024)
        blocks = list(decoder.feed(gzip.compress(b"a" * 100_000)))
        assert all(len(block) <= 1024 for block in blocks)
        assert b"".join(blocks) + decoder.finish() == b"a" * 100_000


class TestParseNdjson:

    def test_skips_malformed_line(self):
        lines = [log_line(i) for i in range(9)]
        lines.insert(4, "{this is not json")

        entries = parse_ndjson_logs("\n".join(lines))

        assert len(entries) == len(lines) - 1
        assert [e.attributes["id"] for e in entries] == [f"log-{i}" for i in range(9)]

    def test_skips_non_object_line(self):
        entries = parse_ndjson_logs("\n".join([log_line(1), "42", log_line(2)]))
        assert len(entries) == 2

    def test_limit_parses_only_leading_lines(self):
        lines = [log_line(i) for i in range(100)]
        entries = parse_ndjson_logs("\n".join(lines), limit=5)

        assert len(entries) == 5
        assert entries[-1].attributes["id"] == "log-4"

    def test_limit_larger_than_file(self):
        assert len(parse_ndjson_logs("\n".join([log_line(1), log_line(2)]), limit=50)) == 2

    def test_trailing_newline_and_empty_text(self):
        assert len(parse_ndjson_logs(log_line(1) + "\n")) == 1
        assert parse_ndjson_logs("   \n") == []


@pytest.mark.asyncio
async def test_download_log_archive_end_to_end():
    lines = [log_line(i, severity="ERROR" if i % 10 == 0 else "INFO") for i in range(100)]
    transport = _serve(gzip_lines(lines))

    entries = await download_log_archive(ARCHIVE_URL, limit=5, transport=transport)

    assert len(entries) == 5
    assert entries[0].level == "error"
    assert entries[0].source == "web-01"
