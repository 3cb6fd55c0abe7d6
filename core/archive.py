# =============================================================================
# core/archive.py  -  Log archive download, decompression & parsing
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Log archives are hourly gzip files of newline-delimited JSON, stored in
#   object storage and handed out as pre-signed, time-limited URLs.  This
#   module fetches one, gunzips it as it streams in, and parses each line
#   into a LogEntry.
#
# THE ZERO-HEADER RULE:
#   The URL's query string carries its own signature.  Adding ANY header
#   (Authorization, Content-Type, a client-wide User-Agent...) can make the
#   storage service reject the request.  So the request is built by hand as
#   a bare httpx.Request and pushed through AsyncClient.send(), which skips
#   the client's default headers, auth and cookies.  Only the Host header
#   (required by HTTP/1.1) goes out.  This is NOT the
#   authenticated client from core/client.py.
#
# FAULT TOLERANCE:
#   One bad line never sinks the batch.  It is logged and skipped.
#
# MEMORY:
#   Compressed bytes are decompressed chunk by chunk as they arrive.  The
#   decompressed text is still held in full before it is split into lines.
# =============================================================================

import asyncio
import json
import logging
import zlib
from typing import Iterator, Optional

import httpx

from core.errors import ArchiveDownloadError
from core.log_entries import normalize_log_entry
from core.models import LogEntry

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
GZIP_WBITS = 16 + zlib.MAX_WBITS          # Expect a gzip header and trailer


class GzipStreamDecoder:
    """Incremental gunzip with bounded output per step.

    Handles archives made of several concatenated gzip members.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self._chunk_size = chunk_size
        self._decompressor = zlib.decompressobj(GZIP_WBITS)
        self.bytes_in = 0

    def feed(self, data: bytes) -> Iterator[bytes]:
        self.bytes_in += len(data)
        try:
            while data:
                if self._decompressor.eof:
                    self._decompressor = zlib.decompressobj(GZIP_WBITS)
                block = self._decompressor.decompress(data, self._chunk_size)
                if block:
                    yield block
                if self._decompressor.eof:
                    data = self._decompressor.unused_data
                else:
                    data = self._decompressor.unconsumed_tail
        except zlib.error as exc:
            raise ArchiveDownloadError(f"Archive is not valid gzip data: {exc}") from exc

    def finish(self) -> bytes:
        try:
            tail = self._decompressor.flush()
        except zlib.error as exc:
            raise ArchiveDownloadError(f"Archive is not valid gzip data: {exc}") from exc
        if not self._decompressor.eof:
            raise ArchiveDownloadError("Archive ended before the gzip stream was complete")
        return tail


async def _stream_and_decompress(
    url: str,
    transport: Optional[httpx.AsyncBaseTransport],
) -> bytes:
    decoder = GzipStreamDecoder()
    blocks: list[bytes] = []

    # No headers, no auth, no cookies: see THE ZERO-HEADER RULE above.
    request = httpx.Request("GET", url)
    async with httpx.AsyncClient(transport=transport, timeout=None) as client:
        response = await client.send(request, stream=True)
        try:
            logger.debug("Archive response: %s %s", response.status_code, response.reason_phrase)
            if response.status_code != 200:
                raise ArchiveDownloadError(
                    f"HTTP {response.status_code}: {response.reason_phrase}"
                )
            # aiter_raw: the gzip body must reach us untouched even when the
            # object was stored with Content-Encoding: gzip.
            async for chunk in response.aiter_raw(CHUNK_SIZE):
                blocks.extend(decoder.feed(chunk))
        finally:
            await response.aclose()

    blocks.append(decoder.finish())
    logger.info("Downloaded archive, size: %d bytes", decoder.bytes_in)
    return b"".join(blocks)


async def fetch_presigned_gzip(
    url: str,
    timeout: float = 120.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bytes:
    """GET a pre-signed URL with zero added headers and gunzip the body.

    The whole exchange (connect, headers, body) must finish within
    ``timeout`` seconds, after which it is cancelled.

    Raises:
        ArchiveDownloadError: on timeout, non-200 status, transport failure
                              or corrupt gzip data.
    """
    logger.info("Downloading archive from: %s...", url[:100])
    try:
        return await asyncio.wait_for(_stream_and_decompress(url, transport), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ArchiveDownloadError(f"Download timeout after {timeout:g} seconds") from exc
    except httpx.HTTPError as exc:
        raise ArchiveDownloadError(str(exc) or type(exc).__name__) from exc


def parse_ndjson_logs(text: str, limit: Optional[int] = None) -> list[LogEntry]:
    """Parse newline-delimited JSON log records.

    With ``limit`` only the first ``limit`` lines are split off and parsed;
    the rest of the text is left alone.
    """
    text = text.strip()
    if not text:
        return []

    if limit:
        lines = text.split("\n", limit)[:limit]
    else:
        lines = text.split("\n")

    entries: list[LogEntry] = []
    for index, line in enumerate(lines):
        try:
            entries.append(normalize_log_entry(json.loads(line)))
        except (ValueError, TypeError) as exc:
            logger.warning("Failed to parse log entry %d: %s", index, exc)

    logger.info("Successfully parsed %d of %d log entries", len(entries), len(lines))
    return entries


async def download_log_archive(
    url: str,
    limit: Optional[int] = None,
    timeout: float = 120.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[LogEntry]:
    """Fetch, decompress and parse one log archive."""
    payload = await fetch_presigned_gzip(url, timeout=timeout, transport=transport)
    text = payload.decode("utf-8", errors="replace")
    logger.info("Decompressed size: %d bytes", len(payload))
    return parse_ndjson_logs(text, limit)
