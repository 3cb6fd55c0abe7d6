"""Builders for fake upstream payloads."""

import gzip
import json

import httpx

from core.archive import CHUNK_SIZE, GzipStreamDecoder

API_URL = "https://api.example.test"
ARCHIVE_URL = (
    "https://archives.example.test/org/2024/05/01/12.json.gz"
    "?X-Amz-Algorithm=AWS4-HMAC-SHA256&X-Amz-Signature=abc123"
)


def gzip_lines(lines):
    """Gzip newline-joined lines the way hourly archives are stored."""
    return gzip.compress("\n".join(lines).encode("utf-8"))


def log_line(index, severity="INFO", message=None, **extra):
    record = {
        "id": f"log-{index}",
        "time": f"2024-05-01T12:{index % 60:02d}:00Z",
        "severity": severity,
        "message": message or f"request {index} handled",
        "hostname": "web-01",
        "program": "nginx",
    }
    record.update(extra)
    return json.dumps(record)


def stream_response(body, status_code=200):
    """A response whose body is left unread, as a real socket would deliver it."""
    return httpx.Response(status_code, stream=httpx.ByteStream(body))


def gunzip(data, chunk_size=CHUNK_SIZE):
    """Run a complete gzip payload through GzipStreamDecoder in fixed chunks."""
    decoder = GzipStreamDecoder(chunk_size)
    blocks = []
    for offset in range(0, len(data), chunk_size):
        blocks.extend(decoder.feed(data[offset:offset + chunk_size]))
    blocks.append(decoder.finish())
    return b"".join(blocks)
