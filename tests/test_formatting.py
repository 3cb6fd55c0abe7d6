"""Tests for the text the agent receives."""

import json
import re
from datetime import datetime, timezone

from core.models import LogArchive, LogEntry, MetricSample, TraceSpan
from tools.formatting import (
    NO_LOGS_MESSAGE,
    format_archive_download,
    format_log_archives,
    format_log_search,
    to_json_text,
)

WHEN = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _entry(level="info", message="all good", source="web-01", **attributes):
    return LogEntry(timestamp=WHEN, level=level, message=message, source=source, attributes=attributes)


def _summary_counts(text):
    match = re.search(r"Showing 10 of (\d+) total logs\. Log levels: (.*)$", text)
    assert match, text
    counts = {lvl: int(n) for lvl, n in re.findall(r"(\w+)\((\d+)\)", match.group(2))}
    return int(match.group(1)), counts


class TestJsonText:

    def test_camel_case_and_iso_dates(self):
        span = TraceSpan(trace_id="t-1", span_id="s-1", operation_name="GET /", service_name="web",
                         duration=5, start_time=WHEN)
        data = json.loads(to_json_text([span]))

        assert data == [{
            "traceId": "t-1",
            "spanId": "s-1",
            "operationName": "GET /",
            "serviceName": "web",
            "duration": 5,
            "startTime": "2024-05-01T12:00:00.000Z",
        }]

    def test_indented(self):
        text = to_json_text([MetricSample(name="cpu", value=1, timestamp=WHEN)])
        assert text.startswith("[\n  {\n    ")


class TestSearchLogs:

    def test_no_logs(self):
        assert format_log_search([]) == NO_LOGS_MESSAGE

    def test_digest_when_no_errors(self):
        logs = [_entry(message=f"request {i}") for i in range(7)]
        text = format_log_search(logs)

        assert text.startswith("Found 7 logs matching query. Most recent logs:")
        assert "[5] 2024-05-01T12:00:00.000Z - info - web-01" in text
        assert "[6]" not in text
        assert "Showing" not in text

    def test_digest_truncates_messages(self):
        text = format_log_search([_entry(message="m" * 250)])
        assert "m" * 200 + "...\n" in text
        assert "m" * 201 not in text

    def test_errors_reported_first(self):
        logs = [
            _entry(message="fine"),
            _entry(level="error", message="boom", stacktrace="at main()", user="bob"),
            _entry(message="NullPointerException thrown"),
            _entry(level="warn", message="retrying after Error"),
        ]
        text = format_log_search(logs)

        assert text.startswith("Found 3 exception/error logs:")
        assert "[1] 2024-05-01T12:00:00.000Z\nLevel: error\nSource: web-01\nMessage: boom\n" in text
        assert 'Key attributes: {\n  "stacktrace": "at main()"\n}' in text
        assert "user" not in text
        assert "Message: fine" not in text
        assert text.count("\n---\n") == 3

    def test_error_message_and_attributes_truncated(self):
        entry = _entry(level="error", message="e" * 600, exception="x" * 1000)
        text = format_log_search([entry])

        assert "Message: " + "e" * 500 + "...\n" in text
        key_line = text.split("Key attributes: ", 1)[1].split("\n\n---", 1)[0]
        assert len(key_line) == 300

    def test_at_most_three_key_attributes(self):
        entry = _entry(level="error", message="boom",
                       error_code="E1", exception_type="IOError", stacktrace="...", trace_id="t-1")
        text = format_log_search([entry])

        assert "error_code" in text
        assert "exception_type" in text
        assert "stacktrace" in text
        assert "trace_id" not in text

    def test_only_displayed_entries_are_scanned_for_errors(self):
        logs = [_entry() for _ in range(10)] + [_entry(level="error", message="late failure")]
        text = format_log_search(logs)

        assert text.startswith("Found 11 logs matching query.")
        assert "late failure" not in text

    def test_summary_total_and_breakdown(self):
        levels = ["info"] * 20 + ["error"] * 3 + ["debug"] * 7
        logs = [_entry(level=lvl, message="x") for lvl in levels]

        total, counts = _summary_counts(format_log_search(logs))

        assert total == len(logs)
        assert sum(counts.values()) == len(logs)
        assert counts == {"info": 20, "error": 3, "debug": 7}

    def test_no_summary_at_exactly_ten(self):
        assert "Showing" not in format_log_search([_entry() for _ in range(10)])


class TestLogArchives:

    def test_listing(self):
        archive = LogArchive(
            id="arc-1",
            name="2024-05-01-12.json.gz",
            download_url="https://archives.example.test/a.gz?sig=1",
            archived_timestamp="1714564800",
            archive_size=2097152,
        )
        text = format_log_archives([archive])

        assert text == (
            "Found 1 log archive(s) for the specified time range:\n\n"
            "[1] 2024-05-01-12.json.gz\n"
            "  Size: 2.00 MB\n"
            "  Archived: 2024-05-01T12:00:00.000Z\n"
            "  Archive ID: arc-1\n"
            "  Download URL: https://archives.example.test/a.gz?sig=1"
        )

    def test_empty(self):
        assert format_log_archives([]) == "Found 0 log archive(s) for the specified time range:\n\n"

    def test_bad_timestamp_is_shown_raw(self):
        archive = LogArchive(id="a", name="n", download_url="u", archived_timestamp="soon", archive_size=0)
        assert "Archived: soon" in format_log_archives([archive])


class TestArchiveDownload:

    def test_capped_by_limit(self):
        logs = [_entry(level="error" if i < 2 else "info", message=f"line {i}") for i in range(5)]
        text = format_archive_download(logs, limit=5)

        assert text.startswith("Successfully downloaded and decompressed archive. Total entries: 5\n")
        assert "(limited to first 5 entries)" in text
        assert "Showing first 5 entries:" in text
        assert text.endswith("Log level distribution: error(2), info(3)")

    def test_without_limit_shows_ten(self):
        logs = [_entry(message="y" * 400) for _ in range(25)]
        text = format_archive_download(logs)

        assert "limited" not in text
        assert "Showing first 10 entries:" in text
        assert "[10]" in text and "[11]" not in text
        assert "y" * 300 + "..." in text
        assert text.endswith("Log level distribution: info(25)")
