"""Tests for the JSONL result sink."""

import json
from datetime import datetime

import pytest

from crawlerd.errors import SinkError
from crawlerd.sink import ResultSink


class TestResultSink:
    """Test cases for ResultSink."""

    @pytest.mark.asyncio
    async def test_append_creates_parent_and_writes_lines(self, tmp_path):
        path = tmp_path / "nested" / "results.jsonl"
        sink = ResultSink(path)

        await sink.append({"event": "result", "ok": True})
        await sink.append({"event": "failed", "ok": False})

        lines = path.read_text().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["result", "failed"]

    @pytest.mark.asyncio
    async def test_datetimes_serialized_as_iso(self, tmp_path):
        sink = ResultSink(tmp_path / "r.jsonl")
        await sink.append({"ts": datetime(2024, 1, 2, 3, 4, 5)})

        assert sink.tail(1) == [{"ts": "2024-01-02T03:04:05"}]

    @pytest.mark.asyncio
    async def test_unwritable_path_raises_sink_error(self, tmp_path):
        # The target is a directory, so opening it for append fails
        sink = ResultSink(tmp_path)

        with pytest.raises(SinkError):
            await sink.append({"event": "result"})

    @pytest.mark.asyncio
    async def test_unserializable_record_raises_sink_error(self, tmp_path):
        sink = ResultSink(tmp_path / "r.jsonl")

        with pytest.raises(SinkError):
            await sink.append({"bad": object()})

    def test_tail_returns_last_records_and_raw_lines(self, tmp_path):
        path = tmp_path / "r.jsonl"
        path.write_text('{"n": 1}\n{"n": 2}\nnot json\n\n{"n": 3}\n')

        assert ResultSink(path).tail(3) == [{"n": 2}, "not json", {"n": 3}]
        assert ResultSink(path).tail(0) == []

    def test_tail_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ResultSink(tmp_path / "missing.jsonl").tail()
