"""
Unit tests for access log formatting.
"""

import json
import logging

import pytest

from simplehttp.access_log import AccessLogger, RequestLog


def make_entry(**overrides) -> RequestLog:
    fields = dict(
        connection_id="a1b2c3d4",
        client="127.0.0.1:51234",
        method="GET",
        path="/echo",
        status_code=200,
        bytes_written=30,
        bytes_expected=30,
        duration_ms=0.4123,
        outcome="ok",
        timestamp="18/Oct/2026:10:55:36 +0000",
    )
    fields.update(overrides)
    return RequestLog(**fields)


class TestRequestLog:

    def test_text_format(self):
        assert make_entry().to_text() == (
            '127.0.0.1:51234 - [18/Oct/2026:10:55:36 +0000] "GET /echo" 200 30/30 0.41ms ok'
        )

    def test_text_without_status_or_request(self):
        line = make_entry(method="-", path="-", status_code=None, bytes_written=0,
                          bytes_expected=0, outcome="reading-failed",
                          error="TransportError").to_text()

        assert '"- -" - 0/0' in line
        assert line.endswith("reading-failed (TransportError)")

    def test_dict_rounds_duration(self):
        data = make_entry().to_dict()
        assert data["duration_ms"] == 0.41
        assert data["status_code"] == 200
        assert data["error"] is None

    def test_timestamp_defaults_to_now(self):
        assert make_entry(timestamp="").timestamp != ""


class TestAccessLogger:

    def test_json_output(self):
        line = AccessLogger(log_format="json").format(make_entry())
        assert json.loads(line)["path"] == "/echo"

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            AccessLogger(log_format="xml")

    def test_logs_to_access_logger(self, caplog):
        with caplog.at_level(logging.INFO, logger="simplehttp.access"):
            AccessLogger().log(make_entry())

        assert [r.name for r in caplog.records] == ["simplehttp.access"]

    def test_respects_level(self, caplog):
        with caplog.at_level(logging.WARNING, logger="simplehttp.access"):
            AccessLogger().log(make_entry())

        assert caplog.records == []
