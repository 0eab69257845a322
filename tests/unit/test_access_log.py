"""
Unit tests for access log records.
"""

import json
import logging
import time

from simplehttp import access_log
from simplehttp.http import ProtocolVersion, VersionError, ok, parse_request


class TestBuildRecord:

    def test_completed_exchange(self):
        request = parse_request(b"GET /readme.txt HTTP/1.1\r\n\r\n", ("10.0.0.1", 5000))
        response = ok("hi", ProtocolVersion.V1_1, "readme.txt")

        record = access_log.build_record("abcd1234", "10.0.0.1", time.time(), request, response)

        assert record.method == "GET"
        assert record.path == "readme.txt"
        assert record.version == "HTTP/1.1"
        assert record.status_code == 200
        assert record.content_length == 2
        assert record.outcome == "ok"
        assert '"GET readme.txt HTTP/1.1" 200 2' in record.to_text()

    def test_aborted_exchange(self):
        record = access_log.build_record(
            "abcd1234", "10.0.0.1", time.time(), error=VersionError("bad"),
        )

        assert record.method == "-"
        assert record.status_code == 0
        assert record.to_text().endswith("(VersionError)")

    def test_to_dict_is_json_ready(self):
        record = access_log.build_record("abcd1234", "", time.time())
        data = json.loads(json.dumps(record.to_dict()))

        assert data["client_ip"] == "-"
        assert data["connection_id"] == "abcd1234"


class TestEmit:

    def test_text(self, caplog):
        record = access_log.build_record("abcd1234", "10.0.0.1", time.time())

        with caplog.at_level(logging.INFO, logger="simplehttp.access"):
            access_log.emit(record)

        assert caplog.records[-1].getMessage() == record.to_text()

    def test_json(self, caplog):
        record = access_log.build_record("abcd1234", "10.0.0.1", time.time())

        with caplog.at_level(logging.INFO, logger="simplehttp.access"):
            access_log.emit(record, log_format="json")

        assert json.loads(caplog.records[-1].getMessage())["client_ip"] == "10.0.0.1"
