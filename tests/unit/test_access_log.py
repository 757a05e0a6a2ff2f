"""
Unit tests for the access log.
"""

import json
import logging
import time

from uploadserver.core.access_log import AccessLog
from uploadserver.http.response import HTTPResponse, error_response
from uploadserver.http.status_codes import HTTPStatus

from conftest import make_request


class TestAccessLog:

    def test_entry_from_request(self):
        response = HTTPResponse(status=HTTPStatus.OK, body=b"12345")

        entry = AccessLog().entry(response, time.time(), request=make_request("/show"))

        assert entry.method == "GET"
        assert entry.path == "/show"
        assert entry.client_ip == "127.0.0.1"
        assert entry.status_code == 200
        assert entry.content_length == 5
        assert len(entry.request_id) == 8

    def test_entry_without_request(self):
        response = error_response(400, "Invalid request line\n")

        entry = AccessLog().entry(response, time.time(), client_address=("10.1.2.3", 999))

        assert entry.method == "-"
        assert entry.path == "-"
        assert entry.client_ip == "10.1.2.3"

    def test_text_format(self, caplog):
        caplog.set_level(logging.INFO, logger="uploadserver.access")

        AccessLog("text").record(HTTPResponse(body=b"ok"), time.time(), request=make_request("/start"))

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert '"GET /start" 200 2' in record.getMessage()

    def test_json_format(self, caplog):
        caplog.set_level(logging.INFO, logger="uploadserver.access")

        AccessLog("json").record(HTTPResponse(), time.time(), request=make_request("/show"))

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["path"] == "/show"
        assert payload["status_code"] == 200

    def test_errors_logged_as_warning(self, caplog):
        caplog.set_level(logging.INFO, logger="uploadserver.access")

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND, body=b"404 Not found")
        AccessLog().record(response, time.time(), request=make_request("/nonexistent"))

        assert caplog.records[-1].levelno == logging.WARNING
