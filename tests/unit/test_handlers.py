"""
Unit tests for the request handlers.

Handlers are called directly with a fresh sink; each test checks that
the sink ends up finalized exactly once with the expected response.
"""

import os

import pytest

from uploadserver.handlers import (
    ListingHandler,
    ShowHandler,
    UploadFormHandler,
    UploadHandler,
    listing_handler,
    show_handler,
    upload_form,
    upload_handler,
)
from uploadserver.handlers.upload import CONFIRMATION_BODY
from uploadserver.http.response import ResponseSink
from uploadserver.http.status_codes import HTTPStatus
from uploadserver.storage import UploadSlot

from conftest import make_request, multipart_request


class TestUploadForm:

    def test_serves_form(self):
        sink = ResponseSink()

        upload_form().handle(sink, make_request("/start"))

        response = sink.response
        assert response.status == HTTPStatus.OK
        assert response.content_type == "text/html"
        body = response.body.decode()
        assert 'action="/upload"' in body
        assert 'enctype="multipart/form-data"' in body
        assert 'method="post"' in body
        assert '<input type="file" name="upload" multiple="multiple">' in body
        assert 'value="Upload file"' in body

    def test_custom_field(self):
        handler = UploadFormHandler(field="picture")
        sink = ResponseSink()

        handler.handle(sink, make_request("/"))

        assert b'name="picture"' in sink.response.body

    def test_method_is_ignored(self):
        sink = ResponseSink()
        upload_form().handle(sink, make_request("/start", method="POST"))
        assert sink.response.status == HTTPStatus.OK


class TestShow:

    @pytest.mark.anyio
    async def test_missing_file_is_500(self, slot):
        sink = ResponseSink()

        await show_handler(slot).handle(sink, make_request("/show"))

        response = sink.response
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.content_type == "text/plain"
        assert str(slot.path).encode() in response.body

    @pytest.mark.anyio
    async def test_serves_slot_bytes(self, slot, png_bytes):
        slot.path.write_bytes(png_bytes)
        sink = ResponseSink()

        await ShowHandler(slot).handle(sink, make_request("/show"))

        assert sink.response.status == HTTPStatus.OK
        assert sink.response.content_type == "image/png"
        assert sink.response.body == png_bytes

    @pytest.mark.anyio
    async def test_unreadable_slot_is_500(self, tmp_path):
        # a directory where the file should be
        slot = UploadSlot(tmp_path)
        sink = ResponseSink()

        await ShowHandler(slot).handle(sink, make_request("/show"))

        assert sink.response.status == HTTPStatus.INTERNAL_SERVER_ERROR


class TestUpload:

    @pytest.mark.anyio
    async def test_stores_file_and_confirms(self, slot, tmp_path, png_bytes):
        handler = upload_handler(slot, spool_dir=str(tmp_path))
        request = multipart_request([("upload", "cat.png", "image/png", png_bytes)])
        sink = ResponseSink()

        await handler.handle(sink, request)

        response = sink.response
        assert response.status == HTTPStatus.OK
        assert response.content_type == "text/html"
        assert response.body == CONFIRMATION_BODY.encode()
        assert b"<img src='/show' />" in response.body
        assert slot.path.read_bytes() == png_bytes
        assert [name for name in os.listdir(tmp_path) if name.startswith("upload_")] == []

    @pytest.mark.anyio
    async def test_second_upload_replaces_first(self, slot, tmp_path):
        handler = UploadHandler(slot, spool_dir=str(tmp_path))

        for payload in (b"first", b"second"):
            sink = ResponseSink()
            await handler.handle(sink, multipart_request([("upload", "a.png", "image/png", payload)]))
            assert sink.response.status == HTTPStatus.OK

        assert slot.path.read_bytes() == b"second"

    @pytest.mark.anyio
    async def test_urlencoded_text(self, slot):
        request = make_request(
            "/upload", "POST",
            body=b"text=hello+world",
            content_type="application/x-www-form-urlencoded",
        )
        sink = ResponseSink()

        await UploadHandler(slot).handle(sink, request)

        assert sink.response.status == HTTPStatus.OK
        assert sink.response.content_type == "text/plain"
        assert sink.response.body == b"You've sent the text: hello world"
        assert not slot.exists()

    @pytest.mark.anyio
    async def test_form_without_expected_fields(self, slot, tmp_path):
        request = multipart_request([("comment", None, None, "no file here")])
        sink = ResponseSink()

        await UploadHandler(slot, spool_dir=str(tmp_path)).handle(sink, request)

        assert sink.response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert b"'upload'" in sink.response.body
        assert not slot.exists()

    @pytest.mark.anyio
    async def test_not_a_form(self, slot):
        request = make_request("/upload", "POST", body=b"raw bytes")
        sink = ResponseSink()

        await UploadHandler(slot).handle(sink, request)

        assert sink.response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert b"Content-Type" in sink.response.body

    @pytest.mark.anyio
    async def test_malformed_multipart(self, slot, tmp_path):
        request = multipart_request([("upload", "a.png", "image/png", b"data")], close=False)
        sink = ResponseSink()

        await UploadHandler(slot, spool_dir=str(tmp_path)).handle(sink, request)

        assert sink.response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert not slot.exists()

    @pytest.mark.anyio
    async def test_slot_failure_cleans_up(self, tmp_path):
        slot = UploadSlot(tmp_path / "missing-dir" / "test.png")
        request = multipart_request([("upload", "a.png", "image/png", b"data")])
        sink = ResponseSink()

        await UploadHandler(slot, spool_dir=str(tmp_path)).handle(sink, request)

        assert sink.response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert b"missing-dir" in sink.response.body
        assert [name for name in os.listdir(tmp_path) if name.startswith("upload_")] == []


class TestListing:

    @pytest.mark.anyio
    async def test_body_is_process_output(self):
        sink = ResponseSink()

        await listing_handler("echo hello").handle(sink, make_request("/listing"))

        assert sink.response.status == HTTPStatus.OK
        assert sink.response.content_type == "text/plain"
        assert sink.response.body == b"hello\n"

    @pytest.mark.anyio
    async def test_nonzero_exit_is_500(self):
        sink = ResponseSink()

        await ListingHandler("echo oops >&2; exit 3").handle(sink, make_request("/listing"))

        assert sink.response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert b"status 3" in sink.response.body
        assert b"oops" in sink.response.body
