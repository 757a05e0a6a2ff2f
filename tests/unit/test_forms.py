"""
Unit tests for form body parsing.
"""

import os

import pytest

from uploadserver.errors import FormParseError
from uploadserver.http.forms import parse_form
from uploadserver.http.request import BodyStream, HTTPParseError

from conftest import BOUNDARY, make_request, multipart_body, multipart_request


def spooled(directory) -> list[str]:
    return sorted(name for name in os.listdir(directory) if name.startswith("upload_"))


class TestMultipart:
    """multipart/form-data bodies."""

    @pytest.mark.anyio
    async def test_file_part_is_spooled(self, tmp_path, png_bytes):
        request = multipart_request([("upload", "cat.png", "image/png", png_bytes)])

        form = await parse_form(request, str(tmp_path))

        upload = form.file("upload")
        assert upload.filename == "cat.png"
        assert upload.content_type == "image/png"
        assert upload.size == len(png_bytes)
        assert os.path.dirname(upload.path) == str(tmp_path)
        assert await upload.read() == png_bytes
        await form.aclose()

    @pytest.mark.anyio
    async def test_small_chunks(self, tmp_path, png_bytes):
        # headers and data split across many parser.write() calls
        request = multipart_request(
            [("text", None, None, "hello"), ("upload", "cat.png", "image/png", png_bytes)],
            chunk_size=3,
        )

        form = await parse_form(request, str(tmp_path))

        assert form["text"] == "hello"
        assert await form.file("upload").read() == png_bytes
        await form.aclose()

    @pytest.mark.anyio
    async def test_text_fields(self, tmp_path):
        request = multipart_request([
            ("text", None, None, "first"),
            ("text", None, None, "second"),
            ("comment", None, None, "café"),
        ])

        form = await parse_form(request, str(tmp_path))

        assert form["text"] == "first"
        assert form.get_list("text") == ["first", "second"]
        assert form["comment"] == "café"
        assert form.files == {}

    @pytest.mark.anyio
    async def test_empty_file_input_is_ignored(self, tmp_path):
        request = multipart_request([("upload", "", "application/octet-stream", b"")])

        form = await parse_form(request, str(tmp_path))

        assert form.file("upload") is None
        assert "upload" not in form
        assert spooled(tmp_path) == []

    @pytest.mark.anyio
    async def test_last_file_wins_for_multiple_input(self, tmp_path):
        request = multipart_request([
            ("upload", "a.png", "image/png", b"first"),
            ("upload", "b.png", "image/png", b"second"),
        ])

        form = await parse_form(request, str(tmp_path))

        assert len(form.files["upload"]) == 2
        assert form.file("upload").filename == "b.png"
        assert await form.file("upload").read() == b"second"
        await form.aclose()

    @pytest.mark.anyio
    async def test_aclose_removes_temp_files(self, tmp_path):
        request = multipart_request([
            ("upload", "a.png", "image/png", b"first"),
            ("upload", "b.png", "image/png", b"second"),
        ])
        form = await parse_form(request, str(tmp_path))
        assert len(spooled(tmp_path)) == 2

        await form.aclose()

        assert spooled(tmp_path) == []

    @pytest.mark.anyio
    async def test_missing_closing_boundary(self, tmp_path):
        request = multipart_request([("upload", "a.png", "image/png", b"data")], close=False)

        with pytest.raises(FormParseError, match="closing boundary"):
            await parse_form(request, str(tmp_path))

        assert spooled(tmp_path) == []

    @pytest.mark.anyio
    async def test_missing_boundary_parameter(self, tmp_path):
        request = make_request(
            "/upload", "POST",
            body=multipart_body([("text", None, None, "x")]),
            content_type="multipart/form-data",
        )

        with pytest.raises(FormParseError, match="boundary"):
            await parse_form(request, str(tmp_path))

    @pytest.mark.anyio
    async def test_part_without_disposition(self, tmp_path):
        body = (
            b"--b\r\n"
            b"Content-Type: text/plain\r\n"
            b"\r\n"
            b"orphan\r\n"
            b"--b--\r\n"
        )
        request = make_request("/upload", "POST", body=body,
                               content_type="multipart/form-data; boundary=b")

        with pytest.raises(FormParseError, match="Content-Disposition"):
            await parse_form(request, str(tmp_path))

    @pytest.mark.anyio
    async def test_truncated_body(self, tmp_path):
        body = multipart_body([("upload", "a.png", "image/png", b"x" * 100)])
        # client hangs up inside the file data
        pending = [body[:-60]]

        async def receive(max_bytes):
            return pending.pop() if pending else b""

        request = make_request("/upload", "POST",
                               content_type=f"multipart/form-data; boundary={BOUNDARY}")
        request.body = BodyStream(receive, length=len(body))

        with pytest.raises(HTTPParseError, match="Incomplete body"):
            await parse_form(request, str(tmp_path))

        assert spooled(tmp_path) == []


class TestUrlencoded:

    @pytest.mark.anyio
    async def test_text_field(self):
        request = make_request(
            "/upload", "POST",
            body=b"text=hello+world&empty=",
            content_type="application/x-www-form-urlencoded",
        )

        form = await parse_form(request)

        assert form["text"] == "hello world"
        assert form["empty"] == ""
        assert form.file("upload") is None

    @pytest.mark.anyio
    async def test_content_type_parameters_ignored(self):
        request = make_request(
            "/upload", "POST",
            body=b"text=hi",
            content_type="application/x-www-form-urlencoded; charset=UTF-8",
        )

        form = await parse_form(request)
        assert form["text"] == "hi"


class TestUnsupported:

    @pytest.mark.anyio
    async def test_no_content_type(self):
        with pytest.raises(FormParseError, match="no Content-Type"):
            await parse_form(make_request("/upload", "POST", body=b"raw"))

    @pytest.mark.anyio
    async def test_other_content_type(self):
        request = make_request("/upload", "POST", body=b"{}", content_type="application/json")
        with pytest.raises(FormParseError, match="Unsupported"):
            await parse_form(request)
