"""
Tests for services/drive_requests.py - query strings, export/open tables, multipart bodies
"""

import base64
import json

import pytest

from services.drive_requests import (
    LIST_FIELDS,
    MULTIPART_BOUNDARY,
    build_list_params,
    build_list_query,
    build_multipart_body,
    export_target,
    exported_name,
    workspace_urls,
)


class TestListQuery:
    """Tests for the Drive `q` expression."""

    def test_no_filters(self):
        assert build_list_query() == "trashed = false"

    def test_folder_only(self):
        assert build_list_query(folder_id="F") == "'F' in parents and trashed = false"

    def test_query_only(self):
        assert build_list_query(query="Q") == "name contains 'Q' and trashed = false"

    def test_folder_and_query_in_fixed_order(self):
        assert (
            build_list_query(folder_id="F", query="Q")
            == "'F' in parents and name contains 'Q' and trashed = false"
        )

    def test_empty_strings_are_ignored(self):
        assert build_list_query(folder_id="", query="") == "trashed = false"

    def test_single_quote_is_escaped(self):
        """A quote in the search text cannot close the string literal."""
        q = build_list_query(query="x' or name contains '")
        assert q == "name contains 'x\\' or name contains \\'' and trashed = false"

    def test_backslash_is_escaped(self):
        assert build_list_query(folder_id="a\\b") == "'a\\\\b' in parents and trashed = false"


class TestListParams:
    """Tests for list request parameters."""

    def test_defaults(self):
        params = build_list_params()
        assert params == {
            "q": "trashed = false",
            "pageSize": "100",
            "fields": LIST_FIELDS,
            "orderBy": "modifiedTime desc",
        }

    def test_page_token_included_when_given(self):
        params = build_list_params(page_size=10, page_token="tok")
        assert params["pageToken"] == "tok"
        assert params["pageSize"] == "10"

    @pytest.mark.parametrize("size", [0, 1001, -5])
    def test_page_size_out_of_range(self, size):
        with pytest.raises(ValueError):
            build_list_params(page_size=size)

    @pytest.mark.parametrize("size", [1, 1000])
    def test_page_size_bounds_inclusive(self, size):
        assert build_list_params(page_size=size)["pageSize"] == str(size)


class TestWorkspaceTables:
    """Tests for export and open-URL mappings."""

    def test_document_exports_to_docx(self):
        assert export_target("application/vnd.google-apps.document") == (
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            ".docx",
        )

    def test_drawing_exports_to_png(self):
        assert export_target("application/vnd.google-apps.drawing") == ("image/png", ".png")

    def test_regular_file_has_no_export(self):
        assert export_target("application/pdf") is None

    def test_exported_name_appends_extension_once(self):
        assert exported_name("Report", ".docx") == "Report.docx"
        assert exported_name("Report.docx", ".docx") == "Report.docx"

    def test_spreadsheet_urls(self):
        assert workspace_urls("abc", "application/vnd.google-apps.spreadsheet") == (
            "spreadsheets",
            "https://docs.google.com/spreadsheets/d/abc/edit",
            "https://docs.google.com/spreadsheets/d/abc/view",
        )

    def test_jamboard_segment(self):
        segment, _, _ = workspace_urls("j1", "application/vnd.google-apps.jam")
        assert segment == "jamboard"

    def test_non_workspace_has_no_urls(self):
        assert workspace_urls("abc", "text/plain") is None


class TestMultipartBody:
    """Tests for the multipart/related upload body."""

    def _parts(self, body: bytes, boundary: str = MULTIPART_BOUNDARY):
        text = body.decode("utf-8")
        assert text.startswith(f"\r\n--{boundary}\r\n")
        assert text.endswith(f"\r\n--{boundary}--")
        inner = text[len(f"\r\n--{boundary}\r\n"):-len(f"\r\n--{boundary}--")]
        return inner.split(f"\r\n--{boundary}\r\n")

    def test_header_boundary_matches_body(self):
        content_type, body = build_multipart_body("a.txt", "text/plain", b"hi")
        assert content_type == f'multipart/related; boundary="{MULTIPART_BOUNDARY}"'
        assert len(self._parts(body)) == 2

    def test_metadata_part_without_parent(self):
        _, body = build_multipart_body("a.txt", "text/plain", b"hi")
        headers, payload = self._parts(body)[0].split("\r\n\r\n", 1)
        assert headers.startswith("Content-Type: application/json")
        assert json.loads(payload) == {"name": "a.txt", "mimeType": "text/plain"}

    def test_metadata_part_with_parent(self):
        _, body = build_multipart_body("a.txt", "text/plain", b"hi", parent_id="folder-1")
        _, payload = self._parts(body)[0].split("\r\n\r\n", 1)
        assert json.loads(payload)["parents"] == ["folder-1"]

    def test_content_part_is_base64(self):
        raw = bytes(range(256))
        _, body = build_multipart_body("b.bin", "application/octet-stream", raw)
        headers, payload = self._parts(body)[1].split("\r\n\r\n", 1)
        assert "Content-Type: application/octet-stream" in headers
        assert "Content-Transfer-Encoding: base64" in headers
        assert base64.b64decode(payload) == raw

    def test_custom_boundary(self):
        content_type, body = build_multipart_body("a", "text/plain", b"x", boundary="XYZ")
        assert content_type.endswith('boundary="XYZ"')
        assert len(self._parts(body, "XYZ")) == 2
