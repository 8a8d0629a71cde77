"""Unit tests for statement content decoding."""

import base64

import httpx
import pytest

from passbook.domain.banking.exceptions import (
    EmptyDocumentError,
    UnexpectedContentTypeError,
    UpstreamError,
)
from passbook.infrastructure.banking.content_decoder import (
    DocumentPolicy,
    decode_base64,
    decode_binary_response,
    decode_graphql_field,
    decode_json_field,
)
from tests.shared.fixtures import PDF_BASE64, PDF_BYTES


class TestDocumentPolicy:
    """The size and type checks are joint."""

    def test_small_pdf_accepted(self):
        """Small genuine documents pass on their declared type."""
        DocumentPolicy(min_plausible_size=100_000).validate(b"x" * 10, "application/pdf")

    def test_small_sniffed_pdf_accepted(self):
        """A PDF signature counts even when mislabelled."""
        DocumentPolicy(min_plausible_size=100_000).validate(PDF_BYTES, "application/octet-stream")

    def test_large_mislabelled_accepted(self):
        """Large bodies pass whatever their declared type."""
        DocumentPolicy(min_plausible_size=1024).validate(b"x" * 2048, "text/html")

    def test_small_non_document_rejected(self):
        with pytest.raises(UnexpectedContentTypeError) as exc_info:
            DocumentPolicy(min_plausible_size=1024).validate(b"<html>error</html>", "text/html")

        assert exc_info.value.content_type == "text/html"
        assert exc_info.value.size == len(b"<html>error</html>")

    def test_empty_rejected(self):
        with pytest.raises(EmptyDocumentError):
            DocumentPolicy().validate(b"", "application/pdf")


class TestDecodeBinaryResponse:
    """Raw response bodies."""

    def test_passes_body_through(self):
        response = httpx.Response(
            200,
            content=PDF_BYTES,
            headers={"content-type": "application/pdf; charset=binary"},
        )

        content = decode_binary_response(response)

        assert content.data == PDF_BYTES
        assert content.mime_type == "application/pdf"

    def test_html_error_page_rejected(self):
        response = httpx.Response(200, text="<html>session expired</html>")

        with pytest.raises(UnexpectedContentTypeError):
            decode_binary_response(response)

    def test_missing_content_type_defaults_to_pdf(self):
        response = httpx.Response(200, content=PDF_BYTES)

        assert decode_binary_response(response).mime_type == "application/pdf"


class TestDecodeBase64:
    """JSON and GraphQL fields share the base64 path."""

    def test_json_and_graphql_yield_identical_bytes(self):
        """Both encodings of the same document decode to equal content."""
        from_json = decode_json_field({"document": {"content": PDF_BASE64}})
        from_graphql = decode_graphql_field(
            {"checkingAccountStatement": {"content": PDF_BASE64}},
            "checkingAccountStatement",
        )

        assert from_json.data == from_graphql.data == PDF_BYTES
        assert from_json.mime_type == from_graphql.mime_type == "application/pdf"

    def test_nested_operation_and_named_field(self):
        data = {"getStatement": {"statement": {"pageContent": PDF_BASE64}}}

        content = decode_graphql_field(data, "getStatement.statement", field="pageContent")

        assert content.data == PDF_BYTES

    def test_json_mime_type_carried(self):
        payload = {"document": {"content": PDF_BASE64, "mimeType": "application/pdf"}}

        assert decode_json_field(payload).mime_type == "application/pdf"

    def test_malformed_base64_is_upstream(self):
        with pytest.raises(UpstreamError, match="not valid base64"):
            decode_base64("%%%not-base64%%%")

    def test_non_string_is_upstream(self):
        with pytest.raises(UpstreamError):
            decode_base64(12345)

    def test_empty_content(self):
        with pytest.raises(EmptyDocumentError):
            decode_json_field({"document": {"content": ""}})

    def test_missing_field_is_upstream(self):
        with pytest.raises(UpstreamError) as exc_info:
            decode_json_field({"status": {"severity": "SUCCESS"}})

        assert exc_info.value.reason == "missing field: document.content"

    def test_missing_graphql_field_is_upstream(self):
        with pytest.raises(UpstreamError):
            decode_graphql_field({"checkingAccountStatement": None}, "checkingAccountStatement")

    def test_decoded_non_document_rejected(self):
        encoded = base64.b64encode(b"<html>oops</html>").decode()

        with pytest.raises(UnexpectedContentTypeError):
            decode_base64(encoded, mime_type="text/html")
