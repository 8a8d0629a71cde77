"""Statement content decoding and validation.

Banks deliver documents three ways, all converging on BinaryContent:

(a) the response body already is the document
(b) a JSON body carries base64 under ``document.content`` (or similar)
(c) a GraphQL body carries base64 under ``data.<operation>.content``
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from passbook.domain.banking.exceptions import (
    EmptyDocumentError,
    UnexpectedContentTypeError,
    UpstreamError,
)
from passbook.domain.banking.value_objects import BinaryContent
from passbook.domain.banking.value_objects.binary_content import PDF_MAGIC

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


@dataclass(frozen=True)
class DocumentPolicy:
    """Validation thresholds for downloaded documents.

    A response is rejected as not-a-document only when it is smaller than
    ``min_plausible_size`` AND neither its declared nor its sniffed type is
    a document type. Small genuine documents and large mislabelled ones
    both pass.
    """

    min_plausible_size: int = 1024
    document_markers: tuple[str, ...] = ("pdf",)

    def is_document_type(self, content_type: str | None, data: bytes) -> bool:
        declared = (content_type or "").lower()
        if any(marker in declared for marker in self.document_markers):
            return True
        return data.startswith(PDF_MAGIC)

    def validate(
        self,
        data: bytes,
        content_type: str | None,
        statement_id: str | None = None,
    ) -> None:
        if not data:
            raise EmptyDocumentError(statement_id)
        if len(data) < self.min_plausible_size and not self.is_document_type(
            content_type,
            data,
        ):
            raise UnexpectedContentTypeError(content_type or "", len(data))


DEFAULT_POLICY = DocumentPolicy()


def decode_binary_response(
    response: httpx.Response,
    policy: DocumentPolicy = DEFAULT_POLICY,
    statement_id: str | None = None,
) -> BinaryContent:
    """Pass a raw response body through as the document."""
    content_type = response.headers.get("content-type", "")
    data = response.content
    policy.validate(data, content_type, statement_id)

    mime_type = content_type.split(";")[0].strip() or PDF_MIME_TYPE
    if not policy.is_document_type(content_type, data):
        logger.warning("Expected a document but got content type: %s", content_type)
    return BinaryContent(data=data, mime_type=mime_type)


def decode_base64(
    encoded: Any,
    mime_type: str = PDF_MIME_TYPE,
    policy: DocumentPolicy = DEFAULT_POLICY,
    statement_id: str | None = None,
) -> BinaryContent:
    """Decode a base64 payload into validated content."""
    if encoded is None or encoded == "":
        raise EmptyDocumentError(statement_id)
    if not isinstance(encoded, str):
        msg = "Document content is not a base64 string"
        raise UpstreamError(msg, reason=f"content has type {type(encoded).__name__}")

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        msg = "Document content is not valid base64"
        raise UpstreamError(msg, reason=str(e)) from e

    policy.validate(data, mime_type, statement_id)
    return BinaryContent(data=data, mime_type=mime_type or PDF_MIME_TYPE)


def decode_json_field(
    payload: Any,
    container: str = "document",
    field: str = "content",
    policy: DocumentPolicy = DEFAULT_POLICY,
    statement_id: str | None = None,
) -> BinaryContent:
    """Decode base64 nested under ``<container>.<field>`` of a JSON body."""
    node = payload.get(container) if isinstance(payload, dict) else None
    if not isinstance(node, dict) or field not in node:
        msg = f"Response has no {container}.{field} member"
        raise UpstreamError(msg, reason=f"missing field: {container}.{field}")

    mime_type = node.get("mimeType") or node.get("contentType") or PDF_MIME_TYPE
    return decode_base64(node[field], mime_type, policy, statement_id)


def decode_graphql_field(
    data: Any,
    operation: str,
    field: str = "content",
    policy: DocumentPolicy = DEFAULT_POLICY,
    statement_id: str | None = None,
) -> BinaryContent:
    """Decode base64 nested under ``data.<operation>.<field>``.

    ``data`` is the GraphQL ``data`` member. A dotted ``operation`` walks
    deeper (``getStatement.statement``).
    """
    node = data
    for part in operation.split("."):
        node = node.get(part) if isinstance(node, dict) else None
    if not isinstance(node, dict) or field not in node:
        msg = f"GraphQL response has no {operation}.{field} member"
        raise UpstreamError(msg, reason=f"missing field: {operation}.{field}")

    mime_type = node.get("contentType") or PDF_MIME_TYPE
    return decode_base64(node[field], mime_type, policy, statement_id)
