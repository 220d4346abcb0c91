"""Tests for local document storage."""

import pytest

from conftest import make_document
from loan_review.services.review.domain import Document
from loan_review.services.review.errors import InvalidStateError, NotFoundError
from loan_review.services.review.storage import LocalDocumentStorage


class TestLocalDocumentStorage:

    @pytest.mark.asyncio
    async def test_download(self, tmp_path):
        (tmp_path / "1").mkdir()
        (tmp_path / "1" / "ine_front.jpg").write_bytes(b"\xff\xd8jpeg")
        storage = LocalDocumentStorage(root=str(tmp_path), url_base="/files")
        data = await storage.download_document(1, make_document(1, "INE_FRONT"))
        assert data == b"\xff\xd8jpeg"

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        storage = LocalDocumentStorage(root=str(tmp_path), url_base="/files")
        with pytest.raises(NotFoundError):
            await storage.download_document(1, make_document(1, "INE_FRONT"))

    @pytest.mark.asyncio
    async def test_path_outside_root_refused(self, tmp_path):
        storage = LocalDocumentStorage(root=str(tmp_path / "uploads"), url_base="/files")
        doc = make_document(1, "INE_FRONT")
        doc.file_path = "../secrets.txt"
        with pytest.raises(NotFoundError):
            await storage.get_document_url(1, doc)

    @pytest.mark.asyncio
    async def test_placeholder_has_no_file(self, tmp_path):
        storage = LocalDocumentStorage(root=str(tmp_path), url_base="/files")
        with pytest.raises(InvalidStateError):
            await storage.get_document_url(1, Document.placeholder("SELFIE"))

    @pytest.mark.asyncio
    async def test_url_is_quoted(self, tmp_path):
        storage = LocalDocumentStorage(root=str(tmp_path), url_base="https://cdn.example.com/docs/")
        doc = make_document(1, "INE_FRONT")
        doc.file_path = "1/ine front.jpg"
        url = await storage.get_document_url(1, doc)
        assert url == "https://cdn.example.com/docs/1/ine%20front.jpg"
