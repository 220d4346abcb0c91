"""Local filesystem document storage rooted at ``settings.upload_dir``."""

import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from loan_review.config import settings
from loan_review.services.error_logger import log_error
from loan_review.services.review.collaborators import DocumentStorage
from loan_review.services.review.domain import Document
from loan_review.services.review.errors import InvalidStateError, NotFoundError, UpstreamFailure

logger = logging.getLogger(__name__)


class LocalDocumentStorage(DocumentStorage):
    def __init__(self, root: Optional[str] = None, url_base: Optional[str] = None):
        self.root = Path(root or settings.upload_dir).resolve()
        self.url_base = (url_base or settings.document_url_base).rstrip("/")

    def _path_for(self, document: Document) -> Path:
        if document.is_placeholder or not document.file_path:
            raise InvalidStateError("Document has not been uploaded yet", document_id=document.id)
        path = (self.root / document.file_path).resolve()
        if self.root not in path.parents:
            raise NotFoundError("Document file not found", document_id=document.id)
        return path

    async def download_document(self, application_id: int, document: Document) -> bytes:
        path = self._path_for(document)
        if not path.is_file():
            raise NotFoundError("Document file not found", document_id=document.id)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            await log_error(e, module="storage", function_name="download_document",
                            application_id=application_id)
            raise UpstreamFailure("Could not read document file", document_id=document.id) from e

    async def get_document_url(self, application_id: int, document: Document) -> str:
        path = self._path_for(document)
        relative = path.relative_to(self.root).as_posix()
        return f"{self.url_base}/{quote(relative)}"
