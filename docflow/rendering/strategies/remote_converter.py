"""
Remote conversion through a Gotenberg-compatible HTTP service.

POST {base_url}/forms/libreoffice/convert with the DOCX as multipart
field ``files``; the response body is the PDF.
"""
from __future__ import annotations

import logging
from typing import Optional

import requests

from docflow.rendering.strategies.base import ConversionStrategy

logger = logging.getLogger(__name__)

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
CONVERT_PATH = "/forms/libreoffice/convert"


class RemoteConversionStrategy(ConversionStrategy):
    """Convert by posting the document to a remote conversion endpoint."""

    name = "remote"

    def __init__(
        self,
        base_url: str,
        *,
        connect_timeout: float = 30.0,
        read_timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = (connect_timeout, read_timeout)
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}{CONVERT_PATH}"

    def is_available(self) -> bool:
        return bool(self._base_url)

    def convert(self, docx_bytes: bytes) -> Optional[bytes]:
        if not self._base_url:
            return None
        files = {"files": ("document.docx", docx_bytes, DOCX_CONTENT_TYPE)}
        try:
            response = self._session.post(self.endpoint, files=files, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Remote conversion failed: %s", e)
            return None

        if response.status_code != 200:
            logger.warning(
                "Remote conversion returned HTTP %s: %s",
                response.status_code, (response.text or "")[:200],
            )
            return None
        if not response.content:
            logger.warning("Remote conversion returned an empty body")
            return None
        return response.content
