"""Signature image lookup.

Turning drawn or typed signatures into pixels happens elsewhere; the
stamper only needs PNG bytes for a stored signature reference.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional, Protocol

from PIL import Image, UnidentifiedImageError

from docflow.core.storage.blob_store import BlobStore
from docflow.exceptions.errors import BlobNotFoundError

logger = logging.getLogger(__name__)


class SignatureImageProvider(Protocol):
    def get_png(self, signature_ref: str) -> Optional[bytes]:
        """Return PNG bytes for *signature_ref*, or None if it does not exist."""
        ...


class BlobSignatureImageProvider:
    """Signature images stored as blobs; any Pillow-readable format is re-encoded as PNG."""

    def __init__(self, blobs: BlobStore) -> None:
        self._blobs = blobs

    def get_png(self, signature_ref: str) -> Optional[bytes]:
        if not signature_ref:
            return None
        try:
            data = self._blobs.get(signature_ref)
        except BlobNotFoundError:
            logger.warning("Signature image %s not found", signature_ref)
            return None
        try:
            with Image.open(BytesIO(data)) as img:
                if img.format == "PNG":
                    return data
                out = BytesIO()
                img.convert("RGBA").save(out, format="PNG")
                return out.getvalue()
        except (UnidentifiedImageError, OSError) as ex:
            logger.warning("Signature image %s is not a readable image: %s", signature_ref, ex)
            return None
