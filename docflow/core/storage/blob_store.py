"""Blob store abstraction.

Blobs are opaque, immutable byte strings addressed by the sha256 of their
content. Generated drafts, final artifacts, retained DOCX files and
signature images all live here.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import hashlib


def content_ref(data: bytes) -> str:
    """Return the content address for *data*."""
    return hashlib.sha256(data).hexdigest()


class BlobStore(ABC):
    """Abstract content-addressable blob storage."""

    @abstractmethod
    def put(self, data: bytes) -> str:
        """
        Store bytes.

        Args:
            data: Blob content

        Returns:
            Reference usable with :meth:`get`. Storing identical content
            twice returns the same reference.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, ref: str) -> bytes:
        """
        Load blob content.

        Raises:
            BlobNotFoundError: if *ref* is unknown
        """
        raise NotImplementedError

    @abstractmethod
    def exists(self, ref: str) -> bool:
        raise NotImplementedError
