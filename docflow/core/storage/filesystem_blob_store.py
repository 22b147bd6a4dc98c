"""Filesystem implementation of BlobStore.

Layout: ``<root>/<ref[:2]>/<ref>``. Writes go to a temp file in the same
directory and are moved into place, so readers never see partial blobs.
"""

from __future__ import annotations
from pathlib import Path
import os
import re
import tempfile

from docflow.core.storage.blob_store import BlobStore, content_ref
from docflow.exceptions.errors import BlobNotFoundError

_REF_RE = re.compile(r"^[0-9a-f]{64}$")


class FilesystemBlobStore(BlobStore):
    """Local filesystem implementation of BlobStore."""

    def __init__(self, root_path: str | Path):
        """
        Initialize filesystem storage.

        Args:
            root_path: Root directory for blob storage
        """
        self._root = Path(root_path)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, ref: str) -> Path:
        if not _REF_RE.match(ref or ""):
            raise BlobNotFoundError(ref)
        return self._root / ref[:2] / ref

    def put(self, data: bytes) -> str:
        ref = content_ref(data)
        dest = self._path_for(ref)
        if dest.exists():
            return ref
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=".tmp_")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, dest)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return ref

    def get(self, ref: str) -> bytes:
        path = self._path_for(ref)
        if not path.is_file():
            raise BlobNotFoundError(ref)
        return path.read_bytes()

    def exists(self, ref: str) -> bool:
        try:
            return self._path_for(ref).is_file()
        except BlobNotFoundError:
            return False
