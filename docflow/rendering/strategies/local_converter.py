"""
Local LibreOffice conversion (``soffice --headless --convert-to pdf``).

Every run uses a throwaway user profile so parallel conversions do not
fight over the profile lock of a shared installation.
"""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Optional, Sequence

from docflow.rendering.strategies.base import ConversionStrategy

logger = logging.getLogger(__name__)

SOFFICE_CANDIDATES: Sequence[str] = (
    "/app/.apt/usr/bin/soffice",
    "/Applications/LibreOffice.app/Contents/MacOS/soffice",
    "/usr/local/bin/soffice",
    "/usr/bin/soffice",
    "/usr/bin/libreoffice",
    "/opt/libreoffice/program/soffice",
)


@lru_cache(maxsize=None)
def find_libreoffice(explicit: str = "") -> Optional[str]:
    """
    Locate the soffice binary; the result is cached for the process lifetime.

    Args:
        explicit: Configured path, checked before the known install locations
    """
    candidates = [explicit] if explicit else []
    candidates.extend(SOFFICE_CANDIDATES)
    for candidate in candidates:
        if candidate and Path(candidate).is_file() and os.access(candidate, os.X_OK):
            return candidate
    found = shutil.which("soffice") or shutil.which("libreoffice")
    if found:
        return found
    logger.info("LibreOffice not found on this host")
    return None


class LocalConverterStrategy(ConversionStrategy):
    """Convert with a LibreOffice installation on the host."""

    name = "libreoffice"

    def __init__(self, *, binary: str = "", timeout: float = 60.0) -> None:
        self._binary = binary
        self._timeout = timeout

    def _soffice(self) -> Optional[str]:
        return find_libreoffice(self._binary)

    def is_available(self) -> bool:
        return self._soffice() is not None

    def convert(self, docx_bytes: bytes) -> Optional[bytes]:
        soffice = self._soffice()
        if not soffice:
            return None

        with tempfile.TemporaryDirectory(prefix="docflow_soffice_") as tmp:
            work = Path(tmp)
            src = work / "document.docx"
            src.write_bytes(docx_bytes)
            out_dir = work / "out"
            out_dir.mkdir()
            profile = work / "profile"
            cmd = [
                soffice,
                "--headless",
                "--nologo",
                "--nofirststartwizard",
                "--norestore",
                f"-env:UserInstallation={profile.as_uri()}",
                "--convert-to", "pdf",
                "--outdir", str(out_dir),
                str(src),
            ]
            try:
                subprocess.run(
                    cmd,
                    check=True,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                    timeout=self._timeout,
                )
            except subprocess.CalledProcessError as ex:
                stderr = (ex.stderr or b"").decode("utf-8", "replace").strip()
                logger.warning("LibreOffice exited with %s: %s", ex.returncode, stderr)
                return None
            except subprocess.TimeoutExpired:
                logger.warning("LibreOffice conversion exceeded %.0fs", self._timeout)
                return None
            except OSError as ex:
                logger.warning("LibreOffice could not be started: %s", ex)
                return None

            pdfs = sorted(out_dir.glob("*.pdf"))
            if not pdfs:
                logger.warning("LibreOffice finished without producing a PDF")
                return None
            return pdfs[0].read_bytes()
