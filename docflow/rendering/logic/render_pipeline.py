"""
===============================================================================
RenderPipeline - DOCX -> PDF with ordered strategies and a pending fallback
-------------------------------------------------------------------------------
Strategy order
    1. local LibreOffice (if installed)
    2. remote conversion service (if an endpoint is configured)
    3. pending: no PDF, the caller keeps the DOCX for a deferred job

Contract
    render(docx_bytes) -> RenderOutcome

    - Strategy errors never escape; they are logged and the next strategy runs.
    - The whole chain is bounded by a wall-clock timeout; running out of
      time yields a pending outcome, not an error.
    - Only input that is not a DOCX container at all raises
      DocumentStructureError.
===============================================================================
"""
from __future__ import annotations

import logging
import zipfile
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from io import BytesIO
from typing import List, Optional, Sequence, Tuple

from docflow.core.config.config_service import RenderConfig
from docflow.exceptions.errors import DocumentStructureError
from docflow.rendering.models.render_outcome import RenderOutcome, RenderStatus
from docflow.rendering.strategies.base import ConversionStrategy
from docflow.rendering.strategies.local_converter import LocalConverterStrategy
from docflow.rendering.strategies.remote_converter import RemoteConversionStrategy

logger = logging.getLogger(__name__)


def ensure_docx_container(docx_bytes: bytes) -> None:
    """Raise DocumentStructureError unless *docx_bytes* is a zip with a main document part."""
    if not docx_bytes:
        raise DocumentStructureError("Empty document")
    try:
        with zipfile.ZipFile(BytesIO(docx_bytes)) as zf:
            if "word/document.xml" not in zf.namelist():
                raise DocumentStructureError("DOCX container has no word/document.xml")
            bad = zf.testzip()
    except zipfile.BadZipFile as ex:
        raise DocumentStructureError(f"Unreadable DOCX container: {ex}") from ex
    if bad is not None:
        raise DocumentStructureError(f"Corrupt entry in DOCX container: {bad}")


class RenderPipeline:
    """Try conversion strategies in order; fall back to a pending outcome."""

    def __init__(self, strategies: Sequence[ConversionStrategy], *, timeout: Optional[float] = 20.0) -> None:
        self._strategies = list(strategies)
        self._timeout = timeout

    @classmethod
    def from_config(cls, cfg: RenderConfig) -> "RenderPipeline":
        strategies: List[ConversionStrategy] = []
        if cfg.enable_local:
            strategies.append(LocalConverterStrategy(binary=cfg.libreoffice_path, timeout=cfg.read_timeout))
        if cfg.enable_remote and cfg.gotenberg_url:
            strategies.append(RemoteConversionStrategy(
                cfg.gotenberg_url,
                connect_timeout=cfg.connect_timeout,
                read_timeout=cfg.read_timeout,
            ))
        return cls(strategies, timeout=cfg.render_timeout)

    @property
    def strategies(self) -> List[ConversionStrategy]:
        return list(self._strategies)

    # ---- chain ---- #
    def _run_chain(self, docx_bytes: bytes, attempted: List[str]) -> Tuple[Optional[bytes], Optional[str]]:
        for strategy in self._strategies:
            try:
                if not strategy.is_available():
                    continue
                attempted.append(strategy.name)
                pdf = strategy.convert(docx_bytes)
            except Exception:  # strategies must not break the chain
                logger.exception("Conversion strategy %s raised", strategy.name)
                continue
            if pdf:
                return pdf, strategy.name
            logger.info("Conversion strategy %s produced no output", strategy.name)
        return None, None

    def render(self, docx_bytes: bytes) -> RenderOutcome:
        ensure_docx_container(docx_bytes)
        attempted: List[str] = []

        if not self._timeout:
            pdf, used = self._run_chain(docx_bytes, attempted)
        else:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="docflow-render")
            future = executor.submit(self._run_chain, docx_bytes, attempted)
            try:
                pdf, used = future.result(timeout=self._timeout)
            except FutureTimeout:
                logger.warning("Rendering exceeded %.1fs, document stays pending", self._timeout)
                return RenderOutcome.pending(attempted, timed_out=True)
            finally:
                executor.shutdown(wait=False)

        if pdf is None:
            logger.warning("No conversion strategy succeeded (%s), document stays pending",
                           ", ".join(attempted) or "none available")
            return RenderOutcome.pending(attempted)
        logger.info("Rendered PDF with %s (%d bytes)", used, len(pdf))
        return RenderOutcome(RenderStatus.COMPLETED, pdf_bytes=pdf, strategy=used, attempted=list(attempted))
