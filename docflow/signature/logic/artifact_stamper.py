"""
ArtifactStamper - produce the final, signed PDF of a generated document.

Always starts from the clean draft so signatures are never applied twice,
and writes the result as a new blob; the draft stays untouched.
"""
from __future__ import annotations

import logging
import math
from datetime import timezone, tzinfo
from io import BytesIO
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from docflow.core.config.config_service import SignatureConfig
from docflow.core.storage.blob_store import BlobStore
from docflow.exceptions.errors import BlobNotFoundError, StampingError
from docflow.signature.logic.pdf_signer import LabelStyle, PdfSigner, SignatureStamp
from docflow.signature.logic.signature_image_provider import SignatureImageProvider
from docflow.signature.models.signature_placement import LAST_PAGE, SlotPlacement

logger = logging.getLogger(__name__)


def resolve_page(placement: SlotPlacement, page_height: float, page_count: int) -> tuple[int, float]:
    """
    Map a placement onto (page index, top offset within that page).

    A ``y`` inside the first page honours the explicit page number
    (0 = last page). Larger values select the page by ``y // page_height``.
    The index is clamped to the document.
    """
    absolute_y = max(0.0, float(placement.y))
    if page_height <= 0:
        return 0, absolute_y
    if absolute_y < page_height:
        if placement.page == LAST_PAGE:
            index = page_count - 1
        else:
            index = placement.page - 1
        relative_y = absolute_y
    else:
        index = int(math.floor(absolute_y / page_height))
        relative_y = absolute_y % page_height
    index = min(max(index, 0), page_count - 1)
    return index, relative_y


class ArtifactStamper:
    """Composite signed slots onto the draft PDF and store the final artifact."""

    def __init__(
        self,
        blobs: BlobStore,
        images: SignatureImageProvider,
        config: Optional[SignatureConfig] = None,
    ) -> None:
        self._blobs = blobs
        self._images = images
        self._cfg = config or SignatureConfig()

    @property
    def style(self) -> LabelStyle:
        return LabelStyle(
            date_format=self._cfg.date_format,
            time_format=self._cfg.time_format,
            label_font_size=self._cfg.label_font_size,
            signer_font_size=self._cfg.signer_font_size,
            label_color=self._cfg.label_color,
            secondary_color=self._cfg.secondary_color,
            timezone=self.display_zone(),
        )

    def display_zone(self) -> tzinfo:
        """Zone used for the signing date printed on the PDF; unknown names fall back to UTC."""
        name = (self._cfg.display_timezone or "UTC").strip()
        if name.upper() == "UTC":
            return timezone.utc
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown display timezone %r, using UTC", name)
            return timezone.utc

    def final_file_name(self, record) -> str:
        return f"{record.file_name_base}{self._cfg.final_suffix}.pdf"

    def build_stamps(self, record, pdf_bytes: bytes) -> List[SignatureStamp]:
        try:
            reader = PdfReader(BytesIO(pdf_bytes))
            pages = reader.pages
            page_count = len(pages)
        except (PdfReadError, ValueError) as ex:
            raise StampingError(f"Draft PDF of {record.document_id} is unreadable: {ex}") from ex
        if page_count == 0:
            raise StampingError(f"Draft PDF of {record.document_id} has no pages")
        first_height = float(pages[0].mediabox.height)

        stamps: List[SignatureStamp] = []
        for slot in record.signed_slots():
            png = self._images.get_png(slot.signature_ref)
            if png is None:
                raise StampingError(f"No signature image for slot {slot.label!r} ({slot.signature_ref})")
            placement = slot.effective_placement
            page_index, top = resolve_page(placement, first_height, page_count)
            logger.debug("Slot %s -> page %d, top %.1f", slot.label, page_index + 1, top)
            stamps.append(SignatureStamp(
                page_index=page_index,
                x=placement.x,
                top=top,
                width=placement.width,
                height=placement.height,
                png_signature=png,
                label=slot.label if placement.show_label else None,
                signer_name=slot.signed_by_name if placement.show_signer_name else None,
                signed_at=slot.signed_at,
                date_position=placement.date_position,
            ))
        return stamps

    def stamp(self, record) -> Optional[str]:
        """
        Render all signed slots of *record* onto its draft PDF.

        Returns:
            Blob ref of the final PDF, or None when the draft does not exist
            yet (render still pending).

        Raises:
            StampingError: draft unreadable or a signature image is missing
        """
        if not record.draft_blob_ref:
            logger.info("Document %s has no draft PDF yet, stamping deferred", record.document_id)
            return None
        try:
            draft = self._blobs.get(record.draft_blob_ref)
        except BlobNotFoundError:
            logger.warning("Draft blob of %s missing, stamping deferred", record.document_id)
            return None

        stamps = self.build_stamps(record, draft)
        try:
            final_pdf = PdfSigner.stamp_pdf(draft, stamps, self.style)
        except (PdfReadError, OSError, ValueError) as ex:
            raise StampingError(f"Could not stamp {record.document_id}: {ex}") from ex

        ref = self._blobs.put(final_pdf)
        logger.info("Stamped %d signature(s) onto %s -> %s", len(stamps), record.document_id,
                    self.final_file_name(record))
        return ref
