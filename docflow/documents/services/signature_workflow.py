"""
===============================================================================
SignatureWorkflow - slot signing, completion, stamping and cancellation
-------------------------------------------------------------------------------
States
    draft -> pending_signatures -> completed
    draft / pending_signatures -> cancelled

Concurrency
    Every transition reads the record, builds the new record in memory and
    writes it with compare-and-set on ``version``. A lost write reloads and
    re-evaluates, so a racing second signer of the same slot sees the slot
    already signed. Completion is part of the same write as the last
    required signature, which means exactly one caller observes the
    transition and triggers stamping.
===============================================================================
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Tuple

from docflow.core.storage.blob_store import BlobStore
from docflow.documents.enum.document_status import DocumentStatus, PdfGenerationStatus
from docflow.documents.models.document_record import DocumentRecord, SlotOrderStatus
from docflow.documents.models.results import SignErrorCode, SignResult, TransitionResult
from docflow.documents.models.signature_slot import SignatureSlot
from docflow.documents.models.signer import Signer
from docflow.documents.repository.document_repository import DocumentRepository
from docflow.signature.logic.artifact_stamper import ArtifactStamper

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
_GEOMETRY_KEYS = ("x", "y", "width", "height")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SignatureWorkflow:
    def __init__(
        self,
        *,
        documents: DocumentRepository,
        stamper: ArtifactStamper,
        blobs: BlobStore,
        clock: Optional[Callable[[], datetime]] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._repo = documents
        self._stamper = stamper
        self._blobs = blobs
        self._clock = clock or _utcnow
        self._max_attempts = max(1, max_attempts)

    # ---- helpers ------------------------------------------------------------

    @staticmethod
    def _eligibility(slot: SignatureSlot, signer: Signer) -> Optional[SignErrorCode]:
        """None if *signer* may sign *slot* now (as assignee or by claiming it)."""
        if slot.assignee_id:
            if slot.assignee_id == signer.user_id:
                return None
            return SignErrorCode.NOT_ELIGIBLE
        if signer.has_role(slot.claim_role):
            return None
        return SignErrorCode.NOT_ELIGIBLE

    @staticmethod
    def _signed_for(slot: SignatureSlot, signer: Signer) -> bool:
        if not slot.is_signed:
            return False
        if signer.user_id in (slot.assignee_id, slot.signed_by_id):
            return True
        return slot.claimed and signer.has_role(slot.claim_role)

    def _select_slot(
        self, record: DocumentRecord, signer: Signer, slot_id: Optional[str]
    ) -> Tuple[Optional[SignatureSlot], Optional[SignResult]]:
        if slot_id:
            slot = record.slot(slot_id)
            if slot is None:
                return None, SignResult.error(SignErrorCode.NOT_FOUND, f"Slot {slot_id} not found", document=record)
            if slot.is_signed:
                return None, SignResult.error(
                    SignErrorCode.ALREADY_SIGNED, f"{slot.label} is already signed", document=record, slot=slot)
            code = self._eligibility(slot, signer)
            if code is not None:
                return None, self._ineligible(code, record, slot)
            return slot, None

        candidates = [s for s in record.pending_slots() if self._eligibility(s, signer) is None]
        if candidates:
            ready = [s for s in candidates if not record.blocking_slots_for(s)]
            return (ready or candidates)[0], None

        done = next((s for s in record.slots if self._signed_for(s, signer)), None)
        if done is not None:
            return None, SignResult.error(
                SignErrorCode.ALREADY_SIGNED, f"{done.label} is already signed", document=record, slot=done)
        return None, SignResult.error(
            SignErrorCode.NOT_ELIGIBLE, "No pending signature for this user", document=record)

    @staticmethod
    def _ineligible(code: SignErrorCode, record: DocumentRecord, slot: SignatureSlot) -> SignResult:
        return SignResult.error(code, f"User may not sign {slot.label}", document=record, slot=slot)

    def _stamp_and_store(self, record: DocumentRecord) -> Tuple[DocumentRecord, bool]:
        """Stamp a completed record and attach the final artifact ref."""
        try:
            ref = self._stamper.stamp(record)
        except Exception:  # signature stays committed, stamping can be retried
            logger.exception("Stamping failed for document %s", record.document_id)
            return record, False
        if ref is None:
            return record, False

        current = record
        for _ in range(self._max_attempts):
            if current.final_blob_ref == ref:
                return current, True
            stored = self._repo.compare_and_set(current.evolve(final_blob_ref=ref), current.version)
            if stored is not None:
                return stored, True
            reloaded = self._repo.get(record.document_id)
            if reloaded is None or reloaded.status is not DocumentStatus.COMPLETED:
                return reloaded or current, False
            current = reloaded
        logger.warning("Could not attach final artifact to %s after %d attempts",
                       record.document_id, self._max_attempts)
        return current, False

    # ---- queries ------------------------------------------------------------

    def get(self, document_id: str) -> Optional[DocumentRecord]:
        return self._repo.get(document_id)

    def order_status(self, document_id: str, slot_id: str) -> Optional[SlotOrderStatus]:
        record = self._repo.get(document_id)
        slot = record.slot(slot_id) if record else None
        return record.order_status(slot) if slot else None

    def next_slot_to_sign(self, document_id: str) -> Optional[SignatureSlot]:
        record = self._repo.get(document_id)
        return record.next_slot_to_sign() if record else None

    def can_be_signed_by(self, document_id: str, signer: Signer) -> bool:
        record = self._repo.get(document_id)
        if record is None or record.status is not DocumentStatus.PENDING_SIGNATURES:
            return False
        return any(
            self._eligibility(s, signer) is None and not record.blocking_slots_for(s)
            for s in record.pending_slots()
        )

    # ---- transitions --------------------------------------------------------

    def sign(
        self,
        document_id: str,
        signer: Signer,
        signature_ref: Optional[str] = None,
        geometry: Optional[Mapping[str, float]] = None,
        slot_id: Optional[str] = None,
    ) -> SignResult:
        """
        Sign one slot of a document.

        Args:
            document_id: Document to sign
            signer: Acting identity
            signature_ref: Signature image to use (default: the signer's registered one)
            geometry: Optional ``x``/``y``/``width``/``height`` override for this slot
            slot_id: Slot to sign; by default the first pending slot the signer may sign

        Returns:
            SignResult; policy refusals carry an error code and never raise.
        """
        ref = signature_ref or signer.signature_ref
        for _ in range(self._max_attempts):
            record = self._repo.get(document_id)
            if record is None:
                return SignResult.error(SignErrorCode.NOT_FOUND, f"Document {document_id} not found")
            if record.status is DocumentStatus.CANCELLED:
                return SignResult.error(SignErrorCode.INVALID_STATE, "Document was cancelled", document=record)

            slot, refusal = self._select_slot(record, signer, slot_id)
            if refusal is not None:
                return refusal

            if record.status is not DocumentStatus.PENDING_SIGNATURES:
                return SignResult.error(
                    SignErrorCode.INVALID_STATE,
                    f"Document is {record.status.value}, not awaiting signatures",
                    document=record, slot=slot,
                )
            if not ref:
                return SignResult.error(
                    SignErrorCode.NO_SIGNATURE_CONFIGURED,
                    "User has no signature configured",
                    document=record, slot=slot,
                )
            blocking = record.blocking_slots_for(slot)
            if blocking:
                labels = [b.label for b in blocking]
                return SignResult.error(
                    SignErrorCode.WAITING_FOR,
                    "Waiting for signatures of: " + ", ".join(labels),
                    document=record, slot=slot, waiting_for=labels,
                )

            now = self._clock()
            placement = None
            if geometry:
                placement = slot.placement.with_geometry(**{k: geometry.get(k) for k in _GEOMETRY_KEYS})
            signed_slot = slot.signed(signer, ref, now, claim=slot.assignee_id is None, placement=placement)
            updated = record.with_slot(signed_slot)
            completed = updated.all_required_signed()
            if completed:
                updated = updated.evolve(status=DocumentStatus.COMPLETED, completed_at=now)
            else:
                updated = updated.evolve()

            stored = self._repo.compare_and_set(updated, record.version)
            if stored is None:
                logger.debug("Sign on %s lost a concurrent update, retrying", document_id)
                continue

            logger.info("Slot %s of document %s signed by %s", signed_slot.label, document_id, signer.user_id)
            stamped = False
            if completed:
                logger.info("Document %s completed", document_id)
                stored, stamped = self._stamp_and_store(stored)
            return SignResult(
                ok=True,
                document=stored,
                slot=signed_slot,
                message="Signed",
                completed=completed,
                stamped=stamped,
            )

        return SignResult.error(
            SignErrorCode.CONFLICT,
            "Document is being updated concurrently, try again",
            retryable=True,
        )

    def cancel(self, document_id: str, reason: Optional[str] = None) -> TransitionResult:
        for _ in range(self._max_attempts):
            record = self._repo.get(document_id)
            if record is None:
                return TransitionResult(False, f"Document {document_id} not found")
            if record.status is DocumentStatus.COMPLETED:
                return TransitionResult(False, "Completed documents cannot be cancelled", record.status, record)
            if record.status is DocumentStatus.CANCELLED:
                return TransitionResult(False, "Document is already cancelled", record.status, record)

            updated = record.evolve(
                status=DocumentStatus.CANCELLED,
                cancelled_at=self._clock(),
                cancellation_reason=reason,
            )
            stored = self._repo.compare_and_set(updated, record.version)
            if stored is None:
                continue
            logger.info("Document %s cancelled (%s)", document_id, reason or "no reason")
            return TransitionResult(True, "Cancelled", stored.status, stored)
        return TransitionResult(False, "Document is being updated concurrently, try again")

    def retry_stamping(self, document_id: str) -> TransitionResult:
        """Produce the final artifact for a completed document that has none yet."""
        record = self._repo.get(document_id)
        if record is None:
            return TransitionResult(False, f"Document {document_id} not found")
        if record.status is not DocumentStatus.COMPLETED:
            return TransitionResult(False, "Only completed documents can be stamped", record.status, record)
        if record.final_blob_ref:
            return TransitionResult(True, "Already stamped", record.status, record)
        stored, stamped = self._stamp_and_store(record)
        message = "Stamped" if stamped else "Stamping not possible yet"
        return TransitionResult(stamped, message, stored.status, stored)

    def complete_pending_render(self, document_id: str, pdf_bytes: bytes) -> TransitionResult:
        """
        Attach a PDF rendered outside the request (deferred render job).

        Stamps right away when every required slot was signed while the
        render was still pending.
        """
        if not pdf_bytes:
            return TransitionResult(False, "Empty PDF")
        ref = self._blobs.put(pdf_bytes)
        for _ in range(self._max_attempts):
            record = self._repo.get(document_id)
            if record is None:
                return TransitionResult(False, f"Document {document_id} not found")
            if not record.is_pending_pdf:
                return TransitionResult(False, "Document already has a rendered PDF", record.status, record)

            updated = record.evolve(draft_blob_ref=ref, pdf_generation_status=PdfGenerationStatus.COMPLETED)
            stored = self._repo.compare_and_set(updated, record.version)
            if stored is None:
                continue
            logger.info("Deferred render attached to document %s", document_id)
            if stored.status is DocumentStatus.COMPLETED and not stored.final_blob_ref:
                stored, _ = self._stamp_and_store(stored)
            return TransitionResult(True, "Rendered PDF attached", stored.status, stored)
        return TransitionResult(False, "Document is being updated concurrently, try again")

