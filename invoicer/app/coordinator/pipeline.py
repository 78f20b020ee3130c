"""
Invoice generation pipeline.

The pipeline is a dumb sequencer. It does not interpret field values or
document content; it only enforces stage order, turns stage failures into
terminal errors or warnings, and assembles the result.

Stages (per request, no retries):
    1. NORMALIZING  raw fields -> InvoiceRecord          fatal on failure
    2. MERGING      record + template -> DOCX            fatal on failure
    3. PERSISTING   DOCX -> latest artifact location     warning on failure
    4. PREVIEWING   DOCX -> HTML fragment                see below
    5. DONE

The document is persisted before the preview is attempted, and a preview
failure is reported next to the document instead of replacing it. Setting
``strict_preview`` restores the coupled behaviour where a failed preview
fails the whole request.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, List, Mapping, Optional
from uuid import uuid4

from invoicer.app.config import Settings
from invoicer.app.errors import (
    ConversionError,
    InvoicePipelineError,
    PersistenceWarning,
)
from invoicer.app.events import (
    NullEventEmitter,
    PipelineEvent,
    PipelineEventEmitter,
    PipelineEventType,
)
from invoicer.app.schemas.generation import (
    InvoiceGenerationResult,
    PipelineWarning,
    PreviewOutcome,
)
from invoicer.app.services.artifact_store import (
    LatestArtifactStore,
    safe_download_filename,
)
from invoicer.app.services.normalizer import normalize
from invoicer.app.services.preview import render_preview
from invoicer.app.services.template_merge import load_template, merge

logger = logging.getLogger(__name__)


class InvoicePipeline:
    """Runs normalization, merge, persistence and preview for one request."""

    def __init__(
        self,
        settings: Settings,
        store: Optional[LatestArtifactStore] = None,
        emitter: Optional[PipelineEventEmitter] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._settings = settings
        self._store = (
            store if store is not None else LatestArtifactStore(settings.output_path)
        )
        self._emitter = emitter if emitter is not None else NullEventEmitter()
        self._clock = clock

    @property
    def store(self) -> LatestArtifactStore:
        return self._store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(
        self,
        raw: Mapping[str, Any],
        *,
        request_id: Optional[str] = None,
    ) -> InvoiceGenerationResult:
        """
        Generate an invoice document and its HTML preview.

        Raises:
            InvoiceValidationError, TemplateMismatchError, RenderError:
                terminal failures; nothing is persisted.
            ConversionError:
                only when ``strict_preview`` is enabled.
        """
        request_id = request_id or str(uuid4())
        warnings: List[PipelineWarning] = []

        try:
            # ----------------------------------------------------------
            # 1. Normalizing
            # ----------------------------------------------------------
            self._emit(request_id, PipelineEventType.NORMALIZING)
            record = normalize(
                raw,
                today=self._clock(),
                max_amount=self._settings.max_amount,
            )

            # ----------------------------------------------------------
            # 2. Merging
            # ----------------------------------------------------------
            self._emit(
                request_id,
                PipelineEventType.MERGING,
                invoice_id=record.invoice_id,
            )
            template = load_template(self._settings.template_path)
            document = merge(template=template, record=record)

            # ----------------------------------------------------------
            # 3. Persisting (best effort)
            # ----------------------------------------------------------
            self._emit(
                request_id,
                PipelineEventType.PERSISTING,
                document_hash=document.document_hash,
            )
            persisted = self._persist(request_id, document.content, warnings)

            # ----------------------------------------------------------
            # 4. Previewing
            # ----------------------------------------------------------
            self._emit(request_id, PipelineEventType.PREVIEWING)
            preview = self._preview(request_id, document.content)

        except InvoicePipelineError as exc:
            logger.warning(
                "invoice_generation_failed",
                extra={
                    "request_id": request_id,
                    "kind": exc.kind,
                    "error": exc.message,
                },
            )
            self._emit(
                request_id,
                PipelineEventType.FAILED,
                kind=exc.kind,
                message=exc.message,
            )
            raise

        # --------------------------------------------------------------
        # 5. Done
        # --------------------------------------------------------------
        result = InvoiceGenerationResult(
            document=document,
            download_filename=self._download_filename(record.event_id),
            preview=preview,
            warnings=warnings,
            persisted=persisted,
        )

        self._emit(
            request_id,
            PipelineEventType.DONE,
            invoice_id=record.invoice_id,
            preview_ok=preview.succeeded,
            warnings=len(warnings),
        )
        logger.info(
            "invoice_generated",
            extra={
                "request_id": request_id,
                "invoice_id": record.invoice_id,
                "document_hash": document.document_hash,
                "preview_ok": preview.succeeded,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    def _persist(
        self,
        request_id: str,
        content: bytes,
        warnings: List[PipelineWarning],
    ) -> bool:
        try:
            self._store.save(content)
        except OSError as exc:
            warning = PersistenceWarning(
                f"Generated invoice could not be stored at "
                f"{self._store.path}: {exc}"
            )
            logger.warning(
                "invoice_persistence_failed",
                extra={"request_id": request_id, "path": str(self._store.path)},
                exc_info=exc,
            )
            warnings.append(
                PipelineWarning(kind=PersistenceWarning.kind, message=str(warning))
            )
            self._emit(
                request_id,
                PipelineEventType.PERSISTENCE_WARNING,
                message=str(warning),
            )
            return False
        return True

    def _preview(self, request_id: str, content: bytes) -> PreviewOutcome:
        try:
            return PreviewOutcome(html=render_preview(content))
        except ConversionError as exc:
            if self._settings.strict_preview:
                raise
            logger.warning(
                "invoice_preview_failed",
                extra={"request_id": request_id, "error": exc.message},
            )
            self._emit(
                request_id,
                PipelineEventType.PREVIEW_FAILED,
                message=exc.message,
            )
            return PreviewOutcome(error=exc.to_payload())

    def _download_filename(self, event_id: str) -> str:
        prefix = self._settings.download_prefix
        stem = f"{prefix}-{event_id}" if prefix else event_id
        return safe_download_filename(stem, fallback="invoice.docx")

    def _emit(
        self,
        request_id: str,
        event_type: PipelineEventType,
        **details: Any,
    ) -> None:
        logger.debug(
            "pipeline_stage",
            extra={"request_id": request_id, "stage": event_type.value},
        )
        try:
            self._emitter.emit(
                PipelineEvent(
                    request_id=request_id,
                    event_type=event_type,
                    details=details or None,
                )
            )
        except Exception:
            # Observability must never fail a request
            logger.warning(
                "pipeline_event_emission_failed",
                extra={"request_id": request_id, "stage": event_type.value},
                exc_info=True,
            )
