"""
Invoice generation endpoints.

Clients supply raw form fields only. Normalization, totals, invoice IDs,
template merging and preview rendering are performed by the pipeline.

    POST /invoices          generate a document and its HTML preview
    GET  /invoices/latest   download the most recently generated document

The latest document lives under a fixed storage name; the download name
is chosen by the caller and only affects Content-Disposition.
"""

from __future__ import annotations

import base64
import io
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from invoicer.app.config import Settings, get_settings
from invoicer.app.coordinator.pipeline import InvoicePipeline
from invoicer.app.schemas.generation import (
    ErrorResponse,
    InvoiceGenerationResponse,
)
from invoicer.app.services.artifact_store import (
    LatestArtifactStore,
    safe_download_filename,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Invoices"])

DOCX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)


# =============================================================================
# Dependency providers
# =============================================================================

def get_pipeline(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> InvoicePipeline:
    """Return the app-wide pipeline, or build one from the active settings."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = InvoicePipeline(settings=settings)
    return pipeline


# =============================================================================
# POST /invoices
# =============================================================================

@router.post(
    "",
    response_model=InvoiceGenerationResponse,
    summary="Generate an invoice document with an HTML preview",
    responses={
        422: {"model": ErrorResponse, "description": "Invalid invoice fields"},
        500: {"model": ErrorResponse, "description": "Template or render failure"},
    },
)
def generate_invoice(
    payload: Dict[str, Any] = Body(...),
    pipeline: InvoicePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """
    Generate an invoice from raw form fields.

    Any ``total`` or ``invoiceID`` in the payload is ignored. The preview
    is reported independently: a preview failure does not withhold the
    generated document unless strict preview mode is configured.
    """
    result = pipeline.generate(payload)
    document = result.document

    body = InvoiceGenerationResponse(
        invoice_id=document.invoice_id,
        document=base64.b64encode(document.content).decode("ascii"),
        document_hash=document.document_hash,
        download_filename=result.download_filename,
        preview=result.preview,
        warnings=result.warnings,
    )

    return JSONResponse(
        content=body.model_dump(mode="json"),
        headers={
            "X-Invoice-Id": document.invoice_id,
            "X-Document-Hash": document.document_hash,
        },
    )


# =============================================================================
# GET /invoices/latest
# =============================================================================

@router.get(
    "/latest",
    summary="Download the most recently generated invoice",
    response_class=StreamingResponse,
    responses={
        200: {"content": {DOCX_MEDIA_TYPE: {}}, "description": "Latest invoice"},
        404: {"model": ErrorResponse, "description": "No invoice generated yet"},
    },
)
def download_latest_invoice(
    filename: Optional[str] = Query(
        default=None,
        description="Download name, e.g. AKT-42.docx. Defaults to the storage name.",
    ),
    pipeline: InvoicePipeline = Depends(get_pipeline),
):
    store: LatestArtifactStore = pipeline.store
    content = store.load()

    if content is None:
        return JSONResponse(
            status_code=404,
            content={
                "error": {
                    "kind": "NotFound",
                    "message": "No invoice has been generated yet.",
                }
            },
        )

    download_name = safe_download_filename(filename, fallback=store.path.name)

    return StreamingResponse(
        io.BytesIO(content),
        media_type=DOCX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{download_name}"',
        },
    )
