"""
Pipeline artifacts and response models.

Binary artifacts (template, generated document) are carried as raw bytes
inside the process. Only the HTTP response model encodes them (base64).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# In-process artifacts
# ---------------------------------------------------------------------------


class TemplateArtifact(BaseModel):
    """Read-only snapshot of the template file taken for one request."""

    source: Path
    content: bytes

    model_config = ConfigDict(frozen=True)


class GeneratedDocument(BaseModel):
    """A complete, filled DOCX produced by one merge."""

    invoice_id: str
    content: bytes
    document_hash: str

    model_config = ConfigDict(frozen=True)


class PipelineWarning(BaseModel):
    """Non-fatal condition surfaced alongside a successful result."""

    kind: str
    message: str

    model_config = ConfigDict(frozen=True)


class PreviewOutcome(BaseModel):
    """
    Result of the preview stage, independent of document generation.

    Exactly one of ``html`` and ``error`` is set.
    """

    html: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def exactly_one_outcome(self) -> "PreviewOutcome":
        if (self.html is None) == (self.error is None):
            raise ValueError("PreviewOutcome requires exactly one of html or error")
        return self

    @property
    def succeeded(self) -> bool:
        return self.html is not None


class InvoiceGenerationResult(BaseModel):
    """Everything one successful pipeline run produced."""

    document: GeneratedDocument
    download_filename: str
    preview: PreviewOutcome
    warnings: List[PipelineWarning] = Field(default_factory=list)
    persisted: bool = False

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# HTTP response models
# ---------------------------------------------------------------------------


class InvoiceGenerationResponse(BaseModel):
    invoice_id: str
    document: str = Field(..., description="Generated DOCX, base64 encoded")
    document_hash: str
    download_filename: str
    preview: PreviewOutcome
    warnings: List[PipelineWarning] = Field(default_factory=list)


class ErrorBody(BaseModel):
    kind: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorBody
