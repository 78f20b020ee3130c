"""
Error taxonomy for the invoice generation pipeline.

Every fatal condition raised by a pipeline stage derives from
InvoicePipelineError and carries:

- kind         stable, client-visible error identifier
- status_code  HTTP-equivalent failure status
- details      optional structured context (e.g. per-field messages)

Non-fatal conditions are modelled as warnings, not exceptions. They are
collected by the orchestrator and never abort a request.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class InvoicePipelineError(RuntimeError):
    """Base class for all terminal pipeline failures."""

    kind: str = "PipelineError"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class InvoiceValidationError(InvoicePipelineError):
    """Raised when raw input fields cannot be normalized."""

    kind = "ValidationError"
    status_code = 422

    def __init__(self, errors: Dict[str, str]) -> None:
        fields = ", ".join(sorted(errors))
        super().__init__(
            f"Invalid invoice fields: {fields}",
            details={"fields": dict(errors)},
        )
        self.errors = dict(errors)


class TemplateMismatchError(InvoicePipelineError):
    """Raised when template placeholders and record fields do not align."""

    kind = "TemplateMismatchError"


class RenderError(InvoicePipelineError):
    """Raised when the template is malformed or the merge output is corrupt."""

    kind = "RenderError"


class ConversionError(InvoicePipelineError):
    """Raised when the HTML preview cannot be derived from a document."""

    kind = "ConversionError"


class PersistenceWarning(UserWarning):
    """Non-fatal: the generated document could not be written to storage."""

    kind = "PersistenceWarning"
