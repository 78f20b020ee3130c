"""
DOCX template merge service.

This module fills the fixed invoice template with a canonical
InvoiceRecord using docxtpl (Jinja2 inside WordprocessingML).

Design guarantees:
- Deterministic rendering (Jinja2 + StrictUndefined, XML autoescaping)
- Placeholders are checked against INVOICE_PLACEHOLDERS before rendering
- Substitution is textual only; control-flow tags are rejected
- Output has the same body structure as the template, verified post-merge
- On failure an exception is raised and no document is returned

The template bytes are never mutated: every merge opens its own copy.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Set, Tuple

from docx import Document
from docxtpl import DocxTemplate
from jinja2 import Environment, StrictUndefined

from invoicer.app.errors import RenderError, TemplateMismatchError
from invoicer.app.schemas.generation import GeneratedDocument, TemplateArtifact
from invoicer.app.schemas.invoice import INVOICE_PLACEHOLDERS, InvoiceRecord
from invoicer.app.utils.hashing import compute_document_hash

logger = logging.getLogger(__name__)

_CONTROL_TAG = re.compile(r"\{%")


# ---------------------------------------------------------------------------
# Structural snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentShape:
    """Structure of a DOCX body that substitution must not change."""

    paragraph_count: int
    table_dimensions: Tuple[Tuple[int, int], ...]
    section_count: int


def document_shape(document_bytes: bytes) -> DocumentShape:
    document = Document(io.BytesIO(document_bytes))
    return DocumentShape(
        paragraph_count=len(document.paragraphs),
        table_dimensions=tuple(
            (len(table.rows), len(table.columns)) for table in document.tables
        ),
        section_count=len(document.sections),
    )


# ---------------------------------------------------------------------------
# Template access
# ---------------------------------------------------------------------------


def load_template(path: Path) -> TemplateArtifact:
    """
    Read the current template file contents.

    The file is re-read on every call so that a replaced template takes
    effect on the next request.
    """
    try:
        content = path.read_bytes()
    except OSError as exc:
        raise RenderError(f"Template could not be read: {path}") from exc

    if not content:
        raise RenderError(f"Template file is empty: {path}")

    return TemplateArtifact(source=path, content=content)


def _jinja_env() -> Environment:
    return Environment(undefined=StrictUndefined, autoescape=True)


def _open(template: TemplateArtifact) -> DocxTemplate:
    tpl = DocxTemplate(io.BytesIO(template.content))
    try:
        tpl.init_docx()
    except Exception as exc:
        raise RenderError(
            f"Template is not a readable DOCX document: {template.source}"
        ) from exc
    return tpl


def find_template_placeholders(template: TemplateArtifact) -> Set[str]:
    """Return the placeholder names the template references."""
    tpl = _open(template)
    return _placeholders(tpl, template)


def _template_parts_xml(tpl: DocxTemplate) -> Iterator[str]:
    """Yield the patched XML of every part docxtpl renders as a template."""
    yield tpl.patch_xml(tpl.get_xml())
    for uri in (tpl.HEADER_URI, tpl.FOOTER_URI):
        for _, part in tpl.get_headers_footers(uri):
            yield tpl.patch_xml(tpl.get_part_xml(part))


def _placeholders(tpl: DocxTemplate, template: TemplateArtifact) -> Set[str]:
    try:
        if any(_CONTROL_TAG.search(xml) for xml in _template_parts_xml(tpl)):
            raise TemplateMismatchError(
                "Template contains control-flow tags; only plain "
                "{{ placeholder }} substitutions are supported.",
                details={"template": str(template.source)},
            )
        return set(tpl.get_undeclared_template_variables(_jinja_env()))
    except TemplateMismatchError:
        raise
    except Exception as exc:
        raise RenderError(
            f"Template placeholders could not be parsed: {exc}"
        ) from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def merge(
    *,
    template: TemplateArtifact,
    record: InvoiceRecord,
) -> GeneratedDocument:
    """
    Merge an InvoiceRecord into the invoice template.

    Raises:
        TemplateMismatchError:
            The template references a placeholder outside the invoice
            schema, one whose record value is missing, or uses control tags.
        RenderError:
            The template is malformed or the merged output is not a
            structurally identical, readable DOCX.
    """
    tpl = _open(template)
    placeholders = _placeholders(tpl, template)

    unknown = placeholders - INVOICE_PLACEHOLDERS
    if unknown:
        raise TemplateMismatchError(
            "Template references placeholders with no invoice field: "
            + ", ".join(sorted(unknown)),
            details={"unknown_placeholders": sorted(unknown)},
        )

    context = record.template_context()
    unresolved = sorted(name for name in placeholders if context[name] is None)
    if unresolved:
        raise TemplateMismatchError(
            "Invoice record has no value for template placeholders: "
            + ", ".join(unresolved),
            details={"unresolved_placeholders": unresolved},
        )

    try:
        tpl.render(
            {name: context[name] for name in placeholders},
            jinja_env=_jinja_env(),
            autoescape=True,
        )
        buffer = io.BytesIO()
        tpl.save(buffer)
    except Exception as exc:
        raise RenderError(f"Template rendering failed: {exc}") from exc

    content = buffer.getvalue()

    # ------------------------------------------------------------------
    # Post-conditions: output is a valid DOCX with the template's shape
    # ------------------------------------------------------------------
    try:
        expected = document_shape(template.content)
        actual = document_shape(content)
    except Exception as exc:
        raise RenderError(f"Merged document is not a valid DOCX: {exc}") from exc

    if actual != expected:
        raise RenderError(
            "Merged document structure differs from the template.",
            details={"expected": repr(expected), "actual": repr(actual)},
        )

    logger.debug(
        "template_merged",
        extra={
            "invoice_id": record.invoice_id,
            "placeholders": len(placeholders),
            "size_bytes": len(content),
        },
    )

    return GeneratedDocument(
        invoice_id=record.invoice_id,
        content=content,
        document_hash=compute_document_hash(content),
    )
