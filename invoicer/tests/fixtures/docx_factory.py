import io
from typing import Iterable

from docx import Document
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _to_bytes(document) -> bytes:
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


# ------------------------------------------------------------------
# Invoice template (all placeholders, heading + table layout)
#
# Mirrors the structure of the shipped template:
#   - Title and Heading 1 paragraphs
#   - one 2-column amounts table with a bold header and total row
# ------------------------------------------------------------------

AMOUNT_ROWS = (
    ("Salary", "{{ salary }}"),
    ("Travel expenses", "{{ travelExpenses }}"),
    ("Car expenses", "{{ carExpenses }}"),
    ("Parking expenses", "{{ parkingExpenses }}"),
)


def invoice_template_bytes() -> bytes:
    document = Document()
    document.add_heading("INVOICE", level=0)
    document.add_paragraph("Invoice number: {{ invoiceID }}")
    document.add_paragraph("Invoice date: {{ invoiceDate }}")

    document.add_heading("Billed by", level=1)
    document.add_paragraph("{{ personName }}")

    document.add_heading("Event", level=1)
    document.add_paragraph(
        "{{ eventName }} (event {{ eventID }}), held on {{ eventDate }}"
    )

    table = document.add_table(rows=1, cols=2)
    header = table.rows[0].cells
    header[0].paragraphs[0].add_run("Item").bold = True
    header[1].paragraphs[0].add_run("Amount").bold = True
    for label, placeholder in AMOUNT_ROWS:
        cells = table.add_row().cells
        cells[0].text = label
        cells[1].text = placeholder
    total = table.add_row().cells
    total[0].paragraphs[0].add_run("Total").bold = True
    total[1].paragraphs[0].add_run("{{ total }}").bold = True

    document.add_paragraph("Please transfer the total amount within 14 days.")
    return _to_bytes(document)


# ------------------------------------------------------------------
# Narrow templates for mismatch tests
# ------------------------------------------------------------------

def template_with_lines(lines: Iterable[str]) -> bytes:
    document = Document()
    for line in lines:
        document.add_paragraph(line)
    return _to_bytes(document)


def template_with_unknown_placeholder() -> bytes:
    return template_with_lines(
        ["{{ personName }}", "VAT number: {{ vatNumber }}"]
    )


def template_with_control_tag() -> bytes:
    return template_with_lines(
        ["{% if salary %}Salary: {{ salary }}{% endif %}"]
    )


def template_with_footer_control_tag() -> bytes:
    document = Document()
    document.add_paragraph("{{ personName }}")
    footer = document.sections[0].footer
    footer.paragraphs[0].text = "{% for line in lines %}{{ line }}{% endfor %}"
    return _to_bytes(document)


def template_with_syntax_error() -> bytes:
    return template_with_lines(["{{ personName "])


# ------------------------------------------------------------------
# Rich document for preview tests
# ------------------------------------------------------------------

def rich_document_bytes() -> bytes:
    document = Document()
    document.add_heading("Quarterly Invoice", level=0)
    document.add_heading("Details", level=2)

    paragraph = document.add_paragraph("Issued to ")
    paragraph.add_run("Jane Doe").bold = True
    paragraph.add_run(" for ")
    paragraph.add_run("Conf & Expo").italic = True

    document.add_paragraph("")

    document.add_paragraph("Travel", style="List Bullet")
    document.add_paragraph("Parking", style="List Bullet")
    document.add_paragraph("First step", style="List Number")

    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Item"
    table.cell(0, 1).text = "Amount"
    table.cell(1, 0).text = "Total"
    table.cell(1, 1).text = "1070"

    document.add_paragraph("Amounts < 5 are rounded")
    return _to_bytes(document)


def merged_cell_document_bytes() -> bytes:
    document = Document()
    table = document.add_table(rows=2, cols=2)
    merged = table.cell(0, 0).merge(table.cell(0, 1))
    merged.text = "Summary"
    table.cell(1, 0).text = "A"
    table.cell(1, 1).text = "B"
    return _to_bytes(document)


def _add_hyperlink(paragraph, url: str, label: str) -> None:
    r_id = paragraph.part.relate_to(url, RT.HYPERLINK, is_external=True)
    hyperlink = OxmlElement("w:hyperlink")
    hyperlink.set(qn("r:id"), r_id)
    run = OxmlElement("w:r")
    text = OxmlElement("w:t")
    text.text = label
    run.append(text)
    hyperlink.append(run)
    paragraph._p.append(hyperlink)


def linked_document_bytes() -> bytes:
    document = Document()
    _add_hyperlink(
        document.add_paragraph("Terms: "), "https://example.com/terms", "terms"
    )
    _add_hyperlink(
        document.add_paragraph("Contact: "), "mailto:billing@example.com", "billing"
    )
    _add_hyperlink(
        document.add_paragraph("Pay: "), "javascript:alert(1)", "pay now"
    )
    underlined = document.add_paragraph()
    underlined.add_run("Due on receipt").underline = True
    return _to_bytes(document)
