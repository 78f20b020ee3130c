"""
The template shipped with the service must stay aligned with the
invoice placeholder schema.
"""

from invoicer.app.config import Settings
from invoicer.app.schemas.invoice import INVOICE_PLACEHOLDERS
from invoicer.app.services.normalizer import normalize
from invoicer.app.services.preview import render_preview
from invoicer.app.services.template_merge import (
    find_template_placeholders,
    load_template,
    merge,
)
from invoicer.tests.helpers import FIXED_TODAY, jane_doe_fields


def test_shipped_template_uses_exactly_the_invoice_placeholders():
    template = load_template(Settings().template_path)

    assert find_template_placeholders(template) == set(INVOICE_PLACEHOLDERS)


def test_shipped_template_renders_jane_doe_preview():
    template = load_template(Settings().template_path)
    record = normalize(jane_doe_fields(), today=FIXED_TODAY)

    html = render_preview(merge(template=template, record=record).content)

    assert html.startswith("<h1>INVOICE</h1>")
    assert "<p>Jane Doe</p>" in html
    assert "<td><p><strong>1070</strong></p></td>" in html
