from datetime import date
from pathlib import Path
from typing import List

from invoicer.app.config import Settings
from invoicer.app.events import PipelineEvent
from invoicer.tests.fixtures.docx_factory import invoice_template_bytes


FIXED_TODAY = date(2024, 5, 17)


def jane_doe_fields() -> dict:
    return {
        "personName": "Jane Doe",
        "salary": 1000,
        "eventID": "42",
        "eventName": "Conf",
        "eventDate": "01-01-2024",
        "travelExpenses": 50,
        "carExpenses": 0,
        "parkingExpenses": 20,
        "invoiceDate": "01-02-2024",
    }


def write_template(directory: Path, content: bytes = None) -> Path:
    path = directory / "invoice-template.docx"
    path.write_bytes(content if content is not None else invoice_template_bytes())
    return path


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "template_path": write_template(tmp_path),
        "output_dir": tmp_path / "public",
    }
    values.update(overrides)
    return Settings(**values)


class ListEmitter:
    """Collects pipeline events in memory."""

    def __init__(self) -> None:
        self.events: List[PipelineEvent] = []

    def emit(self, event: PipelineEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> List[str]:
        return [e.event_type.value for e in self.events]
