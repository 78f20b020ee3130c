from __future__ import annotations

from decimal import Decimal
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# Placeholder names exposed by the invoice template. This set is the
# contract between the template file and InvoiceRecord; merging checks
# the template against it before any substitution happens.
INVOICE_PLACEHOLDERS: FrozenSet[str] = frozenset(
    {
        "invoiceID",
        "personName",
        "salary",
        "eventID",
        "eventName",
        "eventDate",
        "travelExpenses",
        "carExpenses",
        "parkingExpenses",
        "invoiceDate",
        "total",
    }
)

DATE_FORMAT = "%m-%d-%Y"


def format_amount(value: Decimal) -> str:
    """
    Render an amount using the single fixed convention.

    Integral amounts print without decimals (``1070``); anything else is
    rounded to two places (``10.50``).
    """
    if value == value.to_integral_value():
        return str(int(value))
    return f"{value.quantize(Decimal('0.01'))}"


class InvoiceRecord(BaseModel):
    """
    Canonical, validated invoice data consumed by the merge engine.

    Built exclusively by the field normalizer. ``total`` is always derived
    from the four amount fields and cannot be supplied.
    """

    invoice_id: str = Field(..., min_length=6)
    person_name: str = Field(..., min_length=1)

    salary: Decimal = Field(Decimal(0), ge=0)
    travel_expenses: Decimal = Field(Decimal(0), ge=0)
    car_expenses: Decimal = Field(Decimal(0), ge=0)
    parking_expenses: Decimal = Field(Decimal(0), ge=0)

    event_id: str = Field(..., min_length=1)
    event_name: Optional[str] = None
    event_date: Optional[str] = Field(None, pattern=r"^\d{2}-\d{2}-\d{4}$")
    invoice_date: str = Field(..., pattern=r"^\d{2}-\d{2}-\d{4}$")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> Decimal:
        return (
            self.salary
            + self.travel_expenses
            + self.car_expenses
            + self.parking_expenses
        )

    def template_context(self) -> Dict[str, Optional[str]]:
        """
        Map the record onto template placeholder names.

        Missing optional values stay ``None`` so the merge engine can
        reject them instead of rendering an empty field.
        """
        return {
            "invoiceID": self.invoice_id,
            "personName": self.person_name,
            "salary": format_amount(self.salary),
            "eventID": self.event_id,
            "eventName": self.event_name,
            "eventDate": self.event_date,
            "travelExpenses": format_amount(self.travel_expenses),
            "carExpenses": format_amount(self.car_expenses),
            "parkingExpenses": format_amount(self.parking_expenses),
            "invoiceDate": self.invoice_date,
            "total": format_amount(self.total),
        }
