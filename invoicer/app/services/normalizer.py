"""
Field normalization.

Turns the raw field mapping submitted by the invoice form into a
canonical InvoiceRecord. This module is pure: the clock is the only
ambient input and it can be injected through ``today``.

Coercion rules:
- amounts: missing, None or "" become 0; numeric strings are parsed;
  booleans, NaN/Infinity, negatives, sub-cent fractions and non-numeric
  text are rejected
- dates: MM-DD-YYYY, MM/DD/YYYY, ISO YYYY-MM-DD or date objects, always
  emitted as MM-DD-YYYY
- invoiceID and total are derived and any supplied value is ignored
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError

from invoicer.app.errors import InvoiceValidationError
from invoicer.app.schemas.invoice import DATE_FORMAT, InvoiceRecord


# Raw wire name -> record field
AMOUNT_FIELDS: Dict[str, str] = {
    "salary": "salary",
    "travelExpenses": "travel_expenses",
    "carExpenses": "car_expenses",
    "parkingExpenses": "parking_expenses",
}

ACCEPTED_DATE_FORMATS: Tuple[str, ...] = (
    DATE_FORMAT,
    "%m/%d/%Y",
    "%Y-%m-%d",
)

DEFAULT_MAX_AMOUNT = Decimal("1000000000")

CENT = Decimal("0.01")

# Record field -> raw wire name, for errors raised by the record itself
WIRE_NAMES: Dict[str, str] = {
    "invoice_id": "invoiceID",
    "person_name": "personName",
    "event_id": "eventID",
    "event_name": "eventName",
    "event_date": "eventDate",
    "invoice_date": "invoiceDate",
    **{field: wire for wire, field in AMOUNT_FIELDS.items()},
}


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_amount(value: Any, *, max_amount: Decimal = DEFAULT_MAX_AMOUNT) -> Decimal:
    if _is_blank(value):
        return Decimal(0)

    # bool is an int subclass; a checkbox value is not an amount
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")

    if isinstance(value, (int, Decimal)):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"'{value}' is not a number") from None
    else:
        raise ValueError(f"expected a number, got {type(value).__name__}")

    if not amount.is_finite():
        raise ValueError("amount must be a finite number")
    if amount < 0:
        raise ValueError("amount must not be negative")
    if amount > max_amount:
        raise ValueError(f"amount exceeds the maximum of {max_amount}")
    if amount != amount.quantize(CENT):
        raise ValueError("amount must not have more than two decimal places")
    return amount


def format_date(value: date) -> str:
    # strftime does not zero-pad years below 1000 on every platform
    return f"{value.month:02d}-{value.day:02d}-{value.year:04d}"


def coerce_date(value: Any) -> str:
    if isinstance(value, date):
        return format_date(value)
    if not isinstance(value, str):
        raise ValueError(f"expected a date string, got {type(value).__name__}")

    text = value.strip()
    for fmt in ACCEPTED_DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return format_date(parsed)

    raise ValueError(f"'{value}' is not a valid date (expected MM-DD-YYYY)")


def _record_errors(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "__root__"
        errors[WIRE_NAMES.get(field, field)] = error["msg"]
    return errors


def _optional_text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    return str(value).strip()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize(
    raw: Mapping[str, Any],
    *,
    today: Optional[date] = None,
    max_amount: Decimal = DEFAULT_MAX_AMOUNT,
) -> InvoiceRecord:
    """
    Validate and coerce raw form fields into an InvoiceRecord.

    All field problems of one submission are reported together.

    Raises:
        InvoiceValidationError: if any field is missing or malformed.
    """
    if not isinstance(raw, Mapping):
        raise InvoiceValidationError(
            {"__root__": f"expected an object, got {type(raw).__name__}"}
        )

    today = today or date.today()
    errors: Dict[str, str] = {}
    fields: Dict[str, Any] = {}

    person_name = _optional_text(raw.get("personName"))
    if person_name is None:
        errors["personName"] = "person name is required"
    fields["person_name"] = person_name

    event_id = _optional_text(raw.get("eventID", raw.get("eventId")))
    if event_id is None:
        errors["eventID"] = "event ID is required"
    fields["event_id"] = event_id

    fields["event_name"] = _optional_text(raw.get("eventName"))

    for wire_name, field_name in AMOUNT_FIELDS.items():
        try:
            fields[field_name] = coerce_amount(
                raw.get(wire_name), max_amount=max_amount
            )
        except ValueError as exc:
            errors[wire_name] = str(exc)

    event_date = raw.get("eventDate")
    if _is_blank(event_date):
        fields["event_date"] = None
    else:
        try:
            fields["event_date"] = coerce_date(event_date)
        except ValueError as exc:
            errors["eventDate"] = str(exc)

    invoice_date = raw.get("invoiceDate")
    if _is_blank(invoice_date):
        fields["invoice_date"] = format_date(today)
    else:
        try:
            fields["invoice_date"] = coerce_date(invoice_date)
        except ValueError as exc:
            errors["invoiceDate"] = str(exc)

    if errors:
        raise InvoiceValidationError(errors)

    try:
        return InvoiceRecord(
            invoice_id=f"{today.year:04d}-{event_id}",
            **fields,
        )
    except ValidationError as exc:
        raise InvoiceValidationError(_record_errors(exc)) from exc
