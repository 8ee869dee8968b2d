"""Customer details attached to a quote, and the required-field check used before save/export."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

REQUIRED_CUSTOMER_KEYS = ("contactName", "serviceStreet", "serviceCity", "serviceState", "serviceZip")

# CustomerInfo attribute -> stored quote column
RECORD_FIELDS = {
    "company": "customer_company",
    "contact_name": "customer_name",
    "email": "customer_email",
    "phone": "customer_phone",
    "service_street": "service_street",
    "service_city": "service_city",
    "service_state": "service_state",
    "service_zip": "service_zip",
    "po_number": "po_number",
}

_OPTIONAL = ("company", "email", "phone", "po_number")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class CustomerInfo:
    company: str = ""
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    service_street: str = ""
    service_city: str = ""
    service_state: str = ""
    service_zip: str = ""
    po_number: str = ""

    def missing_required(self) -> list[str]:
        """Required keys (camelCase, as shown to users) that are blank after trimming."""
        return [key for key in REQUIRED_CUSTOMER_KEYS if not str(self.to_dict()[key] or "").strip()]

    @property
    def service_address(self) -> str:
        return f"{self.service_street}, {self.service_city}, {self.service_state} {self.service_zip}"

    def to_dict(self) -> dict[str, str]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "CustomerInfo":
        """Accepts camelCase (form) or snake_case keys."""
        d = dict(data or {})
        kwargs = {}
        for f in fields(cls):
            value = d.get(_camel(f.name), d.get(f.name))
            kwargs[f.name] = "" if value is None else str(value)
        return cls(**kwargs)

    def to_record(self) -> dict[str, str | None]:
        """Stored columns; optional blanks are saved as null."""
        out: dict[str, str | None] = {}
        for attr, column in RECORD_FIELDS.items():
            value = getattr(self, attr).strip()
            out[column] = (value or None) if attr in _OPTIONAL else value
        return out

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "CustomerInfo":
        return cls(**{attr: str(record.get(column) or "") for attr, column in RECORD_FIELDS.items()})
