"""Pricing engine: Hydropack configuration + rate table -> itemized breakdown with fees and tax."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from .labels import display_label
from .rates import ModelPrice, RateTable, coerce_amount, lookup

WARRANTY_OPTIONS = ("standard", "warranty5", "warranty8")

# Option id -> fee key in RateTable.fees
CONNECTION_FEES = {"2way-t-valve": "twoWayValve", "3way-t-valve": "threeWayValve"}
PANEL_FEES = {"panel": "panelUpgrade", "subpanel": "subpanelUpgrade"}

SUBTOTAL = "subtotal"
INSTALL = "install"


def _money(x: float) -> float:
    """Round to cents (epsilon keeps 63.59925 from landing on 63.59)."""
    return round(float(x) + 1e-9, 2)


def coerce_distance(value: Any) -> float:
    """Feet from user input: invalid or negative -> 0."""
    return max(coerce_amount(value), 0.0)


def coerce_quantity(value: Any) -> int:
    """Whole non-negative count from user input."""
    return max(int(coerce_amount(value)), 0)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class Section:
    """One trenching or above-ground run."""
    type: str = ""
    distance_feet: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "distance": self.distance_feet}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | "Section" | None) -> "Section":
        if isinstance(data, Section):
            return cls(type=_text(data.type), distance_feet=coerce_distance(data.distance_feet))
        d = dict(data or {})
        return cls(
            type=_text(d.get("type")),
            distance_feet=coerce_distance(d.get("distance", d.get("distance_feet"))),
        )


@dataclass
class Demolition:
    enabled: bool = False
    distance_feet: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "distance": self.distance_feet}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | "Demolition" | None) -> "Demolition":
        if isinstance(data, Demolition):
            return cls(enabled=_flag(data.enabled), distance_feet=coerce_distance(data.distance_feet))
        d = dict(data or {})
        return cls(
            enabled=_flag(d.get("enabled")),
            distance_feet=coerce_distance(d.get("distance", d.get("distance_feet"))),
        )


@dataclass
class CustomAdjustment:
    """Free-form signed line item; negative amounts act as a discount."""
    enabled: bool = False
    label: str = ""
    amount: float = 0.0
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "label": self.label, "amount": self.amount, "notes": self.notes}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | "CustomAdjustment" | None) -> "CustomAdjustment":
        if isinstance(data, CustomAdjustment):
            data = data.to_dict()
        d = dict(data or {})
        return cls(
            enabled=_flag(d.get("enabled")),
            label=_text(d.get("label")),
            amount=coerce_amount(d.get("amount")),
            notes=_text(d.get("notes")),
        )


# Stored quote_config key -> QuoteConfiguration attribute
WIRE_FIELDS: dict[str, str] = {
    "model": "model",
    "unitPad": "unit_pad",
    "mobility": "mobility_assistance",
    "tank": "tank",
    "tankPad": "tank_pad",
    "city": "city",
    "sensor": "sensor",
    "filter": "filter",
    "filterQty": "filter_quantity",
    "pump": "pump",
    "connection": "connection_type",
    "trenchingSections": "trenching_sections",
    "ab_trenchingSections": "above_ground_sections",
    "panelUpgrade": "panel_upgrade",
    "warranty": "warranty",
    "demolition": "demolition",
    "customAdjs": "custom_adjustments",
}


@dataclass
class QuoteConfiguration:
    """What the user selected. Empty strings mean "not selected"."""
    model: str = ""
    tank: str = ""
    city: str = ""
    sensor: str = ""
    filter: str = ""
    filter_quantity: int = 0
    pump: str = ""
    connection_type: str = ""
    panel_upgrade: str = ""
    warranty: str = "standard"
    unit_pad: bool = False
    tank_pad: bool = False
    mobility_assistance: bool = False
    trenching_sections: list[Section] = field(default_factory=list)
    above_ground_sections: list[Section] = field(default_factory=list)
    demolition: Demolition = field(default_factory=Demolition)
    custom_adjustments: list[CustomAdjustment] = field(default_factory=list)

    def normalized(self) -> "QuoteConfiguration":
        """Copy with every field coerced to its type and clamped at the input boundary."""
        warranty = _text(self.warranty)
        return QuoteConfiguration(
            model=_text(self.model),
            tank=_text(self.tank),
            city=_text(self.city),
            sensor=_text(self.sensor),
            filter=_text(self.filter),
            filter_quantity=coerce_quantity(self.filter_quantity),
            pump=_text(self.pump),
            connection_type=_text(self.connection_type),
            panel_upgrade=_text(self.panel_upgrade),
            warranty=warranty if warranty in WARRANTY_OPTIONS else "standard",
            unit_pad=_flag(self.unit_pad),
            tank_pad=_flag(self.tank_pad),
            mobility_assistance=_flag(self.mobility_assistance),
            trenching_sections=[Section.from_dict(s) for s in self.trenching_sections or []],
            above_ground_sections=[Section.from_dict(s) for s in self.above_ground_sections or []],
            demolition=Demolition.from_dict(self.demolition),
            custom_adjustments=[CustomAdjustment.from_dict(a) for a in self.custom_adjustments or []],
        )

    def with_changes(self, **changes: Any) -> "QuoteConfiguration":
        """New normalized configuration with the given attributes replaced."""
        return replace(self, **changes).normalized()

    def to_dict(self) -> dict[str, Any]:
        """Stored `quote_config` shape."""
        out: dict[str, Any] = {}
        for wire, attr in WIRE_FIELDS.items():
            value = getattr(self, attr)
            if isinstance(value, list):
                value = [v.to_dict() for v in value]
            elif isinstance(value, Demolition):
                value = value.to_dict()
            out[wire] = value
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "QuoteConfiguration":
        """Parse a stored or submitted config; accepts stored keys or attribute names."""
        d = dict(data or {})
        kwargs: dict[str, Any] = {}
        for wire, attr in WIRE_FIELDS.items():
            if wire in d:
                kwargs[attr] = d[wire]
            elif attr in d:
                kwargs[attr] = d[attr]
        return cls(**kwargs).normalized()


@dataclass
class LineItem:
    description: str
    quantity: float
    unit_cost: float
    line_cost: float
    section: str = SUBTOTAL  # "subtotal" or "install"
    taxable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "quantity": self.quantity,
            "unit_cost": self.unit_cost,
            "line_cost": self.line_cost,
            "section": self.section,
            "taxable": self.taxable,
        }


@dataclass
class PriceBreakdown:
    """Engine output before any discount (amounts in dollars, rounded to cents)."""
    line_items: list[LineItem]
    subtotal: float
    taxable_subtotal: float
    tax: float
    install_related_total: float
    grand_total: float
    tax_rate: float
    has_any_selection: bool = False
    has_install_related_selection: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_items": [item.to_dict() for item in self.line_items],
            "subtotal": self.subtotal,
            "taxable_subtotal": self.taxable_subtotal,
            "tax": self.tax,
            "install_related_total": self.install_related_total,
            "grand_total": self.grand_total,
            "tax_rate": self.tax_rate,
        }


class _Ledger:
    """Running totals; zero amounts are neither summed nor itemized."""

    def __init__(self) -> None:
        self.items: list[LineItem] = []
        self.subtotal = 0.0
        self.taxable = 0.0
        self.install = 0.0
        self.install_added = False

    def add(
        self,
        description: str,
        amount: float,
        *,
        section: str = SUBTOTAL,
        taxable: bool = False,
        quantity: float = 1,
        unit_cost: float | None = None,
    ) -> None:
        if amount == 0:
            return
        if section == INSTALL:
            self.install += amount
            self.install_added = True
        else:
            self.subtotal += amount
            if taxable:
                self.taxable += amount
        self.items.append(LineItem(
            description=description,
            quantity=quantity,
            unit_cost=_money(amount if unit_cost is None else unit_cost),
            line_cost=_money(amount),
            section=section,
            taxable=taxable,
        ))


def _add_sections(ledger: _Ledger, sections: list[Section], rates: Mapping[str, float], category: str) -> bool:
    """Add priced runs to install; returns True if any run was billable."""
    any_billable = False
    for s in sections:
        distance = coerce_distance(s.distance_feet)
        if not s.type or distance <= 0:
            continue
        any_billable = True
        rate = lookup(rates, s.type)
        ledger.add(
            display_label(category, s.type),
            rate * distance,
            section=INSTALL,
            quantity=distance,
            unit_cost=rate,
        )
    return any_billable


def compute_breakdown(config: QuoteConfiguration, rates: RateTable) -> PriceBreakdown:
    """
    Compute the itemized price of a configuration against a rate table.

    Pure and deterministic. Unselected fields contribute nothing; unknown option ids
    price at 0. Only tank, sensor, filter and pump amounts are taxable. Admin and
    net-30 fees apply once anything is selected; commission, management and disposal
    apply once any install-related amount is non-zero.
    """
    cfg = config.normalized()
    ledger = _Ledger()
    selected = False

    model: ModelPrice = rates.model(cfg.model)
    model_label = display_label("model", cfg.model)

    # 1. Model: system and shipping, optional mobility assistance
    if cfg.model:
        selected = True
        ledger.add(f"{model_label} system", model.system)
        ledger.add(f"{model_label} shipping", model.shipping)
        if cfg.mobility_assistance:
            ledger.add("Mobility assistance", model.mobility)

    # 2-3. Concrete pads
    if cfg.unit_pad:
        selected = True
        ledger.add("Unit concrete pad", model.pad, section=INSTALL)
    if cfg.tank_pad:
        selected = True
        ledger.add("Tank concrete pad", lookup(rates.tank_pad_prices, cfg.tank), section=INSTALL)

    # 4. Connection type
    connection_fee = CONNECTION_FEES.get(cfg.connection_type)
    if connection_fee:
        selected = True
        ledger.add(
            f"{display_label('connection', cfg.connection_type)} install",
            rates.fee(connection_fee),
            section=INSTALL,
        )

    # 5. Panel upgrade
    panel_fee = PANEL_FEES.get(cfg.panel_upgrade)
    if panel_fee:
        selected = True
        ledger.add(display_label("panel", cfg.panel_upgrade), rates.fee(panel_fee), section=INSTALL)

    # 6. Trenching and above-ground runs
    if _add_sections(ledger, cfg.trenching_sections, rates.trench_rates, "trench"):
        selected = True
    if _add_sections(ledger, cfg.above_ground_sections, rates.above_ground_rates, "above_ground"):
        selected = True

    # 7. Tank (taxable) and delivery (not taxable)
    if cfg.tank:
        selected = True
        ledger.add(f"{display_label('tank', cfg.tank)} tank", lookup(rates.tank_prices, cfg.tank), taxable=True)
        if cfg.city:
            ledger.add(f"Delivery to {cfg.city}", lookup(rates.city_delivery_fees, cfg.city))

    # 8. Sensor
    if cfg.sensor:
        selected = True
        ledger.add(
            f"{display_label('sensor', cfg.sensor)} sensor",
            lookup(rates.sensor_prices, cfg.sensor),
            taxable=True,
        )

    # 9. Filters
    if cfg.filter and cfg.filter_quantity > 0:
        selected = True
        unit = lookup(rates.filter_prices, cfg.filter)
        ledger.add(
            f"{display_label('filter', cfg.filter)} filter",
            unit * cfg.filter_quantity,
            taxable=True,
            quantity=cfg.filter_quantity,
            unit_cost=unit,
        )

    # 10. Pump and its installation
    if cfg.pump:
        selected = True
        ledger.add(f"{display_label('pump', cfg.pump)} pump", lookup(rates.pump_prices, cfg.pump), taxable=True)
        ledger.add("Pump installation", rates.fee("pumpInstall"), section=INSTALL)

    # 11. Extended warranty (needs a model)
    if cfg.model and cfg.warranty in ("warranty5", "warranty8"):
        selected = True
        ledger.add(display_label("warranty", cfg.warranty), model.warranty_price(cfg.warranty))

    # 12. Demolition
    if cfg.demolition.enabled and cfg.demolition.distance_feet > 0:
        selected = True
        per_foot = rates.fee("demolitionPerFoot")
        ledger.add(
            "Demolition",
            cfg.demolition.distance_feet * per_foot,
            section=INSTALL,
            quantity=cfg.demolition.distance_feet,
            unit_cost=per_foot,
        )

    # 13. Custom adjustments (signed, not taxable)
    for adj in cfg.custom_adjustments:
        if adj.enabled and adj.amount != 0:
            selected = True
            ledger.add(adj.label or "Custom adjustment", adj.amount)

    # 14. Selection-gated flat fees
    install_selected = ledger.install_added
    if selected:
        ledger.add("Admin fee", rates.fee("admin"))
        ledger.add("Net 30 fee", rates.fee("net30"))
    if install_selected:
        ledger.add("Commission", rates.fee("commission"), section=INSTALL)
        ledger.add("Aquaria management fee", rates.fee("aquariaManagement"), section=INSTALL)
        ledger.add("Disposal fee", rates.fee("disposal"), section=INSTALL)

    # 15-16. Tax and grand total
    subtotal = _money(ledger.subtotal)
    taxable = _money(ledger.taxable)
    install = _money(ledger.install)
    tax = _money(taxable * rates.tax_rate)
    return PriceBreakdown(
        line_items=ledger.items,
        subtotal=subtotal,
        taxable_subtotal=taxable,
        tax=tax,
        install_related_total=install,
        grand_total=_money(subtotal + install + tax),
        tax_rate=rates.tax_rate,
        has_any_selection=selected,
        has_install_related_selection=install_selected,
    )
