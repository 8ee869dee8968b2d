"""Rate tables: default Hydropack catalog, lookups, and partner category overrides."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

DEFAULT_TAX_RATE = 0.0825

# Keys of RateTable.fees (stored names)
FEE_KEYS = (
    "admin",
    "commission",
    "aquariaManagement",
    "disposal",
    "net30",
    "pumpInstall",
    "panelUpgrade",
    "subpanelUpgrade",
    "twoWayValve",
    "threeWayValve",
    "demolitionPerFoot",
)


def coerce_amount(value: Any) -> float:
    """Parse a user or stored number; empty, invalid, NaN and infinite values become 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def coerce_price(value: Any) -> float:
    """Catalog prices are never negative."""
    return max(coerce_amount(value), 0.0)


@dataclass(frozen=True)
class ModelPrice:
    """Per-model prices. `shipping` is stored as `ship`."""
    system: float = 0.0
    shipping: float = 0.0
    pad: float = 0.0
    mobility: float = 0.0
    warranty5: float = 0.0
    warranty8: float = 0.0

    def warranty_price(self, warranty: str) -> float:
        if warranty == "warranty5":
            return self.warranty5
        if warranty == "warranty8":
            return self.warranty8
        return 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "system": self.system,
            "ship": self.shipping,
            "pad": self.pad,
            "mobility": self.mobility,
            "warranty5": self.warranty5,
            "warranty8": self.warranty8,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ModelPrice":
        d = dict(data or {})
        return cls(
            system=coerce_price(d.get("system")),
            shipping=coerce_price(d.get("ship", d.get("shipping"))),
            pad=coerce_price(d.get("pad")),
            mobility=coerce_price(d.get("mobility")),
            warranty5=coerce_price(d.get("warranty5")),
            warranty8=coerce_price(d.get("warranty8")),
        )


DEFAULT_MODEL_PRICES: dict[str, ModelPrice] = {
    "s": ModelPrice(system=9999, shipping=645, pad=1750, mobility=500, warranty5=999, warranty8=1499),
    "standard": ModelPrice(system=17499, shipping=1095, pad=1850, mobility=500, warranty5=1749, warranty8=2599),
    "x": ModelPrice(system=29999, shipping=1550, pad=2100, mobility=1000, warranty5=2999, warranty8=4499),
}

DEFAULT_TANK_PRICES: dict[str, float] = {"500": 770.90, "1550": 1430.35, "3000": 2428.90, "5000": 5125.99}
DEFAULT_TANK_PAD_PRICES: dict[str, float] = {"500": 1750, "1550": 1850, "3000": 2300, "5000": 4200}

DEFAULT_CITY_DELIVERY: dict[str, float] = {
    "Austin": 999,
    "Corpus Christi": 858,
    "Dallas": 577.50,
    "Houston": 200,
    "San Antonio": 660,
}

DEFAULT_SENSOR_PRICES: dict[str, float] = {"normal": 35}
DEFAULT_FILTER_PRICES: dict[str, float] = {"s": 100, "standard": 150, "x": 200}
DEFAULT_PUMP_PRICES: dict[str, float] = {"dab": 1900, "mini": 800}

DEFAULT_TRENCH_RATES: dict[str, float] = {"trench_elec": 32.50, "trench_plumb": 58.50, "trench_comb": 65.50}
DEFAULT_ABOVE_GROUND_RATES: dict[str, float] = {"ab_elec": 35.50, "ab_plumb": 26.50, "ab_comb": 35.50}

DEFAULT_FEES: dict[str, float] = {
    "admin": 500,
    "commission": 2500,
    "aquariaManagement": 500,
    "disposal": 200,
    "net30": 100,
    "pumpInstall": 200,
    "panelUpgrade": 8000,
    "subpanelUpgrade": 3000,
    "twoWayValve": 100,
    "threeWayValve": 300,
    "demolitionPerFoot": 150,
}


@dataclass(frozen=True)
class RateTable:
    """All prices the engine reads. Each field is one override category."""
    model_prices: dict[str, ModelPrice] = field(default_factory=lambda: dict(DEFAULT_MODEL_PRICES))
    tank_prices: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TANK_PRICES))
    tank_pad_prices: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TANK_PAD_PRICES))
    city_delivery_fees: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_CITY_DELIVERY))
    sensor_prices: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_SENSOR_PRICES))
    filter_prices: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FILTER_PRICES))
    pump_prices: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_PUMP_PRICES))
    trench_rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TRENCH_RATES))
    above_ground_rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_ABOVE_GROUND_RATES))
    fees: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FEES))
    tax_rate: float = DEFAULT_TAX_RATE

    def model(self, model_id: str) -> ModelPrice:
        """Model prices, or an all-zero entry for unknown or empty ids."""
        return self.model_prices.get(model_id or "") or ModelPrice()

    def fee(self, name: str) -> float:
        return lookup(self.fees, name)

    def to_dict(self) -> dict[str, Any]:
        """Stored `partner_pricing` snapshot shape."""
        return {
            "modelPrices": {k: v.to_dict() for k, v in self.model_prices.items()},
            "tankPrices": dict(self.tank_prices),
            "tankPads": dict(self.tank_pad_prices),
            "cityDelivery": dict(self.city_delivery_fees),
            "sensorPrices": dict(self.sensor_prices),
            "filterPrices": dict(self.filter_prices),
            "pumpPrices": dict(self.pump_prices),
            "trenchRates": dict(self.trench_rates),
            "ab_trenchRates": dict(self.above_ground_rates),
            "fees": dict(self.fees),
            "taxRate": self.tax_rate,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "RateTable":
        """
        Build a table from a stored snapshot; missing categories use the defaults.

        Older snapshots store only the flat fees (admin, commission, management,
        disposal, net30), so any fee key the snapshot lacks keeps its default.
        """
        table = apply_partner_overrides(cls(), data)
        if data and isinstance(data.get("fees"), Mapping):
            fees = {key: DEFAULT_FEES[key] for key in FEE_KEYS if key not in table.fees}
            if fees:
                table = replace(table, fees={**table.fees, **fees})
        return table


def _price_map(value: Any) -> dict[str, float]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): coerce_price(v) for k, v in value.items() if k is not None}


def _model_map(value: Any) -> dict[str, ModelPrice]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): ModelPrice.from_dict(v if isinstance(v, Mapping) else None) for k, v in value.items()}


# Stored category key -> (RateTable attribute, parser)
_CATEGORIES: dict[str, tuple[str, Any]] = {
    "modelPrices": ("model_prices", _model_map),
    "tankPrices": ("tank_prices", _price_map),
    "tankPads": ("tank_pad_prices", _price_map),
    "cityDelivery": ("city_delivery_fees", _price_map),
    "sensorPrices": ("sensor_prices", _price_map),
    "filterPrices": ("filter_prices", _price_map),
    "pumpPrices": ("pump_prices", _price_map),
    "trenchRates": ("trench_rates", _price_map),
    "ab_trenchRates": ("above_ground_rates", _price_map),
    "fees": ("fees", _price_map),
    "taxRate": ("tax_rate", coerce_price),
}


def lookup(table: Mapping[str, Any], key: str | None) -> float:
    """Price for key in table; unknown keys and unparseable prices resolve to 0."""
    if not key:
        return 0.0
    return coerce_price(table.get(key))


def apply_partner_overrides(base: RateTable, overrides: Mapping[str, Any] | None) -> RateTable:
    """
    Replace whole categories of base with the ones present in overrides.

    A supplied category is taken as-is: there is no per-key fallback inside it, so a
    partner overriding `modelPrices` must list every model they price.
    """
    if not overrides:
        return base
    changes: dict[str, Any] = {}
    for key, (attr, parse) in _CATEGORIES.items():
        if overrides.get(key) is None:
            continue
        changes[attr] = parse(overrides[key])
    return replace(base, **changes) if changes else base


DEFAULT_RATES = RateTable()
