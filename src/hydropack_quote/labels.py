"""Human-readable labels for option ids (documents, admin views)."""

from __future__ import annotations

LABELS: dict[str, dict[str, str]] = {
    "model": {"s": "Hydropack S", "standard": "Hydropack", "x": "Hydropack X"},
    "tank": {"500": "500 gallon", "1550": "1550 gallon", "3000": "3000 gallon", "5000": "5000 gallon"},
    "sensor": {"normal": "Normal"},
    "filter": {"s": "Hydropack S", "standard": "Hydropack", "x": "Hydropack X"},
    "pump": {"dab": "DAB", "mini": "DAB Mini"},
    "connection": {
        "2way-t-valve": "Manual 2-way T-valve",
        "3way-t-valve": "Automatic 3-way T-valve",
    },
    "trench": {
        "trench_elec": "Trenching - Electrical",
        "trench_plumb": "Trenching - Plumbing",
        "trench_comb": "Trenching - Combined",
    },
    "above_ground": {
        "ab_elec": "Above Ground - Electrical",
        "ab_plumb": "Above Ground - Plumbing",
        "ab_comb": "Above Ground - Combined",
    },
    "panel": {"panel": "Panel Upgrade", "subpanel": "Subpanel Upgrade"},
    "warranty": {
        "standard": "Standard Warranty",
        "warranty5": "5-Year Extended Warranty",
        "warranty8": "8-Year Extended Warranty",
    },
}


def display_label(category: str, option_id: str | None) -> str:
    """Label for option_id; "None" when nothing is selected, the raw id when unknown."""
    if not option_id:
        return "None"
    return LABELS.get(category, {}).get(option_id, option_id)
