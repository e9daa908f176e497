"""Investment Clock quadrants: classification rule and asset allocation profiles."""
from __future__ import annotations

from enum import Enum


class Quadrant(str, Enum):
    RECOVERY = "recovery"
    OVERHEAT = "overheat"
    STAGFLATION = "stagflation"
    RECESSION = "recession"


def determine_quadrant(growth_trend: float, inflation_trend: float) -> Quadrant:
    """Map a (growth, inflation) pair to its quadrant.

    Zero counts as non-negative on both axes, so every point of the plane
    lands in exactly one quadrant.
    """
    if growth_trend >= 0:
        return Quadrant.RECOVERY if inflation_trend < 0 else Quadrant.OVERHEAT
    return Quadrant.STAGFLATION if inflation_trend >= 0 else Quadrant.RECESSION


# Asset ranking per quadrant: (asset, priority, reasoning), 1 = most favoured
QUADRANT_PROFILES: dict[Quadrant, dict] = {
    Quadrant.RECOVERY: {
        "label": "Recovery",
        "description": "Improving growth, declining inflation",
        "strategy": "Focus on equities as corporate earnings accelerate while interest rates remain low",
        "allocation": [
            ("Stocks", 1, "Corporate earnings improve with economic recovery"),
            ("Bonds", 2, "Still attractive as rates haven't risen yet"),
            ("Commodities", 3, "Moderate allocation as demand picks up"),
            ("Cash", 4, "Low returns in recovering economy"),
        ],
    },
    Quadrant.OVERHEAT: {
        "label": "Overheat",
        "description": "Strong growth, rising inflation",
        "strategy": "Shift towards commodities and real assets as inflation accelerates and rates rise",
        "allocation": [
            ("Commodities", 1, "Best inflation hedge during economic expansion"),
            ("Stocks", 2, "Still positive but facing headwinds from rising rates"),
            ("Cash", 3, "Rising short-term rates improve returns"),
            ("Bonds", 4, "Vulnerable to rising interest rates"),
        ],
    },
    Quadrant.STAGFLATION: {
        "label": "Stagflation",
        "description": "Weak growth, high inflation",
        "strategy": "Defensive positioning with cash and commodities while avoiding bonds and stocks",
        "allocation": [
            ("Cash", 1, "Safety and liquidity during economic uncertainty"),
            ("Commodities", 2, "Continued inflation protection despite weak growth"),
            ("Bonds", 3, "Some government bonds for safety"),
            ("Stocks", 4, "Weak earnings and multiple compression"),
        ],
    },
    Quadrant.RECESSION: {
        "label": "Recession",
        "description": "Declining growth, falling inflation",
        "strategy": "Prioritize bonds and cash for safety, prepare for next recovery cycle",
        "allocation": [
            ("Bonds", 1, "Declining rates boost bond prices and provide safety"),
            ("Cash", 2, "Liquidity and optionality for opportunities"),
            ("Stocks", 3, "Selective opportunities at attractive valuations"),
            ("Commodities", 4, "Weak demand during economic contraction"),
        ],
    },
}


def quadrant_profile(quadrant: Quadrant | str) -> dict:
    """Return a JSON-ready profile for display alongside a position."""
    q = Quadrant(quadrant)
    profile = QUADRANT_PROFILES[q]
    return {
        "quadrant": q.value,
        "label": profile["label"],
        "description": profile["description"],
        "strategy": profile["strategy"],
        "allocation": [
            {"asset": asset, "priority": priority, "reasoning": reasoning}
            for asset, priority, reasoning in profile["allocation"]
        ],
    }
