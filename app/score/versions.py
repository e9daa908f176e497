"""Scoring version constants, weights and scaling rules."""

POSITION_CALC_VERSION = "clock_v1"
PROMPT_VERSION = "clock_prompt_v1"

# Blend of level and momentum inside each indicator's trend
LEVEL_WEIGHT = 0.7
MOMENTUM_WEIGHT = 0.3

# indicator_kind -> (level offset, level scale, momentum scale)
# level = (value - offset) * level_scale; momentum = (value - previous) * momentum_scale
SCALING_RULES = {
    "pmi_composite": (50.0, 2.0, 10.0),
    "pmi_manufacturing": (50.0, 2.0, 10.0),
    "gdp_now": (0.0, 20.0, 50.0),
    "cpi_yoy": (2.0, 25.0, 100.0),  # 2% inflation target
    "core_pce": (2.0, 25.0, 100.0),
}

GROWTH_WEIGHTS = {
    "pmi_composite": 0.4,
    "pmi_manufacturing": 0.3,
    "gdp_now": 0.3,
}

INFLATION_WEIGHTS = {
    "cpi_yoy": 0.6,
    "core_pce": 0.4,
}

INDICATOR_LABELS = {
    "pmi_composite": "PMI Composite",
    "pmi_manufacturing": "PMI Manufacturing",
    "gdp_now": "GDP Now",
    "cpi_yoy": "CPI YoY",
    "core_pce": "Core PCE",
}

INDICATOR_UNITS = {
    "pmi_composite": "",
    "pmi_manufacturing": "",
    "gdp_now": "%",
    "cpi_yoy": "%",
    "core_pce": "%",
}

TREND_BOUND = 100.0

# Confidence heuristic
CONFIDENCE_BASE = 50.0
CONFIDENCE_PER_INDICATOR = 6.0
CONFIDENCE_INDICATOR_CAP = 30.0
CONFIDENCE_PER_MOMENTUM = 4.0
CONFIDENCE_MOMENTUM_CAP = 20.0
CONFIDENCE_CONSISTENCY_BONUS = 10.0
CONSISTENCY_STDDEV_SCALE = 40.0

# AI fallback
FALLBACK_REASONING = "Fallback rule-based analysis used due to AI unavailability."
FALLBACK_FUTURE_CONFIDENCE = 30.0
FALLBACK_FUTURE_HORIZON = "3-6 months"
FALLBACK_FUTURE_REASONING = "Future projection unavailable; assuming current conditions persist."

# Historical trend summary
TREND_WINDOW = 6
