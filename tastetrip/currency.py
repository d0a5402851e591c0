"""Currency and locale helpers shared by the question flow and the scorer."""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

DEFAULT_CURRENCY = "$"

# Rough face-value to USD conversion used for budget categorisation only.
USD_MULTIPLIERS: Dict[str, float] = {
    "৳": 0.01,
    "₹": 0.012,
    "€": 1.1,
    "£": 1.25,
    "¥": 0.007,
    "₽": 0.011,
    "$": 1.0,
}

_SYMBOLS = "".join(USD_MULTIPLIERS.keys())
_SYMBOL_FIRST = re.compile(rf"^([{_SYMBOLS}])\s*(\d[\d,]*)")
_NUMBER_FIRST = re.compile(rf"^(\d[\d,]*)\s*([{_SYMBOLS}])")
_NUMBER_ONLY = re.compile(r"^(\d[\d,]*)")

# Ordered: first match wins, mirroring how audiences are usually described.
_LOCATION_CURRENCIES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("bangladesh", "dhaka"), "৳"),
    (("india",), "₹"),
    (("euro", "eu"), "€"),
    (("uk", "pound"), "£"),
    (("japan",), "¥"),
)

_BUDGET_RANGES: Dict[str, List[Tuple[int, int]]] = {
    "৳": [(500, 1000), (1000, 2500), (2500, 5000), (5000, 10000), (10000, 20000)],
    "₹": [(3000, 8000), (8000, 15000), (15000, 30000), (30000, 60000), (60000, 120000)],
}
_DEFAULT_RANGES = [(200, 500), (500, 1000), (1000, 2500), (2500, 5000), (5000, 10000)]

CUSTOM_AMOUNT = "Custom amount"


def detect_currency(audience_location: Optional[str]) -> str:
    location = (audience_location or "").lower()
    for needles, symbol in _LOCATION_CURRENCIES:
        if any(needle in location for needle in needles):
            return symbol
    return DEFAULT_CURRENCY


def to_usd(amount: float, currency: Optional[str]) -> float:
    return amount * USD_MULTIPLIERS.get(currency or DEFAULT_CURRENCY, 1.0)


def from_usd(amount: float, currency: Optional[str]) -> float:
    return amount / USD_MULTIPLIERS.get(currency or DEFAULT_CURRENCY, 1.0)


def parse_budget(answer: object) -> Optional[Tuple[int, Optional[str]]]:
    """Return ``(amount, symbol)`` from answers like ``$1000``, ``1000€`` or ``1,500``.

    Range answers such as ``$500-1000`` resolve to their leading amount. A bare
    number yields ``symbol=None`` so the caller can fall back to the audience
    currency. Returns ``None`` when no amount can be found (e.g. "Custom amount").
    """
    text = str(answer or "").strip()
    match = _SYMBOL_FIRST.match(text)
    if match:
        return _to_int(match.group(2)), match.group(1)
    match = _NUMBER_FIRST.match(text)
    if match:
        return _to_int(match.group(1)), match.group(2)
    match = _NUMBER_ONLY.match(text)
    if match:
        return _to_int(match.group(1)), None
    return None


def parse_duration_days(answer: object) -> int:
    text = str(answer or "").lower()
    match = re.search(r"(\d+)", text)
    count = int(match.group(1)) if match else 1
    if "week" in text:
        return max(1, count) * 7
    if "month" in text:
        return max(1, count) * 30
    return max(1, count) if match else 1


def budget_category(daily_usd: float) -> str:
    if daily_usd < 30:
        return "ultra-budget"
    if daily_usd < 75:
        return "budget"
    if daily_usd < 150:
        return "mid-range"
    if daily_usd < 300:
        return "premium"
    return "luxury"


def prefers_low_budget(daily_budget: Optional[float], currency: Optional[str]) -> Optional[bool]:
    """True for budget travellers, False for premium ones, None when undecided."""
    if daily_budget is None:
        return None
    category = budget_category(to_usd(daily_budget, currency))
    if category in ("ultra-budget", "budget"):
        return True
    if category in ("premium", "luxury"):
        return False
    return None


def budget_options(currency: str) -> List[str]:
    ranges = _BUDGET_RANGES.get(currency, _DEFAULT_RANGES)
    return [f"{currency}{low}-{high}" for low, high in ranges] + [CUSTOM_AMOUNT]


def travel_style(budget_label: Optional[str]) -> str:
    """Classify a budget label such as ``$1000-2500`` by its upper bound."""
    numbers = re.findall(r"\d[\d,]*", budget_label or "")
    upper = _to_int(numbers[-1]) if numbers else 2500
    if upper < 1500:
        return "budget"
    if upper < 3500:
        return "mid-range"
    return "luxury"


def format_amount(amount: float, currency: Optional[str]) -> str:
    return f"{currency or DEFAULT_CURRENCY}{int(amount)}"


def _to_int(raw: str) -> int:
    return int(raw.replace(",", ""))
